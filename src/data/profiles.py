"""
PacketParser — Behavior Profile Records

One BehaviorProfile per classified entity name (zone + name for mobs).
Counters only ever grow, and every sample list is a capped reservoir:
once full it stops accepting values, it never evicts.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from src.data.classifier import EntityClass, ProfileKey

DAMAGE_SAMPLE_CAP = 100
DAMAGE_TAKEN_CAP = 500


def append_capped(samples: list, value, cap: int) -> bool:
    """Append unless the reservoir is full. Returns True if appended."""
    if len(samples) >= cap:
        return False
    samples.append(value)
    return True


class Bucket(Enum):
    """Where a recorded action lands inside a profile."""
    MELEE = "melee_anims"
    RANGED = "ranged_anims"
    WEAPON_SKILL = "weapon_skills"
    MAGIC = "spells"
    ITEM = "items"
    JOB_ABILITY = "job_abilities"
    MONSTER_ABILITY = "monster_abilities"
    PET_ABILITY = "pet_abilities"
    DANCE = "dances"
    RUNE = "runes"
    UNSORTED = "unsorted"  # counted in samples only
    IGNORED = "ignored"    # announcements, never recorded


ANIMATION_BUCKETS = (Bucket.MELEE, Bucket.RANGED)
PARAM_BUCKETS = (
    Bucket.WEAPON_SKILL,
    Bucket.MAGIC,
    Bucket.ITEM,
    Bucket.JOB_ABILITY,
    Bucket.MONSTER_ABILITY,
    Bucket.PET_ABILITY,
    Bucket.DANCE,
    Bucket.RUNE,
)


@dataclass
class CounterEntry:
    """Usage of one weapon skill / spell / ability by one profile."""
    id: int
    resolved_name: str
    animation_id: int
    count: int = 0
    damage_samples: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.resolved_name,
            "animation_id": self.animation_id,
            "count": self.count,
        }
        if self.damage_samples:
            d["damage_samples"] = list(self.damage_samples)
        return d


@dataclass
class AnimationEntry:
    """Auto-attack animation counter (melee / ranged)."""
    animation_id: int
    count: int = 0

    def to_dict(self) -> dict:
        return {"animation_id": self.animation_id, "count": self.count}


@dataclass
class AdditionalEffectEntry:
    """A secondary proc, keyed by (animation_id, magnitude)."""
    animation_id: int
    magnitude: int
    effect: int
    message_id: int
    source_category: str
    count: int = 0

    def to_dict(self) -> dict:
        return {
            "animation": self.animation_id,
            "effect": self.effect,
            "param": self.magnitude,
            "message": self.message_id,
            "count": self.count,
            "source_category": self.source_category,
        }


@dataclass
class BehaviorProfile:
    """Aggregated behavior of one Trust name or one (zone, mob name)."""
    key: ProfileKey
    entity_class: EntityClass
    model_id: int = 0
    samples: int = 0
    first_seen: float = field(default_factory=time.time)
    last_seen: float = 0.0
    counters: dict[Bucket, dict[int, CounterEntry]] = field(
        default_factory=lambda: {b: {} for b in PARAM_BUCKETS}
    )
    animations: dict[Bucket, dict[int, AnimationEntry]] = field(
        default_factory=lambda: {b: {} for b in ANIMATION_BUCKETS}
    )
    add_effects: dict[tuple[int, int], AdditionalEffectEntry] = field(default_factory=dict)
    damage_taken: list[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def zone(self) -> str | None:
        return self.key.zone

    @property
    def has_data(self) -> bool:
        """True once the profile recorded an action or took observed damage."""
        return self.samples > 0 or bool(self.damage_taken)

    @property
    def weapon_skills(self) -> dict[int, CounterEntry]:
        return self.counters[Bucket.WEAPON_SKILL]

    @property
    def spells(self) -> dict[int, CounterEntry]:
        return self.counters[Bucket.MAGIC]

    @property
    def job_abilities(self) -> dict[int, CounterEntry]:
        return self.counters[Bucket.JOB_ABILITY]

    def bucket(self, bucket: Bucket) -> dict:
        if bucket in self.counters:
            return self.counters[bucket]
        return self.animations[bucket]

    def estimated_hp(self) -> int:
        """Sum of observed damage taken. A lower bound, not an average."""
        return sum(self.damage_taken)

    def snapshot(self) -> dict:
        """Plain-dict view with each bucket sorted by descending count.

        The sort is stable, so equal counts keep insertion order.
        """
        out = {
            "name": self.name,
            "zone": self.zone,
            "class": self.entity_class.value,
            "model_id": self.model_id,
            "total_samples": self.samples,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
        }
        for bucket in PARAM_BUCKETS + ANIMATION_BUCKETS:
            out[bucket.value] = _sorted_dicts(self.bucket(bucket).values())
        out["add_effects"] = _sorted_dicts(self.add_effects.values())
        if self.entity_class is EntityClass.MOB:
            out["damage_taken"] = {
                "samples": len(self.damage_taken),
                "estimated_hp": self.estimated_hp(),
            }
        return out


def _sorted_dicts(entries) -> list[dict]:
    return [e.to_dict() for e in sorted(entries, key=lambda e: e.count, reverse=True)]
