"""
PacketParser — Behavior Aggregator

Folds decoded actions into per-entity BehaviorProfiles.

  record(key, category, param, animation, magnitude, add_effect)
    ├── MELEE / RANGED          → animation counters (keyed by animation id)
    ├── WS / magic / JA / ...   → CounterEntry keyed by param
    │     └── WS, mob & pet abilities also keep damage samples (cap 100)
    ├── NONE / JA start         → samples only
    └── announcements           → ValueError (filter them before recording)

animation_id is overwritten on every use: the latest animation seen for an
action is the one compared against, not the first or the most common.
"""

from __future__ import annotations

import logging
import time

from src.protocol.action_packet import ActionCategory, AdditionalEffect
from src.data.classifier import EntityClass, ProfileKey
from src.data.profiles import (
    AdditionalEffectEntry,
    AnimationEntry,
    BehaviorProfile,
    Bucket,
    CounterEntry,
    DAMAGE_SAMPLE_CAP,
    DAMAGE_TAKEN_CAP,
    append_capped,
)
from src.data.resources import NameResolver

log = logging.getLogger(__name__)


CATEGORY_BUCKETS: dict[ActionCategory, Bucket] = {
    ActionCategory.NONE: Bucket.UNSORTED,
    ActionCategory.MELEE: Bucket.MELEE,
    ActionCategory.RANGED: Bucket.RANGED,
    ActionCategory.WEAPON_SKILL: Bucket.WEAPON_SKILL,
    ActionCategory.MAGIC: Bucket.MAGIC,
    ActionCategory.ITEM: Bucket.ITEM,
    ActionCategory.JOB_ABILITY: Bucket.JOB_ABILITY,
    ActionCategory.WS_READYING: Bucket.IGNORED,
    ActionCategory.CASTING: Bucket.IGNORED,
    ActionCategory.ITEM_START: Bucket.IGNORED,
    ActionCategory.JOB_ABILITY_START: Bucket.UNSORTED,
    ActionCategory.MONSTER_ABILITY: Bucket.MONSTER_ABILITY,
    ActionCategory.RANGED_START: Bucket.IGNORED,
    ActionCategory.PET_ABILITY: Bucket.PET_ABILITY,
    ActionCategory.DANCE: Bucket.DANCE,
    ActionCategory.RUNE: Bucket.RUNE,
}

_missing = set(ActionCategory) - set(CATEGORY_BUCKETS)
if _missing:
    raise RuntimeError(f"categories without a bucket: {sorted(_missing)}")

DAMAGE_BUCKETS = frozenset({
    Bucket.WEAPON_SKILL,
    Bucket.MONSTER_ABILITY,
    Bucket.PET_ABILITY,
})


class BehaviorAggregator:
    """Owns every BehaviorProfile for the process lifetime."""

    def __init__(
        self,
        resolver: NameResolver | None = None,
        damage_sample_cap: int = DAMAGE_SAMPLE_CAP,
        damage_taken_cap: int = DAMAGE_TAKEN_CAP,
    ):
        self.resolver = resolver or NameResolver()
        self.damage_sample_cap = damage_sample_cap
        self.damage_taken_cap = damage_taken_cap
        self._profiles: dict[ProfileKey, BehaviorProfile] = {}

    # ---- Profiles ----

    def profile(
        self, key: ProfileKey, entity_class: EntityClass, model_id: int = 0,
    ) -> BehaviorProfile:
        """Get or lazily create the profile for `key`. model_id is set on creation only."""
        prof = self._profiles.get(key)
        if prof is None:
            prof = BehaviorProfile(key=key, entity_class=entity_class, model_id=model_id)
            self._profiles[key] = prof
            log.debug("New %s profile: %s", entity_class.value, key)
        return prof

    def get(self, key: ProfileKey) -> BehaviorProfile | None:
        return self._profiles.get(key)

    def profiles(self) -> list[BehaviorProfile]:
        return list(self._profiles.values())

    def find(self, name: str) -> BehaviorProfile | None:
        """Exact name first, then case-insensitive, then substring."""
        for prof in self._profiles.values():
            if prof.name == name:
                return prof
        lower = name.lower()
        for prof in self._profiles.values():
            if prof.name.lower() == lower:
                return prof
        for prof in self._profiles.values():
            if lower in prof.name.lower():
                return prof
        return None

    def reset(self) -> None:
        self._profiles.clear()

    def __len__(self) -> int:
        return len(self._profiles)

    # ---- Recording ----

    def record(
        self,
        key: ProfileKey,
        category: int,
        param: int,
        animation_id: int,
        magnitude: int,
        add_effect: AdditionalEffect | None = None,
    ) -> BehaviorProfile:
        """Fold one completed action into the profile for `key`.

        The profile must already exist (see profile()).
        """
        cat = ActionCategory(category)
        bucket = CATEGORY_BUCKETS[cat]
        if bucket is Bucket.IGNORED:
            raise ValueError(f"{cat.label} is an announcement and is never recorded")

        prof = self._profiles.get(key)
        if prof is None:
            raise KeyError(f"no profile for {key}")

        prof.samples += 1
        prof.last_seen = time.time()

        match bucket:
            case Bucket.MELEE | Bucket.RANGED:
                self._count_animation(prof, bucket, animation_id)
            case Bucket.UNSORTED:
                pass
            case _:
                self._count_param(prof, bucket, cat, param, animation_id, magnitude)

        if add_effect is not None:
            self._count_add_effect(prof, cat, add_effect)

        return prof

    def _count_animation(self, prof: BehaviorProfile, bucket: Bucket, animation_id: int) -> None:
        anims = prof.animations[bucket]
        entry = anims.get(animation_id)
        if entry is None:
            entry = anims[animation_id] = AnimationEntry(animation_id=animation_id)
        entry.count += 1

    def _count_param(
        self,
        prof: BehaviorProfile,
        bucket: Bucket,
        cat: ActionCategory,
        param: int,
        animation_id: int,
        magnitude: int,
    ) -> None:
        entries = prof.counters[bucket]
        entry = entries.get(param)
        if entry is None:
            entry = entries[param] = CounterEntry(
                id=param,
                resolved_name=self.resolver.resolve(cat, param),
                animation_id=animation_id,
            )
        entry.count += 1
        entry.animation_id = animation_id
        if bucket in DAMAGE_BUCKETS and magnitude > 0:
            append_capped(entry.damage_samples, magnitude, self.damage_sample_cap)

    def _count_add_effect(
        self, prof: BehaviorProfile, cat: ActionCategory, add: AdditionalEffect,
    ) -> None:
        ae_key = (add.animation_id, add.magnitude)
        entry = prof.add_effects.get(ae_key)
        if entry is None:
            entry = prof.add_effects[ae_key] = AdditionalEffectEntry(
                animation_id=add.animation_id,
                magnitude=add.magnitude,
                effect=add.spike_flag,
                message_id=add.message_id,
                source_category=cat.label,
            )
        entry.count += 1

    def record_damage_taken(self, key: ProfileKey, magnitude: int) -> bool:
        """Append to a profile's damage-taken log. True if the sample was kept."""
        prof = self._profiles.get(key)
        if prof is None or magnitude <= 0:
            return False
        prof.last_seen = time.time()
        return append_capped(prof.damage_taken, magnitude, self.damage_taken_cap)
