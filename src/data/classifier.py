"""
PacketParser — Entity Classifier

Decides whether an entity id belongs to a Trust (NPC in our party), a Mob
(any other NPC), a Player, or is Unknown (the client can't resolve it yet).

Classification is sticky for the current zone session: once an id has a
class it is served from cache until zone_change() clears the caches.
Entity ids are reassigned across zones, so the caches never survive one.
Unknown results are never cached; the next sighting tries again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

log = logging.getLogger(__name__)


class EntityClass(Enum):
    TRUST = "trust"
    MOB = "mob"
    PLAYER = "player"
    UNKNOWN = "unknown"


@dataclass
class EntityInfo:
    """What the host client knows about an entity right now."""
    entity_id: int
    name: str
    is_npc: bool
    model_id: int = 0
    index: int = 0
    position: tuple[float, float, float] | None = None


class EntityOracle(Protocol):
    """Lookups provided by the host client."""

    def get_entity(self, entity_id: int) -> EntityInfo | None:
        """None when the client can't resolve the id (e.g. out of range)."""
        ...

    def is_party_member(self, entity_id: int) -> bool:
        ...

    def party_members(self) -> list[EntityInfo]:
        ...


@dataclass(frozen=True)
class ProfileKey:
    """Owner of a behavior profile. Trusts have no zone; mobs do."""
    name: str
    zone: str | None = None

    def __str__(self) -> str:
        return self.name if self.zone is None else f"{self.name} @ {self.zone}"


@dataclass
class TrackedEntity:
    """A Trust or Mob registered by the classifier."""
    entity_id: int
    name: str
    entity_class: EntityClass
    model_id: int = 0
    index: int = 0
    zone: str | None = None

    @property
    def profile_key(self) -> ProfileKey:
        if self.entity_class is EntityClass.MOB:
            return ProfileKey(self.name, self.zone)
        return ProfileKey(self.name)


class EntityClassifier:
    """Session-scoped classification store backed by an EntityOracle."""

    def __init__(self, oracle: EntityOracle, zone: str = ""):
        self.oracle = oracle
        self.zone = zone
        self.trusts: dict[int, TrackedEntity] = {}
        self.mobs: dict[int, TrackedEntity] = {}
        self.players: set[int] = set()

    def cached(self, entity_id: int) -> EntityClass | None:
        if entity_id in self.trusts:
            return EntityClass.TRUST
        if entity_id in self.mobs:
            return EntityClass.MOB
        if entity_id in self.players:
            return EntityClass.PLAYER
        return None

    def classify(self, entity_id: int) -> EntityClass:
        cls = self.cached(entity_id)
        if cls is not None:
            return cls

        info = self.oracle.get_entity(entity_id)
        if info is None:
            log.debug("Entity 0x%08x not resolvable yet", entity_id)
            return EntityClass.UNKNOWN

        if not info.is_npc:
            self.players.add(entity_id)
            return EntityClass.PLAYER

        if self.oracle.is_party_member(entity_id):
            self._register_trust(info, lazy=True)
            return EntityClass.TRUST

        self.mobs[entity_id] = TrackedEntity(
            entity_id=entity_id,
            name=info.name or "Unknown",
            entity_class=EntityClass.MOB,
            model_id=info.model_id,
            index=info.index,
            zone=self.zone,
        )
        return EntityClass.MOB

    def _register_trust(self, info: EntityInfo, lazy: bool = False) -> TrackedEntity:
        tracked = TrackedEntity(
            entity_id=info.entity_id,
            name=info.name or "Unknown",
            entity_class=EntityClass.TRUST,
            model_id=info.model_id,
            index=info.index,
        )
        self.trusts[info.entity_id] = tracked
        log.info(
            "Tracking trust%s: %s (ID: %d, Model: %d)",
            " (lazy)" if lazy else "", tracked.name, info.entity_id, info.model_id,
        )
        return tracked

    def scan_party(self) -> list[TrackedEntity]:
        """Register party NPCs as Trusts. Returns the newly registered ones."""
        found: list[TrackedEntity] = []
        for member in self.oracle.party_members():
            if not member.is_npc or self.cached(member.entity_id) is not None:
                continue
            found.append(self._register_trust(member))
        return found

    def tracked(self, entity_id: int) -> TrackedEntity | None:
        return self.trusts.get(entity_id) or self.mobs.get(entity_id)

    def profile_key(self, entity_id: int) -> ProfileKey | None:
        tracked = self.tracked(entity_id)
        return tracked.profile_key if tracked else None

    def zone_change(self, zone: str) -> None:
        """Enter a new zone session: every cached classification is dropped."""
        self.clear()
        self.zone = zone

    def clear(self) -> None:
        self.trusts.clear()
        self.mobs.clear()
        self.players.clear()
