"""
PacketParser — Spawn Occupancy & Damage Observation

SpatialOccupancyTracker: per zone, per mob name — how often it was seen,
its model id, and a sparse sketch of where (at most 20 points, each at
least 5 yalms from every other on the ground plane).

DamageObservationTracker: damage landed on mobs is logged against the
mob's profile, never the dealer's, so HP can be estimated from the sum.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from src.data.aggregator import BehaviorAggregator
from src.data.classifier import EntityClass, EntityClassifier

log = logging.getLogger(__name__)

POSITION_CAP = 20
MIN_POSITION_SPACING_SQ = 25.0

Position = tuple[float, float, float]


def truncate_position(position: Position) -> Position:
    """Truncate each coordinate (toward zero) to two decimals.

    The scaled value is rounded to 6 places first so that binary
    representation error (1.15 * 100 == 114.999...) does not drop a hundredth.
    """
    return tuple(math.trunc(round(c * 100, 6)) / 100 for c in position)


@dataclass
class ZoneEntityEntry:
    name: str
    model_id: int = 0
    count: int = 0
    positions: list[Position] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "model_id": self.model_id,
            "count": self.count,
            "positions": [list(p) for p in self.positions],
        }


class SpatialOccupancyTracker:
    """Deduplicated per-zone sightings used to rebuild spawn tables."""

    def __init__(
        self,
        position_cap: int = POSITION_CAP,
        min_spacing_sq: float = MIN_POSITION_SPACING_SQ,
    ):
        self.position_cap = position_cap
        self.min_spacing_sq = min_spacing_sq
        self._zones: dict[str, dict[str, ZoneEntityEntry]] = {}

    def observe(
        self,
        zone: str,
        name: str,
        model_id: int,
        position: Position | None = None,
    ) -> ZoneEntityEntry:
        entries = self._zones.setdefault(zone, {})
        entry = entries.get(name)
        if entry is None:
            entry = entries[name] = ZoneEntityEntry(name=name, model_id=model_id)
        entry.count += 1

        if position is not None and len(entry.positions) < self.position_cap:
            pos = truncate_position(position)
            if self._far_enough(pos, entry.positions):
                entry.positions.append(pos)
        return entry

    def _far_enough(self, pos: Position, existing: list[Position]) -> bool:
        # Ground plane only: y is the vertical axis.
        for other in existing:
            dx = pos[0] - other[0]
            dz = pos[2] - other[2]
            if dx * dx + dz * dz < self.min_spacing_sq:
                return False
        return True

    def zones(self) -> list[str]:
        return sorted(self._zones)

    def entries(self, zone: str) -> list[ZoneEntityEntry]:
        """Entries for a zone, most-seen first."""
        return sorted(self._zones.get(zone, {}).values(), key=lambda e: e.count, reverse=True)

    def get(self, zone: str, name: str) -> ZoneEntityEntry | None:
        return self._zones.get(zone, {}).get(name)

    def snapshot(self) -> dict[str, list[dict]]:
        return {zone: [e.to_dict() for e in self.entries(zone)] for zone in self.zones()}

    def reset(self) -> None:
        self._zones.clear()


class DamageObservationTracker:
    """Attributes observed damage to the Mob that took it."""

    def __init__(self, classifier: EntityClassifier, aggregator: BehaviorAggregator):
        self.classifier = classifier
        self.aggregator = aggregator

    def observe_damage(self, target_id: int, magnitude: int) -> bool:
        """Log `magnitude` against a mob target. True if a sample was kept."""
        if magnitude <= 0:
            return False
        if self.classifier.classify(target_id) is not EntityClass.MOB:
            return False

        tracked = self.classifier.tracked(target_id)
        prof = self.aggregator.profile(tracked.profile_key, EntityClass.MOB, tracked.model_id)
        return self.aggregator.record_damage_taken(prof.key, magnitude)
