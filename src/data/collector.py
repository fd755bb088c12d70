"""
PacketParser — Collector

Event-driven pipeline the host client feeds. Everything runs inside the
host's callbacks, one packet at a time, in delivery order.

  incoming chunk 0x028 → decode → drop announcements → classify actor
                           ├── Trust / Mob → BehaviorAggregator
                           ├── Player      → DamageObservationTracker (per target)
                           └── Unknown     → dropped, retried next sighting
  incoming chunk 0x00E → classify → Mob → SpatialOccupancyTracker
  tick()               → party scan / autosave on a polling timer
  zone_change()        → classification caches cleared, profiles kept
"""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable

from src.protocol.action_packet import (
    ActionCategory,
    DecodedAction,
    DecodeFailure,
    decode_action_packet,
)
from src.protocol.packet_types import ACTION_ID, ENTITY_UPDATE_ID, decode_entity_update
from src.data.aggregator import BehaviorAggregator
from src.data.classifier import EntityClass, EntityClassifier, EntityOracle
from src.data.export import write_snapshot
from src.data.occupancy import (
    MIN_POSITION_SPACING_SQ,
    POSITION_CAP,
    DamageObservationTracker,
    Position,
    SpatialOccupancyTracker,
)
from src.data.profiles import BehaviorProfile, Bucket, DAMAGE_SAMPLE_CAP, DAMAGE_TAKEN_CAP
from src.data.resources import NameResolver

log = logging.getLogger(__name__)

# Categories whose per-target magnitude is damage dealt
DAMAGE_CATEGORIES = frozenset({
    ActionCategory.MELEE,
    ActionCategory.RANGED,
    ActionCategory.WEAPON_SKILL,
    ActionCategory.MAGIC,
})


@dataclass
class CollectorConfig:
    """Collector behavior configuration."""
    # Seconds between automatic snapshot writes
    auto_save_interval: float = 60.0
    # Seconds between proactive party scans for trusts
    party_scan_interval: float = 5.0
    # Where snapshots are written
    output_dir: str = "data"
    # Reservoir caps
    damage_sample_cap: int = DAMAGE_SAMPLE_CAP
    damage_taken_cap: int = DAMAGE_TAKEN_CAP
    position_cap: int = POSITION_CAP
    # Minimum squared ground distance between stored positions
    min_position_spacing_sq: float = MIN_POSITION_SPACING_SQ


# Callback type: called with (event_type, data_dict)
# event_type: "action", "presence", "zone_change", "trust", "save", "drop"
UpdateCallback = Callable[[str, dict], None]

# Exporter: (profiles, zone tables) -> number of profiles written
Exporter = Callable[[list[BehaviorProfile], dict[str, list[dict]]], int]


class Collector:
    """Owns the classifier, aggregator and trackers for one client session."""

    def __init__(
        self,
        oracle: EntityOracle,
        resolver: NameResolver | None = None,
        config: CollectorConfig | None = None,
        exporter: Exporter | None = None,
        zone: str = "",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CollectorConfig()
        self.classifier = EntityClassifier(oracle, zone=zone)
        self.aggregator = BehaviorAggregator(
            resolver=resolver,
            damage_sample_cap=self.config.damage_sample_cap,
            damage_taken_cap=self.config.damage_taken_cap,
        )
        self.occupancy = SpatialOccupancyTracker(
            position_cap=self.config.position_cap,
            min_spacing_sq=self.config.min_position_spacing_sq,
        )
        self.damage = DamageObservationTracker(self.classifier, self.aggregator)
        self._exporter = exporter or self._write_to_output_dir
        self._clock = clock

        self.tracking: bool = True
        self.packet_counts: defaultdict[str, int] = defaultdict(int)
        self.dropped: defaultdict[str, int] = defaultdict(int)
        self._last_party_scan: float = 0.0
        self._last_save: float = clock()
        self._lock = threading.Lock()
        self._callbacks: list[UpdateCallback] = []

    @property
    def zone(self) -> str:
        return self.classifier.zone

    # ---- Subscribers ----

    def on_update(self, callback: UpdateCallback) -> None:
        """Subscribe to collector events."""
        self._callbacks.append(callback)

    def _notify(self, event_type: str, data: dict) -> None:
        for cb in self._callbacks:
            try:
                cb(event_type, data)
            except Exception:
                log.exception("Update callback failed for %r", event_type)

    # ---- Packet entry points ----

    def handle_packet(self, packet_id: int, data: bytes, injected: bool = False):
        """Entry point for every incoming chunk from the host."""
        if not self.tracking or injected:
            return None
        if packet_id == ACTION_ID:
            return self.handle_action(data)
        if packet_id == ENTITY_UPDATE_ID:
            return self.handle_entity_update(data)
        return None

    def handle_action(self, data: bytes) -> DecodedAction | DecodeFailure | None:
        """Decode an action packet and fold it into state.

        Returns the decode result. A DecodeFailure leaves all state untouched.
        """
        act = decode_action_packet(data)

        with self._lock:
            self.packet_counts["ACTION"] += 1
            if not act:
                self.dropped[act.reason] += 1
                log.debug("Dropped action packet: %s (%s)", act.reason, act.detail)
            elif act.is_announcement:
                self.packet_counts["ANNOUNCEMENT"] += 1
                return act
            else:
                actor_class = self._route_action(act)

        if not act:
            self._notify("drop", {"reason": act.reason, "detail": act.detail})
            return act

        self._notify("action", {
            "actor_id": act.actor_id,
            "actor_class": actor_class.value,
            "category": act.action_category.label,
            "param": act.param,
            "targets": len(act.targets),
        })
        return act

    def _route_action(self, act: DecodedAction) -> EntityClass:
        """Must be called under _lock."""
        actor_class = self.classifier.classify(act.actor_id)

        match actor_class:
            case EntityClass.TRUST | EntityClass.MOB:
                tracked = self.classifier.tracked(act.actor_id)
                prof = self.aggregator.profile(tracked.profile_key, actor_class, tracked.model_id)
                for _target, action in act.iter_actions():
                    self.aggregator.record(
                        prof.key,
                        act.category,
                        act.param,
                        action.animation_id,
                        action.magnitude,
                        action.add_effect,
                    )
            case EntityClass.PLAYER:
                if act.category in DAMAGE_CATEGORIES:
                    for target, action in act.iter_actions():
                        self.damage.observe_damage(target.target_id, action.magnitude)
            case EntityClass.UNKNOWN:
                self.dropped["unknown_actor"] += 1

        return actor_class

    def handle_entity_update(self, data: bytes) -> dict | None:
        update = decode_entity_update(data)
        if update is None:
            with self._lock:
                self.dropped["entity_update_short"] += 1
            return None
        return self.observe_presence(update.entity_id, update.position)

    def observe_presence(self, entity_id: int, position: Position | None = None) -> dict | None:
        """Record a sighting of an entity for the current zone's spawn table.

        Only Mob-classified entities are recorded. When the packet carried no
        position, the client's current view of the entity is used instead.
        """
        with self._lock:
            self.packet_counts["ENTITY_UPDATE"] += 1
            if self.classifier.classify(entity_id) is not EntityClass.MOB:
                return None
            tracked = self.classifier.tracked(entity_id)
            if position is None:
                info = self.classifier.oracle.get_entity(entity_id)
                position = info.position if info else None
            entry = self.occupancy.observe(self.zone, tracked.name, tracked.model_id, position)
            data = {
                "zone": self.zone,
                "name": entry.name,
                "count": entry.count,
                "positions": len(entry.positions),
            }

        self._notify("presence", data)
        return data

    # ---- Periodic ----

    def tick(self, now: float | None = None) -> list[str]:
        """Polling timer, called from the host's frame/tick callback.

        Each job fires at most once per call. Returns the jobs that ran.
        """
        if not self.tracking:
            return []
        now = self._clock() if now is None else now
        ran: list[str] = []

        if now - self._last_party_scan > self.config.party_scan_interval:
            self.scan_party()
            self._last_party_scan = now
            ran.append("party_scan")

        if now - self._last_save > self.config.auto_save_interval:
            if self.has_data():
                try:
                    self.save()
                except OSError:
                    log.exception("Autosave failed")
                ran.append("autosave")
            self._last_save = now

        return ran

    def scan_party(self) -> list[str]:
        """Register trusts currently in the party. Returns new trust names."""
        with self._lock:
            found = self.classifier.scan_party()
            for tracked in found:
                self.aggregator.profile(tracked.profile_key, EntityClass.TRUST, tracked.model_id)
        names = [t.name for t in found]
        for name in names:
            self._notify("trust", {"name": name})
        return names

    # ---- Lifecycle ----

    def start(self) -> None:
        self.tracking = True
        self.scan_party()
        log.info("Tracking started.")

    def stop(self) -> None:
        self.tracking = False
        self.save()
        log.info("Tracking stopped. Data saved.")

    def login(self) -> None:
        log.info("Player logged in. Tracking is %s.", "ON" if self.tracking else "OFF")

    def logout(self) -> None:
        if self.has_data():
            self.save()
        with self._lock:
            self.classifier.clear()
        log.info("Logged out. Data saved.")

    def zone_change(self, zone: str) -> None:
        with self._lock:
            old = self.classifier.zone
            self.classifier.zone_change(zone)
        log.info("Zone changed to %s. Entity IDs cleared; will re-detect automatically.", zone)
        self._notify("zone_change", {"from_zone": old, "to_zone": zone})

    def reset(self) -> None:
        """Drop every profile, occupancy table and cached classification."""
        with self._lock:
            self.aggregator.reset()
            self.occupancy.reset()
            self.classifier.clear()
            self.dropped.clear()
        log.info("All collected data cleared.")

    # ---- Output ----

    def has_data(self) -> bool:
        """True if any profile has recorded actions or damage taken."""
        with self._lock:
            return any(p.has_data for p in self.aggregator.profiles())

    def save(self) -> int:
        """Hand current state to the exporter. Returns profiles written."""
        with self._lock:
            profiles = self.aggregator.profiles()
            zones = self.occupancy.snapshot()
            try:
                written = self._exporter(profiles, zones)
            except OSError as e:
                log.error("Failed to save profiles: %s", e)
                raise
            self._last_save = self._clock()
        self._notify("save", {"profiles": written})
        return written

    def _write_to_output_dir(self, profiles: list[BehaviorProfile], zones: dict) -> int:
        return write_snapshot(self.config.output_dir, profiles, zones)

    def snapshot(self) -> list[dict]:
        """Serializable view of every profile."""
        with self._lock:
            return [p.snapshot() for p in self.aggregator.profiles()]

    def status_lines(self) -> list[str]:
        with self._lock:
            lines = [f"Tracking: {'ON' if self.tracking else 'OFF'}"]
            lines.append(f"Zone: {self.zone or '?'}")
            lines.append(f"Active trusts: {len(self.classifier.trusts)}")
            for eid, t in self.classifier.trusts.items():
                lines.append(f"  {t.name} (Entity: {eid}, Model: {t.model_id})")
            lines.append(f"Profiles with data: {len(self.aggregator)}")
            if self.dropped:
                drops = ", ".join(f"{k}={v}" for k, v in sorted(self.dropped.items()))
                lines.append(f"Dropped: {drops}")
        return lines

    def summary_lines(self) -> list[str]:
        with self._lock:
            profiles = sorted(self.aggregator.profiles(), key=lambda p: (p.name, p.zone or ""))
            if not profiles:
                return ["No data collected yet. Summon some trusts and fight!"]

            lines = ["=== Profile Summary ===", f"Profiles tracked: {len(profiles)}", ""]
            for p in profiles:
                parts = []
                if p.weapon_skills:
                    parts.append(f"{len(p.weapon_skills)} WS")
                if p.spells:
                    parts.append(f"{len(p.spells)} spells")
                if p.job_abilities:
                    parts.append(f"{len(p.job_abilities)} JA")
                detail = f" [{', '.join(parts)}]" if parts else ""
                if p.samples > 0:
                    status = f"{p.samples} actions"
                elif p.damage_taken:
                    status = f"{len(p.damage_taken)} hits taken, HP >= {p.estimated_hp()}"
                else:
                    status = "waiting..."
                lines.append(f"  {p.key}: {status}{detail}")
            lines.append("======================")
        return lines

    def detail_lines(self, name: str) -> list[str]:
        with self._lock:
            prof = self.aggregator.find(name)
            if prof is None:
                return [f"No data for: {name}"]
            return format_detail(prof)


def format_detail(prof: BehaviorProfile) -> list[str]:
    lines = [
        f"=== {prof.key} ===",
        f"Class: {prof.entity_class.value}",
        f"Model ID: {prof.model_id}",
        f"Total actions: {prof.samples}",
        "",
    ]
    sections = (
        ("Weapon Skills", prof.weapon_skills),
        ("Spells", prof.spells),
        ("Job Abilities", prof.job_abilities),
    )
    for title, entries in sections:
        if not entries:
            continue
        lines.append(f"{title}:")
        for e in entries.values():
            lines.append(f"  {e.resolved_name} [ID:{e.id} Anim:0x{e.animation_id:03X} x{e.count}]")

    melee = prof.animations[Bucket.MELEE]
    if melee:
        lines.append("Melee Animations:")
        for a in melee.values():
            lines.append(f"  Anim:0x{a.animation_id:03X} x{a.count}")

    if prof.add_effects:
        lines.append("Additional Effects:")
        for ae in prof.add_effects.values():
            lines.append(
                f"  Anim:0x{ae.animation_id:03X} Param:{ae.magnitude} Msg:{ae.message_id}"
                f" x{ae.count} (from {ae.source_category})"
            )

    if prof.damage_taken:
        lines.append(f"Damage taken: {len(prof.damage_taken)} hits, "
                     f"estimated HP >= {prof.estimated_hp()}")

    lines.append("==========================")
    return lines
