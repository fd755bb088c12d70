"""
PacketParser — Capture Replay

Feeds a recorded capture through a Collector. A capture holds the packets
plus the entity table the client exposed while recording, so the
classifier can run offline against a ReplayOracle.

Capture file (JSON):
  {
    "zone": "East Ronfaure",
    "entities": [
      {"entity_id": 17, "name": "Zeid II", "is_npc": true, "model_id": 3001,
       "index": 1792, "in_party": true, "position": [1.0, 0.0, 2.0]}
    ],
    "events": [
      {"type": "packet", "packet_id": 40, "payload_hex": "...", "timestamp": 0.5},
      {"type": "zone_change", "zone": "West Ronfaure"},
      {"type": "party", "entity_ids": [17]}
    ]
  }

Usage:
  python -m src.data.replay capture.json
  python -m src.data.replay capture.json --save data/ --detail "Zeid II"
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from src.data.classifier import EntityInfo
from src.data.collector import Collector

log = logging.getLogger(__name__)


class ReplayOracle:
    """EntityOracle answering from a recorded entity table."""

    def __init__(self, entities: list[EntityInfo] | None = None, party: set[int] | None = None):
        self.entities: dict[int, EntityInfo] = {e.entity_id: e for e in entities or []}
        self.party: set[int] = set(party or ())

    def add(self, info: EntityInfo, in_party: bool = False) -> None:
        self.entities[info.entity_id] = info
        if in_party:
            self.party.add(info.entity_id)

    def forget(self, entity_id: int) -> None:
        """Make an entity unresolvable (e.g. it left render range)."""
        self.entities.pop(entity_id, None)

    def set_party(self, entity_ids: list[int]) -> None:
        self.party = set(entity_ids)

    def get_entity(self, entity_id: int) -> EntityInfo | None:
        return self.entities.get(entity_id)

    def is_party_member(self, entity_id: int) -> bool:
        return entity_id in self.party

    def party_members(self) -> list[EntityInfo]:
        return [self.entities[eid] for eid in sorted(self.party) if eid in self.entities]


@dataclass
class CaptureEvent:
    type: str  # "packet", "zone_change", "party"
    timestamp: float = 0.0
    packet_id: int = 0
    payload: bytes = b""
    injected: bool = False
    zone: str = ""
    entity_ids: list[int] = field(default_factory=list)


@dataclass
class Capture:
    zone: str
    oracle: ReplayOracle
    events: list[CaptureEvent]

    @property
    def packet_count(self) -> int:
        return sum(1 for e in self.events if e.type == "packet")


def _parse_entity(raw: dict) -> tuple[EntityInfo, bool]:
    position = raw.get("position")
    info = EntityInfo(
        entity_id=int(raw["entity_id"]),
        name=raw.get("name", ""),
        is_npc=bool(raw.get("is_npc", False)),
        model_id=int(raw.get("model_id", 0)),
        index=int(raw.get("index", 0)),
        position=tuple(position) if position else None,
    )
    return info, bool(raw.get("in_party", False))


def _parse_event(raw: dict) -> CaptureEvent:
    etype = raw.get("type", "packet")
    match etype:
        case "packet":
            return CaptureEvent(
                type=etype,
                timestamp=float(raw.get("timestamp", 0.0)),
                packet_id=int(raw["packet_id"]),
                payload=bytes.fromhex(raw.get("payload_hex", "")),
                injected=bool(raw.get("injected", False)),
            )
        case "zone_change":
            return CaptureEvent(type=etype, timestamp=float(raw.get("timestamp", 0.0)),
                                zone=raw["zone"])
        case "party":
            return CaptureEvent(type=etype, timestamp=float(raw.get("timestamp", 0.0)),
                                entity_ids=[int(e) for e in raw.get("entity_ids", [])])
        case _:
            raise ValueError(f"unknown capture event type: {etype!r}")


def parse_capture(data: dict) -> Capture:
    """Build a Capture from decoded JSON. Raises ValueError on bad structure."""
    if not isinstance(data, dict):
        raise ValueError("capture must be a JSON object")
    try:
        oracle = ReplayOracle()
        for raw in data.get("entities", []):
            info, in_party = _parse_entity(raw)
            oracle.add(info, in_party=in_party)
        events = [_parse_event(raw) for raw in data.get("events", [])]
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed capture: {e}") from e
    return Capture(zone=data.get("zone", ""), oracle=oracle, events=events)


def load_capture(path: str | Path) -> Capture:
    path = Path(path)
    return parse_capture(json.loads(path.read_text(encoding="utf-8")))


def replay_event(collector: Collector, oracle: ReplayOracle, event: CaptureEvent):
    """Apply one capture event. Returns the collector's result for packets."""
    match event.type:
        case "packet":
            return collector.handle_packet(event.packet_id, event.payload, injected=event.injected)
        case "zone_change":
            collector.zone_change(event.zone)
        case "party":
            oracle.set_party(event.entity_ids)
            collector.scan_party()
    return None


def replay_capture(capture: Capture, collector: Collector) -> int:
    """Feed every event of a capture in order. Returns packets handled."""
    if capture.zone and collector.zone != capture.zone:
        collector.zone_change(capture.zone)
    handled = 0
    for event in capture.events:
        replay_event(collector, capture.oracle, event)
        if event.type == "packet":
            handled += 1
    log.info("Replayed %d packets", handled)
    return handled


# --- CLI entry point ---

if __name__ == "__main__":
    import argparse

    from src.data.collector import CollectorConfig
    from src.data.resources import NameResolver

    parser = argparse.ArgumentParser(description="Replay a PacketParser capture")
    parser.add_argument("capture", help="Capture JSON file")
    parser.add_argument("--save", help="Write profile snapshots to this directory")
    parser.add_argument("--detail", help="Print the detail report for one profile")
    parser.add_argument("--resources", help="Resource name export (JSON)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    cap = load_capture(args.capture)
    resolver = NameResolver.from_json(args.resources) if args.resources else None
    config = CollectorConfig(output_dir=args.save or "data")
    coll = Collector(cap.oracle, resolver=resolver, config=config, zone=cap.zone)
    replay_capture(cap, coll)

    for line in coll.summary_lines():
        print(line)
    if args.detail:
        for line in coll.detail_lines(args.detail):
            print(line)
    if args.save:
        coll.save()
