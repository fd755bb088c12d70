"""Tests for capture loading and replay through the collector."""

import json

import pytest

from src.data.classifier import EntityInfo, ProfileKey
from src.data.collector import Collector
from src.data.replay import (
    ReplayOracle,
    load_capture,
    parse_capture,
    replay_capture,
)
from src.protocol.packet_types import ACTION_ID, ENTITY_UPDATE_ID
from tests.builders import build_entity_update, single_action_packet

ZEID_ID = 0x01000A11
HARE_ID = 0x0100213C


def _capture_dict() -> dict:
    return {
        "zone": "East Ronfaure",
        "entities": [
            {"entity_id": ZEID_ID, "name": "Zeid II", "is_npc": True,
             "model_id": 3001, "index": 1792, "in_party": True},
            {"entity_id": HARE_ID, "name": "Forest Hare", "is_npc": True,
             "model_id": 270, "index": 316, "position": [1.0, 0.0, 2.0]},
        ],
        "events": [
            {"type": "party", "entity_ids": [ZEID_ID]},
            {"type": "packet", "packet_id": ACTION_ID, "timestamp": 0.5,
             "payload_hex": single_action_packet(ZEID_ID, 3, 30, target_id=HARE_ID,
                                                 animation_id=63, magnitude=450).hex()},
            {"type": "packet", "packet_id": ENTITY_UPDATE_ID, "timestamp": 0.6,
             "payload_hex": build_entity_update(HARE_ID, index=316).hex()},
            {"type": "packet", "packet_id": ACTION_ID, "timestamp": 0.7, "injected": True,
             "payload_hex": single_action_packet(ZEID_ID, 3, 30, magnitude=999).hex()},
            {"type": "zone_change", "zone": "West Ronfaure", "timestamp": 1.0},
            {"type": "packet", "packet_id": ACTION_ID, "timestamp": 1.5,
             "payload_hex": single_action_packet(HARE_ID, 1, 0, animation_id=3).hex()},
        ],
    }


class TestParse:
    def test_entities_and_party(self):
        cap = parse_capture(_capture_dict())
        assert cap.zone == "East Ronfaure"
        assert cap.oracle.is_party_member(ZEID_ID)
        assert not cap.oracle.is_party_member(HARE_ID)
        assert cap.oracle.get_entity(HARE_ID).position == (1.0, 0.0, 2.0)

    def test_events(self):
        cap = parse_capture(_capture_dict())
        assert [e.type for e in cap.events] == [
            "party", "packet", "packet", "packet", "zone_change", "packet",
        ]
        assert cap.packet_count == 4
        assert cap.events[3].injected

    def test_unknown_event_type(self):
        data = _capture_dict()
        data["events"].append({"type": "teleport"})
        with pytest.raises(ValueError):
            parse_capture(data)

    def test_missing_field(self):
        with pytest.raises(ValueError):
            parse_capture({"entities": [{"name": "no id"}]})

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            parse_capture([])

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "capture.json"
        path.write_text(json.dumps(_capture_dict()))
        assert load_capture(path).packet_count == 4


class TestReplay:
    def test_replay_feeds_collector(self):
        cap = parse_capture(_capture_dict())
        collector = Collector(cap.oracle, exporter=lambda profiles, zones: 0)
        handled = replay_capture(cap, collector)

        assert handled == 4
        zeid = collector.aggregator.get(ProfileKey("Zeid II"))
        assert zeid.weapon_skills[30].count == 1
        assert zeid.weapon_skills[30].damage_samples == [450]

        entry = collector.occupancy.get("East Ronfaure", "Forest Hare")
        assert entry.positions == [(1.0, 0.0, 2.0)]

        assert collector.zone == "West Ronfaure"
        west = collector.aggregator.get(ProfileKey("Forest Hare", "West Ronfaure"))
        assert west.samples == 1

    def test_replay_sets_capture_zone(self):
        cap = parse_capture({"zone": "La Theine Plateau", "events": []})
        collector = Collector(cap.oracle, zone="Somewhere Else")
        assert replay_capture(cap, collector) == 0
        assert collector.zone == "La Theine Plateau"


class TestReplayOracle:
    def test_forget(self):
        oracle = ReplayOracle([EntityInfo(1, "A", is_npc=True)], party={1})
        assert [m.name for m in oracle.party_members()] == ["A"]
        oracle.forget(1)
        assert oracle.get_entity(1) is None
        assert oracle.party_members() == []
