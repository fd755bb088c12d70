"""Shared fixtures for PacketParser tests."""

import pytest

from src.data.classifier import EntityInfo
from src.data.collector import Collector, CollectorConfig
from src.data.replay import ReplayOracle

ZEID_ID = 0x01000A11
SHANTOTTO_ID = 0x01000A12
RABBIT_ID = 0x0100213C
RABBIT_B_ID = 0x0100213D
PLAYER_ID = 0x00012345


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def oracle() -> ReplayOracle:
    """Party of two trusts, two same-named mobs, one player."""
    o = ReplayOracle()
    o.add(EntityInfo(ZEID_ID, "Zeid II", is_npc=True, model_id=3001, index=1792), in_party=True)
    o.add(EntityInfo(SHANTOTTO_ID, "Shantotto", is_npc=True, model_id=3002, index=1793), in_party=True)
    o.add(EntityInfo(RABBIT_ID, "Forest Hare", is_npc=True, model_id=270, index=316,
                     position=(10.0, 0.5, 20.0)))
    o.add(EntityInfo(RABBIT_B_ID, "Forest Hare", is_npc=True, model_id=270, index=317))
    o.add(EntityInfo(PLAYER_ID, "Kaja", is_npc=False))
    return o


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def saved() -> list:
    """Captures exporter calls instead of writing files."""
    return []


@pytest.fixture
def collector(oracle, clock, saved) -> Collector:
    def exporter(profiles, zones):
        with_data = [p for p in profiles if p.has_data]
        saved.append(([p.snapshot() for p in with_data], zones))
        return len(with_data)

    return Collector(
        oracle,
        config=CollectorConfig(auto_save_interval=60.0, party_scan_interval=5.0),
        exporter=exporter,
        zone="East Ronfaure",
        clock=clock,
    )
