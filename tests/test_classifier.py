"""Tests for trust / mob / player classification."""

from src.data.classifier import EntityClass, EntityClassifier, EntityInfo, ProfileKey
from tests.conftest import PLAYER_ID, RABBIT_B_ID, RABBIT_ID, SHANTOTTO_ID, ZEID_ID


class TestClassify:
    def test_party_npc_is_trust(self, oracle):
        c = EntityClassifier(oracle, zone="East Ronfaure")
        assert c.classify(ZEID_ID) is EntityClass.TRUST
        assert c.trusts[ZEID_ID].name == "Zeid II"
        assert c.trusts[ZEID_ID].model_id == 3001

    def test_other_npc_is_mob(self, oracle):
        c = EntityClassifier(oracle, zone="East Ronfaure")
        assert c.classify(RABBIT_ID) is EntityClass.MOB
        assert c.mobs[RABBIT_ID].zone == "East Ronfaure"

    def test_non_npc_is_player(self, oracle):
        c = EntityClassifier(oracle)
        assert c.classify(PLAYER_ID) is EntityClass.PLAYER
        assert PLAYER_ID in c.players

    def test_player_in_party_is_still_player(self, oracle):
        oracle.set_party([PLAYER_ID, ZEID_ID])
        c = EntityClassifier(oracle)
        assert c.classify(PLAYER_ID) is EntityClass.PLAYER

    def test_unresolvable_is_unknown_and_not_cached(self, oracle):
        c = EntityClassifier(oracle)
        assert c.classify(0x0DEADBEE) is EntityClass.UNKNOWN
        assert c.cached(0x0DEADBEE) is None

        oracle.add(EntityInfo(0x0DEADBEE, "Goblin Thug", is_npc=True))
        assert c.classify(0x0DEADBEE) is EntityClass.MOB

    def test_empty_name_falls_back(self, oracle):
        oracle.add(EntityInfo(0x01000999, "", is_npc=True))
        c = EntityClassifier(oracle)
        c.classify(0x01000999)
        assert c.mobs[0x01000999].name == "Unknown"


class TestStickiness:
    def test_mob_stays_mob_after_joining_party(self, oracle):
        c = EntityClassifier(oracle)
        assert c.classify(RABBIT_ID) is EntityClass.MOB
        oracle.set_party([RABBIT_ID])
        assert c.classify(RABBIT_ID) is EntityClass.MOB
        assert c.scan_party() == []
        assert RABBIT_ID not in c.trusts

    def test_cached_after_oracle_forgets(self, oracle):
        c = EntityClassifier(oracle)
        c.classify(ZEID_ID)
        oracle.forget(ZEID_ID)
        assert c.classify(ZEID_ID) is EntityClass.TRUST

    def test_zone_change_clears(self, oracle):
        c = EntityClassifier(oracle, zone="East Ronfaure")
        c.classify(ZEID_ID)
        c.classify(RABBIT_ID)
        c.classify(PLAYER_ID)
        c.zone_change("West Ronfaure")
        assert c.zone == "West Ronfaure"
        assert c.trusts == {}
        assert c.mobs == {}
        assert c.players == set()

        c.classify(RABBIT_ID)
        assert c.mobs[RABBIT_ID].zone == "West Ronfaure"


class TestScanParty:
    def test_registers_party_npcs(self, oracle):
        c = EntityClassifier(oracle)
        found = c.scan_party()
        assert {t.entity_id for t in found} == {ZEID_ID, SHANTOTTO_ID}
        assert c.cached(ZEID_ID) is EntityClass.TRUST

    def test_second_scan_finds_nothing_new(self, oracle):
        c = EntityClassifier(oracle)
        c.scan_party()
        assert c.scan_party() == []

    def test_skips_players(self, oracle):
        oracle.set_party([PLAYER_ID, ZEID_ID])
        c = EntityClassifier(oracle)
        assert [t.entity_id for t in c.scan_party()] == [ZEID_ID]


class TestProfileKeys:
    def test_trust_key_has_no_zone(self, oracle):
        c = EntityClassifier(oracle, zone="East Ronfaure")
        c.classify(ZEID_ID)
        assert c.profile_key(ZEID_ID) == ProfileKey("Zeid II")
        assert str(c.profile_key(ZEID_ID)) == "Zeid II"

    def test_same_named_mobs_share_a_key(self, oracle):
        c = EntityClassifier(oracle, zone="East Ronfaure")
        c.classify(RABBIT_ID)
        c.classify(RABBIT_B_ID)
        key = c.profile_key(RABBIT_ID)
        assert key == c.profile_key(RABBIT_B_ID)
        assert str(key) == "Forest Hare @ East Ronfaure"

    def test_player_has_no_key(self, oracle):
        c = EntityClassifier(oracle)
        c.classify(PLAYER_ID)
        assert c.profile_key(PLAYER_ID) is None
        assert c.tracked(PLAYER_ID) is None
