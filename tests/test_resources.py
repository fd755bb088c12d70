"""Tests for action name resolution."""

import json

from src.data.resources import NameResolver, ResourceKind


def test_builtin_weapon_skill():
    assert NameResolver().resolve(3, 30) == "Aeolian Edge"


def test_builtin_spell():
    assert NameResolver().resolve(4, 1) == "Cure"


def test_placeholders():
    r = NameResolver()
    assert r.resolve(3, 9999) == "Unknown_WS_9999"
    assert r.resolve(4, 9999) == "Unknown_Spell_9999"
    assert r.resolve(6, 7) == "Unknown_JA_7"
    assert r.resolve(11, 512) == "Unknown_MA_512"
    assert r.resolve(13, 8) == "Unknown_Pet_8"


def test_category_without_table():
    assert NameResolver().resolve(1, 0) == "Unknown_0"


def test_placeholder_is_deterministic():
    assert NameResolver().resolve(3, 4242) == NameResolver().resolve(3, 4242)


def test_dance_and_rune_share_ability_table():
    r = NameResolver({ResourceKind.JOB_ABILITIES: {210: "Curing Waltz"}})
    assert r.resolve(14, 210) == "Curing Waltz"
    assert r.resolve(15, 210) == "Curing Waltz"


def test_add_and_is_known():
    r = NameResolver()
    assert not r.is_known(11, 512)
    r.add(ResourceKind.MONSTER_ABILITIES, 512, "Foot Kick")
    assert r.is_known(11, 512)
    assert r.resolve(11, 512) == "Foot Kick"


def test_tables_override_builtins():
    r = NameResolver({ResourceKind.WEAPON_SKILLS: {30: "Renamed"}})
    assert r.resolve(3, 30) == "Renamed"
    assert NameResolver().resolve(3, 30) == "Aeolian Edge"


def test_from_json(tmp_path):
    path = tmp_path / "names.json"
    path.write_text(json.dumps({
        "weapon_skills": {"200": "Chant du Cygne"},
        "spells": {"900": "Test Spell"},
        "something_else": {"1": "ignored"},
    }))
    r = NameResolver.from_json(path)
    assert r.resolve(3, 200) == "Chant du Cygne"
    assert r.resolve(4, 900) == "Test Spell"
    assert r.resolve(3, 30) == "Aeolian Edge"
