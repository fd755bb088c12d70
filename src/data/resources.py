"""
PacketParser — Action Name Lookup

Maps (category, param) to a display name for weapon skills, spells,
abilities and items. A handful of names are built in; a full table can be
loaded from a JSON export of the client's resource files:

  {"weapon_skills": {"30": "Aeolian Edge"}, "spells": {"1": "Cure"}, ...}

Missing names never fail: they resolve to a deterministic placeholder
such as "Unknown_WS_30".
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

from src.protocol.action_packet import ActionCategory

log = logging.getLogger(__name__)


class ResourceKind(Enum):
    WEAPON_SKILLS = "weapon_skills"
    SPELLS = "spells"
    JOB_ABILITIES = "job_abilities"
    ITEMS = "items"
    MONSTER_ABILITIES = "monster_abilities"


# category -> (resource table, placeholder tag)
_CATEGORY_RESOURCES: dict[ActionCategory, tuple[ResourceKind, str]] = {
    ActionCategory.WEAPON_SKILL: (ResourceKind.WEAPON_SKILLS, "WS"),
    ActionCategory.MAGIC: (ResourceKind.SPELLS, "Spell"),
    ActionCategory.ITEM: (ResourceKind.ITEMS, "Item"),
    ActionCategory.JOB_ABILITY: (ResourceKind.JOB_ABILITIES, "JA"),
    ActionCategory.DANCE: (ResourceKind.JOB_ABILITIES, "JA"),
    ActionCategory.RUNE: (ResourceKind.JOB_ABILITIES, "JA"),
    ActionCategory.MONSTER_ABILITY: (ResourceKind.MONSTER_ABILITIES, "MA"),
    ActionCategory.PET_ABILITY: (ResourceKind.MONSTER_ABILITIES, "Pet"),
}

# Partial tables; load a resource export for the rest.
BUILTIN_NAMES: dict[ResourceKind, dict[int, str]] = {
    ResourceKind.WEAPON_SKILLS: {
        16: "Wasp Sting",
        17: "Gust Slash",
        30: "Aeolian Edge",
        32: "Fast Blade",
        33: "Burning Blade",
        42: "Savage Blade",
    },
    ResourceKind.SPELLS: {
        1: "Cure",
        2: "Cure II",
        3: "Cure III",
        4: "Cure IV",
        23: "Dia",
        24: "Dia II",
        144: "Fire",
        145: "Fire II",
        149: "Blizzard",
    },
}


class NameResolver:
    """Resolves action params to names, with placeholder fallback."""

    def __init__(self, tables: dict[ResourceKind, dict[int, str]] | None = None):
        self._tables: dict[ResourceKind, dict[int, str]] = {
            kind: dict(BUILTIN_NAMES.get(kind, {})) for kind in ResourceKind
        }
        for kind, names in (tables or {}).items():
            self._tables[kind].update(names)

    @classmethod
    def from_json(cls, path: str | Path) -> NameResolver:
        """Load a resource export. Unknown sections are ignored."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        tables: dict[ResourceKind, dict[int, str]] = {}
        for kind in ResourceKind:
            raw = data.get(kind.value, {})
            tables[kind] = {int(k): v for k, v in raw.items()}
        log.info("Loaded resource names from %s (%d entries)",
                 path, sum(len(t) for t in tables.values()))
        return cls(tables)

    def add(self, kind: ResourceKind, resource_id: int, name: str) -> None:
        """Register a name at runtime."""
        self._tables[kind][resource_id] = name

    def is_known(self, category: int, param: int) -> bool:
        entry = _CATEGORY_RESOURCES.get(_as_category(category))
        return entry is not None and param in self._tables[entry[0]]

    def resolve(self, category: int, param: int) -> str:
        """Display name for an action, or "Unknown_<tag>_<param>"."""
        entry = _CATEGORY_RESOURCES.get(_as_category(category))
        if entry is None:
            return f"Unknown_{param}"
        kind, tag = entry
        return self._tables[kind].get(param) or f"Unknown_{tag}_{param}"


def _as_category(category: int) -> ActionCategory | None:
    try:
        return ActionCategory(category)
    except ValueError:
        return None
