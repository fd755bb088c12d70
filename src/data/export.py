"""
PacketParser — JSON Snapshot Writer

Writes the collected profiles for side-by-side comparison:

  <out_dir>/<Name>.json           one file per profile with data
  <out_dir>/<Zone>__<Name>.json   mob profiles
  <out_dir>/_summary.json         index of all profiles, sorted by name
  <out_dir>/_zones.json           spawn occupancy tables

Write-only. Nothing here is ever read back into a collector.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from src.data.profiles import BehaviorProfile

log = logging.getLogger(__name__)


def sanitize_filename(name: str) -> str:
    """Keep word characters, spaces and dashes; spaces become underscores."""
    cleaned = re.sub(r"[^\w\s-]", "", name)
    return re.sub(r"\s+", "_", cleaned.strip()) or "unnamed"


def profile_filename(prof: BehaviorProfile) -> str:
    stem = sanitize_filename(prof.name)
    if prof.zone:
        stem = f"{sanitize_filename(prof.zone)}__{stem}"
    return f"{stem}.json"


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_summary(profiles: list[BehaviorProfile]) -> dict:
    entries = [
        {
            "name": p.name,
            "zone": p.zone,
            "class": p.entity_class.value,
            "model_id": p.model_id,
            "samples": p.samples,
            "weapon_skills": len(p.weapon_skills),
            "spells": len(p.spells),
            "job_abilities": len(p.job_abilities),
            "damage_taken": len(p.damage_taken),
            "estimated_hp": p.estimated_hp() if p.damage_taken else None,
        }
        for p in profiles
    ]
    entries.sort(key=lambda e: (e["name"], e["zone"] or ""))
    return {"saved_at": _utc_now(), "profiles": entries}


def write_snapshot(
    out_dir: str | Path,
    profiles: list[BehaviorProfile],
    zones: dict[str, list[dict]] | None = None,
) -> int:
    """Write profile files plus the summary index. Returns profiles written.

    Raises OSError if the directory or a file can't be written.
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    written = 0
    saved_at = _utc_now()
    for prof in profiles:
        if not prof.has_data:
            continue
        data = prof.snapshot()
        data["captured_at"] = saved_at
        path = out / profile_filename(prof)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        written += 1

    summary = build_summary(profiles)
    (out / "_summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")

    if zones is not None:
        (out / "_zones.json").write_text(json.dumps(zones, indent=2), encoding="utf-8")

    if written:
        log.info("Saved data for %d profile(s) to %s", written, out)
    return written
