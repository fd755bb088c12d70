"""
PacketParser Dashboard — Panel Widgets

Four panels for the TUI dashboard:
1. ActivityPanel — live log of recorded actions, drops and zone changes
2. ProfilePanel  — behavior profiles table + detail report
3. ZonePanel     — spawn occupancy per zone
4. SessionPanel  — collector counters overview
"""

from __future__ import annotations

import time

from rich.text import Text
from textual.message import Message
from textual.widgets import Static, RichLog, DataTable
from textual.containers import Vertical

from src.data.classifier import EntityClass
from src.data.collector import Collector


def _fmt_time(ts: float) -> str:
    return time.strftime("%H:%M:%S", time.localtime(ts))


def _fmt_elapsed(seconds: float) -> str:
    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    if h:
        return f"{h}h{m:02d}m{s:02d}s"
    return f"{m}m{s:02d}s"


_CLASS_COLORS: dict[str, str] = {
    EntityClass.TRUST.value: "green",
    EntityClass.MOB.value: "red",
    EntityClass.PLAYER.value: "blue",
    EntityClass.UNKNOWN.value: "bright_black",
}

_EVENT_COLORS: dict[str, str] = {
    "action": "white",
    "drop": "yellow",
    "zone_change": "magenta",
    "trust": "bold green",
    "save": "cyan",
}


# ---- 1. Activity Panel ----

class ActivityPanel(Vertical):
    """Live collector event log."""

    def compose(self):
        yield Static("", id="activity-counts")
        yield RichLog(highlight=True, markup=True, max_lines=500, id="activity-log")

    def log_event(self, event_type: str, data: dict, collector: Collector) -> None:
        log: RichLog = self.query_one("#activity-log", RichLog)
        counts: Static = self.query_one("#activity-counts", Static)

        color = _EVENT_COLORS.get(event_type, "white")
        text = Text()
        text.append(f"[{_fmt_time(time.time())}] ", style="bright_black")

        match event_type:
            case "action":
                cls = data.get("actor_class", "unknown")
                text.append(f"{cls:<7s}", style=f"bold {_CLASS_COLORS.get(cls, 'white')}")
                text.append(
                    f" 0x{data.get('actor_id', 0):08x} {data.get('category', '?')}"
                    f" param={data.get('param', 0)} targets={data.get('targets', 0)}",
                    style=color,
                )
            case "drop":
                text.append("DROP ", style=f"bold {color}")
                text.append(f"{data.get('reason')} {data.get('detail', '')}", style=color)
            case "zone_change":
                text.append(f"ZONE {data.get('from_zone') or '?'} -> {data.get('to_zone')}",
                            style=color)
            case "trust":
                text.append(f"TRUST {data.get('name')}", style=color)
            case "save":
                text.append(f"SAVED {data.get('profiles', 0)} profile(s)", style=color)
            case _:
                text.append(f"{event_type} {data}", style=color)

        log.write(text)

        n_actions = collector.packet_counts.get("ACTION", 0)
        n_dropped = sum(collector.dropped.values())
        counts.update(f" {n_actions} action packets | {n_dropped} dropped")

    def clear_log(self) -> None:
        log: RichLog = self.query_one("#activity-log", RichLog)
        log.clear()


# ---- 2. Profile Panel ----

class ProfileSelected(Message):
    """Posted when a profile row is highlighted."""

    def __init__(self, name: str) -> None:
        self.profile_name = name
        super().__init__()


class ProfilePanel(Vertical):
    """Profiles table with a detail report for the highlighted row."""

    def compose(self):
        table = DataTable(id="profile-table")
        table.cursor_type = "row"
        yield table
        yield Static("Select a profile to see details", id="profile-detail")

    def on_mount(self) -> None:
        table: DataTable = self.query_one("#profile-table", DataTable)
        table.add_columns("Name", "Zone", "Class", "Model", "Actions", "WS", "Spells", "JA", "Est. HP")

    def refresh_profiles(self, collector: Collector) -> None:
        table: DataTable = self.query_one("#profile-table", DataTable)
        table.clear()

        with collector._lock:
            profiles = sorted(
                collector.aggregator.profiles(),
                key=lambda p: p.samples,
                reverse=True,
            )
            rows = [
                (
                    p.name, p.zone or "-", p.entity_class.value, p.model_id, p.samples,
                    len(p.weapon_skills), len(p.spells), len(p.job_abilities),
                    p.estimated_hp() if p.damage_taken else None,
                )
                for p in profiles
            ]

        for name, zone, cls, model, samples, n_ws, n_sp, n_ja, hp in rows[:200]:
            color = _CLASS_COLORS.get(cls, "white")
            table.add_row(
                Text(name, style=f"bold {color}"),
                Text(zone, style="bright_black"),
                Text(cls, style=color),
                Text(str(model)),
                Text(str(samples) if samples else "waiting...",
                     style="" if samples else "dim"),
                Text(str(n_ws)),
                Text(str(n_sp)),
                Text(str(n_ja)),
                Text(str(hp) if hp is not None else "-"),
                key=f"{zone}|{name}",
            )

    def show_detail(self, name: str, collector: Collector) -> None:
        detail: Static = self.query_one("#profile-detail", Static)
        detail.update("\n".join(collector.detail_lines(name)))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key and event.row_key.value:
            _zone, _, name = event.row_key.value.partition("|")
            self.post_message(ProfileSelected(name))


# ---- 3. Zone Panel ----

class ZonePanel(Vertical):
    """Spawn occupancy table, one block per zone."""

    def compose(self):
        yield Static("", id="zone-summary")
        table = DataTable(id="zone-table")
        table.cursor_type = "row"
        yield table

    def on_mount(self) -> None:
        table: DataTable = self.query_one("#zone-table", DataTable)
        table.add_columns("Zone", "Name", "Model", "Sightings", "Positions")

    def refresh_zones(self, collector: Collector) -> None:
        table: DataTable = self.query_one("#zone-table", DataTable)
        summary: Static = self.query_one("#zone-summary", Static)
        table.clear()

        with collector._lock:
            zones = collector.occupancy.snapshot()
            current = collector.zone

        n_names = sum(len(entries) for entries in zones.values())
        summary.update(f" Zones: {len(zones)} | {n_names} mob names | current: {current or '-'}")

        for zone, entries in zones.items():
            zone_style = "bold" if zone == current else "bright_black"
            for e in entries:
                table.add_row(
                    Text(zone, style=zone_style),
                    Text(e["name"], style="red"),
                    Text(str(e["model_id"])),
                    Text(str(e["count"])),
                    Text(str(len(e["positions"]))),
                )


# ---- 4. Session Panel ----

class SessionPanel(Vertical):
    """Collector overview."""

    def compose(self):
        yield Static("Waiting for data...", id="session-stats")

    def refresh_session(self, collector: Collector, started: float) -> None:
        stats: Static = self.query_one("#session-stats", Static)
        elapsed = time.time() - started

        lines = [
            "PacketParser Dashboard",
            f"{'=' * 40}",
            "",
            f"Session Duration:  {_fmt_elapsed(elapsed)}",
            "",
        ]
        lines.extend(collector.status_lines())
        lines.append("")
        lines.append("Packet Types:")
        for name, count in sorted(collector.packet_counts.items(), key=lambda x: -x[1]):
            lines.append(f"  {name:<25s} {count:>6d}")

        stats.update("\n".join(lines))
