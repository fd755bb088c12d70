"""
PacketParser Dashboard — Textual TUI App

Terminal dashboard that replays a recorded capture through a Collector and
shows what it learns: recorded actions, behavior profiles, spawn tables.

The replay runs in a worker thread; the Collector's lock keeps the UI's
reads consistent with the packets being folded in.

Replay speed controls:
  [ / ] — decrease / increase speed (1x, 2x, 5x, 10x, MAX)
  x     — save profile snapshots to the output directory
"""

from __future__ import annotations

import threading
import time
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Static, TabbedContent, TabPane
from textual.timer import Timer

from src.data.collector import Collector, CollectorConfig
from src.data.replay import Capture, load_capture, replay_event
from src.data.resources import NameResolver
from src.dashboard.widgets import (
    ActivityPanel,
    ProfilePanel,
    ProfileSelected,
    ZonePanel,
    SessionPanel,
)

# Replay speed presets: (label, multiplier)
# multiplier=0 means unbounded (no sleep)
SPEED_PRESETS = [
    ("1x", 1.0),
    ("2x", 2.0),
    ("5x", 5.0),
    ("10x", 10.0),
    ("MAX", 0.0),
]


class ProfileDashboard(App):
    """PacketParser replay dashboard."""

    CSS_PATH = "styles.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("a", "switch_tab('activity')", "Activity", show=True),
        Binding("f", "switch_tab('profiles')", "Profiles", show=True),
        Binding("z", "switch_tab('zones')", "Zones", show=True),
        Binding("s", "switch_tab('session')", "Session", show=True),
        Binding("p", "toggle_pause", "Pause"),
        Binding("c", "clear_log", "Clear"),
        Binding("left_square_bracket", "speed_down", "Slower"),
        Binding("right_square_bracket", "speed_up", "Faster"),
        Binding("x", "save", "Save"),
    ]

    def __init__(
        self,
        replay_path: str,
        config: CollectorConfig | None = None,
        resolver: NameResolver | None = None,
    ):
        super().__init__()
        self._replay_path = replay_path
        self._config = config or CollectorConfig()
        self._resolver = resolver
        self.collector: Collector | None = None
        self._started = time.time()
        self._paused = False
        self._refresh_timer: Timer | None = None
        self._speed_index = 0
        self._replay_done = False
        self._selected: str | None = None

    @property
    def _speed_label(self) -> str:
        return SPEED_PRESETS[self._speed_index][0]

    @property
    def _speed_mult(self) -> float:
        return SPEED_PRESETS[self._speed_index][1]

    def compose(self) -> ComposeResult:
        with Horizontal(id="header-bar"):
            yield Static("PacketParser", id="status-label")
            yield Static("", id="count-label")
        with TabbedContent(id="tabs"):
            with TabPane("Activity", id="activity"):
                yield ActivityPanel()
            with TabPane("Profiles", id="profiles"):
                yield ProfilePanel()
            with TabPane("Zones", id="zones"):
                yield ZonePanel()
            with TabPane("Session", id="session"):
                yield SessionPanel()
        yield Footer()

    def on_mount(self) -> None:
        path = Path(self._replay_path)
        if not path.exists():
            self.notify(f"File not found: {path}", severity="error")
            return

        try:
            capture = load_capture(path)
        except ValueError as e:
            self.notify(f"Bad capture file: {e}", severity="error")
            return

        self.collector = Collector(
            capture.oracle,
            resolver=self._resolver,
            config=self._config,
            zone=capture.zone,
        )
        self.collector.on_update(self._on_collector_event)

        self._update_header()
        self._refresh_timer = self.set_interval(1.0, self._periodic_refresh)

        thread = threading.Thread(target=self._run_replay, args=(capture,), daemon=True)
        thread.start()

    def _update_header(self) -> None:
        status: Static = self.query_one("#status-label", Static)
        count_label: Static = self.query_one("#count-label", Static)

        done_tag = " DONE" if self._replay_done else ""
        paused = " [PAUSED]" if self._paused else ""
        zone = self.collector.zone if self.collector else ""
        status.update(
            f"PacketParser | REPLAY [{self._speed_label}]{done_tag}{paused}"
            + (f" | {zone}" if zone else "")
        )

        if self.collector:
            n_profiles = len(self.collector.aggregator)
            n_actions = self.collector.packet_counts.get("ACTION", 0)
            count_label.update(f"{n_actions} actions | {n_profiles} profiles")

    # ---- Replay ----

    def _run_replay(self, capture: Capture) -> None:
        collector = self.collector
        self.call_from_thread(
            self.notify,
            f"Replaying {capture.packet_count} packets from {Path(self._replay_path).name}",
        )

        events = capture.events
        for i, event in enumerate(events):
            while self._paused:
                time.sleep(0.1)

            replay_event(collector, capture.oracle, event)
            collector.tick()

            if i + 1 < len(events):
                gap = events[i + 1].timestamp - event.timestamp
                mult = self._speed_mult
                if mult > 0.0 and gap > 0:
                    # Scale the gap by speed, cap long idle stretches
                    scaled = min(gap / mult, 0.5)
                    if scaled > 0.001:
                        time.sleep(scaled)

        self._replay_done = True
        self.call_from_thread(self._update_header)
        self.call_from_thread(self.notify, "Replay complete")

    def _on_collector_event(self, event_type: str, data: dict) -> None:
        if event_type == "presence":
            return
        if threading.current_thread() is threading.main_thread():
            self._log_event(event_type, data)
        else:
            self.call_from_thread(self._log_event, event_type, data)

    # ---- UI updates ----

    def _log_event(self, event_type: str, data: dict) -> None:
        panel: ActivityPanel = self.query_one(ActivityPanel)
        panel.log_event(event_type, data, self.collector)

    def _periodic_refresh(self) -> None:
        self._update_header()
        if self.collector is None:
            return

        tabs: TabbedContent = self.query_one("#tabs", TabbedContent)
        match tabs.active:
            case "profiles":
                panel: ProfilePanel = self.query_one(ProfilePanel)
                panel.refresh_profiles(self.collector)
                if self._selected:
                    panel.show_detail(self._selected, self.collector)
            case "zones":
                self.query_one(ZonePanel).refresh_zones(self.collector)
            case "session":
                self.query_one(SessionPanel).refresh_session(self.collector, self._started)

    def on_profile_selected(self, event: ProfileSelected) -> None:
        self._selected = event.profile_name
        if self.collector:
            self.query_one(ProfilePanel).show_detail(event.profile_name, self.collector)

    # ---- Actions ----

    def action_switch_tab(self, tab_id: str) -> None:
        tabs: TabbedContent = self.query_one("#tabs", TabbedContent)
        tabs.active = tab_id

    def action_toggle_pause(self) -> None:
        self._paused = not self._paused
        self._update_header()
        self.notify(f"{'Paused' if self._paused else 'Resumed'}")

    def action_clear_log(self) -> None:
        self.query_one(ActivityPanel).clear_log()

    def action_speed_up(self) -> None:
        if self._speed_index < len(SPEED_PRESETS) - 1:
            self._speed_index += 1
            self._update_header()
            self.notify(f"Speed: {self._speed_label}")

    def action_speed_down(self) -> None:
        if self._speed_index > 0:
            self._speed_index -= 1
            self._update_header()
            self.notify(f"Speed: {self._speed_label}")

    def action_save(self) -> None:
        if self.collector is None:
            return
        try:
            written = self.collector.save()
        except OSError as e:
            self.notify(f"Save failed: {e}", severity="error")
            return
        self.notify(f"Saved {written} profile(s) to {self._config.output_dir}")
