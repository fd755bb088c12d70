"""
PacketParser — Dashboard CLI

TUI dashboard that replays a recorded capture through the collector.

Usage:
  python tools/dashboard.py captures/ronfaure_trusts.json
  python tools/dashboard.py captures/ronfaure_trusts.json --out data/ronfaure
  python tools/dashboard.py captures/ronfaure_trusts.json --resources res/names.json
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.dashboard.app import ProfileDashboard
from src.data.collector import CollectorConfig
from src.data.resources import NameResolver


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="PacketParser Dashboard")
    parser.add_argument("capture", help="Capture JSON file to replay")
    parser.add_argument("--out", default="data", help="Directory for saved snapshots")
    parser.add_argument("--resources", help="Resource name export (JSON)")
    args = parser.parse_args()

    resolver = NameResolver.from_json(args.resources) if args.resources else None

    app = ProfileDashboard(
        replay_path=args.capture,
        config=CollectorConfig(output_dir=args.out),
        resolver=resolver,
    )
    app.run()


if __name__ == "__main__":
    main()
