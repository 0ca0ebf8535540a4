"""CLI helper that discovers season events and adds them to config.json."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from fiadocs_core.loader import DataStore
from fiadocs_core.parser import parse_grand_prix_events

GRAND_PRIX_EVENTS_URL = (
    "https://www.fia.com/documents/championships/fia-formula-one-world-championship-14/season/season-2025-2071"
)
SAMPLE_PATH = Path(__file__).parent.parent / "assets" / "grand_prix_events_sample.html"
SITE_ROOT = "https://www.fia.com"


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-t", "--test", action="store_true", help="parse the bundled sample page instead")
    parser.add_argument("--url", default=GRAND_PRIX_EVENTS_URL, help="season page to scan")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = DataStore()

    try:
        current = store.load_config()
        print(f"Current configuration has {len(current.event_ids)} event IDs")

        html = store.fetch_grand_prix_events_page(args.url, sample_path=SAMPLE_PATH if args.test else None)
        events = parse_grand_prix_events(html, site_root=SITE_ROOT)
        if not events:
            print("No events found on the page. Configuration will not be updated.")
            return 0

        updated = store.update_config_with_events(current, events)
        if len(updated.event_ids) > len(current.event_ids) or args.test:
            store.save_config(updated)
            print("Configuration updated successfully!")
        else:
            print("No new events to add. Configuration unchanged.")
        print(f"Total event IDs in configuration: {len(updated.event_ids)}")
    except httpx.ConnectError as exc:
        print(f"Network access to the FIA website failed ({exc}).")
        print("Run with --test to use the bundled sample page.")
        return 0
    except (httpx.HTTPError, RuntimeError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
