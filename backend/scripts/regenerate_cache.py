"""CLI helper that rebuilds the document cache, once or on a fixed interval."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from fiadocs_core.loader import DataStore

logger = logging.getLogger(__name__)


def _run_once(store: DataStore) -> int:
    data = store.regenerate_cache()
    print(f"Cache regenerated successfully: {len(data)} documents saved.")
    return len(data)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="keep running and regenerate every SECONDS",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = DataStore()

    if not args.interval:
        try:
            _run_once(store)
        except Exception as exc:
            print(f"ERROR: cache regeneration failed: {exc}", file=sys.stderr)
            return 1
        return 0

    # Scheduled mode keeps going after a failed run.
    try:
        while True:
            try:
                _run_once(store)
            except Exception:
                logger.exception("Cache regeneration failed; retrying in %s seconds", args.interval)
            time.sleep(args.interval)
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
