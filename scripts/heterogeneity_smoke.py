"""Run the clusterhet synthetic smoke check from a source checkout."""

from __future__ import annotations

from clusterhet.cli import smoke_main

if __name__ == "__main__":
    raise SystemExit(smoke_main())
