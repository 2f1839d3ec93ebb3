#!/usr/bin/env python3
"""Initialize quiz stats and ranks for every existing user.

Run once after importing users/results from another system, or whenever
ranks need rebuilding outside the request path.

Usage:
    python3 scripts/initialize_ranks.py
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app import create_app  # noqa: E402
from database import init_db, run_migrations  # noqa: E402
from errors import RankingError  # noqa: E402
from recompute import recompute_all  # noqa: E402


def main() -> int:
    app = create_app()
    with app.app_context():
        init_db()
        run_migrations()
        print("[ranks] Initializing quiz statistics and ranks for all users...")
        try:
            report = recompute_all()
        except RankingError as exc:
            print(f"[ranks] Failed: {exc}", file=sys.stderr)
            return 1
    print(f"[ranks] Ranked {report.users_ranked} users in {report.duration_ms}ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
