"""
Bring the database schema up to date without touching data.

Creates the tables declared by the models that do not exist yet. Handy on a
fresh MySQL database or an old instance/ilms.db before running the API.

Usage:
  python scripts/ensure_schema.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import inspect

# project root on sys.path when run as a plain script
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print("[ensure] loading app...")
from ilms import create_app  # type: ignore  # noqa: E402
from ilms.extensions import db  # type: ignore  # noqa: E402


def _tables() -> set[str]:
    return set(inspect(db.engine).get_table_names())


def main() -> int:
    app = create_app(redis_client=None)
    with app.app_context():
        print(f"[ensure] database = {db.engine.url.render_as_string(hide_password=True)}")

        before = _tables()
        print(f"[ensure] tables before: {len(before)}")

        # registers every model on the metadata
        from ilms import models  # noqa: F401

        db.create_all()

        after = _tables()
        created = sorted(after - before)
        if created:
            print(f"[ensure] created: {', '.join(created)}")
        else:
            print("[ensure] nothing to create.")

        core = ["users", "vehicles", "shipments", "shipment_status_log", "payroll_periods", "shipment_payroll"]
        missing = [t for t in core if t not in after]
        if missing:
            print(f"[ensure] still missing: {', '.join(missing)}")
            return 1
        print("[ensure] done.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
