# -*- coding: utf-8 -*-
"""
Full reset of the SQLite database with a small seed and verbose logs.

Run from the project root:
  python scripts/recreate_db.py
"""

from __future__ import annotations
import sys, traceback
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional
from sqlalchemy import text

# --- project path ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "ilms" / "__init__.py").exists():
    raise SystemExit("[recreate] error: ilms/__init__.py not found next to scripts/")

# --- app / ORM ---
print("[recreate] importing app...")
from ilms import create_app  # type: ignore
from ilms.extensions import db  # type: ignore
from ilms.models.user import User  # type: ignore
from ilms.models.vehicle import Vehicle  # type: ignore
from ilms.models.payroll import PayrollRate  # type: ignore
from ilms.modules.payroll.periods import generate_future  # type: ignore


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(table: str) -> int:
    return int(db.session.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar() or 0)


def _user(employee_id: str, password: str, first: str, last: str, role: str) -> User:
    u = User(employee_id=employee_id, first_name=first, last_name=last, role=role)
    u.set_password(password)
    return u


def main() -> int:
    print("[recreate] create_app()...")
    app = create_app(redis_client=None)
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        db_path = _db_path_from_uri(uri)
        if not db_path:
            raise SystemExit("[recreate] refusing to reset a non-sqlite database; use migrations instead")

        db_path.parent.mkdir(parents=True, exist_ok=True)
        if db_path.exists():
            print(f"[recreate] removing database file: {db_path}")
            db.engine.dispose()
            db_path.unlink()

        print("[recreate] creating tables from models...")
        db.create_all()

        # --- users ---
        print("[recreate] adding users...")
        db.session.add_all([
            _user("admin", "admin123", "System", "Admin", "Admin"),
            _user("ops1", "ops123", "Olive", "Santos", "Operations"),
            _user("pay1", "pay123", "Paolo", "Reyes", "Payroll"),
            _user("drv1", "drv123", "Dan", "Cruz", "Driver"),
            _user("hlp1", "hlp123", "Hector", "Lim", "Helper"),
        ])

        # --- fleet and rates ---
        print("[recreate] adding vehicles and rates...")
        db.session.add_all([
            Vehicle(plate_no="ABC1234", type="6-Wheeler", status="Working"),
            Vehicle(plate_no="XYZ5678", type="10-Wheeler", status="Working"),
            Vehicle(plate_no="JKL0001", type="AUV", status="Maintenance"),
        ])
        db.session.add_all([
            PayrollRate(route_cluster="Manila", vehicle_type="6-Wheeler",
                        driver_base_fee=Decimal("800"), helper_base_fee=Decimal("500"), food_allowance=Decimal("300")),
            PayrollRate(route_cluster="Laguna", vehicle_type="6-Wheeler",
                        driver_base_fee=Decimal("1000"), helper_base_fee=Decimal("650"), food_allowance=Decimal("400")),
            PayrollRate(route_cluster="Laguna", vehicle_type="10-Wheeler",
                        driver_base_fee=Decimal("1300"), helper_base_fee=Decimal("800"), food_allowance=Decimal("400")),
        ])

        # --- periods ---
        print("[recreate] generating payroll periods...")
        periods = generate_future(date.today())
        db.session.commit()

        print(
            f"[recreate] users={_cnt('users')} vehicles={_cnt('vehicles')} "
            f"rates={_cnt('payroll_rates')} periods={len(periods)}"
        )
        print("\n[recreate] Done.")
        print("Logins (employeeID / password):")
        print("  admin / admin123")
        print("  ops1  / ops123")
        print("  pay1  / pay123")
        print("  drv1  / drv123")
        print("  hlp1  / hlp123")
        print(f"\nDatabase file: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        print("\n[recreate] ERROR:")
        traceback.print_exc()
        sys.exit(1)
