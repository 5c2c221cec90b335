# -*- coding: utf-8 -*-
"""
Payroll: line items from completed trips, per-period summary, and the
carry-over of overpayments into the following period.

Money is handled as Decimal rounded to centavos; JSON output uses floats.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from flask import current_app
from sqlalchemy import text

from ...core.phases import Status
from ...errors import Conflict, NotFound
from ...extensions import db
from ...models.payroll import PayrollAdjustment, PayrollPeriod, PayrollRate, ShipmentPayroll
from ...models.shipment import Shipment
from ...models.user import User

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")

DEFICIT = "DEFICIT"
BAL_DUE = "BAL_DUE"
CLEARED = "CLEARED"
PENDING = "PENDING"


def money(v: Any) -> Decimal:
    if v is None:
        return ZERO
    if not isinstance(v, Decimal):
        v = Decimal(str(v))
    return v.quantize(CENT, rounding=ROUND_HALF_UP)


def get_period(period_id: int) -> PayrollPeriod:
    p = db.session.get(PayrollPeriod, period_id)
    if p is None:
        raise NotFound(f"Payroll period #{period_id} not found")
    return p


def open_period(period_id: int) -> PayrollPeriod:
    """Period that may still be changed; CLOSED periods are frozen."""
    p = get_period(period_id)
    if p.is_closed:
        raise Conflict(f"Payroll period #{p.id} is CLOSED")
    return p


def previous_period(period: PayrollPeriod) -> PayrollPeriod | None:
    return (
        PayrollPeriod.query
        .filter(PayrollPeriod.end_date < period.start_date)
        .order_by(PayrollPeriod.end_date.desc())
        .first()
    )


# ---------- rates ----------
def match_rate(rates: list[PayrollRate], dest_location: str, vehicle_type: str) -> PayrollRate | None:
    """Rate whose route cluster appears in the destination; the longest cluster wins."""
    where = (dest_location or "").lower()
    vtype = (vehicle_type or "").lower()
    best = None
    for r in rates:
        cluster = (r.route_cluster or "").strip().lower()
        if not cluster or cluster not in where or (r.vehicle_type or "").lower() != vtype:
            continue
        if best is None or len(cluster) > len(best.route_cluster.strip()):
            best = r
    return best


def _fees(rate: PayrollRate | None, crew_count: int) -> tuple[Decimal, Decimal, Decimal]:
    if rate is None:
        return (
            money(current_app.config["DEFAULT_DRIVER_FEE"]),
            money(current_app.config["DEFAULT_HELPER_FEE"]),
            ZERO,
        )
    allowance = money(rate.food_allowance) / max(crew_count, 1)
    return money(rate.driver_base_fee), money(rate.helper_base_fee), money(allowance)


# ---------- generate ----------
def _create_line_items(period: PayrollPeriod) -> int:
    shipments = (
        Shipment.query
        .filter(Shipment.current_status == Status.COMPLETED.value)
        .filter(Shipment.delivery_date >= period.start_date)
        .filter(Shipment.delivery_date <= period.end_date)
        .order_by(Shipment.id)
        .all()
    )
    if not shipments:
        return 0

    ids = [s.id for s in shipments]
    existing = {
        (sid, cid)
        for sid, cid in db.session.query(ShipmentPayroll.shipment_id, ShipmentPayroll.crew_id)
        .filter(ShipmentPayroll.shipment_id.in_(ids))
    }
    rates = PayrollRate.query.all()

    new_rows = []
    for s in shipments:
        vtype = s.vehicle.type if s.vehicle else ""
        rate = match_rate(rates, s.dest_location, vtype)
        driver_fee, helper_fee, allowance = _fees(rate, len(s.crew))
        for member in s.crew:
            if (s.id, member.user_id) in existing:
                continue
            new_rows.append(ShipmentPayroll(
                shipment_id=s.id,
                crew_id=member.user_id,
                period_id=period.id,
                base_fee=driver_fee if member.role == "Driver" else helper_fee,
                allowance=allowance,
            ))
    db.session.add_all(new_rows)
    db.session.flush()
    return len(new_rows)


def _carry_over(period: PayrollPeriod) -> int:
    """
    Replace the period's active carry-over deductions. Voided carry-overs stay
    in the ledger, and a void for the same user and source period keeps the
    deduction from being added again.
    """
    PayrollAdjustment.query.filter_by(period_id=period.id, is_carry_over=True, status="ACTIVE").delete(
        synchronize_session=False
    )
    prev = previous_period(period)
    if prev is None:
        return 0

    voided = {
        (uid, src)
        for uid, src in db.session.query(PayrollAdjustment.user_id, PayrollAdjustment.source_period_id)
        .filter_by(period_id=period.id, is_carry_over=True, status="VOID")
    }
    count = 0
    for row in summary(prev.id):
        excess = money(row["totalPaid"]) - money(row["netSalary"])
        if excess <= 0:
            continue
        if (row["userID"], prev.id) in voided:
            log.info("carry-over for user %s from period %s was voided, not re-applied", row["userID"], prev.id)
            continue
        db.session.add(PayrollAdjustment(
            user_id=row["userID"],
            period_id=period.id,
            type="DEDUCTION",
            amount=excess,
            reason=f"Balance from Period #{prev.id}",
            status="ACTIVE",
            is_carry_over=True,
            source_period_id=prev.id,
        ))
        count += 1
    db.session.flush()
    return count


def generate(period_id: int) -> dict[str, int]:
    """Create missing line items for the period and refresh its carry-over deductions."""
    period = open_period(period_id)
    created = _create_line_items(period)
    carried = _carry_over(period)
    log.info("payroll period %s: %d line items, %d carry-overs", period.id, created, carried)
    return {"rowsCreated": created, "carryOvers": carried}


# ---------- summary ----------
def pay_status(net: Decimal, paid: Decimal) -> str:
    if net < 0:
        return DEFICIT
    if paid > net:
        return BAL_DUE
    if paid == net and net > 0:
        return CLEARED
    return PENDING


def summary(period_id: int) -> list[dict]:
    get_period(period_id)
    params = {"p": period_id}

    trips = db.session.execute(
        text(
            """
        SELECT crew_id AS user_id,
               COUNT(id) AS trips,
               COALESCE(SUM(base_fee),0) AS base,
               COALESCE(SUM(allowance),0) AS allowance
        FROM shipment_payroll
        WHERE period_id=:p
        GROUP BY crew_id
            """
        ),
        params,
    ).mappings().all()

    adjustments = db.session.execute(
        text(
            """
        SELECT user_id, type, COALESCE(SUM(amount),0) AS total
        FROM payroll_adjustments
        WHERE period_id=:p AND status='ACTIVE'
        GROUP BY user_id, type
            """
        ),
        params,
    ).mappings().all()

    payments = db.session.execute(
        text(
            """
        SELECT user_id, COALESCE(SUM(amount),0) AS total
        FROM payroll_payments
        WHERE period_id=:p AND status='COMPLETED'
        GROUP BY user_id
            """
        ),
        params,
    ).mappings().all()

    acc: dict[int, dict[str, Any]] = {}

    def slot(uid: int) -> dict[str, Any]:
        return acc.setdefault(uid, {
            "trips": 0, "base": ZERO, "allowance": ZERO,
            "bonus": ZERO, "deductions": ZERO, "paid": ZERO,
        })

    for r in trips:
        s = slot(r["user_id"])
        s["trips"] = int(r["trips"])
        s["base"] = money(r["base"])
        s["allowance"] = money(r["allowance"])
    for r in adjustments:
        s = slot(r["user_id"])
        if r["type"] == "BONUS":
            s["bonus"] += money(r["total"])
        elif r["type"] == "DEDUCTION":
            s["deductions"] += money(r["total"])
    for r in payments:
        slot(r["user_id"])["paid"] = money(r["total"])

    if not acc:
        return []

    users = {u.id: u for u in User.query.filter(User.id.in_(list(acc)))}
    out = []
    for uid, s in acc.items():
        u = users.get(uid)
        net = s["base"] + s["bonus"] - s["deductions"]
        out.append({
            "userID": uid,
            "firstName": u.first_name if u else "",
            "lastName": u.last_name if u else "",
            "role": u.role if u else "",
            "tripCount": s["trips"],
            "totalBasePay": float(s["base"]),
            "totalAllowance": float(s["allowance"]),
            "totalBonus": float(s["bonus"]),
            "totalDeductions": float(s["deductions"]),
            "totalPaid": float(s["paid"]),
            "netSalary": float(net),
            "payStatus": pay_status(net, s["paid"]),
        })
    out.sort(key=lambda r: (r["lastName"].lower(), r["firstName"].lower(), r["userID"]))
    return out


def trips(period_id: int, user_id: int) -> list[dict]:
    """Paid trips of one crew member in a period."""
    get_period(period_id)
    rows = db.session.execute(
        text(
            """
        SELECT sp.shipment_id, sp.base_fee, sp.allowance,
               s.dest_name, s.dest_location, s.delivery_date,
               v.type AS vehicle_type, v.plate_no
        FROM shipment_payroll sp
        JOIN shipments s ON s.id = sp.shipment_id
        LEFT JOIN vehicles v ON v.id = s.vehicle_id
        WHERE sp.period_id=:p AND sp.crew_id=:u
        ORDER BY s.delivery_date, sp.shipment_id
            """
        ),
        {"p": period_id, "u": user_id},
    ).mappings().all()
    return [
        {
            "shipmentID": r["shipment_id"],
            "date": str(r["delivery_date"])[:10] if r["delivery_date"] else None,
            "destName": r["dest_name"],
            "destLocation": r["dest_location"],
            "vehicleType": r["vehicle_type"],
            "plateNo": r["plate_no"],
            "baseFee": float(money(r["base_fee"])),
            "allowance": float(money(r["allowance"])),
        }
        for r in rows
    ]
