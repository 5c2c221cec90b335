# -*- coding: utf-8 -*-
from __future__ import annotations

from ...extensions import db
from ...models.payroll import PayrollAdjustment, PayrollPeriod
from ...xlsx import new_workbook, sheet_title, write_sheet
from . import service

COLUMNS = {
    "employee": "Employee",
    "role": "Role",
    "date": "Date",
    "shipmentID": "Shipment ID",
    "customer": "Customer/Dest",
    "route": "Route",
    "vehicleType": "Vehicle Type",
    "rate": "Rate/Fee",
    "adjustment": "Shipment Adj",
    "reason": "Adj Reason",
    "allowance": "Allowance",
}


def period_rows(period: PayrollPeriod) -> list[dict]:
    """Trip lines then active adjustments, grouped per employee in summary order."""
    adjustments: dict[int, list[PayrollAdjustment]] = {}
    q = (
        db.session.query(PayrollAdjustment)
        .filter_by(period_id=period.id, status="ACTIVE")
        .order_by(PayrollAdjustment.created_at, PayrollAdjustment.id)
    )
    for a in q:
        adjustments.setdefault(a.user_id, []).append(a)

    rows = []
    for emp in service.summary(period.id):
        who = {"employee": f"{emp['firstName']} {emp['lastName']}".strip(), "role": emp["role"]}
        for t in service.trips(period.id, emp["userID"]):
            rows.append({
                **who,
                "date": t["date"],
                "shipmentID": t["shipmentID"],
                "customer": t["destName"],
                "route": t["destLocation"],
                "vehicleType": t["vehicleType"],
                "rate": t["baseFee"],
                "allowance": t["allowance"],
            })
        for a in adjustments.get(emp["userID"], []):
            sign = -1 if a.type == "DEDUCTION" else 1
            rows.append({
                **who,
                "date": a.created_at.date().isoformat() if a.created_at else None,
                "adjustment": sign * float(a.amount),
                "reason": a.reason,
            })
    return rows


def build_workbook(periods: list[PayrollPeriod], columns: list[tuple[str, str]]):
    wb = new_workbook()
    used = set()
    for p in periods:
        title = sheet_title(p.name)
        if title in used:
            title = sheet_title(f"{p.id} {p.name}")
        used.add(title)
        write_sheet(wb.create_sheet(title), columns, period_rows(p))
    return wb
