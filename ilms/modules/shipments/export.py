# -*- coding: utf-8 -*-
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time

from ...core.phases import Status
from ...extensions import db
from ...models.payroll import ShipmentPayroll
from ...models.shipment import Shipment, StatusLog
from ...xlsx import new_workbook, write_sheet

COLUMNS = {
    "shipmentID": "Shipment ID",
    "destName": "Destination Name",
    "destLocation": "Destination Address",
    "loadingDate": "Loading Date",
    "deliveryDate": "Delivery Date",
    "plateNo": "Truck Plate",
    "truckType": "Truck Type",
    "currentStatus": "Current Status",
    "driverName": "Driver Name",
    "helperName": "Helper Name",
    "driverFee": "Driver Base Fee",
    "helperFee": "Helper Base Fee",
    "allowance": "Allowance (Per Person)",
    "dateCreated": "Date Created",
    "loaded": "Time: Loaded",
    "arrival": "Time: Arrival",
    "handover": "Time: Handover Invoice",
    "startUnload": "Time: Start Unload",
    "finishUnload": "Time: Finish Unload",
    "invoiceReceive": "Time: Invoice Receive",
    "departure": "Time: Departure",
    "completed": "Time: Completed",
}

# time columns -> phase whose latest log timestamp fills them
PHASE_COLUMNS = {
    "loaded": Status.END_LOADING,
    "arrival": Status.ARRIVAL,
    "handover": Status.HANDOVER_INVOICE,
    "startUnload": Status.START_UNLOAD,
    "finishUnload": Status.FINISH_UNLOAD,
    "invoiceReceive": Status.INVOICE_RECEIVE,
    "departure": Status.DEPARTURE,
    "completed": Status.COMPLETED,
}


def _fmt_ts(v: datetime | None) -> str:
    return v.strftime("%Y-%m-%d %H:%M") if v else ""


def shipments_in_range(start: date, end: date) -> list[Shipment]:
    return (
        Shipment.query
        .filter(Shipment.created_at >= datetime.combine(start, time.min))
        .filter(Shipment.created_at <= datetime.combine(end, time.max))
        .order_by(Shipment.created_at.asc(), Shipment.id.asc())
        .all()
    )


def export_rows(shipments: list[Shipment]) -> list[dict]:
    ids = [s.id for s in shipments]
    if not ids:
        return []

    latest: dict[int, dict[str, datetime]] = defaultdict(dict)
    for log in db.session.query(StatusLog).filter(StatusLog.shipment_id.in_(ids)):
        seen = latest[log.shipment_id].get(log.phase_name)
        if seen is None or log.timestamp > seen:
            latest[log.shipment_id][log.phase_name] = log.timestamp

    fees: dict[int, dict[int, ShipmentPayroll]] = defaultdict(dict)
    for line in db.session.query(ShipmentPayroll).filter(ShipmentPayroll.shipment_id.in_(ids)):
        fees[line.shipment_id][line.crew_id] = line

    rows = []
    for s in shipments:
        d = s.to_dict()
        driver, helper = s.crew_member("Driver"), s.crew_member("Helper")
        lines = fees.get(s.id, {})
        d_line = lines.get(driver.id) if driver else None
        h_line = lines.get(helper.id) if helper else None
        any_line = d_line or h_line
        d.update({
            "currentStatus": s.current_status,
            "driverName": d["driverName"] or "",
            "helperName": d["helperName"] or "",
            "driverFee": float(d_line.base_fee) if d_line else None,
            "helperFee": float(h_line.base_fee) if h_line else None,
            "allowance": float(any_line.allowance) if any_line else None,
            "dateCreated": _fmt_ts(s.created_at),
        })
        for key, phase in PHASE_COLUMNS.items():
            d[key] = _fmt_ts(latest[s.id].get(phase.value))
        rows.append(d)
    return rows


def build_workbook(shipments: list[Shipment], columns: list[tuple[str, str]]):
    wb = new_workbook()
    ws = wb.create_sheet("Shipments")
    write_sheet(ws, columns, export_rows(shipments))
    return wb
