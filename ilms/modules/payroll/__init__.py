# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify
from flask_login import login_required
from sqlalchemy.exc import IntegrityError

from ...activity import log_activity
from ...cache import cached, clear_cache
from ...errors import Conflict, NotFound, ValidationError
from ...models.payroll import PayrollPeriod
from ...schemas import PeriodRef, load
from ...security import roles_required
from ...tx import transaction, with_transaction
from ...xlsx import list_arg, pick_columns, workbook_response
from . import export, periods, service

bp = Blueprint("payroll", __name__, url_prefix="/api/payroll")


@bp.get("/periods")
@login_required
@roles_required("Payroll")
@cached()
def list_periods():
    rows = PayrollPeriod.query.order_by(PayrollPeriod.start_date.desc()).all()
    return jsonify([p.to_dict() for p in rows])


@bp.post("/periods/generate")
@login_required
@roles_required("Payroll")
def generate_periods():
    with transaction():
        created = periods.generate_future()
        if created:
            log_activity(
                "GENERATE_PERIODS",
                f"Generated {len(created)} periods {created[0].start_date} to {created[-1].end_date}",
            )
    clear_cache("/api/payroll")
    return jsonify({"message": "Periods generated", "count": len(created)}), 201


@bp.post("/generate")
@login_required
@roles_required("Payroll")
def generate():
    body = load(PeriodRef)
    try:
        result = with_transaction(_generate_logged, body.period_id)
    except IntegrityError:
        raise Conflict("Payroll for this period is being generated by another request")
    clear_cache("/api/payroll")
    clear_cache("/api/adjustments")
    return jsonify({"message": "Payroll Generated Successfully", **result})


def _generate_logged(period_id: int) -> dict:
    result = service.generate(period_id)
    log_activity(
        "GENERATE_PAYROLL",
        f"Period #{period_id}: {result['rowsCreated']} line items, {result['carryOvers']} carry-overs",
    )
    return result


@bp.get("/summary/<int:period_id>")
@login_required
@roles_required("Payroll")
@cached()
def summary(period_id: int):
    return jsonify(service.summary(period_id))


@bp.get("/trips/<int:period_id>/<int:user_id>")
@login_required
@roles_required("Payroll")
def trips(period_id: int, user_id: int):
    return jsonify(service.trips(period_id, user_id))


@bp.post("/close")
@login_required
@roles_required("Payroll")
def close():
    body = load(PeriodRef)
    with transaction():
        p = service.open_period(body.period_id)
        p.status = "CLOSED"
        log_activity("CLOSE_PERIOD", f"Closed payroll period #{p.id} ({p.name})")
    clear_cache("/api/payroll")
    return jsonify({"message": "Period closed", "periodID": p.id, "status": p.status})


@bp.get("/export")
@login_required
@roles_required("Payroll")
def export_xlsx():
    ids = []
    for raw in list_arg("periodIDs"):
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid period id {raw!r}")
    if not ids:
        raise ValidationError("No period selected")
    columns = pick_columns(list_arg("columns"), export.COLUMNS)
    if not columns:
        raise ValidationError("No columns selected")

    found = PayrollPeriod.query.filter(PayrollPeriod.id.in_(ids)).order_by(PayrollPeriod.start_date).all()
    if not found:
        raise NotFound("No matching payroll periods")
    wb = export.build_workbook(found, columns)
    if len(found) == 1:
        name = f"Payroll_Report_{found[0].name}.xlsx"
    else:
        name = f"Payroll_Batch_Report_{date.today().isoformat()}.xlsx"
    return workbook_response(wb, name)
