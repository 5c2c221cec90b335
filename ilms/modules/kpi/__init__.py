# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
from datetime import date

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...activity import log_activity
from ...cache import cached, clear_cache
from ...errors import NotFound, ValidationError
from ...extensions import db
from ...models.kpi import KpiMonthlyReport
from ...security import roles_required
from ...tx import transaction
from .parser import KpiParseError, parse_report, score_status

log = logging.getLogger(__name__)

bp = Blueprint("kpi", __name__, url_prefix="/api/kpi")

TREND_MONTHS = 6

CARDS = (
    ("Booking", "booking"),
    ("Truck Availability", "truck"),
    ("Call Time", "calltime"),
    ("DOT Compliance", "dot"),
    ("Delivery", "delivery"),
    ("POD Submission", "pod"),
)


def _parse_month(raw: str) -> date:
    try:
        y, m = map(int, raw[:7].split("-"))
        return date(y, m, 1)
    except ValueError:
        raise ValidationError("month must be YYYY-MM")


@bp.post("/upload")
@login_required
@roles_required("Operations")
def upload():
    f = request.files.get("kpiReport")
    if f is None or not f.filename:
        raise ValidationError("No file uploaded")
    if not f.filename.lower().endswith(".xlsx"):
        raise ValidationError("Only .xlsx reports are supported")
    try:
        report = parse_report(f.read(), f.filename)
    except KpiParseError as e:
        raise ValidationError(str(e))

    with transaction():
        # one report per month: a new upload replaces the old one
        KpiMonthlyReport.query.filter_by(report_month=report.month).delete(synchronize_session=False)
        row = KpiMonthlyReport(
            report_month=report.month,
            score_booking=report.scores["booking"],
            score_truck=report.scores["truck"],
            score_calltime=report.scores["calltime"],
            score_dot=report.scores["dot"],
            score_delivery=report.scores["delivery"],
            score_pod=report.scores["pod"],
            raw_failure_data=json.dumps(report.failures),
        )
        db.session.add(row)
        db.session.flush()
        log_activity("UPLOAD_KPI", f"Uploaded KPI report for {report.month:%B %Y} ({f.filename})")
    log.info("kpi report %s saved: %d failure reasons", report.month, len(report.failures))
    clear_cache("/api/kpi")
    return jsonify({"message": "Success", "reportID": row.id, "month": report.month.isoformat(), "scores": report.scores}), 201


@bp.get("/months")
@login_required
@cached()
def months():
    rows = KpiMonthlyReport.query.order_by(KpiMonthlyReport.report_month.desc(), KpiMonthlyReport.id.desc()).all()
    return jsonify([
        {
            "id": r.id,
            "value": r.report_month.isoformat(),
            "label": f"{r.report_month:%b %Y}",
            "uploadedAt": r.uploaded_at.isoformat() if r.uploaded_at else None,
        }
        for r in rows
    ])


@bp.get("/dashboard")
@login_required
@cached()
def dashboard():
    month = request.args.get("month")
    q = KpiMonthlyReport.query
    if month:
        row = q.filter_by(report_month=_parse_month(month)).first()
    else:
        row = q.order_by(KpiMonthlyReport.report_month.desc()).first()

    recent = (
        KpiMonthlyReport.query.order_by(KpiMonthlyReport.report_month.desc())
        .limit(TREND_MONTHS)
        .all()
    )
    trend = []
    for t in reversed(recent):
        s = t.scores()
        trend.append({
            "month": f"{t.report_month:%b %Y}",
            "fullDate": t.report_month.isoformat(),
            "Booking": s["booking"],
            "Truck": s["truck"],
            "CallTime": s["calltime"],
            "DOT": s["dot"],
            "Delivery": s["delivery"],
            "POD": s["pod"],
            "failures": t.failure_reasons,
        })

    latest = []
    if row is not None:
        s = row.scores()
        latest = [
            {"title": title, "score": f"{s[key]:.2f}", "status": score_status(s[key])}
            for title, key in CARDS
        ]
    return jsonify({
        "latestScores": latest,
        "selectedMonthLabel": f"{row.report_month:%B %Y}" if row else "No Data",
        "failures": row.failure_reasons if row else [],
        "trendData": trend,
    })


@bp.post("/delete")
@login_required
@roles_required("Operations")
def delete():
    data = request.get_json(silent=True) or {}
    try:
        report_id = int(data.get("id"))
    except (TypeError, ValueError):
        raise ValidationError("Report ID required")
    with transaction():
        row = db.session.get(KpiMonthlyReport, report_id)
        if row is None:
            raise NotFound("Report not found or already deleted")
        log_activity("DELETE_KPI", f"Deleted KPI report for {row.report_month:%B %Y} [ID: {row.id}]")
        db.session.delete(row)
    clear_cache("/api/kpi")
    return jsonify({"message": "Report deleted permanently"})
