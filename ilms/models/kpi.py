# -*- coding: utf-8 -*-
from __future__ import annotations

import json
from datetime import datetime

from ..extensions import db


class KpiMonthlyReport(db.Model):
    __tablename__ = "kpi_monthly_reports"

    id = db.Column(db.Integer, primary_key=True)
    report_month = db.Column(db.Date, nullable=False, unique=True)  # first day of the month
    score_booking = db.Column(db.Numeric(6, 2), default=0)
    score_truck = db.Column(db.Numeric(6, 2), default=0)
    score_calltime = db.Column(db.Numeric(6, 2), default=0)
    score_dot = db.Column(db.Numeric(6, 2), default=0)
    score_delivery = db.Column(db.Numeric(6, 2), default=0)
    score_pod = db.Column(db.Numeric(6, 2), default=0)
    raw_failure_data = db.Column(db.Text, default="[]")
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def failure_reasons(self) -> list[dict]:
        try:
            v = json.loads(self.raw_failure_data or "[]")
        except ValueError:
            return []
        return v if isinstance(v, list) else []

    def scores(self) -> dict[str, float]:
        return {
            "booking": float(self.score_booking or 0),
            "truck": float(self.score_truck or 0),
            "calltime": float(self.score_calltime or 0),
            "dot": float(self.score_dot or 0),
            "delivery": float(self.score_delivery or 0),
            "pod": float(self.score_pod or 0),
        }
