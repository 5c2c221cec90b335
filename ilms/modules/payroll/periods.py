# -*- coding: utf-8 -*-
from __future__ import annotations

from calendar import monthrange
from datetime import date, timedelta

from ...extensions import db
from ...models.payroll import PayrollPeriod

HALVES_PER_YEAR = 24


def _half_end(d: date) -> date:
    """Last day of the semi-monthly half that contains ``d`` (15th or month end)."""
    if d.day <= 15:
        return date(d.year, d.month, 15)
    return date(d.year, d.month, monthrange(d.year, d.month)[1])


def period_name(start: date, end: date) -> str:
    return f"{start:%b} {start.day}-{end.day}, {start.year}"


def semi_monthly(first: date, count: int = HALVES_PER_YEAR) -> list[tuple[date, date]]:
    """
    ``count`` consecutive halves starting at ``first``: 1st-15th and
    16th-end of month. A ``first`` inside a half yields a short first period.
    """
    out = []
    cursor = first
    for _ in range(count):
        end = _half_end(cursor)
        out.append((cursor, end))
        cursor = end + timedelta(days=1)
    return out


def next_start(today: date | None = None) -> date:
    last = PayrollPeriod.query.order_by(PayrollPeriod.end_date.desc()).first()
    if last is not None:
        return last.end_date + timedelta(days=1)
    today = today or date.today()
    return date(today.year, today.month, 1)


def generate_future(today: date | None = None) -> list[PayrollPeriod]:
    """Add the next 12 months of OPEN periods after the latest one. Caller commits."""
    created = []
    for start, end in semi_monthly(next_start(today)):
        p = PayrollPeriod(name=period_name(start, end), start_date=start, end_date=end, status="OPEN")
        db.session.add(p)
        created.append(p)
    db.session.flush()
    return created
