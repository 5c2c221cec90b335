# -*- coding: utf-8 -*-
"""
Monthly KPI workbook reader.

The client's report has no fixed schema, so cells are located by layout:
the month row (first column holds a month name) carries the six scores in
columns 3, 6, 9, 12, 15 and 18; failure reasons follow the row that
contains "REASON OF DELAY", one block of columns per category, until a row
starting with "action"/"recommendation".
"""
from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import date

import openpyxl

MONTHS = [
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
]

SUMMARY_SHEET = "K2MAC"
DEFAULT_SCORE_ROW = 4

SCORE_COLUMNS = {
    "booking": 3,
    "truck": 6,
    "calltime": 9,
    "dot": 12,
    "delivery": 15,
    "pod": 18,
}

# category -> inclusive column range of its reason block
REASON_BLOCKS = (
    ("Booking", 0, 2),
    ("Truck", 3, 5),
    ("CallTime", 6, 8),
    ("DOT", 9, 11),
    ("Delivery", 12, 14),
    ("POD", 15, 19),
)

_NUM = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")
_BULLET = re.compile(r"^[\d.\-•]+\s*")
_YEAR = re.compile(r"20[0-9]{2}")


class KpiParseError(ValueError):
    pass


@dataclass
class KpiReport:
    month: date
    scores: dict[str, float]
    failures: list[dict[str, str]] = field(default_factory=list)


def _leading_number(v) -> float | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    m = _NUM.match(str(v))
    return float(m.group(0)) if m else None


def parse_score(v) -> float:
    """Ratios (<= 1) become percentages; result rounded to 2 places."""
    num = _leading_number(v)
    if not num:
        return 0.0
    if num <= 1:
        num *= 100
    return round(num, 2)


def _month_of(cell) -> str | None:
    if cell is None:
        return None
    s = str(cell).strip().upper()
    return s if s in MONTHS else None


def _rows(content: bytes) -> list[list]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:  # openpyxl raises several unrelated types for bad input
        raise KpiParseError(f"Could not read workbook: {e}") from e
    try:
        ws = wb[SUMMARY_SHEET] if SUMMARY_SHEET in wb.sheetnames else wb.worksheets[0]
        return [list(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _detect_month(filename: str, rows: list[list], today: date) -> date:
    name = (filename or "").upper()
    month = next((m for m in MONTHS if m in name), None)
    if month is None:
        for row in rows:
            found = _month_of(row[0] if row else None)
            if found:
                month = found
    if month is None:
        raise KpiParseError("Could not detect the report month from the file name or sheet")
    y = _YEAR.search(name)
    year = int(y.group(0)) if y else today.year
    return date(year, MONTHS.index(month) + 1, 1)


def _score_row(rows: list[list]) -> list:
    idx = -1
    for i, row in enumerate(rows):
        if row and _month_of(row[0]):
            idx = i
    if idx == -1:
        idx = DEFAULT_SCORE_ROW
    elif idx < len(rows):
        row = rows[idx]
        if _leading_number(row[3] if len(row) > 3 else None) is None:
            idx += 1
    return rows[idx] if idx < len(rows) else []


def _failures(rows: list[list]) -> list[dict[str, str]]:
    start = -1
    for i, row in enumerate(rows):
        if "REASON OF DELAY" in " ".join("" if c is None else str(c) for c in row).upper():
            start = i
    if start == -1:
        return []

    out = []
    for row in rows[start + 1:]:
        if not row:
            continue
        first = str(row[0]).lower() if row[0] is not None else ""
        if "action" in first or "recommendation" in first:
            break
        for category, lo, hi in REASON_BLOCKS:
            for col in range(lo, min(hi, len(row) - 1) + 1):
                if row[col] in (None, ""):
                    continue
                text = _BULLET.sub("", str(row[col]).strip())
                if len(text) > 3 and _leading_number(text) is None and "REASON" not in text.upper():
                    out.append({"category": category, "reason": text})
                    break
    return out


def parse_report(content: bytes, filename: str, today: date | None = None) -> KpiReport:
    rows = _rows(content)
    if not rows:
        raise KpiParseError("The workbook is empty")
    month = _detect_month(filename, rows, today or date.today())
    row = _score_row(rows)
    scores = {
        key: parse_score(row[col] if col < len(row) else None)
        for key, col in SCORE_COLUMNS.items()
    }
    return KpiReport(month=month, scores=scores, failures=_failures(rows))


def score_status(score: float) -> str:
    if score >= 95:
        return "good"
    if score >= 90:
        return "warning"
    return "danger"
