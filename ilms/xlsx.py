# -*- coding: utf-8 -*-
from __future__ import annotations

import io
import json
from typing import Any, Iterable, Sequence

from flask import request, send_file
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def list_arg(name: str) -> list:
    """Query value as a list: JSON array (``["a","b"]``) or comma separated."""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return []
    if raw.startswith("["):
        try:
            value = json.loads(raw)
        except ValueError:
            return []
        return value if isinstance(value, list) else []
    return [x.strip() for x in raw.split(",") if x.strip()]


def pick_columns(keys: Iterable[Any], catalogue: dict[str, str]) -> list[tuple[str, str]]:
    """Keep requested keys that exist in the catalogue, in request order, without repeats."""
    out, seen = [], set()
    for k in keys:
        k = str(k)
        if k in catalogue and k not in seen:
            seen.add(k)
            out.append((k, catalogue[k]))
    return out


def write_sheet(ws, columns: Sequence[tuple[str, str]], rows: Iterable[dict]) -> None:
    ws.append([label for _, label in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([row.get(key) for key, _ in columns])
    for i, (_, label) in enumerate(columns, start=1):
        ws.column_dimensions[get_column_letter(i)].width = max(12, len(label) + 4)


def sheet_title(name: str) -> str:
    # Excel: max 31 chars, no []:*?/\
    for ch in "[]:*?/\\":
        name = name.replace(ch, "-")
    return name[:31] or "Sheet"


def new_workbook() -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)
    return wb


def workbook_response(wb: Workbook, filename: str):
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return send_file(buf, mimetype=XLSX_MIME, as_attachment=True, download_name=filename)
