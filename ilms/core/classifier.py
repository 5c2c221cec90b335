# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from .phases import PRE_ROUTE, TERMINAL, Status, parse_status


class Category(str, Enum):
    ACTIVE = "Active"
    UPCOMING = "Upcoming"
    DELAYED = "Delayed"
    COMPLETED = "Completed"


def _as_date(x: Any) -> date | None:
    if x in (None, ""):
        return None
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    return date.fromisoformat(str(x)[:10])


def _status_of(shipment: Any) -> Status:
    raw = getattr(shipment, "current_status", None)
    if raw is None and isinstance(shipment, dict):
        raw = shipment.get("current_status") or shipment.get("currentStatus")
    return parse_status(raw or Status.PENDING)


def _field(shipment: Any, name: str, alt: str) -> Any:
    if isinstance(shipment, dict):
        return shipment.get(name, shipment.get(alt))
    return getattr(shipment, name, None)


def classify(shipment: Any, today: date) -> Category:
    """
    Exactly one tab per shipment:
      Completed - Completed/Cancelled
      Delayed   - delivery date passed, or loading date passed while still at the warehouse
      Upcoming  - Pending with a future loading date
      Active    - everything else (including shipments without a loading date)
    """
    status = _status_of(shipment)
    if status in TERMINAL:
        return Category.COMPLETED

    load = _as_date(_field(shipment, "loading_date", "loadingDate"))
    deliver = _as_date(_field(shipment, "delivery_date", "deliveryDate"))

    if deliver is not None and deliver < today:
        return Category.DELAYED
    if load is not None and load < today and status in PRE_ROUTE:
        return Category.DELAYED

    if load is not None and load > today and status is Status.PENDING:
        return Category.UPCOMING

    return Category.ACTIVE


def days_delayed(shipment: Any, today: date) -> tuple[int, str | None]:
    """(days, 'Loading'|'Delivery') for delayed shipments, (0, None) otherwise."""
    status = _status_of(shipment)
    if status in TERMINAL:
        return 0, None
    load = _as_date(_field(shipment, "loading_date", "loadingDate"))
    deliver = _as_date(_field(shipment, "delivery_date", "deliveryDate"))
    if status in PRE_ROUTE and load is not None and load < today:
        return (today - load).days, "Loading"
    if deliver is not None and deliver < today:
        return (today - deliver).days, "Delivery"
    return 0, None


def is_at_risk(shipment: Any, today: date) -> bool:
    """Due for loading or delivery today and not yet done."""
    status = _status_of(shipment)
    if status in TERMINAL:
        return False
    load = _as_date(_field(shipment, "loading_date", "loadingDate"))
    deliver = _as_date(_field(shipment, "delivery_date", "deliveryDate"))
    if load == today and status is Status.PENDING:
        return True
    return deliver == today
