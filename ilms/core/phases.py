# -*- coding: utf-8 -*-
from __future__ import annotations

from enum import Enum


class Track(str, Enum):
    WAREHOUSE = "warehouse"
    STORE = "store"


class Status(str, Enum):
    """Shipment status: the delivery phases plus the sentinel values."""

    PENDING = "Pending"

    ARRIVAL_AT_WAREHOUSE = "Arrival at Warehouse"
    START_LOADING = "Start Loading"
    END_LOADING = "End Loading"
    DOCUMENT_RELEASED = "Document Released"
    START_ROUTE = "Start Route"

    ARRIVAL = "Arrival"
    HANDOVER_INVOICE = "Handover Invoice"
    START_UNLOAD = "Start Unload"
    FINISH_UNLOAD = "Finish Unload"
    INVOICE_RECEIVE = "Invoice Receive"
    DEPARTURE = "Departure"

    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_phase(self) -> bool:
        return self in WAREHOUSE_PHASES or self in STORE_PHASES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL

    @property
    def track(self) -> Track | None:
        if self in WAREHOUSE_PHASES:
            return Track.WAREHOUSE
        if self in STORE_PHASES:
            return Track.STORE
        return None

    @property
    def rank(self) -> int:
        return STATUS_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return self.value


WAREHOUSE_PHASES: tuple[Status, ...] = (
    Status.ARRIVAL_AT_WAREHOUSE,
    Status.START_LOADING,
    Status.END_LOADING,
    Status.DOCUMENT_RELEASED,
    Status.START_ROUTE,
)

STORE_PHASES: tuple[Status, ...] = (
    Status.ARRIVAL,
    Status.HANDOVER_INVOICE,
    Status.START_UNLOAD,
    Status.FINISH_UNLOAD,
    Status.INVOICE_RECEIVE,
    Status.DEPARTURE,
)

TERMINAL = frozenset({Status.COMPLETED, Status.CANCELLED})

# total order used for progress comparison
STATUS_ORDER: tuple[Status, ...] = (
    (Status.PENDING,) + WAREHOUSE_PHASES + STORE_PHASES + (Status.COMPLETED, Status.CANCELLED)
)

# phases during which the truck is still at the warehouse (loading delay applies)
PRE_ROUTE: frozenset[Status] = frozenset({Status.PENDING, *WAREHOUSE_PHASES[:-1]})

# Departure here is always a non-final drop; the final one is stored as Completed
IN_TRANSIT = frozenset({Status.START_ROUTE, Status.DEPARTURE})


def parse_status(value: str | Status) -> Status:
    """Exact match on the stored name; raises ValueError for anything else."""
    if isinstance(value, Status):
        return value
    return Status((value or "").strip())


def display_status(status: Status) -> str:
    """Label shown in lists: 'To Load' for Pending, 'In Transit' while moving."""
    if status is Status.PENDING:
        return "To Load"
    if status in IN_TRANSIT:
        return "In Transit"
    return status.value
