# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Iterable, Sequence

from .phases import STATUS_ORDER, WAREHOUSE_PHASES, Status, parse_status
from .progression import node_sequence


def _priority(status: Status, order: Sequence[Status]) -> int:
    try:
        return order.index(status)
    except ValueError:
        return -1


def resolve_status(
    local: str | Status | None,
    server: str | Status | None,
    order: Sequence[Status] = STATUS_ORDER,
) -> Status:
    """Pick the more advanced of a local projection and a server read.

    Ties keep the server value; an unknown or missing side loses.
    """
    local_s = _safe(local)
    server_s = _safe(server)
    if local_s is None and server_s is None:
        return Status.PENDING
    if local_s is None:
        return server_s
    if server_s is None:
        return local_s
    if _priority(local_s, order) > _priority(server_s, order):
        return local_s
    return server_s


def node_rank(
    status: Status, drop_id: int | None, sequence: Sequence[tuple[Status, int | None]]
) -> int:
    """
    Position of ``(status, drop_id)`` on a shipment's node list. Store phases
    repeat once per drop, so the drop decides which occurrence counts; a
    drop that is missing or not on the list ranks at the first occurrence.
    """
    if status is Status.PENDING:
        return -1
    if status.is_terminal:
        return len(sequence) + (status is Status.CANCELLED)
    if status in WAREHOUSE_PHASES:
        drop_id = None
    first = None
    for idx, (phase, node_drop) in enumerate(sequence):
        if phase is not status:
            continue
        if node_drop == drop_id:
            return idx
        if first is None:
            first = idx
    return first if first is not None else -1


def _entry(value: Any) -> tuple[Status | None, int | None]:
    if isinstance(value, tuple):
        phase, drop_id = value
    elif isinstance(value, dict):
        phase, drop_id = value.get("phase"), value.get("dropID")
    else:
        phase, drop_id = value, None
    try:
        drop_id = int(drop_id) if drop_id not in (None, "") else None
    except (TypeError, ValueError):
        drop_id = None
    return _safe(phase), drop_id


def project(
    server: str | Status | None,
    pending: Iterable[Any],
    drop_ids: Sequence[int] | None = None,
    server_drop_id: int | None = None,
) -> Status:
    """
    Fold queued (not yet acknowledged) updates over the server status.

    Queued entries are statuses, ``(status, drop_id)`` pairs or queue items
    carrying ``phase`` and ``dropID``. With ``drop_ids`` the comparison runs
    on the shipment's node list, so a later drop's phase outranks an earlier
    drop's. Ties keep the current value.
    """
    sequence = node_sequence(drop_ids)
    status = _safe(server) or Status.PENDING
    rank = node_rank(status, server_drop_id, sequence)
    for p in pending:
        queued, drop_id = _entry(p)
        if queued is None:
            continue
        queued_rank = node_rank(queued, drop_id, sequence)
        if queued_rank > rank:
            status, rank = queued, queued_rank
    return status


def _safe(value: str | Status | None) -> Status | None:
    if value in (None, ""):
        return None
    try:
        return parse_status(value)
    except ValueError:
        return None
