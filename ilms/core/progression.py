# -*- coding: utf-8 -*-
"""
Phase progression for one shipment.

The warehouse track is walked once (logs carry no drop id), then the store
track once per drop in sequence order. A shipment without drops has a single
implicit destination whose store logs also carry no drop id. The resulting
node list is linear: a node is ``active`` when the node before it is done and
it is not.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Sequence

from .phases import STORE_PHASES, WAREHOUSE_PHASES, Status, Track, parse_status

DONE = "done"
ACTIVE = "active"
PENDING = "pending"


class TransitionRejected(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Node:
    phase: Status
    drop_id: int | None
    state: str

    @property
    def track(self) -> Track:
        return Track.WAREHOUSE if self.phase in WAREHOUSE_PHASES else Track.STORE


def _key(entry: Any) -> tuple[Status, int | None] | None:
    if isinstance(entry, tuple):
        phase, drop_id = entry
    elif isinstance(entry, dict):
        phase, drop_id = entry.get("phase_name") or entry.get("phaseName"), entry.get("drop_id", entry.get("dropID"))
    else:
        phase, drop_id = getattr(entry, "phase_name", None), getattr(entry, "drop_id", None)
    try:
        status = parse_status(phase)
    except ValueError:
        return None  # creation/cancel markers and other non-phase rows
    if not status.is_phase:
        return None
    if status in WAREHOUSE_PHASES:
        return status, None
    return status, (int(drop_id) if drop_id not in (None, "", 0) else None)


def done_keys(logs: Iterable[Any]) -> set[tuple[Status, int | None]]:
    keys = set()
    for entry in logs:
        k = _key(entry)
        if k is not None:
            keys.add(k)
    return keys


def node_sequence(drop_ids: Sequence[int] | None) -> list[tuple[Status, int | None]]:
    seq: list[tuple[Status, int | None]] = [(p, None) for p in WAREHOUSE_PHASES]
    for drop_id in (list(drop_ids) if drop_ids else [None]):
        seq.extend((p, drop_id) for p in STORE_PHASES)
    return seq


def timeline(logs: Iterable[Any], drop_ids: Sequence[int] | None = None) -> list[Node]:
    done = done_keys(logs)
    nodes: list[Node] = []
    prev_done = True
    for phase, drop_id in node_sequence(drop_ids):
        is_done = (phase, drop_id) in done
        if is_done:
            state = DONE
        elif prev_done:
            state = ACTIVE
        else:
            state = PENDING
        nodes.append(Node(phase, drop_id, state))
        prev_done = is_done
    return nodes


def next_node(logs: Iterable[Any], drop_ids: Sequence[int] | None = None) -> Node | None:
    for n in timeline(logs, drop_ids):
        if n.state == ACTIVE:
            return n
    return None


def is_complete(logs: Iterable[Any], drop_ids: Sequence[int] | None = None) -> bool:
    last_phase, last_drop = node_sequence(drop_ids)[-1]
    return (last_phase, last_drop) in done_keys(logs)


def gate_date(phase: Status, loading_date: date | None, delivery_date: date | None) -> date | None:
    """Warehouse phases open on the loading date, store phases on the delivery date."""
    return loading_date if phase in WAREHOUSE_PHASES else delivery_date


def check_transition(
    phase: Status,
    drop_id: int | None,
    logs: Iterable[Any],
    drop_ids: Sequence[int] | None,
    *,
    current_status: Status,
    loading_date: date | None,
    delivery_date: date | None,
    today: date,
) -> Status:
    """
    Validate logging ``phase`` for ``drop_id`` and return the shipment status
    that results from it. Raises TransitionRejected when the node is not the
    active one or its milestone date has not been reached.
    """
    if current_status.is_terminal:
        raise TransitionRejected(f"Shipment is already {current_status.value}")
    if not phase.is_phase:
        raise TransitionRejected(f"{phase.value!r} is not a delivery phase")

    if phase in WAREHOUSE_PHASES:
        drop_id = None
    elif not drop_ids:
        drop_id = None
    elif drop_id not in drop_ids:
        raise TransitionRejected(f"Drop {drop_id} does not belong to this shipment")

    logs = list(logs)
    active = next_node(logs, drop_ids)
    if active is None or (active.phase, active.drop_id) != (phase, drop_id):
        expected = f"{active.phase.value}" if active else "nothing"
        raise TransitionRejected(f"Phase {phase.value!r} is not active (next: {expected})")

    gate = gate_date(phase, loading_date, delivery_date)
    if gate is not None and today < gate:
        raise TransitionRejected(f"Phase {phase.value!r} opens on {gate.isoformat()}")

    last_phase, last_drop = node_sequence(drop_ids)[-1]
    if (phase, drop_id) == (last_phase, last_drop):
        return Status.COMPLETED
    return phase
