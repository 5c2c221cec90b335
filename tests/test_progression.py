from datetime import date

import pytest

from ilms.core.phases import STORE_PHASES, WAREHOUSE_PHASES, Status
from ilms.core.progression import (
    ACTIVE,
    DONE,
    PENDING,
    TransitionRejected,
    check_transition,
    is_complete,
    next_node,
    node_sequence,
    timeline,
)

DAY = date(2024, 3, 1)


def warehouse_done():
    return [(p, None) for p in WAREHOUSE_PHASES]


def store_done(drop_id):
    return [(p, drop_id) for p in STORE_PHASES]


def check(phase, drop_id, logs, drops, status=Status.PENDING, today=DAY, load=DAY, deliver=DAY):
    return check_transition(
        phase, drop_id, logs, drops,
        current_status=status, loading_date=load, delivery_date=deliver, today=today,
    )


def test_node_sequence_without_drops_has_one_destination():
    seq = node_sequence([])
    assert len(seq) == len(WAREHOUSE_PHASES) + len(STORE_PHASES)
    assert seq[-1] == (Status.DEPARTURE, None)


def test_node_sequence_repeats_store_track_per_drop():
    seq = node_sequence([7, 9])
    assert seq[len(WAREHOUSE_PHASES)] == (Status.ARRIVAL, 7)
    assert seq[-1] == (Status.DEPARTURE, 9)


def test_first_node_is_active_on_a_new_shipment():
    nodes = timeline([], [])
    assert nodes[0].state == ACTIVE
    assert all(n.state == PENDING for n in nodes[1:])


def test_store_phase_of_next_drop_waits_for_previous_departure():
    logs = warehouse_done() + store_done(1)[:-1]
    nxt = next_node(logs, [1, 2])
    assert (nxt.phase, nxt.drop_id) == (Status.DEPARTURE, 1)

    logs = warehouse_done() + store_done(1)
    nxt = next_node(logs, [1, 2])
    assert (nxt.phase, nxt.drop_id) == (Status.ARRIVAL, 2)


def test_non_phase_rows_are_ignored():
    nodes = timeline([{"phaseName": "Creation", "dropID": None}], [])
    assert nodes[0].state == ACTIVE


def test_warehouse_log_with_drop_id_counts_as_warehouse():
    nodes = timeline([{"phase_name": "Arrival at Warehouse", "drop_id": 3}], [3])
    assert nodes[0].state == DONE
    assert nodes[1].state == ACTIVE


def test_transition_returns_phase_for_active_node():
    assert check(Status.ARRIVAL_AT_WAREHOUSE, None, [], []) is Status.ARRIVAL_AT_WAREHOUSE


def test_skipping_ahead_is_rejected():
    with pytest.raises(TransitionRejected):
        check(Status.END_LOADING, None, [], [])


def test_last_departure_completes():
    logs = warehouse_done() + store_done(1) + store_done(2)[:-1]
    assert check(Status.DEPARTURE, 2, logs, [1, 2]) is Status.COMPLETED


def test_departure_of_first_drop_does_not_complete():
    logs = warehouse_done() + store_done(1)[:-1]
    assert check(Status.DEPARTURE, 1, logs, [1, 2]) is Status.DEPARTURE


def test_unknown_drop_is_rejected():
    with pytest.raises(TransitionRejected):
        check(Status.ARRIVAL, 99, warehouse_done(), [1, 2])


def test_terminal_shipments_reject_transitions():
    with pytest.raises(TransitionRejected):
        check(Status.ARRIVAL_AT_WAREHOUSE, None, [], [], status=Status.CANCELLED)


def test_warehouse_phase_waits_for_loading_date():
    with pytest.raises(TransitionRejected) as exc:
        check(Status.ARRIVAL_AT_WAREHOUSE, None, [], [], today=date(2024, 2, 29))
    assert "2024-03-01" in exc.value.reason


def test_store_phase_waits_for_delivery_date():
    with pytest.raises(TransitionRejected):
        check(Status.ARRIVAL, None, warehouse_done(), [], deliver=date(2024, 3, 2))
    assert check(Status.ARRIVAL, None, warehouse_done(), [], today=date(2024, 3, 2), deliver=date(2024, 3, 2)) is Status.ARRIVAL


def test_is_complete():
    assert not is_complete(warehouse_done(), [])
    assert is_complete(warehouse_done() + store_done(None), [])
