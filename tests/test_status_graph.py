from __future__ import annotations

import itertools

import pytest

from obcflow.core.errors import InvalidTransition
from obcflow.core.lifecycle.enums import ShipmentStatus as S
from obcflow.core.lifecycle.status_graph import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    allowed_targets,
    ensure_transition_allowed,
    is_terminal,
    is_transition_allowed,
)

EXPECTED_EDGES = {
    (S.QUOTED, S.BOOKED),
    (S.QUOTED, S.CANCELLED),
    (S.BOOKED, S.PICKUP),
    (S.BOOKED, S.CANCELLED),
    (S.PICKUP, S.IN_TRANSIT),
    (S.PICKUP, S.CANCELLED),
    (S.IN_TRANSIT, S.CUSTOMS),
    (S.IN_TRANSIT, S.DELIVERED),
    (S.IN_TRANSIT, S.CANCELLED),
    (S.CUSTOMS, S.DELIVERED),
    (S.CUSTOMS, S.CANCELLED),
    (S.DELIVERED, S.DOCUMENT),
    (S.DOCUMENT, S.INVOICED),
}


@pytest.mark.parametrize("current,target", list(itertools.product(S, S)))
def test_every_status_pair_matches_the_graph(current, target):
    assert is_transition_allowed(current, target) is ((current, target) in EXPECTED_EDGES)


def test_graph_lists_exactly_the_expected_edges():
    edges = {(c, t) for c, targets in ALLOWED_TRANSITIONS.items() for t in targets}
    assert edges == EXPECTED_EDGES


def test_terminal_statuses_are_invoiced_and_cancelled():
    assert TERMINAL_STATUSES == {S.INVOICED, S.CANCELLED}
    assert is_terminal("invoiced")
    assert not is_terminal(S.DELIVERED)


def test_no_self_transitions():
    for status in S:
        assert not is_transition_allowed(status, status)


def test_string_values_are_accepted():
    assert is_transition_allowed("in_transit", "customs")
    assert allowed_targets("customs") == {S.DELIVERED, S.CANCELLED}


def test_unknown_status_is_never_allowed():
    assert not is_transition_allowed("quoted", "lost")
    assert not is_transition_allowed("lost", "booked")
    assert allowed_targets("lost") == frozenset()


def test_ensure_transition_allowed_names_both_states():
    assert ensure_transition_allowed("booked", "pickup") is S.PICKUP

    with pytest.raises(InvalidTransition) as exc_info:
        ensure_transition_allowed(S.DELIVERED, S.CANCELLED)
    detail = exc_info.value.to_detail()
    assert detail["code"] == "INVALID_TRANSITION"
    assert detail["current_status"] == "delivered"
    assert detail["target_status"] == "cancelled"
    assert exc_info.value.status_code == 409
