"""Tests for scheduling constants and status ranking."""

import pytest

from clinic_os.scheduling.models import (
    STATUS_PRIORITY,
    VALID_STATUS_TRANSITIONS,
    AppointmentStatus,
    is_active_status,
    status_priority,
)


def test_priority_order():
    ranked = sorted(STATUS_PRIORITY, key=status_priority, reverse=True)
    assert ranked == ["completed", "in_progress", "confirmed", "scheduled", "no_show", "cancelled"]


@pytest.mark.parametrize("status", ["archived", "", None])
def test_unknown_status_ranks_zero(status):
    assert status_priority(status) == 0


def test_every_status_ranked():
    assert set(STATUS_PRIORITY) == {s.value for s in AppointmentStatus}


def test_active_statuses():
    assert is_active_status("scheduled")
    assert is_active_status("completed")
    assert not is_active_status("cancelled")
    assert not is_active_status("no_show")


def test_terminal_states_have_no_exits():
    for status in ("completed", "cancelled", "no_show"):
        assert VALID_STATUS_TRANSITIONS[status] == frozenset()
