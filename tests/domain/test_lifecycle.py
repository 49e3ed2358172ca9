"""Tests for the borrow request state machine and due-date arithmetic."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from lendctl.domain.lifecycle import (
    REQUEST_TRANSITIONS,
    RequestStatus,
    classify_due,
    default_due_at,
    is_late,
    is_terminal,
    is_valid_transition,
    whole_days,
)

DUE = datetime(2030, 1, 15, 12, 0, tzinfo=UTC)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [("pending", "approved"), ("pending", "rejected"), ("approved", "returned")],
    )
    def test_allowed(self, current: str, target: str) -> None:
        assert is_valid_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("pending", "returned"),
            ("approved", "approved"),
            ("approved", "rejected"),
            ("rejected", "pending"),
            ("returned", "approved"),
        ],
    )
    def test_disallowed(self, current: str, target: str) -> None:
        assert not is_valid_transition(current, target)

    def test_terminal_states_have_no_exits(self) -> None:
        for status in RequestStatus:
            assert is_terminal(status) == (REQUEST_TRANSITIONS[status.value] == [])

    def test_unknown_status_has_no_exits(self) -> None:
        assert not is_valid_transition("lost", "returned")


class TestDueDates:
    def test_default_loan_is_fourteen_days(self) -> None:
        approved = datetime(2030, 1, 1, tzinfo=UTC)
        assert default_due_at(approved) == approved + timedelta(days=14)

    def test_custom_loan_days(self) -> None:
        approved = datetime(2030, 1, 1, tzinfo=UTC)
        assert default_due_at(approved, 7) == datetime(2030, 1, 8, tzinfo=UTC)

    def test_whole_days_floors(self) -> None:
        assert whole_days(DUE, DUE + timedelta(days=2, hours=23)) == 2
        assert whole_days(DUE, DUE + timedelta(hours=1)) == 0

    def test_whole_days_negative_floors_down(self) -> None:
        assert whole_days(DUE, DUE - timedelta(hours=1)) == -1

    def test_late_only_strictly_after_due(self) -> None:
        assert not is_late(DUE, DUE)
        assert is_late(DUE + timedelta(seconds=1), DUE)
        assert not is_late(DUE, None)


class TestClassifyDue:
    def test_one_day_before_is_reminder(self) -> None:
        assert classify_due(DUE, DUE - timedelta(days=1)) == ("reminder", 1)

    def test_exactly_due_is_reminder_zero(self) -> None:
        assert classify_due(DUE, DUE) == ("reminder", 0)

    def test_window_edge(self) -> None:
        assert classify_due(DUE, DUE - timedelta(days=2)) == ("reminder", 2)
        assert classify_due(DUE, DUE - timedelta(days=3)) == (None, 3)

    def test_three_days_after_is_overdue(self) -> None:
        assert classify_due(DUE, DUE + timedelta(days=3)) == ("overdue", 3)

    def test_just_past_due_is_overdue_zero_days(self) -> None:
        assert classify_due(DUE, DUE + timedelta(hours=5)) == ("overdue", 0)

    def test_custom_window(self) -> None:
        now = DUE - timedelta(days=5)
        assert classify_due(DUE, now, reminder_window_days=5) == ("reminder", 5)
