# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for the window calculator."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from zenko_budget.cycle import (
    add_months,
    clamp_day,
    current_window,
    days_in_month,
    initial_window_start,
    is_window_elapsed,
    start_of_day,
    validate_policy,
)
from zenko_budget.errors import InvalidPolicyError
from zenko_budget.types import Envelope, Window

from tests.conftest import FRIDAY, MONDAY, WEDNESDAY


def make_envelope(period: str, last_reset_at: datetime, **anchors: int) -> Envelope:
    return Envelope(
        id="env-1",
        name="Test",
        base=10_000,
        period=period,
        last_reset_at=last_reset_at,
        **anchors,
    )


# ---------------------------------------------------------------------------
# TestPolicyValidation
# ---------------------------------------------------------------------------


class TestPolicyValidation:
    def test_unknown_period_raises_invalid_policy(self) -> None:
        with pytest.raises(InvalidPolicyError) as excinfo:
            validate_policy("yearly")
        assert excinfo.value.field == "period"
        assert excinfo.value.code == "INVALID_POLICY"

    @pytest.mark.parametrize("reset_dow", [0, 8, -1])
    def test_reset_dow_out_of_range_raises(self, reset_dow: int) -> None:
        with pytest.raises(InvalidPolicyError):
            validate_policy("weekly", reset_dow=reset_dow)

    @pytest.mark.parametrize("reset_dom", [0, 32])
    def test_reset_dom_out_of_range_raises(self, reset_dom: int) -> None:
        with pytest.raises(InvalidPolicyError):
            validate_policy("monthly", reset_dom=reset_dom)

    def test_boolean_anchor_is_rejected(self) -> None:
        with pytest.raises(InvalidPolicyError):
            validate_policy("weekly", reset_dow=True)

    def test_weekly_keeps_only_weekday_anchor(self) -> None:
        policy = validate_policy("weekly", reset_dow=3, reset_dom=15)
        assert policy.reset_dow == 3
        assert policy.reset_dom is None

    def test_monthly_defaults_to_first_of_month(self) -> None:
        policy = validate_policy("monthly")
        assert policy.reset_dom == 1
        assert policy.reset_dow is None

    def test_daily_and_once_keep_no_anchor(self) -> None:
        for period in ("daily", "once"):
            policy = validate_policy(period, reset_dow=2, reset_dom=2)
            assert policy.reset_dow is None
            assert policy.reset_dom is None


# ---------------------------------------------------------------------------
# TestCalendarHelpers
# ---------------------------------------------------------------------------


class TestCalendarHelpers:
    def test_start_of_day_drops_time(self) -> None:
        assert start_of_day(datetime(2026, 10, 19, 23, 59, 59, 999)) == MONDAY

    def test_days_in_month_handles_leap_years(self) -> None:
        assert days_in_month(2026, 2) == 28
        assert days_in_month(2028, 2) == 29
        assert days_in_month(2026, 4) == 30

    def test_add_months_wraps_year(self) -> None:
        assert add_months(2026, 12, 1) == (2027, 1)
        assert add_months(2026, 1, -1) == (2025, 12)
        assert add_months(2026, 5, 0) == (2026, 5)

    def test_clamp_day_caps_to_month_length(self) -> None:
        assert clamp_day(2026, 4, 31) == datetime(2026, 4, 30)
        assert clamp_day(2026, 2, 30) == datetime(2026, 2, 28)
        assert clamp_day(2026, 3, 15) == datetime(2026, 3, 15)


# ---------------------------------------------------------------------------
# TestInitialWindowStart
# ---------------------------------------------------------------------------


class TestInitialWindowStart:
    def test_daily_starts_at_midnight(self) -> None:
        assert initial_window_start("daily", now=FRIDAY + timedelta(hours=18)) == FRIDAY

    def test_once_starts_at_midnight(self) -> None:
        assert initial_window_start("once", now=FRIDAY + timedelta(hours=1)) == FRIDAY

    def test_weekly_on_anchor_day_starts_today(self) -> None:
        assert initial_window_start("weekly", reset_dow=1, now=MONDAY + timedelta(hours=8)) == MONDAY

    def test_weekly_created_friday_anchored_wednesday_walks_back(self) -> None:
        start = initial_window_start("weekly", reset_dow=3, now=FRIDAY + timedelta(hours=15))
        assert start == WEDNESDAY
        assert start.isoweekday() == 3

    def test_biweekly_uses_same_anchoring(self) -> None:
        start = initial_window_start("biweekly", reset_dow=6, now=FRIDAY)
        assert start == FRIDAY - timedelta(days=6)

    def test_monthly_anchor_already_passed_this_month(self) -> None:
        assert initial_window_start("monthly", reset_dom=5, now=datetime(2026, 10, 19)) == datetime(
            2026, 10, 5
        )

    def test_monthly_anchor_later_this_month_uses_previous_month(self) -> None:
        assert initial_window_start(
            "monthly", reset_dom=25, now=datetime(2026, 10, 19)
        ) == datetime(2026, 9, 25)

    def test_monthly_anchor_clamped_in_current_month(self) -> None:
        assert initial_window_start(
            "monthly", reset_dom=31, now=datetime(2026, 4, 30, 12)
        ) == datetime(2026, 4, 30)

    def test_monthly_previous_month_is_clamped_to_its_own_length(self) -> None:
        assert initial_window_start(
            "monthly", reset_dom=31, now=datetime(2026, 3, 10)
        ) == datetime(2026, 2, 28)

    def test_monthly_wraps_to_previous_year(self) -> None:
        assert initial_window_start(
            "monthly", reset_dom=20, now=datetime(2026, 1, 5)
        ) == datetime(2025, 12, 20)

    def test_invalid_policy_is_rejected(self) -> None:
        with pytest.raises(InvalidPolicyError):
            initial_window_start("monthly", reset_dom=40, now=MONDAY)


# ---------------------------------------------------------------------------
# TestCurrentWindow
# ---------------------------------------------------------------------------


class TestCurrentWindow:
    def test_daily_window_ignores_last_reset(self) -> None:
        envelope = make_envelope("daily", last_reset_at=MONDAY - timedelta(days=40))
        window = current_window(envelope, FRIDAY + timedelta(hours=10))
        assert window == Window(start=FRIDAY, next=FRIDAY + timedelta(days=1))

    def test_weekly_window_is_seven_days(self) -> None:
        envelope = make_envelope("weekly", last_reset_at=MONDAY, reset_dow=1)
        window = current_window(envelope, WEDNESDAY)
        assert window.start == MONDAY
        assert window.next == MONDAY + timedelta(days=7)

    def test_biweekly_window_is_fourteen_days(self) -> None:
        envelope = make_envelope("biweekly", last_reset_at=MONDAY, reset_dow=1)
        assert current_window(envelope, WEDNESDAY).next == MONDAY + timedelta(days=14)

    def test_monthly_window_ends_on_anchor_next_month(self) -> None:
        envelope = make_envelope("monthly", last_reset_at=datetime(2026, 10, 5), reset_dom=5)
        assert current_window(envelope, MONDAY).next == datetime(2026, 11, 5)

    def test_monthly_window_clamps_short_month(self) -> None:
        envelope = make_envelope("monthly", last_reset_at=datetime(2026, 1, 31), reset_dom=31)
        assert current_window(envelope, datetime(2026, 2, 1)).next == datetime(2026, 2, 28)

    def test_monthly_window_recovers_after_clamped_month(self) -> None:
        envelope = make_envelope("monthly", last_reset_at=datetime(2026, 2, 28), reset_dom=31)
        assert current_window(envelope, datetime(2026, 3, 1)).next == datetime(2026, 3, 31)

    def test_monthly_window_uses_leap_day(self) -> None:
        envelope = make_envelope("monthly", last_reset_at=datetime(2028, 1, 31), reset_dom=31)
        assert current_window(envelope, datetime(2028, 2, 1)).next == datetime(2028, 2, 29)

    def test_monthly_window_across_year_end(self) -> None:
        envelope = make_envelope("monthly", last_reset_at=datetime(2026, 12, 15), reset_dom=15)
        assert current_window(envelope, datetime(2026, 12, 20)).next == datetime(2027, 1, 15)

    def test_once_window_is_unbounded(self) -> None:
        envelope = make_envelope("once", last_reset_at=MONDAY)
        window = current_window(envelope, MONDAY + timedelta(days=3650))
        assert window.next is None
        assert window.query_bounds() == (None, None)
        assert window.contains(datetime(1999, 1, 1))

    def test_window_is_half_open(self) -> None:
        window = Window(start=MONDAY, next=MONDAY + timedelta(days=7))
        assert window.contains(MONDAY)
        assert window.contains(MONDAY + timedelta(days=7) - timedelta(microseconds=1))
        assert not window.contains(MONDAY + timedelta(days=7))
        assert not window.contains(MONDAY - timedelta(microseconds=1))

    def test_is_window_elapsed_at_boundary(self) -> None:
        envelope = make_envelope("weekly", last_reset_at=MONDAY, reset_dow=1)
        assert not is_window_elapsed(envelope, MONDAY + timedelta(days=6, hours=23))
        assert is_window_elapsed(envelope, MONDAY + timedelta(days=7))

    def test_daily_and_once_never_elapse(self) -> None:
        far_future = MONDAY + timedelta(days=1000)
        assert not is_window_elapsed(make_envelope("daily", last_reset_at=MONDAY), far_future)
        assert not is_window_elapsed(make_envelope("once", last_reset_at=MONDAY), far_future)
