# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Window calculator.

Pure functions that map a recurrence policy and a reference instant to an
accounting window. All instants are naive local wall-clock datetimes and
every window boundary is a local midnight.
"""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from zenko_budget.errors import InvalidPolicyError
from zenko_budget.types import (
    PERIOD_DAYS,
    PERIOD_VALUES,
    WEEKDAY_PERIODS,
    Envelope,
    RecurrencePolicy,
    Window,
    to_local,
)


def resolve_now(now: datetime | None = None) -> datetime:
    """Return ``now`` as local naive time, defaulting to the current instant."""
    if now is None:
        return datetime.now()
    return to_local(now)


def start_of_day(value: datetime) -> datetime:
    """Return local midnight of the day containing ``value``."""
    return to_local(value).replace(hour=0, minute=0, second=0, microsecond=0)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    """Shift a (year, month) pair by ``delta`` months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def clamp_day(year: int, month: int, day: int) -> datetime:
    """
    Midnight of ``day`` in the given month, clamped to the month's last day.

    Asking for the 31st of a 30-day month yields the 30th.
    """
    return datetime(year, month, min(day, days_in_month(year, month)))


def _check_anchor(field: str, value: object, low: int, high: int) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPolicyError(field, value, "must be an integer")
    if not low <= value <= high:
        raise InvalidPolicyError(field, value, f"must be between {low} and {high}")


def validate_policy(
    period: str,
    reset_dow: int | None = None,
    reset_dom: int | None = None,
) -> RecurrencePolicy:
    """
    Validate a recurrence configuration and return its normalised policy.

    Args:
        period: One of ``'monthly'``, ``'weekly'``, ``'biweekly'``,
            ``'daily'`` or ``'once'``.
        reset_dow: ISO weekday (Monday=1 .. Sunday=7) for weekly periods.
        reset_dom: Day of month (1..31) for monthly periods.

    Returns:
        A :class:`RecurrencePolicy` holding only the anchor the period uses,
        with a missing anchor defaulted to 1.

    Raises:
        InvalidPolicyError: If the period is unknown or an anchor is out of
            range.
    """
    if period not in PERIOD_VALUES:
        raise InvalidPolicyError(
            "period", period, f"expected one of {sorted(PERIOD_VALUES)}"
        )
    _check_anchor("reset_dow", reset_dow, 1, 7)
    _check_anchor("reset_dom", reset_dom, 1, 31)
    return RecurrencePolicy(period=period, reset_dow=reset_dow, reset_dom=reset_dom)


def initial_window_start(
    period: str,
    reset_dow: int | None = None,
    reset_dom: int | None = None,
    now: datetime | None = None,
) -> datetime:
    """
    Return the start of the window an envelope created at ``now`` begins in.

    Args:
        period: The recurrence period.
        reset_dow: Weekday anchor for weekly and biweekly periods.
        reset_dom: Day-of-month anchor for monthly periods.
        now: Creation instant. Defaults to the current time.

    Returns:
        The latest reset boundary at or before ``now``'s midnight. For daily
        and once envelopes that is simply today's midnight.

    Raises:
        InvalidPolicyError: If the policy is malformed.
    """
    policy = validate_policy(period, reset_dow, reset_dom)
    today = start_of_day(resolve_now(now))

    if policy.period in WEEKDAY_PERIODS:
        assert policy.reset_dow is not None
        days_back = (today.isoweekday() - policy.reset_dow) % 7
        return today - timedelta(days=days_back)

    if policy.period == "monthly":
        assert policy.reset_dom is not None
        candidate = clamp_day(today.year, today.month, policy.reset_dom)
        if candidate > today:
            year, month = add_months(today.year, today.month, -1)
            candidate = clamp_day(year, month, policy.reset_dom)
        return candidate

    # daily, once
    return today


def current_window(envelope: Envelope, now: datetime | None = None) -> Window:
    """
    Compute the half-open window ``[start, next)`` currently recorded for
    an envelope.

    Daily windows always cover the day of ``now`` and ignore the stored
    ``last_reset_at``. Once windows have no upper bound. Monthly windows end
    on the anchor day of the following month, clamped afresh for that
    month, so an envelope anchored on the 31st returns to the 31st after
    a short month.
    """
    policy = envelope.policy

    if policy.period == "daily":
        start = start_of_day(resolve_now(now))
        return Window(start=start, next=start + timedelta(days=1))

    start = start_of_day(envelope.last_reset_at)

    if policy.period in PERIOD_DAYS:
        return Window(start=start, next=start + timedelta(days=PERIOD_DAYS[policy.period]))

    if policy.period == "monthly":
        assert policy.reset_dom is not None
        year, month = add_months(start.year, start.month, 1)
        return Window(start=start, next=clamp_day(year, month, policy.reset_dom))

    # once
    return Window(start=start, next=None)


def is_window_elapsed(envelope: Envelope, now: datetime | None = None) -> bool:
    """Determine whether ``now`` has reached the end of the recorded window."""
    window = current_window(envelope, now)
    if window.next is None:
        return False
    return resolve_now(now) >= window.next
