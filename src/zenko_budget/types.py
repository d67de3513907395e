# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# ─── Period ───────────────────────────────────────────────────────────────────

Period = Literal["monthly", "weekly", "biweekly", "daily", "once"]

PERIOD_VALUES = frozenset({"monthly", "weekly", "biweekly", "daily", "once"})

WEEKDAY_PERIODS = frozenset({"weekly", "biweekly"})

# Days added to ``last_reset_at`` to find the end of a fixed-length window.
PERIOD_DAYS: dict[str, int] = {
    "weekly": 7,
    "biweekly": 14,
}

EntryKind = Literal["ENTREE", "SORTIE"]

TransactionKind = Literal["ENTREE", "SORTIE", "TRANSFERT_OUT", "TRANSFERT_IN"]


def to_local(value: datetime) -> datetime:
    """
    Return ``value`` as a naive local wall-clock datetime.

    Aware datetimes are converted to the local zone first; naive values are
    assumed to already be local and are returned untouched.
    """
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# ─── Recurrence policy ────────────────────────────────────────────────────────


class RecurrencePolicy(BaseModel, frozen=True):
    """
    The recurrence of an envelope: its period plus the one anchor it uses.

    Only the anchor selected by ``period`` survives validation. Weekly and
    biweekly envelopes keep ``reset_dow`` (Monday=1 .. Sunday=7), monthly
    envelopes keep ``reset_dom`` (1..31), daily and once keep neither.
    """

    period: Period = "monthly"
    reset_dow: Optional[int] = Field(default=None, ge=1, le=7)
    reset_dom: Optional[int] = Field(default=None, ge=1, le=31)

    @model_validator(mode="before")
    @classmethod
    def select_anchor(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        period = data.get("period", "monthly")
        if period in WEEKDAY_PERIODS:
            if data.get("reset_dow") is None:
                data["reset_dow"] = 1
            data["reset_dom"] = None
        elif period == "monthly":
            if data.get("reset_dom") is None:
                data["reset_dom"] = 1
            data["reset_dow"] = None
        elif period in PERIOD_VALUES:
            data["reset_dow"] = None
            data["reset_dom"] = None
        return data


# ─── Envelope ─────────────────────────────────────────────────────────────────


class EnvelopeConfig(BaseModel):
    """Input model for creating an envelope."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    base: int = Field(..., gt=0, description="Allowance per cycle, in cents")
    period: str = "monthly"
    reset_dow: Optional[int] = None
    reset_dom: Optional[int] = None
    next_base: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class EnvelopeUpdate(BaseModel):
    """
    Partial edit of an envelope's owner-controlled fields.

    Only fields explicitly passed are applied. Passing ``next_base=None``
    clears a pending override. ``name`` and ``base`` cannot be cleared.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    base: Optional[int] = Field(default=None, gt=0)
    next_base: Optional[int] = Field(default=None, ge=0)
    period: Optional[str] = None
    reset_dow: Optional[int] = None
    reset_dom: Optional[int] = None

    @field_validator("name", "base")
    @classmethod
    def must_not_be_cleared(cls, value: object) -> object:
        if value is None:
            raise ValueError("cannot be cleared, omit the field to keep it")
        return value

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class Envelope(BaseModel):
    """Stored state of one envelope."""

    id: str
    name: str = Field(..., min_length=1)
    base: int
    next_base: Optional[int] = None
    carry: int = 0
    period: Period = "monthly"
    reset_dow: Optional[int] = Field(default=None, ge=1, le=7)
    reset_dom: Optional[int] = Field(default=None, ge=1, le=31)
    last_reset_at: datetime
    order: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("base")
    @classmethod
    def base_must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("base must be positive")
        return value

    @field_validator("last_reset_at", "created_at")
    @classmethod
    def as_local_time(cls, value: datetime) -> datetime:
        return to_local(value)

    @property
    def policy(self) -> RecurrencePolicy:
        return RecurrencePolicy(
            period=self.period,
            reset_dow=self.reset_dow,
            reset_dom=self.reset_dom,
        )


# ─── Transaction ──────────────────────────────────────────────────────────────


class Transaction(BaseModel):
    """
    A signed ledger entry. Positive amounts are inflows, negative outflows.
    Transfer legs share a ``group_id``.
    """

    id: str
    envelope_id: str
    amount: int
    note: str = ""
    at: datetime = Field(default_factory=datetime.now)
    group_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("at", "created_at")
    @classmethod
    def as_local_time(cls, value: datetime) -> datetime:
        return to_local(value)

    @property
    def kind(self) -> TransactionKind:
        if self.group_id is not None:
            return "TRANSFERT_OUT" if self.amount < 0 else "TRANSFERT_IN"
        return "SORTIE" if self.amount < 0 else "ENTREE"


class TransactionUpdate(BaseModel):
    """Partial edit of a transaction. ``amount`` is signed."""

    amount: Optional[int] = None
    note: Optional[str] = None
    at: Optional[datetime] = None


# ─── Window ───────────────────────────────────────────────────────────────────


class Window(BaseModel, frozen=True):
    """
    Half-open accounting window ``[start, next)``.

    ``next`` is None for envelopes that never roll (``once``). Such a window
    has no bounds at all when querying transactions.
    """

    start: datetime
    next: Optional[datetime] = None

    @property
    def bounded(self) -> bool:
        return self.next is not None

    def query_bounds(self) -> tuple[Optional[datetime], Optional[datetime]]:
        if self.next is None:
            return None, None
        return self.start, self.next

    def contains(self, instant: datetime) -> bool:
        start, end = self.query_bounds()
        if start is not None and instant < start:
            return False
        if end is not None and instant >= end:
            return False
        return True


# ─── Rollover ─────────────────────────────────────────────────────────────────


class RolloverPatch(BaseModel):
    """
    The compound write applied to an envelope when one cycle is folded.

    When ``expected_base`` is set the write also requires the stored
    ``base`` and ``next_base`` to still equal the values the fold used.
    """

    carry: int
    last_reset_at: datetime
    base: Optional[int] = None
    clear_next_base: bool = False
    expected_base: Optional[int] = None
    expected_next_base: Optional[int] = None


class RolloverResult(BaseModel):
    """Outcome of a roll. ``window`` is the window in effect afterwards."""

    changed: bool
    cycles: int = 0
    envelope: Envelope
    window: Window
    caught_up: bool = True
    stale_retries: int = 0

    @property
    def start(self) -> datetime:
        return self.window.start

    @property
    def next(self) -> Optional[datetime]:
        return self.window.next


# ─── Balance ──────────────────────────────────────────────────────────────────


class BalanceSnapshot(BaseModel):
    """Point-in-time available amount for one envelope."""

    envelope_id: str
    name: str
    period: Period
    base: int
    carry: int
    window_net: int
    available: int
    window_start: datetime
    window_next: Optional[datetime]
    transaction_count: int


# ─── Transfer ─────────────────────────────────────────────────────────────────


class TransferPair(BaseModel):
    """The two legs of one transfer."""

    group_id: str
    outgoing: Transaction
    incoming: Transaction

    @property
    def from_id(self) -> str:
        return self.outgoing.envelope_id

    @property
    def to_id(self) -> str:
        return self.incoming.envelope_id

    @property
    def amount(self) -> int:
        return self.incoming.amount

    @property
    def at(self) -> datetime:
        return self.outgoing.at

    @property
    def note(self) -> str:
        from zenko_budget.transfer import transfer_note

        return transfer_note(self.outgoing.note, self.incoming.note)


class TransferUpdate(BaseModel):
    """Replacement values for both legs of a transfer."""

    from_id: str
    to_id: str
    amount: int = Field(..., gt=0)
    note: Optional[str] = None
    at: Optional[datetime] = None


# ─── Views ────────────────────────────────────────────────────────────────────


class EnvelopeView(BaseModel):
    """Everything a caller needs to display an activated envelope."""

    envelope: Envelope
    window: Window
    transactions: list[Transaction]
    balance: BalanceSnapshot
    rollover: Optional[RolloverResult] = None
    rollover_error: Optional[str] = None
