# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime


class ZenkoBudgetError(Exception):
    """Base class for all zenko-budget errors."""

    def __init__(self, message: str, code: str = "BUDGET_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidPolicyError(ZenkoBudgetError):
    """
    Raised when a recurrence policy is malformed.

    Attributes:
        field: The offending field (``period``, ``reset_dow`` or ``reset_dom``).
        value: The rejected value.
    """

    def __init__(self, field: str, value: object, reason: str) -> None:
        super().__init__(
            f"Invalid recurrence policy: {field}={value!r} ({reason}).",
            code="INVALID_POLICY",
        )
        self.field = field
        self.value = value


class StaleRolloverError(ZenkoBudgetError):
    """
    Raised when a conditional envelope write is rejected because another
    writer changed the envelope since it was read: its window advanced, or
    the allowance a fold was computed from was edited.

    Attributes:
        envelope_id: The envelope whose write was rejected.
        expected: The ``last_reset_at`` the writer read.
        actual: The ``last_reset_at`` found in storage.
    """

    def __init__(
        self,
        envelope_id: str,
        expected: datetime,
        actual: datetime,
        reason: str | None = None,
    ) -> None:
        if reason is None:
            reason = (
                f"expected last_reset_at {expected.isoformat()}, found {actual.isoformat()}"
            )
        super().__init__(
            f"Envelope '{envelope_id}' was changed by another writer: {reason}.",
            code="STALE_ROLLOVER",
        )
        self.envelope_id = envelope_id
        self.expected = expected
        self.actual = actual


class TransferIntegrityError(ZenkoBudgetError):
    """Raised when a transfer group does not hold exactly one outgoing and one incoming leg."""

    def __init__(self, group_id: str, reason: str) -> None:
        super().__init__(
            f"Transfer '{group_id}' is inconsistent: {reason}.",
            code="TRANSFER_INTEGRITY",
        )
        self.group_id = group_id


class StorageUnavailableError(ZenkoBudgetError):
    """Raised by storage backends when a read or write cannot be completed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORAGE_UNAVAILABLE")


class EnvelopeNotFoundError(ZenkoBudgetError):
    """Raised when a referenced envelope does not exist for the owner."""

    def __init__(self, envelope_id: str) -> None:
        super().__init__(
            f"Envelope '{envelope_id}' does not exist. "
            "Create it first with EnvelopeBudget.create_envelope().",
            code="ENVELOPE_NOT_FOUND",
        )
        self.envelope_id = envelope_id


class TransactionNotFoundError(ZenkoBudgetError):
    """Raised when a referenced transaction does not exist for the owner."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            f"Transaction '{transaction_id}' does not exist.",
            code="TRANSACTION_NOT_FOUND",
        )
        self.transaction_id = transaction_id
