# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Transfer pairing.

A transfer is two transactions sharing one ``group_id``: a negative leg on
the source envelope and a positive leg of the same magnitude on the
destination. Each leg's note carries an arrow annotation naming the other
envelope. Both legs are always written and removed together.
"""
from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from zenko_budget.errors import TransferIntegrityError
from zenko_budget.transaction import build_transaction
from zenko_budget.types import Transaction, TransferPair

OUTGOING_MARKER = " → vers "
INCOMING_MARKER = " ← de "


def annotate_outgoing(note: str, to_label: str) -> str:
    return f"{note}{OUTGOING_MARKER}{to_label}"


def annotate_incoming(note: str, from_label: str) -> str:
    return f"{note}{INCOMING_MARKER}{from_label}"


def strip_annotation(note: str) -> str:
    """
    Best-effort recovery of a transfer note from a single leg.

    Splits on the last marker, so a label that itself contains a marker
    leaves part of the label behind. Prefer :func:`transfer_note` when both
    legs are at hand.
    """
    for marker in (OUTGOING_MARKER, INCOMING_MARKER):
        head, found, _ = note.rpartition(marker)
        if found:
            return head
    return note


def transfer_note(outgoing_note: str, incoming_note: str) -> str:
    """
    Recover the note a transfer was created with from both of its legs.

    The note is the prefix ``p`` for which the outgoing leg reads
    ``p + OUTGOING_MARKER + ...`` and the incoming leg reads
    ``p + INCOMING_MARKER + ...``. The two markers differ, so at most one
    prefix fits, whatever the envelope names contain.
    """
    position = outgoing_note.find(OUTGOING_MARKER)
    while position != -1:
        head = outgoing_note[:position]
        if incoming_note.startswith(head + INCOMING_MARKER):
            return head
        position = outgoing_note.find(OUTGOING_MARKER, position + 1)
    return strip_annotation(outgoing_note)


def build_transfer_legs(
    from_id: str,
    to_id: str,
    amount: int,
    note: str,
    at: datetime | None = None,
    from_label: str | None = None,
    to_label: str | None = None,
    group_id: str | None = None,
) -> TransferPair:
    """
    Build both legs of a transfer.

    ``amount`` is the transferred magnitude; its sign is ignored. Labels
    default to the envelope ids.

    Raises ValueError for a zero amount or a transfer onto the same envelope.
    """
    if from_id == to_id:
        raise ValueError("Cannot transfer an envelope onto itself")
    magnitude = abs(amount)
    if magnitude == 0:
        raise ValueError("Transfer amount must be non-zero")

    group_id = group_id or str(uuid4())
    outgoing = build_transaction(
        envelope_id=from_id,
        amount=-magnitude,
        note=annotate_outgoing(note, to_label or to_id),
        at=at,
        group_id=group_id,
    )
    incoming = build_transaction(
        envelope_id=to_id,
        amount=magnitude,
        note=annotate_incoming(note, from_label or from_id),
        at=outgoing.at,
        group_id=group_id,
    )
    return TransferPair(group_id=group_id, outgoing=outgoing, incoming=incoming)


def pair_from_legs(group_id: str, legs: list[Transaction]) -> TransferPair:
    """
    Identify the outgoing (negative) and incoming (positive) legs of a group.

    Raises:
        TransferIntegrityError: Unless the group holds exactly two legs, one
            negative and one positive, on two different envelopes.
    """
    if len(legs) != 2:
        raise TransferIntegrityError(group_id, f"expected 2 legs, found {len(legs)}")

    outgoing = [leg for leg in legs if leg.amount < 0]
    incoming = [leg for leg in legs if leg.amount > 0]
    if len(outgoing) != 1 or len(incoming) != 1:
        raise TransferIntegrityError(group_id, "expected one negative and one positive leg")
    if outgoing[0].envelope_id == incoming[0].envelope_id:
        raise TransferIntegrityError(group_id, "both legs belong to the same envelope")
    if -outgoing[0].amount != incoming[0].amount:
        raise TransferIntegrityError(group_id, "legs differ in magnitude")

    return TransferPair(group_id=group_id, outgoing=outgoing[0], incoming=incoming[0])
