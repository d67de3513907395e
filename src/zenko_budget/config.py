# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field


class BudgetConfig(BaseModel, frozen=True):
    """
    Configuration for EnvelopeBudget and the RolloverEngine.

    Attributes:
        max_catchup_cycles: Upper bound on the number of elapsed cycles a
            single roll folds. A clock jump past this bound leaves the rest
            for the next call.
        max_stale_retries: How many times a roll re-reads the envelope after
            a conditional write was rejected before giving up.
        default_transfer_note: Note used for transfers created without one.
        display_unrolled_on_failure: When True, ``activate()`` falls back to
            the last stored envelope if the roll cannot reach storage.

    Example::

        config = BudgetConfig(max_catchup_cycles=120, default_transfer_note="Move")
        budget = EnvelopeBudget(config=config)
    """

    max_catchup_cycles: Annotated[int, Field(gt=0)] = 1000
    max_stale_retries: Annotated[int, Field(ge=0)] = 3
    default_transfer_note: str = "Transfert"
    display_unrolled_on_failure: bool = True
