"""Bill numbers, voucher numbers and synthetic identifiers.

Sequential numbers are derived, never stored as counters: each allocation
receives the records freshly read from the store and recomputes the next
value from them.
"""

from __future__ import annotations

import re
import secrets
import uuid
from datetime import UTC, datetime
from typing import Any, Iterable, Mapping, Optional

from .constants import (
    BATCH_ID_PREFIX,
    BILL_NUMBER_PREFIX,
    BILL_NUMBER_WIDTH,
    VOUCHER_NUMBER_WIDTH,
    VOUCHER_PREFIX,
)


_NON_DIGITS = re.compile(r"\D")


def numeric_suffix(number: Any) -> Optional[int]:
    """Extract the integer formed by every digit in ``number``.

    ``"B0042"`` yields ``42``; values without digits or that are not strings
    yield ``None`` and are ignored by the allocators.
    """

    if not isinstance(number, str):
        return None
    digits = _NON_DIGITS.sub("", number)
    if not digits:
        return None
    return int(digits)


def next_bill_number(bill_records: Iterable[Mapping[str, Any]]) -> str:
    """Return ``B`` + the zero-padded successor of the highest bill number.

    Args:
        bill_records (Iterable[Mapping[str, Any]]): Every bill document as
            read from the store immediately before generating the bill.

    Returns:
        str: The next bill number, e.g. ``"B0007"`` when the highest existing
            numeric suffix is ``6``. Gaps left by deleted bills are not reused.
    """

    highest = 0
    for record in bill_records:
        value = numeric_suffix(record.get("billNumber"))
        if value is not None and value > highest:
            highest = value
    return f"{BILL_NUMBER_PREFIX}{highest + 1:0{BILL_NUMBER_WIDTH}d}"


def next_voucher_number(payment_records: Iterable[Mapping[str, Any]], *, prefix: str = VOUCHER_PREFIX) -> str:
    """Return the voucher number for a new payment (existing count + 1)."""

    count = sum(1 for _ in payment_records)
    return f"{prefix}{count + 1:0{VOUCHER_NUMBER_WIDTH}d}"


def new_batch_id(*, when: Optional[datetime] = None) -> str:
    """Generate an opaque batch id that is unique even within one save.

    The microsecond timestamp orders ids roughly by creation while the random
    token separates ids allocated within the same microsecond.
    """

    when = when or datetime.now(UTC)
    return f"{BATCH_ID_PREFIX}{when.strftime('%Y%m%d%H%M%S%f')}_{secrets.token_hex(4)}"


def new_document_id() -> str:
    return uuid.uuid4().hex


__all__ = [
    "numeric_suffix",
    "next_bill_number",
    "next_voucher_number",
    "new_batch_id",
    "new_document_id",
]
