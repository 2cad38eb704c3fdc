"""Pure batch-level stock arithmetic.

Every helper takes a product's batches as a tuple and returns a new tuple, so
callers can build candidate product states without mutating the snapshot
they read. Whether a negative result is rejected or floored at zero is a
caller decision: bill paths reject, purchase paths clamp.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from .errors import BatchNotFound, NegativeStock
from .models import Batch


def find_by_id(batches: Iterable[Batch], batch_id: str) -> Optional[Batch]:
    for batch in batches:
        if batch.id == batch_id:
            return batch
    return None


def find_by_number(batches: Iterable[Batch], batch_number: str) -> Optional[Batch]:
    """Return the batch whose human batch number matches exactly.

    Matching is case-sensitive and scoped to the batches of one product; the
    same batch number may legitimately exist under other products.
    """

    for batch in batches:
        if batch.batch_number == batch_number:
            return batch
    return None


def apply_delta(batches: tuple[Batch, ...], batch_id: str, delta: int) -> tuple[Batch, ...]:
    """Add ``delta`` (possibly negative) to the stock of ``batch_id``.

    Args:
        batches (tuple[Batch, ...]): Current batches of one product.
        batch_id (str): Opaque id of the batch to adjust.
        delta (int): Signed quantity change.

    Returns:
        tuple[Batch, ...]: New batches with the adjusted stock. The result may
            hold a negative stock; apply :func:`clamp_to_zero` or
            :func:`reject_negative` according to the caller's policy.

    Raises:
        BatchNotFound: If no batch carries ``batch_id``.
    """

    if find_by_id(batches, batch_id) is None:
        raise BatchNotFound(batch_id)
    return tuple(
        replace(batch, stock=batch.stock + delta) if batch.id == batch_id else batch
        for batch in batches
    )


def upsert_batch(batches: tuple[Batch, ...], batch: Batch) -> tuple[Batch, ...]:
    """Append ``batch`` when its id is unknown, otherwise replace it in place."""

    if find_by_id(batches, batch.id) is None:
        return (*batches, batch)
    return tuple(batch if existing.id == batch.id else existing for existing in batches)


def remove_batch(batches: tuple[Batch, ...], batch_id: str) -> tuple[Batch, ...]:
    if find_by_id(batches, batch_id) is None:
        raise BatchNotFound(batch_id)
    return tuple(batch for batch in batches if batch.id != batch_id)


def clamp_to_zero(batches: tuple[Batch, ...]) -> tuple[Batch, ...]:
    """Floor every batch stock at zero."""

    return tuple(replace(batch, stock=0) if batch.stock < 0 else batch for batch in batches)


def negative_batches(batches: Iterable[Batch]) -> tuple[str, ...]:
    return tuple(batch.id for batch in batches if batch.stock < 0)


def reject_negative(batches: tuple[Batch, ...], *, product_id: str) -> tuple[Batch, ...]:
    """Return ``batches`` unchanged, or raise when any stock is below zero.

    Raises:
        NegativeStock: Listing every offending batch of ``product_id``.
    """

    offenders = negative_batches(batches)
    if offenders:
        raise NegativeStock(product_id, offenders)
    return batches


def total_stock(batches: Iterable[Batch]) -> int:
    return sum(batch.stock for batch in batches)


__all__ = [
    "find_by_id",
    "find_by_number",
    "apply_delta",
    "upsert_batch",
    "remove_batch",
    "clamp_to_zero",
    "negative_batches",
    "reject_negative",
    "total_stock",
]
