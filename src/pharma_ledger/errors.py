"""Error taxonomy shared by the transaction engines and the store adapters.

Fatal conditions are exceptions: they stop a transaction before any write is
attempted and reach the caller unchanged. Non-fatal conditions encountered
while reverting stock are recorded as :class:`PartialRevertWarning` values and
returned alongside the committed record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class LedgerError(Exception):
    """Base class for every failure raised by the pharmacy ledger."""


class BusinessRuleViolation(LedgerError):
    """Raised when a requested operation violates a domain constraint."""


class NotFound(BusinessRuleViolation):
    """Raised when a referenced document does not exist."""


class ProductNotFound(NotFound):
    """Raised when a referenced product is missing from the catalogue."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class BatchNotFound(NotFound):
    """Raised when a product does not carry the referenced batch."""

    def __init__(self, batch_id: str, product_id: Optional[str] = None) -> None:
        where = f" in product {product_id}" if product_id else ""
        super().__init__(f"Batch {batch_id} not found{where}")
        self.batch_id = batch_id
        self.product_id = product_id


class DocumentNotFound(NotFound):
    """Raised when a bill, purchase, supplier or payment id is unknown."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"No {collection} document with id {record_id}")
        self.collection = collection
        self.record_id = record_id


class NegativeStock(BusinessRuleViolation):
    """Raised when an operation would drive a batch below zero stock."""

    def __init__(self, product_id: str, batch_ids: tuple[str, ...]) -> None:
        super().__init__(
            f"Stock would go negative for product {product_id} "
            f"(batches: {', '.join(batch_ids)}). Please check quantities."
        )
        self.product_id = product_id
        self.batch_ids = batch_ids


class BatchInUse(BusinessRuleViolation):
    """Raised when deleting a batch that a bill or purchase still references."""


class InvalidDocument(BusinessRuleViolation):
    """Raised when a candidate bill or purchase is structurally invalid."""


class WriteRejected(LedgerError):
    """Raised when the entity store declines an atomic write-set."""


@dataclass(frozen=True)
class PartialRevertWarning:
    """A revert step that could not find the product or batch it targets."""

    message: str
    product_id: Optional[str] = None
    batch_id: Optional[str] = None

    def __str__(self) -> str:
        return self.message


__all__ = [
    "LedgerError",
    "BusinessRuleViolation",
    "NotFound",
    "ProductNotFound",
    "BatchNotFound",
    "DocumentNotFound",
    "NegativeStock",
    "BatchInUse",
    "InvalidDocument",
    "WriteRejected",
    "PartialRevertWarning",
]
