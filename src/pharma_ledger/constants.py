"""Enumerations shared across the pharmacy ledger modules.

Centralises domain constants so that the persistence adapters, the
transaction engines, and the command-line front-end rely on a single source of
truth for collection names, number formats, and write kinds.
"""

from __future__ import annotations

from enum import Enum


# Central schema version expected by all layers when validating workbooks.
EXPECTED_SCHEMA_VERSION = "1.0.0"

BILL_NUMBER_PREFIX = "B"
BILL_NUMBER_WIDTH = 4
VOUCHER_PREFIX = "PV-"
VOUCHER_NUMBER_WIDTH = 4
BATCH_ID_PREFIX = "batch_"


class Collection(str, Enum):
    """Enumerate the per-user document collections held by the entity store."""

    PRODUCTS = "products"
    BILLS = "bills"
    PURCHASES = "purchases"
    COMPANIES = "companies"
    SUPPLIERS = "suppliers"
    PAYMENTS = "payments"


class WriteKind(str, Enum):
    """Enumerate the operations a write-set may contain."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PaymentMethod(str, Enum):
    """Enumerate supported supplier payment mechanisms."""

    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"
    OTHER = "Other"


class SheetName(str, Enum):
    """Enumerate the workbook sheet names managed by the workbook store."""

    PRODUCTS = "Products"
    BILLS = "Bills"
    PURCHASES = "Purchases"
    COMPANIES = "Companies"
    SUPPLIERS = "Suppliers"
    PAYMENTS = "Payments"


SHEET_FOR_COLLECTION: dict[Collection, SheetName] = {
    Collection.PRODUCTS: SheetName.PRODUCTS,
    Collection.BILLS: SheetName.BILLS,
    Collection.PURCHASES: SheetName.PURCHASES,
    Collection.COMPANIES: SheetName.COMPANIES,
    Collection.SUPPLIERS: SheetName.SUPPLIERS,
    Collection.PAYMENTS: SheetName.PAYMENTS,
}


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "BILL_NUMBER_PREFIX",
    "BILL_NUMBER_WIDTH",
    "VOUCHER_PREFIX",
    "VOUCHER_NUMBER_WIDTH",
    "BATCH_ID_PREFIX",
    "Collection",
    "WriteKind",
    "PaymentMethod",
    "SheetName",
    "SHEET_FOR_COLLECTION",
]
