"""Domain records exchanged between the engines and the entity store.

Every record is an immutable dataclass. The store speaks plain dictionaries
("records") whose keys follow the persisted camelCase field layout, so each
type comes with a ``*_from_record`` / ``*_to_record`` pair. Money values are
normalized into :class:`~decimal.Decimal` and stock quantities into ``int`` on
the way in, which hides the encodings individual stores use (workbook cells,
JSON text, in-memory dictionaries).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

from .constants import PaymentMethod


Record = dict[str, Any]


@dataclass(frozen=True)
class Batch:
    """A dated, priced lot of stock for one product."""

    id: str
    batch_number: str
    expiry_date: str
    stock: int
    mrp: Decimal
    purchase_price: Decimal


@dataclass(frozen=True)
class Product:
    """Catalogue entry owning an unordered collection of batches."""

    id: str
    name: str
    company: str
    hsn_code: str
    gst: Decimal
    batches: tuple[Batch, ...] = ()
    composition: Optional[str] = None


@dataclass(frozen=True)
class CartItem:
    """One bill line, snapshotting the product and batch it was sold from."""

    product_id: str
    product_name: str
    batch_id: str
    batch_number: str
    expiry_date: str
    hsn_code: str
    quantity: int
    mrp: Decimal
    gst: Decimal
    total: Decimal
    composition: Optional[str] = None


@dataclass(frozen=True)
class Bill:
    """A committed sales bill."""

    id: str
    bill_number: str
    date: str
    customer_name: str
    items: tuple[CartItem, ...]
    sub_total: Decimal
    total_gst: Decimal
    grand_total: Decimal


@dataclass(frozen=True)
class BillDraft:
    """A bill the caller wants to generate or use as the edited version."""

    customer_name: str
    items: tuple[CartItem, ...]
    date: Optional[str] = None


@dataclass(frozen=True)
class PurchaseLineItem:
    """One purchase invoice line, resolved to a product and batch on save."""

    is_new_product: bool
    product_name: str
    company: str
    hsn_code: str
    gst: Decimal
    batch_number: str
    expiry_date: str
    quantity: int
    mrp: Decimal
    purchase_price: Decimal
    composition: Optional[str] = None
    product_id: Optional[str] = None
    batch_id: Optional[str] = None


@dataclass(frozen=True)
class Purchase:
    """A supplier invoice and the line items it added to stock."""

    id: str
    invoice_number: str
    invoice_date: str
    supplier: str
    items: tuple[PurchaseLineItem, ...]
    total_amount: Decimal


@dataclass(frozen=True)
class PurchaseDraft:
    """Header and lines of a purchase before it is resolved and saved."""

    invoice_number: str
    invoice_date: str
    supplier: str
    items: tuple[PurchaseLineItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Company:
    id: str
    name: str


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    address: str = ""
    phone: str = ""
    gstin: str = ""
    opening_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class Payment:
    id: str
    supplier_name: str
    date: str
    voucher_number: str
    amount: Decimal
    method: PaymentMethod
    remarks: Optional[str] = None


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """Coerce numbers, strings and ``None`` into :class:`Decimal`."""

    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_int(value: Any) -> int:
    """Coerce stock-like values (``3``, ``3.0``, ``"3"``) into ``int``.

    Raises:
        ValueError: If ``value`` carries a fractional part.
    """

    if value is None or value == "":
        return 0
    number = to_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"Expected a whole number, got {value!r}")
    return int(number)


_TRUE_TEXT = {"true", "yes", "1"}
_FALSE_TEXT = {"false", "no", "0", ""}


def to_flag(value: Any) -> bool:
    """Read a boolean field stored as a real bool, a 0/1 number or text."""

    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, Decimal)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _text(value: Any) -> str:
    return str(value) if value is not None else ""


# ---------------------------------------------------------------------------
# Batch / Product
# ---------------------------------------------------------------------------


def batch_from_record(record: Mapping[str, Any]) -> Batch:
    return Batch(
        id=str(record["id"]),
        batch_number=_text(record.get("batchNumber")),
        expiry_date=_text(record.get("expiryDate")),
        stock=to_int(record.get("stock")),
        mrp=to_decimal(record.get("mrp")),
        purchase_price=to_decimal(record.get("purchasePrice")),
    )


def batch_to_record(batch: Batch) -> Record:
    return {
        "id": batch.id,
        "batchNumber": batch.batch_number,
        "expiryDate": batch.expiry_date,
        "stock": batch.stock,
        "mrp": batch.mrp,
        "purchasePrice": batch.purchase_price,
    }


def batches_to_records(batches: tuple[Batch, ...]) -> list[Record]:
    return [batch_to_record(batch) for batch in batches]


def product_from_record(record: Mapping[str, Any]) -> Product:
    """Convert a stored product document into a :class:`Product`."""

    return Product(
        id=str(record["id"]),
        name=_text(record.get("name")),
        company=_text(record.get("company")),
        hsn_code=_text(record.get("hsnCode")),
        gst=to_decimal(record.get("gst")),
        batches=tuple(batch_from_record(raw) for raw in record.get("batches") or ()),
        composition=_optional_text(record.get("composition")),
    )


def product_to_record(product: Product) -> Record:
    """Convert a :class:`Product` into its persisted document layout."""

    return {
        "id": product.id,
        "name": product.name,
        "company": product.company,
        "hsnCode": product.hsn_code,
        "gst": product.gst,
        "composition": product.composition,
        "batches": batches_to_records(product.batches),
    }


# ---------------------------------------------------------------------------
# Bills
# ---------------------------------------------------------------------------


def cart_item_from_record(record: Mapping[str, Any]) -> CartItem:
    return CartItem(
        product_id=str(record["productId"]),
        product_name=_text(record.get("productName")),
        batch_id=str(record["batchId"]),
        batch_number=_text(record.get("batchNumber")),
        expiry_date=_text(record.get("expiryDate")),
        hsn_code=_text(record.get("hsnCode")),
        quantity=to_int(record.get("quantity")),
        mrp=to_decimal(record.get("mrp")),
        gst=to_decimal(record.get("gst")),
        total=to_decimal(record.get("total")),
        composition=_optional_text(record.get("composition")),
    )


def cart_item_to_record(item: CartItem) -> Record:
    return {
        "productId": item.product_id,
        "productName": item.product_name,
        "composition": item.composition,
        "batchId": item.batch_id,
        "batchNumber": item.batch_number,
        "expiryDate": item.expiry_date,
        "hsnCode": item.hsn_code,
        "quantity": item.quantity,
        "mrp": item.mrp,
        "gst": item.gst,
        "total": item.total,
    }


def bill_from_record(record: Mapping[str, Any]) -> Bill:
    """Convert a stored bill document into a :class:`Bill`."""

    return Bill(
        id=str(record["id"]),
        bill_number=_text(record.get("billNumber")),
        date=_text(record.get("date")),
        customer_name=_text(record.get("customerName")),
        items=tuple(cart_item_from_record(raw) for raw in record.get("items") or ()),
        sub_total=to_decimal(record.get("subTotal")),
        total_gst=to_decimal(record.get("totalGst")),
        grand_total=to_decimal(record.get("grandTotal")),
    )


def bill_to_record(bill: Bill) -> Record:
    """Convert a :class:`Bill` into its persisted document layout."""

    return {
        "id": bill.id,
        "billNumber": bill.bill_number,
        "date": bill.date,
        "customerName": bill.customer_name,
        "items": [cart_item_to_record(item) for item in bill.items],
        "subTotal": bill.sub_total,
        "totalGst": bill.total_gst,
        "grandTotal": bill.grand_total,
    }


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


def line_item_from_record(record: Mapping[str, Any]) -> PurchaseLineItem:
    return PurchaseLineItem(
        is_new_product=to_flag(record.get("isNewProduct")),
        product_name=_text(record.get("productName")),
        company=_text(record.get("company")),
        hsn_code=_text(record.get("hsnCode")),
        gst=to_decimal(record.get("gst")),
        batch_number=_text(record.get("batchNumber")),
        expiry_date=_text(record.get("expiryDate")),
        quantity=to_int(record.get("quantity")),
        mrp=to_decimal(record.get("mrp")),
        purchase_price=to_decimal(record.get("purchasePrice")),
        composition=_optional_text(record.get("composition")),
        product_id=_optional_text(record.get("productId")),
        batch_id=_optional_text(record.get("batchId")),
    )


def line_item_to_record(item: PurchaseLineItem) -> Record:
    return {
        "isNewProduct": item.is_new_product,
        "productName": item.product_name,
        "company": item.company,
        "hsnCode": item.hsn_code,
        "gst": item.gst,
        "composition": item.composition,
        "productId": item.product_id,
        "batchId": item.batch_id,
        "batchNumber": item.batch_number,
        "expiryDate": item.expiry_date,
        "quantity": item.quantity,
        "mrp": item.mrp,
        "purchasePrice": item.purchase_price,
    }


def purchase_from_record(record: Mapping[str, Any]) -> Purchase:
    """Convert a stored purchase document into a :class:`Purchase`."""

    return Purchase(
        id=str(record["id"]),
        invoice_number=_text(record.get("invoiceNumber")),
        invoice_date=_text(record.get("invoiceDate")),
        supplier=_text(record.get("supplier")),
        items=tuple(line_item_from_record(raw) for raw in record.get("items") or ()),
        total_amount=to_decimal(record.get("totalAmount")),
    )


def purchase_to_record(purchase: Purchase) -> Record:
    """Convert a :class:`Purchase` into its persisted document layout."""

    return {
        "id": purchase.id,
        "invoiceNumber": purchase.invoice_number,
        "invoiceDate": purchase.invoice_date,
        "supplier": purchase.supplier,
        "items": [line_item_to_record(item) for item in purchase.items],
        "totalAmount": purchase.total_amount,
    }


def purchase_draft_from_record(record: Mapping[str, Any]) -> PurchaseDraft:
    """Build a :class:`PurchaseDraft` from caller-supplied JSON-like data."""

    return PurchaseDraft(
        invoice_number=_text(record.get("invoiceNumber")),
        invoice_date=_text(record.get("invoiceDate")),
        supplier=_text(record.get("supplier")),
        items=tuple(line_item_from_record(raw) for raw in record.get("items") or ()),
    )


# ---------------------------------------------------------------------------
# Reference records
# ---------------------------------------------------------------------------


def company_from_record(record: Mapping[str, Any]) -> Company:
    return Company(id=str(record["id"]), name=_text(record.get("name")))


def company_to_record(company: Company) -> Record:
    return {"id": company.id, "name": company.name}


def supplier_from_record(record: Mapping[str, Any]) -> Supplier:
    return Supplier(
        id=str(record["id"]),
        name=_text(record.get("name")),
        address=_text(record.get("address")),
        phone=_text(record.get("phone")),
        gstin=_text(record.get("gstin")),
        opening_balance=to_decimal(record.get("openingBalance")),
    )


def supplier_to_record(supplier: Supplier) -> Record:
    return {
        "id": supplier.id,
        "name": supplier.name,
        "address": supplier.address,
        "phone": supplier.phone,
        "gstin": supplier.gstin,
        "openingBalance": supplier.opening_balance,
    }


def payment_from_record(record: Mapping[str, Any]) -> Payment:
    return Payment(
        id=str(record["id"]),
        supplier_name=_text(record.get("supplierName")),
        date=_text(record.get("date")),
        voucher_number=_text(record.get("voucherNumber")),
        amount=to_decimal(record.get("amount")),
        method=PaymentMethod(record.get("method") or PaymentMethod.CASH.value),
        remarks=_optional_text(record.get("remarks")),
    )


def payment_to_record(payment: Payment) -> Record:
    return {
        "id": payment.id,
        "supplierName": payment.supplier_name,
        "date": payment.date,
        "voucherNumber": payment.voucher_number,
        "amount": payment.amount,
        "method": payment.method.value,
        "remarks": payment.remarks,
    }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def require_positive_quantity(quantity: int) -> None:
    """Validate that a quantity is strictly positive.

    Raises:
        ValueError: If ``quantity`` is zero or negative.
    """

    if quantity <= 0:
        raise ValueError(f"Quantity must be greater than zero (got {quantity})")


def require_nonnegative_money(amount: Decimal) -> None:
    """Validate that a monetary value is nonnegative.

    Raises:
        ValueError: If ``amount`` is less than zero.
    """

    if amount < Decimal("0"):
        raise ValueError(f"Amount must be zero or positive (got {amount})")
