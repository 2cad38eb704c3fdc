"""Business logic layer for the pharmacy ledger.

Every public operation follows the same shape: read a fresh snapshot from the
injected entity store, let the sale or purchase engine compute the write-set,
and hand that write-set to the store as one atomic commit. Nothing is cached
between operations, so bill numbers and stock levels are always derived from
what the store holds at the moment of the call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from . import data_manager, ledger, log, numbering, purchases, sales
from .constants import EXPECTED_SCHEMA_VERSION, Collection, PaymentMethod
from .errors import (
    BatchInUse,
    DocumentNotFound,
    InvalidDocument,
    PartialRevertWarning,
    ProductNotFound,
    WriteRejected,
)
from .models import (
    Batch,
    Bill,
    BillDraft,
    Company,
    Payment,
    Product,
    Purchase,
    PurchaseDraft,
    Supplier,
    batches_to_records,
    bill_from_record,
    company_from_record,
    company_to_record,
    payment_from_record,
    payment_to_record,
    product_from_record,
    product_to_record,
    purchase_from_record,
    require_nonnegative_money,
    supplier_from_record,
    supplier_to_record,
)
from .store import EntityStore, TransactionPlan, WriteSet


@dataclass(frozen=True)
class RuntimeContext:
    """Container for configuration and the entity store used by the BLL."""

    settings: data_manager.ConfigSettings
    store: EntityStore


@dataclass(frozen=True)
class TransactionResult:
    """Committed record plus the non-fatal warnings raised while reverting."""

    record: Any
    warnings: List[PartialRevertWarning] = field(default_factory=list)


@dataclass(frozen=True)
class ProductCommand:
    """User intent for creating or renaming a catalogue product."""

    name: str
    company: str
    hsn_code: str
    gst: Decimal
    composition: Optional[str] = None


@dataclass(frozen=True)
class BatchCommand:
    """User intent for registering a batch by hand."""

    batch_number: str
    expiry_date: str
    stock: int
    mrp: Decimal
    purchase_price: Decimal


@dataclass(frozen=True)
class SupplierCommand:
    name: str
    address: str = ""
    phone: str = ""
    gstin: str = ""
    opening_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentCommand:
    """User intent for recording a payment made to a supplier."""

    supplier_name: str
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    date: Optional[str] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class StockRow:
    """One line of the per-batch stock listing."""

    product_id: str
    product_name: str
    company: str
    batch_id: str
    batch_number: str
    expiry_date: str
    stock: int
    mrp: Decimal


def load_runtime_context(config_path: Optional[Path] = None) -> RuntimeContext:
    """Load configuration settings and open the workbook-backed store.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file. When omitted the data layer performs its upward search from
            the current working directory.

    Returns:
        RuntimeContext: Settings bundled with a :class:`WorkbookStore`.

    Raises:
        FileNotFoundError: If the configuration file or workbook cannot be
            located.
        KeyError: When mandatory configuration options are missing.
    """

    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    store = data_manager.WorkbookStore(settings.data_file)
    log.info("Loaded runtime context for workbook '%s'", settings.data_file)
    return RuntimeContext(settings=settings, store=store)


def ensure_schema_version(context: RuntimeContext) -> None:
    """Validate workbook compatibility before mutating state.

    Raises:
        RuntimeError: If the schema version declared in the configuration does
            not match ``EXPECTED_SCHEMA_VERSION``.
    """

    if context.settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            context.settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, context.settings.schema_version)
        )

    log.debug("Schema version '%s' validated", context.settings.schema_version)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _read(context: RuntimeContext, collection: Collection) -> List[Dict[str, Any]]:
    return context.store.read_snapshot(collection)


def _commit(context: RuntimeContext, plan: TransactionPlan, action: str) -> TransactionResult:
    """Commit ``plan`` and wrap its record, logging the outcome.

    Raises:
        WriteRejected: Re-raised unchanged when the store declines the
            write-set.
    """

    try:
        context.store.commit(plan.write_set)
    except WriteRejected as exc:
        log.error("Store rejected %s: %s", action, exc)
        raise
    for warning in plan.warnings:
        log.warning("%s completed with warning: %s", action, warning)
    log.info(
        "Committed %s (%d writes, products %s, %d warnings)",
        action,
        len(plan.write_set),
        plan.write_set.touched(Collection.PRODUCTS),
        len(plan.warnings),
    )
    return TransactionResult(record=plan.record, warnings=list(plan.warnings))


def _commit_single(context: RuntimeContext, write_set: WriteSet, action: str) -> None:
    try:
        context.store.commit(write_set)
    except WriteRejected as exc:
        log.error("Store rejected %s: %s", action, exc)
        raise
    log.info("Committed %s", action)


def _fields(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in record.items() if key != "id"}


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------


def list_products(context: RuntimeContext) -> List[Product]:
    """Return every product in store order, read fresh."""

    return [product_from_record(record) for record in _read(context, Collection.PRODUCTS)]


def list_bills(context: RuntimeContext) -> List[Bill]:
    return [bill_from_record(record) for record in _read(context, Collection.BILLS)]


def list_purchases(context: RuntimeContext) -> List[Purchase]:
    return [purchase_from_record(record) for record in _read(context, Collection.PURCHASES)]


def list_companies(context: RuntimeContext) -> List[Company]:
    return [company_from_record(record) for record in _read(context, Collection.COMPANIES)]


def list_suppliers(context: RuntimeContext) -> List[Supplier]:
    return [supplier_from_record(record) for record in _read(context, Collection.SUPPLIERS)]


def list_payments(context: RuntimeContext) -> List[Payment]:
    return [payment_from_record(record) for record in _read(context, Collection.PAYMENTS)]


def get_product(context: RuntimeContext, product_id: str) -> Product:
    """Resolve a product by id.

    Raises:
        ProductNotFound: If ``product_id`` is absent from the store.
    """

    for product in list_products(context):
        if product.id == product_id:
            return product
    log.warning("Product lookup failed for id '%s'", product_id)
    raise ProductNotFound(product_id)


def get_bill(context: RuntimeContext, bill_id: str) -> Bill:
    """Resolve a bill by document id.

    Raises:
        DocumentNotFound: If no bill carries ``bill_id``.
    """

    for bill in list_bills(context):
        if bill.id == bill_id:
            return bill
    log.warning("Bill lookup failed for id '%s'", bill_id)
    raise DocumentNotFound(Collection.BILLS.value, bill_id)


def find_bill_by_number(context: RuntimeContext, bill_number: str) -> Bill:
    """Resolve a bill by its human bill number (``B0001``).

    Raises:
        DocumentNotFound: If no bill carries ``bill_number``.
    """

    for bill in list_bills(context):
        if bill.bill_number == bill_number:
            return bill
    log.warning("Bill lookup failed for number '%s'", bill_number)
    raise DocumentNotFound(Collection.BILLS.value, bill_number)


def get_purchase(context: RuntimeContext, purchase_id: str) -> Purchase:
    """Resolve a purchase by document id.

    Raises:
        DocumentNotFound: If no purchase carries ``purchase_id``.
    """

    for purchase in list_purchases(context):
        if purchase.id == purchase_id:
            return purchase
    log.warning("Purchase lookup failed for id '%s'", purchase_id)
    raise DocumentNotFound(Collection.PURCHASES.value, purchase_id)


def _get_supplier(context: RuntimeContext, supplier_id: str) -> Supplier:
    for supplier in list_suppliers(context):
        if supplier.id == supplier_id:
            return supplier
    raise DocumentNotFound(Collection.SUPPLIERS.value, supplier_id)


def _get_payment(context: RuntimeContext, payment_id: str) -> Payment:
    for payment in list_payments(context):
        if payment.id == payment_id:
            return payment
    raise DocumentNotFound(Collection.PAYMENTS.value, payment_id)


def calculate_stock(context: RuntimeContext) -> List[StockRow]:
    """Flatten the catalogue into one row per batch.

    Products without batches are omitted. Rows follow store order for products
    and the stored batch order within each product.
    """

    rows: List[StockRow] = []
    products = list_products(context)
    for product in products:
        for batch in product.batches:
            rows.append(
                StockRow(
                    product_id=product.id,
                    product_name=product.name,
                    company=product.company,
                    batch_id=batch.id,
                    batch_number=batch.batch_number,
                    expiry_date=batch.expiry_date,
                    stock=batch.stock,
                    mrp=batch.mrp,
                )
            )
    units = sum(ledger.total_stock(product.batches) for product in products)
    log.debug("Calculated stock listing with %d batch rows holding %d units", len(rows), units)
    return rows


def calculate_outstanding_balances(context: RuntimeContext) -> Dict[str, Decimal]:
    """Compute what the pharmacy owes each supplier.

    The balance of a supplier is its opening balance plus the total of every
    purchase invoiced by it minus every payment made to it. Purchases and
    payments are attributed by supplier name, compared case-insensitively.

    Args:
        context (RuntimeContext): Runtime context providing store access.

    Returns:
        dict[str, Decimal]: Mapping of supplier name to outstanding balance, in
            supplier order.
    """

    purchased: Dict[str, Decimal] = {}
    for purchase in list_purchases(context):
        key = purchase.supplier.strip().lower()
        purchased[key] = purchased.get(key, Decimal("0")) + purchase.total_amount

    paid: Dict[str, Decimal] = {}
    for payment in list_payments(context):
        key = payment.supplier_name.strip().lower()
        paid[key] = paid.get(key, Decimal("0")) + payment.amount

    balances: Dict[str, Decimal] = {}
    for supplier in list_suppliers(context):
        key = supplier.name.strip().lower()
        balances[supplier.name] = (
            supplier.opening_balance + purchased.get(key, Decimal("0")) - paid.get(key, Decimal("0"))
        )
    log.debug("Calculated outstanding balances for %d suppliers", len(balances))
    return balances


# ---------------------------------------------------------------------------
# Bills
# ---------------------------------------------------------------------------


def draft_bill(
    context: RuntimeContext,
    customer_name: str,
    selections: Sequence[Tuple[str, str, int]],
    *,
    date: Optional[str] = None,
) -> BillDraft:
    """Build a bill draft from ``(product_id, batch_id, quantity)`` selections.

    Each selection is snapshotted from the current catalogue. An empty
    customer name falls back to the configured default customer.

    Raises:
        ProductNotFound: If a selection names an unknown product.
        BatchNotFound: If a selection names an unknown batch.
        ValueError: If a quantity is not positive.
    """

    catalogue = {product.id: product for product in list_products(context)}
    items = []
    for product_id, batch_id, quantity in selections:
        product = catalogue.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        items.append(sales.build_cart_item(product, batch_id, quantity))
    customer = customer_name.strip() or context.settings.default_customer
    return BillDraft(customer_name=customer, items=tuple(items), date=date)


def generate_bill(context: RuntimeContext, draft: BillDraft) -> TransactionResult:
    """Commit a new bill and decrement the stock of every billed batch.

    The bill number is derived from the bills read immediately before the
    write-set is built. Unless ``[Billing] AllowOversell`` is enabled the bill
    is refused when it would drive any batch below zero.

    Args:
        context (RuntimeContext): Runtime context providing store access.
        draft (BillDraft): Customer and cart lines.

    Returns:
        TransactionResult: The committed :class:`Bill`.

    Raises:
        InvalidDocument: If the draft has no items.
        ProductNotFound: If a line references an unknown product.
        BatchNotFound: If a line references an unknown batch.
        NegativeStock: If the floor check rejects the bill.
        WriteRejected: If the store declines the write-set.
    """

    if not draft.customer_name.strip():
        draft = replace(draft, customer_name=context.settings.default_customer)
    plan = sales.plan_bill_creation(
        _read(context, Collection.BILLS),
        list_products(context),
        draft,
        enforce_floor=not context.settings.allow_oversell,
    )
    result = _commit(context, plan, f"bill {plan.record.bill_number}")
    log.info(
        "Generated bill '%s' for '%s' (%d items, grand total=%s)",
        plan.record.bill_number,
        plan.record.customer_name,
        len(plan.record.items),
        plan.record.grand_total,
    )
    return result


def update_bill(context: RuntimeContext, bill_id: str, updated: BillDraft) -> TransactionResult:
    """Replace the items of a committed bill and reconcile stock by batch.

    Raises:
        DocumentNotFound: If ``bill_id`` is unknown.
        NotFound: If a changed batch or its product no longer exists.
        NegativeStock: If any batch of a touched product would go negative.
        WriteRejected: If the store declines the write-set.
    """

    original = get_bill(context, bill_id)
    plan = sales.plan_bill_update(list_products(context), original, updated)
    return _commit(context, plan, f"update of bill {original.bill_number}")


def delete_bill(context: RuntimeContext, bill_id: str) -> TransactionResult:
    """Delete a bill and return its quantities to stock.

    Items whose product or batch has disappeared are reported as warnings on
    the result instead of stopping the deletion.
    """

    bill = get_bill(context, bill_id)
    plan = sales.plan_bill_deletion(list_products(context), bill)
    return _commit(context, plan, f"deletion of bill {bill.bill_number}")


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


def add_purchase(context: RuntimeContext, draft: PurchaseDraft) -> TransactionResult:
    """Record a supplier invoice, creating products, batches and companies.

    Raises:
        InvalidDocument: If the invoice or one of its lines is incomplete.
        ProductNotFound: If a line references an unknown product.
        ValueError: If a quantity or price is out of range.
        WriteRejected: If the store declines the write-set.
    """

    plan = purchases.plan_purchase_creation(list_products(context), list_companies(context), draft)
    return _commit(context, plan, f"purchase {draft.invoice_number} from '{draft.supplier}'")


def update_purchase(context: RuntimeContext, purchase_id: str, updated: PurchaseDraft) -> TransactionResult:
    """Replace a purchase, reverting its original lines before applying the new ones."""

    original = get_purchase(context, purchase_id)
    plan = purchases.plan_purchase_update(
        list_products(context),
        list_companies(context),
        original,
        updated,
    )
    return _commit(context, plan, f"update of purchase {original.invoice_number}")


def delete_purchase(context: RuntimeContext, purchase_id: str) -> TransactionResult:
    purchase = get_purchase(context, purchase_id)
    plan = purchases.plan_purchase_deletion(list_products(context), purchase)
    return _commit(context, plan, f"deletion of purchase {purchase.invoice_number}")


# ---------------------------------------------------------------------------
# Catalogue maintenance
# ---------------------------------------------------------------------------


def _validate_product(command: ProductCommand) -> None:
    if not command.name.strip():
        raise InvalidDocument("Product name is required")
    require_nonnegative_money(command.gst)


def _validate_batch(command: BatchCommand) -> None:
    if not command.batch_number.strip():
        raise InvalidDocument("Batch number is required")
    if command.stock < 0:
        raise ValueError(f"Stock must be zero or positive (got {command.stock})")
    require_nonnegative_money(command.mrp)
    require_nonnegative_money(command.purchase_price)


def _batch_from_command(command: BatchCommand) -> Batch:
    return Batch(
        id=numbering.new_batch_id(),
        batch_number=command.batch_number.strip(),
        expiry_date=command.expiry_date,
        stock=command.stock,
        mrp=command.mrp,
        purchase_price=command.purchase_price,
    )


def add_product(context: RuntimeContext, command: ProductCommand, first_batch: BatchCommand) -> Product:
    """Create a product with its first batch.

    The product's company is registered in the same write-set when no
    existing company matches it case-insensitively.

    Args:
        context (RuntimeContext): Runtime context providing store access.
        command (ProductCommand): Product details.
        first_batch (BatchCommand): Batch created alongside the product.

    Returns:
        Product: The stored product, including its generated ids.

    Raises:
        InvalidDocument: If the name or batch number is blank.
        ValueError: If stock or money values are negative.
        WriteRejected: If the store declines the write-set.
    """

    _validate_product(command)
    _validate_batch(first_batch)
    product = Product(
        id=numbering.new_document_id(),
        name=command.name.strip(),
        company=command.company.strip(),
        hsn_code=command.hsn_code,
        gst=command.gst,
        batches=(_batch_from_command(first_batch),),
        composition=command.composition,
    )

    write_set = WriteSet()
    known = {company.name.strip().lower() for company in list_companies(context)}
    if product.company and product.company.lower() not in known:
        log.info("Registering new company '%s'", product.company)
        write_set.create(
            Collection.COMPANIES,
            company_to_record(Company(numbering.new_document_id(), product.company)),
        )
    write_set.create(Collection.PRODUCTS, product_to_record(product))
    _commit_single(context, write_set, f"new product '{product.name}' ({product.id})")
    return product


def update_product(context: RuntimeContext, product_id: str, command: ProductCommand) -> Product:
    """Update the descriptive fields of a product; batches are left untouched."""

    _validate_product(command)
    current = get_product(context, product_id)
    product = replace(
        current,
        name=command.name.strip(),
        company=command.company.strip(),
        hsn_code=command.hsn_code,
        gst=command.gst,
        composition=command.composition,
    )
    fields = _fields(product_to_record(product))
    fields.pop("batches")
    write_set = WriteSet()
    write_set.update(Collection.PRODUCTS, product_id, fields)
    _commit_single(context, write_set, f"details of product {product_id}")
    return product


def add_batch(context: RuntimeContext, product_id: str, command: BatchCommand) -> Batch:
    """Append a manually entered batch to a product.

    Raises:
        ProductNotFound: If ``product_id`` is unknown.
        InvalidDocument: If the product already has a batch with this number.
    """

    _validate_batch(command)
    product = get_product(context, product_id)
    if ledger.find_by_number(product.batches, command.batch_number.strip()) is not None:
        log.warning("Duplicate batch number '%s' for product '%s'", command.batch_number, product_id)
        raise InvalidDocument(
            f"Product {product_id} already has a batch numbered {command.batch_number.strip()}"
        )
    batch = _batch_from_command(command)
    write_set = WriteSet()
    write_set.update(
        Collection.PRODUCTS,
        product_id,
        {"batches": batches_to_records(ledger.upsert_batch(product.batches, batch))},
        expected={"batches": batches_to_records(product.batches)},
    )
    _commit_single(context, write_set, f"batch {batch.batch_number} of product {product_id}")
    return batch


def _batch_references(bills: Iterable[Bill], purchase_list: Iterable[Purchase], batch_id: str) -> Optional[str]:
    for bill in bills:
        if any(item.batch_id == batch_id for item in bill.items):
            return f"Cannot delete batch: it is part of sales bill {bill.bill_number}"
    for purchase in purchase_list:
        if any(item.batch_id == batch_id for item in purchase.items):
            return (
                f"Cannot delete batch: it is linked to purchase invoice {purchase.invoice_number}. "
                "Edit or delete that purchase instead"
            )
    return None


def delete_batch(context: RuntimeContext, product_id: str, batch_id: str) -> Product:
    """Remove a batch that no bill item or purchase line references.

    Raises:
        BatchInUse: If any bill or purchase still references the batch.
        ProductNotFound: If ``product_id`` is unknown.
        BatchNotFound: If the product has no such batch.
    """

    reason = _batch_references(list_bills(context), list_purchases(context), batch_id)
    if reason is not None:
        log.warning("Refused to delete batch '%s': %s", batch_id, reason)
        raise BatchInUse(reason)

    product = get_product(context, product_id)
    updated = replace(product, batches=ledger.remove_batch(product.batches, batch_id))
    write_set = WriteSet()
    write_set.update(
        Collection.PRODUCTS,
        product_id,
        {"batches": batches_to_records(updated.batches)},
        expected={"batches": batches_to_records(product.batches)},
    )
    _commit_single(context, write_set, f"removal of batch {batch_id} from product {product_id}")
    return updated


# ---------------------------------------------------------------------------
# Suppliers and payments
# ---------------------------------------------------------------------------


def _supplier_from_command(supplier_id: str, command: SupplierCommand) -> Supplier:
    if not command.name.strip():
        raise InvalidDocument("Supplier name is required")
    return Supplier(
        id=supplier_id,
        name=command.name.strip(),
        address=command.address,
        phone=command.phone,
        gstin=command.gstin,
        opening_balance=command.opening_balance,
    )


def add_supplier(context: RuntimeContext, command: SupplierCommand) -> Supplier:
    supplier = _supplier_from_command(numbering.new_document_id(), command)
    write_set = WriteSet()
    write_set.create(Collection.SUPPLIERS, supplier_to_record(supplier))
    _commit_single(context, write_set, f"new supplier '{supplier.name}'")
    return supplier


def update_supplier(context: RuntimeContext, supplier_id: str, command: SupplierCommand) -> Supplier:
    _get_supplier(context, supplier_id)
    supplier = _supplier_from_command(supplier_id, command)
    write_set = WriteSet()
    write_set.update(Collection.SUPPLIERS, supplier_id, _fields(supplier_to_record(supplier)))
    _commit_single(context, write_set, f"supplier '{supplier.name}'")
    return supplier


def _validate_payment(context: RuntimeContext, command: PaymentCommand) -> None:
    require_nonnegative_money(command.amount)
    if command.amount == Decimal("0"):
        raise ValueError("Payment amount must be greater than zero")
    wanted = command.supplier_name.strip().lower()
    if not any(supplier.name.strip().lower() == wanted for supplier in list_suppliers(context)):
        log.warning("Payment references unknown supplier '%s'", command.supplier_name)
        raise DocumentNotFound(Collection.SUPPLIERS.value, command.supplier_name)


def add_payment(context: RuntimeContext, command: PaymentCommand) -> Payment:
    """Record a supplier payment under the next voucher number.

    The voucher number counts the payments read immediately before the write.

    Raises:
        DocumentNotFound: If the supplier is unknown.
        ValueError: If the amount is not positive.
    """

    _validate_payment(context, command)
    payment = Payment(
        id=numbering.new_document_id(),
        supplier_name=command.supplier_name.strip(),
        date=command.date or _now(),
        voucher_number=numbering.next_voucher_number(_read(context, Collection.PAYMENTS)),
        amount=command.amount,
        method=command.method,
        remarks=command.remarks,
    )
    write_set = WriteSet()
    write_set.create(Collection.PAYMENTS, payment_to_record(payment))
    _commit_single(context, write_set, f"payment {payment.voucher_number} to '{payment.supplier_name}'")
    return payment


def update_payment(context: RuntimeContext, payment_id: str, command: PaymentCommand) -> Payment:
    """Edit a payment; its voucher number never changes."""

    current = _get_payment(context, payment_id)
    _validate_payment(context, command)
    payment = replace(
        current,
        supplier_name=command.supplier_name.strip(),
        date=command.date or current.date,
        amount=command.amount,
        method=command.method,
        remarks=command.remarks,
    )
    write_set = WriteSet()
    write_set.update(Collection.PAYMENTS, payment_id, _fields(payment_to_record(payment)))
    _commit_single(context, write_set, f"payment {payment.voucher_number}")
    return payment


def delete_payment(context: RuntimeContext, payment_id: str) -> None:
    payment = _get_payment(context, payment_id)
    write_set = WriteSet()
    write_set.delete(Collection.PAYMENTS, payment_id)
    _commit_single(context, write_set, f"deletion of payment {payment.voucher_number}")


__all__ = [
    "RuntimeContext",
    "TransactionResult",
    "ProductCommand",
    "BatchCommand",
    "SupplierCommand",
    "PaymentCommand",
    "StockRow",
    "load_runtime_context",
    "ensure_schema_version",
    "list_products",
    "list_bills",
    "list_purchases",
    "list_companies",
    "list_suppliers",
    "list_payments",
    "get_product",
    "get_bill",
    "find_bill_by_number",
    "get_purchase",
    "calculate_stock",
    "calculate_outstanding_balances",
    "draft_bill",
    "generate_bill",
    "update_bill",
    "delete_bill",
    "add_purchase",
    "update_purchase",
    "delete_purchase",
    "add_product",
    "update_product",
    "add_batch",
    "delete_batch",
    "add_supplier",
    "update_supplier",
    "add_payment",
    "update_payment",
    "delete_payment",
]
