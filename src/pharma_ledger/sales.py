"""Sale transaction engine.

Builds the write-sets for generating, editing and deleting bills. Every
function here is pure: it receives the records the caller just read from the
store and returns a :class:`~pharma_ledger.store.TransactionPlan` without
committing anything.

A bill moves Draft -> Committed on generate, stays Committed across edits and
becomes Deleted on delete. Stock is decremented when a bill is generated,
re-derived from the netted quantity difference when it is edited, and added
back when it is deleted.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import ledger, log, numbering
from .constants import Collection
from .errors import BatchNotFound, InvalidDocument, PartialRevertWarning, ProductNotFound
from .models import (
    Bill,
    BillDraft,
    CartItem,
    Product,
    batches_to_records,
    bill_to_record,
    require_positive_quantity,
)
from .store import TransactionPlan, WriteSet


HUNDRED = Decimal("100")


def build_cart_item(product: Product, batch_id: str, quantity: int, *, mrp: Optional[Decimal] = None) -> CartItem:
    """Snapshot a product batch into a bill line.

    Args:
        product (Product): Product the batch belongs to.
        batch_id (str): Opaque id of the batch being sold.
        quantity (int): Units sold; must be positive.
        mrp (Decimal | None): Override for the unit price. Defaults to the
            batch MRP.

    Returns:
        CartItem: Line with ``total = mrp * quantity`` and the product's GST.

    Raises:
        BatchNotFound: If ``product`` has no batch ``batch_id``.
        ValueError: If ``quantity`` is not positive.
    """

    require_positive_quantity(quantity)
    batch = ledger.find_by_id(product.batches, batch_id)
    if batch is None:
        raise BatchNotFound(batch_id, product.id)
    unit_price = batch.mrp if mrp is None else mrp
    return CartItem(
        product_id=product.id,
        product_name=product.name,
        composition=product.composition,
        batch_id=batch.id,
        batch_number=batch.batch_number,
        expiry_date=batch.expiry_date,
        hsn_code=product.hsn_code,
        quantity=quantity,
        mrp=unit_price,
        gst=product.gst,
        total=unit_price * quantity,
    )


def compute_totals(items: Iterable[CartItem]) -> Tuple[Decimal, Decimal, Decimal]:
    """Split GST-inclusive line totals into base amount and tax.

    Returns:
        tuple[Decimal, Decimal, Decimal]: ``(sub_total, total_gst,
            grand_total)`` where each line contributes
            ``total / (1 + gst/100)`` to the sub-total and the remainder to the
            GST, and ``grand_total = sub_total + total_gst``.
    """

    sub_total = Decimal("0")
    total_gst = Decimal("0")
    for item in items:
        base_price = item.total / (1 + item.gst / HUNDRED)
        sub_total += base_price
        total_gst += item.total - base_price
    return sub_total, total_gst, sub_total + total_gst


def _require_items(items: Tuple[CartItem, ...]) -> None:
    if not items:
        raise InvalidDocument("A bill needs at least one item")
    for item in items:
        require_positive_quantity(item.quantity)


def _index_products(products: Iterable[Product]) -> Dict[str, Product]:
    return {product.id: product for product in products}


def _product_update(write_set: WriteSet, original: Product, batches: tuple) -> None:
    write_set.update(
        Collection.PRODUCTS,
        original.id,
        {"batches": batches_to_records(batches)},
        expected={"batches": batches_to_records(original.batches)},
    )


def _adjust(
    working: Dict[str, tuple],
    snapshot: Mapping[str, Product],
    product_id: str,
    batch_id: str,
    delta: int,
) -> None:
    """Apply ``delta`` to a working copy of the product's batches."""

    product = snapshot.get(product_id)
    if product is None:
        log.error("Product %s not found while adjusting bill stock", product_id)
        raise ProductNotFound(product_id)
    batches = working.get(product_id, product.batches)
    if ledger.find_by_id(batches, batch_id) is None:
        log.error("Batch %s not found in product %s", batch_id, product_id)
        raise BatchNotFound(batch_id, product_id)
    working[product_id] = ledger.apply_delta(batches, batch_id, delta)


def plan_bill_creation(
    bill_records: Iterable[Mapping[str, Any]],
    products: Iterable[Product],
    draft: BillDraft,
    *,
    enforce_floor: bool = True,
    bill_id: Optional[str] = None,
) -> TransactionPlan:
    """Build the write-set that commits a new bill and decrements stock.

    Args:
        bill_records (Iterable[Mapping]): Every bill document, read fresh from
            the store, used to derive the next bill number.
        products (Iterable[Product]): Current product catalogue.
        draft (BillDraft): Customer and cart lines to bill.
        enforce_floor (bool): When ``True`` the bill is rejected if any
            touched batch would end below zero. ``False`` trusts the caller
            to have prevented overselling.
        bill_id (str | None): Document id to use; allocated when omitted.

    Returns:
        TransactionPlan: ``record`` is the new :class:`Bill`; the write-set
            holds one bill create followed by one update per touched product.

    Raises:
        InvalidDocument: If the draft has no items.
        ProductNotFound: If a line references an unknown product.
        BatchNotFound: If a line references an unknown batch.
        NegativeStock: If ``enforce_floor`` is set and stock would go negative.
    """

    _require_items(draft.items)
    snapshot = _index_products(products)
    working: Dict[str, tuple] = {}
    for item in draft.items:
        _adjust(working, snapshot, item.product_id, item.batch_id, -item.quantity)

    if enforce_floor:
        for product_id, batches in working.items():
            ledger.reject_negative(batches, product_id=product_id)

    sub_total, total_gst, grand_total = compute_totals(draft.items)
    bill = Bill(
        id=bill_id or numbering.new_document_id(),
        bill_number=numbering.next_bill_number(bill_records),
        date=draft.date or datetime.now(UTC).isoformat(),
        customer_name=draft.customer_name,
        items=tuple(draft.items),
        sub_total=sub_total,
        total_gst=total_gst,
        grand_total=grand_total,
    )

    write_set = WriteSet()
    write_set.create(Collection.BILLS, bill_to_record(bill))
    for product_id, batches in working.items():
        _product_update(write_set, snapshot[product_id], batches)
    return TransactionPlan(record=bill, write_set=write_set)


def net_stock_changes(
    original_items: Iterable[CartItem],
    updated_items: Iterable[CartItem],
) -> Dict[Tuple[str, str], int]:
    """Net two item lists into one signed stock change per batch.

    The original bill's quantities are added back and the updated bill's
    quantities are taken away, so a positive value returns stock to the
    batch and a negative value consumes more of it.

    Returns:
        dict[tuple[str, str], int]: ``(product_id, batch_id)`` mapped to the
            net change, in first-seen order, including zero entries.
    """

    changes: Dict[Tuple[str, str], int] = {}
    for item in original_items:
        key = (item.product_id, item.batch_id)
        changes[key] = changes.get(key, 0) + item.quantity
    for item in updated_items:
        key = (item.product_id, item.batch_id)
        changes[key] = changes.get(key, 0) - item.quantity
    return changes


def plan_bill_update(products: Iterable[Product], original: Bill, updated: BillDraft) -> TransactionPlan:
    """Build the write-set that replaces a bill's items and reconciles stock.

    Only batches with a non-zero net change are touched. Every touched product
    is checked for negative stock before the write-set is returned, so a
    rejected edit never reaches the store.

    Raises:
        InvalidDocument: If the updated bill has no items.
        ProductNotFound: If a changed batch belongs to an unknown product.
        BatchNotFound: If a changed batch no longer exists.
        NegativeStock: If any batch of a touched product would end below zero.
    """

    _require_items(updated.items)
    snapshot = _index_products(products)
    working: Dict[str, tuple] = {}
    for (product_id, batch_id), change in net_stock_changes(original.items, updated.items).items():
        if change == 0:
            continue
        _adjust(working, snapshot, product_id, batch_id, change)

    for product_id, batches in working.items():
        ledger.reject_negative(batches, product_id=product_id)

    sub_total, total_gst, grand_total = compute_totals(updated.items)
    bill = replace(
        original,
        date=updated.date or original.date,
        customer_name=updated.customer_name,
        items=tuple(updated.items),
        sub_total=sub_total,
        total_gst=total_gst,
        grand_total=grand_total,
    )

    write_set = WriteSet()
    for product_id, batches in working.items():
        _product_update(write_set, snapshot[product_id], batches)
    record = bill_to_record(bill)
    write_set.update(Collection.BILLS, bill.id, {key: value for key, value in record.items() if key != "id"})
    return TransactionPlan(record=bill, write_set=write_set)


def plan_bill_deletion(products: Iterable[Product], bill: Bill) -> TransactionPlan:
    """Build the write-set that deletes a bill and returns its stock.

    Items whose product (or batch) has disappeared cannot be reverted; each
    yields a :class:`PartialRevertWarning` and the deletion proceeds.
    """

    snapshot = _index_products(products)
    working: Dict[str, tuple] = {}
    warnings: List[PartialRevertWarning] = []
    for item in bill.items:
        product = snapshot.get(item.product_id)
        if product is None:
            warning = PartialRevertWarning(
                f"Product {item.product_id} not found while deleting bill {bill.bill_number}. "
                "Stock not reverted for this item.",
                product_id=item.product_id,
                batch_id=item.batch_id,
            )
            log.warning("%s", warning)
            warnings.append(warning)
            continue
        batches = working.get(product.id, product.batches)
        if ledger.find_by_id(batches, item.batch_id) is None:
            warning = PartialRevertWarning(
                f"Batch {item.batch_id} of product {item.product_id} not found while deleting "
                f"bill {bill.bill_number}. Stock not reverted for this item.",
                product_id=item.product_id,
                batch_id=item.batch_id,
            )
            log.warning("%s", warning)
            warnings.append(warning)
            continue
        working[product.id] = ledger.apply_delta(batches, item.batch_id, item.quantity)

    write_set = WriteSet()
    for product_id, batches in working.items():
        _product_update(write_set, snapshot[product_id], batches)
    write_set.delete(Collection.BILLS, bill.id)
    return TransactionPlan(record=bill, write_set=write_set, warnings=warnings)


__all__ = [
    "build_cart_item",
    "compute_totals",
    "net_stock_changes",
    "plan_bill_creation",
    "plan_bill_update",
    "plan_bill_deletion",
]
