"""Purchase transaction engine.

Purchases add stock. Each line resolves to exactly one outcome: a brand new
product with its first batch, a restock of an existing batch with the same
batch number, or a new batch appended to an existing product. Edits revert
the original lines before applying the new ones and deletions subtract the
purchased quantities; both floor the resulting stock at zero instead of
rejecting the save.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from . import ledger, log, numbering
from .constants import Collection
from .errors import InvalidDocument, PartialRevertWarning, ProductNotFound
from .models import (
    Batch,
    Company,
    Product,
    Purchase,
    PurchaseDraft,
    PurchaseLineItem,
    batches_to_records,
    company_to_record,
    product_to_record,
    purchase_to_record,
    require_nonnegative_money,
    require_positive_quantity,
)
from .store import TransactionPlan, WriteSet


class PurchaseWorkspace:
    """Working copies of every product touched while saving one purchase.

    Lines are resolved against the working copies rather than the snapshot, so
    two lines hitting the same product compose instead of overwriting each
    other.
    """

    def __init__(self, products: Iterable[Product]) -> None:
        self._snapshot: Dict[str, Product] = {product.id: product for product in products}
        self._working: Dict[str, Product] = {}
        self._created: Dict[str, Product] = {}
        self._batch_ids: Set[str] = {
            batch.id for product in self._snapshot.values() for batch in product.batches
        }
        self.warnings: List[PartialRevertWarning] = []

    def product(self, product_id: str) -> Optional[Product]:
        """Return the current working state of ``product_id``, if it exists."""

        for source in (self._created, self._working, self._snapshot):
            if product_id in source:
                return source[product_id]
        return None

    def _put(self, product: Product) -> None:
        if product.id in self._created:
            self._created[product.id] = product
        else:
            self._working[product.id] = product

    def _new_batch(self, line: PurchaseLineItem) -> Batch:
        batch_id = numbering.new_batch_id()
        while batch_id in self._batch_ids:
            batch_id = numbering.new_batch_id()
        self._batch_ids.add(batch_id)
        return Batch(
            id=batch_id,
            batch_number=line.batch_number,
            expiry_date=line.expiry_date,
            stock=line.quantity,
            mrp=line.mrp,
            purchase_price=line.purchase_price,
        )

    def _warn(self, message: str, line: PurchaseLineItem) -> None:
        warning = PartialRevertWarning(message, product_id=line.product_id, batch_id=line.batch_id)
        log.warning("%s", warning)
        self.warnings.append(warning)

    def revert_line(self, line: PurchaseLineItem, *, invoice_number: str) -> None:
        """Subtract a previously saved line's quantity from its batch.

        Lines that cannot be traced back to a product batch are skipped with a
        :class:`PartialRevertWarning`.
        """

        if not line.product_id or not line.batch_id:
            self._warn(
                f"Cannot revert stock for '{line.product_name}' on invoice {invoice_number}: "
                "line has no product or batch id",
                line,
            )
            return
        product = self.product(line.product_id)
        if product is None:
            self._warn(
                f"Product with ID {line.product_id} not found while reverting invoice {invoice_number}",
                line,
            )
            return
        if ledger.find_by_id(product.batches, line.batch_id) is None:
            self._warn(
                f"Batch {line.batch_id} of product {line.product_id} not found while reverting "
                f"invoice {invoice_number}",
                line,
            )
            return
        batches = ledger.apply_delta(product.batches, line.batch_id, -line.quantity)
        self._put(replace(product, batches=batches))

    def apply_line(self, line: PurchaseLineItem) -> PurchaseLineItem:
        """Add a line's stock and return the line rewritten with resolved ids.

        Raises:
            InvalidDocument: If an existing-product line has no product id.
            ProductNotFound: If the referenced product does not exist.
        """

        if line.is_new_product:
            batch = self._new_batch(line)
            product = Product(
                id=numbering.new_document_id(),
                name=line.product_name,
                company=line.company.strip(),
                hsn_code=line.hsn_code,
                gst=line.gst,
                batches=(batch,),
                composition=line.composition,
            )
            self._created[product.id] = product
            log.debug("Purchase line creates product '%s' (%s)", product.name, product.id)
            return replace(line, is_new_product=False, product_id=product.id, batch_id=batch.id)

        if not line.product_id:
            raise InvalidDocument(f"Purchase line '{line.product_name}' does not reference a product")
        product = self.product(line.product_id)
        if product is None:
            log.error("Product %s not found for purchase line", line.product_id)
            raise ProductNotFound(line.product_id)

        existing = ledger.find_by_number(product.batches, line.batch_number)
        if existing is not None:
            batch = replace(
                existing,
                stock=existing.stock + line.quantity,
                mrp=line.mrp,
                purchase_price=line.purchase_price,
                expiry_date=line.expiry_date,
            )
        else:
            batch = self._new_batch(line)
        self._put(replace(product, batches=ledger.upsert_batch(product.batches, batch)))
        return replace(line, batch_id=batch.id)

    def write_products(self, write_set: WriteSet, *, clamp: bool) -> None:
        """Queue product creates and updates for every changed working copy."""

        for product in self._created.values():
            write_set.create(Collection.PRODUCTS, product_to_record(product))
        for product_id, product in self._working.items():
            original = self._snapshot[product_id]
            batches = ledger.clamp_to_zero(product.batches) if clamp else product.batches
            if batches == original.batches:
                continue
            write_set.update(
                Collection.PRODUCTS,
                product_id,
                {"batches": batches_to_records(batches)},
                expected={"batches": batches_to_records(original.batches)},
            )


def new_company_names(lines: Iterable[PurchaseLineItem], companies: Iterable[Company]) -> List[str]:
    """Company names introduced by new-product lines.

    Names are trimmed and compared case-insensitively against the existing
    companies and against each other; the first spelling seen wins.
    """

    known = {company.name.strip().lower() for company in companies}
    names: List[str] = []
    for line in lines:
        if not line.is_new_product:
            continue
        name = line.company.strip()
        if name and name.lower() not in known:
            known.add(name.lower())
            names.append(name)
    return names


def purchase_total(items: Iterable[PurchaseLineItem]) -> Decimal:
    return sum((item.purchase_price * item.quantity for item in items), Decimal("0"))


def _validate_draft(draft: PurchaseDraft) -> None:
    if not draft.invoice_number.strip() or not draft.supplier.strip():
        raise InvalidDocument("A purchase needs an invoice number and a supplier")
    if not draft.items:
        raise InvalidDocument(f"Purchase {draft.invoice_number} has no items")
    for item in draft.items:
        require_positive_quantity(item.quantity)
        require_nonnegative_money(item.mrp)
        require_nonnegative_money(item.purchase_price)
        require_nonnegative_money(item.gst)
        if item.is_new_product and (not item.product_name.strip() or not item.company.strip()):
            raise InvalidDocument("New products need a product name and a company")


def _queue_companies(write_set: WriteSet, lines: Iterable[PurchaseLineItem], companies: Iterable[Company]) -> None:
    for name in new_company_names(lines, companies):
        log.info("Registering new company '%s'", name)
        write_set.create(Collection.COMPANIES, company_to_record(Company(numbering.new_document_id(), name)))


def plan_purchase_creation(
    products: Iterable[Product],
    companies: Iterable[Company],
    draft: PurchaseDraft,
    *,
    purchase_id: Optional[str] = None,
) -> TransactionPlan:
    """Build the write-set that records a supplier invoice and adds its stock.

    Args:
        products (Iterable[Product]): Current product catalogue.
        companies (Iterable[Company]): Known companies, for auto-creation.
        draft (PurchaseDraft): Invoice header and unresolved lines.
        purchase_id (str | None): Document id to use; allocated when omitted.

    Returns:
        TransactionPlan: ``record`` is the saved :class:`Purchase` whose lines
            all carry ``product_id`` and ``batch_id``.

    Raises:
        InvalidDocument: If the draft is empty or a line is incomplete.
        ProductNotFound: If a line references an unknown product.
        ValueError: If a quantity or price is out of range.
    """

    _validate_draft(draft)
    workspace = PurchaseWorkspace(products)
    items = tuple(workspace.apply_line(line) for line in draft.items)
    purchase = Purchase(
        id=purchase_id or numbering.new_document_id(),
        invoice_number=draft.invoice_number,
        invoice_date=draft.invoice_date,
        supplier=draft.supplier,
        items=items,
        total_amount=purchase_total(items),
    )

    write_set = WriteSet()
    _queue_companies(write_set, draft.items, companies)
    workspace.write_products(write_set, clamp=False)
    write_set.create(Collection.PURCHASES, purchase_to_record(purchase))
    return TransactionPlan(record=purchase, write_set=write_set, warnings=workspace.warnings)


def plan_purchase_update(
    products: Iterable[Product],
    companies: Iterable[Company],
    original: Purchase,
    updated: PurchaseDraft,
) -> TransactionPlan:
    """Build the write-set that replaces a purchase and re-derives its stock.

    The original lines are reverted and the updated lines applied on the same
    working copies, so an unchanged batch ends where it started and a changed
    quantity moves stock by the difference. Negative results are floored at
    zero.
    """

    _validate_draft(updated)
    workspace = PurchaseWorkspace(products)
    for line in original.items:
        workspace.revert_line(line, invoice_number=original.invoice_number)
    items = tuple(workspace.apply_line(line) for line in updated.items)
    purchase = Purchase(
        id=original.id,
        invoice_number=updated.invoice_number,
        invoice_date=updated.invoice_date,
        supplier=updated.supplier,
        items=items,
        total_amount=purchase_total(items),
    )

    write_set = WriteSet()
    _queue_companies(write_set, updated.items, companies)
    workspace.write_products(write_set, clamp=True)
    record = purchase_to_record(purchase)
    write_set.update(Collection.PURCHASES, purchase.id, {key: value for key, value in record.items() if key != "id"})
    return TransactionPlan(record=purchase, write_set=write_set, warnings=workspace.warnings)


def plan_purchase_deletion(products: Iterable[Product], purchase: Purchase) -> TransactionPlan:
    """Build the write-set that deletes a purchase and subtracts its stock."""

    workspace = PurchaseWorkspace(products)
    for line in purchase.items:
        workspace.revert_line(line, invoice_number=purchase.invoice_number)

    write_set = WriteSet()
    workspace.write_products(write_set, clamp=True)
    write_set.delete(Collection.PURCHASES, purchase.id)
    return TransactionPlan(record=purchase, write_set=write_set, warnings=workspace.warnings)


__all__ = [
    "PurchaseWorkspace",
    "new_company_names",
    "purchase_total",
    "plan_purchase_creation",
    "plan_purchase_update",
    "plan_purchase_deletion",
]
