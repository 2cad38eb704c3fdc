"""Shared pytest fixtures and utilities for pharmacy ledger tests."""

from __future__ import annotations

import argparse
import sys
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pharma_ledger import cli, constants, core_logic, data_manager  # noqa: E402
from pharma_ledger.constants import Collection  # noqa: E402
from pharma_ledger.models import (  # noqa: E402
    Batch,
    Bill,
    CartItem,
    Company,
    Payment,
    Product,
    Purchase,
    PurchaseLineItem,
    Supplier,
    bill_to_record,
    company_to_record,
    payment_to_record,
    product_to_record,
    purchase_to_record,
    supplier_to_record,
)
from pharma_ledger.setup_excel import create_master_workbook  # noqa: E402
from pharma_ledger.store import InMemoryStore  # noqa: E402

DEFAULT_SCHEMA_VERSION = constants.EXPECTED_SCHEMA_VERSION
DEFAULT_CUSTOMER = "Walk-in Customer"
_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "PharmacyName = {pharmacy_name}\n"
    "SchemaVersion = {schema_version}\n\n"
    "[Defaults]\n"
    "DefaultCustomer = {default_customer}\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    workbook_path: Path
    default_customer: str
    schema_version: str
    pharmacy_name: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture
def workbook_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory that creates an initialized workbook in a temp folder."""

    def _create_workbook(
        *,
        subdir: str | None = None,
        filename: str = "pharmacy_data.xlsx",
    ) -> Path:
        base_dir = tmp_path if subdir is None else tmp_path / subdir
        base_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = base_dir / filename
        create_master_workbook(workbook_path, overwrite=True)
        return workbook_path

    return _create_workbook


@pytest.fixture
def master_workbook_path(workbook_factory: Callable[..., Path]) -> Path:
    """Return a fresh workbook ready for use in a test."""

    return workbook_factory(subdir=f"workbook_{uuid.uuid4().hex}")


@pytest.fixture
def config_factory(tmp_path: Path, workbook_factory: Callable[..., Path]) -> Callable[..., ConfigBundle]:
    """Provide a callable that creates config/workbook bundles on demand."""

    def _create_config(
        *,
        make_relative: bool = False,
        pharmacy_name: str = "Test Pharmacy",
        schema_version: str = DEFAULT_SCHEMA_VERSION,
        default_customer: str = DEFAULT_CUSTOMER,
        allow_oversell: Optional[bool] = None,
    ) -> ConfigBundle:
        bundle_name = f"bundle_{uuid.uuid4().hex}"
        bundle_dir = tmp_path / bundle_name
        workbook_path = workbook_factory(subdir=bundle_name)
        data_file_entry = workbook_path.name if make_relative else str(workbook_path)
        config_text = _CONFIG_TEMPLATE.format(
            data_file=data_file_entry,
            pharmacy_name=pharmacy_name,
            schema_version=schema_version,
            default_customer=default_customer,
        )
        if allow_oversell is not None:
            config_text += f"\n[Billing]\nAllowOversell = {'true' if allow_oversell else 'false'}\n"
        config_path = bundle_dir / "config.ini"
        config_path.write_text(config_text)
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            workbook_path=workbook_path,
            default_customer=default_customer,
            schema_version=schema_version,
            pharmacy_name=pharmacy_name,
        )

    return _create_config


@pytest.fixture
def config_file(config_factory: Callable[..., ConfigBundle]) -> Path:
    """Convenience fixture returning only the config path."""

    return config_factory().config_path


@pytest.fixture
def runtime_context(config_file: Path) -> core_logic.RuntimeContext:
    """Load a workbook-backed runtime context through the public API."""

    context = core_logic.load_runtime_context(config_file)
    core_logic.ensure_schema_version(context)
    return context


# ---------------------------------------------------------------------------
# Domain record factories
# ---------------------------------------------------------------------------


@pytest.fixture
def batch_factory() -> Callable[..., Batch]:
    """Build batches with sensible defaults."""

    def _make(
        batch_id: str = "b1",
        *,
        batch_number: str = "BN1",
        stock: int = 10,
        mrp: str = "10.00",
        purchase_price: str = "6.00",
        expiry_date: str = "2027-01",
    ) -> Batch:
        return Batch(
            id=batch_id,
            batch_number=batch_number,
            expiry_date=expiry_date,
            stock=stock,
            mrp=Decimal(mrp),
            purchase_price=Decimal(purchase_price),
        )

    return _make


@pytest.fixture
def product_factory(batch_factory: Callable[..., Batch]) -> Callable[..., Product]:
    """Build products; the default carries a single batch ``b1`` with 10 units."""

    def _make(
        product_id: str = "p1",
        *,
        name: str = "Paracetamol 500",
        company: str = "Acme Pharma",
        gst: str = "12",
        hsn_code: str = "3004",
        batches: Optional[Iterable[Batch]] = None,
        composition: Optional[str] = None,
    ) -> Product:
        return Product(
            id=product_id,
            name=name,
            company=company,
            hsn_code=hsn_code,
            gst=Decimal(gst),
            batches=tuple(batches) if batches is not None else (batch_factory(),),
            composition=composition,
        )

    return _make


@pytest.fixture
def cart_item_factory() -> Callable[..., CartItem]:
    """Build bill lines referencing a product batch."""

    def _make(
        product_id: str = "p1",
        batch_id: str = "b1",
        quantity: int = 1,
        *,
        mrp: str = "10.00",
        gst: str = "12",
    ) -> CartItem:
        unit = Decimal(mrp)
        return CartItem(
            product_id=product_id,
            product_name="Paracetamol 500",
            batch_id=batch_id,
            batch_number="BN1",
            expiry_date="2027-01",
            hsn_code="3004",
            quantity=quantity,
            mrp=unit,
            gst=Decimal(gst),
            total=unit * quantity,
        )

    return _make


@pytest.fixture
def line_factory() -> Callable[..., PurchaseLineItem]:
    """Build purchase lines; defaults describe a restock of product ``p1``."""

    def _make(
        *,
        product_id: Optional[str] = "p1",
        batch_id: Optional[str] = None,
        batch_number: str = "BN1",
        quantity: int = 5,
        is_new_product: bool = False,
        product_name: str = "Paracetamol 500",
        company: str = "Acme Pharma",
        gst: str = "12",
        mrp: str = "11.00",
        purchase_price: str = "7.00",
        expiry_date: str = "2027-06",
    ) -> PurchaseLineItem:
        return PurchaseLineItem(
            is_new_product=is_new_product,
            product_name=product_name,
            company=company,
            hsn_code="3004",
            gst=Decimal(gst),
            batch_number=batch_number,
            expiry_date=expiry_date,
            quantity=quantity,
            mrp=Decimal(mrp),
            purchase_price=Decimal(purchase_price),
            product_id=None if is_new_product else product_id,
            batch_id=batch_id,
        )

    return _make


# ---------------------------------------------------------------------------
# Store and core logic fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store_factory() -> Callable[..., InMemoryStore]:
    """Create in-memory stores seeded with domain records."""

    def _make(
        *,
        products: Iterable[Product] = (),
        bills: Iterable[Bill] = (),
        purchases: Iterable[Purchase] = (),
        companies: Iterable[Company] = (),
        suppliers: Iterable[Supplier] = (),
        payments: Iterable[Payment] = (),
    ) -> InMemoryStore:
        return InMemoryStore(
            {
                Collection.PRODUCTS: [product_to_record(item) for item in products],
                Collection.BILLS: [bill_to_record(item) for item in bills],
                Collection.PURCHASES: [purchase_to_record(item) for item in purchases],
                Collection.COMPANIES: [company_to_record(item) for item in companies],
                Collection.SUPPLIERS: [supplier_to_record(item) for item in suppliers],
                Collection.PAYMENTS: [payment_to_record(item) for item in payments],
            }
        )

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    """Provide default configuration settings for runtime context tests."""

    return data_manager.ConfigSettings(
        data_file=tmp_path / "pharmacy_data.xlsx",
        pharmacy_name="Test Pharmacy",
        schema_version=constants.EXPECTED_SCHEMA_VERSION,
        default_customer=DEFAULT_CUSTOMER,
    )


@pytest.fixture
def context_factory(
    settings: data_manager.ConfigSettings,
    store_factory: Callable[..., InMemoryStore],
) -> Callable[..., core_logic.RuntimeContext]:
    """Assemble runtime contexts backed by seeded in-memory stores."""

    def _make(*, allow_oversell: bool = False, **collections) -> core_logic.RuntimeContext:
        return core_logic.RuntimeContext(
            settings=replace(settings, allow_oversell=allow_oversell),
            store=store_factory(**collections),
        )

    return _make


@pytest.fixture
def set_fixed_datetime(monkeypatch: pytest.MonkeyPatch) -> Callable[[datetime], datetime]:
    """Patch ``core_logic.datetime`` to return a predetermined moment."""

    def _apply(moment: datetime) -> datetime:
        class _FixedDateTime:
            @staticmethod
            def now(tz=None):
                assert tz is UTC
                return moment

        monkeypatch.setattr(core_logic, "datetime", _FixedDateTime)
        return moment

    return _apply


# ---------------------------------------------------------------------------
# CLI layer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_parser() -> argparse.ArgumentParser:
    """Return a fresh CLI parser instance for tests."""

    return argparse.ArgumentParser(prog="pharma-cli", description="Pharmacy CLI")


@pytest.fixture
def subparsers_action(
    cli_parser: argparse.ArgumentParser,
) -> argparse._SubParsersAction[argparse.ArgumentParser]:
    """Return the subparser action used to register commands."""

    return cli_parser.add_subparsers(dest="command")


@pytest.fixture
def command_spec_iterable() -> list[cli.CommandSpec]:
    """Provide a list of command specs for indexing tests."""

    def _make_spec(name: str) -> cli.CommandSpec:
        return cli.CommandSpec(
            name,
            f"{name} help",
            lambda subparsers: subparsers.add_parser(name),
            lambda *_: 0,
        )

    return [_make_spec("alpha"), _make_spec("beta"), _make_spec("gamma")]
