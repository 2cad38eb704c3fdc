"""Unit tests documenting the expected behavior of the data access layer."""

from __future__ import annotations

import configparser
import json
import os
from decimal import Decimal
from pathlib import Path

import openpyxl
from openpyxl.workbook import Workbook as OpenpyxlWorkbook
import pytest

from pharma_ledger import constants, data_manager
from pharma_ledger.constants import Collection
from pharma_ledger.errors import WriteRejected
from pharma_ledger.models import product_from_record, product_to_record
from pharma_ledger.store import WriteSet


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_find_config_file_respects_explicit_path(config_file: Path):
    """Supplying an explicit path should be treated as the winning answer."""

    result = data_manager.find_config_file(config_file)
    assert result == config_file


def test_find_config_file_discovers_in_parent_directories(tmp_path, monkeypatch):
    """Auto-discovery should walk up from the working directory."""

    config_file = tmp_path / "config.ini"
    config_file.write_text("[System]\nDataFile=pharmacy_data.xlsx")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    result = data_manager.find_config_file()
    assert result == config_file


def test_find_config_file_raises_when_missing(tmp_path, monkeypatch):
    """Absent configuration should surface a clear FileNotFoundError."""

    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        data_manager.find_config_file()


def test_read_config_loads_sections(config_file: Path):
    """read_config should return a populated ConfigParser."""

    parser = data_manager.read_config(config_file)
    assert parser.get("System", "PharmacyName") == "Test Pharmacy"
    assert parser.get("Defaults", "DefaultCustomer") == "Walk-in Customer"


def test_read_config_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        data_manager.read_config(tmp_path / "not_there.ini")


def test_parse_settings_resolves_relative_paths(config_factory):
    """Relative DataFile entries should be anchored to the config location."""

    parser = configparser.ConfigParser()
    bundle = config_factory(make_relative=True)
    parser.read(bundle.config_path)
    settings = data_manager.parse_settings(parser, base_path=bundle.config_path.parent)

    assert settings.data_file == (bundle.config_path.parent / bundle.workbook_path.name).resolve()
    assert settings.default_customer == "Walk-in Customer"
    assert settings.allow_oversell is False


def test_parse_settings_reads_allow_oversell(config_factory):
    bundle = config_factory(allow_oversell=True)
    settings = data_manager.parse_settings(data_manager.read_config(bundle.config_path))
    assert settings.allow_oversell is True


def test_parse_settings_rejects_invalid_boolean(tmp_path):
    parser = configparser.ConfigParser()
    parser.read_string(
        "[System]\nDataFile=x.xlsx\nPharmacyName=P\nSchemaVersion=1.0.0\n"
        "[Defaults]\nDefaultCustomer=C\n[Billing]\nAllowOversell=sometimes\n"
    )
    with pytest.raises(ValueError):
        data_manager.parse_settings(parser, base_path=tmp_path)


def test_parse_settings_requires_expected_sections(tmp_path):
    """Missing keys should result in a descriptive KeyError."""

    parser = configparser.ConfigParser()
    parser.read_string("[Other]\nvalue=1")
    with pytest.raises(KeyError):
        data_manager.parse_settings(parser, base_path=tmp_path)


# ---------------------------------------------------------------------------
# Workbook lifecycle
# ---------------------------------------------------------------------------


def test_open_workbook_returns_openpyxl_instance(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    assert isinstance(workbook, OpenpyxlWorkbook)


def test_open_workbook_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        data_manager.open_workbook(tmp_path / "missing.xlsx")


def test_save_workbook_creates_parent_directories(master_workbook_path, tmp_path):
    """Providing a destination should create a new file independent of the source."""

    workbook = data_manager.open_workbook(master_workbook_path)
    workbook[constants.SheetName.COMPANIES.value].append(["c1", "Acme Pharma"])
    copy_path = tmp_path / "backup" / "copy.xlsx"
    data_manager.save_workbook(workbook, copy_path)

    copy = openpyxl.load_workbook(copy_path)
    rows = list(copy[constants.SheetName.COMPANIES.value].iter_rows(min_row=2, values_only=True))
    assert rows == [("c1", "Acme Pharma")]


def test_refresh_workbook_returns_new_instance(master_workbook_path):
    original = data_manager.open_workbook(master_workbook_path)
    original[constants.SheetName.COMPANIES.value].append(["c2", "Zen Labs"])
    data_manager.save_workbook(original, master_workbook_path)

    refreshed = data_manager.refresh_workbook(master_workbook_path)
    assert refreshed is not original
    rows = list(refreshed[constants.SheetName.COMPANIES.value].iter_rows(min_row=2, values_only=True))
    assert ("c2", "Zen Labs") in rows


def test_sheet_headers_cover_every_collection():
    headers = data_manager.sheet_headers()
    assert set(headers) == {sheet.value for sheet in constants.SheetName}
    assert headers["Products"][0] == "ProductID"
    assert headers["Payments"][-1] == "Remarks"


# ---------------------------------------------------------------------------
# Row codecs
# ---------------------------------------------------------------------------


def test_serialize_record_follows_column_order(product_factory):
    """Nested batches become JSON text with money kept as decimal strings."""

    row = data_manager.serialize_record(Collection.PRODUCTS, product_to_record(product_factory()))

    assert row[:5] == ["p1", "Paracetamol 500", "Acme Pharma", "3004", Decimal("12")]
    assert row[5] is None
    batches = json.loads(row[6])
    assert batches[0]["mrp"] == "10.00"
    assert batches[0]["stock"] == 10


def test_deserialize_record_coerces_ids_and_blank_json():
    record = data_manager.deserialize_record(Collection.PRODUCTS, (101, "Cough Syrup", "Acme", None, 5, None, None))

    assert record["id"] == "101"
    assert record["batches"] == []
    assert record["hsnCode"] is None


def test_deserialize_record_pads_short_rows():
    record = data_manager.deserialize_record(Collection.COMPANIES, ("c1",))
    assert record == {"id": "c1", "name": None}


def test_iter_records_skips_blank_rows(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    sheet = workbook[constants.SheetName.COMPANIES.value]
    sheet.append(["c1", "Acme Pharma"])
    sheet.append([None, None])
    sheet.append(["c2", "Zen Labs"])

    records = list(data_manager.iter_records(workbook, Collection.COMPANIES))
    assert [record["name"] for record in records] == ["Acme Pharma", "Zen Labs"]


# ---------------------------------------------------------------------------
# Row operations
# ---------------------------------------------------------------------------


def test_locate_row_returns_row_index(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    data_manager.append_record(workbook, Collection.COMPANIES, {"id": "c9", "name": "Nova Bio"})

    assert data_manager.locate_row(workbook, constants.SheetName.COMPANIES.value, "CompanyID", "c9") == 2
    assert data_manager.locate_row(workbook, constants.SheetName.COMPANIES.value, "CompanyID", "nope") is None


def test_locate_row_unknown_column_raises(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    with pytest.raises(KeyError):
        data_manager.locate_row(workbook, constants.SheetName.COMPANIES.value, "Missing", "c1")


def test_update_record_modifies_selected_fields(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    data_manager.append_record(
        workbook,
        Collection.SUPPLIERS,
        {"id": "s1", "name": "MedSupply", "phone": "123", "openingBalance": 10},
    )

    data_manager.update_record(workbook, Collection.SUPPLIERS, "s1", field_values={"phone": "456"})

    record = next(data_manager.iter_records(workbook, Collection.SUPPLIERS))
    assert record["phone"] == "456"
    assert record["name"] == "MedSupply"
    assert record["openingBalance"] == 10


def test_update_record_rejects_unknown_field(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    data_manager.append_record(workbook, Collection.COMPANIES, {"id": "c1", "name": "Acme"})

    with pytest.raises(KeyError):
        data_manager.update_record(workbook, Collection.COMPANIES, "c1", field_values={"colour": "red"})


def test_update_and_delete_missing_document_raise(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    with pytest.raises(KeyError):
        data_manager.update_record(workbook, Collection.COMPANIES, "missing", field_values={"name": "x"})
    with pytest.raises(KeyError):
        data_manager.delete_record(workbook, Collection.COMPANIES, "missing")


def test_delete_record_removes_row(master_workbook_path):
    workbook = data_manager.open_workbook(master_workbook_path)
    data_manager.append_record(workbook, Collection.COMPANIES, {"id": "c1", "name": "Acme"})
    data_manager.append_record(workbook, Collection.COMPANIES, {"id": "c2", "name": "Zen"})

    data_manager.delete_record(workbook, Collection.COMPANIES, "c1")

    assert [record["id"] for record in data_manager.iter_records(workbook, Collection.COMPANIES)] == ["c2"]


# ---------------------------------------------------------------------------
# WorkbookStore
# ---------------------------------------------------------------------------


def _product_write_set(product) -> WriteSet:
    write_set = WriteSet()
    write_set.create(Collection.PRODUCTS, product_to_record(product))
    return write_set


def test_workbook_store_commit_persists_documents(master_workbook_path, product_factory):
    """Committed documents survive a reopen with their values intact."""

    product = product_factory()
    data_manager.WorkbookStore(master_workbook_path).commit(_product_write_set(product))

    reopened = data_manager.WorkbookStore(master_workbook_path)
    records = reopened.read_snapshot(Collection.PRODUCTS)

    assert len(records) == 1
    assert product_from_record(records[0]) == product


def test_workbook_store_rejects_invalid_write_set_without_saving(master_workbook_path, product_factory):
    """Validation failures leave the file untouched."""

    store = data_manager.WorkbookStore(master_workbook_path)
    before = master_workbook_path.read_bytes()

    write_set = _product_write_set(product_factory())
    write_set.delete(Collection.BILLS, "missing")
    with pytest.raises(WriteRejected):
        store.commit(write_set)

    assert master_workbook_path.read_bytes() == before
    assert store.read_snapshot(Collection.PRODUCTS) == []


def test_workbook_store_rejects_stale_expectation(master_workbook_path, product_factory, batch_factory):
    product = product_factory()
    store = data_manager.WorkbookStore(master_workbook_path)
    store.commit(_product_write_set(product))

    stale = WriteSet()
    stale.update(
        Collection.PRODUCTS,
        "p1",
        {"batches": [product_to_record(product)["batches"][0] | {"stock": 1}]},
        expected={"batches": [product_to_record(product)["batches"][0] | {"stock": 99}]},
    )
    with pytest.raises(WriteRejected):
        store.commit(stale)

    assert product_from_record(store.read_snapshot(Collection.PRODUCTS)[0]).batches[0].stock == 10


def test_workbook_store_accepts_expectation_read_back_from_disk(master_workbook_path, product_factory):
    """Expectations built from Decimal values match the JSON text stored on disk."""

    product = product_factory()
    store = data_manager.WorkbookStore(master_workbook_path)
    store.commit(_product_write_set(product))

    stored = product_from_record(store.read_snapshot(Collection.PRODUCTS)[0])
    batches = product_to_record(stored)["batches"]
    update = WriteSet()
    update.update(
        Collection.PRODUCTS,
        "p1",
        {"batches": [batches[0] | {"stock": 3}]},
        expected={"batches": batches},
    )
    store.commit(update)

    assert product_from_record(store.read_snapshot(Collection.PRODUCTS)[0]).batches[0].stock == 3


def test_workbook_store_save_failure_reverts_memory(monkeypatch, master_workbook_path, product_factory):
    store = data_manager.WorkbookStore(master_workbook_path)

    def _fail(*_args, **_kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(data_manager, "save_workbook", _fail)

    with pytest.raises(WriteRejected, match="disk full"):
        store.commit(_product_write_set(product_factory()))

    assert store.read_snapshot(Collection.PRODUCTS) == []


def test_workbook_store_reloads_after_external_change(master_workbook_path, product_factory):
    """A second writer's commit is visible to a store opened earlier."""

    reader = data_manager.WorkbookStore(master_workbook_path)
    assert reader.read_snapshot(Collection.PRODUCTS) == []

    data_manager.WorkbookStore(master_workbook_path).commit(_product_write_set(product_factory()))
    stat = master_workbook_path.stat()
    os.utime(master_workbook_path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

    assert [record["id"] for record in reader.read_snapshot(Collection.PRODUCTS)] == ["p1"]
