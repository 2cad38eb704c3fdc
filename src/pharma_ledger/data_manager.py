"""Data access layer for the pharmacy ledger.

This module provides the helpers that read from and write to the
``pharmacy_data.xlsx`` workbook. Stock rules belong elsewhere.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Workbook lifecycle: opening, persisting, and reloading the Excel file.
3. Document storage: one worksheet per collection, one row per document,
   exposed through :class:`WorkbookStore`, an implementation of the entity
   store contract that applies whole write-sets or nothing.
"""


from __future__ import annotations

import configparser
import json
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from openpyxl.workbook import Workbook
import openpyxl

from . import log
from .constants import SHEET_FOR_COLLECTION, Collection, WriteKind
from .errors import WriteRejected
from .store import CollectionName, WriteOp, WriteSet, apply_write_set


CONFIG_FILE_NAME = "config.ini"
ID_FIELD = "id"


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    pharmacy_name: str
    schema_version: str
    default_customer: str
    allow_oversell: bool = False


@dataclass(frozen=True)
class Column:
    """Map one worksheet column onto a document field."""

    header: str
    field: str
    kind: str = "text"


SHEET_SCHEMAS: Dict[Collection, tuple[Column, ...]] = {
    Collection.PRODUCTS: (
        Column("ProductID", ID_FIELD),
        Column("Name", "name"),
        Column("Company", "company"),
        Column("HsnCode", "hsnCode"),
        Column("Gst", "gst", "number"),
        Column("Composition", "composition"),
        Column("Batches", "batches", "json"),
    ),
    Collection.BILLS: (
        Column("BillID", ID_FIELD),
        Column("BillNumber", "billNumber"),
        Column("Date", "date"),
        Column("CustomerName", "customerName"),
        Column("Items", "items", "json"),
        Column("SubTotal", "subTotal", "number"),
        Column("TotalGst", "totalGst", "number"),
        Column("GrandTotal", "grandTotal", "number"),
    ),
    Collection.PURCHASES: (
        Column("PurchaseID", ID_FIELD),
        Column("InvoiceNumber", "invoiceNumber"),
        Column("InvoiceDate", "invoiceDate"),
        Column("Supplier", "supplier"),
        Column("Items", "items", "json"),
        Column("TotalAmount", "totalAmount", "number"),
    ),
    Collection.COMPANIES: (
        Column("CompanyID", ID_FIELD),
        Column("Name", "name"),
    ),
    Collection.SUPPLIERS: (
        Column("SupplierID", ID_FIELD),
        Column("Name", "name"),
        Column("Address", "address"),
        Column("Phone", "phone"),
        Column("Gstin", "gstin"),
        Column("OpeningBalance", "openingBalance", "number"),
    ),
    Collection.PAYMENTS: (
        Column("PaymentID", ID_FIELD),
        Column("SupplierName", "supplierName"),
        Column("Date", "date"),
        Column("VoucherNumber", "voucherNumber"),
        Column("Amount", "amount", "number"),
        Column("Method", "method"),
        Column("Remarks", "remarks"),
    ),
}


def sheet_headers() -> Dict[str, List[str]]:
    """Return the header row of every worksheet keyed by sheet name."""

    return {
        SHEET_FOR_COLLECTION[collection].value: [column.header for column in columns]
        for collection, columns in SHEET_SCHEMAS.items()
    }


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification, which allows the caller to deliberately target a
    non-standard location. When no explicit path is given the function walks up
    from the current working directory toward the filesystem root looking for a
    file named ``CONFIG_FILE_NAME``. The first match that exists on disk is
    considered authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search. May be relative to the current working directory.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If the search exhausts all parent directories without
            finding ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Args:
        config_path (Path): Path to the configuration file, relative or
            absolute. ``~`` is expanded before the existence check.

    Returns:
        configparser.ConfigParser: Initialized parser containing the raw
            configuration data. Validation happens in :func:`parse_settings`.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion and
            resolution.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path)
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    Relative ``DataFile`` entries are expanded against ``base_path`` when
    provided, or against the current working directory as a fallback. The
    optional ``[Billing] AllowOversell`` flag defaults to ``False``.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory to use as the anchor for relative
            ``DataFile`` entries.

    Returns:
        ConfigSettings: Immutable settings container.

    Raises:
        KeyError: If one of the required sections or options is missing from the
            configuration.
        ValueError: If ``AllowOversell`` is not a recognised boolean.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        pharmacy_name = parser.get("System", "PharmacyName")
        schema_version = parser.get("System", "SchemaVersion")
        default_customer = parser.get("Defaults", "DefaultCustomer")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    allow_oversell = parser.getboolean("Billing", "AllowOversell", fallback=False)

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        pharmacy_name=pharmacy_name,
        schema_version=schema_version,
        default_customer=default_customer,
        allow_oversell=allow_oversell,
    )


def open_workbook(data_file: Path) -> Workbook:
    """Open the master Excel workbook and return a live ``openpyxl`` workbook.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist after expansion and
            resolution.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    return openpyxl.load_workbook(data_file)


def save_workbook(workbook: Workbook, destination: Path) -> None:
    """Persist the workbook to disk, creating parent directories on demand."""

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)


def refresh_workbook(data_file: Path) -> Workbook:
    """Reload the workbook from disk, discarding any unsaved in-memory changes."""

    return open_workbook(data_file)


def _sheet(workbook: Workbook, collection: CollectionName):
    return workbook[SHEET_FOR_COLLECTION[Collection(collection)].value]


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_record(collection: CollectionName, record: Mapping[str, Any]) -> list[object]:
    """Convert a document into the worksheet column ordering.

    Nested lists (product batches, bill items, purchase lines) are stored as
    JSON text with money kept as decimal strings; every other field is written
    as-is so Excel preserves numbers.
    """

    row: list[object] = []
    for column in SHEET_SCHEMAS[Collection(collection)]:
        value = record.get(column.field)
        if column.kind == "json":
            value = json.dumps(value if value is not None else [], default=_json_default)
        row.append(value)
    return row


def deserialize_record(collection: CollectionName, raw_row: Sequence[object]) -> Dict[str, Any]:
    """Convert a raw worksheet row into a document dictionary.

    Identifiers are coerced to ``str`` to avoid surprises caused by Excel
    interpreting numbers, blank JSON cells become empty lists, and blank text
    cells stay ``None``.
    """

    record: Dict[str, Any] = {}
    columns = SHEET_SCHEMAS[Collection(collection)]
    for index, column in enumerate(columns):
        value = raw_row[index] if index < len(raw_row) else None
        if column.field == ID_FIELD:
            value = str(value)
        elif column.kind == "json":
            value = json.loads(value) if value else []
        record[column.field] = value
    return record


def iter_records(workbook: Workbook, collection: CollectionName) -> Iterable[Dict[str, Any]]:
    """Iterate over the documents stored on a collection's worksheet.

    The iterator skips the header row and any fully empty rows.
    """

    sheet = _sheet(workbook, collection)
    for raw in sheet.iter_rows(min_row=2, values_only=True):
        if any(cell is not None for cell in raw):
            yield deserialize_record(collection, raw)


def locate_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str) -> Optional[int]:
    """Find a row by matching a key value within the specified worksheet.

    Returns:
        int | None: 1-based Excel row index when a match is found, otherwise
            ``None``.

    Raises:
        KeyError: If ``key_column`` is not present in the worksheet header.
    """

    sheet = workbook[sheet_name]
    header_cells = list(sheet[1])
    header_map = {cell.value: idx + 1 for idx, cell in enumerate(header_cells)}
    if key_column not in header_map:
        raise KeyError(f"Unknown column: {key_column}")

    key_col_index = header_map[key_column]

    for row_idx, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
        cell_value = row[key_col_index - 1]
        if cell_value is not None and str(cell_value) == key_value:
            return row_idx

    return None


def _locate_document(workbook: Workbook, collection: Collection, record_id: str) -> int:
    id_header = SHEET_SCHEMAS[collection][0].header
    row_index = locate_row(workbook, SHEET_FOR_COLLECTION[collection].value, id_header, record_id)
    if row_index is None:
        raise KeyError(f"Document not found: {collection.value}/{record_id}")
    return row_index


def append_record(workbook: Workbook, collection: CollectionName, record: Mapping[str, Any]) -> None:
    """Append a document as a new row of its collection's worksheet."""

    _sheet(workbook, collection).append(serialize_record(collection, record))


def update_record(workbook: Workbook, collection: CollectionName, record_id: str, *, field_values: Mapping[str, Any]) -> None:
    """Update selected fields of an existing document in place.

    Only the specified fields are modified, leaving other columns untouched.

    Raises:
        KeyError: If the document or any referenced field cannot be found.
    """

    target = Collection(collection)
    row_index = _locate_document(workbook, target, record_id)
    columns = {column.field: (position + 1, column) for position, column in enumerate(SHEET_SCHEMAS[target])}
    sheet = _sheet(workbook, target)

    for field_name, value in field_values.items():
        if field_name not in columns:
            raise KeyError(f"Unknown {target.value} field: {field_name}")
        col, column = columns[field_name]
        if column.kind == "json":
            value = json.dumps(value if value is not None else [], default=_json_default)
        sheet.cell(row=row_index, column=col, value=value)


def delete_record(workbook: Workbook, collection: CollectionName, record_id: str) -> None:
    target = Collection(collection)
    row_index = _locate_document(workbook, target, record_id)
    _sheet(workbook, target).delete_rows(row_index)


class WorkbookStore:
    """Entity store persisting every collection in one ``openpyxl`` workbook.

    Each :meth:`commit` validates the complete write-set against the current
    documents before touching a single cell, applies the rows, and saves the
    file. If applying or saving fails the in-memory workbook is reloaded from
    disk so no partial state survives.
    """

    def __init__(self, data_file: Path, workbook: Optional[Workbook] = None) -> None:
        self.data_file = Path(data_file).expanduser().resolve()
        self.workbook = workbook if workbook is not None else open_workbook(self.data_file)
        self._loaded_mtime = self._disk_mtime()

    def _disk_mtime(self) -> Optional[int]:
        try:
            return self.data_file.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _reload_if_changed(self) -> None:
        mtime = self._disk_mtime()
        if mtime is not None and mtime != self._loaded_mtime:
            log.info("Workbook '%s' changed on disk; reloading", self.data_file)
            self.reload()

    def reload(self) -> None:
        """Discard the in-memory workbook and read it again from disk."""

        self.workbook = refresh_workbook(self.data_file)
        self._loaded_mtime = self._disk_mtime()

    def read_snapshot(self, collection: CollectionName) -> List[Dict[str, Any]]:
        """Return every document of ``collection`` as currently saved."""

        self._reload_if_changed()
        records = list(iter_records(self.workbook, collection))
        log.debug("Read %d documents from '%s'", len(records), Collection(collection).value)
        return records

    def _staging_documents(self, write_set: WriteSet) -> Dict[str, Dict[str, Dict[str, Any]]]:
        staging: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for collection in {op.collection for op in write_set}:
            staging[collection.value] = {
                record[ID_FIELD]: {key: value for key, value in record.items() if key != ID_FIELD}
                for record in iter_records(self.workbook, collection)
            }
        return staging

    def _apply_op(self, op: WriteOp) -> None:
        if op.kind is WriteKind.CREATE:
            append_record(self.workbook, op.collection, {ID_FIELD: op.record_id, **op.fields})
        elif op.kind is WriteKind.UPDATE:
            update_record(self.workbook, op.collection, op.record_id, field_values=op.fields)
        else:
            delete_record(self.workbook, op.collection, op.record_id)

    def commit(self, write_set: WriteSet) -> None:
        """Apply and save ``write_set`` atomically.

        Raises:
            WriteRejected: If validation, compare-and-set checks, or the save
                itself fail. The workbook on disk is left unchanged.
        """

        self._reload_if_changed()
        apply_write_set(self._staging_documents(write_set), write_set)

        try:
            for op in write_set:
                self._apply_op(op)
            save_workbook(self.workbook, self.data_file)
        except (OSError, KeyError, ValueError, TypeError) as exc:
            log.error("Workbook commit failed, reverting in-memory changes: %s", exc)
            self.reload()
            raise WriteRejected(f"Unable to save workbook '{self.data_file}': {exc}") from exc

        self._loaded_mtime = self._disk_mtime()
        log.debug("Workbook store committed %d operations", len(write_set))


__all__ = [
    "ConfigSettings",
    "Column",
    "SHEET_SCHEMAS",
    "WorkbookStore",
    "sheet_headers",
    "find_config_file",
    "read_config",
    "parse_settings",
    "open_workbook",
    "save_workbook",
    "refresh_workbook",
    "serialize_record",
    "deserialize_record",
    "iter_records",
    "locate_row",
    "append_record",
    "update_record",
    "delete_record",
]
