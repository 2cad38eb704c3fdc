"""Entity store contract and the in-memory reference store.

The transaction engines never talk to a persistence backend directly. They
read plain record dictionaries through :meth:`EntityStore.read_snapshot` and
describe their effect as a :class:`WriteSet`: an ordered list of create,
update and delete operations that a store must apply all-or-nothing.

Product updates may carry an ``expected`` mapping. A store compares those
fields against the document it currently holds and rejects the whole
write-set when they differ, which turns a read-modify-write of batch stock
into a compare-and-set.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Union

from . import log
from .constants import Collection, WriteKind
from .errors import PartialRevertWarning, WriteRejected


CollectionName = Union[Collection, str]

_NUMERIC_TEXT = re.compile(r"^-?\d+(\.\d+)?$")


@dataclass(frozen=True)
class WriteOp:
    """One create, update or delete inside a write-set."""

    kind: WriteKind
    collection: Collection
    record_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    expected: Optional[Mapping[str, Any]] = None


@dataclass
class WriteSet:
    """Ordered operations that must be committed together."""

    ops: List[WriteOp] = field(default_factory=list)

    def create(self, collection: CollectionName, record: Mapping[str, Any]) -> WriteOp:
        """Queue the creation of ``record``; its ``id`` key names the document."""

        fields = {key: value for key, value in record.items() if key != "id"}
        op = WriteOp(WriteKind.CREATE, Collection(collection), str(record["id"]), fields)
        self.ops.append(op)
        return op

    def update(
        self,
        collection: CollectionName,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> WriteOp:
        """Queue a partial update merging ``fields`` into an existing document."""

        op = WriteOp(WriteKind.UPDATE, Collection(collection), record_id, dict(fields), expected)
        self.ops.append(op)
        return op

    def delete(self, collection: CollectionName, record_id: str) -> WriteOp:
        op = WriteOp(WriteKind.DELETE, Collection(collection), record_id)
        self.ops.append(op)
        return op

    def touched(self, collection: CollectionName) -> List[str]:
        """Return the ids of ``collection`` documents this write-set affects."""

        target = Collection(collection)
        return [op.record_id for op in self.ops if op.collection is target]

    def __iter__(self) -> Iterator[WriteOp]:
        return iter(self.ops)

    def __len__(self) -> int:
        return len(self.ops)


@dataclass
class TransactionPlan:
    """A write-set together with the record it commits and any warnings."""

    record: Any
    write_set: WriteSet
    warnings: List[PartialRevertWarning] = field(default_factory=list)


class EntityStore(Protocol):
    """Capability the engines consume: fresh snapshots and atomic commits."""

    def read_snapshot(self, collection: CollectionName) -> List[Dict[str, Any]]:
        ...

    def commit(self, write_set: WriteSet) -> None:
        ...


def normalize_value(value: Any) -> Any:
    """Reduce a stored value to a canonical form for compare-and-set checks.

    Stores round-trip money through different encodings (``Decimal`` objects,
    floats, JSON text), so numbers and numeric strings are compared by their
    normalized decimal representation.
    """

    if isinstance(value, Mapping):
        return {key: normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float, Decimal)):
        return _normalize_number(value)
    if isinstance(value, str) and _NUMERIC_TEXT.match(value):
        return _normalize_number(value)
    return value


def _normalize_number(value: Any) -> str:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    if number == number.to_integral_value():
        return str(number.quantize(Decimal("1")))
    return str(number.normalize())


def apply_write_set(
    collections: Dict[str, Dict[str, Dict[str, Any]]],
    write_set: WriteSet,
) -> None:
    """Apply ``write_set`` to ``collections`` in place, validating each step.

    Callers pass a staging copy and only adopt it when this returns, which is
    what makes a commit all-or-nothing.

    Raises:
        WriteRejected: If a create collides with an existing id, an update or
            delete targets an unknown document, or an ``expected`` field no
            longer matches the stored document.
    """

    for op in write_set:
        documents = collections.setdefault(op.collection.value, {})
        if op.kind is WriteKind.CREATE:
            if op.record_id in documents:
                raise WriteRejected(
                    f"Cannot create {op.collection.value}/{op.record_id}: document already exists"
                )
            documents[op.record_id] = copy.deepcopy(dict(op.fields))
        elif op.kind is WriteKind.UPDATE:
            current = documents.get(op.record_id)
            if current is None:
                raise WriteRejected(
                    f"Cannot update {op.collection.value}/{op.record_id}: document does not exist"
                )
            check_expected(op, current)
            current.update(copy.deepcopy(dict(op.fields)))
        elif op.kind is WriteKind.DELETE:
            if op.record_id not in documents:
                raise WriteRejected(
                    f"Cannot delete {op.collection.value}/{op.record_id}: document does not exist"
                )
            del documents[op.record_id]
        else:  # pragma: no cover - WriteKind is closed
            raise WriteRejected(f"Unsupported write kind: {op.kind}")


def check_expected(op: WriteOp, current: Mapping[str, Any]) -> None:
    """Reject ``op`` when its compare-and-set expectations are stale."""

    if not op.expected:
        return
    for key, expected_value in op.expected.items():
        if normalize_value(current.get(key)) != normalize_value(expected_value):
            log.warning(
                "Compare-and-set failed for %s/%s on field '%s'",
                op.collection.value,
                op.record_id,
                key,
            )
            raise WriteRejected(
                f"{op.collection.value}/{op.record_id} was modified concurrently; reload and retry"
            )


class InMemoryStore:
    """Dictionary-backed :class:`EntityStore` honoring the atomic contract."""

    def __init__(self, initial: Optional[Mapping[CollectionName, Iterable[Mapping[str, Any]]]] = None) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            collection.value: {} for collection in Collection
        }
        self.commits = 0
        for name, records in (initial or {}).items():
            bucket = self._collections[Collection(name).value]
            for record in records:
                fields = {key: value for key, value in record.items() if key != "id"}
                bucket[str(record["id"])] = copy.deepcopy(fields)

    def read_snapshot(self, collection: CollectionName) -> List[Dict[str, Any]]:
        """Return deep copies of every document in ``collection``."""

        documents = self._collections[Collection(collection).value]
        return [{"id": record_id, **copy.deepcopy(fields)} for record_id, fields in documents.items()]

    def commit(self, write_set: WriteSet) -> None:
        """Apply ``write_set`` atomically or raise :class:`WriteRejected`."""

        staging = copy.deepcopy(self._collections)
        apply_write_set(staging, write_set)
        self._collections = staging
        self.commits += 1
        log.debug("In-memory store committed %d operations", len(write_set))


__all__ = [
    "WriteOp",
    "WriteSet",
    "TransactionPlan",
    "EntityStore",
    "InMemoryStore",
    "apply_write_set",
    "check_expected",
    "normalize_value",
]
