"""Document store on top of SQLAlchemy.

Documents live at slash-separated paths (`Collection/doc/Sub/doc`) and hold a
JSON body. The API follows the usual document-database shape: references,
snapshots, immutable query builders with cursors, and atomic write batches.

Datetimes are stored as canonical UTC strings (see :func:`encode_timestamp`) so
ordering a query by a timestamp field sorts chronologically.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from message_retraction.db.time import utcnow
from message_retraction.models import Document

from .errors import BatchTooLargeError, DocumentNotFoundError, StoreError

logger = logging.getLogger(__name__)

MAX_BATCH_OPERATIONS = 500

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": lambda col, value: col == value,
    "!=": lambda col, value: col != value,
    "<": lambda col, value: col < value,
    "<=": lambda col, value: col <= value,
    ">": lambda col, value: col > value,
    ">=": lambda col, value: col >= value,
}


class _Sentinel:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")


def encode_timestamp(value: datetime) -> str:
    """Return the canonical string form of a datetime (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _encode(value: Any, now: str) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, datetime):
        return encode_timestamp(value)
    if isinstance(value, Mapping):
        return {str(k): _encode(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v, now) for v in value]
    return value


def _deep_merge(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _set_dotted(data: dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def _split_path(path: str) -> list[str]:
    segments = path.strip("/").split("/")
    if any(not segment for segment in segments):
        raise ValueError(f"Invalid store path: {path!r}")
    return segments


def _json_field(field: str) -> Any:
    parts = tuple(field.split("."))
    return Document.data[parts if len(parts) > 1 else parts[0]]


def _typed(expr: Any, value: Any) -> Any:
    if isinstance(value, bool):
        return expr.as_boolean()
    if isinstance(value, (int, float)):
        return expr.as_float()
    return expr.as_string()


class DocumentSnapshot:
    """Point-in-time view of a document; `exists` is False for absent ones."""

    def __init__(self, reference: DocumentReference, data: dict[str, Any] | None) -> None:
        self.reference = reference
        self._data = data

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any] | None:
        """Return a copy of the document body, or None if it does not exist."""
        if self._data is None:
            return None
        return copy.deepcopy(self._data)

    def get(self, field: str, default: Any = None) -> Any:
        """Read a (possibly dotted) field from the snapshot."""
        node: Any = self._data or {}
        for part in field.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def __repr__(self) -> str:
        return f"DocumentSnapshot({self.reference.path!r}, exists={self.exists})"


class DocumentReference:
    """Reference to a single document path."""

    def __init__(self, store: DocumentStore, path: str) -> None:
        segments = _split_path(path)
        if len(segments) % 2 != 0:
            raise ValueError(f"Document path must have an even number of segments: {path!r}")
        self._store = store
        self.path = "/".join(segments)
        self.id = segments[-1]

    @property
    def parent(self) -> CollectionReference:
        return CollectionReference(self._store, self.path.rsplit("/", 1)[0])

    def collection(self, name: str) -> CollectionReference:
        return CollectionReference(self._store, f"{self.path}/{name}")

    def get(self) -> DocumentSnapshot:
        return self._store._read(self)

    def set(self, data: Mapping[str, Any], merge: bool = False) -> None:
        self._store._write(lambda: self._store._apply_set(self, data, merge))

    def update(self, data: Mapping[str, Any]) -> None:
        self._store._write(lambda: self._store._apply_update(self, data))

    def delete(self) -> None:
        self._store._write(lambda: self._store._apply_delete(self))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DocumentReference) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"DocumentReference({self.path!r})"


@dataclass(frozen=True)
class _Order:
    field: str
    direction: str


class Query:
    """Immutable query over one collection.

    Every builder method returns a new query, so partially built queries can
    be shared and extended independently.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection_path: str,
        filters: tuple[tuple[str, str, Any], ...] = (),
        orders: tuple[_Order, ...] = (),
        limit_count: int | None = None,
        cursor: DocumentSnapshot | None = None,
    ) -> None:
        self._store = store
        self._collection_path = collection_path
        self._filters = filters
        self._orders = orders
        self._limit = limit_count
        self._cursor = cursor

    def _copy(self, **changes: Any) -> Query:
        params = {
            "filters": self._filters,
            "orders": self._orders,
            "limit_count": self._limit,
            "cursor": self._cursor,
        }
        params.update(changes)
        return Query(self._store, self._collection_path, **params)

    def where(self, field: str, op: str, value: Any) -> Query:
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op!r}")
        return self._copy(filters=self._filters + ((field, op, value),))

    def order_by(self, field: str, direction: str = ASCENDING) -> Query:
        if direction not in (ASCENDING, DESCENDING):
            raise ValueError(f"Unsupported direction: {direction!r}")
        return self._copy(orders=self._orders + (_Order(field, direction),))

    def limit(self, count: int) -> Query:
        return self._copy(limit_count=count)

    def start_after(self, snapshot: DocumentSnapshot) -> Query:
        if not self._orders:
            raise ValueError("start_after requires at least one order_by clause")
        return self._copy(cursor=snapshot)

    def get(self) -> list[DocumentSnapshot]:
        return list(self.stream())

    def stream(self) -> Iterator[DocumentSnapshot]:
        rows = self._store._query(self._statement())
        parent = CollectionReference(self._store, self._collection_path)
        for row in rows:
            yield DocumentSnapshot(parent.document(row.doc_id), copy.deepcopy(row.data))

    def _statement(self) -> Any:
        stmt = select(Document).where(Document.collection_path == self._collection_path)

        for field, op, value in self._filters:
            encoded = _encode(value, "")
            stmt = stmt.where(_OPERATORS[op](_typed(_json_field(field), encoded), encoded))

        order_columns = []
        for order in self._orders:
            column = _json_field(order.field).as_string()
            stmt = stmt.where(column.is_not(None))
            order_columns.append((column, order.direction))

        if order_columns:
            tie_direction = order_columns[-1][1]
            order_columns.append((Document.doc_id, tie_direction))
        else:
            order_columns.append((Document.doc_id, ASCENDING))

        if self._cursor is not None:
            stmt = stmt.where(self._cursor_clause(order_columns))

        stmt = stmt.order_by(
            *(col.desc() if direction == DESCENDING else col.asc() for col, direction in order_columns)
        )
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    def _cursor_clause(self, order_columns: list[tuple[Any, str]]) -> Any:
        assert self._cursor is not None
        values = [_encode(self._cursor.get(order.field), "") for order in self._orders]
        values.append(self._cursor.id)

        clauses = []
        for index, (column, direction) in enumerate(order_columns):
            equal_prefix = [
                prev_column == values[pos]
                for pos, (prev_column, _) in enumerate(order_columns[:index])
            ]
            past = column < values[index] if direction == DESCENDING else column > values[index]
            clauses.append(and_(*equal_prefix, past))
        return or_(*clauses)


class CollectionReference(Query):
    """Reference to a collection; also the root query over it."""

    def __init__(self, store: DocumentStore, path: str) -> None:
        segments = _split_path(path)
        if len(segments) % 2 != 1:
            raise ValueError(f"Collection path must have an odd number of segments: {path!r}")
        super().__init__(store, "/".join(segments))
        self.path = self._collection_path
        self.id = segments[-1]

    def document(self, doc_id: str) -> DocumentReference:
        return DocumentReference(self._store, f"{self.path}/{doc_id}")

    def __repr__(self) -> str:
        return f"CollectionReference({self.path!r})"


class WriteBatch:
    """Collects writes and applies them in a single transaction on commit."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._operations: list[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._operations)

    def set(self, reference: DocumentReference, data: Mapping[str, Any], merge: bool = False) -> WriteBatch:
        self._operations.append(lambda: self._store._apply_set(reference, data, merge))
        return self

    def update(self, reference: DocumentReference, data: Mapping[str, Any]) -> WriteBatch:
        self._operations.append(lambda: self._store._apply_update(reference, data))
        return self

    def delete(self, reference: DocumentReference) -> WriteBatch:
        self._operations.append(lambda: self._store._apply_delete(reference))
        return self

    def commit(self) -> None:
        """Apply every queued write atomically.

        Raises:
            BatchTooLargeError: If the batch exceeds the store's operation cap
            StoreError: If the database rejects the transaction
        """
        if len(self._operations) > self._store.max_batch_operations:
            raise BatchTooLargeError(
                f"Batch holds {len(self._operations)} operations; "
                f"the limit is {self._store.max_batch_operations}"
            )
        operations = list(self._operations)

        def _apply_all() -> None:
            for operation in operations:
                operation()

        self._store._write(_apply_all)
        self._operations.clear()


class DocumentStore:
    """Document-store facade over one SQLAlchemy session."""

    def __init__(
        self,
        session: Session,
        clock: Callable[[], datetime] = utcnow,
        max_batch_operations: int = MAX_BATCH_OPERATIONS,
    ) -> None:
        self.session = session
        self.clock = clock
        self.max_batch_operations = max_batch_operations

    def collection(self, path: str) -> CollectionReference:
        return CollectionReference(self, path)

    def document(self, path: str) -> DocumentReference:
        return DocumentReference(self, path)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    # -- internals -----------------------------------------------------------

    def _read(self, reference: DocumentReference) -> DocumentSnapshot:
        try:
            row = self.session.get(Document, reference.path)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to read {reference.path}: {exc}") from exc
        data = copy.deepcopy(row.data) if row is not None else None
        return DocumentSnapshot(reference, data)

    def _query(self, statement: Any) -> list[Document]:
        try:
            return list(self.session.scalars(statement))
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Query failed: {exc}") from exc

    def _write(self, apply: Callable[[], None]) -> None:
        try:
            apply()
            self.session.commit()
        except DocumentNotFoundError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Write failed: {exc}") from exc

    def _now(self) -> str:
        return encode_timestamp(self.clock())

    def _apply_set(self, reference: DocumentReference, data: Mapping[str, Any], merge: bool) -> None:
        encoded = _encode(data, self._now())
        row = self.session.get(Document, reference.path)
        if row is None:
            self.session.add(
                Document(
                    path=reference.path,
                    collection_path=reference.parent.path,
                    doc_id=reference.id,
                    data=encoded,
                )
            )
            self.session.flush()
            return
        row.data = _deep_merge(row.data or {}, encoded) if merge else encoded
        self.session.flush()

    def _apply_update(self, reference: DocumentReference, data: Mapping[str, Any]) -> None:
        row = self.session.get(Document, reference.path)
        if row is None:
            raise DocumentNotFoundError(f"No document to update: {reference.path}")
        updated = copy.deepcopy(row.data or {})
        for key, value in _encode(data, self._now()).items():
            _set_dotted(updated, key, value)
        row.data = updated
        self.session.flush()

    def _apply_delete(self, reference: DocumentReference) -> None:
        self.session.execute(delete(Document).where(Document.path == reference.path))
        self.session.flush()
