"""
Document store over a single SQLAlchemy table.

Collections hold schemaless JSON documents addressed by (collection, doc_id).
Queries support equality, array-contains and in-list filters plus ordering and
limits. Batches commit all-or-nothing; transactions re-run on write conflicts.
There are no version checks: the last writer wins.
"""

from __future__ import annotations

import copy
import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from errors import NotFoundError, StoreError
from models import Document

logger = logging.getLogger("mcq-bank.store")

OPERATORS = ("==", "array-contains", "in")
# seconds; the jittered pause before retry n is at most n * RETRY_BACKOFF
RETRY_BACKOFF = 0.02

T = TypeVar("T")
Write = Tuple[str, str, str, Dict[str, Any]]  # (kind, collection, doc_id, data)


class WriteConflict(StoreError):
    """A create hit a document that already exists."""


@dataclass(frozen=True)
class DocumentSnapshot:
    id: str
    data: Dict[str, Any]

    def get(self, field: str, default: Any = None) -> Any:
        return self.data.get(field, default)


def _matches(data: Dict[str, Any], field: str, op: str, value: Any) -> bool:
    if field not in data:
        return False
    actual = data[field]
    if op == "==":
        return actual == value
    if op == "array-contains":
        return isinstance(actual, list) and value in actual
    return actual in value


def _order_key(value: Any) -> Tuple[int, Any]:
    # nulls first, like the remote store
    return (0, 0) if value is None else (1, value)


class Query:
    """Immutable query description; each builder call returns a new Query."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        filters: Tuple[Tuple[str, str, Any], ...] = (),
        orders: Tuple[Tuple[str, bool], ...] = (),
        limit: Optional[int] = None,
    ):
        self._store = store
        self.collection = collection
        self._filters = filters
        self._orders = orders
        self._limit = limit

    def where(self, field: str, op: str, value: Any) -> "Query":
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        if op == "in":
            value = list(value)
            if not value:
                raise ValueError("'in' filters require a non-empty list of values.")
        return Query(
            self._store,
            self.collection,
            self._filters + ((field, op, value),),
            self._orders,
            self._limit,
        )

    def order_by(self, field: str, descending: bool = False) -> "Query":
        return Query(
            self._store,
            self.collection,
            self._filters,
            self._orders + ((field, descending),),
            self._limit,
        )

    def limit(self, n: int) -> "Query":
        if n < 1:
            raise ValueError("limit must be positive")
        return Query(self._store, self.collection, self._filters, self._orders, n)

    def apply(self, docs: Iterable[DocumentSnapshot]) -> List[DocumentSnapshot]:
        out = [
            d
            for d in docs
            if all(_matches(d.data, field, op, value) for field, op, value in self._filters)
        ]
        # Documents without an order field are not part of an ordered result
        for field, _ in self._orders:
            out = [d for d in out if field in d.data]
        for field, descending in reversed(self._orders):
            out.sort(key=lambda d: _order_key(d.data[field]), reverse=descending)
        if self._limit is not None:
            out = out[: self._limit]
        return out

    def get(self) -> List[DocumentSnapshot]:
        return self._store.run_query(self)


# --- Session-level helpers -----------------------------------------------------


def _load(session: Session, collection: str) -> List[DocumentSnapshot]:
    rows = session.scalars(
        select(Document).where(Document.collection == collection).order_by(Document.id)
    ).all()
    return [DocumentSnapshot(r.doc_id, copy.deepcopy(r.data)) for r in rows]


def _find(session: Session, collection: str, doc_id: str) -> Optional[Document]:
    return session.scalars(
        select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
    ).first()


def _apply_write(session: Session, write: Write) -> None:
    kind, collection, doc_id, data = write
    row = _find(session, collection, doc_id)

    if kind == "create":
        if row is not None:
            raise WriteConflict(f"Document {collection}/{doc_id} already exists.")
        session.add(Document(collection=collection, doc_id=doc_id, data=copy.deepcopy(data)))
        session.flush()
    elif kind == "set":
        if row is None:
            session.add(Document(collection=collection, doc_id=doc_id, data=copy.deepcopy(data)))
        else:
            row.data = copy.deepcopy(data)
    elif kind == "update":
        if row is None:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}", key="documentNotFound")
        merged = dict(row.data)
        merged.update(copy.deepcopy(data))
        row.data = merged
    elif kind == "delete":
        if row is not None:
            session.delete(row)
    else:
        raise ValueError(f"Unknown write kind: {kind}")


def new_doc_id() -> str:
    return uuid.uuid4().hex[:20]


# --- Batches and transactions ---------------------------------------------------


class WriteBatch:
    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._writes: List[Write] = []

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._writes.append(("set", collection, doc_id, data))
        return self

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._writes.append(("update", collection, doc_id, data))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._writes.append(("delete", collection, doc_id, {}))
        return self

    def __len__(self) -> int:
        return len(self._writes)

    def commit(self) -> None:
        if self._writes:
            self._store.commit_writes(list(self._writes))


class Transaction:
    """Reads go straight to the session; writes are buffered until the function returns."""

    def __init__(self, session: Session):
        self._session = session
        self._writes: List[Write] = []

    def query(self, query: Query) -> List[DocumentSnapshot]:
        return query.apply(_load(self._session, query.collection))

    def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        row = _find(self._session, collection, doc_id)
        return None if row is None else DocumentSnapshot(row.doc_id, copy.deepcopy(row.data))

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writes.append(("create", collection, doc_id, data))

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writes.append(("set", collection, doc_id, data))

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writes.append(("update", collection, doc_id, data))


class DocumentStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def collection(self, name: str) -> Query:
        return Query(self, name)

    def run_query(self, query: Query) -> List[DocumentSnapshot]:
        try:
            with self._session_factory() as session:
                docs = _load(session, query.collection)
        except SQLAlchemyError as e:
            logger.error("query on %s failed: %s", query.collection, e)
            raise StoreError(f"db_error: {type(e).__name__}: {e}") from e
        return query.apply(docs)

    def document(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        try:
            with self._session_factory() as session:
                row = _find(session, collection, doc_id)
                if row is None:
                    return None
                return DocumentSnapshot(row.doc_id, copy.deepcopy(row.data))
        except SQLAlchemyError as e:
            raise StoreError(f"db_error: {type(e).__name__}: {e}") from e

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_doc_id()
        self.create(collection, doc_id, data)
        return doc_id

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Write a new document; WriteConflict if the key is taken."""
        self.commit_writes([("create", collection, doc_id, data)])

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.commit_writes([("set", collection, doc_id, data)])

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.commit_writes([("update", collection, doc_id, data)])

    def delete(self, collection: str, doc_id: str) -> None:
        self.commit_writes([("delete", collection, doc_id, {})])

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def commit_writes(self, writes: List[Write]) -> None:
        try:
            with self._session_factory() as session:
                for write in writes:
                    _apply_write(session, write)
                session.commit()
        except IntegrityError as e:
            raise WriteConflict(f"db_conflict: {e}") from e
        except SQLAlchemyError as e:
            logger.error("commit of %d writes failed: %s", len(writes), e)
            raise StoreError(f"db_error: {type(e).__name__}: {e}") from e

    def run_transaction(self, fn: Callable[[Transaction], T], max_attempts: int = 5) -> T:
        """
        Run `fn` inside a transaction and commit its buffered writes.
        A conflicting create (unique key already taken) re-runs `fn` from scratch.
        """
        last_error: Optional[Exception] = None
        for attempt in range(1, max_attempts + 1):
            try:
                with self._session_factory() as session:
                    tx = Transaction(session)
                    result = fn(tx)
                    for write in tx._writes:
                        _apply_write(session, write)
                    session.commit()
                return result
            except (IntegrityError, WriteConflict) as e:
                logger.info("transaction conflict on attempt %d/%d: %s", attempt, max_attempts, e)
                last_error = e
                if attempt < max_attempts:
                    time.sleep(random.uniform(0, RETRY_BACKOFF * attempt))
            except SQLAlchemyError as e:
                logger.error("transaction failed: %s", e)
                raise StoreError(f"db_error: {type(e).__name__}: {e}") from e
        raise StoreError(f"Transaction failed after {max_attempts} attempts.") from last_error
