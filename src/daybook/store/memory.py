"""In-process document store with optimistic transactions.

Used by the test-suite and for local runs (``DAYBOOK_STORE=memory``).
Every document carries a version counter; a transaction remembers the
versions it read and its commit is rejected when any of them moved,
after which the work function is retried with fresh reads.
"""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from daybook.config import get_settings
from daybook.errors import DocumentNotFoundError, TransactionConflictError
from daybook.store.base import (
    CollectionCallback,
    CollectionRef,
    DocumentCallback,
    DocumentRef,
    DocumentSnapshot,
    DocumentStore,
    Subscription,
    Transaction,
    Write,
)

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class _Conflict(Exception):
    pass


class MemoryTransaction(Transaction):
    """Transaction that records the version of every document it reads."""

    def __init__(self, store: InMemoryDocumentStore):
        super().__init__()
        self._store = store
        self.read_versions: dict[str, int] = {}

    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        self.read_versions[ref.path] = self._store._versions.get(ref.path, 0)
        return self._store._snapshot(ref)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed :class:`DocumentStore`."""

    def __init__(self, max_attempts: int | None = None):
        self._max_attempts = max_attempts or get_settings().transaction_attempts
        self._docs: dict[str, dict[str, Any]] = {}
        self._versions: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self._document_listeners: dict[str, list[DocumentCallback]] = defaultdict(list)
        self._collection_listeners: dict[str, list[CollectionCallback]] = defaultdict(list)
        self._logger = logger.bind(component="memory_store")

    def _snapshot(self, ref: DocumentRef) -> DocumentSnapshot:
        data = self._docs.get(ref.path)
        return DocumentSnapshot(ref, copy.deepcopy(data) if data is not None else None)

    def _collection_snapshot(self, collection: CollectionRef) -> list[DocumentSnapshot]:
        return [
            self._snapshot(DocumentRef(path))
            for path in sorted(self._docs)
            if DocumentRef(path).parent.path == collection.path
        ]

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        return self._snapshot(ref)

    async def list(self, collection: CollectionRef) -> list[DocumentSnapshot]:
        return self._collection_snapshot(collection)

    async def set(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        await self._commit([Write("set", ref, dict(data))], {})

    def subscribe(
        self,
        target: DocumentRef | CollectionRef,
        callback: DocumentCallback | CollectionCallback,
    ) -> Subscription:
        if isinstance(target, CollectionRef):
            listeners: list[Any] = self._collection_listeners[target.path]
            callback(self._collection_snapshot(target))  # type: ignore[arg-type]
        else:
            listeners = self._document_listeners[target.path]
            callback(self._snapshot(target))  # type: ignore[arg-type]
        listeners.append(callback)

        def cancel() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return Subscription(cancel)

    async def run_transaction(self, work: Callable[[Transaction], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            tx = MemoryTransaction(self)
            result = await work(tx)
            try:
                await self._commit(tx.writes, tx.read_versions)
            except _Conflict:
                self._logger.info("transaction_retry", attempt=attempt)
                continue
            return result
        raise TransactionConflictError(
            f"Transaction aborted after {self._max_attempts} attempts",
            status_code=409,
        )

    async def _commit(self, writes: list[Write], read_versions: dict[str, int]) -> None:
        async with self._lock:
            for path, version in read_versions.items():
                if self._versions.get(path, 0) != version:
                    raise _Conflict(path)

            staged: dict[str, dict[str, Any] | None] = {}
            for write in writes:
                current = staged.get(write.ref.path, self._docs.get(write.ref.path))
                if write.kind == "set":
                    staged[write.ref.path] = copy.deepcopy(write.data)
                else:
                    if current is None:
                        raise DocumentNotFoundError(write.ref.path)
                    merged = dict(current)
                    merged.update(copy.deepcopy(write.data))
                    staged[write.ref.path] = merged

            for path, data in staged.items():
                assert data is not None
                self._docs[path] = data
                self._versions[path] = self._versions.get(path, 0) + 1

        self._notify(staged.keys())

    def _notify(self, paths: Any) -> None:
        collections: set[str] = set()
        for path in paths:
            ref = DocumentRef(path)
            collections.add(ref.parent.path)
            for callback in list(self._document_listeners.get(path, [])):
                self._dispatch(callback, self._snapshot(ref), path)
        for collection_path in collections:
            listeners = self._collection_listeners.get(collection_path, [])
            if not listeners:
                continue
            snapshot = self._collection_snapshot(CollectionRef(collection_path))
            for callback in list(listeners):
                self._dispatch(callback, snapshot, collection_path)

    def _dispatch(self, callback: Callable[[Any], None], payload: Any, path: str) -> None:
        # The commit has already been applied
        try:
            callback(payload)
        except Exception:
            self._logger.exception("listener_failed", path=path)
