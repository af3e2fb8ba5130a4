"""Document store interface shared by the in-memory and Firestore gateways.

The store speaks in slash-separated paths the way Firestore does: a
collection path has an odd number of segments, a document path an even
number. Documents are plain ``dict`` payloads of JSON-compatible values.
"""

from __future__ import annotations

import secrets
import string
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from daybook.errors import TransactionError

T = TypeVar("T")

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


def generate_id() -> str:
    """Generate a 20 character document id like Firestore client SDKs do."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def _split(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


@dataclass(frozen=True)
class CollectionRef:
    """Handle to a collection."""

    path: str

    def __post_init__(self) -> None:
        segments = _split(self.path)
        if not segments or len(segments) % 2 == 0:
            raise ValueError(f"Not a collection path: {self.path!r}")
        object.__setattr__(self, "path", "/".join(segments))

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def document(self, doc_id: str | None = None) -> DocumentRef:
        """Return a document handle, generating an id when none is given."""
        return DocumentRef(f"{self.path}/{doc_id or generate_id()}")


@dataclass(frozen=True)
class DocumentRef:
    """Handle to a single document."""

    path: str

    def __post_init__(self) -> None:
        segments = _split(self.path)
        if not segments or len(segments) % 2 == 1:
            raise ValueError(f"Not a document path: {self.path!r}")
        object.__setattr__(self, "path", "/".join(segments))

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def parent(self) -> CollectionRef:
        return CollectionRef(self.path.rsplit("/", 1)[0])


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time view of a document; ``data`` is None when it is missing."""

    ref: DocumentRef
    data: dict[str, Any] | None = None

    @property
    def id(self) -> str:
        return self.ref.id

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)


DocumentCallback = Callable[[DocumentSnapshot], None]
CollectionCallback = Callable[[list[DocumentSnapshot]], None]


class Subscription:
    """Cancellable handle returned by :meth:`DocumentStore.subscribe`."""

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._cancel()


@dataclass
class Write:
    """A buffered write inside a transaction."""

    kind: Literal["set", "update"]
    ref: DocumentRef
    data: dict[str, Any] = field(default_factory=dict)


class Transaction(ABC):
    """Atomic read-modify-write unit.

    All reads must happen before the first write, mirroring Firestore.
    Writes are buffered and applied together at commit time.
    """

    def __init__(self) -> None:
        self.writes: list[Write] = []

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        if self.writes:
            raise TransactionError("Transactions require all reads to happen before writes")
        return await self._read(ref)

    def set(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        self.writes.append(Write("set", ref, dict(data)))

    def update(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        if not data:
            raise TransactionError("update() needs at least one field")
        self.writes.append(Write("update", ref, dict(data)))

    @abstractmethod
    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        """Read a document inside the transaction."""


class DocumentStore(ABC):
    """Persistence gateway used by the roster, ledger and closing engine."""

    def collection(self, path: str) -> CollectionRef:
        return CollectionRef(path)

    def document(self, collection: CollectionRef | str, key: str) -> DocumentRef:
        base = collection.path if isinstance(collection, CollectionRef) else collection
        return DocumentRef(f"{base}/{key}")

    @abstractmethod
    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        """Read one document."""

    @abstractmethod
    async def list(self, collection: CollectionRef) -> list[DocumentSnapshot]:
        """Read every document of a collection."""

    @abstractmethod
    async def set(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        """Create or overwrite a document outside of a transaction."""

    @abstractmethod
    def subscribe(
        self,
        target: DocumentRef | CollectionRef,
        callback: DocumentCallback | CollectionCallback,
    ) -> Subscription:
        """Push the current value to ``callback`` and again on every change.

        Documents deliver a :class:`DocumentSnapshot` (``exists`` False when
        missing), collections deliver a list of snapshots.
        """

    @abstractmethod
    async def run_transaction(self, work: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run ``work`` and commit its writes atomically, retrying on conflict.

        If ``work`` raises, nothing is written and the exception propagates.
        """

    async def create(self, collection: CollectionRef, data: dict[str, Any]) -> DocumentRef:
        """Create a document with a generated id."""
        ref = collection.document()
        await self.set(ref, data)
        return ref

    async def close(self) -> None:
        """Release resources held by the gateway."""
        return None
