"""Firestore REST gateway.

Talks to the Firestore v1 REST API with ``httpx``. Transactions use
``beginTransaction``/``commit``/``rollback``; contention (HTTP 409,
status ``ABORTED``) restarts the work function. Live subscriptions are
served by polling because the streaming ``Listen`` RPC is not available
over plain REST.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
import structlog

from daybook.config import get_settings
from daybook.errors import DocumentNotFoundError, PersistenceError, TransactionConflictError
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

PAGE_SIZE = 300


class _Aborted(TransactionConflictError):
    """ABORTED from Firestore. Retried inside transactions, a conflict outside them."""


# === Value encoding ===


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode("ascii")}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore ``Value`` into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(item) for item in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unknown Firestore value: {value!r}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


# === Gateway ===


class FirestoreTransaction(Transaction):
    """Transaction bound to a Firestore transaction id."""

    def __init__(self, store: FirestoreDocumentStore, transaction_id: str):
        super().__init__()
        self._store = store
        self.transaction_id = transaction_id

    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        return await self._store._get(ref, transaction=self.transaction_id)


class FirestoreDocumentStore(DocumentStore):
    """:class:`DocumentStore` backed by the Firestore REST API."""

    def __init__(
        self,
        project_id: str | None = None,
        database: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.project_id = project_id or settings.firestore_project_id
        if not self.project_id:
            raise ValueError("FIRESTORE_PROJECT_ID is required for the Firestore store")
        self.database = database or settings.firestore_database
        self.base_url = (base_url or settings.firestore_base_url).rstrip("/")
        self._api_key = api_key or (
            settings.firestore_api_key.get_secret_value() if settings.firestore_api_key else None
        )
        self._access_token = access_token or (
            settings.firestore_access_token.get_secret_value()
            if settings.firestore_access_token
            else None
        )
        self._timeout = timeout or settings.firestore_timeout
        self._poll_interval = poll_interval or settings.poll_interval
        self._max_attempts = max_attempts or settings.transaction_attempts

        self._client = client
        self._owns_client = client is None
        self._pollers: set[asyncio.Task[None]] = set()
        self._logger = logger.bind(component="firestore_store", project=self.project_id)

    @property
    def root(self) -> str:
        """Resource name prefix of every document in the database."""
        return f"projects/{self.project_id}/databases/{self.database}/documents"

    def _name(self, ref: DocumentRef) -> str:
        return f"{self.root}/{ref.path}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        for task in list(self._pollers):
            task.cancel()
        self._pollers.clear()
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> FirestoreDocumentStore:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # === HTTP ===

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        client = await self._get_client()
        query = dict(params or {})
        if self._api_key:
            query["key"] = self._api_key
        headers = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        try:
            response = await client.request(
                method, f"/{path}", json=json, params=query, headers=headers
            )
        except httpx.HTTPError as e:
            raise PersistenceError(f"Firestore request failed: {e}") from e

        if response.status_code == 404 and allow_not_found:
            return None
        if response.status_code >= 400:
            details = _error_details(response)
            status = details.get("status") if isinstance(details, dict) else None
            if response.status_code == 409 and status == "ABORTED":
                raise _Aborted(
                    details.get("message", "aborted"), status_code=409, details=details
                )
            message = details.get("message") if isinstance(details, dict) else None
            raise PersistenceError(
                message or f"Firestore returned HTTP {response.status_code}",
                status_code=response.status_code,
                details=details,
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise PersistenceError(
                "Invalid Firestore response format", status_code=response.status_code
            ) from e
        if not isinstance(data, dict):
            raise PersistenceError("Invalid Firestore response format", details=data)
        return data

    # === Reads ===

    async def _get(self, ref: DocumentRef, transaction: str | None = None) -> DocumentSnapshot:
        params = {"transaction": transaction} if transaction else None
        data = await self._request("GET", self._name(ref), params=params, allow_not_found=True)
        if data is None:
            return DocumentSnapshot(ref, None)
        return DocumentSnapshot(ref, decode_fields(data.get("fields", {})))

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        return await self._get(ref)

    async def list(self, collection: CollectionRef) -> list[DocumentSnapshot]:
        snapshots: list[DocumentSnapshot] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = await self._request(
                "GET", f"{self.root}/{collection.path}", params=params, allow_not_found=True
            )
            if not data:
                break
            for document in data.get("documents", []):
                path = document["name"].removeprefix(f"{self.root}/")
                snapshots.append(
                    DocumentSnapshot(DocumentRef(path), decode_fields(document.get("fields", {})))
                )
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        return snapshots

    # === Writes ===

    def _encode_write(self, write: Write) -> dict[str, Any]:
        encoded: dict[str, Any] = {
            "update": {"name": self._name(write.ref), "fields": encode_fields(write.data)}
        }
        if write.kind == "update":
            encoded["updateMask"] = {"fieldPaths": list(write.data)}
            encoded["currentDocument"] = {"exists": True}
        return encoded

    async def _commit(self, writes: list[Write], transaction: str | None = None) -> None:
        body: dict[str, Any] = {"writes": [self._encode_write(w) for w in writes]}
        if transaction:
            body["transaction"] = transaction
        try:
            await self._request("POST", f"{self.root}:commit", json=body)
        except PersistenceError as e:
            if e.status_code == 404:
                missing = next((w.ref.path for w in writes if w.kind == "update"), "")
                raise DocumentNotFoundError(missing) from e
            raise

    async def set(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        await self._commit([Write("set", ref, dict(data))])

    async def run_transaction(self, work: Callable[[Transaction], Awaitable[T]]) -> T:
        retry_id: str | None = None
        for attempt in range(1, self._max_attempts + 1):
            options: dict[str, Any] = {"readWrite": {}}
            if retry_id:
                options["readWrite"] = {"retryTransaction": retry_id}
            began = await self._request(
                "POST", f"{self.root}:beginTransaction", json={"options": options}
            )
            transaction_id = (began or {}).get("transaction")
            if not transaction_id:
                raise PersistenceError("Firestore did not return a transaction id", details=began)

            tx = FirestoreTransaction(self, transaction_id)
            try:
                result = await work(tx)
                await self._commit(tx.writes, transaction=transaction_id)
            except _Aborted:
                self._logger.info("transaction_retry", attempt=attempt)
                retry_id = transaction_id
                continue
            except Exception:
                await self._rollback(transaction_id)
                raise
            return result

        raise TransactionConflictError(
            f"Transaction aborted after {self._max_attempts} attempts",
            status_code=409,
        )

    async def _rollback(self, transaction_id: str) -> None:
        try:
            await self._request("POST", f"{self.root}:rollback", json={"transaction": transaction_id})
        except PersistenceError as e:
            # Abandoned transactions expire server-side
            self._logger.warning("rollback_failed", error=str(e))

    # === Subscriptions ===

    def subscribe(
        self,
        target: DocumentRef | CollectionRef,
        callback: DocumentCallback | CollectionCallback,
    ) -> Subscription:
        task = asyncio.get_running_loop().create_task(self._poll(target, callback))
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)
        return Subscription(task.cancel)

    async def _poll(
        self,
        target: DocumentRef | CollectionRef,
        callback: Callable[[Any], None],
    ) -> None:
        last: Any = object()
        while True:
            try:
                if isinstance(target, CollectionRef):
                    current: Any = await self.list(target)
                    fingerprint: Any = [(s.ref.path, s.data) for s in current]
                else:
                    current = await self.get(target)
                    fingerprint = current.data
            except PersistenceError as e:
                self._logger.warning("poll_failed", path=target.path, error=str(e))
            else:
                if fingerprint != last:
                    last = fingerprint
                    try:
                        callback(current)
                    except Exception:
                        self._logger.exception("listener_failed", path=target.path)
            await asyncio.sleep(self._poll_interval)


def _error_details(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return {"message": response.text}
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    return payload
