"""Small HTTP client for the parts of the ArangoDB REST API the adapter uses."""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

TRANSACTION_HEADER = "x-arango-trx-id"
SYSTEM_DATABASE = "_system"


class ArangoError(Exception):
    """Raised when the server rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        error_num: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.error_num = error_num


def _segment(name: str) -> str:
    return quote(name, safe="")


def _trx_headers(transaction_id: str | None) -> dict[str, str] | None:
    return {TRANSACTION_HEADER: transaction_id} if transaction_id else None


class ArangoClient:
    """Connection to one or more coordinators, used in round-robin order."""

    def __init__(
        self,
        endpoints: Sequence[str] = ("http://localhost:8529",),
        username: str = "root",
        password: str = "",
        verify: Any = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        urls = [endpoint.rstrip("/") for endpoint in endpoints]
        if not urls:
            raise ValueError("at least one endpoint is required")
        self.endpoints = urls
        self._next_endpoint = itertools.cycle(urls)
        self._http = httpx.Client(
            auth=httpx.BasicAuth(username, password),
            verify=verify,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> ArangoClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _call(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        url = next(self._next_endpoint) + path
        try:
            response = self._http.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise ArangoError(str(exc)) from exc

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {}

        failed = response.status_code >= 400 or (
            isinstance(payload, dict) and payload.get("error") is True
        )
        if failed:
            details = payload if isinstance(payload, dict) else {}
            raise ArangoError(
                details.get("errorMessage") or response.reason_phrase,
                code=response.status_code,
                error_num=details.get("errorNum"),
            )
        return payload

    def request(self, method: str, path: str, json: Any = None) -> Any:
        """Send a request to the next endpoint and return the decoded body."""
        return self._call(method, path, json)

    def database(self, name: str) -> Database:
        """Open an existing database; raises ArangoError if it does not exist."""
        self._call("GET", f"/_db/{_segment(name)}/_api/database/current")
        return Database(self, name)

    def create_database(self, name: str) -> Database:
        self._call("POST", f"/_db/{SYSTEM_DATABASE}/_api/database", {"name": name})
        return Database(self, name)

    def close(self) -> None:
        self._http.close()


class Database:
    """A database on the server."""

    def __init__(self, client: ArangoClient, name: str) -> None:
        self.client = client
        self.name = name

    def __repr__(self) -> str:
        return f"Database({self.name!r})"

    def _path(self, suffix: str) -> str:
        return f"/_db/{_segment(self.name)}/_api/{suffix}"

    def collection(self, name: str) -> Collection:
        """Open an existing collection; raises ArangoError if it does not exist."""
        self.client._call("GET", self._path(f"collection/{_segment(name)}"))
        return Collection(self, name)

    def create_collection(self, name: str) -> Collection:
        self.client._call("POST", self._path("collection"), {"name": name})
        return Collection(self, name)

    def query(
        self,
        query: str,
        bind_vars: Mapping[str, Any] | None = None,
        transaction_id: str | None = None,
    ) -> Cursor:
        """Run an AQL query and return a cursor over its results."""
        payload = self.client._call(
            "POST",
            self._path("cursor"),
            {"query": query, "bindVars": dict(bind_vars or {})},
            _trx_headers(transaction_id),
        )
        return Cursor(self, payload, transaction_id)

    def begin_transaction(self, write: Iterable[str]) -> StreamTransaction:
        """Start a streaming transaction that writes to the given collections."""
        payload = self.client._call(
            "POST",
            self._path("transaction/begin"),
            {"collections": {"write": list(write)}},
        )
        result = payload.get("result") or {}
        if "id" not in result:
            raise ArangoError("server did not return a transaction id")
        return StreamTransaction(self, str(result["id"]), result.get("status", "running"))

    def remove(self) -> None:
        """Drop this database."""
        self.client._call(
            "DELETE", f"/_db/{SYSTEM_DATABASE}/_api/database/{_segment(self.name)}"
        )


class Collection:
    """A document collection inside a database."""

    def __init__(self, database: Database, name: str) -> None:
        self.database = database
        self.name = name

    def __repr__(self) -> str:
        return f"Collection({self.database.name!r}, {self.name!r})"

    def truncate(self, transaction_id: str | None = None) -> None:
        """Remove every document from the collection."""
        self.database.client._call(
            "PUT",
            self.database._path(f"collection/{_segment(self.name)}/truncate"),
            headers=_trx_headers(transaction_id),
        )

    def create_document(
        self, document: Mapping[str, Any], transaction_id: str | None = None
    ) -> dict[str, Any]:
        """Insert one document and return its metadata."""
        return self.database.client._call(
            "POST",
            self.database._path(f"document/{_segment(self.name)}"),
            dict(document),
            _trx_headers(transaction_id),
        )

    def create_documents(
        self,
        documents: Iterable[Mapping[str, Any]],
        transaction_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert several documents in one request and return per-document results."""
        batch = [dict(document) for document in documents]
        if not batch:
            return []
        result = self.database.client._call(
            "POST",
            self.database._path(f"document/{_segment(self.name)}"),
            batch,
            _trx_headers(transaction_id),
        )
        return result if isinstance(result, list) else []


class Cursor:
    """Iterates over query results, fetching further batches as needed."""

    def __init__(
        self,
        database: Database,
        payload: Mapping[str, Any],
        transaction_id: str | None = None,
    ) -> None:
        self._database = database
        self._transaction_id = transaction_id
        self._buffer: deque[Any] = deque(payload.get("result") or ())
        self._id = payload.get("id")
        self._has_more = bool(payload.get("hasMore"))

    @property
    def has_more(self) -> bool:
        return bool(self._buffer) or self._has_more

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[Any]:
        while True:
            while self._buffer:
                yield self._buffer.popleft()
            if not (self._has_more and self._id):
                return
            self._fetch()

    def _fetch(self) -> None:
        payload = self._database.client._call(
            "PUT",
            self._database._path(f"cursor/{_segment(str(self._id))}"),
            headers=_trx_headers(self._transaction_id),
        )
        self._buffer.extend(payload.get("result") or ())
        self._has_more = bool(payload.get("hasMore"))
        self._id = payload.get("id", self._id)

    def close(self) -> None:
        """Release the server-side cursor if results remain unread."""
        if self._has_more and self._id:
            self._database.client._call(
                "DELETE",
                self._database._path(f"cursor/{_segment(str(self._id))}"),
                headers=_trx_headers(self._transaction_id),
            )
        self._has_more = False
        self._buffer.clear()


class StreamTransaction:
    """A running streaming transaction."""

    def __init__(self, database: Database, id: str, status: str = "running") -> None:
        self.database = database
        self.id = id
        self.status = status

    def __repr__(self) -> str:
        return f"StreamTransaction({self.id!r}, status={self.status!r})"

    def _finish(self, method: str) -> None:
        payload = self.database.client._call(
            method, self.database._path(f"transaction/{_segment(self.id)}")
        )
        result = payload.get("result") if isinstance(payload, dict) else None
        if isinstance(result, dict) and "status" in result:
            self.status = result["status"]

    def commit(self) -> None:
        self._finish("PUT")

    def abort(self) -> None:
        self._finish("DELETE")