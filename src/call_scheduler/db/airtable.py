"""Airtable record store.

Talks to the Airtable REST API:

- ``GET    /{base}/{table}?filterByFormula=...&offset=...`` (paged list)
- ``GET    /{base}/{table}/{id}``
- ``POST   /{base}/{table}`` with ``{"fields": ...}``
- ``PATCH  /{base}/{table}/{id}`` with ``{"fields": ...}``

Airtable has no transactions or conditional writes, so
``supports_conditional_writes`` stays False and claims go through the
read-verify-write path.

API Documentation: https://airtable.com/developers/web/api/introduction
"""
from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from call_scheduler.core.exceptions import (
    RecordNotFoundError,
    RecordStoreConnectionError,
    RecordStoreError,
    RecordStoreRateLimitError,
    RecordStoreUnavailableError,
)
from call_scheduler.core.logging import get_logger
from call_scheduler.core.retry import STORE_RETRY_CONFIG, RetryConfig, retry_async
from call_scheduler.db.filters import Filter
from call_scheduler.db.store import Record, RecordStore

log = get_logger(__name__)


class AirtableRecordStore(RecordStore):
    """Record store backed by an Airtable base.

    Attributes:
        base_id: Airtable base id (``app...``)
        table_names: Logical table name -> Airtable table name or id
        page_size: Records per list page (Airtable caps this at 100)
    """

    API_BASE = "https://api.airtable.com/v0"

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_names: dict[str, str] | None = None,
        api_url: str | None = None,
        timeout: float = 15.0,
        page_size: int = 100,
        retry_config: RetryConfig | None = None,
    ):
        """Initialize the Airtable store.

        Args:
            api_key: Personal access token
            base_id: Airtable base id
            table_names: Optional mapping from logical to real table names
            api_url: API root, defaults to the public Airtable endpoint
            timeout: HTTP request timeout
            page_size: Page size for list requests
            retry_config: Backoff policy for 429 / 5xx / transport errors
        """
        self.base_id = base_id
        self.table_names = table_names or {}
        self.page_size = min(page_size, 100)
        self.retry_config = retry_config or STORE_RETRY_CONFIG

        self._client = httpx.AsyncClient(
            base_url=f"{(api_url or self.API_BASE).rstrip('/')}/{base_id}",
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def _path(self, table: str, record_id: str | None = None) -> str:
        name = quote(self.table_names.get(table, table), safe="")
        if record_id:
            return f"/{name}/{quote(record_id, safe='')}"
        return f"/{name}"

    @staticmethod
    def _to_record(data: dict[str, Any]) -> Record:
        return Record(
            id=data["id"],
            fields=dict(data.get("fields") or {}),
            created_time=data.get("createdTime"),
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json() if response.content else {}
        except (ValueError, TypeError):
            data = {}
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return f"[{error.get('type', response.status_code)}] {error.get('message', '')}".strip()
        if error:
            return str(error)
        return f"HTTP {response.status_code}"

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request and map failures onto the store error family."""
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise RecordStoreConnectionError(
                "Record store request timed out",
                details={"method": method, "path": path},
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise RecordStoreConnectionError(
                "Record store request failed",
                details={"method": method, "path": path},
                cause=e,
            ) from e

        status = response.status_code
        if status < 400 or status == 404:
            return response

        details = {"method": method, "path": path, "status_code": status}
        message = self._error_message(response)
        if status == 429:
            raise RecordStoreRateLimitError(f"Rate limited: {message}", details=details)
        if status >= 500:
            raise RecordStoreUnavailableError(f"Store unavailable: {message}", details=details)
        raise RecordStoreError(f"Store rejected request: {message}", details=details)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await retry_async(self._send, method, path, config=self.retry_config, **kwargs)

    # ========================================================================
    # RecordStore
    # ========================================================================

    async def create(self, table: str, fields: dict[str, Any]) -> Record:
        response = await self._request("POST", self._path(table), json={"fields": fields})
        if response.status_code == 404:
            raise RecordStoreError(
                f"Table {table} not found", details={"table": table, "status_code": 404}
            )
        record = self._to_record(response.json())
        log.debug("Record created", table=table, record_id=record.id)
        return record

    async def get(self, table: str, record_id: str) -> Record | None:
        response = await self._request("GET", self._path(table, record_id))
        if response.status_code == 404:
            return None
        return self._to_record(response.json())

    async def patch(self, table: str, record_id: str, fields: dict[str, Any]) -> Record:
        response = await self._request(
            "PATCH", self._path(table, record_id), json={"fields": fields}
        )
        if response.status_code == 404:
            raise RecordNotFoundError(
                f"Record {record_id} not found",
                details={"table": table, "record_id": record_id},
            )
        return self._to_record(response.json())

    async def list(self, table: str, filter: Filter | None = None) -> list[Record]:
        params: dict[str, Any] = {"pageSize": self.page_size}
        if filter is not None:
            params["filterByFormula"] = filter.to_formula()

        records: list[Record] = []
        while True:
            response = await self._request("GET", self._path(table), params=params)
            if response.status_code == 404:
                raise RecordStoreError(
                    f"Table {table} not found", details={"table": table, "status_code": 404}
                )
            data = response.json()
            records.extend(self._to_record(item) for item in data.get("records", []))

            offset = data.get("offset")
            if not offset:
                break
            params = {**params, "offset": offset}

        log.debug("Records listed", table=table, count=len(records))
        return records

    async def close(self) -> None:
        await self._client.aclose()

