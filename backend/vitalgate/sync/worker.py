"""
Sync Worker
===========
Reads recent body-measurement records from a ``HealthRecordSource`` and
uploads them to the VitalGate API in batches:

    POST {base_url}/api/v1/health/{Permission}   {"data": [...]}

Each run covers the configured history range (default one week). Upload
attempts are retried with exponential backoff on transport errors, 429
and 5xx; any other failure fails that batch and the run moves on. Every
completed run is appended to a JSON sync-history log that keeps the last
100 entries.

The API ingests by record id, so re-uploading an overlapping window is
harmless: already stored records come back as ``skipped``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence
from uuid import uuid4

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vitalgate.config import get_settings
from vitalgate.sync.records import DATA_TYPES, DataType, history_window, interval_seconds
from vitalgate.sync.source import HealthRecordSource

logger = logging.getLogger(__name__)

# Statuses worth another attempt besides any 5xx; every other non-2xx
# fails the batch
RETRYABLE_STATUS = frozenset({408, 425, 429})


def is_retryable(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS or status_code >= 500


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class UploadError(Exception):
    """Non-2xx response from the ingestion endpoint."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upload failed with {status_code}: {body}")


class TransientUploadError(UploadError):
    """Upload failure that may succeed on retry."""


# ---------------------------------------------------------------------------
# Sync history log
# ---------------------------------------------------------------------------


@dataclass
class SyncResult:
    success_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: bool = False


class SyncHistoryLog:
    """JSON array of past sync runs, oldest first, capped at ``max_entries``."""

    max_entries = 100

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def entries(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError:
            logger.warning("Sync history %s is not valid JSON; starting a new log", self.path)
            return []
        return data if isinstance(data, list) else []

    def append(self, result: SyncResult, is_background_sync: bool) -> dict[str, Any]:
        entry = {
            "id": str(uuid4()),
            "timestamp": int(time.time() * 1000),
            "successCount": result.success_count,
            "failedCount": result.failed_count,
            "errors": list(result.errors),
            "isBackgroundSync": is_background_sync,
        }
        entries = (self.entries() + [entry])[-self.max_entries:]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        return entry


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


def _batches(records: Sequence[dict[str, Any]], size: int) -> Iterator[list[dict[str, Any]]]:
    for start in range(0, len(records), size):
        yield list(records[start:start + size])


class SyncWorker:
    """Uploads device records to the API. Settings fill any argument left as None."""

    def __init__(
        self,
        source: HealthRecordSource,
        *,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        history_range: Optional[str] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        history_log: Optional[SyncHistoryLog] = None,
        data_types: Sequence[DataType] = DATA_TYPES,
    ) -> None:
        settings = get_settings()
        self._source = source
        self._base_url = (base_url if base_url is not None else settings.sync_base_url).rstrip("/")
        self._access_token = access_token if access_token is not None else settings.sync_access_token
        self._history_range = history_range or settings.sync_history_range
        self._batch_size = max(1, batch_size or settings.sync_batch_size)
        self._max_retries = max(1, max_retries or settings.sync_max_retries)
        self._retry_delay = (
            retry_delay_seconds if retry_delay_seconds is not None else settings.sync_retry_delay_seconds
        )
        self._timeout = timeout_seconds or settings.sync_timeout_seconds
        self._history_log = history_log or SyncHistoryLog(Path(settings.sync_history_log_path))
        self._data_types = tuple(data_types)

    @property
    def history_log(self) -> SyncHistoryLog:
        return self._history_log

    async def run(self, is_background_sync: bool = True) -> SyncResult:
        """Run one sync pass over every data type."""
        if not self._base_url or not self._access_token:
            logger.warning("Not authenticated (base URL or access token missing), skipping sync")
            return SyncResult(skipped=True)

        start, end = history_window(self._history_range)
        logger.info("Syncing records from %s to %s", start.isoformat(), end.isoformat())

        result = SyncResult()
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._access_token}"},
        ) as client:
            for data_type in self._data_types:
                await self._sync_type(client, data_type, start, end, result)

        self._history_log.append(result, is_background_sync)
        logger.info(
            "Sync completed: %d uploaded, %d failed", result.success_count, result.failed_count
        )
        return result

    async def run_forever(
        self, interval: Optional[float] = None, max_runs: Optional[int] = None
    ) -> None:
        """Sync every ``interval`` seconds (default: the configured sync interval)."""
        if interval is None:
            interval = interval_seconds(get_settings().sync_interval)
        runs = 0
        while max_runs is None or runs < max_runs:
            await self.run(is_background_sync=True)
            runs += 1
            if max_runs is None or runs < max_runs:
                await asyncio.sleep(interval)

    # ---- Internals -------------------------------------------------------

    async def _sync_type(
        self, client: httpx.AsyncClient, data_type: DataType, start: Any, end: Any, result: SyncResult
    ) -> None:
        try:
            records = self._source.read_records(data_type.name, start, end)
        except Exception as exc:
            # One unreadable type must not abort the whole run
            logger.exception("Error reading %s records", data_type.name)
            result.failed_count += 1
            result.errors.append(f"{data_type.name}: {exc}")
            return

        for batch in _batches(records, self._batch_size):
            try:
                await self._upload(client, data_type.permission, batch)
            except (UploadError, httpx.HTTPError) as exc:
                logger.error("Failed to upload %d %s records: %s", len(batch), data_type.name, exc)
                result.failed_count += len(batch)
                result.errors.append(f"{data_type.name}: {exc}")
            else:
                logger.debug("Uploaded %d %s records", len(batch), data_type.name)
                result.success_count += len(batch)

    async def _upload(
        self, client: httpx.AsyncClient, permission: str, batch: list[dict[str, Any]]
    ) -> dict[str, Any]:
        """POST one batch with tenacity-managed retries."""
        body: dict[str, Any] = {}
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._retry_delay, min=self._retry_delay, max=60),
            retry=retry_if_exception_type((TransientUploadError, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                response = await client.post(f"/api/v1/health/{permission}", json={"data": batch})
                if is_retryable(response.status_code):
                    raise TransientUploadError(response.status_code, response.text)
                if not response.is_success:
                    raise UploadError(response.status_code, response.text)
                try:
                    body = response.json()
                except ValueError as exc:
                    # A 2xx page from a proxy or captive portal, not the API
                    raise UploadError(response.status_code, "response is not JSON") from exc
        return body
