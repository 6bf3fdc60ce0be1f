"""
Tests for the health-data sync client
=====================================
Covers:
- SyncWorker.run: batching, retry on any 5xx, no retry on 4xx, non-JSON
  success pages, read errors, skipped when not authenticated
- SyncHistoryLog: entry shape, 100-entry cap, corrupt file
- JsonExportSource: history-window filtering
- Record helpers: history windows, sync intervals
- run_forever: sleeps between runs

Run: pytest tests/test_sync_worker.py -v
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
import respx
from httpx import Response

from vitalgate.sync.records import (
    DATA_TYPES,
    history_window,
    interval_seconds,
    to_epoch_ms,
)
from vitalgate.sync.source import JsonExportSource
from vitalgate.sync.worker import SyncHistoryLog, SyncResult, SyncWorker, is_retryable

_BASE_URL = "http://api.test"
_WEIGHT = DATA_TYPES[0]
_HEIGHT = DATA_TYPES[1]
_BODY_FAT = DATA_TYPES[2]


def _record(hours_ago: float = 1, **value) -> dict:
    moment = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return {
        "id": str(uuid.uuid4()),
        "dataOrigin": "com.example.scale",
        "time": to_epoch_ms(moment),
        **(value or {"weight": 72.0}),
    }


@pytest.fixture
def export(tmp_path):
    """Write a device export and return its path."""

    def _write(data) -> str:
        path = tmp_path / "export.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def history(tmp_path):
    return SyncHistoryLog(tmp_path / "history.json")


def _worker(source, history, **overrides) -> SyncWorker:
    options = dict(
        base_url=_BASE_URL,
        access_token="token-123",
        batch_size=2,
        max_retries=3,
        retry_delay_seconds=0,
        history_log=history,
        data_types=[_WEIGHT],
    )
    options.update(overrides)
    return SyncWorker(source, **options)


# ---------------------------------------------------------------------------
# SyncWorker.run
# ---------------------------------------------------------------------------


class TestRun:
    @pytest.mark.asyncio
    @respx.mock
    async def test_uploads_in_batches(self, export, history):
        records = [_record() for _ in range(5)]
        source = JsonExportSource(export({"weight": records}))
        route = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(
            return_value=Response(200, json={"success": True})
        )

        result = await _worker(source, history).run()

        assert (result.success_count, result.failed_count) == (5, 0)
        assert route.call_count == 3
        sent = [json.loads(call.request.content)["data"] for call in route.calls]
        assert [len(batch) for batch in sent] == [2, 2, 1]
        assert sent[0][0] == records[0]
        assert route.calls[0].request.headers["authorization"] == "Bearer token-123"

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_transient_failures(self, export, history):
        source = JsonExportSource(export({"weight": [_record()]}))
        route = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(
            side_effect=[Response(503), Response(200, json={"success": True})]
        )

        result = await _worker(source, history).run()

        assert result.success_count == 1
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_gives_up_after_max_retries(self, export, history):
        source = JsonExportSource(export({"weight": [_record(), _record()]}))
        route = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(return_value=Response(500))

        result = await _worker(source, history).run()

        assert (result.success_count, result.failed_count) == (0, 2)
        assert route.call_count == 3
        assert result.errors[0].startswith("weight: Upload failed with 500")

    @pytest.mark.asyncio
    @respx.mock
    async def test_any_5xx_is_retried(self, export, history):
        source = JsonExportSource(export({"weight": [_record()]}))
        route = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(
            side_effect=[Response(501), Response(505), Response(200, json={"success": True})]
        )

        result = await _worker(source, history).run()

        assert result.success_count == 1
        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_success_fails_the_batch_and_continues(self, export, history):
        source = JsonExportSource(
            export({"weight": [_record()], "height": [_record(height=1.8)]})
        )
        weight = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(
            return_value=Response(
                200, text="<html>Sign in to Wi-Fi</html>", headers={"content-type": "text/html"}
            )
        )
        height = respx.post(f"{_BASE_URL}/api/v1/health/Height").mock(
            return_value=Response(200, json={"success": True})
        )

        result = await _worker(source, history, data_types=[_WEIGHT, _HEIGHT]).run()

        assert (result.success_count, result.failed_count) == (1, 1)
        assert weight.call_count == 1
        assert height.call_count == 1
        assert result.errors == ["weight: Upload failed with 200: response is not JSON"]
        [entry] = history.entries()
        assert entry["failedCount"] == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_errors_are_not_retried(self, export, history):
        source = JsonExportSource(export({"weight": [_record()]}))
        route = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(
            return_value=Response(422, json={"success": False})
        )

        result = await _worker(source, history).run()

        assert result.failed_count == 1
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_uploads_each_type_under_its_permission(self, export, history):
        source = JsonExportSource(
            export({"weight": [_record()], "body_fat": [_record(percentage=21.5)]})
        )
        weight = respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(return_value=Response(200, json={}))
        body_fat = respx.post(f"{_BASE_URL}/api/v1/health/BodyFat").mock(return_value=Response(200, json={}))

        result = await _worker(source, history, data_types=[_WEIGHT, _BODY_FAT]).run()

        assert result.success_count == 2
        assert weight.call_count == 1
        assert json.loads(body_fat.calls.last.request.content)["data"][0]["percentage"] == 21.5

    @pytest.mark.asyncio
    @respx.mock
    async def test_read_error_counts_once_and_continues(self, history):
        class BrokenSource:
            def read_records(self, data_type, start, end):
                if data_type == "weight":
                    raise ValueError("store unavailable")
                return [_record(percentage=20.0)]

        route = respx.post(f"{_BASE_URL}/api/v1/health/BodyFat").mock(return_value=Response(200, json={}))

        result = await _worker(BrokenSource(), history, data_types=[_WEIGHT, _BODY_FAT]).run()

        assert result.failed_count == 1
        assert result.success_count == 1
        assert result.errors == ["weight: store unavailable"]
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_skipped_without_credentials(self, export, history):
        source = JsonExportSource(export({"weight": [_record()]}))

        result = await _worker(source, history, access_token="").run()

        assert result.skipped is True
        assert history.entries() == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_run_is_logged(self, export, history):
        source = JsonExportSource(export({"weight": [_record()]}))
        respx.post(f"{_BASE_URL}/api/v1/health/Weight").mock(return_value=Response(200, json={}))

        await _worker(source, history).run(is_background_sync=False)

        [entry] = history.entries()
        assert entry["successCount"] == 1
        assert entry["failedCount"] == 0
        assert entry["errors"] == []
        assert entry["isBackgroundSync"] is False
        assert isinstance(entry["timestamp"], int)

    @pytest.mark.asyncio
    async def test_run_forever_sleeps_between_runs(self, history):
        worker = _worker(JsonExportSource("unused.json"), history)
        with patch.object(worker, "run", AsyncMock(return_value=SyncResult())) as run, \
                patch("vitalgate.sync.worker.asyncio.sleep", AsyncMock()) as sleep:
            await worker.run_forever(interval=7200, max_runs=3)

        assert run.await_count == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(7200)


# ---------------------------------------------------------------------------
# SyncHistoryLog
# ---------------------------------------------------------------------------


class TestHistoryLog:
    def test_keeps_the_last_100_entries(self, history):
        for n in range(105):
            history.append(SyncResult(success_count=n), is_background_sync=True)

        entries = history.entries()
        assert len(entries) == 100
        assert entries[0]["successCount"] == 5
        assert entries[-1]["successCount"] == 104

    def test_corrupt_file_starts_over(self, history):
        history.path.write_text("{not json", encoding="utf-8")
        assert history.entries() == []

        history.append(SyncResult(failed_count=1, errors=["x"]), is_background_sync=True)
        assert len(history.entries()) == 1


# ---------------------------------------------------------------------------
# Sources and record helpers
# ---------------------------------------------------------------------------


class TestJsonExportSource:
    def test_filters_to_the_window(self, export):
        recent, old = _record(hours_ago=2), _record(hours_ago=24 * 10)
        source = JsonExportSource(export({"weight": [recent, old]}))

        start, end = history_window("1 week")

        assert source.read_records("weight", start, end) == [recent]
        assert source.read_records("height", start, end) == []

    def test_rejects_non_object_exports(self, export):
        source = JsonExportSource(export([1, 2, 3]))
        start, end = history_window("1 day")
        with pytest.raises(ValueError):
            source.read_records("weight", start, end)


class TestRecordHelpers:
    @pytest.mark.parametrize(
        "key, days", [("1 day", 1), ("15 days", 15), ("30 days", 30), ("forever", 7)]
    )
    def test_history_window(self, key, days):
        now = datetime(2026, 5, 20, tzinfo=timezone.utc)
        start, end = history_window(key, now)
        assert end == now
        assert end - start == timedelta(days=days)

    @pytest.mark.parametrize(
        "key, seconds",
        [("Every 1 hour", 3600), ("Every 6 hours", 21600), ("Once a day", 86400), ("hourly-ish", 3600)],
    )
    def test_interval_seconds(self, key, seconds):
        assert interval_seconds(key) == seconds

    def test_data_types_cover_every_permission(self):
        from vitalgate.models.health import PERMISSIONS

        assert {t.permission for t in DATA_TYPES} == set(PERMISSIONS)


@pytest.mark.parametrize(
    "status_code, expected",
    [(408, True), (429, True), (500, True), (501, True), (599, True), (400, False), (404, False), (422, False)],
)
def test_is_retryable(status_code, expected):
    assert is_retryable(status_code) is expected
