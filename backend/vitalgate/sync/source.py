"""
Health Record Sources
=====================
Where the sync client reads samples from. On a phone that is the device
health store; from the command line it is a JSON export of it:

    {
      "weight": [
        {"id": "<uuid>", "dataOrigin": "com.example.scale",
         "time": 1760000000000, "weight": 72.4}
      ],
      "height": [...]
    }

Records are returned in the upload wire format, unchanged.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol

from vitalgate.sync.records import to_epoch_ms

logger = logging.getLogger(__name__)


class HealthRecordSource(Protocol):
    def read_records(self, data_type: str, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Return records of ``data_type`` sampled within ``[start, end]``."""
        ...


class JsonExportSource:
    """Reads a device export file (see module docstring)."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._data: Optional[dict[str, Any]] = None

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            with self._path.open(encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError(f"{self._path}: expected a JSON object keyed by data type")
            self._data = data
            logger.debug("Loaded export %s (%s)", self._path, ", ".join(sorted(data)))
        return self._data

    def read_records(self, data_type: str, start: datetime, end: datetime) -> list[dict[str, Any]]:
        records = self._load().get(data_type) or []
        start_ms, end_ms = to_epoch_ms(start), to_epoch_ms(end)
        return [r for r in records if start_ms <= int(r.get("time", -1)) <= end_ms]
