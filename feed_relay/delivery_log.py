"""Persistent delivery log for auditing dispatch attempts.

Records every delivery outcome to a JSON file so failures can be
reviewed after a run. The log is informational only: dedup is driven
by the watermark store, never by this log.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)


@dataclass
class DeliveryRecord:
    """A single delivery attempt."""
    record_id: str
    post_id: str
    source_id: str
    status: str  # "delivered", "skipped", "populated"
    timestamp: str = ""
    permalink: str = ""
    message_id: str = ""
    error: str = ""
    attempts: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()


class DeliveryLog:
    """JSON file-backed delivery log."""

    def __init__(self, path: Path | None = None, max_records: int = 1000) -> None:
        self._path = path
        self._max_records = max_records
        self._records: list[DeliveryRecord] = []
        if path and path.exists():
            self._load()

    def _load(self) -> None:
        if not self._path or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._records = [
                DeliveryRecord(**rec) for rec in data.get("records", [])
            ]
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError, AttributeError) as exc:
            LOGGER.warning("Ignoring unreadable delivery log %s: %s", self._path, exc)
            self._records = []

    def save(self) -> None:
        """Write the full log to disk. Write failures are logged, never raised."""
        if not self._path:
            return
        data = {"records": [asdict(r) for r in self._records]}
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(str(tmp), str(self._path))
        except OSError as exc:
            LOGGER.error("Failed to write delivery log %s: %s", self._path, exc)

    def append(self, record: DeliveryRecord, save: bool = True) -> None:
        self._records.append(record)
        if self._max_records > 0 and len(self._records) > self._max_records:
            self._records = self._records[-self._max_records:]
        if save:
            self.save()

    def get_by_post(self, post_id: str) -> list[DeliveryRecord]:
        return [r for r in self._records if r.post_id == post_id]

    def get_by_source(self, source_id: str) -> list[DeliveryRecord]:
        return [r for r in self._records if r.source_id == source_id]

    def get_failures(self) -> list[DeliveryRecord]:
        return [r for r in self._records if r.status == "skipped"]

    @property
    def total_records(self) -> int:
        return len(self._records)

    @property
    def all_records(self) -> list[DeliveryRecord]:
        return list(self._records)
