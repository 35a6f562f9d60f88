"""Persistent per-source watermarks.

Tracks the highest delivered post id for every source. The store is
loaded once, advanced in memory as deliveries succeed, and written back
in full at the end of a run.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from feed_relay.errors import CacheCorrupt, CachePersistError
from feed_relay.identifier import Identifier

DEFAULT_NAMESPACE = "vk"


class WatermarkStore:
    """In-memory mapping of str(source_id) -> highest delivered post id."""

    def __init__(
        self,
        marks: dict[str, int] | None = None,
        namespace: str = DEFAULT_NAMESPACE,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self._namespace = namespace
        self._marks: dict[str, int] = dict(marks or {})
        # Sections belonging to other namespaces, written back untouched.
        self._extra: dict[str, Any] = dict(extra or {})

    @classmethod
    def load(
        cls, data: bytes | str, namespace: str = DEFAULT_NAMESPACE,
    ) -> tuple[WatermarkStore, CacheCorrupt | None]:
        """Parse a persisted snapshot.

        Never raises on bad input: a corrupt snapshot yields an empty
        store together with the CacheCorrupt describing the problem.
        """
        try:
            raw = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return cls(namespace=namespace), CacheCorrupt(f"Invalid JSON: {exc}")

        if not isinstance(raw, dict):
            return cls(namespace=namespace), CacheCorrupt("Top level is not an object")

        section = raw.get(namespace, {})
        if not isinstance(section, dict):
            return cls(namespace=namespace), CacheCorrupt(
                f"Section {namespace!r} is not an object"
            )

        marks: dict[str, int] = {}
        for key, value in section.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                return cls(namespace=namespace), CacheCorrupt(
                    f"Watermark for {key!r} is not an unsigned integer: {value!r}"
                )
            marks[str(key)] = value

        extra = {k: v for k, v in raw.items() if k != namespace}
        return cls(marks, namespace=namespace, extra=extra), None

    def get(self, source_id: Identifier | int | str) -> int | None:
        return self._marks.get(str(source_id))

    def advance(self, source_id: Identifier | int | str, candidate_id: Identifier | int | str) -> bool:
        """Raise the watermark to candidate_id if it is higher. Returns True on change."""
        try:
            candidate = Identifier.parse(candidate_id).coerce()
        except (TypeError, ValueError):
            return False
        if candidate is None:
            return False
        key = str(source_id)
        current = self._marks.get(key)
        if current is not None and candidate <= current:
            return False
        self._marks[key] = candidate
        return True

    def serialize(self) -> bytes:
        data = dict(self._extra)
        data[self._namespace] = dict(self._marks)
        return json.dumps(data, sort_keys=True, indent=2).encode("utf-8")

    def copy(self) -> WatermarkStore:
        return WatermarkStore(self._marks, namespace=self._namespace, extra=self._extra)

    def as_dict(self) -> dict[str, int]:
        return dict(self._marks)

    @property
    def namespace(self) -> str:
        return self._namespace

    def __len__(self) -> int:
        return len(self._marks)

    def __contains__(self, source_id: object) -> bool:
        return str(source_id) in self._marks


def load_watermarks(
    path: Path, namespace: str = DEFAULT_NAMESPACE,
) -> tuple[WatermarkStore, CacheCorrupt | None]:
    """Load the store from disk. A missing file is a valid empty start."""
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return WatermarkStore(namespace=namespace), None
    except OSError as exc:
        return WatermarkStore(namespace=namespace), CacheCorrupt(
            f"Cannot read {path}: {exc}"
        )
    return WatermarkStore.load(data, namespace=namespace)


def save_watermarks(store: WatermarkStore, path: Path) -> None:
    """Overwrite path with a full snapshot of the store."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_bytes(store.serialize())
        os.replace(str(tmp), str(path))
    except OSError as exc:
        raise CachePersistError(f"Failed to write watermarks to {path}: {exc}") from exc
