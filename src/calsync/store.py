"""Record store interface and local implementations.

The sync engine reads and writes local scheduling records only through
the :class:`RecordStore` protocol: filter by field equality, patch a
record, create a record.  Records are plain ``dict`` objects keyed by
entity name (``"Task"``, ``"Meeting"``).

:class:`InMemoryRecordStore` backs tests and embedders;
:class:`JsonFileRecordStore` persists the same structure to a JSON file
for the command-line interface.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Minimal record store capability consumed by the sync engine."""

    def filter(self, entity: str, criteria: Mapping[str, Any]) -> list[dict]:
        """Return records of *entity* whose fields equal every *criteria* value."""
        ...

    def update(self, entity: str, record_id: str, patch: Mapping[str, Any]) -> dict:
        """Apply *patch* to a record and return the updated record."""
        ...

    def create(self, entity: str, fields: Mapping[str, Any]) -> dict:
        """Create a record and return it with its assigned ``id``."""
        ...


class InMemoryRecordStore:
    """Dict-backed :class:`RecordStore`.

    Records are returned as deep copies so callers cannot mutate stored
    state except through :meth:`update`.

    Args:
        records: Optional initial contents, ``{entity: [record, ...]}``.
    """

    def __init__(self, records: Mapping[str, list[dict]] | None = None) -> None:
        self._records: dict[str, list[dict]] = {
            entity: [dict(record) for record in items]
            for entity, items in (records or {}).items()
        }

    def filter(self, entity: str, criteria: Mapping[str, Any]) -> list[dict]:
        return [
            copy.deepcopy(record)
            for record in self._records.get(entity, [])
            if all(record.get(key) == value for key, value in criteria.items())
        ]

    def update(self, entity: str, record_id: str, patch: Mapping[str, Any]) -> dict:
        for record in self._records.get(entity, []):
            if record.get("id") == record_id:
                record.update(patch)
                self._changed()
                return copy.deepcopy(record)
        raise KeyError(f"{entity} {record_id!r} not found")

    def create(self, entity: str, fields: Mapping[str, Any]) -> dict:
        record = dict(fields)
        record.setdefault("id", uuid.uuid4().hex)
        self._records.setdefault(entity, []).append(record)
        self._changed()
        return copy.deepcopy(record)

    def snapshot(self) -> dict[str, list[dict]]:
        """Return a deep copy of the full store contents."""
        return copy.deepcopy(self._records)

    def _changed(self) -> None:
        """Hook called after every mutation."""


class JsonFileRecordStore(InMemoryRecordStore):
    """:class:`InMemoryRecordStore` persisted to a JSON document.

    The file holds ``{"Task": [...], "Meeting": [...]}`` and is rewritten
    after every mutation.  Each rewrite goes to a temporary file in the same
    directory that then replaces the store, so an interrupted write leaves
    the previous contents intact.  A missing file starts an empty store.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        records: dict[str, list[dict]] = {}
        if self._path.exists():
            with open(self._path, encoding="utf-8") as f:
                records = json.load(f)
            if not isinstance(records, dict):
                raise ValueError(f"Record store {self._path} must contain a JSON object")
            logger.info("Loaded record store from %s", self._path)
        super().__init__(records)

    def _changed(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                json.dump(self._records, tmp, indent=2, default=str)
                tmp.write("\n")
            os.replace(tmp.name, self._path)
        except BaseException:
            os.unlink(tmp.name)
            raise
