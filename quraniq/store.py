"""
Record storage for users and inquiries.
Fields round-trip verbatim; ids are opaque and stable.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .errors import NotFound


logger = logging.getLogger(__name__)

USERS = "users"
CHAPTERS = "chapters"


@dataclass
class Record:
    id: str
    kind: str
    fields: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.fields}


class RecordStore(ABC):
    """Key/value record storage grouped by kind."""

    @abstractmethod
    def create(self, kind: str, fields: Dict[str, Any]) -> Record:
        ...

    @abstractmethod
    def get(self, kind: str, record_id: str) -> Record:
        """Raises NotFound when the record does not exist."""

    @abstractmethod
    def list(self, kind: str, **filters: Any) -> List[Record]:
        """Records of a kind whose fields equal every filter, in creation order."""

    @abstractmethod
    def update(self, kind: str, record_id: str, fields: Dict[str, Any]) -> Record:
        """Merge fields into an existing record."""


class InMemoryStore(RecordStore):
    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def create(self, kind: str, fields: Dict[str, Any]) -> Record:
        record_id = uuid.uuid4().hex
        with self._lock:
            self._data.setdefault(kind, {})[record_id] = copy.deepcopy(fields)
            self._persist()
        return Record(id=record_id, kind=kind, fields=copy.deepcopy(fields))

    def get(self, kind: str, record_id: str) -> Record:
        with self._lock:
            fields = self._data.get(kind, {}).get(record_id)
            if fields is None:
                raise NotFound(f"{kind} record not found")
            return Record(id=record_id, kind=kind, fields=copy.deepcopy(fields))

    def list(self, kind: str, **filters: Any) -> List[Record]:
        with self._lock:
            return [
                Record(id=record_id, kind=kind, fields=copy.deepcopy(fields))
                for record_id, fields in self._data.get(kind, {}).items()
                if all(fields.get(k) == v for k, v in filters.items())
            ]

    def update(self, kind: str, record_id: str, fields: Dict[str, Any]) -> Record:
        with self._lock:
            current = self._data.get(kind, {}).get(record_id)
            if current is None:
                raise NotFound(f"{kind} record not found")
            current.update(copy.deepcopy(fields))
            self._persist()
            return Record(id=record_id, kind=kind, fields=copy.deepcopy(current))

    def _persist(self) -> None:
        """Hook for durable subclasses."""


class JsonFileStore(InMemoryStore):
    """In-memory store mirrored to a JSON file on every write."""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._data = json.loads(self.path.read_text(encoding="utf-8"))
            logger.info("Loaded store from %s", self.path)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
