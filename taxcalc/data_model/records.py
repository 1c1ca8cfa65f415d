from __future__ import annotations

import datetime
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

from .inputs import TaxInputs
from .results import TaxResults

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class IdGenerator:
    """Creation-time millisecond ids that never repeat within one process."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


def display_timestamp(moment: datetime.datetime | None = None) -> str:
    return (moment or datetime.datetime.now()).strftime(TIMESTAMP_FORMAT)


def identity(value: Any) -> str:
    """Normalized identity key; ids may round-trip through JSON as int or str."""
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class CalculationEntry:
    id: int | str
    timestamp: str
    inputs: TaxInputs
    results: TaxResults

    @property
    def project_id(self) -> str:
        return self.inputs.project_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "inputs": self.inputs.to_dict(),
            "results": self.results.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CalculationEntry":
        if raw.get("id") is None:
            raise ValueError("Calculation entry is missing an id.")
        return cls(
            id=raw["id"],
            timestamp=str(raw.get("timestamp") or ""),
            inputs=TaxInputs.from_dict(raw.get("inputs")),
            results=TaxResults.from_dict(raw.get("results")),
        )


@dataclass(frozen=True)
class Project:
    id: int | str
    name: str
    created_at: str = field(default_factory=lambda: datetime.datetime.now(datetime.timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Project":
        if raw.get("id") is None:
            raise ValueError("Project is missing an id.")
        return cls(
            id=raw["id"],
            name=str(raw.get("name") or ""),
            created_at=str(raw.get("createdAt") or ""),
        )
