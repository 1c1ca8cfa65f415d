from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List


@dataclass
class ColumnDefinition:
    """Lightweight schema descriptor used by the input form."""

    field: str
    label: str
    kind: str = "number"  # text | number | select
    default: Any = 0.0
    options: List[str] | None = None
    min_value: float | None = None
    step: float | None = None
    format: str | None = None
    help: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "label": self.label,
            "kind": self.kind,
            "default": self.default,
            "options": self.options or [],
            "min": self.min_value,
            "step": self.step,
            "format": self.format,
            "help": self.help,
        }


@dataclass
class TableModel:
    """Container for a form schema plus its default values."""

    name: str
    columns: List[ColumnDefinition]
    defaults: dict[str, Any] = field(default_factory=dict)

    def default_values(self) -> dict[str, Any]:
        if self.defaults:
            return dict(self.defaults)
        return {col.field: col.default for col in self.columns}
