from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .base import ColumnDefinition, TableModel

DEFAULT_WITHHOLDING_VAT_PERCENT = 5.0
DEFAULT_INCOME_TAX_PERCENT = 25.0
DEFAULT_WITHHOLDING_IT_PERCENT = 2.0

RATE_DEFAULTS = {
    "withholdingVatPercent": DEFAULT_WITHHOLDING_VAT_PERCENT,
    "incomeTaxPercent": DEFAULT_INCOME_TAX_PERCENT,
    "withholdingItPercent": DEFAULT_WITHHOLDING_IT_PERCENT,
}


def _parse_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        text = str(value).strip().replace(",", "").replace("₱", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def coerce_number(value: Any) -> float:
    """Form value -> float; anything missing or malformed becomes 0.0."""
    if value is None:
        return 0.0
    number = _parse_float(value)
    return 0.0 if number is None else number


def coerce_rate(value: Any, default: float) -> float:
    """Like coerce_number, but an absent or blank rate uses ``default``.

    An explicit zero is a valid rate and is kept.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return float(default)
    return coerce_number(value)


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class TaxInputs:
    abc: float = 0.0
    expenses_vat_inc: float = 0.0
    expenses_non_vat: float = 0.0
    retention_percent: float = 0.0
    undeclared_expenses: float = 0.0
    withholding_vat_percent: float = DEFAULT_WITHHOLDING_VAT_PERCENT
    income_tax_percent: float = DEFAULT_INCOME_TAX_PERCENT
    withholding_it_percent: float = DEFAULT_WITHHOLDING_IT_PERCENT
    project_id: str = ""
    project_name: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "TaxInputs":
        raw = raw if isinstance(raw, Mapping) else {}
        return cls(
            abc=coerce_number(raw.get("abc")),
            expenses_vat_inc=coerce_number(raw.get("expensesVatInc")),
            expenses_non_vat=coerce_number(raw.get("expensesNonVat")),
            retention_percent=coerce_number(raw.get("retentionPercent")),
            undeclared_expenses=coerce_number(raw.get("undeclaredExpenses")),
            withholding_vat_percent=coerce_rate(raw.get("withholdingVatPercent"), DEFAULT_WITHHOLDING_VAT_PERCENT),
            income_tax_percent=coerce_rate(raw.get("incomeTaxPercent"), DEFAULT_INCOME_TAX_PERCENT),
            withholding_it_percent=coerce_rate(raw.get("withholdingItPercent"), DEFAULT_WITHHOLDING_IT_PERCENT),
            project_id=_coerce_text(raw.get("projectId")),
            project_name=_coerce_text(raw.get("projectName")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "abc": self.abc,
            "expensesVatInc": self.expenses_vat_inc,
            "expensesNonVat": self.expenses_non_vat,
            "retentionPercent": self.retention_percent,
            "undeclaredExpenses": self.undeclared_expenses,
            "withholdingVatPercent": self.withholding_vat_percent,
            "incomeTaxPercent": self.income_tax_percent,
            "withholdingItPercent": self.withholding_it_percent,
            "projectId": self.project_id,
            "projectName": self.project_name,
        }

    def merged_with(self, raw: Mapping[str, Any] | None) -> "TaxInputs":
        """Apply a partial form update on top of these inputs."""
        if not raw:
            return replace(self)
        payload = self.to_dict()
        payload.update(raw)
        return TaxInputs.from_dict(payload)


class InputTableModel(TableModel):
    """Schema + defaults for the calculator input form."""

    def __init__(self) -> None:
        columns = [
            ColumnDefinition("projectId", "Project", kind="select", default="", options=None),
            ColumnDefinition("projectName", "Name", kind="text", default=""),
            ColumnDefinition(
                "abc",
                "Total Contract Price (ABC)",
                default=0.0,
                min_value=0.0,
                step=1000.0,
                format="%.2f",
                help="Gross, VAT-inclusive contract price",
            ),
            ColumnDefinition("expensesVatInc", "Expenses (VAT Inc)", min_value=0.0, step=100.0, format="%.2f"),
            ColumnDefinition("expensesNonVat", "Expenses (Non-VAT)", min_value=0.0, step=100.0, format="%.2f"),
            ColumnDefinition("retentionPercent", "Retention (%)", min_value=0.0, step=1.0),
            ColumnDefinition("undeclaredExpenses", "Undeclared Expenses", min_value=0.0, step=100.0, format="%.2f"),
            ColumnDefinition(
                "withholdingVatPercent",
                "Withholding VAT (%)",
                default=DEFAULT_WITHHOLDING_VAT_PERCENT,
                min_value=0.0,
                step=0.5,
                help="Leave blank for the default rate",
            ),
            ColumnDefinition(
                "incomeTaxPercent",
                "Income Tax (%)",
                default=DEFAULT_INCOME_TAX_PERCENT,
                min_value=0.0,
                step=0.5,
                help="Leave blank for the default rate",
            ),
            ColumnDefinition(
                "withholdingItPercent",
                "Withholding IT (%)",
                default=DEFAULT_WITHHOLDING_IT_PERCENT,
                min_value=0.0,
                step=0.5,
                help="Leave blank for the default rate",
            ),
        ]
        super().__init__("inputs", columns, TaxInputs().to_dict())
