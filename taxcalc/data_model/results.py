from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

from .inputs import RATE_DEFAULTS, coerce_number, coerce_rate

# Keys written by older releases of the browser tool.
_LEGACY_KEYS = {
    "withholdingVat5": "withholdingVat",
    "withholdingIt2": "withholdingIt",
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class TaxResults:
    """Every intermediate and final amount of one derivation, plus the echoed inputs."""

    abc: float
    expenses_vat_inc: float
    expenses_non_vat: float
    retention_percent: float
    undeclared_expenses: float
    withholding_vat_percent: float
    income_tax_percent: float
    withholding_it_percent: float
    price_vat_ex: float
    output_vat: float
    input_vat: float
    expenses_vat_ex: float
    taxable_income: float
    output_vat_calc: float
    withholding_vat: float
    vat_still_payable: float
    income_tax_due: float
    withholding_it: float
    income_tax_still_payable: float
    total_taxes_payable: float
    total_if_no_withholding: float
    net_income_after_tax: float
    percent_income: float
    cheque_comp: float
    cheque_receivable: float
    tpc1_percent: float
    net_income_after_tpc1: float

    def to_dict(self) -> dict[str, float]:
        return {_camel(key): value for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "TaxResults":
        raw = dict(raw) if isinstance(raw, Mapping) else {}
        for legacy, current in _LEGACY_KEYS.items():
            if legacy in raw and current not in raw:
                raw[current] = raw[legacy]
        values = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key in RATE_DEFAULTS:
                values[f.name] = coerce_rate(raw.get(key), RATE_DEFAULTS[key])
            else:
                values[f.name] = coerce_number(raw.get(key))
        return cls(**values)
