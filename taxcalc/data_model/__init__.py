from .base import ColumnDefinition, TableModel
from .inputs import (
    DEFAULT_INCOME_TAX_PERCENT,
    DEFAULT_WITHHOLDING_IT_PERCENT,
    DEFAULT_WITHHOLDING_VAT_PERCENT,
    RATE_DEFAULTS,
    InputTableModel,
    TaxInputs,
    coerce_number,
    coerce_rate,
)
from .records import CalculationEntry, IdGenerator, Project, display_timestamp, identity
from .results import TaxResults

__all__ = [
    "DEFAULT_INCOME_TAX_PERCENT",
    "DEFAULT_WITHHOLDING_IT_PERCENT",
    "DEFAULT_WITHHOLDING_VAT_PERCENT",
    "RATE_DEFAULTS",
    "CalculationEntry",
    "ColumnDefinition",
    "IdGenerator",
    "InputTableModel",
    "Project",
    "TableModel",
    "TaxInputs",
    "TaxResults",
    "coerce_number",
    "coerce_rate",
    "display_timestamp",
    "identity",
]
