"""Contract tax calculator: VAT, withholding and income-tax derivation with local history and named backups."""

__version__ = "0.1.0"
