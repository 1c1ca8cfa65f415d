"""Plain-text and CSV exports of calculations and history."""
from __future__ import annotations

import datetime
from typing import List, Sequence, Tuple

from ..data_model import CalculationEntry, TaxInputs, TaxResults, coerce_number
from .history import history_frame

CURRENCY_SYMBOL = "₱"

# (label, value, kind) where kind is "currency" or "percent"
ReportRow = Tuple[str, float, str]
ReportSection = Tuple[str, List[ReportRow]]


def format_currency(value) -> str:
    amount = round(coerce_number(value), 2) or 0.0
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def format_percent(ratio) -> str:
    return f"{coerce_number(ratio) * 100:.2f}%"


def format_value(value: float, kind: str) -> str:
    return format_percent(value) if kind == "percent" else format_currency(value)


def _rate(value: float) -> str:
    return f"{value:g}%"


def report_sections(results: TaxResults) -> List[ReportSection]:
    """Fixed section layout shared by the text report and the results table."""
    r = results
    return [
        ("PRICE BREAKDOWN", [
            ("Price (VAT-Exclusive)", r.price_vat_ex, "currency"),
            ("Add: Output VAT", r.output_vat, "currency"),
            ("Total Contract Price (ABC)", r.abc, "currency"),
        ]),
        ("EXPENSES", [
            ("Expenses (VAT Inc)", r.expenses_vat_inc, "currency"),
            ("Less: Input VAT", r.input_vat, "currency"),
            ("Expenses (VAT Ex)", r.expenses_vat_ex, "currency"),
        ]),
        ("TAXABLE INCOME", [
            ("Price", r.abc, "currency"),
            ("Less: Expense - VATable", r.expenses_vat_ex, "currency"),
            ("Less: Expense - Non-VATable", r.expenses_non_vat, "currency"),
            ("Taxable Income", r.taxable_income, "currency"),
        ]),
        ("VAT COMPUTATION", [
            ("Output VAT (12% of VAT Ex Price)", r.output_vat_calc, "currency"),
            (f"Less: {_rate(r.withholding_vat_percent)} Withholding VAT", r.withholding_vat, "currency"),
            ("Less: Input VAT", r.input_vat, "currency"),
            ("VAT Still Payable", r.vat_still_payable, "currency"),
        ]),
        ("INCOME TAX", [
            (f"Income Tax Due ({_rate(r.income_tax_percent)} of Taxable Income)", r.income_tax_due, "currency"),
            (f"Less: {_rate(r.withholding_it_percent)} Withholding IT", r.withholding_it, "currency"),
            ("Income Tax Still Payable", r.income_tax_still_payable, "currency"),
        ]),
        ("SUMMARY", [
            ("VAT Still Payable", r.vat_still_payable, "currency"),
            ("Income Tax Still Payable", r.income_tax_still_payable, "currency"),
            ("Total Taxes Still Payable", r.total_taxes_payable, "currency"),
            ("Net Income After Tax", r.net_income_after_tax, "currency"),
            ("% Income", r.percent_income, "percent"),
            ("Cheque Receivable", r.cheque_receivable, "currency"),
        ]),
    ]


def undeclared_section(results: TaxResults) -> ReportSection | None:
    if results.undeclared_expenses <= 0:
        return None
    return ("UNDECLARED EXPENSES", [
        ("Undeclared Expenses", results.undeclared_expenses, "currency"),
        ("TPC 1", results.tpc1_percent, "percent"),
        ("Net Income After TPC 1", results.net_income_after_tpc1, "currency"),
    ])


def calculation_report(inputs: TaxInputs, results: TaxResults) -> str:
    lines = ["=== TAX CALCULATION REPORT ===\n"]
    if inputs.project_name:
        lines.append(f"Project Name: {inputs.project_name}\n")

    sections = report_sections(results)
    extra = undeclared_section(results)
    if extra:
        sections.append(extra)

    for title, rows in sections:
        lines.append(f"\n=== {title} ===")
        for label, value, kind in rows:
            lines.append(f"{label}: {format_value(value, kind)}")
    return "\n".join(lines)


def history_report(history: Sequence[CalculationEntry], generated_at: datetime.datetime | None = None) -> str:
    generated_at = generated_at or datetime.datetime.now()
    lines = ["TAX CALCULATOR - CALCULATION HISTORY\n"]
    lines.append(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"Total Calculations: {len(history)}\n")

    for index, entry in enumerate(history, start=1):
        lines.append(f"\n=== CALCULATION {index} ===")
        lines.append(f"Date: {entry.timestamp}")
        if entry.inputs.project_name:
            lines.append(f"Project Name: {entry.inputs.project_name}")
        lines.append(f"ABC: {format_currency(entry.inputs.abc)}")
        lines.append(f"Net Income: {format_currency(entry.results.net_income_after_tax)}")
    return "\n".join(lines)


def history_csv(history: Sequence[CalculationEntry]) -> str:
    return history_frame(history).to_csv(index=False)


def report_filename(prefix: str, day: datetime.date | None = None, extension: str = "txt") -> str:
    day = day or datetime.date.today()
    return f"{prefix}_{day.isoformat()}.{extension}"
