# components/results_view.py
from __future__ import annotations

from typing import Sequence

import dash_bootstrap_components as dbc
from dash import dash_table, html

from taxcalc.data_model import TaxInputs, TaxResults
from taxcalc.engine.history import HistoryGroup
from taxcalc.engine.report import format_currency, format_value, report_sections, undeclared_section

RESULT_COLUMNS = [
    {"name": "Item", "id": "label"},
    {"name": "Amount", "id": "value"},
]

HISTORY_COLUMNS = [
    {"name": "Date", "id": "timestamp"},
    {"name": "Name", "id": "projectName"},
    {"name": "Contract Price", "id": "abc"},
    {"name": "Expenses (VAT)", "id": "expensesVatInc"},
    {"name": "Expenses (Non-VAT)", "id": "expensesNonVat"},
    {"name": "Net Income", "id": "netIncomeAfterTax"},
]


def result_rows(results: TaxResults) -> list[dict]:
    sections = report_sections(results)
    extra = undeclared_section(results)
    if extra:
        sections.append(extra)
    rows: list[dict] = []
    for title, items in sections:
        rows.append({"label": title, "value": "", "section": True})
        for label, value, kind in items:
            rows.append({"label": label, "value": format_value(value, kind), "section": False})
    return rows


def results_table(inputs: TaxInputs, results: TaxResults, id_value: str = "results-table"):
    table = dash_table.DataTable(
        id=id_value,
        data=result_rows(results),
        columns=RESULT_COLUMNS,
        editable=False,
        style_header={"backgroundColor": "#222", "color": "#eee", "fontWeight": "bold"},
        style_data={"backgroundColor": "#111", "color": "#eee"},
        style_cell_conditional=[{"if": {"column_id": "value"}, "textAlign": "right"}],
        style_data_conditional=[
            {
                "if": {"filter_query": "{section} eq true"},
                "backgroundColor": "#667eea",
                "color": "white",
                "fontWeight": "bold",
            }
        ],
        fill_width=True,
    )
    title = inputs.project_name or "Tax Computation"
    return html.Div([html.H4(title), table], className="results-section")


def history_rows(group: HistoryGroup) -> list[dict]:
    return [
        {
            "id": entry.id,
            "timestamp": entry.timestamp,
            "projectName": entry.inputs.project_name or "-",
            "abc": format_currency(entry.inputs.abc),
            "expensesVatInc": format_currency(entry.inputs.expenses_vat_inc),
            "expensesNonVat": format_currency(entry.inputs.expenses_non_vat),
            "netIncomeAfterTax": format_currency(entry.results.net_income_after_tax),
        }
        for entry in group.entries
    ]


def history_panel(groups: Sequence[HistoryGroup], id_value: str = "history-panel"):
    if not groups:
        return html.Div(html.P("No saved calculations yet."), id=id_value, className="empty-state")

    items = []
    for group in groups:
        plural = "s" if group.count != 1 else ""
        items.append(
            dbc.AccordionItem(
                dash_table.DataTable(
                    data=history_rows(group),
                    columns=HISTORY_COLUMNS,
                    row_selectable="single",
                    style_header={"backgroundColor": "#222", "color": "#eee", "fontWeight": "bold"},
                    style_data={"backgroundColor": "#111", "color": "#eee"},
                ),
                title=f"{group.name} ({group.count} calculation{plural})",
                item_id=str(group.project_id or "unassigned"),
            )
        )
    return dbc.Accordion(items, id=id_value, start_collapsed=True, always_open=True)
