from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import pandas as pd

from ..data_model import CalculationEntry, Project, identity

UNASSIGNED = "Unassigned"

HISTORY_COLUMNS = [
    "id",
    "timestamp",
    "projectId",
    "projectName",
    "abc",
    "expensesVatInc",
    "expensesNonVat",
    "totalTaxesPayable",
    "netIncomeAfterTax",
]


@dataclass
class HistoryGroup:
    project_id: str | None
    name: str
    entries: List[CalculationEntry] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "name": self.name,
            "count": self.count,
            "entries": [entry.to_dict() for entry in self.entries],
        }


def group_history(history: Sequence[CalculationEntry], projects: Sequence[Project]) -> List[HistoryGroup]:
    """Group calculations under their projects, in project order.

    Projects without calculations are left out. Calculations without a project,
    or pointing at a deleted one, go to a trailing ``Unassigned`` group.
    """
    groups: Dict[str, HistoryGroup] = {}
    for project in projects:
        key = identity(project.id)
        if key and key not in groups:
            groups[key] = HistoryGroup(project_id=key, name=project.name)

    unassigned = HistoryGroup(project_id=None, name=UNASSIGNED)
    for entry in history:
        group = groups.get(identity(entry.project_id))
        (group or unassigned).entries.append(entry)

    ordered = [group for group in groups.values() if group.entries]
    if unassigned.entries:
        ordered.append(unassigned)
    return ordered


def history_frame(history: Sequence[CalculationEntry]) -> pd.DataFrame:
    rows = [
        {
            "id": entry.id,
            "timestamp": entry.timestamp,
            "projectId": entry.inputs.project_id,
            "projectName": entry.inputs.project_name,
            "abc": entry.inputs.abc,
            "expensesVatInc": entry.inputs.expenses_vat_inc,
            "expensesNonVat": entry.inputs.expenses_non_vat,
            "totalTaxesPayable": entry.results.total_taxes_payable,
            "netIncomeAfterTax": entry.results.net_income_after_tax,
        }
        for entry in history
    ]
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def project_summary(history: Sequence[CalculationEntry], projects: Sequence[Project]) -> pd.DataFrame:
    """Per-group totals, in the same order as ``group_history``."""
    columns = ["Project", "Calculations", "TotalABC", "TotalTaxesPayable", "TotalNetIncome"]
    groups = group_history(history, projects)
    if not groups:
        return pd.DataFrame(columns=columns)

    frames = []
    for order, group in enumerate(groups):
        df = history_frame(group.entries)
        df["Project"] = group.name
        df["Order"] = order
        frames.append(df)
    combined = pd.concat(frames, ignore_index=True)
    summary = (
        combined.groupby(["Order", "Project"], as_index=False)
        .agg(
            Calculations=("id", "count"),
            TotalABC=("abc", "sum"),
            TotalTaxesPayable=("totalTaxesPayable", "sum"),
            TotalNetIncome=("netIncomeAfterTax", "sum"),
        )
        .sort_values("Order")
    )
    return summary[columns].reset_index(drop=True)
