import logging
import threading
from typing import Any, Callable, Iterable, List, Mapping, Optional, TypeVar

from ..data_model import CalculationEntry, IdGenerator, Project, TaxInputs, TaxResults, display_timestamp, identity
from .derive import derive
from .merge import MergeCounts, merge
from .storage import JsonKeyValueStore

logger = logging.getLogger(__name__)

INPUTS_KEY = "inputs"
HISTORY_KEY = "history"
PROJECTS_KEY = "projects"

T = TypeVar("T")


def _parse_records(rows: Iterable[Any], parser: Callable[[Mapping[str, Any]], T], label: str) -> List[T]:
    records: List[T] = []
    for row in rows:
        if not isinstance(row, Mapping):
            logger.warning("Skipping non-object %s record: %r", label, row)
            continue
        try:
            records.append(parser(row))
        except ValueError as exc:
            logger.warning("Skipping malformed %s record: %s", label, exc)
    return records


class SessionState:
    """Working inputs, calculation history and projects of one user session.

    Everything is read from ``store`` once and written back after each change.
    Mutations are serialized, so concurrent requests cannot drop each other's writes.
    """

    def __init__(self, store: JsonKeyValueStore, id_generator: Optional[IdGenerator] = None):
        self.store = store
        self.ids = id_generator or IdGenerator()
        self._lock = threading.RLock()
        self.inputs: TaxInputs = TaxInputs.from_dict(store.get(INPUTS_KEY, {}))
        self.history: List[CalculationEntry] = _parse_records(
            store.get(HISTORY_KEY, []), CalculationEntry.from_dict, "history"
        )
        self.projects: List[Project] = _parse_records(store.get(PROJECTS_KEY, []), Project.from_dict, "project")

    # inputs

    def update_inputs(self, raw: Mapping[str, Any] | None, replace: bool = False) -> TaxInputs:
        with self._lock:
            self.inputs = TaxInputs.from_dict(raw) if replace else self.inputs.merged_with(raw)
            self.store.set(INPUTS_KEY, self.inputs.to_dict())
            return self.inputs

    def calculate(self) -> TaxResults:
        return derive(self.inputs)

    # history

    def save_calculation(self, inputs: TaxInputs | None = None) -> CalculationEntry:
        with self._lock:
            snapshot = inputs or self.inputs
            entry = CalculationEntry(
                id=self.ids.next_id(),
                timestamp=display_timestamp(),
                inputs=snapshot,
                results=derive(snapshot),
            )
            self.history.insert(0, entry)
            self._save_history()
        logger.info("Saved calculation %s", entry.id)
        return entry

    def find_calculation(self, entry_id: Any) -> CalculationEntry | None:
        key = identity(entry_id)
        for entry in list(self.history):
            if identity(entry.id) == key:
                return entry
        return None

    def load_calculation(self, entry_id: Any) -> TaxInputs | None:
        with self._lock:
            entry = self.find_calculation(entry_id)
            if entry is None:
                return None
            self.inputs = entry.inputs
            self.store.set(INPUTS_KEY, self.inputs.to_dict())
            return self.inputs

    def delete_calculation(self, entry_id: Any) -> bool:
        key = identity(entry_id)
        with self._lock:
            remaining = [entry for entry in self.history if identity(entry.id) != key]
            if len(remaining) == len(self.history):
                return False
            self.history = remaining
            self._save_history()
        logger.info("Deleted calculation %s", entry_id)
        return True

    def clear_history(self, confirmed: bool = False) -> bool:
        if not confirmed:
            return False
        with self._lock:
            self.history = []
            self._save_history()
        logger.info("Cleared calculation history")
        return True

    # projects

    def add_project(self, name: str) -> Project:
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name is required.")
        with self._lock:
            project = Project(id=self.ids.next_id(), name=name)
            self.projects.append(project)
            self._save_projects()
        logger.info("Added project %s (%s)", project.id, name)
        return project

    def delete_project(self, project_id: Any) -> bool:
        # Calculations keep their projectId and show up as unassigned.
        key = identity(project_id)
        with self._lock:
            remaining = [p for p in self.projects if identity(p.id) != key]
            if len(remaining) == len(self.projects):
                return False
            self.projects = remaining
            self._save_projects()
        logger.info("Deleted project %s", project_id)
        return True

    # backups

    def apply_snapshot(self, projects: Iterable[Project], history: Iterable[CalculationEntry]) -> MergeCounts:
        with self._lock:
            self.projects, self.history, counts = merge(self.projects, self.history, projects, history)
            if counts.projects_added:
                self._save_projects()
            if counts.calculations_added:
                self._save_history()
        logger.info(
            "Merged backup: %d projects, %d calculations added",
            counts.projects_added,
            counts.calculations_added,
        )
        return counts

    def _save_history(self) -> None:
        self.store.set(HISTORY_KEY, [entry.to_dict() for entry in self.history])

    def _save_projects(self) -> None:
        self.store.set(PROJECTS_KEY, [project.to_dict() for project in self.projects])
