from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple, TypeVar

from ..data_model import identity

T = TypeVar("T")


@dataclass(frozen=True)
class MergeCounts:
    projects_added: int = 0
    calculations_added: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "projectsAdded": self.projects_added,
            "calculationsAdded": self.calculations_added,
        }


def _item_id(item: Any) -> str:
    if isinstance(item, dict):
        return identity(item.get("id"))
    return identity(getattr(item, "id", None))


def _missing_from(local: Sequence[T], remote: Iterable[T]) -> List[T]:
    seen = {_item_id(item) for item in local}
    added: List[T] = []
    for item in remote:
        key = _item_id(item)
        if key in seen:
            continue
        seen.add(key)
        added.append(item)
    return added


def merge(
    local_projects: Sequence[T],
    local_history: Sequence[T],
    remote_projects: Iterable[T],
    remote_history: Iterable[T],
) -> Tuple[List[T], List[T], MergeCounts]:
    """Union local and remote collections by id.

    Local items are kept untouched and in order; remote items whose id is not
    present locally are appended after them. On an id clash the local version wins.
    """
    new_projects = _missing_from(local_projects, remote_projects)
    new_history = _missing_from(local_history, remote_history)
    counts = MergeCounts(projects_added=len(new_projects), calculations_added=len(new_history))
    return list(local_projects) + new_projects, list(local_history) + new_history, counts
