from .derive import derive
from .merge import MergeCounts, merge
from .state import SessionState
from .storage import JsonKeyValueStore

__all__ = ["JsonKeyValueStore", "MergeCounts", "SessionState", "derive", "merge"]
