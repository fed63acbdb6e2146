"""draftx: reactive state store with path-level tracking and transactional drafts."""

from importlib.metadata import version as _version

__version__ = _version("draftx")

from draftx._paths import MISSING, PathAccessor, make_path_string, unwrap
from draftx.bus import MutationBus, MutationRecord
from draftx.computed import Computed, create_computed
from draftx.reducer import InvalidAssignment, Reducer
from draftx.draft import Draft
from draftx.binding import Binding
from draftx.store import Store
# textual NOT auto-imported — opt-in only

__all__ = [
    "MISSING",
    "PathAccessor",
    "make_path_string",
    "unwrap",
    "MutationBus",
    "MutationRecord",
    "Computed",
    "create_computed",
    "InvalidAssignment",
    "Reducer",
    "Draft",
    "Binding",
    "Store",
]
