"""Budget filters, their identifiers and their storage."""
from .filter_id import GLOBAL_SCOPE, FilterId, StaticCapacities
from .filters import Filter, FilterStatus, PureDPFilter, ReleaseFilter, filter_from_dict
from .filter_storage import (
    FilterStorage,
    InMemoryFilterStorage,
    TransactionResult,
    canonical_order,
)

__all__ = [
    "GLOBAL_SCOPE",
    "FilterId",
    "StaticCapacities",
    "Filter",
    "FilterStatus",
    "PureDPFilter",
    "ReleaseFilter",
    "filter_from_dict",
    "FilterStorage",
    "InMemoryFilterStorage",
    "TransactionResult",
    "canonical_order",
]
