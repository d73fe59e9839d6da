"""pdskit: on-device differential-privacy budget accounting for measurement reports."""

from __future__ import annotations

from .budget import (
    GLOBAL_SCOPE,
    FilterId,
    FilterStorage,
    InMemoryFilterStorage,
    PureDPFilter,
    ReleaseFilter,
    StaticCapacities,
)
from .core import (
    BasicComposition,
    ConfigurationError,
    InvalidQuery,
    PdsError,
    StorageFailure,
    ZCDPComposition,
    get_composition_rule,
)
from .events import EpochClock, Event, EventStorage, InMemoryEventStorage
from .mechanisms import GaussianMechanism, LaplaceMechanism, create_mechanism
from .pds import AccountingCore, Denied, PdsConfig, PrivateDataService, Reported
from .queries import HistogramRequest, PassiveLossRequest, QueryEvaluator, ReportRequest

__version__ = "0.1.0"

__all__ = [
    "GLOBAL_SCOPE",
    "FilterId",
    "FilterStorage",
    "InMemoryFilterStorage",
    "PureDPFilter",
    "ReleaseFilter",
    "StaticCapacities",
    "BasicComposition",
    "ConfigurationError",
    "InvalidQuery",
    "PdsError",
    "StorageFailure",
    "ZCDPComposition",
    "get_composition_rule",
    "EpochClock",
    "Event",
    "EventStorage",
    "InMemoryEventStorage",
    "GaussianMechanism",
    "LaplaceMechanism",
    "create_mechanism",
    "AccountingCore",
    "Denied",
    "PdsConfig",
    "PrivateDataService",
    "Reported",
    "HistogramRequest",
    "PassiveLossRequest",
    "QueryEvaluator",
    "ReportRequest",
]
