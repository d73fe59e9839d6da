"""Accounting core, report outcomes and the service facade."""
from .accounting import AccountingCore, RequestState
from .config import PdsConfig
from .report import (
    Denied,
    Report,
    Reported,
    report_from_dict,
    report_from_json,
    report_to_dict,
    report_to_json,
)
from .service import PrivateDataService

__all__ = [
    "AccountingCore",
    "RequestState",
    "PdsConfig",
    "Denied",
    "Report",
    "Reported",
    "report_from_dict",
    "report_from_json",
    "report_to_dict",
    "report_to_json",
    "PrivateDataService",
]
