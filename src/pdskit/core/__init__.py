"""Entry point for the shared accountant components."""

from __future__ import annotations

from .exceptions import ConfigurationError, InvalidQuery, PdsError, StorageFailure
from .privacy import (
    BasicComposition,
    BudgetMechanism,
    CompositionResult,
    CompositionRule,
    LossUnit,
    MechanismError,
    ValidationError,
    ZCDPComposition,
    get_composition_rule,
)
from .utils import (
    ParamValidationError,
    RuntimeConfig,
    configure,
    get_config,
    get_logger,
)

__all__ = [
    "ConfigurationError",
    "InvalidQuery",
    "PdsError",
    "StorageFailure",
    "BasicComposition",
    "BudgetMechanism",
    "CompositionResult",
    "CompositionRule",
    "LossUnit",
    "MechanismError",
    "ValidationError",
    "ZCDPComposition",
    "get_composition_rule",
    "ParamValidationError",
    "RuntimeConfig",
    "configure",
    "get_config",
    "get_logger",
]
