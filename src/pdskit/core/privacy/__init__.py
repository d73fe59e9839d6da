"""Mechanism contract and composition strategies."""
from .base_mechanism import (
    BudgetMechanism,
    LossUnit,
    MechanismError,
    ValidationError,
)
from .composition import (
    BasicComposition,
    CompositionResult,
    CompositionRule,
    ZCDPComposition,
    get_composition_rule,
    registered_rules_snapshot,
    zcdp_to_cdp,
)

__all__ = [
    "BudgetMechanism",
    "LossUnit",
    "MechanismError",
    "ValidationError",
    "BasicComposition",
    "CompositionResult",
    "CompositionRule",
    "ZCDPComposition",
    "get_composition_rule",
    "registered_rules_snapshot",
    "zcdp_to_cdp",
]
