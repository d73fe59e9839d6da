"""Noise mechanisms and their registry."""
from .laplace import LaplaceMechanism
from .gaussian import GaussianMechanism
from .mechanism_registry import (
    MECHANISM_REGISTRY,
    MechanismType,
    ensure_compatible,
    get_mechanism_class,
    normalize_mechanism,
    registered_mechanisms_snapshot,
)
from .mechanism_factory import create_mechanism

__all__ = [
    "LaplaceMechanism",
    "GaussianMechanism",
    "MECHANISM_REGISTRY",
    "MechanismType",
    "ensure_compatible",
    "get_mechanism_class",
    "normalize_mechanism",
    "registered_mechanisms_snapshot",
    "create_mechanism",
]
