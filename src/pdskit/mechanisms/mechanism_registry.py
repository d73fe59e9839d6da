"""
Light-weight registry mapping mechanism identifiers to implementations.

Responsibilities
  - Provide a single source of truth for mechanism lookups.
  - Expose helpers to normalise identifiers and check that a mechanism's
    loss unit matches a composition rule.
"""
# 说明：机制标识符与具体实现类的映射注册表。
# 职责：
# - 作为机制查找与工厂创建的单一事实来源
# - 归一化机制标识符并对未注册机制报错
# - 校验机制的计量单位（ε / ρ）与组合规则一致

from __future__ import annotations

from enum import Enum
from typing import Dict, Type

from pdskit.core.exceptions import ConfigurationError
from pdskit.core.privacy.base_mechanism import BudgetMechanism
from pdskit.core.privacy.composition import CompositionRule
from pdskit.core.utils.param_validation import ParamValidationError

from .gaussian import GaussianMechanism
from .laplace import LaplaceMechanism


class MechanismType(str, Enum):
    LAPLACE = "laplace"
    GAUSSIAN = "gaussian"

    @classmethod
    def from_str(cls, value: str) -> "MechanismType":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ParamValidationError(f"unknown mechanism '{value}'")


MECHANISM_REGISTRY: Dict[MechanismType, Type[BudgetMechanism]] = {
    MechanismType.LAPLACE: LaplaceMechanism,
    MechanismType.GAUSSIAN: GaussianMechanism,
}


def normalize_mechanism(mechanism: str | MechanismType) -> MechanismType:
    """Coerce string or enum to MechanismType, raising on unknown identifiers."""
    if isinstance(mechanism, MechanismType):
        return mechanism
    return MechanismType.from_str(str(mechanism))


def get_mechanism_class(mechanism: str | MechanismType) -> Type[BudgetMechanism]:
    """Return the concrete class registered for the mechanism identifier."""
    mech_type = normalize_mechanism(mechanism)
    if mech_type not in MECHANISM_REGISTRY:
        raise ParamValidationError(f"mechanism '{mech_type.value}' not registered")
    return MECHANISM_REGISTRY[mech_type]


def ensure_compatible(mechanism: BudgetMechanism, rule: CompositionRule) -> None:
    """Raise if the mechanism's loss unit differs from the composition rule's."""
    if mechanism.loss_unit is not rule.loss_unit:
        raise ConfigurationError(
            f"mechanism '{mechanism.mechanism_id}' accounts in {mechanism.loss_unit.value} "
            f"but composition rule '{rule.name}' accounts in {rule.loss_unit.value}"
        )


def registered_mechanisms_snapshot() -> Dict[str, str]:
    """Snapshot of registered mechanisms for tooling or docs."""
    return {mech.value: cls.__name__ for mech, cls in MECHANISM_REGISTRY.items()}
