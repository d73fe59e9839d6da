"""
Factory helper instantiating mechanisms from registry identifiers.
"""
# 说明：根据注册表标识符创建机制实例的工厂函数。
# 职责：
# - 规范化字符串或枚举形式的机制标识符并解析为具体机制类
# - 根据构造函数签名筛选可接受的关键字参数
# - 支持直接传入已有机制实例，并可选地校验与组合规则的单位一致性

from __future__ import annotations

import inspect
from typing import Any, Mapping, Optional

from pdskit.core.privacy.base_mechanism import BudgetMechanism
from pdskit.core.privacy.composition import CompositionRule

from .mechanism_registry import MechanismType, ensure_compatible, get_mechanism_class


def _filter_kwargs(signature_obj: inspect.Signature, values: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only kwargs that the callable accepts."""
    return {k: v for k, v in values.items() if k in signature_obj.parameters}


def create_mechanism(
    mechanism: str | MechanismType | BudgetMechanism,
    *,
    rng: Optional[Any] = None,
    name: Optional[str] = None,
    composition: Optional[CompositionRule] = None,
    **kwargs: Any,
) -> BudgetMechanism:
    """
    Create a mechanism by identifier.

    Args:
        mechanism: MechanismType or string identifier, or an existing instance.
        rng: Optional seed or Generator forwarded to the constructor.
        name: Optional human readable name.
        composition: Optional composition rule the mechanism must match.
        **kwargs: Extra constructor parameters, dropped when not accepted.
    """
    if isinstance(mechanism, BudgetMechanism):
        instance = mechanism
    else:
        mech_cls = get_mechanism_class(mechanism)
        init_sig = inspect.signature(mech_cls.__init__)
        init_kwargs = _filter_kwargs(init_sig, {"rng": rng, "name": name, **kwargs})
        instance = mech_cls(**{k: v for k, v in init_kwargs.items() if v is not None})
    if composition is not None:
        ensure_compatible(instance, composition)
    return instance
