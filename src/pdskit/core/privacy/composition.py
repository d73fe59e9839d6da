"""
Composition rules deciding how much each epoch is charged and how
per-epoch losses add up across a multi-epoch report.

Responsibilities
  - Map a request's declared budget and an epoch's individual sensitivity
    to the budget requested from that epoch's filters.
  - Combine per-epoch losses into one accounted loss for the report.
  - Convert the accounted loss to an (epsilon, delta) statement.

Usage Context
  - Injected into the query evaluator and the accounting core as a strategy;
    never hard-coded in either.

Limitations
  - Only basic summation (pure DP) and zCDP summation are provided.
"""
# 说明：组合规则策略对象，决定每个时段（epoch）的请求预算以及跨时段损失的合并方式。
# 职责：
# - epoch_budget：根据请求声明的预算、全局敏感度与该时段的个体敏感度计算该时段的请求额度
# - compose：将各时段损失合并为报告的总记账损失，输出 CompositionResult
# - to_epsilon：把总损失换算为 (ε, δ) 表述
# 约定：
# - 没有相关事件的时段请求额度为 0
# - 个体敏感度不得超过声明的全局敏感度

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type

from pdskit.core.exceptions import ConfigurationError
from pdskit.core.utils.param_validation import ParamValidationError, ensure_non_negative_number

from .base_mechanism import LossUnit


def zcdp_to_cdp(rho: float, delta: float) -> float:
    """
    Convert ρ-zCDP to (ε, δ)-DP using the standard bound:
        ε = ρ + 2 * sqrt(ρ * ln(1/δ))
    """
    if rho < 0 or delta <= 0 or delta >= 1:
        raise ParamValidationError("rho must be >=0 and delta in (0,1)")
    return rho + 2.0 * math.sqrt(rho * math.log(1.0 / delta))


@dataclass(frozen=True)
class CompositionResult:
    """Accounted loss of one report, in the rule's unit and as (ε, δ)."""

    loss: float
    unit: LossUnit
    epsilon: float
    delta: float = 0.0
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loss": float(self.loss),
            "unit": self.unit.value,
            "epsilon": float(self.epsilon),
            "delta": float(self.delta),
            "detail": dict(self.detail),
        }


class CompositionRule(ABC):
    """Strategy for per-epoch budget requests and cross-epoch composition."""

    name: str = "abstract"
    loss_unit: LossUnit = LossUnit.EPSILON
    # 计算个体敏感度时使用的范数
    norm: str = "l1"

    def epoch_budget(
        self,
        requested_budget: float,
        individual_sensitivity: float,
        global_sensitivity: float,
    ) -> float:
        """Budget requested from the filters of an epoch with relevant events."""
        requested_budget = ensure_non_negative_number(requested_budget, label="requested_budget")
        individual = ensure_non_negative_number(individual_sensitivity, label="individual_sensitivity")
        global_ = ensure_non_negative_number(global_sensitivity, label="global_sensitivity")
        if individual == 0.0 or requested_budget == 0.0:
            return 0.0
        if global_ == 0.0:
            raise ParamValidationError("global_sensitivity must be positive when an epoch is sensitive")
        if individual > global_ * (1.0 + 1e-9):
            raise ParamValidationError(
                f"individual sensitivity {individual} exceeds declared global sensitivity {global_}"
            )
        return self._scale(requested_budget, min(individual / global_, 1.0))

    @abstractmethod
    def _scale(self, requested_budget: float, ratio: float) -> float:
        """Budget for an epoch whose individual/global sensitivity ratio is ``ratio``."""

    def compose(self, losses: Iterable[float], *, delta: Optional[float] = None) -> CompositionResult:
        """Sum per-epoch losses and express the total as (ε, δ)."""
        values = [ensure_non_negative_number(loss, label="loss") for loss in losses]
        total = math.fsum(values)
        epsilon, out_delta = self.to_epsilon(total, delta)
        return CompositionResult(
            loss=total,
            unit=self.loss_unit,
            epsilon=epsilon,
            delta=out_delta,
            detail={"rule": self.name, "epochs": len(values)},
        )

    @abstractmethod
    def to_epsilon(self, total: float, delta: Optional[float] = None) -> Tuple[float, float]:
        """Convert an accounted total to an (ε, δ) pair."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} unit={self.loss_unit.value} norm={self.norm}>"


class BasicComposition(CompositionRule):
    """
    Pure-DP summation.

    An epoch with individual sensitivity ``s`` answered with Laplace noise of
    scale ``G / ε`` loses ``s * ε / G``; losses add across epochs.
    """

    name = "basic"
    loss_unit = LossUnit.EPSILON
    norm = "l1"

    def _scale(self, requested_budget: float, ratio: float) -> float:
        return requested_budget * ratio

    def to_epsilon(self, total: float, delta: Optional[float] = None) -> Tuple[float, float]:
        del delta
        return float(total), 0.0


class ZCDPComposition(CompositionRule):
    """
    Zero-concentrated DP summation in ρ units.

    Gaussian noise of standard deviation ``G / sqrt(2ρ)`` costs an epoch with
    L2 individual sensitivity ``s`` exactly ``ρ * (s / G) ** 2``; ρ adds across
    epochs and is converted to (ε, δ) only once, at report time.
    """

    name = "zcdp"
    loss_unit = LossUnit.RHO
    norm = "l2"

    def __init__(self, delta: float = 1e-9):
        if not 0.0 < float(delta) < 1.0:
            raise ConfigurationError("zcdp conversion delta must be in (0, 1)")
        self.delta = float(delta)

    def _scale(self, requested_budget: float, ratio: float) -> float:
        return requested_budget * ratio * ratio

    def to_epsilon(self, total: float, delta: Optional[float] = None) -> Tuple[float, float]:
        target = self.delta if delta is None else float(delta)
        return zcdp_to_cdp(float(total), target), target


COMPOSITION_REGISTRY: Dict[str, Type[CompositionRule]] = {
    BasicComposition.name: BasicComposition,
    ZCDPComposition.name: ZCDPComposition,
}


def get_composition_rule(name: str | CompositionRule, **kwargs: Any) -> CompositionRule:
    """Resolve a composition rule identifier (or pass an instance through)."""
    if isinstance(name, CompositionRule):
        return name
    key = str(name).strip().lower()
    rule_cls = COMPOSITION_REGISTRY.get(key)
    if rule_cls is None:
        raise ConfigurationError(
            f"unknown composition rule '{name}'; expected one of {sorted(COMPOSITION_REGISTRY)}"
        )
    return rule_cls(**kwargs)


def registered_rules_snapshot() -> Mapping[str, str]:
    return {key: cls.__name__ for key, cls in COMPOSITION_REGISTRY.items()}
