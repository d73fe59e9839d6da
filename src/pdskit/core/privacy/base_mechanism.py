"""
Core abstractions shared by every noise mechanism.

Responsibilities:
    * the loss-accounting contract (``loss_for``) and the noising contract
      (``apply``) consumed by the accounting core
    * common parameter validation and RNG management
    * serialization helpers
    * purpose specific exceptions

A mechanism is stateless with respect to budgets: it never touches a filter.
Composition across epochs is decided by a composition rule, not here.
"""
# 说明：定义所有噪声机制共享的抽象基类与通用工具。
# 职责：
# - 记账契约 loss_for(sensitivity, requested_budget) 与加噪契约 apply(true_answer, sensitivity, budget)
# - 通用参数校验与随机数生成器（RNG）管理
# - 序列化辅助工具
# - 特定用途的异常类型
# 约定：
# - 机制不持有任何预算状态，跨时段组合由组合规则（CompositionRule）负责
# - 敏感度为 0 时 loss 为 0，apply 原样返回真实答案

from __future__ import annotations

import json
import numbers
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from pdskit.core.utils.param_validation import ParamValidationError
from pdskit.core.utils.random import create_rng, reseed_rng


# Exceptions -----------------------------------------------------------------
class MechanismError(Exception):
    """Base exception for mechanism errors."""


class ValidationError(MechanismError, ValueError):
    """Raised when input parameters are invalid."""


# Loss units -----------------------------------------------------------------
# 预算的计量单位：纯 DP 的 ε，或 zCDP 的散度参数 ρ
class LossUnit(str, Enum):
    EPSILON = "epsilon"
    RHO = "rho"

    @classmethod
    def from_str(cls, value: str) -> "LossUnit":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ParamValidationError(f"unknown loss unit '{value}'")


# Base abstraction ------------------------------------------------------------
# 所有机制的抽象基类：
#  - 负责敏感度与预算的校验以及 RNG 管理
#  - 约定 loss_for / noise_scale / apply / release 的统一接口
#  - 提供序列化与 JSON 辅助
#  - 提供数值输入的类型与形状规整工具
class BudgetMechanism(ABC):
    """Abstract base class for budget-accounted noise mechanisms."""

    loss_unit: LossUnit = LossUnit.EPSILON

    def __init__(self, rng: Optional[Any] = None, name: Optional[str] = None):
        self.name: str = name or self.__class__.__name__
        self._rng: np.random.Generator = create_rng(rng)
        self._meta: Dict[str, Any] = {}

    # Validation helpers ------------------------------------------------------
    @staticmethod
    def _validate_sensitivity(sensitivity: Any) -> float:
        if isinstance(sensitivity, bool) or not isinstance(sensitivity, numbers.Real):
            raise ValidationError("sensitivity must be a non-negative real number")
        value = float(sensitivity)
        if not np.isfinite(value) or value < 0:
            raise ValidationError("sensitivity must be a non-negative real number")
        return value

    @staticmethod
    def _validate_budget(budget: Any) -> float:
        if isinstance(budget, bool) or not isinstance(budget, numbers.Real):
            raise ValidationError("budget must be a non-negative real number")
        value = float(budget)
        if not np.isfinite(value) or value < 0:
            raise ValidationError("budget must be a non-negative real number")
        return value

    # Accounting contract -----------------------------------------------------
    def loss_for(self, sensitivity: float, requested_budget: float) -> float:
        """
        Exact loss incurred when answering with ``requested_budget``.

        Returns 0 when nothing can be learned (zero sensitivity or zero
        request) and never more than ``requested_budget``.
        """
        sensitivity = self._validate_sensitivity(sensitivity)
        requested = self._validate_budget(requested_budget)
        if sensitivity == 0.0 or requested == 0.0:
            return 0.0
        return min(self._exact_loss(sensitivity, requested), requested)

    def _exact_loss(self, sensitivity: float, requested_budget: float) -> float:
        # 默认按请求额度全额计费；可更紧致记账的机制可覆盖
        del sensitivity
        return requested_budget

    @abstractmethod
    def noise_scale(self, sensitivity: float, budget: float) -> float:
        """Scale parameter of the noise distribution for one application."""

    @abstractmethod
    def _sample(self, scale: float, size: Optional[Tuple[int, ...]]) -> Any:
        """Draw zero-centred noise with the given scale."""

    def apply(self, true_answer: Any, sensitivity: float, budget: float) -> Any:
        """Return a noised copy of ``true_answer`` preserving its type and shape."""
        sensitivity = self._validate_sensitivity(sensitivity)
        budget = self._validate_budget(budget)
        arr, was_scalar = self._coerce_numeric(true_answer)
        if sensitivity == 0.0:
            # 零敏感度答案不泄露任何信息，无需加噪
            return self._restore_numeric_like(true_answer, arr.copy(), was_scalar)
        if budget == 0.0:
            raise ValidationError("cannot noise a sensitive answer with a zero budget")
        scale = self.noise_scale(sensitivity, budget)
        size = None if was_scalar else arr.shape
        result = arr + self._sample(scale, size)
        return self._restore_numeric_like(true_answer, np.asarray(result, dtype=float), was_scalar)

    def release(self, true_answer: Any, sensitivity: float, budget: float) -> Tuple[Any, float]:
        """Noise ``true_answer`` and report the loss incurred by doing so."""
        return self.apply(true_answer, sensitivity, budget), self.loss_for(sensitivity, budget)

    # Serialization -----------------------------------------------------------
    def serialize(self) -> Dict[str, Any]:
        """Return a JSON serialisable snapshot of the mechanism."""
        return {
            "class": f"{self.__class__.__module__}.{self.__class__.__qualname__}",
            "mechanism": self.mechanism_id,
            "name": self.name,
            "loss_unit": self.loss_unit.value,
            "meta": dict(self._meta),
        }

    def to_json(self) -> str:
        return json.dumps(self.serialize(), default=str)

    # Utilities ---------------------------------------------------------------
    def reseed(self, seed: Optional[Any]) -> None:
        """Reset the RNG state so that ``seed`` reproduces the same noise."""
        if isinstance(seed, np.random.Generator):
            self._rng = seed
        else:
            reseed_rng(self._rng, seed)

    @property
    def mechanism_id(self) -> str:
        """Stable identifier used in serialization and registry lookups."""
        lowered = self.__class__.__name__.lower()
        suffix = "mechanism"
        if lowered.endswith(suffix):
            return lowered[: -len(suffix)] or lowered
        return lowered

    # Shared numeric helpers --------------------------------------------------
    # 把任意数值/序列转为 np.ndarray[float]，同时记录是否源自标量，便于还原类型。
    @staticmethod
    def _coerce_numeric(value: Any) -> Tuple[np.ndarray, bool]:
        if isinstance(value, (str, bytes)):
            raise ValidationError("value must be numeric, sequence, or ndarray")
        try:
            arr = np.asarray(value, dtype=float)
        except (TypeError, ValueError) as exc:
            raise ValidationError("value must be numeric, sequence, or ndarray") from exc
        return arr, arr.ndim == 0

    # 按原输入类型还原数值结果：标量/ndarray/tuple/list。
    @staticmethod
    def _restore_numeric_like(original: Any, value: np.ndarray, was_scalar: bool) -> Any:
        if was_scalar:
            return float(value)
        if isinstance(original, np.ndarray):
            return value
        if isinstance(original, tuple):
            return tuple(value.tolist())
        if isinstance(original, list):
            return value.tolist()
        return value

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} unit={self.loss_unit.value}>"
