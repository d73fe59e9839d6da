"""
Privacy filters: bounded, monotonically decreasing budget counters.

Responsibilities:
    * refuse any consumption that would overdraw the counter
    * keep ``0 <= remaining <= capacity`` under floating point arithmetic
    * expose an advisory ``remaining`` read and a serialisable snapshot
"""
# 说明：隐私过滤器（预算计数器）的抽象与实现。
# 职责：
# - Filter：统一接口 capacity / remaining / can_consume / try_consume / to_dict
# - PureDPFilter：累计消费计数器，剩余值 = max(容量 - 累计消费, 0)
# - ReleaseFilter：预算按外部策略逐步解锁（release），消费受已解锁额度约束
# 约定：
# - 负数扣减视为参数错误；比较时允许 slack 容差以吸收浮点误差，
#   累计消费不截断，因此容差在过滤器生命周期内至多被吸收一次
# - 过滤器一旦创建只会减少，不会由核心逻辑增加

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional

from pdskit.core.privacy.base_mechanism import ValidationError
from pdskit.core.utils.config import get_config
from pdskit.core.utils.param_validation import ensure_non_negative_number


class FilterStatus(str, Enum):
    CONTINUE = "continue"
    OUT_OF_BUDGET = "out_of_budget"


def _amount(value: Any) -> float:
    return ensure_non_negative_number(value, label="amount", error=ValidationError)


class Filter(ABC):
    """Abstract budget counter."""

    def __init__(self, capacity: float, *, slack: Optional[float] = None):
        self.capacity = ensure_non_negative_number(
            capacity, label="capacity", allow_infinite=True, error=ValidationError
        )
        self.slack = float(get_config().budget_slack if slack is None else slack)
        if self.slack < 0:
            raise ValidationError("slack must be non-negative")

    @property
    @abstractmethod
    def remaining(self) -> float:
        """Budget still available for consumption (advisory)."""

    @abstractmethod
    def can_consume(self, amount: float) -> bool:
        """Whether ``amount`` could be consumed right now, without mutating."""

    @abstractmethod
    def _consume(self, amount: float) -> None:
        """Apply a consumption already known to fit."""

    def try_consume(self, amount: float) -> FilterStatus:
        if not self.can_consume(amount):
            return FilterStatus.OUT_OF_BUDGET
        self._consume(_amount(amount))
        return FilterStatus.CONTINUE

    @property
    def is_unbounded(self) -> bool:
        return math.isinf(self.capacity)

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialisable snapshot of the counter."""

    @abstractmethod
    def copy(self) -> "Filter":
        """Independent copy used for rollback snapshots."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} capacity={self.capacity} remaining={self.remaining}>"


class PureDPFilter(Filter):
    """Scalar remaining-budget counter for pure-DP (or zCDP ρ) accounting."""

    def __init__(self, capacity: float, *, slack: Optional[float] = None):
        super().__init__(capacity, slack=slack)
        # 累计消费不截断：容差在整个生命周期内只能被吸收一次
        self.consumed = 0.0

    @property
    def remaining(self) -> float:
        if self.is_unbounded:
            return math.inf
        return max(self.capacity - self.consumed, 0.0)

    def can_consume(self, amount: float) -> bool:
        amount = _amount(amount)
        if self.is_unbounded:
            return True
        return self.consumed + amount <= self.capacity + self.slack

    def _consume(self, amount: float) -> None:
        if self.is_unbounded:
            return
        self.consumed += amount

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "pure_dp", "capacity": self.capacity, "consumed": self.consumed, "remaining": self.remaining}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PureDPFilter":
        inst = cls(float(data["capacity"]))
        if "consumed" in data:
            consumed = _amount(float(data["consumed"]))
        else:
            # 旧格式只保存剩余值
            remaining = ensure_non_negative_number(
                float(data.get("remaining", inst.capacity)), label="remaining", allow_infinite=True, error=ValidationError
            )
            if remaining > inst.capacity:
                raise ValidationError("remaining must not exceed capacity")
            consumed = 0.0 if inst.is_unbounded else inst.capacity - remaining
        if not inst.is_unbounded and consumed > inst.capacity + inst.slack:
            raise ValidationError("consumed budget must not exceed the capacity")
        inst.consumed = consumed
        return inst

    def copy(self) -> "PureDPFilter":
        clone = PureDPFilter(self.capacity, slack=self.slack)
        clone.consumed = self.consumed
        return clone


class ReleaseFilter(Filter):
    """
    Filter whose capacity is unlocked progressively by an external policy.

    Consumption is limited by the unlocked amount; ``remaining`` still reports
    the part of the capacity that has not been consumed yet.
    """

    def __init__(self, capacity: float, *, unlocked: float = 0.0, slack: Optional[float] = None):
        super().__init__(capacity, slack=slack)
        self.consumed = 0.0
        self.unlocked = min(_amount(unlocked), self.capacity)

    @property
    def remaining(self) -> float:
        if self.is_unbounded:
            return math.inf
        return max(self.capacity - self.consumed, 0.0)

    @property
    def unlocked_remaining(self) -> float:
        return max(self.unlocked - self.consumed, 0.0)

    def release(self, amount: float) -> None:
        """Unlock ``amount`` more budget, never beyond the capacity."""
        self.unlocked = min(self.unlocked + _amount(amount), self.capacity)

    def can_consume(self, amount: float) -> bool:
        amount = _amount(amount)
        return self.consumed + amount <= self.unlocked + self.slack

    def _consume(self, amount: float) -> None:
        # 不截断到已解锁额度，避免容差被反复吸收
        self.consumed += amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "release",
            "capacity": self.capacity,
            "consumed": self.consumed,
            "unlocked": self.unlocked,
            "remaining": self.remaining,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseFilter":
        inst = cls(float(data["capacity"]), unlocked=float(data.get("unlocked", 0.0)))
        consumed = _amount(float(data.get("consumed", 0.0)))
        if consumed > inst.unlocked + inst.slack:
            raise ValidationError("consumed budget must not exceed the unlocked budget")
        inst.consumed = consumed
        return inst

    def copy(self) -> "ReleaseFilter":
        clone = ReleaseFilter(self.capacity, unlocked=self.unlocked, slack=self.slack)
        clone.consumed = self.consumed
        return clone


FILTER_KINDS = {"pure_dp": PureDPFilter, "release": ReleaseFilter}


def filter_from_dict(data: Dict[str, Any]) -> Filter:
    """Rebuild a filter from its ``to_dict`` snapshot."""
    kind = data.get("kind", "pure_dp")
    if kind not in FILTER_KINDS:
        raise ValidationError(f"unknown filter kind '{kind}'")
    return FILTER_KINDS[kind].from_dict(data)
