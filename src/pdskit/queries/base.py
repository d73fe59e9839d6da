"""
Report request contract.

A request names its querier (the site whose individual filters pay), the
ordered epoch window it covers, how events are selected and aggregated per
epoch, the declared global sensitivity of one epoch's aggregate, the budget it
asks for, and how per-epoch answers are combined into the final report.

Usage Context
  - Subclass to define a new report shape; ``HistogramRequest`` is the
    built-in one.

Limitations
  - Aggregates are numeric vectors; non-numeric reports are not supported.
"""
# 说明：报告请求的抽象契约。
# 职责：
# - 声明 querier / epochs / requested_budget / global_sensitivity / combination
# - is_relevant / aggregate / zero_answer：相关性谓词、按时段聚合与零答案
# - individual_sensitivity：按 L1 / L2 范数计算单个时段聚合值的个体敏感度
# - combine：按组合规则（sum / mean）合并各时段加噪答案
# - validate：在访问任何存储之前检查声明，失败抛出 InvalidQuery

from __future__ import annotations

import math
import numbers
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Optional, Sequence, Tuple

import numpy as np

from pdskit.budget.filter_id import GLOBAL_SCOPE
from pdskit.core.exceptions import InvalidQuery
from pdskit.events.event import Event


class Combination(str, Enum):
    SUM = "sum"
    MEAN = "mean"

    @classmethod
    def from_str(cls, value: Any) -> "Combination":
        if isinstance(value, Combination):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise InvalidQuery(f"unsupported combination rule '{value}'")


def _positive_finite(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidQuery(f"{label} must be a real number")
    numeric = float(value)
    if not math.isfinite(numeric) or numeric <= 0:
        raise InvalidQuery(f"{label} must be a positive finite number")
    return numeric


class ReportRequest(ABC):
    """Abstract report request evaluated over an epoch window."""

    def __init__(
        self,
        querier: str,
        epochs: Iterable[int],
        requested_budget: float,
        global_sensitivity: float,
        *,
        combination: str = "sum",
    ):
        self.querier = querier
        self.epochs: Tuple[Any, ...] = tuple(epochs)
        self.requested_budget = requested_budget
        self.global_sensitivity = global_sensitivity
        self.combination = combination

    # ------------------------------------------------------------------ validation
    def validate(self) -> None:
        """Raise ``InvalidQuery`` if the request is malformed."""
        if not isinstance(self.querier, str) or not self.querier:
            raise InvalidQuery("querier must be a non-empty string")
        if self.querier == GLOBAL_SCOPE:
            raise InvalidQuery(f"'{GLOBAL_SCOPE}' is reserved for the cross-site filter")
        if not self.epochs:
            raise InvalidQuery("epoch window must not be empty")
        for epoch in self.epochs:
            if isinstance(epoch, bool) or not isinstance(epoch, numbers.Integral):
                raise InvalidQuery(f"epoch {epoch!r} is not an integer")
        if len(set(self.epochs)) != len(self.epochs):
            raise InvalidQuery("epoch window must not repeat epochs")
        self.requested_budget = _positive_finite(self.requested_budget, "requested_budget")
        self.global_sensitivity = _positive_finite(self.global_sensitivity, "global_sensitivity")
        self.combination = Combination.from_str(self.combination).value
        self._validate()

    def _validate(self) -> None:
        """Hook for subclass specific checks."""

    # ------------------------------------------------------------------ evaluation
    @property
    def scopes(self) -> Optional[Iterable[str]]:
        """Event scopes the storage can pre-filter on; None means all."""
        return None

    @abstractmethod
    def is_relevant(self, event: Event) -> bool:
        """Whether ``event`` contributes to this request."""

    @abstractmethod
    def aggregate(self, events: Sequence[Event]) -> np.ndarray:
        """True answer of one epoch from its relevant events."""

    @abstractmethod
    def zero_answer(self) -> np.ndarray:
        """Answer of an epoch without relevant events."""

    def individual_sensitivity(self, aggregate: np.ndarray, norm: str = "l1") -> float:
        """Change in the report if this epoch's events were removed."""
        arr = np.asarray(aggregate, dtype=float)
        if norm == "l1":
            return float(np.abs(arr).sum())
        if norm == "l2":
            return float(np.sqrt(np.square(arr).sum()))
        raise InvalidQuery(f"unsupported sensitivity norm '{norm}'")

    def combine(self, answers: Sequence[np.ndarray]) -> np.ndarray:
        if not answers:
            return self.zero_answer()
        stacked = np.stack([np.asarray(a, dtype=float) for a in answers])
        if Combination.from_str(self.combination) is Combination.MEAN:
            return stacked.mean(axis=0)
        return stacked.sum(axis=0)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} querier={self.querier!r} epochs={list(self.epochs)} "
            f"budget={self.requested_budget} sensitivity={self.global_sensitivity}>"
        )
