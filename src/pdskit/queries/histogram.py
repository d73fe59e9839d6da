"""
Histogram-shaped report requests.

Responsibilities
  - Select events by scope, custom selector and bucket validity.
  - Sum event values per bucket within one epoch, with partial attribution
    capped at ``attributable_value``.
  - Declare ``attributable_value`` as the global sensitivity of one epoch.

Usage Context
  - Attribution-style measurement: each conversion report asks for a
    histogram of attributed value over the impressions of the last epochs.

Limitations
  - Buckets are dense integer indices in ``[0, num_buckets)``.
"""
# 说明：直方图形状的报告请求。
# 职责：
# - 相关性：来源 scope 白名单、自定义选择器、桶索引与取值合法
# - 聚合：同一时段内按插入顺序逐个累加事件取值到对应桶；
#   若累计值将超过 attributable_value，则停止（部分归因），保证单时段 L1 不超过上限
# - 全局敏感度：单个时段聚合值的 L1 上限即 attributable_value

from __future__ import annotations

import math
import numbers
from typing import Any, Callable, Iterable, Optional, Sequence, Union

import numpy as np

from pdskit.core.exceptions import InvalidQuery
from pdskit.events.event import Event

from .base import ReportRequest

Extractor = Union[str, Callable[[Event], Any]]


def _extract(event: Event, extractor: Extractor, default: Any = None) -> Any:
    if callable(extractor):
        return extractor(event)
    return event.payload.get(extractor, default)


class HistogramRequest(ReportRequest):
    """Bucketed sum of event values over an epoch window."""

    def __init__(
        self,
        querier: str,
        epochs: Iterable[int],
        *,
        num_buckets: int,
        requested_budget: float,
        attributable_value: float = 1.0,
        bucket: Extractor = "bucket",
        value: Extractor = "value",
        default_value: float = 1.0,
        source_scopes: Optional[Iterable[str]] = None,
        selector: Optional[Callable[[Event], bool]] = None,
        combination: str = "sum",
    ):
        super().__init__(
            querier,
            epochs,
            requested_budget,
            attributable_value,
            combination=combination,
        )
        self.num_buckets = num_buckets
        self.bucket = bucket
        self.value = value
        self.default_value = default_value
        self.source_scopes = None if source_scopes is None else frozenset(source_scopes)
        self.selector = selector

    @property
    def attributable_value(self) -> float:
        return self.global_sensitivity

    @property
    def scopes(self) -> Optional[Iterable[str]]:
        return self.source_scopes

    def _validate(self) -> None:
        if isinstance(self.num_buckets, bool) or not isinstance(self.num_buckets, numbers.Integral):
            raise InvalidQuery("num_buckets must be an integer")
        if self.num_buckets <= 0:
            raise InvalidQuery("num_buckets must be positive")
        if isinstance(self.default_value, bool) or not isinstance(self.default_value, numbers.Real):
            raise InvalidQuery("default_value must be a real number")
        if self.default_value < 0 or not math.isfinite(self.default_value):
            raise InvalidQuery("default_value must be a non-negative finite number")

    # ------------------------------------------------------------------ per event
    def bucket_of(self, event: Event) -> Optional[int]:
        raw = _extract(event, self.bucket)
        if isinstance(raw, bool) or not isinstance(raw, numbers.Integral):
            return None
        index = int(raw)
        return index if 0 <= index < self.num_buckets else None

    def value_of(self, event: Event) -> Optional[float]:
        raw = _extract(event, self.value, self.default_value)
        if raw is None:
            raw = self.default_value
        if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
            return None
        numeric = float(raw)
        if not math.isfinite(numeric) or numeric < 0:
            return None
        return numeric

    def is_relevant(self, event: Event) -> bool:
        if self.source_scopes is not None and event.scope not in self.source_scopes:
            return False
        if self.selector is not None and not self.selector(event):
            return False
        return self.bucket_of(event) is not None and self.value_of(event) is not None

    # ------------------------------------------------------------------ per epoch
    def zero_answer(self) -> np.ndarray:
        return np.zeros(self.num_buckets, dtype=float)

    def aggregate(self, events: Sequence[Event]) -> np.ndarray:
        bins = self.zero_answer()
        total = 0.0
        cap = self.attributable_value
        for event in events:
            bucket = self.bucket_of(event)
            value = self.value_of(event)
            if bucket is None or value is None:
                continue
            if total + value > cap:
                # 部分归因：超出上限的事件及其后续事件不再计入
                break
            total += value
            bins[bucket] += value
        return bins
