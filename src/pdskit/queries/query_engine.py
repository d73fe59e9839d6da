"""
Query evaluator turning a report request into per-epoch true answers and
per-epoch budget requests.

Responsibilities
  - Validate the request before any storage access.
  - Fetch relevant events from the event store and partition them by epoch.
  - Aggregate each epoch and derive its individual sensitivity; an aggregate
    whose norm exceeds the declared global sensitivity is scaled down to it.
  - Ask the composition rule how much each epoch should be charged; epochs
    without relevant events ask for nothing.

Usage Context
  - Called by the accounting core; usable on its own to inspect what a
    request would cost.

Limitations
  - Evaluation reads the event store once; the accounting core relies on the
    store's determinism rather than re-reading.
"""
# 说明：查询评估器，把报告请求转换为按时段的真实聚合值与请求预算。
# 职责：
# - 在访问存储之前调用 request.validate()，非法请求抛出 InvalidQuery
# - 从事件存储读取相关事件并按时段分组（RelevantEvents）
# - 逐时段计算真实聚合值与个体敏感度；超过全局敏感度的聚合值按比例裁剪到 G
# - 通过组合规则（CompositionRule）计算每个时段的请求预算；无相关事件的时段为 0
# 输出：按窗口顺序排列的 epoch -> EpochEvaluation

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

from pdskit.core.privacy.composition import CompositionRule
from pdskit.core.utils.logging import get_logger
from pdskit.events.event_storage import EventStorage
from pdskit.events.relevant_events import RelevantEvents

from .base import ReportRequest

_LOGGER = get_logger("pdskit.queries.query_engine")


@dataclass(frozen=True)
class EpochEvaluation:
    epoch: int
    num_events: int
    true_aggregate: np.ndarray = field(compare=False, repr=False)
    individual_sensitivity: float = 0.0
    requested_budget: float = 0.0

    @property
    def touched(self) -> bool:
        """Epochs with relevant events touch their filters, even at zero cost."""
        return self.num_events > 0


@dataclass(frozen=True)
class Evaluation:
    request: ReportRequest
    epochs: "OrderedDict[int, EpochEvaluation]"
    relevant: RelevantEvents = field(repr=False)

    @property
    def touched_epochs(self) -> Tuple[int, ...]:
        return tuple(epoch for epoch, ev in self.epochs.items() if ev.touched)

    def as_mapping(self) -> "OrderedDict[int, Tuple[np.ndarray, float]]":
        """Ordered ``epoch -> (true_aggregate, requested_budget)``."""
        return OrderedDict((epoch, (ev.true_aggregate, ev.requested_budget)) for epoch, ev in self.epochs.items())

    def total_requested(self) -> float:
        return float(sum(ev.requested_budget for ev in self.epochs.values()))


class QueryEvaluator:
    """Evaluate report requests against an event store."""

    def __init__(self, event_storage: EventStorage, composition_rule: CompositionRule):
        self.event_storage = event_storage
        self.composition_rule = composition_rule

    def evaluate(self, request: ReportRequest) -> Evaluation:
        request.validate()
        sequence = self.event_storage.relevant(request.epochs, request.is_relevant, request.scopes)
        relevant = RelevantEvents.from_sequence(sequence)

        per_epoch: "OrderedDict[int, EpochEvaluation]" = OrderedDict()
        for epoch in request.epochs:
            events = relevant.for_epoch(epoch)
            if not events:
                per_epoch[epoch] = EpochEvaluation(epoch, 0, request.zero_answer())
                continue
            aggregate = np.asarray(request.aggregate(events), dtype=float)
            sensitivity = request.individual_sensitivity(aggregate, self.composition_rule.norm)
            if sensitivity > request.global_sensitivity:
                # 超出声明的聚合值按范数裁剪到 G；是否裁剪不能以异常形式暴露给调用方
                aggregate = aggregate * (request.global_sensitivity / sensitivity)
                sensitivity = float(request.global_sensitivity)
            budget = self.composition_rule.epoch_budget(
                request.requested_budget, sensitivity, request.global_sensitivity
            )
            per_epoch[epoch] = EpochEvaluation(epoch, len(events), aggregate, sensitivity, budget)

        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                "evaluated %r: %d relevant events over %d epochs",
                request,
                relevant.num_events,
                len(per_epoch),
                extra={"true_value": {e: ev.true_aggregate.tolist() for e, ev in per_epoch.items()}},
            )
        return Evaluation(request=request, epochs=per_epoch, relevant=relevant)

    def budget_by_epoch(self, request: ReportRequest) -> Dict[int, float]:
        return {epoch: ev.requested_budget for epoch, ev in self.evaluate(request).epochs.items()}
