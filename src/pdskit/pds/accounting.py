"""
Accounting core: charges individual and cross-site filters for a report in
one all-or-nothing transaction, then releases the noised answer.

Per request the core moves through
``EVALUATING -> CHECKING -> COMMITTING -> {REPORTED, DENIED}`` with no retry.

Charging rule
  - An epoch is touched when it has at least one relevant event. A touched
    epoch charges ``mechanism.loss_for(individual_sensitivity, budget)`` to
    both ``(querier, epoch)`` and ``(GLOBAL_SCOPE, epoch)``; the amount may
    be zero, the filters are still touched.
  - Epochs without relevant events are neither touched nor charged.

Noise rule
  - Every epoch of the window is answered with the mechanism calibrated on
    the declared global sensitivity and the requested budget, so the output
    distribution never depends on which epochs were charged.
  - A request with no touched epoch deviates from the exact zero-sensitivity
    answer: it still returns noised zeros (no filter is touched, loss 0), so
    an empty result cannot be told apart from a sparse one.

A precomputed ``Evaluation`` passed to ``compute_report`` must belong to the
very same request object; otherwise ``InvalidQuery`` is raised.
"""
# 说明：记账核心，协调过滤器存储、机制与组合规则完成一次报告请求。
# 职责：
# - deductions_for：根据评估结果构造被触及的过滤器集合（个体 + 全局）及各自扣减额
# - compute_report：乐观预检 -> 多键原子扣减 -> 逐时段加噪 -> 按请求的组合规则合并
# - account_for_passive_privacy_loss：对窗口内所有时段扣减固定额度，同样是全有或全无
# 约定：
# - 拒绝（Denied）是返回值而非异常，且拒绝路径上不修改任何过滤器
# - StorageFailure / InvalidQuery 直接向上传播，不做内部重试
# - 核心自身不持有请求状态，串行化由过滤器存储的事务锁保证

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from pdskit.budget.filter_id import FilterId
from pdskit.budget.filter_storage import FilterStorage, TransactionResult
from pdskit.core.exceptions import ConfigurationError, InvalidQuery
from pdskit.core.privacy.base_mechanism import BudgetMechanism
from pdskit.core.privacy.composition import CompositionRule
from pdskit.core.utils.logging import get_logger
from pdskit.mechanisms.mechanism_registry import ensure_compatible
from pdskit.queries.base import ReportRequest
from pdskit.queries.passive import PassiveLossRequest
from pdskit.queries.query_engine import Evaluation, QueryEvaluator

from .report import Report, Reported, denied_for

_LOGGER = get_logger("pdskit.pds.accounting")


class RequestState(str, Enum):
    EVALUATING = "evaluating"
    CHECKING = "checking"
    COMMITTING = "committing"
    REPORTED = "reported"
    DENIED = "denied"


def _transition(request: object, state: RequestState) -> None:
    _LOGGER.debug("request %r -> %s", request, state.value)


class AccountingCore:
    """Orchestrates filter checks, the atomic deduction and noising."""

    def __init__(
        self,
        filter_storage: FilterStorage,
        mechanism: BudgetMechanism,
        composition_rule: CompositionRule,
        evaluator: Optional[QueryEvaluator] = None,
    ):
        ensure_compatible(mechanism, composition_rule)
        if evaluator is not None and evaluator.composition_rule is not composition_rule:
            raise ConfigurationError("evaluator and accounting core must share one composition rule")
        self.filter_storage = filter_storage
        self.mechanism = mechanism
        self.composition_rule = composition_rule
        self.evaluator = evaluator

    # ------------------------------------------------------------------ charging
    def deductions_for(self, request: ReportRequest, evaluation: Evaluation) -> Dict[FilterId, float]:
        """Touched filters and the exact amount each would be charged."""
        deductions: Dict[FilterId, float] = {}
        for epoch in evaluation.touched_epochs:
            ev = evaluation.epochs[epoch]
            loss = self.mechanism.loss_for(ev.individual_sensitivity, ev.requested_budget)
            deductions[FilterId.individual(request.querier, epoch)] = loss
            deductions[FilterId.global_for(epoch)] = loss
        return deductions

    # ------------------------------------------------------------------ reports
    def compute_report(self, request: ReportRequest, evaluation: Optional[Evaluation] = None) -> Report:
        _transition(request, RequestState.EVALUATING)
        if evaluation is None:
            if self.evaluator is None:
                raise ConfigurationError("no evaluation given and no query evaluator configured")
            evaluation = self.evaluator.evaluate(request)
        elif evaluation.request is not request:
            # 扣费来自评估结果、噪声来自请求本身，二者必须一致
            raise InvalidQuery("evaluation was computed for a different request")
        deductions = self.deductions_for(request, evaluation)
        touched = evaluation.touched_epochs

        if deductions:
            _transition(request, RequestState.CHECKING)
            failing = self.filter_storage.check_all(deductions)
            if failing:
                return self._deny(request, failing)

            _transition(request, RequestState.COMMITTING)
            result = self.filter_storage.atomic_consume(deductions)
            if not result.committed:
                return self._deny(request, result.depleted)
        else:
            _LOGGER.debug("request %r has no relevant events; no filter is touched", request)

        answers = self._noised_answers(request, evaluation)
        losses = [deductions[FilterId.individual(request.querier, epoch)] for epoch in touched]
        composed = self.composition_rule.compose(losses)
        _transition(request, RequestState.REPORTED)
        return Reported(value=tuple(request.combine(answers)), epochs=touched, loss=composed.loss)

    def _noised_answers(self, request: ReportRequest, evaluation: Evaluation) -> List[np.ndarray]:
        answers = []
        for ev in evaluation.epochs.values():
            noised = self.mechanism.apply(ev.true_aggregate, request.global_sensitivity, request.requested_budget)
            answers.append(np.asarray(noised, dtype=float))
        return answers

    def _deny(self, request: object, depleted: Sequence[FilterId]) -> Report:
        _transition(request, RequestState.DENIED)
        _LOGGER.info("request %r denied; depleted filters: %s", request, list(depleted))
        return denied_for(depleted)

    # ------------------------------------------------------------------ passive loss
    def account_for_passive_privacy_loss(self, request: PassiveLossRequest) -> TransactionResult:
        """Charge ``request.budget`` to every epoch of the window, or nothing at all."""
        request.validate()
        deductions: Dict[FilterId, float] = {}
        for epoch in request.epochs:
            deductions[FilterId.individual(request.querier, epoch)] = request.budget
            deductions[FilterId.global_for(epoch)] = request.budget
        result = self.filter_storage.atomic_consume(deductions)
        if not result.committed:
            _LOGGER.info("passive loss for %r denied; depleted filters: %s", request, list(result.depleted))
        return result
