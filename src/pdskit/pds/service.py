"""
Private data service: the entry point host applications talk to.

Responsibilities:
    * register events (``StorageFailure`` on I/O errors)
    * compute reports: evaluate, then hand over to the accounting core
    * charge passive privacy loss
    * advisory reads of individual and global filters
    * assemble in-memory backends from a ``PdsConfig``
"""
# 说明：私有数据服务门面，宿主应用通过它注册事件并请求报告。
# 职责：
# - register_event / register：写入事件存储；register 通过时段时钟把时间戳映射为 epoch
# - compute_report：评估请求后交由记账核心完成扣费与加噪，返回 Reported 或 Denied
# - account_for_passive_privacy_loss：被动损失记账
# - remaining / remaining_global：过滤器剩余额度的参考读取
# - from_config：依据 PdsConfig 组装内存后端

from __future__ import annotations

from typing import Any, Mapping, Optional

from pdskit.budget.filter_id import FilterId
from pdskit.budget.filter_storage import FilterStorage, InMemoryFilterStorage, TransactionResult
from pdskit.core.privacy.base_mechanism import BudgetMechanism
from pdskit.core.privacy.composition import CompositionRule
from pdskit.core.utils.logging import get_logger
from pdskit.events.event import EpochClock, Event
from pdskit.events.event_storage import EventStorage, InMemoryEventStorage
from pdskit.mechanisms.mechanism_factory import create_mechanism
from pdskit.queries.base import ReportRequest
from pdskit.queries.passive import PassiveLossRequest
from pdskit.queries.query_engine import QueryEvaluator

from .accounting import AccountingCore
from .config import PdsConfig
from .report import Report

_LOGGER = get_logger("pdskit.pds.service")


class PrivateDataService:
    """Registers events and answers report requests under privacy filters."""

    def __init__(
        self,
        event_storage: EventStorage,
        filter_storage: FilterStorage,
        mechanism: BudgetMechanism,
        composition_rule: CompositionRule,
        epoch_clock: Optional[EpochClock] = None,
    ):
        self.event_storage = event_storage
        self.filter_storage = filter_storage
        self.epoch_clock = epoch_clock or EpochClock()
        self.evaluator = QueryEvaluator(event_storage, composition_rule)
        self.core = AccountingCore(filter_storage, mechanism, composition_rule, self.evaluator)

    @classmethod
    def from_config(cls, config: Optional[PdsConfig] = None, **overrides: Any) -> "PrivateDataService":
        if config is None:
            config = PdsConfig.from_mapping(overrides)
        elif overrides:
            config = PdsConfig.from_mapping({**config.to_dict(), **overrides})
        rule = config.composition_rule()
        mechanism = create_mechanism(config.mechanism, rng=config.rng_seed, composition=rule)
        return cls(
            InMemoryEventStorage(),
            InMemoryFilterStorage(config.capacities(), config.filter_factory()),
            mechanism,
            rule,
            config.epoch_clock(),
        )

    @property
    def mechanism(self) -> BudgetMechanism:
        return self.core.mechanism

    @property
    def composition_rule(self) -> CompositionRule:
        return self.core.composition_rule

    # ------------------------------------------------------------------ events
    def register_event(self, event: Event) -> None:
        _LOGGER.debug("registering event %r", event)
        self.event_storage.add_event(event)

    def register(
        self,
        scope: str,
        payload: Mapping[str, Any],
        timestamp: float,
        *,
        event_id: Optional[str] = None,
    ) -> Event:
        event = Event(
            scope=scope,
            epoch=self.epoch_clock.epoch_of(timestamp),
            payload=payload,
            event_id=event_id,
            timestamp=float(timestamp),
        )
        self.register_event(event)
        return event

    # ------------------------------------------------------------------ reports
    def compute_report(self, request: ReportRequest) -> Report:
        _LOGGER.debug("computing report for %r", request)
        return self.core.compute_report(request)

    def account_for_passive_privacy_loss(self, request: PassiveLossRequest) -> TransactionResult:
        return self.core.account_for_passive_privacy_loss(request)

    # ------------------------------------------------------------------ filters
    def remaining(self, scope: str, epoch: int) -> float:
        return self.filter_storage.remaining(FilterId(scope, int(epoch)))

    def remaining_global(self, epoch: int) -> float:
        return self.filter_storage.remaining(FilterId.global_for(epoch))
