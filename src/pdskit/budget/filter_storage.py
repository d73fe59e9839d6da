"""
Filter storage: lazily created per-(scope, epoch) budget counters with an
all-or-nothing multi-key deduction.

Responsibilities:
    * create each filter at full capacity on first reference
    * advisory ``remaining`` reads and per-key atomic ``try_consume``
    * ``atomic_consume``: a two-phase check/commit over a set of keys, run
      under one storage-wide lock and in a fixed canonical key order, that
      either deducts every key or leaves every key untouched
    * translate backend I/O errors into ``StorageFailure``

Backends implement four primitives (``get_filter``, ``set_filter``,
``delete_filter``, ``filter_ids``); everything else is shared.
"""
# 说明：过滤器存储抽象与内存参考实现。
# 职责：
# - FilterStorage：在四个后端原语之上实现懒创建、剩余额度读取、单键原子扣减与多键事务
# - atomic_consume：两阶段协议
#     阶段一：按规范顺序检查全部键，收集全部不足的键；任一不足则不做任何修改
#     阶段二：依次扣减；若中途出现异常则用快照回滚并抛出 StorageFailure
# - InMemoryFilterStorage：基于字典的参考后端，支持 release 解锁与快照序列化
# 约定：
# - 整个事务在存储级可重入锁内执行，保证与其他请求串行化
# - 后端原语抛出的 OSError 统一包装为 StorageFailure，不做重试

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from pdskit.core.exceptions import StorageFailure
from pdskit.core.privacy.base_mechanism import ValidationError
from pdskit.core.utils.logging import get_logger
from pdskit.core.utils.param_validation import ensure_non_negative_number

from .filter_id import FilterId, StaticCapacities
from .filters import FILTER_KINDS, Filter, FilterStatus, PureDPFilter, ReleaseFilter, filter_from_dict

_LOGGER = get_logger("pdskit.budget.filter_storage")

FilterFactory = Callable[[float], Filter]
Snapshot = Dict[FilterId, Optional[Filter]]


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of a multi-key deduction."""

    committed: bool
    depleted: Tuple[FilterId, ...] = ()
    deductions: Dict[FilterId, float] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.committed


def canonical_order(filter_ids: Iterable[FilterId]) -> List[FilterId]:
    return sorted((FilterId.from_obj(fid) for fid in filter_ids), key=lambda fid: fid.sort_key)


class FilterStorage(ABC):
    """Budget filter store with lazy creation and multi-key transactions."""

    def __init__(self, capacities: StaticCapacities, filter_factory: FilterFactory = PureDPFilter):
        self.capacities = capacities
        self.filter_factory = filter_factory
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ backend primitives
    @abstractmethod
    def get_filter(self, filter_id: FilterId) -> Optional[Filter]:
        """Return the stored filter, or None if it was never created."""

    @abstractmethod
    def set_filter(self, filter_id: FilterId, flt: Filter) -> None:
        """Persist ``flt`` under ``filter_id``."""

    @abstractmethod
    def delete_filter(self, filter_id: FilterId) -> None:
        """Forget ``filter_id``; only used to roll back a creation."""

    @abstractmethod
    def filter_ids(self) -> List[FilterId]:
        """Identifiers of every created filter."""

    # ------------------------------------------------------------------ helpers
    @contextmanager
    def _storage_io(self, action: str) -> Iterator[None]:
        try:
            yield
        except StorageFailure:
            raise
        except OSError as exc:
            raise StorageFailure(f"filter store failed to {action}: {exc}") from exc

    def _get_or_create(self, filter_id: FilterId) -> Filter:
        flt = self.get_filter(filter_id)
        if flt is None:
            flt = self.filter_factory(self.capacities.capacity(filter_id))
            self.set_filter(filter_id, flt)
            _LOGGER.debug("created filter %s with capacity %s", filter_id, flt.capacity)
        return flt

    # ------------------------------------------------------------------ single key
    def capacity(self, filter_id: FilterId) -> float:
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("read capacity"):
            flt = self.get_filter(filter_id)
            return self.capacities.capacity(filter_id) if flt is None else flt.capacity

    def is_initialized(self, filter_id: FilterId) -> bool:
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("read filter"):
            return self.get_filter(filter_id) is not None

    def new_filter(self, filter_id: FilterId) -> Filter:
        """Create ``filter_id`` at full capacity if it does not exist yet."""
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("create filter"):
            return self._get_or_create(filter_id)

    def remaining(self, filter_id: FilterId) -> float:
        """Advisory read; the value may change before any later deduction."""
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("read remaining budget"):
            return self._get_or_create(filter_id).remaining

    def can_consume(self, filter_id: FilterId, amount: float) -> bool:
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("check filter"):
            return self._get_or_create(filter_id).can_consume(amount)

    def try_consume(self, filter_id: FilterId, amount: float) -> FilterStatus:
        filter_id = FilterId.from_obj(filter_id)
        with self._lock, self._storage_io("consume budget"):
            flt = self._get_or_create(filter_id)
            status = flt.try_consume(amount)
            if status is FilterStatus.CONTINUE:
                self.set_filter(filter_id, flt)
            return status

    # ------------------------------------------------------------------ snapshots
    def snapshot(self, filter_ids: Iterable[FilterId]) -> Snapshot:
        with self._lock, self._storage_io("snapshot filters"):
            snap: Snapshot = {}
            for fid in canonical_order(filter_ids):
                flt = self.get_filter(fid)
                snap[fid] = None if flt is None else flt.copy()
            return snap

    def restore(self, snapshot: Snapshot) -> None:
        with self._lock, self._storage_io("restore filters"):
            for fid, flt in snapshot.items():
                if flt is None:
                    self.delete_filter(fid)
                else:
                    self.set_filter(fid, flt.copy())

    # ------------------------------------------------------------------ transactions
    def check_all(self, deductions: Mapping[FilterId, float]) -> Tuple[FilterId, ...]:
        """
        Return every key in ``deductions`` whose filter cannot absorb its amount.

        Read only: a filter that does not exist yet is checked as a fresh one
        without being created.
        """
        with self._lock, self._storage_io("check filters"):
            failing = []
            for fid in canonical_order(deductions):
                flt = self.get_filter(fid)
                if flt is None:
                    flt = self.filter_factory(self.capacities.capacity(fid))
                if not flt.can_consume(deductions[fid]):
                    failing.append(fid)
            return tuple(failing)

    def atomic_consume(self, deductions: Mapping[FilterId, float]) -> TransactionResult:
        """
        Deduct every amount in ``deductions`` or none of them.

        Returns a non-committed result listing every failing filter (in
        canonical order) when at least one filter lacks budget; no filter is
        modified in that case. Raises ``StorageFailure`` on backend errors,
        after restoring every filter touched so far.
        """
        plan: Dict[FilterId, float] = {}
        for raw_id, amount in deductions.items():
            plan[FilterId.from_obj(raw_id)] = ensure_non_negative_number(
                amount, label="deduction", error=ValidationError
            )
        ordered = canonical_order(plan)
        if not ordered:
            return TransactionResult(committed=True)

        with self._lock:
            # 阶段一：只检查不修改
            depleted = self.check_all(plan)
            if depleted:
                _LOGGER.debug("transaction rejected; depleted filters: %s", list(depleted))
                return TransactionResult(committed=False, depleted=depleted)

            # 阶段二：按规范顺序扣减，异常时回滚
            snap = self.snapshot(ordered)
            try:
                with self._storage_io("commit deductions"):
                    for fid in ordered:
                        flt = self._get_or_create(fid)
                        if flt.try_consume(plan[fid]) is not FilterStatus.CONTINUE:
                            self.restore(snap)
                            return TransactionResult(committed=False, depleted=(fid,))
                        self.set_filter(fid, flt)
            except StorageFailure as exc:
                self._rollback(snap, exc)
                raise
            _LOGGER.debug("transaction committed over %d filters", len(ordered))
            return TransactionResult(committed=True, deductions={fid: plan[fid] for fid in ordered})

    def _rollback(self, snap: Snapshot, cause: BaseException) -> None:
        try:
            self.restore(snap)
        except StorageFailure as exc:
            raise StorageFailure(f"rollback failed after commit error ({cause}): {exc}") from exc
        _LOGGER.warning("rolled back %d filters after storage failure", len(snap))

    # ------------------------------------------------------------------ inspection
    def filter_kind(self) -> Optional[str]:
        """Registered name of the filter factory, ``None`` for a custom factory."""
        for name, factory in FILTER_KINDS.items():
            if factory is self.filter_factory:
                return name
        return None

    def serialize(self) -> Dict[str, Any]:
        with self._lock, self._storage_io("serialize filters"):
            return {
                "capacities": self.capacities.to_dict(),
                "filter_kind": self.filter_kind(),
                "filters": [
                    {"scope": fid.scope, "epoch": fid.epoch, "filter": self.get_filter(fid).to_dict()}
                    for fid in canonical_order(self.filter_ids())
                ],
            }


class InMemoryFilterStorage(FilterStorage):
    """Reference backend keeping every filter in a dict."""

    def __init__(self, capacities: StaticCapacities, filter_factory: FilterFactory = PureDPFilter):
        super().__init__(capacities, filter_factory)
        self._filters: Dict[FilterId, Filter] = {}

    def get_filter(self, filter_id: FilterId) -> Optional[Filter]:
        return self._filters.get(filter_id)

    def set_filter(self, filter_id: FilterId, flt: Filter) -> None:
        self._filters[filter_id] = flt

    def delete_filter(self, filter_id: FilterId) -> None:
        self._filters.pop(filter_id, None)

    def filter_ids(self) -> List[FilterId]:
        return list(self._filters)

    def release(self, filter_id: FilterId, amount: float) -> float:
        """Unlock ``amount`` more budget on a release filter; returns the unlocked total."""
        filter_id = FilterId.from_obj(filter_id)
        with self._lock:
            flt = self._get_or_create(filter_id)
            if not isinstance(flt, ReleaseFilter):
                raise ValidationError(f"filter {filter_id} does not support release")
            flt.release(amount)
            return flt.unlocked

    @classmethod
    def from_serialized(
        cls, data: Mapping[str, Any], filter_factory: Optional[FilterFactory] = None
    ) -> "InMemoryFilterStorage":
        """Rebuild a store; ``filter_factory`` is required when the snapshot used a custom one."""
        caps = data["capacities"]
        if filter_factory is None:
            # 旧快照没有 filter_kind 字段，按默认的 pure_dp 处理
            kind = data.get("filter_kind", "pure_dp")
            if kind not in FILTER_KINDS:
                raise ValidationError(f"snapshot needs an explicit filter factory (filter_kind={kind!r})")
            filter_factory = FILTER_KINDS[kind]
        storage = cls(StaticCapacities(per_querier=caps["per_querier"], global_=caps["global"]), filter_factory)
        for entry in data.get("filters", []):
            storage.set_filter(FilterId(entry["scope"], int(entry["epoch"])), filter_from_dict(entry["filter"]))
        return storage
