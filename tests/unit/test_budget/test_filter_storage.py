"""
Unit tests for filter storage and the multi-key transaction.

Covers:
    * lazy creation at full capacity
    * atomic_consume: all-or-nothing, every failing key reported, canonical order
    * rollback and StorageFailure on backend errors
    * serialisation snapshot and release filters
    * serialisability under concurrent transactions
"""
# 说明：过滤器存储与多键原子事务的单元测试。
# 覆盖：
# - 首次引用时按完整容量懒创建
# - atomic_consume 全有或全无，拒绝时按规范顺序列出全部不足的过滤器且不修改任何状态
# - 后端 I/O 失败时回滚并抛出 StorageFailure
# - 快照序列化往返与 release 解锁
# - 多线程并发事务下剩余值不为负

import threading
from typing import Optional, Set

import pytest

from pdskit.budget import (
    GLOBAL_SCOPE,
    Filter,
    FilterId,
    FilterStatus,
    InMemoryFilterStorage,
    ReleaseFilter,
    StaticCapacities,
)
from pdskit.core.exceptions import StorageFailure
from pdskit.core.privacy.base_mechanism import ValidationError


class FlakyFilterStorage(InMemoryFilterStorage):
    """In-memory storage whose next write to selected keys fails once."""

    def __init__(self, capacities: StaticCapacities):
        super().__init__(capacities)
        self.fail_once_on: Set[FilterId] = set()
        self.fail_reads = False

    def get_filter(self, filter_id: FilterId) -> Optional[Filter]:
        if self.fail_reads:
            raise OSError("disk unavailable")
        return super().get_filter(filter_id)

    def set_filter(self, filter_id: FilterId, flt: Filter) -> None:
        if filter_id in self.fail_once_on:
            self.fail_once_on.discard(filter_id)
            raise OSError("write failed")
        super().set_filter(filter_id, flt)


@pytest.fixture
def storage() -> InMemoryFilterStorage:
    # 夹具：个体容量 10、全局容量 12 的内存存储
    return InMemoryFilterStorage(StaticCapacities(per_querier=10.0, global_=12.0))


def test_filters_created_lazily_at_full_capacity(storage: InMemoryFilterStorage) -> None:
    fid = FilterId("a.example", 1)
    assert not storage.is_initialized(fid)
    assert storage.capacity(fid) == 10.0
    assert storage.remaining(fid) == 10.0
    assert storage.is_initialized(fid)
    assert storage.remaining(FilterId.global_for(1)) == 12.0


def test_try_consume_single_key(storage: InMemoryFilterStorage) -> None:
    fid = FilterId("a.example", 1)
    assert storage.try_consume(fid, 4.0) is FilterStatus.CONTINUE
    assert storage.can_consume(fid, 6.0)
    assert storage.try_consume(fid, 7.0) is FilterStatus.OUT_OF_BUDGET
    assert storage.remaining(fid) == pytest.approx(6.0)


def test_atomic_consume_commits_every_key(storage: InMemoryFilterStorage) -> None:
    plan = {FilterId("a", 1): 4.0, FilterId.global_for(1): 4.0, FilterId("a", 2): 1.0}
    result = storage.atomic_consume(plan)
    assert result.committed and bool(result)
    assert list(result.deductions) == [("a", 1), (GLOBAL_SCOPE, 1), ("a", 2)]
    assert storage.remaining(FilterId("a", 1)) == pytest.approx(6.0)
    assert storage.remaining(FilterId.global_for(1)) == pytest.approx(8.0)
    assert storage.remaining(FilterId("a", 2)) == pytest.approx(9.0)


def test_atomic_consume_denies_without_mutation(storage: InMemoryFilterStorage) -> None:
    storage.try_consume(FilterId("a", 1), 8.0)
    storage.try_consume(FilterId.global_for(2), 11.0)
    before = storage.serialize()
    plan = {
        FilterId.global_for(2): 4.0,
        FilterId("a", 2): 4.0,
        FilterId("a", 1): 4.0,
        FilterId.global_for(1): 4.0,
    }
    result = storage.atomic_consume(plan)
    assert not result.committed
    # 列出全部不足的过滤器，按规范顺序
    assert result.depleted == (("a", 1), (GLOBAL_SCOPE, 2))
    assert storage.serialize() == before


def test_atomic_consume_empty_plan_is_noop(storage: InMemoryFilterStorage) -> None:
    result = storage.atomic_consume({})
    assert result.committed
    assert storage.filter_ids() == []


def test_atomic_consume_rejects_negative_deduction(storage: InMemoryFilterStorage) -> None:
    with pytest.raises(ValidationError):
        storage.atomic_consume({FilterId("a", 1): -1.0})
    assert storage.filter_ids() == []


def test_commit_failure_rolls_back_every_key() -> None:
    storage = FlakyFilterStorage(StaticCapacities(per_querier=10.0, global_=12.0))
    ids = [FilterId("a", 1), FilterId.global_for(1)]
    for fid in ids:
        storage.new_filter(fid)
    # 第二个键（全局过滤器）写入失败：第一个键已扣减，必须被回滚
    storage.fail_once_on = {FilterId.global_for(1)}
    with pytest.raises(StorageFailure):
        storage.atomic_consume({fid: 4.0 for fid in ids})
    assert storage.remaining(FilterId("a", 1)) == 10.0
    assert storage.remaining(FilterId.global_for(1)) == 12.0


def test_read_failure_is_storage_failure() -> None:
    storage = FlakyFilterStorage(StaticCapacities(per_querier=1.0))
    storage.fail_reads = True
    with pytest.raises(StorageFailure):
        storage.remaining(FilterId("a", 0))
    with pytest.raises(StorageFailure):
        storage.atomic_consume({FilterId("a", 0): 0.5})


def test_serialize_roundtrip(storage: InMemoryFilterStorage) -> None:
    storage.atomic_consume({FilterId("a", 1): 2.5, FilterId.global_for(1): 2.5})
    restored = InMemoryFilterStorage.from_serialized(storage.serialize())
    assert restored.remaining(FilterId("a", 1)) == pytest.approx(7.5)
    assert restored.remaining(FilterId.global_for(1)) == pytest.approx(9.5)
    assert restored.serialize() == storage.serialize()


def test_serialize_roundtrip_keeps_filter_kind() -> None:
    releasing = InMemoryFilterStorage(StaticCapacities(per_querier=4.0, global_=4.0), filter_factory=ReleaseFilter)
    releasing.release(FilterId("a", 1), 2.0)
    data = releasing.serialize()
    assert data["filter_kind"] == "release"
    restored = InMemoryFilterStorage.from_serialized(data)
    assert restored.filter_factory is ReleaseFilter
    # 恢复后新建的过滤器仍是 ReleaseFilter：未解锁前不能扣费
    fresh = FilterId("a", 2)
    assert restored.try_consume(fresh, 1.0) is FilterStatus.OUT_OF_BUDGET
    assert isinstance(restored.get_filter(fresh), ReleaseFilter)


def test_snapshot_of_custom_factory_needs_explicit_factory() -> None:
    custom = InMemoryFilterStorage(StaticCapacities(per_querier=4.0), filter_factory=lambda cap: ReleaseFilter(cap))
    data = custom.serialize()
    assert data["filter_kind"] is None
    with pytest.raises(ValidationError):
        InMemoryFilterStorage.from_serialized(data)
    restored = InMemoryFilterStorage.from_serialized(data, filter_factory=ReleaseFilter)
    assert restored.filter_factory is ReleaseFilter


def test_snapshot_without_filter_kind_defaults_to_pure_dp(storage: InMemoryFilterStorage) -> None:
    data = storage.serialize()
    del data["filter_kind"]
    restored = InMemoryFilterStorage.from_serialized(data)
    assert restored.try_consume(FilterId("a", 1), 1.0) is FilterStatus.CONTINUE


def test_release_only_on_release_filters(storage: InMemoryFilterStorage) -> None:
    with pytest.raises(ValidationError):
        storage.release(FilterId("a", 1), 1.0)
    releasing = InMemoryFilterStorage(StaticCapacities(per_querier=4.0, global_=4.0), filter_factory=ReleaseFilter)
    fid = FilterId("a", 1)
    assert releasing.try_consume(fid, 1.0) is FilterStatus.OUT_OF_BUDGET
    assert releasing.release(fid, 2.0) == 2.0
    assert releasing.try_consume(fid, 1.0) is FilterStatus.CONTINUE


def test_concurrent_transactions_never_overdraw() -> None:
    # 20 个线程各自尝试扣减 1.0，容量 7：恰好 7 个成功，剩余值为 0
    storage = InMemoryFilterStorage(StaticCapacities(per_querier=7.0, global_=7.0))
    plan = {FilterId("a", 0): 1.0, FilterId.global_for(0): 1.0}
    outcomes = []
    lock = threading.Lock()

    def worker() -> None:
        result = storage.atomic_consume(plan)
        with lock:
            outcomes.append(result.committed)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert outcomes.count(True) == 7
    assert storage.remaining(FilterId("a", 0)) == 0.0
    assert storage.remaining(FilterId.global_for(0)) == 0.0


def test_depleted_filter_rejects_tiny_repeated_charges(storage: InMemoryFilterStorage) -> None:
    # 容量耗尽后，小于容差的重复扣减同样被拒绝，累计扣减不超过容量
    fid = FilterId("a", 1)
    assert storage.atomic_consume({fid: 10.0}).committed
    results = [storage.atomic_consume({fid: 1e-12}).committed for _ in range(1000)]
    assert results.count(True) <= 1
    assert storage.remaining(fid) == 0.0
    assert storage.get_filter(fid).consumed <= 10.0 + 1e-12
