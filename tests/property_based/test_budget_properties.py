"""
Property-based tests for filters and the multi-key transaction.
"""
# 说明：过滤器与多键原子事务的属性测试。
# 覆盖：
# - 任意扣减序列后剩余值不为负，且等于容量减去已提交扣减之和
# - 被拒绝的事务不修改任何过滤器
# - 拒绝时列出的过滤器恰好是剩余额度不足的那些
# - 机制记账值不超过请求预算

import math

import pytest
from hypothesis import given, strategies as st

from pdskit.budget import FilterId, InMemoryFilterStorage, StaticCapacities
from pdskit.mechanisms import GaussianMechanism, LaplaceMechanism

_amounts = st.floats(min_value=0.0, max_value=5.0, allow_nan=False, allow_infinity=False)
_filter_ids = st.builds(
    FilterId,
    st.sampled_from(["a.example", "b.example", "__global__"]),
    st.integers(min_value=0, max_value=3),
)
_plans = st.dictionaries(_filter_ids, _amounts, max_size=6)


@given(st.lists(_plans, max_size=12))
def test_remaining_never_negative(plans):
    # 每个键的剩余值 = 容量 - 已提交扣减之和，且始终不小于 0
    storage = InMemoryFilterStorage(StaticCapacities(per_querier=6.0, global_=8.0))
    spent = {}
    for plan in plans:
        result = storage.atomic_consume(plan)
        if result.committed:
            for fid, amount in plan.items():
                spent[fid] = spent.get(fid, 0.0) + amount
    for fid, total in spent.items():
        remaining = storage.remaining(fid)
        assert remaining >= 0.0
        assert remaining == pytest.approx(max(storage.capacity(fid) - total, 0.0), abs=1e-9)


@given(_plans, _plans)
def test_denied_transaction_changes_nothing(prefill, plan):
    storage = InMemoryFilterStorage(StaticCapacities(per_querier=3.0, global_=4.0))
    storage.atomic_consume(prefill)
    before = storage.serialize()
    remaining = {fid: storage.capacity(fid) for fid in plan}
    for fid in plan:
        if storage.is_initialized(fid):
            remaining[fid] = storage.remaining(fid)
    expected_failing = sorted(
        (fid for fid, amount in plan.items() if amount > remaining[fid] + 1e-12),
        key=lambda fid: fid.sort_key,
    )
    result = storage.atomic_consume(plan)
    if expected_failing:
        assert not result.committed
        assert list(result.depleted) == expected_failing
        assert storage.serialize() == before
    else:
        assert result.committed


@given(
    st.floats(min_value=0.0, max_value=10.0, allow_nan=False),
    st.floats(min_value=0.0, max_value=10.0, allow_nan=False),
)
def test_loss_never_exceeds_request(sensitivity, requested):
    for mech in (LaplaceMechanism(rng=0), GaussianMechanism(rng=0)):
        loss = mech.loss_for(sensitivity, requested)
        assert 0.0 <= loss <= requested
        assert not math.isnan(loss)
        if sensitivity == 0.0:
            assert loss == 0.0
