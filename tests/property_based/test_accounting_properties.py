"""
Property-based tests for evaluation, accounting and report encoding.
"""
# 说明：评估、记账与报告编码的属性测试。
# 覆盖：
# - 同一未变更事件存储上两次评估结果一致
# - 无相关事件的时段请求预算为 0，且其过滤器从不被创建
# - 单时段个体敏感度不超过声明的全局敏感度
# - 报告结果被拒绝时过滤器状态不变；成功时每个被触及时段的个体与全局扣减相同
# - Reported / Denied 的 JSON 往返
# - 多查询方交替注册与查询时剩余预算始终在 [0, capacity] 之内

import numpy as np
from hypothesis import given, strategies as st

from pdskit.budget import GLOBAL_SCOPE, FilterId, InMemoryFilterStorage, StaticCapacities
from pdskit.core.privacy import BasicComposition
from pdskit.events import Event, InMemoryEventStorage
from pdskit.mechanisms import LaplaceMechanism
from pdskit.pds import AccountingCore, Denied, Reported, report_from_json
from pdskit.queries import HistogramRequest, QueryEvaluator

_events = st.lists(
    st.builds(
        Event,
        st.sampled_from(["news.example", "blog.example"]),
        st.integers(min_value=0, max_value=5),
        st.fixed_dictionaries(
            {
                "bucket": st.integers(min_value=-1, max_value=3),
                "value": st.floats(min_value=0.0, max_value=1.5, allow_nan=False),
            }
        ),
    ),
    max_size=20,
)
_windows = st.lists(st.integers(min_value=0, max_value=7), min_size=1, max_size=5, unique=True)


def _store(events):
    store = InMemoryEventStorage()
    for event in events:
        store.add_event(event)
    return store


def _histogram(window, budget=1.0):
    return HistogramRequest("shop.example", window, num_buckets=3, requested_budget=budget, attributable_value=1.0)


@given(_events, _windows)
def test_evaluation_is_deterministic(events, window):
    evaluator = QueryEvaluator(_store(events), BasicComposition())
    first = evaluator.evaluate(_histogram(window))
    second = evaluator.evaluate(_histogram(window))
    assert list(first.epochs) == list(second.epochs) == window
    for epoch in window:
        a, b = first.epochs[epoch], second.epochs[epoch]
        assert a == b
        np.testing.assert_array_equal(a.true_aggregate, b.true_aggregate)


@given(_events, _windows)
def test_null_epochs_cost_nothing(events, window):
    evaluation = QueryEvaluator(_store(events), BasicComposition()).evaluate(_histogram(window))
    for epoch, ev in evaluation.epochs.items():
        assert ev.individual_sensitivity <= 1.0 + 1e-9
        if not ev.touched:
            assert ev.requested_budget == 0.0
            assert not ev.true_aggregate.any()


@given(_events, _windows, st.floats(min_value=0.1, max_value=3.0))
def test_charges_are_symmetric_and_denials_pure(events, window, budget):
    filters = InMemoryFilterStorage(StaticCapacities(per_querier=2.0, global_=2.5))
    rule = BasicComposition()
    core = AccountingCore(filters, LaplaceMechanism(rng=0), rule, QueryEvaluator(_store(events), rule))
    before = filters.serialize()
    report = core.compute_report(_histogram(window, budget))
    if isinstance(report, Denied):
        assert report.depleted_filters
        assert filters.serialize() == before
        return
    for epoch in window:
        individual = FilterId("shop.example", epoch)
        if epoch in report.epochs:
            spent_individual = 2.0 - filters.remaining(individual)
            spent_global = 2.5 - filters.remaining(FilterId.global_for(epoch))
            assert abs(spent_individual - spent_global) <= 1e-9
        else:
            assert not filters.is_initialized(individual)
            assert not filters.is_initialized(FilterId.global_for(epoch))


_reports = st.one_of(
    st.builds(
        Reported,
        st.lists(st.floats(allow_nan=False, allow_infinity=False, width=64), max_size=5).map(tuple),
        st.lists(st.integers(min_value=-5, max_value=50), max_size=4).map(tuple),
        st.floats(min_value=0.0, max_value=100.0),
    ),
    st.builds(
        Denied,
        st.lists(
            st.tuples(st.sampled_from(["shop.example", GLOBAL_SCOPE]), st.integers(min_value=0, max_value=50)),
            max_size=4,
        ).map(tuple),
        st.text(max_size=20),
    ),
)


@given(_reports)
def test_report_json_roundtrip(report):
    assert report_from_json(report.to_json()) == report


_queriers = st.sampled_from(["shop.example", "ads.example", "maps.example"])
_operations = st.lists(
    st.one_of(
        st.tuples(
            st.just("register"),
            st.sampled_from(["news.example", "blog.example"]),
            st.integers(min_value=0, max_value=4),
            st.integers(min_value=0, max_value=2),
            st.floats(min_value=0.0, max_value=1.0, allow_nan=False),
        ),
        st.tuples(
            st.just("report"),
            _queriers,
            st.lists(st.integers(min_value=0, max_value=4), min_size=1, max_size=3, unique=True),
            st.floats(min_value=0.05, max_value=2.5, allow_nan=False),
        ),
    ),
    max_size=40,
)


@given(_operations)
def test_interleaved_queriers_stay_within_capacity(operations):
    # 多个查询方交替注册与查询：剩余预算始终在 [0, capacity]，拒绝不改变任何过滤器
    events = InMemoryEventStorage()
    filters = InMemoryFilterStorage(StaticCapacities(per_querier=3.0, global_=4.0))
    rule = BasicComposition()
    core = AccountingCore(filters, LaplaceMechanism(rng=0), rule, QueryEvaluator(events, rule))
    for op in operations:
        if op[0] == "register":
            _, scope, epoch, bucket, value = op
            events.add_event(Event(scope, epoch, {"bucket": bucket, "value": value}))
            continue
        _, querier, window, budget = op
        before = filters.serialize()
        request = HistogramRequest(querier, window, num_buckets=3, requested_budget=budget, attributable_value=1.0)
        report = core.compute_report(request)
        if isinstance(report, Denied):
            assert filters.serialize() == before
        for fid in filters.filter_ids():
            flt = filters.get_filter(fid)
            assert 0.0 <= flt.remaining <= flt.capacity
            assert flt.consumed <= flt.capacity + flt.slack
