"""
Unit tests for the service configuration.
"""
# 说明：PdsConfig 的单元测试。
# 覆盖：默认值、构造器、未知键与非法取值、机制与组合规则单位不一致、环境变量读取。

import math

import pytest

from pdskit.budget import FilterId, PureDPFilter, ReleaseFilter
from pdskit.core.exceptions import ConfigurationError
from pdskit.core.privacy import BasicComposition, ZCDPComposition
from pdskit.pds import PdsConfig


def test_defaults_build_basic_laplace_setup() -> None:
    config = PdsConfig()
    assert config.capacities().capacity(FilterId.global_for(0)) == math.inf
    assert isinstance(config.composition_rule(), BasicComposition)
    assert config.filter_factory() is PureDPFilter
    assert config.epoch_clock().epoch_of(7 * 24 * 3600) == 1


def test_zcdp_config_uses_report_delta() -> None:
    config = PdsConfig(composition="ZCDP", mechanism="gaussian", report_delta=1e-6)
    rule = config.composition_rule()
    assert isinstance(rule, ZCDPComposition) and rule.delta == 1e-6


def test_release_filter_kind() -> None:
    assert PdsConfig(filter_kind="release").filter_factory() is ReleaseFilter


@pytest.mark.parametrize(
    "kwargs",
    [
        {"composition": "renyi"},
        {"mechanism": "exponential"},
        {"filter_kind": "quota"},
        {"per_querier_capacity": -1.0},
        {"epoch_seconds": 0},
        {"mechanism": "gaussian"},
        {"composition": "zcdp"},
    ],
)
def test_invalid_configurations(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        PdsConfig(**kwargs)


def test_mapping_roundtrip_and_unknown_keys() -> None:
    config = PdsConfig(per_querier_capacity=10.0, global_capacity=12.0)
    assert PdsConfig.from_mapping(config.to_dict()) == config
    with pytest.raises(ConfigurationError):
        PdsConfig.from_mapping({"quota": 1})


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDSKIT_PDS_PER_QUERIER_CAPACITY", "10")
    monkeypatch.setenv("PDSKIT_PDS_RNG_SEED", "42")
    monkeypatch.setenv("PDSKIT_PDS_COMPOSITION", "basic")
    config = PdsConfig.from_env(global_capacity=12.0)
    assert config.per_querier_capacity == 10.0
    assert config.global_capacity == 12.0
    assert config.rng_seed == 42
    monkeypatch.setenv("PDSKIT_PDS_EPOCH_SECONDS", "weekly")
    with pytest.raises(ConfigurationError):
        PdsConfig.from_env()
