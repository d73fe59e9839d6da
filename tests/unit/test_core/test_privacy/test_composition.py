"""
Unit tests for composition rules.
"""
# 说明：组合规则（BasicComposition / ZCDPComposition）的单元测试。
# 覆盖：
# - epoch_budget：按个体/全局敏感度比例缩放请求预算；无敏感度为 0
# - 个体敏感度超过声明的全局敏感度时报错
# - compose：逐时段损失求和并换算 (ε, δ)
# - get_composition_rule：标识符解析与未知规则报错

import math

import pytest

from pdskit.core.exceptions import ConfigurationError
from pdskit.core.privacy import (
    BasicComposition,
    LossUnit,
    ZCDPComposition,
    get_composition_rule,
    registered_rules_snapshot,
    zcdp_to_cdp,
)
from pdskit.core.utils.param_validation import ParamValidationError


def test_basic_epoch_budget_scales_linearly() -> None:
    # s * ε / G
    rule = BasicComposition()
    assert rule.epoch_budget(4.0, 1.0, 1.0) == pytest.approx(4.0)
    assert rule.epoch_budget(4.0, 0.5, 2.0) == pytest.approx(1.0)


def test_epoch_budget_zero_for_insensitive_epoch() -> None:
    assert BasicComposition().epoch_budget(4.0, 0.0, 1.0) == 0.0
    assert ZCDPComposition().epoch_budget(0.5, 0.0, 1.0) == 0.0


def test_epoch_budget_rejects_sensitivity_above_declaration() -> None:
    with pytest.raises(ParamValidationError):
        BasicComposition().epoch_budget(1.0, 3.0, 1.0)


def test_zcdp_epoch_budget_scales_quadratically() -> None:
    # ρ * (s / G)^2
    assert ZCDPComposition().epoch_budget(0.8, 0.5, 1.0) == pytest.approx(0.2)


def test_basic_compose_sums_losses() -> None:
    result = BasicComposition().compose([1.0, 2.5, 0.0])
    assert result.loss == pytest.approx(3.5)
    assert result.unit is LossUnit.EPSILON
    assert (result.epsilon, result.delta) == (pytest.approx(3.5), 0.0)
    assert result.to_dict()["detail"] == {"rule": "basic", "epochs": 3}


def test_zcdp_compose_converts_once() -> None:
    # 总 ρ 在报告时一次性换算为 (ε, δ)
    rule = ZCDPComposition(delta=1e-6)
    result = rule.compose([0.1, 0.2])
    assert result.loss == pytest.approx(0.3)
    assert result.delta == 1e-6
    assert result.epsilon == pytest.approx(zcdp_to_cdp(0.3, 1e-6))
    assert result.epsilon == pytest.approx(0.3 + 2 * math.sqrt(0.3 * math.log(1e6)))


def test_zcdp_rejects_invalid_delta() -> None:
    with pytest.raises(ConfigurationError):
        ZCDPComposition(delta=0.0)


def test_compose_rejects_negative_losses() -> None:
    with pytest.raises(ParamValidationError):
        BasicComposition().compose([1.0, -0.5])


def test_get_composition_rule_resolves_identifiers() -> None:
    assert isinstance(get_composition_rule("Basic"), BasicComposition)
    zcdp = get_composition_rule("zcdp", delta=1e-5)
    assert isinstance(zcdp, ZCDPComposition) and zcdp.delta == 1e-5
    assert get_composition_rule(zcdp) is zcdp
    assert registered_rules_snapshot() == {"basic": "BasicComposition", "zcdp": "ZCDPComposition"}
    with pytest.raises(ConfigurationError):
        get_composition_rule("renyi")
