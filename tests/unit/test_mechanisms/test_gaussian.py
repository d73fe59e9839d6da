"""
Unit tests for the Gaussian mechanism.
"""
# 说明：GaussianMechanism 的单元测试。
# 覆盖：sigma = sensitivity / sqrt(2ρ)、经验标准差、ρ 记账与序列化快照。

import math

import numpy as np
import pytest

from pdskit.core.privacy.base_mechanism import LossUnit
from pdskit.mechanisms import GaussianMechanism


def test_sigma_from_rho() -> None:
    mech = GaussianMechanism(rng=0)
    assert mech.loss_unit is LossUnit.RHO
    assert mech.noise_scale(1.0, 0.5) == pytest.approx(1.0)
    assert mech.noise_scale(2.0, 2.0) == pytest.approx(1.0)
    assert mech.noise_scale(1.0, 0.125) == pytest.approx(math.sqrt(4.0))


def test_empirical_standard_deviation() -> None:
    mech = GaussianMechanism(rng=11)
    noised = mech.apply(np.zeros(20000), sensitivity=1.0, budget=0.5)
    assert np.std(noised) == pytest.approx(1.0, rel=0.05)


def test_loss_is_requested_rho() -> None:
    mech = GaussianMechanism(rng=0)
    assert mech.loss_for(0.5, 0.3) == pytest.approx(0.3)
    assert mech.loss_for(0.0, 0.3) == 0.0


def test_serialize_snapshot() -> None:
    data = GaussianMechanism(rng=0, name="g").serialize()
    assert data["mechanism"] == "gaussian"
    assert data["loss_unit"] == "rho"
    assert data["name"] == "g"
