"""
Gaussian mechanism accounted in zero-concentrated DP.

Responsibilities:
    * calibrate sigma from the L2 sensitivity and a ρ budget
    * add Gaussian noise to scalars and arrays
"""
# 说明：以 zCDP（ρ）计量的高斯机制。
# 职责：
# - sigma = sensitivity / sqrt(2ρ)，对应恰好 ρ-zCDP
# - 对标量与数组逐元素加入独立同分布高斯噪声

from __future__ import annotations

import math
from typing import Any, Optional, Tuple

from pdskit.core.privacy.base_mechanism import BudgetMechanism, LossUnit
from pdskit.core.utils.random import sample_noise


class GaussianMechanism(BudgetMechanism):
    """Gaussian mechanism whose budget is a zCDP ρ."""

    loss_unit = LossUnit.RHO

    def noise_scale(self, sensitivity: float, budget: float) -> float:
        return float(sensitivity) / math.sqrt(2.0 * float(budget))

    def _sample(self, scale: float, size: Optional[Tuple[int, ...]]) -> Any:
        return sample_noise(self._rng, "gaussian", size=size, scale=scale)
