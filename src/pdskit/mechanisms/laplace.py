"""
Laplace mechanism for pure differential privacy.

Responsibilities:
    * scale the noise as ``sensitivity / epsilon`` for one application
    * account exactly the requested epsilon when the answer is sensitive
    * add Laplace noise to scalars, sequences, and arrays
"""
# 说明：纯 ε-DP 的拉普拉斯机制。
# 主要职责：
# 1) 由敏感度与本次预算计算噪声尺度 scale = sensitivity / epsilon
# 2) 记账：敏感答案按请求的 ε 全额计费，零敏感度计 0
# 3) 对标量、序列、NumPy 数组逐元素加噪

from __future__ import annotations

from typing import Any, Optional, Tuple

from pdskit.core.privacy.base_mechanism import BudgetMechanism, LossUnit
from pdskit.core.utils.random import sample_noise


class LaplaceMechanism(BudgetMechanism):
    """Pure epsilon-DP Laplace mechanism."""

    loss_unit = LossUnit.EPSILON

    def noise_scale(self, sensitivity: float, budget: float) -> float:
        return float(sensitivity) / float(budget)

    def _sample(self, scale: float, size: Optional[Tuple[int, ...]]) -> Any:
        return sample_noise(self._rng, "laplace", size=size, scale=scale)
