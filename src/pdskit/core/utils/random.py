"""
Random number generation helpers.

Responsibilities
  - Centralize RNG creation and seeding.
  - Offer noise sampling helpers used by mechanisms and tests.

Limitations
  - Relies on numpy Generator behavior for reproducibility.
  - Distribution support is limited to laplace and gaussian noise.
"""
# 说明：随机数生成与噪声采样辅助工具，统一管理机制使用的 numpy Generator。
# 职责：
# - create_rng / reseed_rng：封装 Generator 的创建与就地重置
# - sample_noise：按分布名称分派到拉普拉斯 / 高斯噪声采样

from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from .config import get_config


def create_rng(seed: Optional[Any] = None) -> np.random.Generator:
    """Create a numpy Generator from a seed, SeedSequence, or existing generator."""
    if isinstance(seed, np.random.Generator):
        return seed
    if seed is None:
        # 未显式给出种子时回落到运行时配置中的全局种子（可能仍为 None）
        seed = get_config().rng_seed
    return np.random.default_rng(seed)


def reseed_rng(rng: np.random.Generator, seed: Optional[int]) -> np.random.Generator:
    """Replace RNG state with a new seed; returns the generator for chaining."""
    rng.bit_generator.state = np.random.default_rng(seed).bit_generator.state
    return rng


def sample_noise(
    rng: np.random.Generator,
    distribution: str,
    size: Optional[Sequence[int]] = None,
    **kwargs: Any,
) -> np.ndarray:
    """Sample zero-centred noise for a given distribution with named parameters."""
    distribution = distribution.lower()
    if distribution == "laplace":
        return rng.laplace(kwargs.get("loc", 0.0), kwargs["scale"], size=size)
    if distribution == "gaussian" or distribution == "normal":
        return rng.normal(kwargs.get("loc", 0.0), kwargs["scale"], size=size)
    raise ValueError(f"unsupported distribution '{distribution}'")
