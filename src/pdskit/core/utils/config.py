"""
Runtime configuration utilities.

Holds the process-wide knobs of the accountant (logging level, masking of
event payloads, RNG seed, numeric slack used when comparing budgets) and
lets them be overridden from the environment.
"""
# 说明：运行时配置管理，集中保存记账器的进程级可调选项，并支持环境变量覆写与运行期更新。
# 职责：
# - RuntimeConfig：日志等级、事件载荷掩码、随机种子、预算比较容差等配置项
# - load_from_env(...)：按统一前缀 PDSKIT_ 从环境变量读取并转换配置值
# - get_config() / configure(...)：访问与更新全局单例
# 约定：
# - 布尔类环境变量使用 {"1", "true", "yes"}（大小写不敏感）视为 True
# - 未知配置键在 update(...) 中会触发 AttributeError

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

_BOOL_TRUE = {"1", "true", "yes"}


def _parse_bool(text: str) -> bool:
    return text.strip().lower() in _BOOL_TRUE


def _parse_optional_int(text: str) -> Optional[int]:
    text = text.strip()
    if not text or text.lower() == "none":
        return None
    return int(text)


# 环境变量后缀 -> (属性名, 转换函数)
_ENV_FIELDS: Dict[str, tuple] = {
    "LOG_LEVEL": ("log_level", lambda text: text.strip().upper()),
    "MASK_SENSITIVE_FIELDS": ("mask_sensitive_fields", _parse_bool),
    "RNG_SEED": ("rng_seed", _parse_optional_int),
    "BUDGET_SLACK": ("budget_slack", float),
}


@dataclass
class RuntimeConfig:
    log_level: str = field(default_factory=lambda: os.environ.get("PDSKIT_LOG_LEVEL", "INFO"))
    mask_sensitive_fields: bool = True
    rng_seed: Optional[int] = None
    budget_slack: float = 1e-12
    extra: Dict[str, Any] = field(default_factory=dict)

    def update(self, **kwargs: Any) -> None:
        # 按关键字参数更新当前配置实例，未知字段名将显式报错
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"unknown config option '{key}'")
            setattr(self, key, value)

    def load_from_env(self, prefix: str = "PDSKIT_") -> None:
        # 从带前缀的环境变量中加载配置；未设置的变量保持当前值
        for suffix, (attr, convert) in _ENV_FIELDS.items():
            env_key = f"{prefix}{suffix}"
            if env_key not in os.environ:
                continue
            converter: Callable[[str], Any] = convert
            setattr(self, attr, converter(os.environ[env_key]))


# 全局配置单例
_GLOBAL_CONFIG = RuntimeConfig()


def get_config() -> RuntimeConfig:
    return _GLOBAL_CONFIG


def configure(**kwargs: Any) -> RuntimeConfig:
    # 以关键字参数更新全局配置，并返回更新后的实例
    _GLOBAL_CONFIG.update(**kwargs)
    return _GLOBAL_CONFIG
