"""
Reusable validation helpers.
"""
# 说明：参数校验辅助函数，供预算、事件与查询模块统一做轻量级检查。
# 职责：
# - ParamValidationError：参数校验失败的通用异常
# - ensure：条件断言，失败时抛出指定异常类型
# - ensure_type：类型检查并给出带 label 的错误信息
# - ensure_non_negative_number：预算/容量/敏感度等数值的非负且非 NaN 检查

from __future__ import annotations

import math
import numbers
from typing import Any, Tuple, Type


class ParamValidationError(ValueError):
    """Raised when parameter validation fails."""


def ensure(condition: bool, message: str, *, error: Type[Exception] = ParamValidationError) -> None:
    if not condition:
        raise error(message)


def ensure_type(value: Any, expected: Tuple[type, ...], *, label: str = "value") -> None:
    if not isinstance(value, expected):
        names = ", ".join(t.__name__ for t in expected)
        raise ParamValidationError(f"{label} must be instance of {names}")


def ensure_non_negative_number(
    value: Any,
    *,
    label: str = "value",
    allow_infinite: bool = False,
    error: Type[Exception] = ParamValidationError,
) -> float:
    # bool 是 int 的子类，此处显式排除，避免 True 被当作 1.0 预算
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise error(f"{label} must be a real number")
    numeric = float(value)
    if math.isnan(numeric):
        raise error(f"{label} must not be NaN")
    if math.isinf(numeric) and not allow_infinite:
        raise error(f"{label} must be finite")
    if numeric < 0:
        raise error(f"{label} must be non-negative")
    return numeric
