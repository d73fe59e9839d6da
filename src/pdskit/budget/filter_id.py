"""
Filter identifiers and static capacities.

Individual filters are keyed by ``(querier scope, epoch)``. The cross-site
filter of an epoch lives in the very same key space under the reserved
``GLOBAL_SCOPE`` scope, so every store sees it as an ordinary key.
"""
# 说明：过滤器键与静态容量配置。
# 职责：
# - FilterId：(scope, epoch) 命名元组，与普通二元组相等，便于调用方直接比较
# - GLOBAL_SCOPE：跨站点全局过滤器使用的保留 scope，与个体过滤器共用同一键空间
# - sort_key：多键事务使用的固定规范顺序，避免并发下的死锁
# - StaticCapacities：按过滤器种类（个体 / 全局）给出初始容量

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Tuple

from pdskit.core.exceptions import ConfigurationError
from pdskit.core.utils.param_validation import ensure_non_negative_number

GLOBAL_SCOPE = "__global__"


class FilterId(NamedTuple):
    scope: str
    epoch: int

    @classmethod
    def individual(cls, scope: str, epoch: int) -> "FilterId":
        return cls(str(scope), int(epoch))

    @classmethod
    def global_for(cls, epoch: int) -> "FilterId":
        return cls(GLOBAL_SCOPE, int(epoch))

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE

    @property
    def sort_key(self) -> Tuple[int, bool, str]:
        # 规范顺序：按 epoch 升序，同一 epoch 内个体过滤器在前、全局过滤器在后
        return (self.epoch, self.is_global, self.scope)

    def to_dict(self) -> Dict[str, Any]:
        return {"scope": self.scope, "epoch": self.epoch}

    @classmethod
    def from_obj(cls, data: Any) -> "FilterId":
        # 兼容字典形式与 [scope, epoch] 列表形式（JSON 往返后元组会变为列表）
        if isinstance(data, dict):
            return cls(str(data["scope"]), int(data["epoch"]))
        scope, epoch = data
        return cls(str(scope), int(epoch))

    def __repr__(self) -> str:
        return f"FilterId({self.scope!r}, {self.epoch})"


@dataclass(frozen=True)
class StaticCapacities:
    """Initial capacity of individual and global filters."""

    per_querier: float
    global_: float = math.inf

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "per_querier",
            ensure_non_negative_number(
                self.per_querier, label="per_querier capacity", allow_infinite=True, error=ConfigurationError
            ),
        )
        object.__setattr__(
            self,
            "global_",
            ensure_non_negative_number(
                self.global_, label="global capacity", allow_infinite=True, error=ConfigurationError
            ),
        )

    def capacity(self, filter_id: FilterId) -> float:
        return self.global_ if filter_id.is_global else self.per_querier

    def to_dict(self) -> Dict[str, float]:
        return {"per_querier": self.per_querier, "global": self.global_}
