"""
Registered events and the timestamp-to-epoch mapping.
"""
# 说明：事件记录与时间戳到时段（epoch）的映射。
# 职责：
# - Event：不可变事件 {scope, epoch, payload}，可选 event_id 与 timestamp，支持字典往返
# - EpochClock：floor((timestamp - origin) / epoch_seconds) 的时段划分，由配置给出

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from pdskit.core.utils.param_validation import ParamValidationError, ensure

DEFAULT_EPOCH_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class Event:
    """Immutable record of something registered on the device."""

    scope: str
    epoch: int
    payload: Mapping[str, Any] = field(default_factory=dict, hash=False)
    event_id: Optional[str] = None
    timestamp: Optional[float] = None

    def __post_init__(self) -> None:
        ensure(isinstance(self.scope, str) and bool(self.scope), "event scope must be a non-empty string")
        ensure(
            isinstance(self.epoch, numbers.Integral) and not isinstance(self.epoch, bool),
            "event epoch must be an integer",
        )
        ensure(isinstance(self.payload, Mapping), "event payload must be a mapping")
        object.__setattr__(self, "epoch", int(self.epoch))
        # 冻结载荷，防止注册后被调用方修改
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"scope": self.scope, "epoch": self.epoch, "payload": dict(self.payload)}
        if self.event_id is not None:
            data["event_id"] = self.event_id
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        try:
            return cls(
                scope=data["scope"],
                epoch=data["epoch"],
                payload=data.get("payload", {}),
                event_id=data.get("event_id"),
                timestamp=data.get("timestamp"),
            )
        except KeyError as exc:
            raise ParamValidationError(f"serialized event missing field {exc}") from exc

    def __repr__(self) -> str:
        # 载荷可能包含敏感内容，repr 中不展开
        return f"Event(scope={self.scope!r}, epoch={self.epoch}, event_id={self.event_id!r})"


@dataclass(frozen=True)
class EpochClock:
    """Maps timestamps (seconds) to integer epochs."""

    origin: float = 0.0
    epoch_seconds: float = DEFAULT_EPOCH_SECONDS

    def __post_init__(self) -> None:
        ensure(
            isinstance(self.epoch_seconds, numbers.Real) and math.isfinite(self.epoch_seconds) and self.epoch_seconds > 0,
            "epoch_seconds must be a positive finite number",
        )
        ensure(isinstance(self.origin, numbers.Real) and math.isfinite(self.origin), "origin must be finite")

    def epoch_of(self, timestamp: float) -> int:
        ensure(isinstance(timestamp, numbers.Real) and math.isfinite(timestamp), "timestamp must be finite")
        return int(math.floor((float(timestamp) - self.origin) / self.epoch_seconds))

    def epoch_range(self, start_timestamp: float, end_timestamp: float) -> Iterator[int]:
        """Epochs covering ``[start_timestamp, end_timestamp]`` in increasing order."""
        first = self.epoch_of(start_timestamp)
        last = self.epoch_of(end_timestamp)
        ensure(first <= last, "start_timestamp must not be after end_timestamp")
        return iter(range(first, last + 1))
