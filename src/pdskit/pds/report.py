"""
Report outcomes: a noised answer or an explicit denial.

``Denied`` is a successful outcome, never an exception. Both shapes encode
to a tagged dictionary (``{"type": "reported" | "denied", ...}``) and to a
versioned JSON document; decoding restores an equal object.
"""
# 说明：报告结果类型：加噪答案 Reported 或显式拒绝 Denied。
# 职责：
# - Reported：加噪后的向量值、被扣费的时段、组合后的记账损失
# - Denied：所有预算不足的过滤器（规范顺序）与原因
# - report_to_dict / report_from_dict / report_to_json / report_from_json：带类型标签的无损往返

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

import numpy as np

from pdskit.budget.filter_id import FilterId
from pdskit.core.utils.param_validation import ParamValidationError
from pdskit.core.utils.serialization import FORMAT_VERSION, VersionedPayload


@dataclass(frozen=True)
class Reported:
    value: Tuple[float, ...]
    epochs: Tuple[int, ...] = ()
    loss: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", tuple(float(v) for v in np.ravel(np.asarray(self.value, dtype=float))))
        object.__setattr__(self, "epochs", tuple(int(e) for e in self.epochs))
        object.__setattr__(self, "loss", float(self.loss))

    @property
    def denied(self) -> bool:
        return False

    def as_array(self) -> np.ndarray:
        return np.asarray(self.value, dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "reported", "value": list(self.value), "epochs": list(self.epochs), "loss": self.loss}

    def to_json(self) -> str:
        return report_to_json(self)


@dataclass(frozen=True)
class Denied:
    depleted_filters: Tuple[FilterId, ...]
    reason: str = "insufficient privacy budget"

    def __post_init__(self) -> None:
        object.__setattr__(self, "depleted_filters", tuple(FilterId.from_obj(f) for f in self.depleted_filters))

    @property
    def denied(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "denied",
            "depleted_filters": [[fid.scope, fid.epoch] for fid in self.depleted_filters],
            "reason": self.reason,
        }

    def to_json(self) -> str:
        return report_to_json(self)


Report = Union[Reported, Denied]


def denied_for(depleted: Iterable[FilterId]) -> Denied:
    depleted = tuple(depleted)
    return Denied(depleted_filters=depleted, reason=f"insufficient budget in {len(depleted)} filter(s)")


def report_to_dict(report: Report) -> Dict[str, Any]:
    return report.to_dict()


def report_from_dict(data: Mapping[str, Any]) -> Report:
    tag = data.get("type")
    try:
        if tag == "reported":
            return Reported(
                value=tuple(data["value"]),
                epochs=tuple(data.get("epochs", ())),
                loss=data.get("loss", 0.0),
            )
        if tag == "denied":
            return Denied(
                depleted_filters=tuple(FilterId.from_obj(f) for f in data["depleted_filters"]),
                reason=data.get("reason", ""),
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise ParamValidationError(f"malformed {tag} report: {exc}") from exc
    raise ParamValidationError(f"unknown report type '{tag}'")


def report_to_json(report: Report) -> str:
    payload = report.to_dict()
    if payload["type"] == "reported" and not all(math.isfinite(v) for v in payload["value"]):
        raise ParamValidationError("report values must be finite to be serialized")
    return VersionedPayload(version=FORMAT_VERSION, payload=payload).to_json()


def report_from_json(text: str) -> Report:
    envelope = VersionedPayload.from_json(text)
    if envelope.version != FORMAT_VERSION:
        raise ParamValidationError(f"unsupported report format version '{envelope.version}'")
    return report_from_dict(envelope.payload)
