"""
Serialization helpers for reports, events and store snapshots.

Provides JSON helpers with optional masking and basic versioned payloads
to ease backwards compatibility.
"""
# 说明：序列化辅助工具，统一 JSON 编解码行为并内置简单的版本封装。
# 职责：
# - mask_sensitive_data：对字典中的敏感字段进行掩码
# - serialize_to_json / deserialize_from_json：带可选掩码与版本包装的 JSON 编解码
# - _prepare：支持 dataclass、实现 to_dict 的对象以及 numpy 标量/数组的统一前处理
# - VersionedPayload：封装 version + payload 结构，便于版本化持久化

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np

SensitiveFields = Sequence[str]

FORMAT_VERSION = "1"


def mask_sensitive_data(payload: Dict[str, Any], sensitive_fields: SensitiveFields, mask: str = "***") -> Dict[str, Any]:
    masked = dict(payload)
    for name in sensitive_fields:
        if name in masked:
            masked[name] = mask
    return masked


def _prepare(obj: Any) -> Any:
    # 优先使用对象自身的 to_dict，保证带标签的联合类型保留类型信息
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    return obj


def serialize_to_json(
    obj: Any,
    *,
    sensitive_fields: Optional[SensitiveFields] = None,
    version: Optional[str] = None,
) -> str:
    payload = _prepare(obj)
    if isinstance(payload, dict) and sensitive_fields:
        payload = mask_sensitive_data(payload, sensitive_fields)
    if version is not None:
        payload = {"version": version, "payload": payload}
    # allow_nan 保持默认：容量可为无穷大，需要以 Infinity 字面量往返
    return json.dumps(payload, default=_prepare, ensure_ascii=False)


def deserialize_from_json(text: str) -> Any:
    return json.loads(text)


@dataclass
class VersionedPayload:
    version: str
    payload: Dict[str, Any]

    def to_json(self) -> str:
        return serialize_to_json({"version": self.version, "payload": self.payload})

    @classmethod
    def from_json(cls, text: str) -> "VersionedPayload":
        data = deserialize_from_json(text)
        if not isinstance(data, dict) or "version" not in data or "payload" not in data:
            raise ValueError("serialized payload missing version or payload fields")
        return cls(version=data["version"], payload=data["payload"])
