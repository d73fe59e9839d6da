"""
Errors surfaced by the accountant to its callers.

Running out of budget is *not* an error: it is reported through a returned
``Denied`` value. The exceptions below cover the failure paths only.
"""
# 说明：记账器对调用方暴露的异常层次。
# 职责：
# - PdsError：所有记账器异常的基类
# - StorageFailure：事件存储或过滤器存储 I/O 失败；请求中止且不修改任何过滤器，不做内部重试
# - InvalidQuery：敏感度/预算声明不合法、时段窗口不合法或组合规则不受支持；在访问存储前拒绝
# - ConfigurationError：机制与组合规则不兼容、容量配置不合法等构造期错误

from __future__ import annotations


class PdsError(Exception):
    """Base exception for the private data service."""


class StorageFailure(PdsError):
    """Raised when the event store or filter store fails to read or write."""


class InvalidQuery(PdsError, ValueError):
    """Raised when a report request is malformed; no storage is touched."""


class ConfigurationError(PdsError, ValueError):
    """Raised when the service is assembled from incompatible parts."""
