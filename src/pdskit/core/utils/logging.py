"""
Lightweight logging helpers with privacy-aware defaults.
"""
# 说明：统一的 logger 获取入口，默认对事件载荷、真实聚合值等敏感字段进行脱敏。
# 职责：
# - PrivacyFilter：根据运行时配置对日志记录中的敏感属性进行掩码
# - configure_logging(...)：初始化 logging 基本配置并挂载隐私过滤器
# - get_logger(...)：按名称获取 logger，必要时懒加载初始化
# 约定：
# - 日志级别优先级：显式参数 level > 环境变量 PDSKIT_LOG_LEVEL > 运行时配置的 log_level
# - 通过 extra={...} 传入的 payload / event / true_value 属性在掩码开启时会被替换

from __future__ import annotations

import logging
import os
from typing import Optional

from .config import get_config

SENSITIVE_RECORD_ATTRS = ("payload", "event", "true_value")

_CONFIGURED = False


class PrivacyFilter(logging.Filter):
    """Filter that masks event payloads and true aggregates if configured."""

    def filter(self, record: logging.LogRecord) -> bool:
        config = get_config()
        if not config.mask_sensitive_fields:
            return True
        for attr in SENSITIVE_RECORD_ATTRS:
            if hasattr(record, attr):
                setattr(record, attr, "***")
        return True


def configure_logging(level: Optional[str] = None) -> None:
    global _CONFIGURED
    log_level = level or os.environ.get("PDSKIT_LOG_LEVEL", get_config().log_level)
    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] %(name)s %(asctime)s | %(message)s",
    )
    root = logging.getLogger()
    # 重复调用时避免叠加多个过滤器
    if not any(isinstance(f, PrivacyFilter) for f in root.filters):
        root.addFilter(PrivacyFilter())
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    # 首次获取 logger 时懒加载日志系统
    logger = logging.getLogger(name)
    if not _CONFIGURED and not logger.handlers:
        configure_logging()
    # 记录器级过滤器：确保经由本库 logger 发出的记录在任何 handler 之前被掩码
    if not any(isinstance(f, PrivacyFilter) for f in logger.filters):
        logger.addFilter(PrivacyFilter())
    return logger
