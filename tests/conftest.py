"""Shared pytest configuration and path setup for test modules."""

import sys
from dataclasses import fields
from pathlib import Path

import pytest

# Ensure repo root and src/ are on sys.path for all tests
_ROOT = Path(__file__).resolve().parents[1]
_SRC = _ROOT / "src"
for p in (str(_ROOT), str(_SRC)):
    if p not in sys.path:
        sys.path.insert(0, p)

from pdskit.core.utils.config import get_config  # noqa: E402


@pytest.fixture(autouse=True)
def _restore_runtime_config():
    # 每个测试结束后恢复全局运行时配置，避免用例之间互相影响
    cfg = get_config()
    saved = {f.name: getattr(cfg, f.name) for f in fields(cfg)}
    saved["extra"] = dict(saved["extra"])
    yield
    cfg.update(**saved)
