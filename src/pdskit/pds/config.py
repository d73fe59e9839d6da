"""
Service configuration.

Collects what the accountant needs to be assembled: filter capacities, the
epoch function, the composition rule identifier and the mechanism (which
fixes the loss unit). Values can come from keyword arguments, a mapping or
``PDSKIT_PDS_*`` environment variables.
"""
# 说明：服务级配置，描述组装记账器所需的全部参数。
# 职责：
# - PdsConfig：个体 / 全局容量、组合规则、机制、时段长度与起点、zCDP 换算 δ、过滤器种类、随机种子
# - from_mapping / to_dict：与普通字典互转，未知键报错
# - from_env：从 PDSKIT_PDS_ 前缀的环境变量读取
# - 构造时校验：容量非负、机制与组合规则计量单位一致，失败抛出 ConfigurationError

from __future__ import annotations

import math
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from pdskit.budget.filter_id import StaticCapacities
from pdskit.budget.filters import FILTER_KINDS
from pdskit.core.exceptions import ConfigurationError
from pdskit.core.privacy.composition import COMPOSITION_REGISTRY, CompositionRule, get_composition_rule
from pdskit.core.utils.param_validation import ParamValidationError
from pdskit.events.event import DEFAULT_EPOCH_SECONDS, EpochClock
from pdskit.mechanisms.mechanism_registry import get_mechanism_class


@dataclass
class PdsConfig:
    per_querier_capacity: float = 1.0
    global_capacity: float = math.inf
    composition: str = "basic"
    mechanism: str = "laplace"
    epoch_seconds: float = DEFAULT_EPOCH_SECONDS
    epoch_origin: float = 0.0
    report_delta: float = 1e-9
    filter_kind: str = "pure_dp"
    rng_seed: Optional[int] = None

    def __post_init__(self) -> None:
        self.composition = str(self.composition).strip().lower()
        self.mechanism = str(self.mechanism).strip().lower()
        self.filter_kind = str(self.filter_kind).strip().lower()
        if self.composition not in COMPOSITION_REGISTRY:
            raise ConfigurationError(f"unknown composition rule '{self.composition}'")
        if self.filter_kind not in FILTER_KINDS:
            raise ConfigurationError(f"unknown filter kind '{self.filter_kind}'")
        try:
            mech_cls = get_mechanism_class(self.mechanism)
            self.epoch_clock()
        except ParamValidationError as exc:
            raise ConfigurationError(str(exc)) from exc
        rule = self.composition_rule()
        if mech_cls.loss_unit is not rule.loss_unit:
            raise ConfigurationError(
                f"mechanism '{self.mechanism}' ({mech_cls.loss_unit.value}) cannot be used with "
                f"composition rule '{self.composition}' ({rule.loss_unit.value})"
            )
        self.capacities()

    # ------------------------------------------------------------------ builders
    def capacities(self) -> StaticCapacities:
        return StaticCapacities(per_querier=self.per_querier_capacity, global_=self.global_capacity)

    def epoch_clock(self) -> EpochClock:
        return EpochClock(origin=self.epoch_origin, epoch_seconds=self.epoch_seconds)

    def composition_rule(self) -> CompositionRule:
        if self.composition == "zcdp":
            return get_composition_rule(self.composition, delta=self.report_delta)
        return get_composition_rule(self.composition)

    def filter_factory(self):
        return FILTER_KINDS[self.filter_kind]

    # ------------------------------------------------------------------ conversions
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PdsConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown configuration keys: {sorted(unknown)}")
        return cls(**dict(data))

    @classmethod
    def from_env(cls, prefix: str = "PDSKIT_PDS_", **overrides: Any) -> "PdsConfig":
        values: Dict[str, Any] = {}
        for f in fields(cls):
            env_key = f"{prefix}{f.name.upper()}"
            if env_key not in os.environ:
                continue
            raw = os.environ[env_key]
            try:
                if f.name in ("composition", "mechanism", "filter_kind"):
                    values[f.name] = raw
                elif f.name == "rng_seed":
                    values[f.name] = None if raw.strip().lower() in ("", "none") else int(raw)
                else:
                    values[f.name] = float(raw)
            except ValueError as exc:
                raise ConfigurationError(f"invalid value for {env_key}: {raw!r}") from exc
        values.update(overrides)
        return cls.from_mapping(values)
