"""Fixed-loss charge over an epoch window, without a report."""
# 说明：被动隐私损失请求：对窗口内每个时段的个体与全局过滤器扣减固定额度，不产生报告。

from __future__ import annotations

import numbers
from typing import Any, Iterable, Tuple

from pdskit.budget.filter_id import GLOBAL_SCOPE
from pdskit.core.exceptions import InvalidQuery
from pdskit.core.utils.param_validation import ParamValidationError, ensure_non_negative_number


class PassiveLossRequest:
    def __init__(self, querier: str, epochs: Iterable[int], budget: float):
        self.querier = querier
        self.epochs: Tuple[Any, ...] = tuple(epochs)
        self.budget = budget

    def validate(self) -> None:
        if not isinstance(self.querier, str) or not self.querier or self.querier == GLOBAL_SCOPE:
            raise InvalidQuery("querier must be a non-empty, non-reserved string")
        if not self.epochs:
            raise InvalidQuery("epoch window must not be empty")
        for epoch in self.epochs:
            if isinstance(epoch, bool) or not isinstance(epoch, numbers.Integral):
                raise InvalidQuery(f"epoch {epoch!r} is not an integer")
        if len(set(self.epochs)) != len(self.epochs):
            raise InvalidQuery("epoch window must not repeat epochs")
        try:
            self.budget = ensure_non_negative_number(self.budget, label="budget")
        except ParamValidationError as exc:
            raise InvalidQuery(str(exc)) from exc

    def __repr__(self) -> str:
        return f"<PassiveLossRequest querier={self.querier!r} epochs={list(self.epochs)} budget={self.budget}>"
