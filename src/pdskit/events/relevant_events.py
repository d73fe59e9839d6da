"""Relevant events of a request, grouped per epoch."""
# 说明：按时段分组的相关事件集合，是查询评估器的中间结果。
# 职责：
# - from_sequence / from_event_storage：从惰性序列一次性物化分组
# - for_epoch / epochs_with_events / drop_epoch / num_events：按时段读取与裁剪

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .event import Event
from .event_storage import EventSelector, EventStorage, RelevantEventSequence


class RelevantEvents:
    def __init__(self, epochs: Sequence[int], grouped: Optional[Dict[int, List[Event]]] = None):
        self.epochs: Tuple[int, ...] = tuple(epochs)
        self._events: Dict[int, List[Event]] = {epoch: [] for epoch in self.epochs}
        for epoch, events in (grouped or {}).items():
            self._events.setdefault(epoch, []).extend(events)

    @classmethod
    def from_sequence(cls, sequence: RelevantEventSequence) -> "RelevantEvents":
        return cls(sequence.epochs, sequence.by_epoch())

    @classmethod
    def from_event_storage(
        cls,
        storage: EventStorage,
        epochs: Iterable[int],
        selector: Optional[EventSelector] = None,
        scopes: Optional[Iterable[str]] = None,
    ) -> "RelevantEvents":
        return cls.from_sequence(storage.relevant(epochs, selector, scopes))

    def for_epoch(self, epoch: int) -> List[Event]:
        return list(self._events.get(epoch, ()))

    def epochs_with_events(self) -> List[int]:
        return [epoch for epoch in self.epochs if self._events.get(epoch)]

    def drop_epoch(self, epoch: int) -> None:
        """Forget the events of ``epoch`` (they no longer contribute)."""
        if epoch in self._events:
            self._events[epoch] = []

    @property
    def num_events(self) -> int:
        return sum(len(events) for events in self._events.values())

    def partition(self) -> Dict[int, Tuple[Event, ...]]:
        return {epoch: tuple(self._events.get(epoch, ())) for epoch in self.epochs}

    def __repr__(self) -> str:
        counts = {epoch: len(self._events.get(epoch, ())) for epoch in self.epochs}
        return f"<RelevantEvents {counts}>"
