"""
Event storage contract and the in-memory reference backend.

Responsibilities:
    * durable insert of registered events (read-your-writes)
    * deterministic per-epoch reads: insertion order within an epoch
    * lazy, finite and restartable sequences of relevant events
    * translate backend I/O errors into ``StorageFailure``
"""
# 说明：事件存储抽象与内存参考实现。
# 职责：
# - EventStorage：基于后端原语 _append / _epoch_events 实现 add_event / register / events_for_epoch / relevant
# - RelevantEventSequence：惰性、有限、可重复迭代的匹配事件序列；同一未变更存储上两次迭代结果一致
# - InMemoryEventStorage：epoch -> 事件列表 的字典后端，使用可重入锁
# 约定：
# - 注册后的事件立即对后续查询可见
# - 后端 OSError 统一包装为 StorageFailure

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from pdskit.core.exceptions import StorageFailure
from pdskit.core.utils.logging import get_logger
from pdskit.core.utils.param_validation import ensure_type

from .event import Event

_LOGGER = get_logger("pdskit.events.event_storage")

EventSelector = Callable[[Event], bool]


class RelevantEventSequence:
    """Restartable view over the events of several epochs matching a selector."""

    def __init__(
        self,
        storage: "EventStorage",
        epochs: Sequence[int],
        selector: Optional[EventSelector] = None,
        scopes: Optional[Iterable[str]] = None,
    ):
        self._storage = storage
        self.epochs: Tuple[int, ...] = tuple(int(e) for e in epochs)
        self._selector = selector
        self._scopes = None if scopes is None else frozenset(scopes)

    def _matches(self, event: Event) -> bool:
        if self._scopes is not None and event.scope not in self._scopes:
            return False
        return self._selector is None or bool(self._selector(event))

    def __iter__(self) -> Iterator[Event]:
        # 每次迭代重新读取存储，保证可重启
        for epoch in self.epochs:
            for event in self._storage.events_for_epoch(epoch):
                if self._matches(event):
                    yield event

    def by_epoch(self) -> Dict[int, List[Event]]:
        grouped: Dict[int, List[Event]] = {epoch: [] for epoch in self.epochs}
        for event in self:
            grouped[event.epoch].append(event)
        return grouped

    def count(self) -> int:
        return sum(1 for _ in self)


class EventStorage(ABC):
    """Registered events, queryable by epoch."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def _append(self, event: Event) -> None:
        """Durably store ``event``."""

    @abstractmethod
    def _epoch_events(self, epoch: int) -> Sequence[Event]:
        """Events of ``epoch`` in insertion order."""

    @contextmanager
    def _storage_io(self, action: str) -> Iterator[None]:
        try:
            yield
        except StorageFailure:
            raise
        except OSError as exc:
            raise StorageFailure(f"event store failed to {action}: {exc}") from exc

    def add_event(self, event: Event) -> None:
        ensure_type(event, (Event,), label="event")
        with self._lock, self._storage_io("register event"):
            self._append(event)
        _LOGGER.debug("stored event for scope %s in epoch %d", event.scope, event.epoch, extra={"event": event})

    register = add_event

    def events_for_epoch(self, epoch: int) -> List[Event]:
        with self._lock, self._storage_io("read events"):
            return list(self._epoch_events(int(epoch)))

    def relevant(
        self,
        epochs: Iterable[int],
        selector: Optional[EventSelector] = None,
        scopes: Optional[Iterable[str]] = None,
    ) -> RelevantEventSequence:
        return RelevantEventSequence(self, list(epochs), selector, scopes)


class InMemoryEventStorage(EventStorage):
    """Reference backend keeping events in per-epoch lists."""

    def __init__(self) -> None:
        super().__init__()
        self._epochs: Dict[int, List[Event]] = {}

    def _append(self, event: Event) -> None:
        self._epochs.setdefault(event.epoch, []).append(event)

    def _epoch_events(self, epoch: int) -> Sequence[Event]:
        return self._epochs.get(epoch, ())

    def epochs(self) -> List[int]:
        with self._lock:
            return sorted(self._epochs)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._epochs.values())
