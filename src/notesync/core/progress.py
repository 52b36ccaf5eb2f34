#!/usr/bin/env python3
"""
Progress reporting for long-running repository operations.

Background work reports ``ProgressEvent`` values to a ``ProgressSink``. The
sink is the only thing shared with the consumer; counters stay inside the
``ThrottledProgress`` owned by the worker for one phase. Delivery is
best-effort: a sink that raises never fails the operation.
"""

import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

STAGE_STARTING = "Starting"
STAGE_RECEIVING = "Receiving objects"
STAGE_ANALYZING = "Analyzing history"
STAGE_APPLYING = "Applying timestamps"
STAGE_COMPLETE = "Complete"

DEFAULT_TOPIC = "clone-progress"


@dataclass(frozen=True)
class ProgressEvent:
    """One progress update: ``received`` of ``total`` units, ``percent`` done."""

    stage: str
    received: int = 0
    total: int = 0
    percent: int = 0

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class ProgressSink(ABC):
    """Receiver of progress events."""

    @abstractmethod
    def report(self, event: ProgressEvent) -> None:
        pass


class NullProgressSink(ProgressSink):
    """Discards every event."""

    def report(self, event: ProgressEvent) -> None:
        pass


class CallbackProgressSink(ProgressSink):
    """Forwards every event to a callable."""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self.callback = callback

    def report(self, event: ProgressEvent) -> None:
        self.callback(event)


class QueueProgressSink(ProgressSink):
    """Puts ``(topic, event)`` pairs on a queue for another thread to consume."""

    def __init__(self, events: Optional[queue.Queue] = None, topic: str = DEFAULT_TOPIC):
        self.queue = events if events is not None else queue.Queue()
        self.topic = topic

    def report(self, event: ProgressEvent) -> None:
        self.queue.put_nowait((self.topic, event))


class BufferedProgressSink(ProgressSink):
    """Records events and remembers the latest one per stage.

    A consumer that subscribes late can ask for ``latest()`` instead of
    depending on having seen every emission. Events are forwarded to
    ``downstream`` when one is given.
    """

    def __init__(self, downstream: Optional[ProgressSink] = None):
        self.downstream = downstream
        self._lock = threading.Lock()
        self._events: List[ProgressEvent] = []
        self._latest: Dict[str, ProgressEvent] = {}
        self._last: Optional[ProgressEvent] = None

    def report(self, event: ProgressEvent) -> None:
        with self._lock:
            self._events.append(event)
            self._latest[event.stage] = event
            self._last = event
        if self.downstream is not None:
            self.downstream.report(event)

    @property
    def events(self) -> List[ProgressEvent]:
        with self._lock:
            return list(self._events)

    def latest(self, stage: Optional[str] = None) -> Optional[ProgressEvent]:
        """Latest event for ``stage``, or the latest event overall."""
        with self._lock:
            if stage is None:
                return self._last
            return self._latest.get(stage)


def emit(sink: ProgressSink, event: ProgressEvent) -> None:
    """Deliver ``event`` to ``sink``; failures are logged, never raised."""
    try:
        sink.report(event)
    except Exception as e:
        logger.warning(f"Dropped progress event '{event.stage}': {e}")


class ThrottledProgress:
    """Throttles the events of one progress phase.

    An event goes out when its percent has advanced by at least ``step``
    since the last emitted event, when it first reaches 100, or when forced.
    Percent is clamped so it never goes backwards within the phase.
    """

    def __init__(self, sink: ProgressSink, step: int):
        if step < 1:
            raise ValueError("Progress step must be at least 1")
        self.sink = sink
        self.step = step
        self.last_percent = 0
        self.last_stage: Optional[str] = None
        self.emitted = 0

    def update(self, stage: str, received: int, total: int, percent: int,
               force: bool = False) -> bool:
        """Offer an update; returns True if an event was emitted."""
        percent = max(self.last_percent, min(int(percent), 100))

        if not force:
            reached_end = percent == 100 and self.last_percent < 100
            if percent - self.last_percent < self.step and not reached_end:
                return False
        elif self.emitted and (stage, percent) == (self.last_stage, self.last_percent):
            return False

        self.last_percent = percent
        self.last_stage = stage
        self.emitted += 1
        emit(self.sink, ProgressEvent(stage, int(received), int(total), percent))
        return True


def scaled_percent(done: int, total: int, span: int = 100, offset: int = 0) -> int:
    """Map ``done`` of ``total`` onto ``offset..offset + span``."""
    if total <= 0:
        return offset
    return offset + min(done, total) * span // total
