"""
Status and progress notifications.

The engine never talks to a shell directly. It calls `status()` and
`progress()` on an emitter; what happens next (print, queue, GUI signal) is
up to the emitter. Delivery is fire-and-forget: nothing is acknowledged.
"""

from __future__ import annotations

from dataclasses import dataclass
import queue
from typing import Callable, List, Optional, Union


STATUS = "status"
PROGRESS = "progress"


@dataclass(frozen=True)
class StitchEvent:
    kind: str
    value: Union[str, float]


class EventEmitter:
    """Base emitter; subclasses decide where events go."""

    def emit(self, event: StitchEvent) -> None:
        raise NotImplementedError

    def status(self, message: str) -> None:
        self.emit(StitchEvent(STATUS, message))

    def progress(self, value: float) -> None:
        self.emit(StitchEvent(PROGRESS, max(0.0, min(100.0, float(value)))))


class NullEmitter(EventEmitter):
    def emit(self, event: StitchEvent) -> None:
        return None


class CallbackEmitter(EventEmitter):
    """Deliver events synchronously to plain callables."""

    def __init__(
        self,
        on_status: Optional[Callable[[str], None]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.on_status = on_status
        self.on_progress = on_progress

    def emit(self, event: StitchEvent) -> None:
        if event.kind == STATUS and self.on_status is not None:
            self.on_status(str(event.value))
        elif event.kind == PROGRESS and self.on_progress is not None:
            self.on_progress(float(event.value))


class ListEmitter(EventEmitter):
    """Keep every event in memory; handy for tests and summaries."""

    def __init__(self) -> None:
        self.events: List[StitchEvent] = []

    def emit(self, event: StitchEvent) -> None:
        self.events.append(event)

    @property
    def statuses(self) -> List[str]:
        return [str(event.value) for event in self.events if event.kind == STATUS]

    @property
    def progress_values(self) -> List[float]:
        return [float(event.value) for event in self.events if event.kind == PROGRESS]


class QueueEmitter(EventEmitter):
    """Hand events across threads; the consumer drains the queue."""

    def __init__(self, target: "queue.Queue[Optional[StitchEvent]]") -> None:
        self.target = target

    def emit(self, event: StitchEvent) -> None:
        self.target.put_nowait(event)
