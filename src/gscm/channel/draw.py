"""
Diagnostic draw requests.

The engine never talks to a renderer directly. It emits DrawRequest items into
a bounded queue that an external renderer drains on its own thread. When the
queue is full new requests are dropped; drawing is diagnostic only and must
never stall the channel computation.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# Color tags per path kind
COLOR_LOS = "los"
COLOR_GROUND = "ground"
COLOR_ORDER1 = "order1"
COLOR_ORDER2 = "order2"


@dataclass(frozen=True)
class DrawRequest:
    """A single line segment to draw."""

    start: tuple[float, float, float]
    end: tuple[float, float, float]
    color_tag: str


class DrawQueue:
    """Bounded, non-blocking queue of draw requests."""

    def __init__(self, maxsize: int = 4096):
        self._queue: queue.Queue[DrawRequest] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def emit(self, start, end, color_tag: str) -> bool:
        """
        Queue a segment for drawing.

        Returns:
            True if queued, False if dropped because the queue is full
        """
        request = DrawRequest(
            start=tuple(float(c) for c in start),
            end=tuple(float(c) for c in end),
            color_tag=color_tag,
        )
        try:
            self._queue.put_nowait(request)
        except queue.Full:
            self.dropped += 1
            logger.debug("Draw queue full, dropped %s segment", color_tag)
            return False
        return True

    def emit_polyline(self, points, color_tag: str) -> None:
        """Queue consecutive segments of a path."""
        for start, end in zip(points[:-1], points[1:]):
            self.emit(start, end, color_tag)

    def drain(self) -> list[DrawRequest]:
        """Remove and return all pending requests."""
        items: list[DrawRequest] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def drain_to(self, draw_path: Callable[[tuple, tuple, str], None]) -> int:
        """Forward all pending requests to ``draw_path(start, end, color_tag)``."""
        items = self.drain()
        for item in items:
            draw_path(item.start, item.end, item.color_tag)
        return len(items)

    def __len__(self) -> int:
        return self._queue.qsize()
