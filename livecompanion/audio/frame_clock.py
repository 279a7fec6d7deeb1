"""Presentation-frame scheduler running on the asyncio event loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class FrameScheduler:
    """Schedules one-shot callbacks on the next presentation frame.

    Each request arms a single loop timer one frame interval ahead, so a
    callback that re-arms itself after it completes never overlaps with its
    previous invocation.
    """

    def __init__(self, frame_rate: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Initialize frame scheduler.

        Args:
            frame_rate: Frames per second to emulate
            loop: Event loop to schedule on. If None, the running loop is used
                  at request time.
        """
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")
        self.frame_rate = frame_rate
        self.frame_interval = 1.0 / frame_rate
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        """Current loop time in seconds."""
        return self._get_loop().time()

    def request_frame(self, callback: Callable[[float], None]) -> asyncio.TimerHandle:
        """Run callback(frame_time) on the next frame.

        Returns:
            Handle accepted by cancel_frame()
        """
        loop = self._get_loop()
        return loop.call_later(self.frame_interval, self._fire, loop, callback)

    @staticmethod
    def _fire(loop: asyncio.AbstractEventLoop, callback: Callable[[float], None]) -> None:
        callback(loop.time())

    @staticmethod
    def cancel_frame(handle: Optional[asyncio.TimerHandle]) -> None:
        """Cancel a pending frame callback. Safe to call with None or a fired handle."""
        if handle is not None:
            handle.cancel()
