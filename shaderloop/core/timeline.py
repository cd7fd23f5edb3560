"""
ShaderLoop - Frame Timeline
===========================
Wall-clock driven frame sequencing for the preview loop.

Responsibilities:
- Turn elapsed time into a frame index at a fixed frame rate
- Suppress duplicate frames when polled faster than the frame period
- Wrap bounded ranges and re-anchor the time origin on every wrap

This module does NOT render or sleep; the caller polls it every tick.
"""

import time
from typing import Optional, Protocol

DEFAULT_RATE = 60


class Clock(Protocol):
    """
    Abstract clock interface.

    The timeline only ever reads the current time; the origin is kept by
    the timeline itself.
    """

    def get_time(self) -> float:
        """
        Get current clock time in seconds.

        Returns:
            Monotonic time in seconds (arbitrary epoch)
        """
        ...


class SystemClock:
    """Monotonic system clock backed by time.perf_counter()."""

    def get_time(self) -> float:
        return time.perf_counter()


class Timeline:
    """
    Rate-limited, optionally looping frame index generator.

    The first call to advance() starts the clock and yields frame 0.
    Later calls yield a frame only when the index derived from elapsed
    time differs from the last one yielded; calls that arrive within the
    same frame period yield None and nothing is queued.
    """

    def __init__(
        self,
        fps: int = DEFAULT_RATE,
        frame_range: Optional[int] = None,
        clock: Optional[Clock] = None
    ):
        """
        Initialize timeline.

        Args:
            fps: Frame rate (positive)
            frame_range: Loop length in frames, or None for endless
            clock: Time source (default: SystemClock)
        """
        if fps <= 0:
            raise ValueError(f"Frame rate must be positive, got {fps}")
        if frame_range is not None and frame_range <= 0:
            raise ValueError(f"Frame range must be positive, got {frame_range}")

        self._fps = int(fps)
        self._range = frame_range
        self._clock = clock or SystemClock()
        self._frame = 0
        self._onset: Optional[float] = None

    @property
    def fps(self) -> int:
        return self._fps

    @property
    def range(self) -> Optional[int]:
        """Loop length in frames (None = endless)."""
        return self._range

    @property
    def frame(self) -> int:
        """Last yielded frame index."""
        return self._frame

    @property
    def started(self) -> bool:
        return self._onset is not None

    def time(self) -> float:
        """Current frame expressed in seconds."""
        return self._frame / self._fps

    def advance(self) -> Optional[int]:
        """
        Compute the frame due now.

        Returns:
            New frame index, or None if the due frame was already yielded
        """
        now = self._clock.get_time()

        if self._onset is None:
            self._onset = now
            self._frame = 0
            return 0

        frame = int((now - self._onset) * self._fps)
        if self._range is not None:
            frame %= self._range

        if frame == self._frame:
            return None

        self._frame = frame
        if frame == 0:
            # Re-anchor so float error does not accumulate across loops
            self._onset = now
        return frame

    def __repr__(self) -> str:
        loop = self._range if self._range is not None else "endless"
        return f"Timeline(fps={self._fps}, range={loop}, frame={self._frame})"
