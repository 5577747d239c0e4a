"""
Frame Buffer - Fixed-size ring buffer of the most recent frames.

TTC estimation works on two consecutive frames; older frames are dropped.
"""

from collections import deque
from typing import Optional

from collision_ttc.gateway.data_types import Frame


class FrameBuffer:
    """Ring buffer holding the last `capacity` frames."""

    def __init__(self, capacity: int = 2):
        """
        Initialize frame buffer.

        Args:
            capacity: Maximum number of frames to keep (at least 2)
        """
        if capacity < 2:
            raise ValueError(f"FrameBuffer needs capacity >= 2, got {capacity}")
        self.buffer = deque(maxlen=capacity)
        self.capacity = capacity

    def push(self, frame: Frame):
        """Append a frame, evicting the oldest one when full."""
        self.buffer.append(frame)

    @property
    def current(self) -> Optional[Frame]:
        return self.buffer[-1] if self.buffer else None

    @property
    def previous(self) -> Optional[Frame]:
        return self.buffer[-2] if len(self.buffer) >= 2 else None

    def is_ready(self) -> bool:
        """True once a previous/current pair is available."""
        return len(self.buffer) >= 2

    def clear(self):
        self.buffer.clear()

    def __len__(self) -> int:
        return len(self.buffer)
