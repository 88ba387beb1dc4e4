"""SkyGuard snapshot history — bounded FIFO of world states for pause/rewind.

The buffer is a ``deque(maxlen=capacity)``: pushing onto a full history
evicts the oldest snapshot. A cursor marks the snapshot currently shown;
it sits on the newest entry while live and moves back during a rewind.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from .skyguard_entities import Aircraft, Alert, Explosion, Missile, SystemStatus


@dataclass
class WorldSnapshot:
    """Everything needed to restore the world to one tick."""
    sim_time: float
    aircraft: List[Aircraft]
    missiles: List[Missile]
    alerts: List[Alert]
    explosions: List[Explosion]
    interceptors_ready: int
    status: SystemStatus
    detector_state: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "WorldSnapshot":
        return copy.deepcopy(self)


class SnapshotHistory:
    """Bounded snapshot ring with a rewind cursor."""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._buf: Deque[WorldSnapshot] = deque(maxlen=capacity)
        self._cursor: int = -1

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def at_head(self) -> bool:
        return self._cursor == len(self._buf) - 1

    def push(self, snapshot: WorldSnapshot) -> None:
        """Append a snapshot (stored as a deep copy) and move the cursor to it."""
        self._buf.append(snapshot.copy())
        self._cursor = len(self._buf) - 1

    def rewind(self, steps: int) -> Optional[WorldSnapshot]:
        """Move the cursor back ``steps`` (clamped at the oldest snapshot).

        Returns:
            A deep copy of the snapshot now under the cursor, or None when
            the history is empty.
        """
        if not self._buf:
            return None
        self._cursor = max(0, self._cursor - max(0, int(steps)))
        return self.current()

    def current(self) -> Optional[WorldSnapshot]:
        if not self._buf:
            return None
        return self._buf[self._cursor].copy()

    def truncate_after_cursor(self) -> int:
        """Drop snapshots newer than the cursor. Returns how many were dropped."""
        dropped = 0
        while len(self._buf) - 1 > self._cursor:
            self._buf.pop()
            dropped += 1
        return dropped

    def clear(self) -> None:
        self._buf.clear()
        self._cursor = -1

    def sim_times(self) -> List[float]:
        return [s.sim_time for s in self._buf]
