"""Occupancy trace: timestamped held-count samples for diagnostics."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
import json
import time

import numpy as np


@dataclass
class TraceSummary:
    """Aggregate view of a trace."""
    samples: int
    duration_ms: float
    min_held: int
    max_held: int
    mean_held: float


class OccupancyTrace:
    """Append-only sequence of ``(timestamp_ms, held_count)`` samples.

    Recorded at every state-changing pool operation. Not used for
    protocol decisions.
    """

    def __init__(self, now_ms: Optional[Callable[[], float]] = None):
        self._now_ms = now_ms or (lambda: time.time() * 1000)
        self._samples: List[Tuple[float, int]] = []

    def record(self, held: int) -> None:
        self._samples.append((self._now_ms(), held))

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)

    @property
    def samples(self) -> List[Tuple[float, int]]:
        return list(self._samples)

    def as_array(self) -> np.ndarray:
        """Return an ``(n, 2)`` float array of timestamp and held count."""
        if not self._samples:
            return np.empty((0, 2), dtype=float)
        return np.asarray(self._samples, dtype=float)

    def summary(self) -> TraceSummary:
        data = self.as_array()
        if len(data) == 0:
            return TraceSummary(samples=0, duration_ms=0.0, min_held=0, max_held=0, mean_held=0.0)
        held = data[:, 1]
        return TraceSummary(
            samples=len(data),
            duration_ms=float(data[-1, 0] - data[0, 0]),
            min_held=int(held.min()),
            max_held=int(held.max()),
            mean_held=float(held.mean()),
        )

    def to_dict(self) -> Dict[str, object]:
        return {"samples": [[t, n] for t, n in self._samples]}

    def to_json(self) -> str:
        return json.dumps([[t, n] for t, n in self._samples])
