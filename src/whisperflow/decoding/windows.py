"""Audio windowing: bounded, overlapping sample ranges."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Window:
    """Half-open sample range ``[start, end)`` of the input buffer."""

    index: int
    total: int
    start: int
    end: int

    @property
    def is_last(self) -> bool:
        return self.index == self.total - 1

    def __len__(self) -> int:
        return self.end - self.start


class Windows:
    """Lazy, restartable sequence of windows covering ``n_samples``.

    Consecutive windows advance by ``max(context - overlap, 1)`` samples,
    so with a non-zero overlap each pair shares ``overlap`` trailing samples.
    The final window is clipped to ``n_samples``.
    """

    def __init__(self, n_samples: int, context: int, overlap: int = 0):
        if context <= 0:
            raise ValueError(f"Window context must be positive, got {context}")
        if n_samples < 0 or overlap < 0:
            raise ValueError("Sample count and overlap must be non-negative")
        self.n_samples = n_samples
        self.context = context
        self.overlap = overlap
        self.shift = max(context - overlap, 1)

    def __len__(self) -> int:
        return math.ceil(self.n_samples / self.shift)

    def __getitem__(self, index: int) -> Window:
        total = len(self)
        if index < 0:
            index += total
        if not 0 <= index < total:
            raise IndexError(f"Window {index} out of range ({total} windows)")
        start = index * self.shift
        end = min(start + self.context, self.n_samples)
        return Window(index=index, total=total, start=start, end=end)

    def __iter__(self) -> Iterator[Window]:
        for i in range(len(self)):
            yield self[i]
