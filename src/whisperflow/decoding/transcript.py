"""Transcript assembly across windows."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from whisperflow.decoding.stitch import find_overlap
from whisperflow.decoding.windows import Window
from whisperflow.models.events import Segment


@dataclass
class TranscriptState:
    """Accepted tokens of one run and how much of them was already emitted.

    ``accept`` is called once per window, in window order. It returns the
    Segment to emit for that window, or None while text is held back.
    """

    decode: Callable[[Sequence[int]], str]
    duration: float
    stitch: bool = False
    single_segment: bool = False
    max_n_offsets: int = 30
    min_n_overlaps: int = 3
    tokens: list[int] = field(default_factory=list)
    emitted: int = 0
    start_offset: float = 0.0

    def accept(self, window: Window, new_tokens: Sequence[int]) -> Segment | None:
        cut = self._overlap(new_tokens) if self.stitch else None
        if cut is not None:
            prev_cut, curr_cut = cut
            del self.tokens[prev_cut:]
            new_tokens = new_tokens[curr_cut:]
        stitched = len(self.tokens)
        self.tokens.extend(new_tokens)

        if window.is_last:
            return self._flush(len(self.tokens), self.duration, 1.0)
        if self.single_segment:
            return None

        end_offset = self.duration * (window.index + 1) / window.total
        percentage = (window.index + 1) / window.total
        if not self.stitch:
            return self._flush(len(self.tokens), end_offset, percentage)
        if cut is None:
            return None
        return self._flush(stitched, end_offset, percentage)

    def _overlap(self, new_tokens: Sequence[int]) -> tuple[int, int] | None:
        # emitted text is final, only the pending tail can be stitched
        cut = find_overlap(
            self.tokens[self.emitted:],
            new_tokens,
            max_n_offsets=self.max_n_offsets,
            min_n_overlaps=self.min_n_overlaps,
        )
        if cut is None:
            return None
        return self.emitted + cut[0], cut[1]

    def _flush(self, upto: int, end_offset: float, percentage: float) -> Segment:
        text = self.decode(self.tokens[self.emitted:upto]).strip()
        segment = Segment(
            start_offset=self.start_offset,
            end_offset=end_offset,
            percentage=percentage,
            text=text,
        )
        self.emitted = upto
        self.start_offset = end_offset
        return segment
