"""Overlap stitching between consecutive windows' token sequences."""

from __future__ import annotations

from collections.abc import Sequence


def find_overlap(
    prev_tokens: Sequence[int],
    curr_tokens: Sequence[int],
    *,
    max_n_offsets: int = 30,
    min_n_overlaps: int = 3,
) -> tuple[int, int] | None:
    """Locate where ``curr_tokens`` starts repeating the tail of ``prev_tokens``.

    For each offset ``k`` the suffix ``prev_tokens[len - 1 - k:]`` is compared
    position by position with the start of ``curr_tokens``; the offset with
    the most equal positions wins (first maximum on ties). Returns
    ``(prev_cut, curr_cut)``: keep ``prev_tokens[:prev_cut]`` and continue
    with ``curr_tokens[curr_cut:]``. Returns None when the best match has
    fewer than ``min_n_overlaps`` equal positions.
    """
    n_offsets = min(len(prev_tokens), len(curr_tokens), max_n_offsets)

    best_count = 0
    best_cut = (0, 0)
    for offset in range(n_offsets):
        prev_start = len(prev_tokens) - 1 - offset
        matches = [
            i
            for i, (old, new) in enumerate(zip(prev_tokens[prev_start:], curr_tokens))
            if old == new
        ]
        if len(matches) > best_count:
            best_count = len(matches)
            first = matches[0]
            best_cut = (prev_start + first, first)

    if best_count >= min_n_overlaps:
        return best_cut
    return None
