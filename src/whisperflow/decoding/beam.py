"""Beam search over next-token log-probabilities.

The decoder knows nothing about audio or tensors: it only calls a scoring
oracle with a batch of token sequences and receives one log-probability
vector over the vocabulary per sequence.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from whisperflow.errors import OracleError


class ScoringOracle(Protocol):
    """Next-token log-probabilities for a batch of token sequences.

    Returns one vector over the vocabulary per input sequence, in order.
    """

    def __call__(self, batch: Sequence[Sequence[int]]) -> Sequence[np.ndarray]: ...


@dataclass(frozen=True)
class BeamNode:
    """A candidate token sequence and its cumulative log-probability."""

    tokens: tuple[int, ...]
    log_prob: float = 0.0

    def extend(self, token: int, log_prob: float) -> BeamNode:
        return BeamNode(tokens=self.tokens + (token,), log_prob=log_prob)


def beam_search(
    initial_tokens: Sequence[int],
    oracle: ScoringOracle,
    *,
    beam_width: int = 5,
    max_depth: int = 30,
    end_token: int,
    special_mask: np.ndarray | None = None,
    special_mask_len: int = 5,
) -> list[int]:
    """Return the most likely token sequence, prompt included.

    Each step scores every unfinished node in a single oracle call, adds the
    step log-probabilities to the node's score and keeps the ``beam_width``
    best continuations across all nodes. Finished nodes (last token is
    ``end_token``) are carried over unchanged and keep competing on score.
    The search stops as soon as the best node is finished, or after
    ``max_depth`` steps, in which case the best unfinished sequence is
    returned.

    ``special_mask`` (0 or -inf per vocabulary entry) is added to the step
    log-probabilities while the longest live sequence is at most
    ``special_mask_len`` tokens, keeping control tokens out of the first
    decoded positions. Ties between equal scores are broken by sort order
    and are not guaranteed stable.
    """
    if beam_width < 1:
        raise ValueError("beam_width must be at least 1")

    beams = [BeamNode(tokens=tuple(initial_tokens))]

    def finished(node: BeamNode) -> bool:
        return bool(node.tokens) and node.tokens[-1] == end_token

    for _ in range(max_depth):
        best = max(beams, key=lambda node: node.log_prob)
        if finished(best):
            break
        beams = _step(beams, oracle, finished, beam_width, special_mask, special_mask_len)

    best = max(beams, key=lambda node: node.log_prob)
    return list(best.tokens)


def _step(
    beams: list[BeamNode],
    oracle: ScoringOracle,
    finished: Callable[[BeamNode], bool],
    beam_width: int,
    special_mask: np.ndarray | None,
    special_mask_len: int,
) -> list[BeamNode]:
    done = [node for node in beams if finished(node)]
    live = [node for node in beams if not finished(node)]

    log_probs = oracle([list(node.tokens) for node in live])
    if len(log_probs) != len(live):
        raise OracleError(
            f"Oracle returned {len(log_probs)} distributions for {len(live)} sequences"
        )

    mask_active = special_mask is not None and max(
        len(node.tokens) for node in live
    ) <= special_mask_len

    candidates: list[BeamNode] = list(done)
    for node, step in zip(live, log_probs):
        scores = node.log_prob + np.asarray(step, dtype=np.float64)
        if mask_active:
            scores = scores + special_mask[: len(scores)]
        # only the beam_width best of each node can survive the global cut
        k = min(beam_width, len(scores))
        top = np.argpartition(-scores, k - 1)[:k]
        for token in top:
            score = float(scores[token])
            if score == float("-inf"):
                continue
            candidates.append(node.extend(int(token), score))

    if not candidates:
        # every continuation was masked out; keep the current beams
        return beams

    candidates.sort(key=lambda node: node.log_prob, reverse=True)
    return candidates[:beam_width]
