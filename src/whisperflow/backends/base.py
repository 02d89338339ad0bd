"""Protocols implemented by speech backends."""

from __future__ import annotations

from typing import Protocol

import numpy as np

from whisperflow.decoding.beam import ScoringOracle
from whisperflow.decoding.tokenizer import WhisperTokenizer


class SpeechModel(Protocol):
    """A loaded model able to turn one audio window into a scoring oracle."""

    name: str
    sample_rate: int
    context_samples: int
    vocab_size: int
    tokenizer: WhisperTokenizer

    def encode(self, samples: np.ndarray) -> ScoringOracle: ...
