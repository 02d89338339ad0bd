"""Whisper tokenizer wrapper over the Hugging Face ``tokenizers`` library."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np
from tokenizers import Tokenizer

from whisperflow.errors import ModelLoadError

START_OF_TRANSCRIPT = "<|startoftranscript|>"
TRANSCRIBE = "<|transcribe|>"
NO_TIMESTAMPS = "<|notimestamps|>"
END_OF_TEXT = "<|endoftext|>"


class WhisperTokenizer:
    """Token ids, prompt construction and text decoding for one checkpoint."""

    def __init__(self, tokenizer: Tokenizer):
        self._tokenizer = tokenizer
        self.special_ids = frozenset(
            token_id
            for token_id, added in tokenizer.get_added_tokens_decoder().items()
            if added.special
        )

    @classmethod
    def from_file(cls, path: Path | str) -> WhisperTokenizer:
        try:
            return cls(Tokenizer.from_file(str(path)))
        except Exception as e:  # tokenizers raises a bare Exception on bad input
            raise ModelLoadError(f"Cannot load tokenizer {path}: {e}") from e

    def special_token(self, token: str) -> int:
        token_id = self._tokenizer.token_to_id(token)
        if token_id is None:
            raise ModelLoadError(f"Tokenizer has no {token} token")
        return token_id

    @property
    def end_token(self) -> int:
        return self.special_token(END_OF_TEXT)

    def language_token(self, language: str) -> int:
        return self.special_token(f"<|{language}|>")

    def initial_tokens(self, language: str) -> list[int]:
        """Decoder prompt: start, language, task, no-timestamps."""
        return [
            self.special_token(START_OF_TRANSCRIPT),
            self.language_token(language),
            self.special_token(TRANSCRIBE),
            self.special_token(NO_TIMESTAMPS),
        ]

    def special_mask(self, size: int) -> np.ndarray:
        """Additive mask of length ``size``: -inf for special ids, else 0."""
        mask = np.zeros(size, dtype=np.float64)
        for token_id in self.special_ids:
            if token_id < size:
                mask[token_id] = -np.inf
        return mask

    def decode(self, tokens: Sequence[int], *, skip_special: bool = True) -> str:
        return self._tokenizer.decode(list(tokens), skip_special_tokens=skip_special)
