"""Shared fakes: a scripted speech model and an in-memory repository."""

from __future__ import annotations

import threading
from pathlib import Path

import numpy as np
import pytest

from whisperflow.audio import AudioBuffer
from whisperflow.acquisition import CacheManager
from whisperflow.errors import DownloadError, OracleError
from whisperflow.models.config import TranscribeConfig
from whisperflow.pipeline.orchestrator import Transcriber

PROMPT = [90, 91, 92, 93]
END = 99
VOCAB = 100
WORDS = {1: "the", 2: "quick", 3: "brown", 4: "fox", 5: "jumps", 6: "over"}
# window index → tokens the oracle prefers, end token included
SCRIPTS = {0: [1, 2, END], 1: [3, 4, END], 2: [5, 6, END]}


def script_oracle(prompt_len: int, script: list[int], vocab: int = VOCAB):
    """Oracle that strongly prefers ``script`` and is uniform off it."""

    def oracle(batch):
        out = []
        for seq in batch:
            step = len(seq) - prompt_len
            probs = np.full(vocab, 1e-4)
            if step < len(script) and list(seq[prompt_len:]) == script[:step]:
                probs[script[step]] = 1.0
            out.append(np.log(probs / probs.sum()))
        return out

    return oracle


class FakeTokenizer:
    end_token = END

    def initial_tokens(self, language):
        return list(PROMPT)

    def special_mask(self, size):
        mask = np.zeros(size)
        mask[90:] = -np.inf
        return mask

    def decode(self, tokens):
        return " ".join(WORDS[t] for t in tokens)


class FakeSpeechModel:
    """One second per window; each window's samples hold its index."""

    name = "fake"
    sample_rate = 16000
    context_samples = 16000
    vocab_size = VOCAB

    def __init__(self, *, fail_at=(), gate_at=None):
        self.tokenizer = FakeTokenizer()
        self.encoded: list[int] = []
        self.fail_at = set(fail_at)
        self.gate_at = gate_at
        self.gate = threading.Event()

    def encode(self, samples):
        index = int(samples[0])
        self.encoded.append(index)
        if index == self.gate_at:
            self.gate.wait(timeout=5)
        if index in self.fail_at:
            raise OracleError(f"scoring failed on window {index}")
        return script_oracle(len(PROMPT), SCRIPTS[index])


class FakeRepository:
    def __init__(self, *, cached=(), fail_on=None, chunks=(40, 60)):
        self.cached = set(cached)
        self.fail_on = fail_on
        self.chunks = chunks
        self.fetched: list[str] = []

    def get_cached(self, descriptor, filename):
        return Path("/cache") / filename if filename in self.cached else None

    def fetch_with_progress(self, descriptor, filename, listener, *, force=False):
        self.fetched.append(filename)
        if filename == self.fail_on:
            raise DownloadError(filename, "connection reset")
        listener.init(sum(self.chunks), filename, 0)
        for chunk in self.chunks:
            listener.update(chunk)
        listener.finish()
        return Path("/cache") / filename


class FakeClock:
    def __init__(self, step: float = 1.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def three_seconds(path) -> AudioBuffer:
    return AudioBuffer(samples=np.repeat(np.arange(3, dtype=np.float32), 16000))


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def speech_model():
    return FakeSpeechModel()


@pytest.fixture
def make_transcriber(repository, speech_model):
    """Build a Transcriber wired to the fakes; keyword options go to the config."""

    def make(audio_loader=three_seconds, **options) -> Transcriber:
        return Transcriber(
            TranscribeConfig(**options),
            cache=CacheManager(repository, clock=FakeClock()),
            audio_loader=audio_loader,
            backend_loader=lambda name, files, device: speech_model,
        )

    return make
