"""Whisper on PyTorch through Hugging Face transformers."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np

from whisperflow.audio import SAMPLE_RATE
from whisperflow.decoding.tokenizer import WhisperTokenizer
from whisperflow.errors import ModelLoadError, OracleError
from whisperflow.models.whisper import LocalModelFiles
from whisperflow.utils.progress import log_step

HOP_LENGTH = 160
# mel frames kept free at the end of the context for end-of-sequence signaling
PADDING = 100
# tied to model.decoder.embed_tokens.weight
TIED_KEYS = {"proj_out.weight"}


def _import_torch():
    try:
        import safetensors  # noqa: F401
        import torch
        from transformers import (
            WhisperConfig,
            WhisperFeatureExtractor,
            WhisperForConditionalGeneration,
        )
    except ImportError:
        raise ImportError(
            "torch, transformers and safetensors are required for the transformers backend. "
            "Install with: pip install whisperflow[transformers]"
        )
    return torch, WhisperConfig, WhisperFeatureExtractor, WhisperForConditionalGeneration


def load_weights(model, path: Path) -> None:
    """Load a safetensors checkpoint into ``model``; anything but a complete match fails.

    Only the output projection may be absent, since it is tied to the token
    embeddings.
    """
    from safetensors import SafetensorError
    from safetensors.torch import load_file

    try:
        state = load_file(str(path))
    except (OSError, SafetensorError) as e:
        raise ModelLoadError(f"Cannot read weights from {path}: {e}") from e

    try:
        result = model.load_state_dict(state, strict=False)
    except RuntimeError as e:
        # shape mismatches
        raise ModelLoadError(f"Weights in {path} do not fit the model config: {e}") from e

    missing = [key for key in result.missing_keys if key not in TIED_KEYS]
    if missing:
        raise ModelLoadError(
            f"Weights in {path} miss {len(missing)} tensor(s), e.g. {missing[0]}"
        )
    model.tie_weights()


class _DecoderOracle:
    """Scores token sequences against one encoded window."""

    def __init__(self, torch, model, encoder_states):
        self._torch = torch
        self._model = model
        self._encoder_states = encoder_states

    def __call__(self, batch: Sequence[Sequence[int]]) -> list[np.ndarray]:
        torch = self._torch
        if not batch:
            return []

        lengths = [len(seq) for seq in batch]
        # right padding is invisible to the last real position under causal attention
        input_ids = torch.zeros((len(batch), max(lengths)), dtype=torch.long)
        for row, seq in enumerate(batch):
            input_ids[row, : len(seq)] = torch.tensor(list(seq), dtype=torch.long)
        input_ids = input_ids.to(self._encoder_states.device)

        try:
            with torch.no_grad():
                hidden = self._model.model.decoder(
                    input_ids=input_ids,
                    encoder_hidden_states=self._encoder_states.expand(len(batch), -1, -1),
                ).last_hidden_state
                logits = self._model.proj_out(hidden).float()
                log_probs = torch.log_softmax(logits, dim=-1)
        except RuntimeError as e:
            raise OracleError(f"Decoder forward pass failed: {e}") from e

        last = torch.tensor([n - 1 for n in lengths], device=log_probs.device)
        rows = log_probs[torch.arange(len(batch), device=log_probs.device), last]
        return [row.cpu().numpy() for row in rows]


class TransformersWhisper:
    """Whisper encoder/decoder loaded from safetensors weights."""

    name = "transformers"
    sample_rate = SAMPLE_RATE

    def __init__(self, files: LocalModelFiles, device: str = "cpu"):
        (
            self._torch,
            WhisperConfig,
            WhisperFeatureExtractor,
            WhisperForConditionalGeneration,
        ) = _import_torch()

        if files.config is None or files.tokenizer is None:
            raise ModelLoadError(f"{files.descriptor.code} needs config.json and tokenizer.json")

        log_step("Model", f"Loading {files.descriptor.repo_id} on {device}")
        self.tokenizer = WhisperTokenizer.from_file(files.tokenizer)

        try:
            config = WhisperConfig.from_json_file(str(files.config))
            model = WhisperForConditionalGeneration(config)
        except (OSError, ValueError) as e:
            raise ModelLoadError(f"Cannot read model config {files.config}: {e}") from e

        load_weights(model, files.weights)
        self._model = model.to(device).eval()

        self.device = device
        self.vocab_size = config.vocab_size
        self._features = WhisperFeatureExtractor(
            feature_size=config.num_mel_bins,
            sampling_rate=SAMPLE_RATE,
            hop_length=HOP_LENGTH,
        )
        # encoder positions are mel frames after a stride-2 convolution
        self.context_samples = (2 * config.max_source_positions - PADDING) * HOP_LENGTH

    def encode(self, samples: np.ndarray) -> _DecoderOracle:
        torch = self._torch
        features = self._features(
            samples, sampling_rate=SAMPLE_RATE, return_tensors="pt"
        ).input_features
        features = features.to(self.device, dtype=self._model.dtype)
        try:
            with torch.no_grad():
                states = self._model.model.encoder(features).last_hidden_state
        except RuntimeError as e:
            raise OracleError(f"Encoder forward pass failed: {e}") from e
        return _DecoderOracle(torch, self._model, states)
