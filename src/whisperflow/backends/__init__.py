"""Speech backends selectable by name."""

from __future__ import annotations

from whisperflow.backends.base import ScoringOracle, SpeechModel
from whisperflow.models.whisper import LocalModelFiles


def load_backend(name: str, files: LocalModelFiles, device: str = "cpu") -> SpeechModel:
    """Instantiate the backend called ``name`` over acquired model files."""
    if name == "transformers":
        from whisperflow.backends.transformers_backend import TransformersWhisper
        return TransformersWhisper(files, device=device)
    else:
        raise ValueError(f"Unknown backend: {name}")


__all__ = ["ScoringOracle", "SpeechModel", "load_backend"]
