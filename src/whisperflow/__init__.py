"""whisperflow: windowed Whisper transcription with a live event stream."""

__version__ = "0.3.0"
