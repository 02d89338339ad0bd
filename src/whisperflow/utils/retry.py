"""Retry decorators using tenacity."""

from __future__ import annotations

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from whisperflow.errors import DownloadError


def retry_download(max_attempts: int = 3):
    """Retry a model acquisition with exponential backoff.

    Only used by callers that opt in; the pipeline itself never retries.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        retry=retry_if_exception_type(DownloadError),
        reraise=True,
    )
