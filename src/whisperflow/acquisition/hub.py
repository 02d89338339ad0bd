"""Hugging Face Hub client: cache lookup and resumable streaming fetch.

Files are written into the standard hub cache layout
(``models--org--name/snapshots/<commit>/<file>`` plus ``refs/<revision>``)
so ``huggingface_hub.try_to_load_from_cache`` resolves them afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import requests
from huggingface_hub import constants, hf_hub_url, try_to_load_from_cache
from huggingface_hub.utils import build_hf_headers

from whisperflow.errors import DownloadError
from whisperflow.models.whisper import ModelDescriptor

CHUNK_SIZE = 1024 * 1024


class ProgressListener(Protocol):
    """Receives byte-level progress of one file fetch."""

    def init(self, total: int, file: str, offset: int = 0) -> None: ...
    def update(self, delta: int) -> None: ...
    def finish(self) -> None: ...


class RemoteRepository(Protocol):
    """Protocol for the remote repository client used by the cache manager."""

    def get_cached(self, descriptor: ModelDescriptor, filename: str) -> Path | None: ...

    def fetch_with_progress(
        self,
        descriptor: ModelDescriptor,
        filename: str,
        listener: ProgressListener,
        *,
        force: bool = False,
    ) -> Path: ...


def _repo_folder(repo_id: str) -> str:
    return "models--" + repo_id.replace("/", "--")


class HubClient:
    """Remote repository client backed by the Hugging Face Hub."""

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        *,
        endpoint: str | None = None,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: tuple[float, float] = (30, 600),
    ):
        self.cache_dir = Path(cache_dir or constants.HF_HUB_CACHE)
        self.endpoint = endpoint
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_cached(self, descriptor: ModelDescriptor, filename: str) -> Path | None:
        """Return the cached path of a file, or None if it was never fetched."""
        found = try_to_load_from_cache(
            descriptor.repo_id,
            filename,
            cache_dir=self.cache_dir,
            revision=descriptor.revision,
        )
        # the hub returns a sentinel object for files known to be absent upstream
        return Path(found) if isinstance(found, str) else None

    def fetch_with_progress(
        self,
        descriptor: ModelDescriptor,
        filename: str,
        listener: ProgressListener,
        *,
        force: bool = False,
    ) -> Path:
        """Stream a file into the cache, resuming a partial download if present."""
        url = hf_hub_url(
            descriptor.repo_id,
            filename,
            revision=descriptor.revision,
            endpoint=self.endpoint,
        )
        headers = build_hf_headers(token=self.token)
        headers["Accept-Encoding"] = "identity"

        try:
            head = self._session.head(
                url, headers=headers, allow_redirects=False, timeout=self.timeout[0]
            )
            if head.status_code >= 400:
                head.raise_for_status()
            commit = head.headers.get("X-Repo-Commit") or descriptor.revision
            total = int(
                head.headers.get("X-Linked-Size")
                or head.headers.get("Content-Length")
                or 0
            )

            storage = self.cache_dir / _repo_folder(descriptor.repo_id)
            target = storage / "snapshots" / commit / filename
            partial = target.with_name(target.name + ".incomplete")
            target.parent.mkdir(parents=True, exist_ok=True)

            if force and partial.exists():
                partial.unlink()
            resume = partial.stat().st_size if partial.exists() else 0
            if total and resume >= total:
                partial.unlink()
                resume = 0

            response = self._open(url, headers, resume)
            if resume and response.status_code == 416:
                # the partial is already as long as the remote file, or longer
                response.close()
                partial.unlink()
                resume = 0
                response = self._open(url, headers, 0)

            with response:
                response.raise_for_status()
                if resume and response.status_code != 206:
                    resume = 0  # server ignored the range, start over
                if not total:
                    total = resume + int(response.headers.get("Content-Length") or 0)

                listener.init(total, filename, resume)
                with open(partial, "ab" if resume else "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            listener.update(len(chunk))

            partial.replace(target)
            if commit != descriptor.revision:
                refs = storage / "refs"
                refs.mkdir(parents=True, exist_ok=True)
                (refs / descriptor.revision).write_text(commit)
        except OSError as e:
            # requests.RequestException is an OSError as well
            raise DownloadError(filename, str(e)) from e

        listener.finish()
        return target

    def _open(self, url: str, headers: dict, resume: int) -> requests.Response:
        if resume:
            headers = {**headers, "Range": f"bytes={resume}-"}
        return self._session.get(url, headers=headers, stream=True, timeout=self.timeout)
