"""Model acquisition: cache lookup and tracked downloads."""

from whisperflow.acquisition.cache import CacheManager, DownloadState
from whisperflow.acquisition.hub import HubClient

__all__ = ["CacheManager", "DownloadState", "HubClient"]
