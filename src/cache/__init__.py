"""Cache key policy, blob cache store and restore/save lifecycle."""

from .keys import CacheKeys, artifact_cache_keys, build_cache_keys
from .lifecycle import CacheLifecycle
from .store import BlobCache, LocalBlobCache
from .tool_cache import ToolCache

__all__ = [
    "BlobCache",
    "CacheKeys",
    "CacheLifecycle",
    "LocalBlobCache",
    "ToolCache",
    "artifact_cache_keys",
    "build_cache_keys",
]
