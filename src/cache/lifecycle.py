"""Restore/save orchestration for the artifact and the build-cache directory.

Cache failures are never fatal here: the cache is an optimization. The only
safety guarantee (artifact lookups are exact) lives in the key derivation.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from common.logging_utils import Timer
from errors import CacheError
from .keys import CacheKeys
from .store import BlobCache

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


@dataclass
class ArtifactResult:
    """Where the artifact ended up and whether the cache supplied it."""

    path: Path
    cache_hit: bool
    key: str
    restore_ms: int = 0
    fetch_ms: int = 0


@dataclass
class BuildCacheSaveResult:
    """Outcome of the post-phase save."""

    saved: bool
    size_bytes: int = 0
    cleared: bool = False
    reason: str = ""


def total_size(path: Path) -> int:
    """Recursive byte size of ``path``; unreadable entries count as 0."""
    try:
        st = os.stat(path, follow_symlinks=False)
    except OSError:
        return 0
    if not Path(path).is_dir() or Path(path).is_symlink():
        return st.st_size
    total = 0
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                total += total_size(Path(entry.path))
    except OSError:
        return total
    return total


def clear_directory_contents(path: Path) -> None:
    """Delete everything inside ``path`` but keep the directory itself."""
    for child in Path(path).iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child, ignore_errors=True)
        else:
            child.unlink(missing_ok=True)


def is_accessible(path: Optional[Path]) -> bool:
    return path is not None and Path(path).is_dir() and os.access(path, os.R_OK)


class CacheLifecycle:
    """Side-effecting cache operations against one ``BlobCache``."""

    def __init__(self, store: BlobCache) -> None:
        self.store = store

    def restore_artifact(self, slot: Path, key: str) -> bool:
        """Exact-key restore of the compressed artifact into ``slot``."""
        try:
            return self.store.restore([slot], key) is not None
        except CacheError as exc:
            logger.warning("Artifact cache restore failed: %s", exc)
            return False

    def save_artifact(self, slot: Path, key: str) -> bool:
        """Best-effort save; returns False (and logs) on failure."""
        try:
            self.store.save([slot], key)
        except CacheError as exc:
            logger.warning("Artifact cache save failed: %s", exc)
            return False
        return True

    def retrieve_artifact(
        self,
        filename: str,
        slot: Path,
        key: str,
        fetch: Callable[[str], Path],
    ) -> ArtifactResult:
        """Restore the artifact, or fetch it, copy it into ``slot`` and save it.

        ``fetch`` failures propagate; only cache failures are swallowed.
        """
        slot = Path(slot)
        with Timer() as restore_timer:
            hit = self.restore_artifact(slot, key)
        if hit and slot.is_file():
            logger.info("Artifact cache hit for %s", key)
            return ArtifactResult(slot, True, key, restore_ms=restore_timer.duration_ms())

        logger.info("Cache miss. Fetching %s", filename)
        with Timer() as fetch_timer:
            downloaded = fetch(filename)
        slot.parent.mkdir(parents=True, exist_ok=True)
        if Path(downloaded).resolve() != slot.resolve():
            shutil.copyfile(downloaded, slot)
        self.save_artifact(slot, key)
        return ArtifactResult(
            slot,
            False,
            key,
            restore_ms=restore_timer.duration_ms(),
            fetch_ms=fetch_timer.duration_ms(),
        )

    def restore_build_cache(self, cache_dir: Path, keys: CacheKeys) -> Optional[str]:
        """Restore the build-cache directory; returns the key that matched.

        A miss is not an error: the build simply starts cold.
        """
        try:
            matched = self.store.restore([cache_dir], keys.primary, keys.restore_keys)
        except CacheError as exc:
            logger.warning("Build cache restore failed: %s", exc)
            return None
        if matched is None:
            logger.info("Build cache miss for %s", keys.primary)
        elif matched == keys.primary:
            logger.info("Build cache restored from key %s", matched)
        else:
            logger.info("Build cache restored from fallback key %s", matched)
        return matched

    def save_build_cache(self, cache_dir: Optional[Path], key: str, size_limit_mib: int) -> BuildCacheSaveResult:
        """Enforce the size limit, then save the build-cache directory.

        When the directory exceeds the limit (0 = unlimited) its contents are
        deleted first, producing an intentionally empty entry; entries cannot
        be deleted, only superseded.
        """
        if cache_dir is None or not is_accessible(cache_dir):
            logger.info("Build cache directory %s is not accessible; nothing to save", cache_dir)
            return BuildCacheSaveResult(saved=False, reason="inaccessible")

        size = total_size(cache_dir)
        limit = size_limit_mib * MIB
        cleared = False
        if limit != 0 and size > limit:
            logger.info(
                "Cache directory reached %d bytes, exceeding limit of %d bytes; clearing cache",
                size,
                limit,
            )
            clear_directory_contents(cache_dir)
            cleared = True

        try:
            self.store.save([cache_dir], key)
        except CacheError as exc:
            logger.warning("Build cache save failed: %s", exc)
            return BuildCacheSaveResult(saved=False, size_bytes=size, cleared=cleared, reason=str(exc))
        logger.info("Build cache saved under key %s", key)
        return BuildCacheSaveResult(saved=True, size_bytes=size, cleared=cleared)
