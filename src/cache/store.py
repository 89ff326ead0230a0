"""Blob cache collaborator: keyed, create-on-save archives of local paths."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tarfile
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from errors import CacheError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class BlobCache(ABC):
    """Opaque blob store keyed by cache key."""

    @abstractmethod
    def restore(
        self,
        paths: Sequence[PathLike],
        primary_key: str,
        restore_keys: Sequence[str] = (),
    ) -> Optional[str]:
        """Restore ``paths`` from the first matching key.

        Returns:
            The key that matched, or None on a miss.

        Raises:
            CacheError: If a matching entry exists but cannot be restored.
        """

    @abstractmethod
    def save(self, paths: Sequence[PathLike], key: str) -> None:
        """Store ``paths`` under ``key``, superseding any previous entry.

        Raises:
            CacheError: If a path is missing or the entry cannot be written.
        """


class LocalBlobCache(BlobCache):
    """Directory-backed cache for self-hosted runners and local use.

    Each entry lives in ``<root>/<sha256(key)>/`` as ``archive.tar.gz`` plus a
    ``manifest.json`` recording the key and archive digest. Restore keys are
    matched exactly, never as prefixes: a release version string is a prefix
    of its own dev builds' version strings.
    """

    ARCHIVE = "archive.tar.gz"
    MANIFEST = "manifest.json"

    def __init__(self, root: PathLike) -> None:
        self.root = Path(root)

    def _entry_dir(self, key: str) -> Path:
        return self.root / hashlib.sha256(key.encode("utf-8")).hexdigest()

    def restore(
        self,
        paths: Sequence[PathLike],
        primary_key: str,
        restore_keys: Sequence[str] = (),
    ) -> Optional[str]:
        last_error: Optional[CacheError] = None
        for key in (primary_key, *restore_keys):
            entry = self._entry_dir(key)
            archive = entry / self.ARCHIVE
            if not archive.is_file():
                continue
            try:
                manifest = self._read_manifest(entry / self.MANIFEST, key)
                if manifest.get("archive_sha256") != _file_sha256(archive):
                    raise CacheError("cache archive digest mismatch", context={"key": key})
                self._unpack(archive, [Path(p) for p in paths], key)
            except CacheError as exc:
                logger.warning("Skipping unusable cache entry %s: %s", key, exc)
                last_error = exc
                continue
            logger.debug("Cache restored from key %s", key)
            return key
        # Only an error when no key yielded a usable entry.
        if last_error is not None:
            raise last_error
        return None

    def save(self, paths: Sequence[PathLike], key: str) -> None:
        resolved = [Path(p) for p in paths]
        for path in resolved:
            if not path.exists():
                raise CacheError(
                    f"Path Validation Error: {path} does not exist",
                    context={"key": key, "path": str(path)},
                )
        entry = self._entry_dir(key)
        try:
            entry.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=entry, suffix=".tmp")
            os.close(fd)
            tmp_archive = Path(tmp_name)
            try:
                with tarfile.open(tmp_archive, "w:gz") as tf:
                    for index, path in enumerate(resolved):
                        tf.add(path, arcname=str(index))
                manifest = {
                    "key": key,
                    "paths": [str(p) for p in resolved],
                    "archive_sha256": _file_sha256(tmp_archive),
                }
                os.replace(tmp_archive, entry / self.ARCHIVE)
            finally:
                tmp_archive.unlink(missing_ok=True)
            tmp_manifest = entry / (self.MANIFEST + ".tmp")
            tmp_manifest.write_text(
                json.dumps(manifest, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
            os.replace(tmp_manifest, entry / self.MANIFEST)
        except (OSError, tarfile.TarError) as exc:
            raise CacheError(f"failed to save cache entry: {exc}", context={"key": key}) from exc

    def _read_manifest(self, path: Path, key: str) -> Dict[str, object]:
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheError("cache manifest is unreadable", context={"key": key}) from exc
        if not isinstance(parsed, dict) or parsed.get("key") != key:
            raise CacheError("cache manifest key mismatch", context={"key": key})
        return parsed

    def _unpack(self, archive: Path, paths: Sequence[Path], key: str) -> None:
        try:
            with tempfile.TemporaryDirectory(prefix="setup-zig-restore-") as tmp:
                with tarfile.open(archive, "r:gz") as tf:
                    tf.extractall(tmp, filter="data")
                for index, dest in enumerate(paths):
                    src = Path(tmp) / str(index)
                    if src.is_dir():
                        dest.mkdir(parents=True, exist_ok=True)
                        shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)
                    elif src.exists():
                        dest.parent.mkdir(parents=True, exist_ok=True)
                        shutil.copy2(src, dest)
        except (OSError, tarfile.TarError) as exc:
            raise CacheError(f"failed to restore cache entry: {exc}", context={"key": key}) from exc


def _file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()
