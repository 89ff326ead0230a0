"""Archive extraction for downloaded toolchain artifacts."""

from __future__ import annotations

import logging
import lzma
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

from errors import FormatError

logger = logging.getLogger(__name__)


def _extract_zip(archive: Path, dest: Path) -> None:
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (dest / member).resolve()
            if target != root and root not in target.parents:
                raise FormatError(f"archive member escapes extraction dir: {member}")
        zf.extractall(dest)


def _extract_tar(archive: Path, dest: Path) -> None:
    with tarfile.open(archive, "r:*") as tf:
        tf.extractall(dest, filter="data")


def extract_archive(archive: Path, extension: str, dest: Optional[Path] = None) -> Path:
    """Extract ``archive`` into ``dest`` (a fresh temp dir by default).

    Args:
        archive: Path to the artifact.
        extension: ``.zip`` or a tar extension such as ``.tar.xz``.
        dest: Optional extraction directory.

    Returns:
        Path: The directory the archive was extracted into.

    Raises:
        FormatError: If the archive is corrupt or contains unsafe members.
    """
    archive = Path(archive)
    if dest is None:
        dest = Path(tempfile.mkdtemp(prefix="setup-zig-extract-"))
    dest.mkdir(parents=True, exist_ok=True)
    logger.info("Extracting %s", archive.name)
    try:
        if extension == ".zip":
            _extract_zip(archive, dest)
        else:
            _extract_tar(archive, dest)
    except (zipfile.BadZipFile, tarfile.TarError, lzma.LZMAError, EOFError) as exc:
        raise FormatError(f"cannot extract {archive.name}: {exc}") from exc
    return dest
