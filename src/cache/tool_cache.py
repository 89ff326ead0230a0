"""Per-host cache of extracted toolchain installations.

Layout: ``<root>/<tool>/<version>/<arch>/`` with a ``<arch>.complete`` marker
written last, so a half-copied directory is never reported as a hit.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class ToolCache:
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def _dir(self, tool: str, version: str, arch: str) -> Path:
        return self.root / tool / version / arch

    def _marker(self, tool: str, version: str, arch: str) -> Path:
        return self.root / tool / version / f"{arch}.complete"

    def find(self, tool: str, version: str, arch: str) -> Optional[Path]:
        """Return the cached installation directory, or None."""
        path = self._dir(tool, version, arch)
        if self._marker(tool, version, arch).is_file() and path.is_dir():
            return path
        return None

    def cache_dir(self, source: Path, tool: str, version: str, arch: str) -> Path:
        """Copy ``source`` into the cache and return the cached directory."""
        dest = self._dir(tool, version, arch)
        marker = self._marker(tool, version, arch)
        marker.unlink(missing_ok=True)
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, dest, symlinks=True)
        marker.write_text("", encoding="utf-8")
        logger.debug("Cached %s %s (%s) in %s", tool, version, arch, dest)
        return dest
