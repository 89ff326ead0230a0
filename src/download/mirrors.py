"""Download an artifact from untrusted mirrors, verifying every candidate.

Mirrors are tried one at a time in a random order, so load is spread across
them; the first candidate whose artifact carries a valid signature for the
requested filename wins. The canonical origin is only ever a last resort: it
can neither be configured as the override nor appear in the shuffled set.
"""

from __future__ import annotations

import json
import logging
import random
import re
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

from common.http_client import download_file, get_bytes
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from constants import Constants
from errors import (
    ConfigurationError,
    DownloadError,
    FormatError,
    SetupZigError,
    VerificationError,
)
from .minisign import PublicKey, parse_key, parse_signature, verify_signature

logger = logging.getLogger(__name__)

_TRUSTED_COMMENT_RE = re.compile(rb"^timestamp:\d+\s+file:(\S+)\s+hashed$")


def is_canonical_origin(url: str) -> bool:
    """True if ``url`` points at (or aliases) the canonical download origin."""
    text = url.strip()
    if not text:
        return False
    if "://" not in text:
        text = "//" + text
    try:
        host = (urlsplit(text).hostname or "").rstrip(".").lower()
    except ValueError:
        return False
    return host in Constants.CANONICAL_HOSTS


def validate_mirror_override(mirror: str) -> str:
    """Return the normalized override, rejecting the canonical origin.

    Raises:
        ConfigurationError: If ``mirror`` is the canonical origin.
    """
    mirror = mirror.strip().rstrip("/")
    if mirror and is_canonical_origin(mirror):
        raise ConfigurationError(
            "'https://ziglang.org' cannot be used as mirror override; "
            "it is only contacted when every mirror has failed",
            context={"mirror": mirror},
        )
    return mirror


def load_mirror_list(path: Union[str, Path]) -> List[str]:
    """Load a mirror list file.

    Accepts a JSON array whose items are either URL strings or
    ``[url, name, ...]`` arrays.

    Raises:
        ConfigurationError: If the file is unreadable or malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot read mirror list {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ConfigurationError(f"mirror list {path} must be a JSON array")
    mirrors: List[str] = []
    for item in data:
        if isinstance(item, list) and item and isinstance(item[0], str):
            mirrors.append(item[0])
        elif isinstance(item, str):
            mirrors.append(item)
        else:
            raise ConfigurationError(f"mirror list {path} has an invalid entry: {item!r}")
    return mirrors


def shuffle_mirrors(mirrors: Iterable[str], rng: Optional[random.Random] = None) -> List[str]:
    """Uniformly random permutation: attach a random key to each entry and sort."""
    rng = rng or random.Random()
    keyed = [(rng.random(), mirror) for mirror in mirrors]
    keyed.sort(key=lambda pair: pair[0])
    return [mirror for _, mirror in keyed]


def signed_filename(trusted_comment: bytes) -> Optional[str]:
    """Extract the filename from a ``timestamp:N file:NAME hashed`` comment."""
    match = _TRUSTED_COMMENT_RE.match(trusted_comment)
    if match is None:
        return None
    return match.group(1).decode("utf-8", errors="replace")


class MirrorFetcher:
    """Fetch-and-verify loop over candidate mirrors."""

    def __init__(
        self,
        mirrors: Sequence[str],
        *,
        override: str = "",
        canonical: str = Constants.CANONICAL_URL,
        public_key: Union[str, PublicKey, None] = None,
        download_dir: Optional[Path] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.override = validate_mirror_override(override)
        self.canonical = canonical.rstrip("/")
        self.mirrors = [
            m.strip().rstrip("/") for m in mirrors
            if m.strip() and not is_canonical_origin(m)
        ]
        if public_key is None:
            public_key = Constants.MINISIGN_KEY
        self._public_key = public_key if isinstance(public_key, PublicKey) else parse_key(public_key)
        self._download_dir = Path(download_dir) if download_dir else None
        self._rng = rng

    def fetch(self, filename: str) -> Path:
        """Return a local path to a verified copy of ``filename``.

        Raises:
            DownloadError, FormatError, VerificationError: From the forced
                override, or from the canonical origin once every mirror failed.
        """
        if self.override:
            logger.info("Using mirror: %s", self.override)
            return self.download_from_mirror(self.override, filename)

        for mirror in shuffle_mirrors(self.mirrors, self._rng):
            logger.info("Attempting mirror: %s", mirror)
            try:
                return self.download_from_mirror(mirror, filename)
            except SetupZigError as exc:
                logger.info("Mirror failed with error: %s", exc)

        logger.info("Attempting official: %s", self.canonical)
        return self.download_from_mirror(self.canonical, filename)

    def download_from_mirror(self, mirror: str, filename: str) -> Path:
        """Download ``filename`` and its signature from one source and verify both.

        Raises:
            DownloadError: Network failure.
            FormatError: Malformed signature file.
            VerificationError: Bad signature or signed filename mismatch.
        """
        base = f"{mirror}/{filename}"
        query = {"source": Constants.DOWNLOAD_SOURCE_TAG}
        dest = self._destination(filename)
        with Timer() as t:
            try:
                download_file(base, dest, context="mirror", params=query)
                signature_data = get_bytes(
                    base + Constants.SIGNATURE_SUFFIX, context="mirror", params=query
                )
                self._verify(dest.read_bytes(), signature_data, base, filename)
            except (DownloadError, FormatError, VerificationError):
                dest.unlink(missing_ok=True)
                raise
            except OSError as exc:
                dest.unlink(missing_ok=True)
                raise DownloadError(f"could not read downloaded file {dest}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Mirror download verified",
                extra=extra_context(
                    event="download",
                    component="mirror_fetcher",
                    action="download_from_mirror",
                    outcome="verified",
                    duration_ms=t.duration_ms(),
                    target=safe_url(base)
                )
            )
        return dest

    def _verify(self, payload: bytes, signature_data: bytes, source: str, filename: str) -> None:
        record = parse_signature(signature_data)
        if not verify_signature(self._public_key, record, payload):
            raise VerificationError(
                f"signature verification failed for '{source}'",
                context={"source": safe_url(source)},
            )
        # A validly signed file served under another name must not be accepted.
        if signed_filename(record.trusted_comment) != filename:
            raise VerificationError(
                f"filename verification failed for '{source}'",
                context={"source": safe_url(source)},
            )

    def _destination(self, filename: str) -> Path:
        if self._download_dir is None:
            self._download_dir = Path(tempfile.mkdtemp(prefix="setup-zig-"))
        return self._download_dir / filename
