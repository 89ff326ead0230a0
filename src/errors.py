"""Error taxonomy for version resolution, download verification and caching."""

from __future__ import annotations

from typing import Mapping, Optional


class SetupZigError(Exception):
    """Base error; carries optional context for log records."""

    def __init__(self, message: str, *, context: Optional[Mapping[str, str]] = None) -> None:
        super().__init__(message)
        self.context = dict(context or {})


class ResolutionError(SetupZigError):
    """A version specifier could not be turned into a concrete version."""


class FormatError(SetupZigError, ValueError):
    """Malformed public key or signature container."""


class VerificationError(SetupZigError):
    """Signature check failed, or the signed filename does not match."""


class DownloadError(SetupZigError):
    """Network failure or unexpected HTTP status while fetching a resource."""


class CacheError(SetupZigError):
    """Restore or save against the blob cache failed. Never fatal."""


class ConfigurationError(SetupZigError):
    """Unsupported host, forbidden mirror override, or invalid input value."""


__all__ = [
    "CacheError",
    "ConfigurationError",
    "DownloadError",
    "FormatError",
    "ResolutionError",
    "SetupZigError",
    "VerificationError",
]
