"""Version specifier parsing and resolution."""

from .models import ManifestVersions, ResolutionResult, SpecifierKind, VersionSpec
from .resolver import VersionResolver

__all__ = [
    "ManifestVersions",
    "ResolutionResult",
    "SpecifierKind",
    "VersionResolver",
    "VersionSpec",
]
