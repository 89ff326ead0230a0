"""Data models for version specifiers and resolved versions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SpecifierKind(Enum):
    """How a user-supplied version specifier is to be resolved."""
    UNSPECIFIED = "unspecified"
    MASTER = "master"
    LATEST = "latest"
    NOMINATED = "nominated"
    EXPLICIT = "explicit"
    EXPLICIT_DEV = "explicit_dev"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a version specifier."""
    raw: str
    kind: SpecifierKind


@dataclass(frozen=True)
class ManifestVersions:
    """Version fields found in a project manifest, if any."""
    nominated: Optional[str] = None
    minimum: Optional[str] = None


@dataclass(frozen=True)
class ResolutionResult:
    """Resolution outcome for logging and CI outputs."""
    requested: str
    kind: SpecifierKind
    version: str
    source: str  # "input" | "manifest" | "index" | "nominated-index"
