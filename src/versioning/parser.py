"""Version and specifier parsing utilities.

Release versions are ``MAJOR.MINOR.PATCH``; development builds are
``MAJOR.MINOR.PATCH-dev.N+HASH``. Both are valid semantic versions, and
semver precedence already gives the ordering we need: numeric
major/minor/patch first, then any ``-dev.N`` build sorts before the release
sharing its numbers (a release behaves as dev-index +infinity), with dev
builds ordered by their numeric index. Build metadata (``+HASH``) is ignored
for precedence.
"""

import re
from typing import Optional

import semantic_version

from constants import Constants
from .models import SpecifierKind, VersionSpec

_DEV_MARKER = re.compile(r"-dev\.\d+")


def parse_version(text: str) -> semantic_version.Version:
    """Parse a release or dev-build version string.

    Raises:
        ValueError: If the text is not a full three-component version.
    """
    return semantic_version.Version(text.strip())


def try_parse_version(text: str) -> Optional[semantic_version.Version]:
    """Return the parsed version, or None when ``text`` is not a valid version."""
    try:
        return parse_version(text)
    except ValueError:
        return None


def is_release(version: semantic_version.Version) -> bool:
    """True for plain ``MAJOR.MINOR.PATCH`` releases (no dev/pre-release part)."""
    return not version.prerelease


def parse_specifier(raw: Optional[str]) -> VersionSpec:
    """Classify a user-supplied version specifier.

    The specifier itself is never validated here; explicit versions are used
    verbatim and a malformed one surfaces later as a fetch failure.
    """
    text = (raw or "").strip()
    if not text:
        return VersionSpec(raw="", kind=SpecifierKind.UNSPECIFIED)
    if text == Constants.MASTER:
        return VersionSpec(raw=text, kind=SpecifierKind.MASTER)
    if text == Constants.LATEST:
        return VersionSpec(raw=text, kind=SpecifierKind.LATEST)
    if Constants.NOMINATED_MARKER in text:
        return VersionSpec(raw=text, kind=SpecifierKind.NOMINATED)
    if _DEV_MARKER.search(text):
        return VersionSpec(raw=text, kind=SpecifierKind.EXPLICIT_DEV)
    return VersionSpec(raw=text, kind=SpecifierKind.EXPLICIT)
