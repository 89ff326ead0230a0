"""Platform-specific artifact naming.

Host facts are mapped onto the vendor's vocabulary through fixed lookup
tables. The filename layout changed twice over the release history:

* before 0.14.1 (and before 0.15.0-dev.631 on the 0.15 dev line) the OS
  comes first: ``zig-linux-x86_64-0.14.0``; afterwards the order follows
  target triples: ``zig-x86_64-linux-0.14.1``;
* before 0.15.0-dev.1034, 32-bit ARM is spelled ``armv7a``, afterwards ``arm``.
"""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass
from typing import Optional, Tuple

import semantic_version

from constants import ARCH_TOKENS, OS_TOKENS, Constants
from errors import ConfigurationError
from versioning.parser import parse_version, try_parse_version

_ORDER_CUTOVER_RELEASE = parse_version(Constants.NAMING_ORDER_CUTOVER_RELEASE)
_ORDER_CUTOVER_DEV = parse_version(Constants.NAMING_ORDER_CUTOVER_DEV)
_ARM_CUTOVER_DEV = parse_version(Constants.NAMING_ARM_CUTOVER_DEV)


@dataclass(frozen=True)
class TargetIdentity:
    """CPU architecture token, OS token and resolved version of one target."""

    arch: str
    os: str
    version: str


def detect_host(
    machine: Optional[str] = None,
    system: Optional[str] = None,
    byteorder: Optional[str] = None,
) -> Tuple[str, str]:
    """Map host-reported identifiers onto ``(arch, os)`` vendor tokens.

    Host facts default to the running interpreter's; they are parameters so
    other hosts can be described explicitly.

    Raises:
        ConfigurationError: If the architecture or OS is not supported.
    """
    machine = (machine if machine is not None else platform.machine()).strip().lower()
    system = (system if system is not None else platform.system()).strip().lower()
    byteorder = byteorder if byteorder is not None else sys.byteorder

    arch = ARCH_TOKENS.get(machine)
    if arch is None:
        raise ConfigurationError(
            f"unsupported CPU architecture '{machine}'",
            context={"machine": machine},
        )
    # ppc64 machine names do not reliably carry endianness; ask the host.
    if arch == "powerpc64" and byteorder == "little":
        arch = "powerpc64le"

    os_token = OS_TOKENS.get(system)
    if os_token is None:
        raise ConfigurationError(
            f"unsupported operating system '{system}'",
            context={"system": system},
        )
    return arch, os_token


def _reached(
    version: semantic_version.Version,
    dev_cutover: semantic_version.Version,
    release_cutover: Optional[semantic_version.Version] = None,
) -> bool:
    """Whether ``version`` is at or after a naming cutover.

    A cutover happened at a dev build and, when ``release_cutover`` is given,
    also at a release of the previous line that was cut later. Dev builds of
    the cutover line that precede the dev cutover keep the old scheme even
    though they order after the release.
    """
    if version >= dev_cutover:
        return True
    if release_cutover is None or version < release_cutover:
        return False
    same_line = (version.major, version.minor, version.patch) == (
        dev_cutover.major, dev_cutover.minor, dev_cutover.patch
    )
    return not (same_line and version.prerelease)


def uses_legacy_order(version: str) -> bool:
    """True when ``version`` predates the arch-before-OS filename order.

    Unparseable versions get the current scheme; they fail later at fetch time.
    """
    parsed = try_parse_version(version)
    if parsed is None:
        return False
    return not _reached(parsed, _ORDER_CUTOVER_DEV, _ORDER_CUTOVER_RELEASE)


def arch_spelling(arch: str, version: str) -> str:
    """Return the spelling of ``arch`` used by artifacts of ``version``."""
    if arch != "arm":
        return arch
    parsed = try_parse_version(version)
    if parsed is not None and not _reached(parsed, _ARM_CUTOVER_DEV):
        return "armv7a"
    return arch


def artifact_base_name(target: TargetIdentity) -> str:
    """Artifact filename without extension, e.g. ``zig-x86_64-linux-0.14.1``."""
    arch = arch_spelling(target.arch, target.version)
    if uses_legacy_order(target.version):
        return f"{Constants.ARTIFACT_PREFIX}-{target.os}-{arch}-{target.version}"
    return f"{Constants.ARTIFACT_PREFIX}-{arch}-{target.os}-{target.version}"


def artifact_extension(os_token: str) -> str:
    """``.zip`` on Windows, ``.tar.xz`` everywhere else."""
    if os_token == "windows":
        return ".zip"
    return ".tar.xz"


def artifact_filename(target: TargetIdentity) -> str:
    return artifact_base_name(target) + artifact_extension(target.os)
