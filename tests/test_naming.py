"""Tests for host detection and artifact naming."""

import pytest

from download.naming import (
    TargetIdentity,
    arch_spelling,
    artifact_base_name,
    artifact_extension,
    artifact_filename,
    detect_host,
    uses_legacy_order,
)
from errors import ConfigurationError


class TestDetectHost:
    """Mapping host facts onto vendor tokens."""

    @pytest.mark.parametrize("machine,system,expected", [
        ("x86_64", "Linux", ("x86_64", "linux")),
        ("AMD64", "Windows", ("x86_64", "windows")),
        ("arm64", "Darwin", ("aarch64", "macos")),
        ("armv7l", "Linux", ("arm", "linux")),
        ("i686", "Linux", ("x86", "linux")),
        ("riscv64", "FreeBSD", ("riscv64", "freebsd")),
        ("x86_64", "SunOS", ("x86_64", "solaris")),
    ])
    def test_known_hosts(self, machine, system, expected):
        assert detect_host(machine, system, "little") == expected

    def test_powerpc64_little_endian(self):
        assert detect_host("ppc64le", "Linux", "little") == ("powerpc64le", "linux")

    def test_powerpc64_big_endian(self):
        assert detect_host("ppc64", "Linux", "big") == ("powerpc64", "linux")

    def test_unsupported_arch(self):
        with pytest.raises(ConfigurationError):
            detect_host("sparc64", "Linux", "big")

    def test_unsupported_os(self):
        with pytest.raises(ConfigurationError):
            detect_host("x86_64", "Plan9", "little")


class TestNamingOrder:
    """Legacy OS-first order versus arch-first order."""

    @pytest.mark.parametrize("version,legacy", [
        ("0.11.0", True),
        ("0.14.0", True),
        ("0.14.1", False),
        ("0.15.0-dev.630+abcdef", True),
        ("0.15.0-dev.631+abcdef", False),
        ("0.15.1", False),
        ("0.14.0-dev.100+abcdef", True),
        ("not-a-version", False),
    ])
    def test_cutover(self, version, legacy):
        assert uses_legacy_order(version) is legacy

    def test_legacy_base_name(self):
        target = TargetIdentity(arch="x86_64", os="linux", version="0.14.0")
        assert artifact_base_name(target) == "zig-linux-x86_64-0.14.0"

    def test_current_base_name(self):
        target = TargetIdentity(arch="x86_64", os="linux", version="0.14.1")
        assert artifact_base_name(target) == "zig-x86_64-linux-0.14.1"

    def test_dev_line_before_and_after(self):
        before = TargetIdentity(arch="aarch64", os="macos", version="0.15.0-dev.630+abcdef")
        after = TargetIdentity(arch="aarch64", os="macos", version="0.15.0-dev.631+abcdef")
        assert artifact_base_name(before) == "zig-macos-aarch64-0.15.0-dev.630+abcdef"
        assert artifact_base_name(after) == "zig-aarch64-macos-0.15.0-dev.631+abcdef"


class TestArmSpelling:
    """32-bit ARM spelling changed on the 0.15 dev line."""

    def test_old_spelling(self):
        assert arch_spelling("arm", "0.14.1") == "armv7a"
        assert arch_spelling("arm", "0.15.0-dev.1033+abc") == "armv7a"

    def test_new_spelling(self):
        assert arch_spelling("arm", "0.15.0-dev.1034+abc") == "arm"
        assert arch_spelling("arm", "0.15.1") == "arm"

    def test_other_arches_untouched(self):
        assert arch_spelling("x86_64", "0.11.0") == "x86_64"

    def test_base_name_uses_spelling(self):
        target = TargetIdentity(arch="arm", os="linux", version="0.13.0")
        assert artifact_base_name(target) == "zig-linux-armv7a-0.13.0"


class TestExtension:
    """Archive extension per OS."""

    def test_windows_zip(self):
        assert artifact_extension("windows") == ".zip"
        target = TargetIdentity(arch="x86_64", os="windows", version="0.14.1")
        assert artifact_filename(target) == "zig-x86_64-windows-0.14.1.zip"

    @pytest.mark.parametrize("os_token", ["linux", "macos", "freebsd"])
    def test_others_tar_xz(self, os_token):
        assert artifact_extension(os_token) == ".tar.xz"
