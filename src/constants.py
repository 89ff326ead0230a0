"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    CONFIG_ERROR = 4
    RESOLUTION_ERROR = 5
    VERIFICATION_ERROR = 6


class Phase(Enum):
    """Invocation phases of one CI job.

    Args:
        Enum (string): Phase names accepted on the command line.
    """

    MAIN = "main"
    POST = "post"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    TOOL_NAME = "zig"
    ARTIFACT_PREFIX = "zig"

    VERSIONS_INDEX_URL = "https://ziglang.org/download/index.json"
    NOMINATED_INDEX_URL = "https://pkg.machengine.org/zig/index.json"
    NOMINATED_MARKER = "mach"
    MASTER = "master"
    LATEST = "latest"

    # Only used as a last-resort fallback, never as an explicit override.
    CANONICAL_URL = "https://ziglang.org/builds"
    CANONICAL_HOSTS = ("ziglang.org", "www.ziglang.org")
    DOWNLOAD_SOURCE_TAG = "github-actions"
    SIGNATURE_SUFFIX = ".minisig"

    # Upstream minisign key, from https://ziglang.org/download
    MINISIGN_KEY = "RWSGOq2NVecA2UPNdBUZykf1CCb147pkmdtYxgb3Ti+JO/wCYvhbAb/U"

    # Community mirrors; untrusted, every download is signature-checked.
    DEFAULT_MIRRORS = [
        "https://pkg.machengine.org/zig",
        "https://zigmirror.hryx.net/zig",
        "https://zig.linus.dev/zig",
        "https://zig.squirl.dev",
        "https://zig.florent.dev",
        "https://zig.mirror.mschae23.de/zig",
        "https://zigmirror.meox.dev",
    ]

    MANIFEST_FILE = "build.zig.zon"
    MANIFEST_NOMINATED_FIELDS = ("mach_zig_version", "nominated_version")
    MANIFEST_MINIMUM_FIELDS = ("minimum_zig_version", "minimum_version")

    # Naming cutovers: (release, dev build on the next line) pairs.
    NAMING_ORDER_CUTOVER_RELEASE = "0.14.1"
    NAMING_ORDER_CUTOVER_DEV = "0.15.0-dev.631"
    NAMING_ARM_CUTOVER_DEV = "0.15.0-dev.1034"

    ARTIFACT_CACHE_PREFIX = "setup-zig-tarball"
    BUILD_CACHE_PREFIX = "setup-zig-cache"
    DEFAULT_CACHE_SIZE_LIMIT_MIB = 2048
    DEFAULT_JOB_IDENTITY = "local"
    BLOB_CACHE_DIRNAME = "setup-zig-blob-cache"
    TOOL_CACHE_DIRNAME = "setup-zig-tool-cache"
    USER_CACHE_SUBDIR = "setup-zig"
    LOCAL_CACHE_ENV = "ZIG_LOCAL_CACHE_DIR"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "SETUP_ZIG_LOG_LEVEL"
    LOG_FORMAT_ENV = "SETUP_ZIG_LOG_FORMAT"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 1024 * 1024
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "setup-zig-py/0.3"


# Host-reported machine names -> vendor architecture vocabulary.
ARCH_TOKENS = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv7l": "arm",
    "armv7a": "arm",
    "arm": "arm",
    "loongarch64": "loongarch64",
    "mips": "mips",
    "mipsel": "mipsel",
    "mips64": "mips64",
    "mips64el": "mips64el",
    "ppc64": "powerpc64",
    "ppc64le": "powerpc64",
    "powerpc64": "powerpc64",
    "powerpc64le": "powerpc64",
    "riscv64": "riscv64",
    "s390x": "s390x",
}

# platform.system() values -> vendor OS vocabulary.
OS_TOKENS = {
    "aix": "aix",
    "android": "android",
    "freebsd": "freebsd",
    "linux": "linux",
    "darwin": "macos",
    "openbsd": "openbsd",
    "sunos": "solaris",
    "windows": "windows",
}
