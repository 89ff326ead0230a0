"""Argument parsing functionality for setup-zig."""

import argparse

from constants import Phase


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="setup-zig",
        description=(
            "Install a verified Zig compiler and cache it, plus the global "
            "Zig cache, across CI runs"
        ),
        add_help=True,
    )

    parser.add_argument("phase",
                        help="'main' installs Zig and restores caches; "
                             "'post' saves the global Zig cache after the build",
                        nargs="?",
                        default=Phase.MAIN.value,
                        choices=[p.value for p in Phase])

    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help='Zig version, e.g. "0.13.0", "0.13.0-dev.351+64ef45eb0", '
                             '"master", "latest" or a Mach nominated version. '
                             'Empty uses build.zig.zon, falling back to "latest".',
                        action="store", type=str)
    parser.add_argument("--mirror",
                        dest="MIRROR",
                        help="Use only this download mirror (ziglang.org is not allowed)",
                        action="store", type=str)
    parser.add_argument("--mirrors-file",
                        dest="MIRRORS_FILE",
                        help="JSON file listing candidate mirrors",
                        action="store", type=str)
    parser.add_argument("--use-cache",
                        dest="USE_CACHE",
                        help="Whether to cache the global Zig cache directory (true/false)",
                        action="store", type=str)
    parser.add_argument("--cache-key",
                        dest="CACHE_KEY",
                        help="Additional cache key component, e.g. matrix variables",
                        action="store", type=str)
    parser.add_argument("--cache-size-limit",
                        dest="CACHE_SIZE_LIMIT",
                        help="Maximum global cache size in MiB before it is cleared (0 = no limit)",
                        action="store", type=str)
    parser.add_argument("--use-tool-cache",
                        dest="USE_TOOL_CACHE",
                        help="Cache extracted installations (true/false); default depends on runner",
                        action="store", type=str)
    parser.add_argument("--manifest",
                        dest="MANIFEST",
                        help="Project manifest to read the version from (default: build.zig.zon)",
                        action="store", type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory backing the blob cache",
                        action="store", type=str)
    parser.add_argument("--tool-cache-dir",
                        dest="TOOL_CACHE_DIR",
                        help="Directory holding extracted installations",
                        action="store", type=str)
    parser.add_argument("--temp-dir",
                        dest="TEMP_DIR",
                        help="Scratch directory (default: RUNNER_TEMP or the system temp dir)",
                        action="store", type=str)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
