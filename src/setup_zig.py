"""setup-zig - verified Zig installation and cross-run caching for CI.

The ``main`` phase resolves the version, restores or downloads (and
verifies) the release archive, extracts it, wires up PATH and the global
cache redirect, and restores the global Zig cache. The ``post`` phase runs
after the build and saves the global cache, clearing it first when it has
grown past the configured limit. The phases share state only through the
environment (``GITHUB_STATE``) and the blob cache.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from args import parse_args
from cache.keys import artifact_cache_keys, build_cache_keys
from cache.lifecycle import CacheLifecycle
from cache.store import LocalBlobCache
from cache.tool_cache import ToolCache
from common.ci import ActionsEnvironment
from common.logging_utils import Timer, configure_logging, extra_context, is_debug_enabled
from config import SetupConfig
from constants import Constants, ExitCodes, Phase
from download.extract import extract_archive
from download.mirrors import MirrorFetcher
from download.naming import (
    TargetIdentity,
    artifact_base_name,
    artifact_extension,
    artifact_filename,
    detect_host,
)
from errors import (
    ConfigurationError,
    DownloadError,
    FormatError,
    ResolutionError,
    SetupZigError,
    VerificationError,
)
from versioning.manifest import scan_string_fields
from versioning.resolver import VersionResolver

logger = logging.getLogger(__name__)

STATE_CACHE_DIR = "cache-dir"
STATE_CACHE_KEY = "cache-key"


@dataclass
class RunSummary:
    """Facts collected during the main phase for outputs and the job summary."""

    version: str = ""
    platform: str = ""
    tool_cache_hit: bool = False
    artifact_cache_hit: bool = False
    cache_enabled: bool = False
    build_cache_key: str = ""
    build_cache_hit_key: Optional[str] = None
    timings: Dict[str, int] = field(default_factory=dict)

    def to_markdown(self) -> str:
        rows = [
            "### Setup Zig",
            "",
            "| Item | Value |",
            "| --- | --- |",
            f"| Zig version | {self.version} |",
            f"| Platform | {self.platform} |",
            f"| Tool cache | {'HIT' if self.tool_cache_hit else 'MISS'} |",
            f"| Archive cache | {'HIT' if self.artifact_cache_hit else 'MISS'} |",
        ]
        if self.cache_enabled:
            status = "HIT" if self.build_cache_hit_key else "MISS"
            rows.append(f"| Global cache | {status} (`{self.build_cache_key}`) |")
        for name, value in self.timings.items():
            rows.append(f"| {name} | {value} ms |")
        return "\n".join(rows) + "\n"


def get_global_cache_dir(zig_exe: str) -> Path:
    """Ask the compiler for its global cache directory via ``zig env``.

    Older compilers print JSON, newer ones ZON; both are accepted.

    Raises:
        SetupZigError: If ``zig env`` fails or does not report the directory.
    """
    try:
        result = subprocess.run(
            [zig_exe, "env"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise SetupZigError(f"cannot run '{zig_exe} env': {exc}") from exc
    if result.returncode != 0:
        raise SetupZigError(f"'{zig_exe} env' exited with status {result.returncode}")

    output = result.stdout
    try:
        value = json.loads(output).get("global_cache_dir")
    except (json.JSONDecodeError, AttributeError):
        value = scan_string_fields(output).get("global_cache_dir")
    if not value:
        raise SetupZigError(f"'{zig_exe} env' did not report global_cache_dir")
    return Path(value)


def _zig_executable(zig_dir: Path, os_token: str) -> str:
    return str(zig_dir / ("zig.exe" if os_token == "windows" else "zig"))


def run_main(config: SetupConfig, env: ActionsEnvironment) -> RunSummary:
    """Install Zig and restore the global cache.

    Raises:
        SetupZigError: Any fatal error of the taxonomy.
    """
    temp_dir = Path(config.temp_dir)
    # Configuration problems must surface before any network activity.
    fetcher = MirrorFetcher(
        config.mirrors,
        override=config.mirror,
        download_dir=temp_dir / "setup-zig-downloads",
    )
    arch, os_token = detect_host()

    resolver = VersionResolver(config.version, manifest_path=Path(config.manifest))
    version = resolver.resolve()
    target = TargetIdentity(arch=arch, os=os_token, version=version)
    base_name = artifact_base_name(target)
    extension = artifact_extension(os_token)

    summary = RunSummary(version=version, platform=f"{arch}-{os_token}", cache_enabled=config.use_cache)
    lifecycle = CacheLifecycle(LocalBlobCache(config.cache_dir))

    use_tool_cache = config.effective_use_tool_cache(env)
    logger.info("Using tool-cache: %s", use_tool_cache)
    tool_cache = ToolCache(config.tool_cache_dir)
    zig_dir = tool_cache.find(Constants.TOOL_NAME, version, arch) if use_tool_cache else None

    if zig_dir is not None:
        logger.info("Using cached Zig installation from tool-cache")
        summary.tool_cache_hit = True
    else:
        filename = artifact_filename(target)
        logger.info("Fetching %s", filename)
        artifact = lifecycle.retrieve_artifact(
            filename,
            temp_dir / base_name,
            artifact_cache_keys(base_name).primary,
            fetcher.fetch,
        )
        summary.artifact_cache_hit = artifact.cache_hit
        summary.timings["Archive restore"] = artifact.restore_ms
        if not artifact.cache_hit:
            summary.timings["Fetch"] = artifact.fetch_ms

        with Timer() as t:
            parent = extract_archive(artifact.path, extension)
        summary.timings["Extract"] = t.duration_ms()
        logger.info("Extract took %d ms", t.duration_ms())

        zig_dir = parent / base_name
        if use_tool_cache:
            logger.info("Copying Zig installation to tool-cache")
            zig_dir = tool_cache.cache_dir(zig_dir, Constants.TOOL_NAME, version, arch)

    env.add_path(str(zig_dir))
    env.set_output("zig-version", version)
    env.set_output("zig-dir", str(zig_dir))

    # Every local cache funnels into the global cache so one directory covers all.
    global_cache = get_global_cache_dir(_zig_executable(zig_dir, os_token))
    env.export_variable(Constants.LOCAL_CACHE_ENV, str(global_cache))

    if config.use_cache:
        keys = build_cache_keys(base_name, config.job, config.cache_key)
        logger.info("Attempting restore of Zig cache")
        with Timer() as t:
            matched = lifecycle.restore_build_cache(global_cache, keys)
        summary.timings["Global cache restore"] = t.duration_ms()
        summary.build_cache_key = keys.primary
        summary.build_cache_hit_key = matched
        env.save_state(STATE_CACHE_DIR, str(global_cache))
        env.save_state(STATE_CACHE_KEY, keys.primary)
        env.set_output("cache-hit", "true" if matched else "false")
        env.set_output("cache-key", matched or "")

    if is_debug_enabled(logger):
        logger.debug(
            "Main phase finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="run_main",
                outcome="success",
                version=version
            )
        )
    env.append_summary(summary.to_markdown())
    return summary


def run_post(config: SetupConfig, env: ActionsEnvironment) -> bool:
    """Save the global cache after the build; returns whether anything was saved."""
    if not config.use_cache:
        logger.info("Caching disabled; nothing to save")
        return False

    cache_dir = env.get_state(STATE_CACHE_DIR)
    key = env.get_state(STATE_CACHE_KEY)
    if not cache_dir or not key:
        # No state from the main phase; derive everything again.
        arch, os_token = detect_host()
        version = VersionResolver(config.version, manifest_path=Path(config.manifest)).resolve()
        base_name = artifact_base_name(TargetIdentity(arch=arch, os=os_token, version=version))
        key = build_cache_keys(base_name, config.job, config.cache_key).primary
        try:
            cache_dir = str(get_global_cache_dir("zig"))
        except SetupZigError as exc:
            logger.info("Cannot locate the global Zig cache (%s); nothing to save", exc)
            return False

    lifecycle = CacheLifecycle(LocalBlobCache(config.cache_dir))
    result = lifecycle.save_build_cache(Path(cache_dir), key, config.cache_size_limit)
    return result.saved


def _setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def exit_code_for(exc: SetupZigError) -> ExitCodes:
    """Map the error taxonomy onto process exit codes."""
    if isinstance(exc, ConfigurationError):
        return ExitCodes.CONFIG_ERROR
    if isinstance(exc, ResolutionError):
        return ExitCodes.RESOLUTION_ERROR
    if isinstance(exc, (VerificationError, FormatError)):
        return ExitCodes.VERIFICATION_ERROR
    if isinstance(exc, DownloadError):
        return ExitCodes.CONNECTION_ERROR
    return ExitCodes.FILE_ERROR


def main(argv=None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    env = ActionsEnvironment()

    try:
        config = SetupConfig.from_sources(args, env)
        if args.phase == Phase.POST.value:
            run_post(config, env)
        else:
            run_main(config, env)
    except SetupZigError as exc:
        code = exit_code_for(exc)
        logger.error("%s", exc)
        env.report_error(str(exc))
        sys.exit(code.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
