"""Configuration surface: version, mirror, cache options and paths.

Precedence, highest first: CLI arguments, action inputs from the environment
(``INPUT_*``), the YAML config file, built-in defaults.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from common.ci import ActionsEnvironment
from constants import Constants
from download.mirrors import load_mirror_list
from errors import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE = ("true",)
_FALSE = ("false",)


def parse_bool(value: Any, name: str) -> bool:
    """Accept YAML booleans and the strings ``true``/``false`` (any case)."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid '{name}' value. Valid values: 'true', 'false'")


def parse_size_limit(value: Any) -> int:
    """Cache size limit in MiB; 0 disables the limit."""
    try:
        limit = int(str(value).strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid 'cache-size-limit' value: {value!r}") from exc
    if limit < 0:
        raise ConfigurationError("'cache-size-limit' must not be negative")
    return limit


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML config file; a missing path yields an empty mapping.

    Raises:
        ConfigurationError: If the file exists but cannot be parsed.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to load config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def default_persistent_root(env: ActionsEnvironment) -> Path:
    """Directory that survives between jobs on this host.

    The runner tool cache when available, otherwise the per-user cache
    directory (``XDG_CACHE_HOME`` or ``~/.cache``).
    """
    if env.tool_cache:
        return Path(env.tool_cache)
    xdg = env.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / Constants.USER_CACHE_SUBDIR


@dataclass
class SetupConfig:
    """Resolved configuration for one invocation."""

    version: str = ""
    mirror: str = ""
    use_cache: bool = True
    cache_key: str = ""
    cache_size_limit: int = Constants.DEFAULT_CACHE_SIZE_LIMIT_MIB
    use_tool_cache: Optional[bool] = None
    mirrors: List[str] = field(default_factory=lambda: list(Constants.DEFAULT_MIRRORS))
    manifest: str = Constants.MANIFEST_FILE
    cache_dir: str = ""
    tool_cache_dir: str = ""
    temp_dir: str = ""
    job: str = ""

    def effective_use_tool_cache(self, env: ActionsEnvironment) -> bool:
        """Tool cache defaults to off on GitHub-hosted runners (slow disk), on elsewhere."""
        if self.use_tool_cache is not None:
            return self.use_tool_cache
        return not env.is_github_hosted

    @classmethod
    def from_sources(cls, args: Any, env: ActionsEnvironment) -> "SetupConfig":
        """Merge CLI arguments, action inputs and the YAML config file.

        Args:
            args: Parsed CLI arguments namespace.
            env: The process environment wrapper.

        Returns:
            SetupConfig instance.
        """
        file_cfg = load_config_file(getattr(args, "CONFIG", None))

        def pick(arg_name: str, input_name: str, file_key: str) -> Any:
            value = getattr(args, arg_name, None)
            if value is not None:
                return value
            value = env.get_input(input_name)
            if value is not None and value != "":
                return value
            return file_cfg.get(file_key)

        config = cls()
        version = pick("VERSION", "version", "version")
        if version is not None:
            config.version = str(version).strip()
        mirror = pick("MIRROR", "mirror", "mirror")
        if mirror is not None:
            config.mirror = str(mirror).strip()
        use_cache = pick("USE_CACHE", "use-cache", "use-cache")
        if use_cache is not None:
            config.use_cache = parse_bool(use_cache, "use-cache")
        cache_key = pick("CACHE_KEY", "cache-key", "cache-key")
        if cache_key is not None:
            config.cache_key = str(cache_key).strip()
        size_limit = pick("CACHE_SIZE_LIMIT", "cache-size-limit", "cache-size-limit")
        if size_limit is not None:
            config.cache_size_limit = parse_size_limit(size_limit)
        use_tool_cache = pick("USE_TOOL_CACHE", "use-tool-cache", "use-tool-cache")
        if use_tool_cache is not None:
            config.use_tool_cache = parse_bool(use_tool_cache, "use-tool-cache")

        mirrors_file = getattr(args, "MIRRORS_FILE", None) or file_cfg.get("mirrors-file")
        if mirrors_file:
            config.mirrors = load_mirror_list(mirrors_file)
        elif isinstance(file_cfg.get("mirrors"), list):
            config.mirrors = [str(m) for m in file_cfg["mirrors"]]

        config.manifest = getattr(args, "MANIFEST", None) or file_cfg.get("manifest") or config.manifest
        temp_root = (
            getattr(args, "TEMP_DIR", None)
            or file_cfg.get("temp-dir")
            or env.runner_temp
            or tempfile.gettempdir()
        )
        config.temp_dir = str(temp_root)
        # RUNNER_TEMP is wiped after every job; caches must live elsewhere.
        persistent_root = default_persistent_root(env)
        config.cache_dir = str(
            getattr(args, "CACHE_DIR", None)
            or file_cfg.get("cache-dir")
            or persistent_root / Constants.BLOB_CACHE_DIRNAME
        )
        config.tool_cache_dir = str(
            getattr(args, "TOOL_CACHE_DIR", None)
            or file_cfg.get("tool-cache-dir")
            or env.tool_cache
            or persistent_root / Constants.TOOL_CACHE_DIRNAME
        )
        config.job = env.job or str(file_cfg.get("job") or "")
        return config
