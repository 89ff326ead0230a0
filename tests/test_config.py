"""Tests for configuration merging."""

import argparse
import json
from pathlib import Path

import pytest

from common.ci import ActionsEnvironment
from config import SetupConfig, default_persistent_root, load_config_file, parse_bool, parse_size_limit
from constants import Constants
from errors import ConfigurationError


def _args(**overrides):
    fields = dict(
        VERSION=None, MIRROR=None, MIRRORS_FILE=None, USE_CACHE=None, CACHE_KEY=None,
        CACHE_SIZE_LIMIT=None, USE_TOOL_CACHE=None, MANIFEST=None, CACHE_DIR=None,
        TOOL_CACHE_DIR=None, TEMP_DIR=None, CONFIG=None,
    )
    fields.update(overrides)
    return argparse.Namespace(**fields)


class TestParsers:
    """Scalar value parsing."""

    @pytest.mark.parametrize("value,expected", [("true", True), ("FALSE", False), (True, True), (" True ", True)])
    def test_parse_bool(self, value, expected):
        assert parse_bool(value, "use-cache") is expected

    @pytest.mark.parametrize("value", ["yes", "1", "", "on"])
    def test_parse_bool_rejects(self, value):
        with pytest.raises(ConfigurationError):
            parse_bool(value, "use-cache")

    def test_size_limit(self):
        assert parse_size_limit("0") == 0
        assert parse_size_limit(512) == 512

    @pytest.mark.parametrize("value", ["-1", "lots", "1.5"])
    def test_size_limit_rejects(self, value):
        with pytest.raises(ConfigurationError):
            parse_size_limit(value)


class TestLoadConfigFile:
    """YAML config loading."""

    def test_no_path(self):
        assert load_config_file(None) == {}

    def test_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config_file(str(tmp_path / "absent.yml"))

    def test_not_mapping(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("version: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))


class TestFromSources:
    """Precedence: CLI, then inputs, then config file, then defaults."""

    def test_defaults(self, tmp_path):
        env = ActionsEnvironment({"RUNNER_TEMP": str(tmp_path)})
        config = SetupConfig.from_sources(_args(), env)
        assert config.version == ""
        assert config.use_cache is True
        assert config.cache_size_limit == Constants.DEFAULT_CACHE_SIZE_LIMIT_MIB
        assert config.mirrors == Constants.DEFAULT_MIRRORS
        assert config.temp_dir == str(tmp_path)
        assert config.manifest == "build.zig.zon"

    def test_precedence(self, tmp_path):
        cfg = tmp_path / "c.yml"
        cfg.write_text("version: 0.11.0\ncache-key: from-file\nuse-cache: false\ncache-size-limit: 10\n")
        env = ActionsEnvironment({"INPUT_VERSION": "0.12.0", "INPUT_CACHE-KEY": "from-input"})
        config = SetupConfig.from_sources(_args(VERSION="0.13.0", CONFIG=str(cfg), TEMP_DIR=str(tmp_path)), env)
        assert config.version == "0.13.0"
        assert config.cache_key == "from-input"
        assert config.use_cache is False
        assert config.cache_size_limit == 10

    def test_empty_input_treated_as_unset(self, tmp_path):
        cfg = tmp_path / "c.yml"
        cfg.write_text("version: 0.11.0\n")
        env = ActionsEnvironment({"INPUT_VERSION": ""})
        config = SetupConfig.from_sources(_args(CONFIG=str(cfg), TEMP_DIR=str(tmp_path)), env)
        assert config.version == "0.11.0"

    def test_invalid_boolean_input(self, tmp_path):
        env = ActionsEnvironment({"INPUT_USE-CACHE": "yes"})
        with pytest.raises(ConfigurationError):
            SetupConfig.from_sources(_args(TEMP_DIR=str(tmp_path)), env)

    def test_mirrors_file(self, tmp_path):
        mirrors = tmp_path / "mirrors.json"
        mirrors.write_text(json.dumps(["https://m1.example/zig"]))
        config = SetupConfig.from_sources(
            _args(MIRRORS_FILE=str(mirrors), TEMP_DIR=str(tmp_path)), ActionsEnvironment({})
        )
        assert config.mirrors == ["https://m1.example/zig"]

    def test_job_from_environment(self, tmp_path):
        env = ActionsEnvironment({"GITHUB_JOB": "build-linux", "RUNNER_TOOL_CACHE": "/opt/hostedtoolcache"})
        config = SetupConfig.from_sources(_args(TEMP_DIR=str(tmp_path)), env)
        assert config.job == "build-linux"
        assert config.tool_cache_dir == "/opt/hostedtoolcache"


class TestToolCacheDefault:
    """Tool cache default depends on the runner."""

    def test_off_on_github_hosted(self):
        env = ActionsEnvironment({"RUNNER_ENVIRONMENT": "github-hosted"})
        assert SetupConfig().effective_use_tool_cache(env) is False

    def test_on_elsewhere(self):
        assert SetupConfig().effective_use_tool_cache(ActionsEnvironment({})) is True

    def test_explicit_wins(self):
        env = ActionsEnvironment({"RUNNER_ENVIRONMENT": "github-hosted"})
        assert SetupConfig(use_tool_cache=True).effective_use_tool_cache(env) is True


class TestPersistentDefaults:
    """Cache roots default to directories that outlive the job."""

    def test_blob_cache_not_under_runner_temp(self, tmp_path):
        runner_temp = tmp_path / "_temp"
        env = ActionsEnvironment({"RUNNER_TEMP": str(runner_temp), "RUNNER_TOOL_CACHE": "/opt/hostedtoolcache"})
        config = SetupConfig.from_sources(_args(), env)
        assert config.temp_dir == str(runner_temp)
        assert not config.cache_dir.startswith(str(runner_temp))
        assert config.cache_dir == str(Path("/opt/hostedtoolcache") / "setup-zig-blob-cache")

    def test_user_cache_dir_without_tool_cache(self, tmp_path):
        env = ActionsEnvironment({"RUNNER_TEMP": str(tmp_path / "_temp"), "XDG_CACHE_HOME": str(tmp_path / "xdg")})
        config = SetupConfig.from_sources(_args(), env)
        assert config.cache_dir == str(tmp_path / "xdg" / "setup-zig" / "setup-zig-blob-cache")
        assert config.tool_cache_dir == str(tmp_path / "xdg" / "setup-zig" / "setup-zig-tool-cache")

    def test_explicit_cache_dir_wins(self, tmp_path):
        env = ActionsEnvironment({"RUNNER_TOOL_CACHE": "/opt/hostedtoolcache"})
        config = SetupConfig.from_sources(_args(CACHE_DIR=str(tmp_path / "blobs"), TEMP_DIR=str(tmp_path)), env)
        assert config.cache_dir == str(tmp_path / "blobs")

    def test_home_cache_fallback(self, tmp_path, monkeypatch):
        monkeypatch.setattr("config.Path.home", lambda: tmp_path / "home")
        assert default_persistent_root(ActionsEnvironment({})) == tmp_path / "home" / ".cache" / "setup-zig"
