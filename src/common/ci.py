"""GitHub Actions environment plumbing.

Reads action inputs and writes the file-based workflow commands
(``GITHUB_PATH``, ``GITHUB_ENV``, ``GITHUB_OUTPUT``, ``GITHUB_STATE``,
``GITHUB_STEP_SUMMARY``). Outside a runner the files are absent and values
are only logged, so the tool also works from a plain shell.
"""
from __future__ import annotations

import logging
import os
import uuid
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class ActionsEnvironment:
    """Accessor for one process environment (``os.environ`` by default)."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self.environ = os.environ if environ is None else environ

    @property
    def in_actions(self) -> bool:
        return self.environ.get("GITHUB_ACTIONS") == "true"

    @property
    def is_github_hosted(self) -> bool:
        return self.environ.get("RUNNER_ENVIRONMENT") == "github-hosted"

    @property
    def job(self) -> str:
        return self.environ.get("GITHUB_JOB", "")

    @property
    def runner_temp(self) -> Optional[str]:
        return self.environ.get("RUNNER_TEMP") or None

    @property
    def tool_cache(self) -> Optional[str]:
        return self.environ.get("RUNNER_TOOL_CACHE") or None

    def get_input(self, name: str) -> Optional[str]:
        """Return action input ``name`` (``INPUT_<NAME>``), or None if unset."""
        value = self.environ.get("INPUT_" + name.replace(" ", "_").upper())
        if value is None:
            return None
        return value.strip()

    def get_state(self, name: str) -> Optional[str]:
        return self.environ.get(f"STATE_{name}") or None

    def _append(self, variable: str, line: str) -> bool:
        path = self.environ.get(variable)
        if not path:
            return False
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(line)
        return True

    def _append_pair(self, variable: str, name: str, value: str) -> bool:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            return self._append(variable, f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        return self._append(variable, f"{name}={value}\n")

    def add_path(self, directory: str) -> None:
        if not self._append("GITHUB_PATH", f"{directory}\n"):
            logger.info("Add to PATH: %s", directory)

    def export_variable(self, name: str, value: str) -> None:
        if not self._append_pair("GITHUB_ENV", name, value):
            logger.info("Export %s=%s", name, value)

    def set_output(self, name: str, value: str) -> None:
        if not self._append_pair("GITHUB_OUTPUT", name, value):
            logger.debug("Output %s=%s", name, value)

    def save_state(self, name: str, value: str) -> None:
        if not self._append_pair("GITHUB_STATE", name, value):
            logger.debug("State %s=%s", name, value)

    def append_summary(self, markdown: str) -> None:
        self._append("GITHUB_STEP_SUMMARY", markdown if markdown.endswith("\n") else markdown + "\n")

    def report_error(self, message: str) -> None:
        """Emit an ``::error::`` annotation when running inside Actions."""
        if self.in_actions:
            escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
            print(f"::error::{escaped}", flush=True)
