"""Resolve a version specifier into one concrete, immutable version string."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from errors import DownloadError, ResolutionError
from .manifest import read_manifest_versions
from .models import ResolutionResult, SpecifierKind, VersionSpec
from .parser import is_release, parse_specifier, try_parse_version

logger = logging.getLogger(__name__)


class VersionResolver:
    """Resolver owning the single resolved version of one invocation.

    Construct once per run and hand the instance to dependents; ``resolve()``
    performs network lookups at most once and returns the same value on every
    later call.
    """

    def __init__(
        self,
        specifier: Optional[str],
        *,
        manifest_path: Optional[Path] = None,
        versions_index_url: str = Constants.VERSIONS_INDEX_URL,
        nominated_index_url: str = Constants.NOMINATED_INDEX_URL,
    ) -> None:
        self.spec: VersionSpec = parse_specifier(specifier)
        self._manifest_path = Path(manifest_path or Constants.MANIFEST_FILE)
        self._versions_index_url = versions_index_url
        self._nominated_index_url = nominated_index_url
        self._result: Optional[ResolutionResult] = None

    def resolve(self) -> str:
        """Return the resolved version, computing it on first use.

        Raises:
            ResolutionError: If a nominated name is unknown or an index fetch fails.
        """
        return self.resolve_result().version

    def resolve_result(self) -> ResolutionResult:
        """Like ``resolve`` but includes how the version was obtained."""
        if self._result is None:
            self._result = self._resolve_spec(self.spec)
            logger.info(
                "Resolved Zig version %s (%s)",
                self._result.version,
                self._result.source,
            )
        return self._result

    def _resolve_spec(self, spec: VersionSpec) -> ResolutionResult:
        if is_debug_enabled(logger):
            logger.debug(
                "Resolving version specifier",
                extra=extra_context(
                    event="decision",
                    component="version_resolver",
                    action="resolve",
                    kind=spec.kind.value,
                    requested=spec.raw or None
                )
            )
        if spec.kind == SpecifierKind.UNSPECIFIED:
            return self._resolve_from_manifest()
        if spec.kind == SpecifierKind.MASTER:
            return self._result_for(spec, self._master_version(), "index")
        if spec.kind == SpecifierKind.LATEST:
            return self._result_for(spec, self._latest_release(), "index")
        if spec.kind == SpecifierKind.NOMINATED:
            return self._result_for(spec, self._nominated_version(spec.raw), "nominated-index")
        return self._result_for(spec, spec.raw, "input")

    @staticmethod
    def _result_for(spec: VersionSpec, version: str, source: str) -> ResolutionResult:
        return ResolutionResult(requested=spec.raw, kind=spec.kind, version=version, source=source)

    def _resolve_from_manifest(self) -> ResolutionResult:
        found = read_manifest_versions(self._manifest_path)
        if found.nominated:
            logger.info("Using nominated version %s from %s", found.nominated, self._manifest_path)
            spec = VersionSpec(raw=found.nominated, kind=SpecifierKind.NOMINATED)
            return ResolutionResult(
                requested="",
                kind=SpecifierKind.NOMINATED,
                version=self._nominated_version(spec.raw),
                source="manifest",
            )
        if found.minimum:
            logger.info("Using minimum version %s from %s", found.minimum, self._manifest_path)
            return ResolutionResult(
                requested="",
                kind=SpecifierKind.EXPLICIT,
                version=found.minimum,
                source="manifest",
            )
        logger.info("No version in %s; falling back to latest release", self._manifest_path)
        return ResolutionResult(
            requested="",
            kind=SpecifierKind.LATEST,
            version=self._latest_release(),
            source="index",
        )

    def _fetch_index(self, url: str, what: str) -> Dict[str, Any]:
        try:
            data = get_json(url, context=what)
        except DownloadError as exc:
            raise ResolutionError(f"could not fetch {what}: {exc}", context=exc.context) from exc
        if not isinstance(data, dict):
            raise ResolutionError(f"{what} has unexpected structure", context={"url": url})
        return data

    def _master_version(self) -> str:
        versions = self._fetch_index(self._versions_index_url, "version index")
        entry = versions.get(Constants.MASTER)
        if not isinstance(entry, dict) or not isinstance(entry.get("version"), str):
            raise ResolutionError("version index has no 'master' entry")
        return entry["version"]

    def _latest_release(self) -> str:
        """Pick the greatest full release in the version index (master excluded)."""
        versions = self._fetch_index(self._versions_index_url, "version index")
        best_name: Optional[str] = None
        best = None
        for name in versions:
            if name == Constants.MASTER:
                continue
            parsed = try_parse_version(name)
            if parsed is None or not is_release(parsed):
                continue
            if best is None or parsed > best:
                best_name, best = name, parsed
        if best_name is None:
            raise ResolutionError("version index lists no releases")
        return best_name

    def _nominated_version(self, name: str) -> str:
        versions = self._fetch_index(self._nominated_index_url, "nominated version index")
        entry = versions.get(name)
        if not isinstance(entry, dict) or not isinstance(entry.get("version"), str):
            raise ResolutionError(
                f"Mach nominated version '{name}' not found",
                context={"name": name},
            )
        return entry["version"]
