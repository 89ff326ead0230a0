"""Cache key derivation for the artifact and the build-cache directory.

The artifact key has no restore fallbacks at all: a prefix match could hand
back a different version's tarball. The build-cache key allows exactly one
fallback, the same artifact without the user disambiguator; version-agnostic
or prefix-only fallbacks would restore a cache built by another compiler.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from constants import Constants

_NON_WORD = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class CacheKeys:
    """A primary key plus ordered restore fallbacks."""

    primary: str
    restore_keys: Tuple[str, ...] = ()


def sanitize_job_identity(job: str) -> str:
    """Collapse every non-alphanumeric character of a job id to ``_``."""
    job = job.strip() or Constants.DEFAULT_JOB_IDENTITY
    return _NON_WORD.sub("_", job)


def artifact_cache_key(artifact_base_name: str) -> str:
    return f"{Constants.ARTIFACT_CACHE_PREFIX}-{artifact_base_name}"


def artifact_cache_keys(artifact_base_name: str) -> CacheKeys:
    """Exact-match only keys for the compressed artifact."""
    return CacheKeys(primary=artifact_cache_key(artifact_base_name))


def build_cache_keys(artifact_base_name: str, job: str, user_key: str = "") -> CacheKeys:
    """Keys for the persistent build-cache directory.

    Args:
        artifact_base_name: Target artifact name (encodes version, arch and OS).
        job: Calling workflow job id; sanitized here.
        user_key: Optional operator-supplied disambiguator for matrix jobs.

    Returns:
        CacheKeys: ``{prefix}-{job}-{artifact}[-{user_key}]`` with, when a
        user key is set, the user-key-less variant as the only fallback.
    """
    base = f"{Constants.BUILD_CACHE_PREFIX}-{sanitize_job_identity(job)}-{artifact_base_name}"
    user_key = user_key.strip()
    if not user_key:
        return CacheKeys(primary=base)
    return CacheKeys(primary=f"{base}-{user_key}", restore_keys=(base,))
