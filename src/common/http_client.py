"""Shared HTTP helpers used by version resolution and mirror downloads.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Every failure surfaces as ``DownloadError``;
callers decide whether it is fatal (index fetches, forced mirror) or just a
reason to move on to the next candidate (mirror loop).
"""
from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from errors import DownloadError

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {"User-Agent": Constants.USER_AGENT}


def _headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = dict(_DEFAULT_HEADERS)
    if headers:
        merged.update(headers)
    return merged


def safe_get(url: str, *, context: str, stream: bool = False, **kwargs: Any) -> requests.Response:
    """Perform a single GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "mirror", "index").
        stream: Passed through to requests.get for large bodies.
        **kwargs: Additional requests.get parameters.

    Returns:
        requests.Response: A response with a 2xx status code.

    Raises:
        DownloadError: On timeout, connection failure or non-2xx status.
    """
    safe_target = safe_url(url)
    headers = _headers(kwargs.pop("headers", None))
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(
                url,
                timeout=Constants.REQUEST_TIMEOUT,
                headers=headers,
                stream=stream,
                **kwargs
            )
        except requests.Timeout as exc:
            raise DownloadError(
                f"{context} request timed out after {Constants.REQUEST_TIMEOUT} seconds",
                context={"url": safe_target},
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            raise DownloadError(
                f"{context} connection error: {exc}",
                context={"url": safe_target},
            ) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if res.ok else "http_error",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
    if not res.ok:
        res.close()
        raise DownloadError(
            f"{context} request to {safe_target} failed with HTTP {res.status_code}",
            context={"url": safe_target, "status_code": str(res.status_code)},
        )
    return res


def get_bytes(url: str, *, context: str, **kwargs: Any) -> bytes:
    """Fetch a small resource fully into memory."""
    res = safe_get(url, context=context, **kwargs)
    return res.content


def download_file(url: str, dest: Path, *, context: str, **kwargs: Any) -> Path:
    """Stream a (possibly large) resource to ``dest``.

    The body is written to a sibling temporary file and moved into place only
    once complete, so a failed transfer never leaves a truncated file behind.

    Args:
        url: Target URL.
        dest: Final file path.
        context: Human-readable source tag for logs.

    Returns:
        Path: ``dest``.

    Raises:
        DownloadError: On any network or filesystem failure.
    """
    dest = Path(dest)
    tmp_path = dest.with_name(dest.name + ".part")
    res = safe_get(url, context=context, stream=True, **kwargs)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "wb") as fh:
            for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
        os.replace(tmp_path, dest)
    except requests.RequestException as exc:
        tmp_path.unlink(missing_ok=True)
        raise DownloadError(
            f"{context} transfer from {safe_url(url)} interrupted: {exc}",
            context={"url": safe_url(url)},
        ) from exc
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise DownloadError(
            f"could not write {dest}: {exc}",
            context={"url": safe_url(url), "path": str(dest)},
        ) from exc
    finally:
        res.close()
    return dest


def get_json(url: str, *, context: str, **kwargs: Any) -> Any:
    """Perform GET request with retries and parse the JSON body.

    Index resources are not mirrors, so transient failures are retried here
    with exponential backoff before giving up.

    Args:
        url: Target URL
        context: Human-readable source tag for logs.
        **kwargs: Additional requests.get parameters

    Returns:
        The parsed JSON document.

    Raises:
        DownloadError: When every attempt fails or the body is not JSON.
    """
    last_error: Optional[DownloadError] = None
    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        try:
            res = safe_get(url, context=context, **kwargs)
        except DownloadError as exc:
            last_error = exc
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP attempt failed",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="get_json",
                        attempt=attempt + 1,
                        target=safe_url(url)
                    )
                )
            continue
        try:
            return res.json()
        except (ValueError, json.JSONDecodeError) as exc:
            raise DownloadError(
                f"{context} response from {safe_url(url)} is not valid JSON",
                context={"url": safe_url(url)},
            ) from exc

    assert last_error is not None
    raise DownloadError(
        f"{context} request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_error}",
        context=last_error.context,
    ) from last_error
