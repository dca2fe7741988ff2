"""Shared HTTP client utilities for registry and tarball access.

Provides a thin wrapper around ``httpx`` with standardised timeouts,
user-agent headers, and error handling, so that HTTP behaviour is
consistent and testable.

Raises ``HttpError`` (a subclass of ``PackVerifyError``) on unrecoverable
HTTP failures; callers decide which step that failure belongs to.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import httpx

from packverify.exceptions import HttpError

logger = logging.getLogger(__name__)

# Timeout for all HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = "packverify/0.1"

# Chunk size for streamed downloads.
STREAM_CHUNK_SIZE: int = 64 * 1024


async def fetch_json(
    url: str,
    *,
    params: dict[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> Any:  # noqa: ANN401
    """Fetch a URL and parse the response as JSON.

    Args:
        url: The URL to fetch.
        params: Optional query parameters.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON response.

    Raises:
        HttpError: On HTTP errors, timeouts, or invalid JSON.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            follow_redirects=True,
        ) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise HttpError(f"Timeout fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise HttpError(f"HTTP {exc.response.status_code} from {url}") from exc
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise HttpError(f"Request error for {url}: {exc}") from exc


@contextmanager
def stream_bytes(
    url: str,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> Iterator[Iterator[bytes]]:
    """Open a streaming GET and yield an iterator over body chunks.

    The body is never buffered whole. Transport errors raised while the
    caller iterates are converted to ``HttpError`` as well.

    Usage::

        with stream_bytes(tarball_url) as chunks:
            for chunk in chunks:
                ...

    Raises:
        HttpError: On HTTP errors, timeouts, or transport failures.
    """
    try:
        with httpx.stream(
            "GET",
            url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as resp:
            resp.raise_for_status()
            yield resp.iter_bytes(chunk_size)
    except httpx.TimeoutException as exc:
        logger.warning("Timeout streaming %s", url)
        raise HttpError(f"Timeout streaming {url}") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("HTTP %d from %s", exc.response.status_code, url)
        raise HttpError(f"HTTP {exc.response.status_code} from {url}") from exc
    except (httpx.RequestError, httpx.StreamError) as exc:
        logger.warning("Stream error for %s: %s", url, exc)
        raise HttpError(f"Stream error for {url}: {exc}") from exc
