"""Remote delivery reads over HTTP with a bounded timeout.

Used when a representation lives behind delivery URLs instead of a local
blob store. Every failure, including a timeout, surfaces as
``StreamReadError`` so the caller can move on to its next strategy.
"""

from __future__ import annotations

import logging

import httpx

from attachctx.config import DEFAULT_REMOTE_TIMEOUT_SECONDS
from attachctx.errors import StreamReadError

logger = logging.getLogger(__name__)

USER_AGENT = "attachctx/1.0"


def fetch_bytes(
    url: str,
    *,
    timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    client: httpx.Client | None = None,
) -> bytes:
    """Download ``url`` and return its body.

    Redirects are followed. Anything other than a non-empty ``200`` response
    raises ``StreamReadError``.
    """
    headers = {"User-Agent": USER_AGENT}
    try:
        if client is None:
            with httpx.Client(timeout=timeout, follow_redirects=True, headers=headers) as owned:
                response = owned.get(url)
        else:
            response = client.get(url, timeout=timeout, headers=headers, follow_redirects=True)
    except httpx.TimeoutException as exc:
        logger.warning("Timed out after %.1fs fetching %s", timeout, url)
        raise StreamReadError(url, f"timed out after {timeout:g}s") from exc
    except httpx.HTTPError as exc:
        logger.warning("Transport error fetching %s: %s", url, exc)
        raise StreamReadError(url, str(exc)) from exc

    if response.status_code != 200:
        logger.warning("HTTP %s fetching %s", response.status_code, url)
        raise StreamReadError(url, f"HTTP {response.status_code}")
    if not response.content:
        logger.warning("Empty body fetching %s", url)
        raise StreamReadError(url, "empty body")
    return response.content
