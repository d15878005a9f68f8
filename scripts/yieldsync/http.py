"""
Shared async HTTP plumbing for source adapters.

Every request carries an explicit timeout; transport failures, timeouts and
non-2xx statuses are raised as NetworkError, undecodable bodies as
ValidationError.
"""

import logging
import time
from typing import Any, Optional

import httpx

from .errors import NetworkError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "yieldsync/1.0 (DeFi yield synchronization)"


async def log_request(request: httpx.Request) -> None:
    logger.debug("HTTP %s %s", request.method, request.url)


def make_client(timeout: float = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> httpx.AsyncClient:
    """Create the AsyncClient shared by all adapters."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": user_agent, "Accept": "application/json"},
        event_hooks={"request": [log_request]},
        follow_redirects=True,
    )


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    source: Optional[str] = None,
    json: Any = None,
    params: Optional[dict] = None,
) -> Any:
    """Send a request and decode the JSON body.

    Raises:
        NetworkError: On timeout, connection failure or HTTP error status.
        ValidationError: If the body is not valid JSON.
    """
    t0 = time.perf_counter()
    try:
        response = await client.request(method, url, json=json, params=params)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timeout after {time.perf_counter() - t0:.2f}s: {method} {url}", source=source) from e
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise NetworkError(
            f"HTTP {status} {e.response.reason_phrase}: {method} {url}",
            source=source,
            status_code=status,
        ) from e
    except httpx.RequestError as e:
        raise NetworkError(f"Request failed for {url}: {e}", source=source) from e

    logger.debug("%s %s completed in %.2fs status=%d", method, url, time.perf_counter() - t0, response.status_code)

    try:
        return response.json()
    except ValueError as e:
        snippet = (response.text or "")[:200]
        raise ValidationError(f"Invalid JSON from {url}: {snippet!r}") from e
