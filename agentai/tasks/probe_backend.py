from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
HEALTH_PATH = "/health"


def probe_backend(
    base_url: str | None,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """GET ``<base_url>/health`` once with a bounded timeout.

    The result is advisory: the backend may come up after this container
    does, so every failure is logged and reported as ``False``.
    """
    if not base_url:
        logger.info("LLM router check skipped (LLM_ROUTER_URL not set)")
        return False

    url = base_url.rstrip("/") + HEALTH_PATH
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException:
        logger.warning("LLM router at %s timed out after %.1fs", url, timeout)
        return False
    except httpx.HTTPStatusError as exc:
        logger.warning("LLM router at %s returned HTTP %d", url, exc.response.status_code)
        return False
    except httpx.HTTPError as exc:
        logger.warning("LLM router at %s unreachable: %s", url, exc)
        return False

    logger.info("LLM router OK (%s)", url)
    return True
