"""
Shared HTTP client for GitHub API operations.

One pooled AsyncClient serves every sync so concurrent users reuse
connections instead of paying a TLS handshake per request.
"""

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

# Module-level singleton client
_client: httpx.AsyncClient | None = None


def get_github_client() -> httpx.AsyncClient:
    """
    Get or create the shared HTTP client for GitHub API calls.

    Auth headers are passed per-request, not stored on the client.
    """
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=settings.github_api_url,
            timeout=httpx.Timeout(settings.github_fetch_timeout_seconds, connect=5.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            http2=True,
        )
        logger.debug("Created new GitHub HTTP client with connection pooling")
    return _client


async def close_github_client() -> None:
    """Close the shared HTTP client. Called on app shutdown."""
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        _client = None
        logger.debug("Closed GitHub HTTP client")
