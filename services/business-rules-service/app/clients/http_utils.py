# services/business-rules-service/app/clients/http_utils.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from app.config import settings

logger = logging.getLogger("app.clients.http")


# One shared AsyncClient per base_url (connection pooling + timeouts)
_clients: dict[str, httpx.AsyncClient] = {}
_clients_lock = asyncio.Lock()


async def get_http_client(base_url: str, *, auth: Optional[Tuple[str, str]] = None) -> httpx.AsyncClient:
    async with _clients_lock:
        client = _clients.get(base_url)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=settings.http_client_timeout_seconds,
                auth=httpx.BasicAuth(*auth) if auth else None,
                headers={
                    "Accept": "application/json",
                    "User-Agent": f"business-rules/{settings.service_name}",
                },
            )
            _clients[base_url] = client
            logger.info("HTTP client created for %s", base_url)
        return client


async def close_http_clients() -> None:
    async with _clients_lock:
        for base_url, client in list(_clients.items()):
            if not client.is_closed:
                await client.aclose()
                logger.info("HTTP client closed for %s", base_url)
        _clients.clear()


def response_body(resp: httpx.Response, limit: int = 500) -> str:
    # keep body for debugging (limited)
    try:
        return resp.text[:limit]
    except Exception:
        return ""


# Retries only when the request never produced a response (connect/read/timeout).
# HTTP error statuses are answers from the engine and are not retried.
# Only for idempotent calls (PUT/DELETE): a read timeout may hide a processed request.
def retryable_call(fn):
    return retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(max(1, settings.engine_retry_attempts)),
        wait=wait_exponential_jitter(initial=0.2, max=2.0),
        reraise=True,
    )(fn)


# Non-idempotent calls (POST) are retried only when the request never reached the engine.
def retryable_connect(fn):
    return retry(
        retry=retry_if_exception_type((httpx.ConnectError, httpx.ConnectTimeout)),
        stop=stop_after_attempt(max(1, settings.engine_retry_attempts)),
        wait=wait_exponential_jitter(initial=0.2, max=2.0),
        reraise=True,
    )(fn)
