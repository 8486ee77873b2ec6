"""Calls from order-service into auth-service and notification-service."""
import os
import asyncio
import logging
from typing import Optional

import httpx

from shared.errors import DeliveryError

logger = logging.getLogger(__name__)

# In Lambda point these at the deployed API URLs (API Gateway / Lambda URL / ALB).
AUTH_URL_INTERNAL = os.getenv("AUTH_URL_INTERNAL", "http://auth:8000").rstrip("/")
NOTIFY_URL_INTERNAL = os.getenv("NOTIFY_URL_INTERNAL", "http://notification:8000").rstrip("/")
SERVICE_API_KEY = os.getenv("SERVICE_API_KEY", "")

AUTH_SESSION_RETRIES = int(os.getenv("AUTH_SESSION_RETRIES", "3"))
AUTH_SESSION_BACKOFF = float(os.getenv("AUTH_SESSION_BACKOFF", "0.2"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

# Reuse client across invocations
_http_client: httpx.AsyncClient | None = None


def set_http_client(client: httpx.AsyncClient | None) -> None:
    global _http_client
    _http_client = client


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        # fallback in case lifespan didn't run (tests)
        _http_client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
    return _http_client


async def check_session(token: str) -> Optional[dict]:
    """
    Ask auth-service whether the token's session is still active.

    Returns the user dict, or None when unauthenticated. Timeouts, connection
    errors, unreadable bodies and 5xx answers are retried (session restore
    right after a reload can be briefly unavailable); running out of
    attempts counts as unauthenticated.
    """
    attempts = max(1, AUTH_SESSION_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            r = await get_http_client().get(
                f"{AUTH_URL_INTERNAL}/auth/session",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            logger.warning("session check failed attempt=%s error=%s", attempt, repr(e))
        else:
            if r.status_code in (401, 403):
                return None
            if r.status_code == 200:
                try:
                    return r.json()
                except ValueError:
                    logger.warning("session check bad body attempt=%s", attempt)
            else:
                logger.warning("session check failed attempt=%s status=%s", attempt, r.status_code)

        if attempt < attempts:
            await asyncio.sleep(AUTH_SESSION_BACKOFF * attempt)

    logger.warning("session check gave up after %s attempts", attempts)
    return None


async def request_status_broadcast(status: str, reason: Optional[str]) -> dict:
    headers = {"X-Service-Key": SERVICE_API_KEY} if SERVICE_API_KEY else {}
    body = {"status": status}
    if reason:
        body["reason"] = reason

    try:
        r = await get_http_client().post(
            f"{NOTIFY_URL_INTERNAL}/send-status-email",
            json=body,
            headers=headers,
        )
    except httpx.TimeoutException:
        raise DeliveryError(None, "Notification service timeout")
    except httpx.RequestError:
        raise DeliveryError(None, "Notification service unavailable")

    if r.status_code != 200:
        try:
            detail = r.json().get("error")
        except ValueError:
            detail = None
        raise DeliveryError(None, detail or f"Notification service returned {r.status_code}")

    try:
        return r.json()
    except ValueError:
        raise DeliveryError(None, "Bad response from notification service")
