"""Thin httpx client for the FastAPI backend."""

import logging

import httpx

from bot.config import settings

logger = logging.getLogger(__name__)
API = settings.API_BASE_URL


async def api_request(method: str, endpoint: str, **kwargs) -> tuple[dict | list | None, str | None]:
    """
    Call the backend and return ``(data, error)``.

    ``error`` carries the API's ``detail`` string on a 4xx/5xx, or a generic
    message when the backend is unreachable. Never raises.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.API_TIMEOUT_SECONDS) as client:
            resp = await client.request(
                method,
                f"{API}{endpoint}",
                params=kwargs.get("params"),
                json=kwargs.get("json"),
            )
    except httpx.HTTPError as e:
        logger.error("⚠️ API call error: %s %s: %s", method, endpoint, e)
        return None, "Service is temporarily unavailable. Please try again."

    if resp.status_code in (200, 201):
        return resp.json(), None

    try:
        body = resp.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    logger.warning("⚠️ API error: %s %s → %s %s", method, endpoint, resp.status_code, resp.text[:200])
    return None, detail if isinstance(detail, str) else "Request failed. Please try again."


async def api_call(method: str, endpoint: str, **kwargs) -> dict | list | None:
    """Helper to call FastAPI backend; ``None`` on any failure."""
    data, _ = await api_request(method, endpoint, **kwargs)
    return data
