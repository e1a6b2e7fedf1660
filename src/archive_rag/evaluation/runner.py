"""Remote evaluation runner: triggers batch runs on a live server and fetches their results."""

from __future__ import annotations

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
# A batch runs inside one request, so the client waits as long as the server's batch timeout.
DEFAULT_TIMEOUT = 960.0


async def check_health(client: httpx.AsyncClient) -> dict:
    try:
        response = await client.get("/health")
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ConnectionError(
            f"Cannot reach server at {client.base_url}/health, is it running? Error: {e}"
        ) from e
    return response.json()


async def run_remote_rag_eval(
    base_url: str = DEFAULT_BASE_URL,
    mode: str = "auto",
    limit: int = 5,
    threshold: float = 0.30,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Start an LLM-judge run and return the finished run with its results."""
    async with httpx.AsyncClient(
        base_url=base_url, timeout=httpx.Timeout(timeout), transport=transport
    ) as client:
        await check_health(client)
        response = await client.post(
            "/eval/run", json={"mode": mode, "limit": limit, "threshold": threshold}
        )
        response.raise_for_status()
        return response.json()


async def run_remote_citation_eval(
    base_url: str = DEFAULT_BASE_URL,
    limit: int = 5,
    threshold: float = 0.30,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Start a citation-accuracy batch and return its aggregate and per-question results."""
    async with httpx.AsyncClient(
        base_url=base_url, timeout=httpx.Timeout(timeout), transport=transport
    ) as client:
        await check_health(client)
        response = await client.post(
            "/eval/citation-accuracy/batch", json={"limit": limit, "threshold": threshold}
        )
        response.raise_for_status()
        return response.json()
