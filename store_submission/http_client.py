"""HTTP client factory for interacting with the Store submission API."""

import httpx


def create_store_http_client(service_url: str, *, timeout: float = 30.0) -> httpx.AsyncClient:
    """
    Build an AsyncClient configured for the Store submission service.

    Authentication is applied per request by the transport, so the client
    itself only carries the base URL, the timeout and the Accept header.
    """
    return httpx.AsyncClient(
        base_url=service_url,
        timeout=timeout,
        headers={"Accept": "application/json"},
    )
