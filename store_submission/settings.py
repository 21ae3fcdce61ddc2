"""Environment-driven configuration utilities for the Store submission server."""

import os
from dataclasses import dataclass
from uuid import UUID

from dotenv import load_dotenv

from store_submission.auth import DEFAULT_AUTHORITY_URL, StoreCredentials

DEFAULT_SERVICE_URL = "https://api.store.microsoft.com"
DEFAULT_SCOPE = "https://api.store.microsoft.com/.default"


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required but was not provided.")
    return value


def _optional(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _positive_float(name: str, default: str) -> float:
    raw = os.getenv(name, "").strip() or default
    if not raw:
        raise ValueError(f"{name} is required but was not provided.")
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a numeric value.") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero.")
    return value


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, "").strip() or default
    if not raw:
        raise ValueError(f"{name} is required but was not provided.")
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero.")
    return value


def _uuid(name: str) -> UUID:
    raw = _required(name)
    try:
        return UUID(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a GUID.") from exc


@dataclass(frozen=True, slots=True)
class Settings:
    """Container for runtime configuration."""

    seller_id: int
    tenant_id: UUID
    client_id: UUID
    client_secret: str | None = None
    client_assertion: str | None = None
    service_url: str = DEFAULT_SERVICE_URL
    scope: str = DEFAULT_SCOPE
    authority_url: str = DEFAULT_AUTHORITY_URL
    api_timeout: float = 30.0
    poll_interval: float = 10.0
    readiness_timeout: float | None = None
    submission_poll_interval: float = 30.0
    mcp_sse_port: int = 8000

    @classmethod
    def load(cls) -> "Settings":
        """
        Load configuration from environment variables.

        Python-dotenv is used so developers can rely on a local .env file without
        exporting variables globally.
        """
        load_dotenv()

        seller_id = _positive_int("STORE_SELLER_ID", "")
        tenant_id = _uuid("STORE_TENANT_ID")
        client_id = _uuid("STORE_CLIENT_ID")

        client_secret = _optional("STORE_CLIENT_SECRET")
        client_assertion = _optional("STORE_CLIENT_ASSERTION")
        if client_secret is None and client_assertion is None:
            raise ValueError(
                "STORE_CLIENT_SECRET or STORE_CLIENT_ASSERTION is required but neither was provided."
            )

        readiness_timeout = None
        if _optional("STORE_READINESS_TIMEOUT") is not None:
            readiness_timeout = _positive_float("STORE_READINESS_TIMEOUT", "")

        return cls(
            seller_id=seller_id,
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            client_assertion=client_assertion,
            service_url=_optional("STORE_SERVICE_URL") or DEFAULT_SERVICE_URL,
            scope=_optional("STORE_SCOPE") or DEFAULT_SCOPE,
            authority_url=_optional("STORE_AUTHORITY_URL") or DEFAULT_AUTHORITY_URL,
            api_timeout=_positive_float("API_TIMEOUT", "30"),
            poll_interval=_positive_float("STORE_POLL_INTERVAL", "10"),
            readiness_timeout=readiness_timeout,
            submission_poll_interval=_positive_float("STORE_SUBMISSION_POLL_INTERVAL", "30"),
            mcp_sse_port=_positive_int("MCP_SSE_PORT", "8000"),
        )

    def credentials(self) -> StoreCredentials:
        return StoreCredentials(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            seller_id=self.seller_id,
            scope=self.scope,
        )
