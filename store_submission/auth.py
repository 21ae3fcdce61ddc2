"""
Access token acquisition for the Store submission API.

The facade only depends on the ``TokenProvider`` contract: given a tenant,
a client and a scope, hand back a bearer token. ``ClientCredentialsTokenProvider``
implements it with the OAuth2 client-credentials grant against Microsoft Entra ID.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import UUID

import httpx

from store_submission.errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY_URL = "https://login.microsoftonline.com"
JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


@dataclass(frozen=True, slots=True)
class StoreCredentials:
    """Identity of the Entra application publishing on behalf of a seller."""

    tenant_id: UUID
    client_id: UUID
    seller_id: int
    scope: str

    def __post_init__(self) -> None:
        for field_name in ("tenant_id", "client_id", "seller_id", "scope"):
            if getattr(self, field_name) in (None, ""):
                raise ValueError(f"{field_name} is required")


@dataclass(frozen=True, slots=True)
class AccessToken:
    """Opaque bearer token and the end of its validity window."""

    access_token: str
    expires_on: datetime | None = None

    @property
    def is_expired(self) -> bool:
        if self.expires_on is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_on


class TokenProvider(Protocol):
    async def acquire_token(self, *, tenant_id: str, client_id: str, scope: str) -> AccessToken: ...


class ClientCredentialsTokenProvider:
    """
    Exchange a client secret or a signed client assertion for a token.

    A client assertion is a short-lived JWT signed with the application's
    certificate, usually valid for minutes. It is sent as given, so callers
    using certificate credentials must re-sign it and build a new provider
    before each ``StoreAPI.init()``.
    """

    def __init__(
        self,
        *,
        client_secret: str | None = None,
        client_assertion: str | None = None,
        authority_url: str = DEFAULT_AUTHORITY_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not client_secret and not client_assertion:
            raise ValueError("Either a client secret or a client assertion is required.")
        self._client_secret = client_secret
        self._client_assertion = client_assertion
        self._authority_url = authority_url.rstrip("/")
        self._http_client = http_client
        self._timeout = timeout

    async def acquire_token(self, *, tenant_id: str, client_id: str, scope: str) -> AccessToken:
        form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "scope": scope,
        }
        if self._client_secret:
            form["client_secret"] = self._client_secret
        else:
            form["client_assertion_type"] = JWT_BEARER_ASSERTION_TYPE
            form["client_assertion"] = self._client_assertion or ""

        url = f"{self._authority_url}/{tenant_id}/oauth2/v2.0/token"
        logger.debug("Requesting access token", extra={"tenant_id": tenant_id, "client_id": client_id})

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, data=form)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, data=form)
        except httpx.HTTPError as exc:
            logger.error("Failed to get access token. Response: %s", exc)
            raise StoreError("Could not retrieve access token") from exc

        if response.is_error:
            logger.error(
                "Failed to get access token. Response: %s",
                response.text.strip()[:512],
                extra={"status_code": response.status_code},
            )
            raise StoreError("Could not retrieve access token")

        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError("Could not retrieve access token") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise StoreError("Could not retrieve access token")

        expires_on = None
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            try:
                expires_on = datetime.now(timezone.utc) + timedelta(seconds=float(expires_in))
            except (TypeError, ValueError):
                logger.warning("Ignoring unparsable expires_in", extra={"expires_in": expires_in})

        return AccessToken(access_token=token, expires_on=expires_on)
