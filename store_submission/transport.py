"""
Authenticated transport for the Store submission API.

``SubmissionClient.invoke`` performs exactly one HTTP call and either returns a
decoded value or raises one of the classified ``StoreError`` subclasses. It
never retries; retry and polling policy belongs to the facade.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import to_json

from store_submission.auth import AccessToken
from store_submission.errors import StoreError, StoreHttpError, StoreWrappedError
from store_submission.http_client import create_store_http_client
from store_submission.models import BaseEnvelope

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_CONTENT_TYPE = "application/json"


def _snippet(text: str) -> str:
    snippet = text.strip()
    if len(snippet) > 512:
        snippet = f"{snippet[:512]}..."
    return snippet


def _encode_body(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode()
    return to_json(body, by_alias=True)


def _is_envelope_type(response_type: Any) -> bool:
    return isinstance(response_type, type) and issubclass(response_type, BaseEnvelope)


class SubmissionClient:
    """Typed wrapper around an AsyncClient that authenticates every call."""

    def __init__(
        self,
        access_token: AccessToken,
        service_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        default_headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
    ) -> None:
        if access_token is None or not access_token.access_token:
            raise ValueError("access_token must carry a non-empty bearer token.")
        if not service_url:
            raise ValueError("service_url must be a non-empty string.")

        self._access_token = access_token
        self._service_url = service_url.rstrip("/")
        self._owns_http_client = http_client is None
        self._client = http_client or create_store_http_client(self._service_url, timeout=timeout)
        self._default_headers = MappingProxyType(dict(default_headers or {}))
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    @property
    def default_headers(self) -> Mapping[str, str]:
        return self._default_headers

    @property
    def owns_http_client(self) -> bool:
        return self._owns_http_client

    async def aclose(self) -> None:
        """Close the underlying HTTP resources when this transport created them."""
        if self._owns_http_client:
            await self._client.aclose()

    async def invoke(
        self,
        method: str,
        relative_path: str,
        response_type: type[T],
        body: Any = None,
    ) -> T:
        """Send one authenticated request and decode the response as ``response_type``."""
        url = f"{self._service_url}{relative_path}"
        headers = self._build_headers(has_body=body is not None)
        content = _encode_body(body) if body is not None else None

        def _transport_error(message: str, *, exc: Exception) -> StoreError:
            logger.error(
                message,
                extra={"method": method, "path": relative_path},
                exc_info=exc,
            )
            return StoreError(message)

        try:
            response = await self._client.request(method, url, headers=headers, content=content)
        except httpx.TimeoutException as exc:
            raise _transport_error(
                f"Store API request timed out ({method} {relative_path}).",
                exc=exc,
            ) from exc
        except httpx.RequestError as exc:
            raise _transport_error(
                f"Store API request failed ({method} {relative_path}): {exc!s}",
                exc=exc,
            ) from exc

        text = response.text
        if response_type is str:
            return text  # type: ignore[return-value]

        if response.is_error:
            return self._handle_failure(method, relative_path, response, response_type)

        try:
            return self._adapter(response_type).validate_json(text)
        except ValidationError as exc:
            logger.error(
                "Store API returned an unexpected payload",
                extra={"method": method, "path": relative_path, "content": _snippet(text)},
            )
            raise StoreError(
                f"Store API returned an unexpected payload during {method} {relative_path}: {text}"
            ) from exc

    def _build_headers(self, *, has_body: bool) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._access_token.access_token}"}
        headers.update(self._default_headers)
        if has_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return headers

    def _handle_failure(
        self,
        method: str,
        relative_path: str,
        response: httpx.Response,
        response_type: type[T],
    ) -> T:
        text = response.text
        logger.warning(
            "Store API responded with error",
            extra={
                "method": method,
                "path": relative_path,
                "status_code": response.status_code,
                "content": _snippet(text),
            },
        )

        if not text.strip():
            raise StoreHttpError(response)

        error_envelope = self._decode_error_envelope(text)
        if error_envelope is not None and error_envelope.errors and not error_envelope.is_success:
            if _is_envelope_type(response_type):
                try:
                    return self._adapter(response_type).validate_json(text)
                except ValidationError:
                    logger.debug(
                        "Error envelope does not match the expected envelope type",
                        extra={"method": method, "path": relative_path},
                    )
            raise StoreWrappedError("REST error", error_envelope.errors)

        raise StoreError(
            f"Store API error ({response.status_code}) during {method} {relative_path}: {text}"
        )

    def _decode_error_envelope(self, text: str) -> BaseEnvelope | None:
        try:
            return self._adapter(BaseEnvelope).validate_json(text)
        except ValidationError:
            return None

    def _adapter(self, response_type: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(response_type)
        if adapter is None:
            adapter = TypeAdapter(response_type)
            self._adapters[response_type] = adapter
        return adapter
