from collections.abc import Callable
from uuid import UUID

import httpx
import pytest
from fastmcp import Client, FastMCP

from store_submission.auth import AccessToken, StoreCredentials
from store_submission.errors import StoreError, StoreHttpError, StoreWrappedError
from store_submission.models import ResponseError
from store_submission.server import build_server
from store_submission.settings import Settings
from store_submission.store_api import StoreAPI
from store_submission.tools import StoreToolDependencies, error_payload, register_store_tools


def test_error_payload_lists_wrapped_errors() -> None:
    exc = StoreWrappedError(
        "Failed to get the draft.",
        [ResponseError(code="C1", target="packages", message="m")],
    )

    payload = error_payload(exc)

    assert payload["error"].startswith("Failed to get the draft.")
    assert payload["errors"] == [{"code": "C1", "target": "packages", "message": "m"}]


def test_error_payload_carries_http_status() -> None:
    request = httpx.Request("GET", "https://store.test/submission/v1/product/P1/packages")
    exc = StoreHttpError(httpx.Response(403, request=request))

    payload = error_payload(exc)

    assert payload["status_code"] == 403
    assert "/submission/v1/product/P1/packages" in payload["error"]


def test_error_payload_for_plain_error() -> None:
    assert error_payload(StoreError("Failed to get submission ID")) == {"error": "Failed to get submission ID"}


def test_dependencies_require_attached_api() -> None:
    dependencies = StoreToolDependencies()
    with pytest.raises(RuntimeError):
        dependencies.require_api()


@pytest.mark.anyio
async def test_server_registers_every_submission_tool() -> None:
    settings = Settings(
        seller_id=42,
        tenant_id=UUID("d454d300-128e-2d81-334a-27d9b2baf002"),
        client_id=UUID("ba3c223b-03ab-4a44-aa32-38aa10c27e32"),
        client_secret="s3cret",
    )
    server = build_server(settings)

    tools = await server.mcp.get_tools()

    assert set(tools) == {
        "get_submission_draft",
        "get_listing_assets",
        "get_module_status",
        "update_submission_metadata",
        "update_submission_packages",
        "publish_submission",
        "check_submission_status",
    }
    assert server.store_api is None


class _StaticTokenProvider:
    async def acquire_token(self, *, tenant_id: str, client_id: str, scope: str) -> AccessToken:
        return AccessToken("token-123")


async def _build_tool_client(handler: Callable[[httpx.Request], httpx.Response]) -> tuple[Client, StoreAPI]:
    credentials = StoreCredentials(
        tenant_id=UUID("d454d300-128e-2d81-334a-27d9b2baf002"),
        client_id=UUID("ba3c223b-03ab-4a44-aa32-38aa10c27e32"),
        seller_id=42,
        scope="https://api.store.microsoft.com/.default",
    )
    api = StoreAPI(credentials, _StaticTokenProvider(), service_url="https://store.test")
    await api.init(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    mcp = FastMCP(name="store-tools-test")
    dependencies = StoreToolDependencies()
    register_store_tools(mcp, dependencies)
    dependencies.attach_api(api)
    return Client(mcp), api


@pytest.mark.anyio
async def test_check_submission_status_returns_publishing_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/submission/v1/product/P1/submission/S1/status"
        return httpx.Response(
            200,
            json={"isSuccess": True, "responseData": {"publishingStatus": "published", "hasFailed": False}},
        )

    client, api = await _build_tool_client(handler)
    async with client:
        result = await client.call_tool("check_submission_status", {"product_id": "P1", "submission_id": "S1"})

    assert result.data == {
        "product_id": "P1",
        "submission_id": "S1",
        "status": "PUBLISHED",
        "has_failed": False,
    }
    await api.aclose()


@pytest.mark.anyio
async def test_check_submission_status_reports_service_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"isSuccess": False, "errors": [{"code": "NotFound", "target": "submission", "message": "gone"}]},
        )

    client, api = await _build_tool_client(handler)
    async with client:
        result = await client.call_tool("check_submission_status", {"product_id": "P1", "submission_id": "S1"})

    assert "Failed to get the status of submission 'S1'." in result.data["error"]
    assert result.data["errors"] == [{"code": "NotFound", "target": "submission", "message": "gone"}]
    await api.aclose()


@pytest.mark.anyio
async def test_update_submission_metadata_rejects_malformed_body() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"isSuccess": True, "responseData": {"isReady": True}})

    client, api = await _build_tool_client(handler)
    async with client:
        result = await client.call_tool(
            "update_submission_metadata",
            {"product_id": "P1", "metadata": {"listings": "not-a-listing"}, "skip_initial_polling": True},
        )

    assert set(result.data) == {"error"}
    assert "listings" in result.data["error"]
    assert requests == []
    await api.aclose()
