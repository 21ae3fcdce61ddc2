from urllib.parse import parse_qs

import httpx
import pytest

from store_submission.auth import JWT_BEARER_ASSERTION_TYPE, ClientCredentialsTokenProvider
from store_submission.errors import StoreError

TENANT = "d454d300-128e-2d81-334a-27d9b2baf002"
CLIENT = "ba3c223b-03ab-4a44-aa32-38aa10c27e32"
SCOPE = "https://api.store.microsoft.com/.default"


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.mark.anyio
async def test_client_secret_grant_posts_form_to_tenant_endpoint() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert str(request.url) == f"https://login.test/{TENANT}/oauth2/v2.0/token"
        assert _form(request) == {
            "grant_type": "client_credentials",
            "client_id": CLIENT,
            "scope": SCOPE,
            "client_secret": "s3cret",
        }
        return httpx.Response(200, json={"access_token": "abc", "expires_in": 3599, "token_type": "Bearer"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        provider = ClientCredentialsTokenProvider(
            client_secret="s3cret",
            authority_url="https://login.test/",
            http_client=http_client,
        )
        token = await provider.acquire_token(tenant_id=TENANT, client_id=CLIENT, scope=SCOPE)

    assert token.access_token == "abc"
    assert token.expires_on is not None
    assert token.is_expired is False


@pytest.mark.anyio
async def test_client_assertion_grant_sends_jwt_bearer_assertion() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        form = _form(request)
        assert "client_secret" not in form
        assert form["client_assertion_type"] == JWT_BEARER_ASSERTION_TYPE
        assert form["client_assertion"] == "signed.jwt.value"
        return httpx.Response(200, json={"access_token": "abc"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        provider = ClientCredentialsTokenProvider(client_assertion="signed.jwt.value", http_client=http_client)
        token = await provider.acquire_token(tenant_id=TENANT, client_id=CLIENT, scope=SCOPE)

    assert token.access_token == "abc"
    assert token.expires_on is None


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"error": "invalid_client"}),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={"token_type": "Bearer"}),
    ],
)
async def test_unusable_token_response_raises(response: httpx.Response) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda req: response)) as http_client:
        provider = ClientCredentialsTokenProvider(client_secret="s3cret", http_client=http_client)
        with pytest.raises(StoreError) as exc:
            await provider.acquire_token(tenant_id=TENANT, client_id=CLIENT, scope=SCOPE)

    assert str(exc.value) == "Could not retrieve access token"


@pytest.mark.anyio
async def test_connection_failure_is_wrapped() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        provider = ClientCredentialsTokenProvider(client_secret="s3cret", http_client=http_client)
        with pytest.raises(StoreError) as exc:
            await provider.acquire_token(tenant_id=TENANT, client_id=CLIENT, scope=SCOPE)

    assert isinstance(exc.value.__cause__, httpx.ConnectError)


def test_provider_requires_a_credential() -> None:
    with pytest.raises(ValueError):
        ClientCredentialsTokenProvider()
