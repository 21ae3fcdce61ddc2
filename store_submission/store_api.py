"""
Submission facade for the Store submission API.

``StoreAPI`` composes transport calls into the submission lifecycle. Every
step of a multi-step operation runs strictly in order: the service rejects
a submit that was not preceded by a commit and a ready draft.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from store_submission.auth import ClientCredentialsTokenProvider, StoreCredentials, TokenProvider
from store_submission.errors import ModuleNotReadyError, StoreError, StoreWrappedError
from store_submission.models import (
    AvailabilityMetadataResponse,
    CreateSubmissionResponse,
    Envelope,
    ListingAssetsResponse,
    ListingsMetadataResponse,
    ModuleStatus,
    PackagesMetadataResponse,
    PropertiesMetadataResponse,
    PublishingStatus,
    SubmissionStatus,
    UpdateMetadataRequest,
    UpdateMetadataResponse,
    UpdatePackagesRequest,
)
from store_submission.polling import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SUBMISSION_POLL_INTERVAL,
    ModuleReadinessPoller,
    Sleep,
    follow_submission_status,
)
from store_submission.settings import DEFAULT_SCOPE, DEFAULT_SERVICE_URL, Settings
from store_submission.transport import SubmissionClient

logger = logging.getLogger(__name__)

API_VERSION = "1"
SELLER_ACCOUNT_HEADER = "X-Seller-Account-Id"

PACKAGES_URL = "/submission/v{version}/product/{product_id}/packages"
PACKAGES_COMMIT_URL = "/submission/v{version}/product/{product_id}/packages/commit"
METADATA_URL = "/submission/v{version}/product/{product_id}/metadata"
MODULE_METADATA_URL = "/submission/v{version}/product/{product_id}/metadata/{module}?languages={languages}"
LISTING_ASSETS_URL = "/submission/v{version}/product/{product_id}/listings/assets?languages={languages}"
DRAFT_STATUS_URL = "/submission/v{version}/product/{product_id}/status"
SUBMIT_URL = "/submission/v{version}/product/{product_id}/submit"
SUBMISSION_STATUS_URL = "/submission/v{version}/product/{product_id}/submission/{submission_id}/status"

_MODULE_RESPONSE_TYPES: dict[str, type[Envelope[Any]]] = {
    "availability": Envelope[AvailabilityMetadataResponse],
    "listings": Envelope[ListingsMetadataResponse],
    "properties": Envelope[PropertiesMetadataResponse],
}


def _require_non_empty(value: str, field_name: str) -> str:
    """Normalize and validate non-empty request arguments."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"{field_name} must be a non-empty string.")
    return cleaned


class StoreAPI:
    """Drive drafts through update, commit, submit and publication."""

    def __init__(
        self,
        credentials: StoreCredentials,
        token_provider: TokenProvider,
        *,
        service_url: str = DEFAULT_SERVICE_URL,
        timeout: float = 30.0,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        readiness_timeout: float | None = None,
        submission_poll_interval: float = DEFAULT_SUBMISSION_POLL_INTERVAL,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if credentials is None:
            raise ValueError("credentials are required.")
        if token_provider is None:
            raise ValueError("token_provider is required.")

        self._credentials = credentials
        self._token_provider = token_provider
        self._service_url = service_url or DEFAULT_SERVICE_URL
        self._timeout = timeout
        self._submission_poll_interval = submission_poll_interval
        self._sleep = sleep
        self._client: SubmissionClient | None = None
        self._readiness = ModuleReadinessPoller(
            self.get_module_status,
            interval=poll_interval,
            timeout=readiness_timeout,
            sleep=sleep,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreAPI":
        """Factory that builds the facade and its token provider from Settings."""
        token_provider = ClientCredentialsTokenProvider(
            client_secret=settings.client_secret,
            client_assertion=settings.client_assertion,
            authority_url=settings.authority_url,
            timeout=settings.api_timeout,
        )
        return cls(
            settings.credentials(),
            token_provider,
            service_url=settings.service_url,
            timeout=settings.api_timeout,
            poll_interval=settings.poll_interval,
            readiness_timeout=settings.readiness_timeout,
            submission_poll_interval=settings.submission_poll_interval,
        )

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def init(self, http_client: httpx.AsyncClient | None = None) -> None:
        """Acquire the access token and open the authenticated transport."""
        logger.info("Getting authorization token")
        token = await self._token_provider.acquire_token(
            tenant_id=str(self._credentials.tenant_id),
            client_id=str(self._credentials.client_id),
            scope=self._credentials.scope or DEFAULT_SCOPE,
        )
        if token is None or not token.access_token:
            logger.error("Access Token should not be null")
            raise StoreError("Could not retrieve access token")

        if self._client is not None:
            await self._client.aclose()
        self._client = SubmissionClient(
            token,
            self._service_url,
            http_client=http_client,
            default_headers={SELLER_ACCOUNT_HEADER: str(self._credentials.seller_id)},
            timeout=self._timeout,
        )

    async def aclose(self) -> None:
        """Close the transport if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StoreAPI":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def get_draft(self, product_id: str, module_name: str | None, languages: str) -> Any:
        """Return the draft data of one module; ``None`` selects the packages."""
        product_id_clean = _require_non_empty(product_id, "product_id")

        if module_name is None:
            response_type: type[Envelope[Any]] = Envelope[PackagesMetadataResponse]
            path = PACKAGES_URL.format(version=API_VERSION, product_id=product_id_clean)
        else:
            module = module_name.lower()
            if module not in _MODULE_RESPONSE_TYPES:
                raise ValueError("Module name must be 'availability', 'listings' or 'properties'")
            response_type = _MODULE_RESPONSE_TYPES[module]
            path = MODULE_METADATA_URL.format(
                version=API_VERSION,
                product_id=product_id_clean,
                module=module,
                languages=languages,
            )

        logger.debug("Fetching draft", extra={"product_id": product_id_clean, "module_name": module_name or "packages"})
        draft = await self._invoke("GET", path, response_type)
        if not draft.is_success or draft.response_data is None:
            raise StoreWrappedError("Failed to get the draft.", draft.errors)
        return draft.response_data

    async def update_submission_metadata(
        self,
        product_id: str,
        metadata: UpdateMetadataRequest,
        skip_initial_polling: bool = False,
    ) -> UpdateMetadataResponse:
        """Update the draft metadata once the draft is ready, then wait for it to settle."""
        product_id_clean = _require_non_empty(product_id, "product_id")

        if not skip_initial_polling:
            await self._wait_until_ready(product_id_clean)

        updated = await self._invoke(
            "PUT",
            METADATA_URL.format(version=API_VERSION, product_id=product_id_clean),
            Envelope[UpdateMetadataResponse],
            metadata,
        )
        if not updated.is_success or updated.response_data is None:
            raise StoreWrappedError("Failed to update submission metadata.", updated.errors)

        await self._wait_until_ready(product_id_clean)
        return updated.response_data

    async def update_product_packages(
        self,
        product_id: str,
        packages: UpdatePackagesRequest,
        skip_initial_polling: bool = False,
    ) -> UpdateMetadataResponse:
        """Replace the draft packages, commit them and wait for the draft to settle."""
        product_id_clean = _require_non_empty(product_id, "product_id")

        if not skip_initial_polling:
            await self._wait_until_ready(product_id_clean)

        updated = await self._invoke(
            "PUT",
            PACKAGES_URL.format(version=API_VERSION, product_id=product_id_clean),
            Envelope[UpdateMetadataResponse],
            packages,
        )
        if not updated.is_success or updated.response_data is None:
            raise StoreWrappedError("Failed to update submission.", updated.errors)

        logger.debug("Committing package changes", extra={"product_id": product_id_clean})
        await self._commit_packages(product_id_clean)

        await self._wait_until_ready(product_id_clean)
        return updated.response_data

    async def publish_submission(self, product_id: str) -> str:
        """Commit, wait for readiness and submit; return the submission id."""
        product_id_clean = _require_non_empty(product_id, "product_id")

        await self._commit_packages(product_id_clean)
        await self._wait_until_ready(product_id_clean)

        submitted = await self._invoke(
            "POST",
            SUBMIT_URL.format(version=API_VERSION, product_id=product_id_clean),
            Envelope[CreateSubmissionResponse],
        )
        if not submitted.is_success:
            raise StoreWrappedError("Failed to submit the submission.", submitted.errors)

        submission_id = None
        if submitted.response_data is not None:
            submission_id = submitted.response_data.submission_id or submitted.response_data.ongoing_submission_id

        if not submission_id:
            logger.error("Failed to get submission ID", extra={"product_id": product_id_clean})
            raise StoreError("Failed to get submission ID")

        logger.info("Submission created", extra={"product_id": product_id_clean, "submission_id": submission_id})
        return submission_id

    async def get_draft_listing_assets(self, product_id: str, languages: str) -> ListingAssetsResponse:
        """Return the listing assets of the draft; every failure surfaces as one StoreError."""
        try:
            product_id_clean = _require_non_empty(product_id, "product_id")
            assets = await self._invoke(
                "GET",
                LISTING_ASSETS_URL.format(version=API_VERSION, product_id=product_id_clean, languages=languages),
                Envelope[ListingAssetsResponse],
            )
            if not assets.is_success or assets.response_data is None:
                raise StoreWrappedError("Failed to get the draft listing assets.", assets.errors)
            return assets.response_data
        except Exception as error:
            raise StoreError(f"Failed to get the draft listing assets - {error}") from error

    async def get_module_status(self, product_id: str) -> Envelope[ModuleStatus]:
        product_id_clean = _require_non_empty(product_id, "product_id")
        return await self._invoke(
            "GET",
            DRAFT_STATUS_URL.format(version=API_VERSION, product_id=product_id_clean),
            Envelope[ModuleStatus],
        )

    async def get_submission_status(self, product_id: str, submission_id: str) -> Envelope[SubmissionStatus]:
        product_id_clean = _require_non_empty(product_id, "product_id")
        submission_id_clean = _require_non_empty(submission_id, "submission_id")
        return await self._invoke(
            "GET",
            SUBMISSION_STATUS_URL.format(
                version=API_VERSION,
                product_id=product_id_clean,
                submission_id=submission_id_clean,
            ),
            Envelope[SubmissionStatus],
        )

    def iter_submission_status(
        self,
        product_id: str,
        submission_id: str,
        wait_first: bool = False,
    ) -> AsyncIterator[SubmissionStatus]:
        """Follow a submission until it is published or has failed."""
        return follow_submission_status(
            self.get_submission_status,
            _require_non_empty(product_id, "product_id"),
            _require_non_empty(submission_id, "submission_id"),
            interval=self._submission_poll_interval,
            wait_first=wait_first,
            sleep=self._sleep,
        )

    async def poll_submission_status(self, product_id: str, submission_id: str) -> PublishingStatus:
        """Wait for a submission to finish and return its final publishing status."""
        last: SubmissionStatus | None = None
        async for status in self.iter_submission_status(product_id, submission_id):
            last = status

        if last is None:
            return PublishingStatus.UNKNOWN
        if last.has_failed:
            return PublishingStatus.FAILED
        return last.publishing_status

    async def _commit_packages(self, product_id: str) -> None:
        committed = await self._invoke(
            "POST",
            PACKAGES_COMMIT_URL.format(version=API_VERSION, product_id=product_id),
            Envelope[UpdateMetadataResponse],
        )
        if not committed.is_success:
            raise StoreWrappedError("Failed to commit the updated submission.", committed.errors)

    async def _wait_until_ready(self, product_id: str) -> None:
        if not await self._readiness.wait_until_ready(product_id):
            raise ModuleNotReadyError("Failed to poll module status.")

    async def _invoke(self, method: str, path: str, response_type: Any, body: Any = None) -> Any:
        if self._client is None:
            raise StoreError("Client is not initialized")
        return await self._client.invoke(method, path, response_type, body)
