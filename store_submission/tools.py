"""MCP tool registrations for the Store submission server."""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable

from fastmcp import FastMCP
from pydantic import BaseModel, Field, ValidationError

from store_submission.errors import StoreError, StoreHttpError, StoreWrappedError
from store_submission.models import UpdateMetadataRequest, UpdatePackagesRequest
from store_submission.store_api import StoreAPI

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES = "en-us"


@dataclass
class StoreToolDependencies:
    """Runtime dependencies required by the MCP tools."""

    store_api: StoreAPI | None = None

    def attach_api(self, store_api: StoreAPI) -> None:
        self.store_api = store_api

    def detach_api(self) -> None:
        self.store_api = None

    def require_api(self) -> StoreAPI:
        if self.store_api is None:
            raise RuntimeError("Store API client is not initialized.")
        return self.store_api


def _to_payload(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    return value


def error_payload(exc: Exception) -> dict[str, Any]:
    """Translate an exception into the error shape returned by every tool."""
    payload: dict[str, Any] = {"error": str(exc)}
    if isinstance(exc, StoreWrappedError):
        payload["errors"] = [_to_payload(error) for error in exc.errors]
    if isinstance(exc, StoreHttpError):
        payload["status_code"] = exc.status_code
    return payload


def register_store_tools(
    mcp: FastMCP,
    dependencies: StoreToolDependencies,
) -> None:
    """Register MCP tools that proxy to the Store submission API."""

    def _log_tool_event(tool_name: str, event: str, **fields: object) -> None:
        logger.info(
            "store_tool_event",
            extra={"tool": tool_name, "event": event, **fields},
        )

    async def _with_error_handling(
        tool_name: str,
        action: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        try:
            return await action()
        except (ValueError, ValidationError) as exc:
            logger.warning("%s rejected its arguments", tool_name, exc_info=True)
            _log_tool_event(tool_name, "invalid_arguments", error=str(exc))
            return {"error": str(exc)}
        except StoreError as exc:
            logger.warning("%s failed due to API error", tool_name, exc_info=True)
            _log_tool_event(tool_name, "api_error", error=str(exc))
            return error_payload(exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s failed unexpectedly", tool_name)
            _log_tool_event(tool_name, "unexpected_error", error=str(exc))
            return {"error": f"Unexpected error: {exc}"}

    ProductId = Annotated[str, Field(description="The Store product ID of the application (e.g., '9NWNDLQMNZD7').")]
    Languages = Annotated[str, Field(description="Comma separated listing languages to include (e.g., 'en-us,pt-br').")]
    SkipInitialPolling = Annotated[
        bool,
        Field(description="Skip waiting for the draft to be ready before applying the change."),
    ]

    @mcp.tool(
        name="get_submission_draft",
        description="Returns the current draft of a submission module. Omit 'module_name' to get the packages; otherwise use 'availability', 'listings' or 'properties'.",
    )
    async def get_submission_draft(
        product_id: ProductId,
        module_name: Annotated[
            str | None,
            Field(description="One of 'availability', 'listings', 'properties'; empty for packages."),
        ] = None,
        languages: Languages = DEFAULT_LANGUAGES,
    ) -> dict[str, Any]:
        """Return the draft data of one submission module."""

        async def _call() -> dict[str, Any]:
            draft = await dependencies.require_api().get_draft(product_id, module_name or None, languages)
            _log_tool_event("get_submission_draft", "success", product_id=product_id)
            return {"product_id": product_id, "draft": _to_payload(draft)}

        return await _with_error_handling("get_submission_draft", _call)

    @mcp.tool(
        name="get_listing_assets",
        description="Returns the store logos and screenshots of the draft listings for the requested languages.",
    )
    async def get_listing_assets(
        product_id: ProductId,
        languages: Languages = DEFAULT_LANGUAGES,
    ) -> dict[str, Any]:
        """Return the draft listing assets."""

        async def _call() -> dict[str, Any]:
            assets = await dependencies.require_api().get_draft_listing_assets(product_id, languages)
            _log_tool_event("get_listing_assets", "success", product_id=product_id)
            return {"product_id": product_id, "assets": _to_payload(assets)}

        return await _with_error_handling("get_listing_assets", _call)

    @mcp.tool(
        name="get_module_status",
        description="Checks whether every module of the draft is ready for further edits, and returns the ongoing submission ID if any.",
    )
    async def get_module_status(product_id: ProductId) -> dict[str, Any]:
        """Return the raw readiness envelope for the draft."""

        async def _call() -> dict[str, Any]:
            status = await dependencies.require_api().get_module_status(product_id)
            _log_tool_event("get_module_status", "success", product_id=product_id, is_success=status.is_success)
            return {"product_id": product_id, "status": _to_payload(status)}

        return await _with_error_handling("get_module_status", _call)

    @mcp.tool(
        name="update_submission_metadata",
        description="Updates the availability, properties and/or listings of the draft. Waits until the draft is ready before and after the update.",
    )
    async def update_submission_metadata(
        product_id: ProductId,
        metadata: Annotated[
            dict[str, Any],
            Field(description="The metadata update body: 'availability', 'properties', 'listings', 'listingsToAdd', 'listingsToRemove'."),
        ],
        skip_initial_polling: SkipInitialPolling = False,
    ) -> dict[str, Any]:
        """Apply a metadata update to the draft."""

        async def _call() -> dict[str, Any]:
            request = UpdateMetadataRequest.model_validate(metadata)
            result = await dependencies.require_api().update_submission_metadata(
                product_id,
                request,
                skip_initial_polling=skip_initial_polling,
            )
            _log_tool_event("update_submission_metadata", "success", product_id=product_id)
            return {"product_id": product_id, "result": _to_payload(result)}

        return await _with_error_handling("update_submission_metadata", _call)

    @mcp.tool(
        name="update_submission_packages",
        description="Replaces the packages of the draft and commits the change. Waits until the draft is ready before and after the update.",
    )
    async def update_submission_packages(
        product_id: ProductId,
        packages: Annotated[
            dict[str, Any],
            Field(description="The packages update body, e.g. {'packages': [{'packageUrl': ..., 'languages': [...], 'architectures': [...]}]}."),
        ],
        skip_initial_polling: SkipInitialPolling = False,
    ) -> dict[str, Any]:
        """Replace and commit the draft packages."""

        async def _call() -> dict[str, Any]:
            request = UpdatePackagesRequest.model_validate(packages)
            result = await dependencies.require_api().update_product_packages(
                product_id,
                request,
                skip_initial_polling=skip_initial_polling,
            )
            _log_tool_event("update_submission_packages", "success", product_id=product_id)
            return {"product_id": product_id, "result": _to_payload(result)}

        return await _with_error_handling("update_submission_packages", _call)

    @mcp.tool(
        name="publish_submission",
        description="Commits the draft and submits it for certification. Returns a JSON object containing the 'submission_id' required by check_submission_status.",
    )
    async def publish_submission(product_id: ProductId) -> dict[str, Any]:
        """Submit the draft and return the new submission ID."""

        async def _call() -> dict[str, Any]:
            submission_id = await dependencies.require_api().publish_submission(product_id)
            _log_tool_event("publish_submission", "success", product_id=product_id, submission_id=submission_id)
            return {
                "product_id": product_id,
                "submission_id": submission_id,
                "message": "Submission created successfully.",
            }

        return await _with_error_handling("publish_submission", _call)

    @mcp.tool(
        name="check_submission_status",
        description="Returns the publishing status (INPROGRESS, PUBLISHED, FAILED) of a submission. Requires the 'submission_id' returned by publish_submission.",
    )
    async def check_submission_status(
        product_id: ProductId,
        submission_id: Annotated[str, Field(description="The submission identifier returned by publish_submission.")],
    ) -> dict[str, Any]:
        """Return the current publishing status of a submission."""

        async def _call() -> dict[str, Any]:
            envelope = await dependencies.require_api().get_submission_status(product_id, submission_id)
            if not envelope.is_success or envelope.response_data is None:
                raise StoreWrappedError(f"Failed to get the status of submission '{submission_id}'.", envelope.errors)
            status = envelope.response_data
            _log_tool_event(
                "check_submission_status",
                "success",
                submission_id=submission_id,
                status=status.publishing_status.value,
            )
            return {
                "product_id": product_id,
                "submission_id": submission_id,
                "status": status.publishing_status.value,
                "has_failed": status.has_failed,
            }

        return await _with_error_handling("check_submission_status", _call)

    logger.info("Store submission MCP tools registered.")
