"""
Core server bootstrap for the Store submission MCP server.

Wires up the fastmcp instance, registers the submission tools and owns the
lifetime of the authenticated ``StoreAPI``. The access token is acquired once
on startup; restart the server (or call ``startup`` again) to refresh it.
"""

import asyncio
import logging

from fastmcp import FastMCP  # type: ignore[import-not-found]

from store_submission.settings import Settings
from store_submission.store_api import StoreAPI
from store_submission.tools import StoreToolDependencies, register_store_tools

INSTRUCTIONS = (
    "Manage Microsoft Store submissions. Read a draft with get_submission_draft, "
    "change it with update_submission_metadata or update_submission_packages, "
    "then call publish_submission and follow the returned submission_id with "
    "check_submission_status."
)


class ServerApp:
    """Holds the MCP app and the Store API the tools call into."""

    def __init__(self, settings: Settings) -> None:
        self._logger = logging.getLogger(__name__)
        self._settings = settings
        self._store_api: StoreAPI | None = None
        self._tool_dependencies = StoreToolDependencies()
        self._mcp_app = FastMCP(name="Store Submission MCP Server", instructions=INSTRUCTIONS)
        register_store_tools(self._mcp_app, self._tool_dependencies)

    def startup(self) -> None:
        """Acquire the access token and attach the Store API to the tools."""
        asyncio.run(self.startup_async())

    async def startup_async(self) -> None:
        self._logger.info(
            "Authenticating against the Store API",
            extra={"seller_id": self._settings.seller_id, "service_url": self._settings.service_url},
        )
        store_api = StoreAPI.from_settings(self._settings)
        try:
            await store_api.init()
        except BaseException:
            await store_api.aclose()
            raise

        if self._store_api is not None:
            await self._store_api.aclose()
        self._store_api = store_api
        self._tool_dependencies.attach_api(store_api)

    def shutdown(self) -> None:
        """Release acquired resources."""
        asyncio.run(self.shutdown_async())

    async def shutdown_async(self) -> None:
        self._logger.info("Shutting down server bootstrap")
        self._tool_dependencies.detach_api()
        if self._store_api is not None:
            await self._store_api.aclose()
            self._store_api = None

    def serve_forever(self) -> None:
        """Run the FastMCP SSE server until interrupted."""
        host = "0.0.0.0"
        port = self._settings.mcp_sse_port
        self._logger.info("Starting SSE transport", extra={"host": host, "port": port})
        self._mcp_app.run(transport="sse", host=host, port=port)

    async def serve_sse_async(self, host: str = "0.0.0.0") -> None:
        """Async helper for running the SSE transport (used by smoke tests)."""
        await self._mcp_app.run_http_async(
            transport="sse",
            host=host,
            port=self._settings.mcp_sse_port,
        )

    @property
    def mcp(self) -> FastMCP:
        return self._mcp_app

    @property
    def store_api(self) -> StoreAPI | None:
        return self._store_api


def build_server(settings: Settings) -> ServerApp:
    """Factory used by main.py to create the configured server instance."""
    return ServerApp(settings)
