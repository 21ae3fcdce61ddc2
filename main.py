"""Entry point for the Store Submission MCP server."""

import logging
import os
import sys

from store_submission.errors import StoreError
from store_submission.server import build_server
from store_submission.settings import Settings


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request at INFO, which would include each status poll.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    """Bootstrap and run the SSE server."""
    _configure_logging()
    logger = logging.getLogger("store-submission-mcp")

    try:
        settings = Settings.load()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)

    logger.info(
        "Publishing as seller %s through %s",
        settings.seller_id,
        settings.service_url,
    )
    server = build_server(settings)

    try:
        server.startup()
    except StoreError as exc:
        logger.error("Could not authenticate against the Store API: %s", exc)
        server.shutdown()
        sys.exit(1)

    try:
        logger.info(
            "MCP SSE server ready at http://localhost:%s/sse",
            settings.mcp_sse_port,
        )
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutdown requested (Ctrl+C).")
    except Exception:
        logger.exception("Server stopped due to an unexpected error.")
        raise
    finally:
        server.shutdown()
        logger.info("Server shutdown complete.")


if __name__ == "__main__":
    main()
