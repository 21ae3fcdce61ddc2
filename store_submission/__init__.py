"""
Store submission client and MCP server.

``StoreAPI`` drives a product draft through the Microsoft Store submission
API; ``server`` exposes its operations as MCP tools.
"""

from store_submission.errors import (
    ModuleNotReadyError,
    StoreError,
    StoreHttpError,
    StorePollingTimeoutError,
    StoreWrappedError,
)
from store_submission.store_api import StoreAPI

__all__ = [
    "ModuleNotReadyError",
    "StoreAPI",
    "StoreError",
    "StoreHttpError",
    "StorePollingTimeoutError",
    "StoreWrappedError",
]
