"""Exception taxonomy shared by the transport, the facade and the tool layer."""

import httpx

from store_submission.models import ResponseError


class StoreError(RuntimeError):
    """Represents failures when communicating with the Store submission API."""


class StoreWrappedError(StoreError):
    """The service answered with a structured error envelope."""

    def __init__(self, message: str, errors: list[ResponseError] | None = None) -> None:
        super().__init__(message)
        self.errors: list[ResponseError] = list(errors or [])

    def __str__(self) -> str:
        message = super().__str__()
        if not self.errors:
            return message
        details = "; ".join(str(error) for error in self.errors)
        return f"{message} ({details})"


class StoreHttpError(StoreError):
    """Non-success status without a body worth decoding."""

    def __init__(self, response: httpx.Response) -> None:
        try:
            request = response.request
            location = f" during {request.method} {request.url.path}"
        except RuntimeError:
            location = ""
        super().__init__(f"Store API error ({response.status_code}){location}: no body provided.")
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class ModuleNotReadyError(StoreError):
    """The submission modules never reached the ready state."""


class StorePollingTimeoutError(StoreError, TimeoutError):
    """Readiness polling exceeded the configured timeout."""
