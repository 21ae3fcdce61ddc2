"""
Polling loops for the Store submission workflow.

The service processes module edits, commits and publication asynchronously.
``ModuleReadinessPoller`` waits until every module reports ready;
``follow_submission_status`` follows a submitted draft until it is published
or has failed. Both wait a fixed interval between requests, and both can be
cancelled at any await point by cancelling the surrounding task.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable

from store_submission.errors import StorePollingTimeoutError, StoreWrappedError
from store_submission.models import Envelope, ModuleStatus, PublishingStatus, ResponseError, SubmissionStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_SUBMISSION_POLL_INTERVAL = 30.0

Sleep = Callable[[float], Awaitable[None]]
ModuleStatusFetcher = Callable[[str], Awaitable[Envelope[ModuleStatus]]]
SubmissionStatusFetcher = Callable[[str, str], Awaitable[Envelope[SubmissionStatus]]]

TERMINAL_PUBLISHING_STATUSES = frozenset({PublishingStatus.PUBLISHED, PublishingStatus.FAILED})


def is_blocking_error(error: ResponseError) -> bool:
    """Errors outside the packages module, or package upload failures, never clear up."""
    return error.target != "packages" or error.code == "packageuploaderror"


class ModuleReadinessPoller:
    """Poll ``.../status`` until the draft is ready or blocked."""

    def __init__(
        self,
        fetch_status: ModuleStatusFetcher,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_status = fetch_status
        self._interval = interval
        self._timeout = timeout
        self._sleep = sleep
        self._clock = clock

    async def wait_until_ready(self, product_id: str) -> bool:
        """Return ``True`` once ready, ``False`` as soon as the draft is blocked."""
        started = self._clock()

        while True:
            envelope = await self._fetch_status(product_id)

            blocking = [error for error in envelope.errors if is_blocking_error(error)]
            if blocking:
                logger.error(
                    "Module status polling failed for product %s: %s",
                    product_id,
                    "; ".join(f"{error.code}: {error.message}" for error in envelope.errors),
                )
                return False

            if not envelope.is_success:
                logger.error("Module status polling returned an unsuccessful response for product %s", product_id)
                return False

            status = envelope.response_data
            if status is None:
                logger.error("Module status polling returned no status for product %s", product_id)
                return False

            if status.is_ready:
                logger.debug("All modules are ready", extra={"product_id": product_id})
                return True

            if self._timeout is not None and self._clock() - started >= self._timeout:
                raise StorePollingTimeoutError(
                    f"Module status polling timed out after {self._timeout:g} second(s) for product "
                    f"'{product_id}'. One of the app modules is not in ready status."
                )

            logger.debug(
                "Modules not ready, waiting %s seconds",
                self._interval,
                extra={"product_id": product_id},
            )
            await self._sleep(self._interval)


async def follow_submission_status(
    fetch_status: SubmissionStatusFetcher,
    product_id: str,
    submission_id: str,
    *,
    interval: float = DEFAULT_SUBMISSION_POLL_INTERVAL,
    wait_first: bool = False,
    sleep: Sleep = asyncio.sleep,
) -> AsyncIterator[SubmissionStatus]:
    """Yield each publication status until it is terminal."""
    while True:
        if wait_first:
            await sleep(interval)
        wait_first = True

        envelope = await fetch_status(product_id, submission_id)
        if not envelope.is_success or envelope.response_data is None:
            raise StoreWrappedError(
                f"Failed to get the status of submission '{submission_id}'.",
                envelope.errors,
            )

        status = envelope.response_data
        logger.info(
            "Submission status %s",
            status.publishing_status.value,
            extra={"product_id": product_id, "submission_id": submission_id},
        )
        yield status

        if status.has_failed or status.publishing_status in TERMINAL_PUBLISHING_STATUSES:
            return
