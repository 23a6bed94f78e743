"""
Pollers that wait for server-side validation and approval.

Both pollers share one loop: issue a check, and while the result is still
pending sleep for a fixed interval and check again, until either the check
settles the outcome or the deadline passes. A PollState holds the deadline and a
single-assignment settled flag; once settled, nothing else is scheduled, so a
late deadline can never override a resolved outcome and no sleep outlives it.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import aiohttp

from amo_submit.constants import (
    DEFAULT_APPROVAL_CHECK_INTERVAL,
    DEFAULT_APPROVAL_CHECK_TIMEOUT,
    DEFAULT_VALIDATION_CHECK_INTERVAL,
    DEFAULT_VALIDATION_CHECK_TIMEOUT,
    UPLOAD_PATH,
)
from amo_submit.exceptions import (
    ApprovalTimeout,
    DetailFetchError,
    MalformedResponse,
    PollTimeout,
    ValidationFailed,
    ValidationTimeout,
)
from amo_submit.log_utils import logger as default_logger
from amo_submit.utils import api_url

from .clock import AsyncioClock, Clock
from .interfaces import UploadRecord
from .locations import FileLocation
from .transport import AuthenticatedTransport

T = TypeVar("T")


class _Pending:
    def __repr__(self) -> str:
        return "PENDING"


PENDING: Any = _Pending()
"""Returned by a poll check whose resource is still in progress."""


class PollState(Generic[T]):
    """Deadline and at-most-once outcome of a single poller invocation."""

    def __init__(self, deadline: float) -> None:
        self.deadline = deadline
        self.attempts = 0
        self._settled = False
        self._expired = False
        self._result: Optional[T] = None

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def result(self) -> Optional[T]:
        return self._result

    def remaining(self, clock: Clock) -> float:
        return self.deadline - clock.monotonic()

    def resolve(self, result: T) -> bool:
        """Record `result` unless already settled; return whether it was recorded."""
        if self._settled:
            return False
        self._settled = True
        self._result = result
        return True

    def expire(self) -> bool:
        """Mark the state timed out unless already settled."""
        if self._settled:
            return False
        self._settled = True
        self._expired = True
        return True

    def fail(self) -> bool:
        """Mark the state settled by an error raised from a check."""
        if self._settled:
            return False
        self._settled = True
        return True


class StatusPoller:
    """
    Fixed-interval poller with an absolute timeout.

    Subclasses provide the check; a check returns PENDING to be called again, any
    other value to resolve, or raises to fail immediately.
    """

    timeout_error: Callable[..., PollTimeout] = PollTimeout

    def __init__(
        self,
        transport: AuthenticatedTransport,
        interval: float,
        timeout: float,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.transport = transport
        self.interval = interval
        self.timeout = timeout
        self.clock = clock or AsyncioClock()
        self.logger = logger or default_logger

    async def _fetch_detail(self, url: str, failure_message: str) -> Any:
        """
        Fetch and parse a detail record.

        Raises:
            DetailFetchError: On a transport error, a request or body-read timeout, or a
                non-ok status; never retried.
            MalformedResponse: If the body is not JSON.
        """
        try:
            response = await self.transport.request(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DetailFetchError(
                f"{failure_message}: {e}.", endpoint=url
            ) from e

        try:
            if not response.ok:
                raise DetailFetchError(
                    f"{failure_message}: {response.reason}.",
                    endpoint=url,
                    status_code=response.status,
                )
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise MalformedResponse(
                    f"Detail record from {url} is not valid JSON", endpoint=url
                ) from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise DetailFetchError(
                    f"{failure_message}: {e!r}.", endpoint=url
                ) from e
        finally:
            response.release()

    async def _poll(self, url: str, check: Callable[[], Awaitable[Any]]) -> Any:
        state: PollState[Any] = PollState(self.clock.monotonic() + self.timeout)

        while not state.settled:
            remaining = state.remaining(self.clock)
            if remaining <= 0:
                state.expire()
                break

            state.attempts += 1
            try:
                outcome = await self.clock.wait_for(check(), remaining)
            except asyncio.TimeoutError:
                # Fetch timeouts are wrapped by _fetch_detail; this one is the deadline
                state.expire()
                break
            except BaseException:
                state.fail()
                raise

            if outcome is not PENDING:
                state.resolve(outcome)
                break

            self.logger.debug(
                f"{url} still pending after check {state.attempts}; "
                f"retrying in {self.interval}s"
            )
            await self.clock.sleep(min(self.interval, state.remaining(self.clock)))

        if state.expired:
            raise self.timeout_error(
                url=url, timeout=self.timeout, attempts=state.attempts
            )
        return state.result


class ValidationPoller(StatusPoller):
    """Waits until an uploaded package has been processed and validated."""

    timeout_error = ValidationTimeout

    def __init__(
        self,
        transport: AuthenticatedTransport,
        interval: float = DEFAULT_VALIDATION_CHECK_INTERVAL,
        timeout: float = DEFAULT_VALIDATION_CHECK_TIMEOUT,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(transport, interval, timeout, clock=clock, logger=logger)

    async def wait_for_validation(self, upload_body: Any) -> str:
        """
        Wait for the upload described by `upload_body` to pass validation.

        Parameters:
            upload_body (Any): Parsed response of the upload request.

        Returns:
            str: The upload uuid, ready to attach to an add-on or version.

        Raises:
            MalformedResponse: If `upload_body` has no uuid; no poll is issued.
            DetailFetchError: If fetching the upload details fails.
            ValidationFailed: If the service processed the package and found it invalid.
            ValidationTimeout: If processing does not finish before the timeout.
        """
        upload = UploadRecord.from_json(upload_body)
        detail_url = api_url(self.transport.api_url_prefix, UPLOAD_PATH, upload.uuid)

        async def check() -> Any:
            data = await self._fetch_detail(detail_url, "Getting upload details failed")
            if not isinstance(data, dict):
                raise MalformedResponse("Upload detail is not an object", body=data)
            if not data.get("processed"):
                return PENDING

            record = UploadRecord.from_json({"uuid": upload.uuid, **data})
            self.logger.info(f"Validation results: {record.validation}")
            if record.valid:
                return record.uuid

            self.logger.error("Validation failed.")
            raise ValidationFailed(record.url)

        return await self._poll(detail_url, check)


class ApprovalPoller(StatusPoller):
    """Waits until the file of an add-on or version reaches public status."""

    timeout_error = ApprovalTimeout

    def __init__(
        self,
        transport: AuthenticatedTransport,
        interval: float = DEFAULT_APPROVAL_CHECK_INTERVAL,
        timeout: float = DEFAULT_APPROVAL_CHECK_TIMEOUT,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(transport, interval, timeout, clock=clock, logger=logger)

    async def wait_for_approval(self, location: FileLocation, detail_url: str) -> str:
        """
        Wait for the file found at `location` in `detail_url` to be approved.

        Returns:
            str: Download URL of the approved file.

        Raises:
            DetailFetchError: If fetching the detail record fails.
            MalformedResponse: If the record lacks the file or the approved file has no url.
            ApprovalTimeout: If the file is not public before the timeout.
        """

        async def check() -> Any:
            data = await self._fetch_detail(detail_url, "Getting addon details failed")
            file = location.extract(data)
            if file is None or not file.is_public:
                return PENDING
            if not file.url:
                raise MalformedResponse("Approved file has no url", body=data)
            self.logger.info(f"File approved: {file.url}")
            return file.url

        return await self._poll(detail_url, check)
