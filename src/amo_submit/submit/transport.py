"""
Authenticated HTTP transport for the review service.

This module wraps an aiohttp session so that every outgoing request carries a
freshly minted JWT, and interprets JSON responses into parsed bodies or the
matching API errors.
"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import aiohttp
from aiohttp import ClientResponse, ClientSession, ClientTimeout, FormData, TCPConnector

from amo_submit.constants import (
    DEFAULT_API_URL_PREFIX,
    DEFAULT_REQUEST_TIMEOUT,
    HTTP_STATUS_INFORMATIONAL_MIN,
    HTTP_STATUS_SERVER_ERROR_THRESHOLD,
    UPLOAD_PATH,
)
from amo_submit.exceptions import (
    BadRequest,
    FileSystemError,
    MalformedResponse,
    ServiceUnavailable,
)
from amo_submit.log_utils import logger as default_logger
from amo_submit.utils import api_url, get_user_agent

from .auth import authorization_headers, mint_token
from .interfaces import Channel, Credentials, Pathish

RequestBody = Union[Mapping[str, Any], FormData]


class AuthenticatedTransport:
    """
    aiohttp wrapper that signs each request with a new token.

    No retries happen at this layer: aiohttp errors reach the caller unchanged.

    Example:
        async with AuthenticatedTransport(credentials) as transport:
            response = await transport.request(url)
            data = await transport.interpret_json(response)
    """

    def __init__(
        self,
        credentials: Credentials,
        api_url_prefix: str = DEFAULT_API_URL_PREFIX,
        logger: Optional[logging.Logger] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.credentials = credentials
        self.api_url_prefix = api_url_prefix
        self.logger = logger or default_logger
        self.timeout = ClientTimeout(total=timeout)
        self._session: Optional[ClientSession] = None

    async def __aenter__(self) -> "AuthenticatedTransport":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure a session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                connector=TCPConnector(enable_cleanup_closed=True),
                timeout=self.timeout,
                headers={"User-Agent": get_user_agent()},
            )
        return self._session

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _build_headers(self, body: Optional[RequestBody]) -> dict:
        headers = authorization_headers(mint_token(self.credentials))
        if isinstance(body, Mapping):
            headers["Content-Type"] = "application/json"
        return headers

    async def request(
        self,
        url: str,
        method: str = "GET",
        body: Optional[RequestBody] = None,
    ) -> ClientResponse:
        """
        Send an authenticated request.

        A mapping body is serialized to JSON; FormData is passed through so aiohttp
        writes the multipart headers itself.

        Parameters:
            url (str): Absolute URL to call.
            method (str): HTTP method.
            body (Optional[RequestBody]): JSON-serializable mapping or multipart form.

        Returns:
            ClientResponse: The response; the caller reads and releases it.
        """
        headers = self._build_headers(body)
        data: Any = None
        if isinstance(body, Mapping):
            data = json.dumps(body)
        elif body is not None:
            data = body

        self.logger.info(f"Fetching URL: {url}")
        session = await self._ensure_session()
        return await session.request(method, url, data=data, headers=headers)

    async def upload(self, xpi: Pathish, channel: Union[Channel, str]) -> ClientResponse:
        """
        Upload a package as a multipart form with `channel` and `upload` fields.

        Raises:
            FileSystemError: If `xpi` is not a readable file.
        """
        path = Path(xpi)
        if not path.is_file():
            raise FileSystemError("Add-on file not found", path=str(path))

        url = api_url(self.api_url_prefix, UPLOAD_PATH)
        with path.open("rb") as fh:
            form = FormData()
            form.add_field("channel", Channel(channel).value)
            form.add_field(
                "upload",
                fh,
                filename=path.name,
                content_type="application/octet-stream",
            )
            return await self.request(url, "POST", form)

    async def interpret_json(self, response: ClientResponse) -> Any:
        """
        Turn a response into its parsed JSON body or raise the matching error.

        Raises:
            ServiceUnavailable: If the status is below 100 or 500 and above.
            MalformedResponse: If the body of an ok response is not valid JSON.
            BadRequest: If the status is otherwise not ok (4xx); the parsed or raw body
                is logged.
        """
        url = str(response.url)
        try:
            if (
                response.status < HTTP_STATUS_INFORMATIONAL_MIN
                or response.status >= HTTP_STATUS_SERVER_ERROR_THRESHOLD
            ):
                raise ServiceUnavailable(
                    f"Getting response failed: {response.reason}.",
                    endpoint=url,
                    status_code=response.status,
                )
            try:
                data = await response.json(content_type=None)
            except (ValueError, aiohttp.ContentTypeError) as e:
                if not response.ok:
                    text = await response.text(errors="replace")
                    self.logger.error(f"Request to {url} rejected: {text}")
                    raise BadRequest(
                        "Bad Request",
                        endpoint=url,
                        status_code=response.status,
                        body=text,
                    ) from e
                raise MalformedResponse(
                    f"Response from {url} is not valid JSON", endpoint=url
                ) from e

            if not response.ok:
                self.logger.error(f"Request to {url} rejected: {data}")
                raise BadRequest(
                    "Bad Request", endpoint=url, status_code=response.status, body=data
                )
            return data
        finally:
            response.release()
