"""
Tests for the authenticated transport and JWT minting.

Covers:
- Token claims, lifetime and per-request freshness
- Header and body handling for JSON and multipart requests
- URL logging and unchanged propagation of aiohttp errors
- Response interpretation (5xx/invalid status, 4xx, bad JSON, success)
- Package upload
"""

import json
from unittest.mock import AsyncMock

import aiohttp
import jwt
import pytest
from aiohttp import FormData
from async_test_utils import API_PREFIX, TEST_API_KEY, TEST_API_SECRET, make_response

from amo_submit.exceptions import (
    BadRequest,
    FileSystemError,
    MalformedResponse,
    ServiceUnavailable,
    TransportFailure,
)
from amo_submit.submit.auth import authorization_headers, mint_token
from amo_submit.submit.interfaces import Credentials
from amo_submit.submit.transport import AuthenticatedTransport

pytestmark = [pytest.mark.unit, pytest.mark.core_submit]


def _decode(token):
    return jwt.decode(token, TEST_API_SECRET, algorithms=["HS256"])


class TestMintToken:
    """Test JWT minting."""

    def test_claims(self, credentials):
        claims = _decode(mint_token(credentials))

        assert claims["iss"] == TEST_API_KEY
        assert claims["exp"] - claims["iat"] == 300
        assert claims["jti"]

    def test_custom_lifetime_and_clock(self):
        credentials = Credentials(TEST_API_KEY, TEST_API_SECRET, jwt_expires_in=60)

        token = mint_token(credentials, now=lambda: 1_700_000_000.7)
        claims = jwt.decode(
            token,
            TEST_API_SECRET,
            algorithms=["HS256"],
            options={"verify_exp": False, "verify_iat": False},
        )

        assert claims["iat"] == 1_700_000_000
        assert claims["exp"] == 1_700_000_060

    def test_tokens_are_never_reused(self, credentials):
        first = mint_token(credentials, now=lambda: 1_700_000_000)
        second = mint_token(credentials, now=lambda: 1_700_000_000)

        assert first != second

    def test_wrong_secret_fails_verification(self, credentials):
        token = mint_token(credentials)

        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "not-the-secret", algorithms=["HS256"])

    def test_authorization_headers(self):
        assert authorization_headers("tok") == {
            "Authorization": "JWT tok",
            "Accept": "application/json",
        }

    def test_credentials_repr_hides_secret(self, credentials):
        assert TEST_API_SECRET not in repr(credentials)


@pytest.fixture
def transport(credentials, mocker):
    return AuthenticatedTransport(
        credentials, api_url_prefix=API_PREFIX, logger=mocker.MagicMock()
    )


@pytest.fixture
def mock_session(transport, mocker):
    session = mocker.MagicMock()
    session.closed = False
    session.request = AsyncMock(return_value=make_response(200, {}))
    session.close = AsyncMock()
    mocker.patch.object(transport, "_ensure_session", AsyncMock(return_value=session))
    return session


@pytest.mark.asyncio
class TestRequest:
    """Test AuthenticatedTransport.request."""

    async def test_get_sends_fresh_token(self, transport, mock_session):
        await transport.request(f"{API_PREFIX}addons/upload/abc/")
        await transport.request(f"{API_PREFIX}addons/upload/abc/")

        first, second = mock_session.request.await_args_list
        assert first.args == ("GET", f"{API_PREFIX}addons/upload/abc/")
        first_token = first.kwargs["headers"]["Authorization"].removeprefix("JWT ")
        second_token = second.kwargs["headers"]["Authorization"].removeprefix("JWT ")
        assert first_token != second_token
        assert _decode(first_token)["iss"] == TEST_API_KEY
        assert first.kwargs["data"] is None
        assert "Content-Type" not in first.kwargs["headers"]

    async def test_mapping_body_is_sent_as_json(self, transport, mock_session):
        body = {"upload": "abc", "license": "MPL-2.0"}

        await transport.request(f"{API_PREFIX}addons/addon/", "POST", body)

        call = mock_session.request.await_args
        assert call.args[0] == "POST"
        assert json.loads(call.kwargs["data"]) == body
        assert call.kwargs["headers"]["Content-Type"] == "application/json"
        assert call.kwargs["headers"]["Accept"] == "application/json"

    async def test_form_body_is_passed_through(self, transport, mock_session):
        form = FormData()
        form.add_field("channel", "listed")

        await transport.request(f"{API_PREFIX}addons/upload/", "POST", form)

        call = mock_session.request.await_args
        assert call.kwargs["data"] is form
        assert "Content-Type" not in call.kwargs["headers"]

    async def test_logs_outgoing_url(self, transport, mock_session):
        await transport.request("https://addons.example.com/files/signed.xpi")

        transport.logger.info.assert_called_with(
            "Fetching URL: https://addons.example.com/files/signed.xpi"
        )

    async def test_transport_errors_propagate_unchanged(self, transport, mock_session):
        error = aiohttp.ClientConnectionError("connection refused")
        mock_session.request.side_effect = error

        with pytest.raises(aiohttp.ClientConnectionError) as exc_info:
            await transport.request(f"{API_PREFIX}addons/upload/abc/")

        assert exc_info.value is error
        assert mock_session.request.await_count == 1


@pytest.mark.asyncio
class TestSessionLifecycle:
    """Test session creation and closing."""

    async def test_context_manager_closes_session(self, transport, mocker):
        session = mocker.MagicMock()
        session.closed = False
        session.close = AsyncMock()
        transport._session = session

        async with transport as entered:
            assert entered is transport

        session.close.assert_awaited_once()
        assert transport._session is None

    async def test_close_without_session(self, transport):
        await transport.close()

        assert transport._session is None


@pytest.mark.asyncio
class TestInterpretJson:
    """Test AuthenticatedTransport.interpret_json."""

    async def test_success_returns_parsed_body(self, transport):
        response = make_response(201, {"uuid": "abc"})

        assert await transport.interpret_json(response) == {"uuid": "abc"}
        response.release.assert_called_once()

    @pytest.mark.parametrize("status", [500, 502, 503, 599, 99, 0])
    async def test_unusable_status_is_service_unavailable(self, transport, status):
        response = make_response(status, {"detail": "boom"})

        with pytest.raises(ServiceUnavailable) as exc_info:
            await transport.interpret_json(response)

        assert isinstance(exc_info.value, TransportFailure)
        assert exc_info.value.status_code == status
        assert "Getting response failed" in str(exc_info.value)
        response.json.assert_not_awaited()
        response.release.assert_called_once()

    async def test_client_error_is_bad_request(self, transport):
        body = {"version": ["Duplicate add-on ID found."]}
        response = make_response(400, body)

        with pytest.raises(BadRequest) as exc_info:
            await transport.interpret_json(response)

        assert exc_info.value.body == body
        assert exc_info.value.status_code == 400
        assert str(exc_info.value).startswith("Bad Request")
        transport.logger.error.assert_called_once()
        assert "Duplicate add-on ID found." in transport.logger.error.call_args.args[0]

    async def test_invalid_json_is_malformed(self, transport):
        response = make_response(
            200, json_error=json.JSONDecodeError("Expecting value", "<html>", 0)
        )

        with pytest.raises(MalformedResponse):
            await transport.interpret_json(response)

        response.release.assert_called_once()

    async def test_undecodable_body_is_malformed(self, transport):
        error = UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")
        response = make_response(200, json_error=error)

        with pytest.raises(MalformedResponse) as exc_info:
            await transport.interpret_json(response)

        assert exc_info.value.__cause__ is error
        response.release.assert_called_once()

    async def test_client_error_with_html_body_keeps_status(self, transport):
        html = "<html><body>Forbidden</body></html>"
        response = make_response(
            403,
            json_error=json.JSONDecodeError("Expecting value", html, 0),
            text=html,
        )

        with pytest.raises(BadRequest) as exc_info:
            await transport.interpret_json(response)

        assert exc_info.value.status_code == 403
        assert exc_info.value.body == html
        response.text.assert_awaited_once_with(errors="replace")
        response.release.assert_called_once()


@pytest.mark.asyncio
class TestUpload:
    """Test AuthenticatedTransport.upload."""

    async def test_upload_posts_multipart_form(self, transport, tmp_path, mocker):
        xpi = tmp_path / "addon.xpi"
        xpi.write_bytes(b"PK\x03\x04")
        response = make_response(201, {"uuid": "abc"})
        request = mocker.patch.object(
            transport, "request", AsyncMock(return_value=response)
        )

        result = await transport.upload(xpi, "unlisted")

        assert result is response
        url, method, form = request.await_args.args
        assert url == f"{API_PREFIX}addons/upload/"
        assert method == "POST"
        assert isinstance(form, FormData)

    async def test_missing_file_fails_before_request(self, transport, tmp_path, mocker):
        request = mocker.patch.object(transport, "request", AsyncMock())

        with pytest.raises(FileSystemError) as exc_info:
            await transport.upload(tmp_path / "missing.xpi", "listed")

        assert exc_info.value.path.endswith("missing.xpi")
        request.assert_not_called()

    async def test_unknown_channel_is_rejected(self, transport, tmp_path, mocker):
        xpi = tmp_path / "addon.xpi"
        xpi.write_bytes(b"PK")
        request = mocker.patch.object(transport, "request", AsyncMock())

        with pytest.raises(ValueError):
            await transport.upload(xpi, "beta")

        request.assert_not_called()
