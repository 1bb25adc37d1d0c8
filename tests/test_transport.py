"""Tests for the HTTP transport."""

import base64

import httpx
import pytest

from sparql_gateway.errors import DecodeError, RemoteError, RequestError, TransportError, error_message
from sparql_gateway.transport import (
    GatewayTransport,
    basic_auth_header,
    build_headers,
    error_from_response,
)

URL = "http://store.test/rdf4j-server/repositories/people"


def make_transport(handler, **kwargs):
    return GatewayTransport(http_transport=httpx.MockTransport(handler), **kwargs)


# =============================================================================
# Header construction
# =============================================================================

class TestHeaders:
    """Tests for auth header construction."""

    def test_basic_auth_value(self):
        expected = "Basic " + base64.b64encode(b"admin:secret").decode()
        assert basic_auth_header("admin", "secret") == expected

    def test_auth_added_with_both_credentials(self):
        headers = build_headers({"Accept": "application/json"}, ("admin", "secret"))
        assert headers["Accept"] == "application/json"
        assert headers["Authorization"].startswith("Basic ")

    def test_no_auth_without_credentials(self):
        assert "Authorization" not in build_headers({}, None)

    def test_caller_headers_not_mutated(self):
        base = {"Accept": "text/turtle"}
        build_headers(base, ("a", "b"))
        assert base == {"Accept": "text/turtle"}


# =============================================================================
# Response classification
# =============================================================================

class TestErrorClassification:
    """Tests for non-success response handling."""

    def _response(self, status, **kwargs):
        return httpx.Response(status, request=httpx.Request("GET", URL), **kwargs)

    def test_json_message_becomes_remote_error(self):
        error = error_from_response(self._response(400, json={"message": "MALFORMED QUERY"}))
        assert isinstance(error, RemoteError)
        assert error.message == "MALFORMED QUERY"
        assert error.status_code == 400

    def test_plain_body_becomes_transport_error(self):
        error = error_from_response(self._response(500, text="Internal error"))
        assert isinstance(error, TransportError)
        assert error.status_code == 500
        assert str(error) == "Error 500"

    def test_json_without_message(self):
        error = error_from_response(self._response(404, json={"error": "x"}))
        assert isinstance(error, TransportError)

    def test_auth_failure_flag(self):
        assert error_from_response(self._response(401)).is_auth_failure
        assert error_from_response(self._response(403)).is_auth_failure
        assert not error_from_response(self._response(500)).is_auth_failure

    def test_error_message(self):
        assert error_message("plain") == "plain"
        assert error_message(RemoteError("boom", 400)) == "boom"
        assert error_message(ValueError("bad")) == "bad"
        assert error_message(42) == "42"


# =============================================================================
# GatewayTransport
# =============================================================================

class TestGatewayTransport:
    """Tests for GatewayTransport exchanges."""

    def test_request_json(self):
        transport = make_transport(lambda r: httpx.Response(200, json={"boolean": True}))
        assert transport.request_json("GET", URL) == {"boolean": True}

    def test_request_text_and_bytes(self):
        transport = make_transport(lambda r: httpx.Response(200, content=b"<a> <b> <c> ."))
        assert transport.request_text("GET", URL) == "<a> <b> <c> ."
        assert transport.request_bytes("GET", URL) == b"<a> <b> <c> ."

    def test_invalid_json_raises_decode_error(self):
        transport = make_transport(lambda r: httpx.Response(200, text="not json"))
        with pytest.raises(DecodeError):
            transport.request_json("GET", URL)

    def test_sends_auth_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        transport = make_transport(handler)
        transport.request("GET", URL, credentials=("admin", "secret"))
        assert seen[0].headers["Authorization"] == basic_auth_header("admin", "secret")

    def test_not_authorized_callback_once(self):
        calls = []
        transport = make_transport(
            lambda r: httpx.Response(401, text="Unauthorized"),
            on_not_authorized=lambda: calls.append(1),
        )
        with pytest.raises(TransportError) as exc_info:
            transport.request("GET", URL)
        assert calls == [1]
        assert exc_info.value.status_code == 401

    def test_forbidden_with_message(self):
        calls = []
        transport = make_transport(
            lambda r: httpx.Response(403, json={"message": "read only"}),
            on_not_authorized=lambda: calls.append(1),
        )
        with pytest.raises(RemoteError, match="read only"):
            transport.request("POST", URL)
        assert calls == [1]

    def test_no_callback_registered(self):
        transport = make_transport(lambda r: httpx.Response(401))
        with pytest.raises(RequestError):
            transport.request("GET", URL)

    def test_success_does_not_call_callback(self):
        calls = []
        transport = make_transport(
            lambda r: httpx.Response(204),
            on_not_authorized=lambda: calls.append(1),
        )
        transport.request("DELETE", URL)
        assert calls == []

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)
        with pytest.raises(TransportError) as exc_info:
            transport.request("GET", URL)
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_context_manager_closes(self):
        with make_transport(lambda r: httpx.Response(200)) as transport:
            transport.request("GET", URL)
        assert transport._client.is_closed
