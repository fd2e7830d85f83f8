"""Unit tests for the token exchanger and HTTP client layer."""

import httpx
import pytest
import respx

from beltic_wizard.core.oauth import (
    HttpError,
    HttpxHttpClient,
    InvalidTokenResponseError,
    MockHttpClient,
    TokenBundle,
    TokenExchangeContext,
    TokenExchanger,
)
from tests.fixtures.mock_http import TOKEN_URL


@pytest.fixture
def ctx():
    return TokenExchangeContext(
        code="code-abc",
        code_verifier="verifier-xyz",
        redirect_uri="http://localhost:8239/callback",
        client_id="client_123",
        token_endpoint=TOKEN_URL,
    )


class TestTokenExchanger:
    def test_posts_json_body_and_parses_tokens(self, ctx, token_response):
        http = MockHttpClient(json_response=token_response)

        bundle = TokenExchanger(http).exchange(ctx)

        assert bundle == TokenBundle(
            access_token="tok_1",
            refresh_token="refresh_1",
            token_type="Bearer",
            expires_in=3600,
        )
        [request] = http.requests
        assert request["method"] == "POST"
        assert request["url"] == TOKEN_URL
        assert request["json"] == {
            "code": "code-abc",
            "code_verifier": "verifier-xyz",
            "redirect_uri": "http://localhost:8239/callback",
            "client_id": "client_123",
        }
        assert request["headers"]["Accept"] == "application/json"
        assert request["headers"]["Content-Type"] == "application/json"

    def test_minimal_response(self, ctx):
        http = MockHttpClient(json_response={"access_token": "tok_only"})

        bundle = TokenExchanger(http).exchange(ctx)

        assert bundle.access_token == "tok_only"
        assert bundle.refresh_token is None
        assert bundle.expires_in is None

    def test_non_2xx_raises_http_error(self, ctx):
        http = MockHttpClient(status_code=400, json_response={"error": "invalid_grant"})

        with pytest.raises(HttpError) as exc_info:
            TokenExchanger(http).exchange(ctx)

        assert exc_info.value.status_code == 400
        assert "invalid_grant" in exc_info.value.body
        assert exc_info.value.reason == "transport"

    def test_non_json_body_is_invalid_response(self, ctx):
        http = MockHttpClient(text_response="<html>oops</html>")

        with pytest.raises(InvalidTokenResponseError):
            TokenExchanger(http).exchange(ctx)

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {},
            {"access_token": ""},
            {"access_token": 123},
            {"access_token": "tok", "expires_in": "3600"},
            {"access_token": "tok", "expires_in": True},
            {"access_token": "tok", "refresh_token": 5},
        ],
    )
    def test_malformed_payloads_are_rejected(self, ctx, payload):
        http = MockHttpClient(json_response=payload)

        with pytest.raises(InvalidTokenResponseError):
            TokenExchanger(http).exchange(ctx)

    def test_float_expiry_is_truncated(self):
        bundle = TokenBundle.from_response({"access_token": "tok", "expires_in": 3600.0})

        assert bundle.expires_in == 3600

    def test_context_repr_hides_secrets(self, ctx):
        text = repr(ctx)

        assert "code-abc" not in text
        assert "verifier-xyz" not in text


class TestHttpxHttpClient:
    @respx.mock
    def test_post_json_success(self, ctx, token_response):
        route = respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=token_response))
        http = HttpxHttpClient()
        try:
            bundle = TokenExchanger(http).exchange(ctx)
        finally:
            http.close()

        assert bundle.access_token == "tok_1"
        assert route.called
        sent = route.calls.last.request
        assert sent.headers["accept"] == "application/json"
        assert b'"code_verifier":"verifier-xyz"' in sent.content.replace(b" ", b"")

    @respx.mock
    def test_status_error_is_wrapped(self):
        respx.get("https://kya.beltic.app/api/developers/me").mock(
            return_value=httpx.Response(503, text="maintenance")
        )
        http = HttpxHttpClient()
        try:
            with pytest.raises(HttpError) as exc_info:
                http.get("https://kya.beltic.app/api/developers/me")
        finally:
            http.close()

        assert exc_info.value.status_code == 503
        assert not exc_info.value.is_network_error
        assert "maintenance" in str(exc_info.value)

    @respx.mock
    def test_transport_error_is_network_error(self, ctx):
        respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("connection refused"))
        http = HttpxHttpClient()
        try:
            with pytest.raises(HttpError) as exc_info:
                TokenExchanger(http).exchange(ctx)
        finally:
            http.close()

        assert exc_info.value.is_network_error
        assert str(exc_info.value).startswith(f"Network error for {TOKEN_URL}")

    @respx.mock
    def test_requests_are_not_retried(self, ctx):
        route = respx.post(TOKEN_URL).mock(return_value=httpx.Response(500))
        http = HttpxHttpClient()
        try:
            with pytest.raises(HttpError):
                TokenExchanger(http).exchange(ctx)
        finally:
            http.close()

        assert route.call_count == 1
