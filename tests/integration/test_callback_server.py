"""Integration tests for the loopback callback server (real sockets)."""

import errno
import socket

import httpx
import pytest

from beltic_wizard.core.oauth import CallbackBindError, CallbackPortInUseError
from beltic_wizard.core.oauth.callback_server import (
    Authorized,
    CallbackFailure,
    Denied,
    OAuthCallbackServer,
    TimedOut,
)

AUTHORIZE_URL = "https://auth.example.com/authorize?client_id=abc&state=expected-state"
SIGNUP_URL = "https://kya.beltic.app/signup?next=x"


@pytest.fixture
def server():
    srv = OAuthCallbackServer(AUTHORIZE_URL, "expected-state", signup_url=SIGNUP_URL, port=0)
    srv.start()
    yield srv
    srv.close()


@pytest.fixture
def client(server):
    with httpx.Client(
        base_url=f"http://127.0.0.1:{server.port}", trust_env=False, timeout=5
    ) as http:
        yield http


class TestAuthorizeRoute:
    def test_redirects_to_provider(self, client):
        response = client.get("/authorize")

        assert response.status_code == 302
        assert response.headers["location"] == AUTHORIZE_URL

    def test_redirects_to_signup_when_requested(self, client):
        response = client.get("/authorize", params={"signup": "true"})

        assert response.status_code == 302
        assert response.headers["location"] == SIGNUP_URL

    def test_signup_falls_back_to_provider_without_signup_url(self):
        with OAuthCallbackServer(AUTHORIZE_URL, "expected-state", port=0) as srv:
            srv.start()
            with httpx.Client(trust_env=False, timeout=5) as http:
                response = http.get(f"http://127.0.0.1:{srv.port}/authorize?signup=true")

        assert response.headers["location"] == AUTHORIZE_URL

    def test_authorize_does_not_resolve_the_attempt(self, server, client):
        client.get("/authorize")

        assert not server.completion.done


class TestCallbackRoute:
    def test_success(self, server, client):
        response = client.get("/callback", params={"code": "abc", "state": "expected-state"})

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Authorization successful" in response.text
        assert server.wait_for_outcome(1) == Authorized(code="abc", state="expected-state")

    def test_access_denied(self, server, client):
        response = client.get(
            "/callback", params={"error": "access_denied", "state": "expected-state"}
        )

        assert response.status_code == 200
        assert "cancelled" in response.text
        assert server.wait_for_outcome(1) == Denied("access_denied")

    def test_other_provider_error(self, server, client):
        response = client.get(
            "/callback",
            params={"error": "server_error", "error_description": "upstream down"},
        )

        assert response.status_code == 400
        assert server.wait_for_outcome(1) == CallbackFailure("server_error", "upstream down")

    def test_error_is_checked_before_state(self, server, client):
        client.get("/callback", params={"error": "access_denied", "state": "wrong"})

        assert server.wait_for_outcome(1) == Denied("access_denied")

    def test_state_mismatch(self, server, client):
        response = client.get("/callback", params={"code": "abc", "state": "wrong"})

        assert response.status_code == 400
        assert "Invalid state parameter" in response.text
        outcome = server.wait_for_outcome(1)
        assert isinstance(outcome, CallbackFailure)
        assert outcome.error_code == "state_mismatch"

    def test_missing_state(self, server, client):
        client.get("/callback", params={"code": "abc"})

        outcome = server.wait_for_outcome(1)
        assert isinstance(outcome, CallbackFailure)
        assert outcome.error_code == "state_mismatch"

    def test_state_prefix_does_not_match(self, server, client):
        client.get("/callback", params={"code": "abc", "state": "expected-stat"})

        assert server.wait_for_outcome(1).error_code == "state_mismatch"

    def test_missing_code(self, server, client):
        response = client.get("/callback", params={"state": "expected-state"})

        assert response.status_code == 400
        assert "no authorization code" in response.text
        assert server.wait_for_outcome(1) == CallbackFailure(
            "missing_code", "No authorization code in callback URL"
        )

    def test_only_first_callback_counts(self, server, client):
        client.get("/callback", params={"code": "first", "state": "expected-state"})
        client.get("/callback", params={"error": "access_denied"})

        assert server.wait_for_outcome(1) == Authorized(code="first", state="expected-state")


class TestOtherRoutes:
    def test_unknown_path_is_404(self, server, client):
        response = client.get("/favicon.ico")

        assert response.status_code == 404
        assert not server.completion.done

    def test_post_is_404(self, client):
        response = client.post("/callback", data={"code": "abc", "state": "expected-state"})

        assert response.status_code == 404

    @pytest.mark.parametrize("method", ["HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_other_methods_are_404(self, server, client, method):
        response = client.request(method, "/callback?code=abc&state=expected-state")

        assert response.status_code == 404
        assert not server.completion.done


class TestLifecycle:
    def test_wait_times_out(self, server):
        outcome = server.wait_for_outcome(0.1)

        assert outcome == TimedOut(0.1)
        assert server.completion.done

    def test_port_in_use(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            with pytest.raises(CallbackPortInUseError) as exc_info:
                OAuthCallbackServer(AUTHORIZE_URL, "s", port=port)

        assert exc_info.value.port == port
        assert f"Port {port} is already in use" in str(exc_info.value)

    def test_other_bind_failures_name_the_address(self, monkeypatch):
        def refuse(server):
            raise OSError(errno.EADDRNOTAVAIL, "Cannot assign requested address")

        monkeypatch.setattr(OAuthCallbackServer, "server_bind", refuse)

        with pytest.raises(CallbackBindError) as exc_info:
            OAuthCallbackServer(AUTHORIZE_URL, "s", port=8239)

        assert exc_info.value.host == "127.0.0.1"
        assert exc_info.value.port == 8239
        assert exc_info.value.reason == "transport"
        assert str(exc_info.value) == (
            "Cannot listen on 127.0.0.1:8239: Cannot assign requested address"
        )
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_close_releases_port_and_is_idempotent(self, free_port):
        srv = OAuthCallbackServer(AUTHORIZE_URL, "s", port=free_port)
        srv.start()
        srv.close()
        srv.close()

        assert srv.closed
        with OAuthCallbackServer(AUTHORIZE_URL, "s", port=free_port) as again:
            assert again.port == free_port

    def test_close_without_start(self, free_port):
        srv = OAuthCallbackServer(AUTHORIZE_URL, "s", port=free_port)
        srv.close()

        assert srv.closed
