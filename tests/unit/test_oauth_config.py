"""Unit tests for OAuthConfig and authorization URL construction."""

import urllib.parse

import pytest

from beltic_wizard.core.oauth import (
    OAuthConfig,
    ValidationError,
    build_authorization_url,
    build_signup_url,
)
from beltic_wizard.core.oauth.pkce import PkceCodes


@pytest.fixture
def pkce():
    return PkceCodes(code_verifier="v" * 43, code_challenge="challenge-value")


def _query(url: str) -> list[tuple[str, str]]:
    return urllib.parse.parse_qsl(urllib.parse.urlsplit(url).query, keep_blank_values=True)


class TestOAuthConfigDefaults:
    def test_beltic_defaults(self):
        config = OAuthConfig()

        assert config.authorization_endpoint == "https://api.workos.com/user_management/authorize"
        assert config.token_endpoint == "https://kya.beltic.app/api/auth/token"
        assert config.client_id.startswith("client_")
        assert config.scopes == ("openid", "email", "profile")
        assert config.authorize_params == {"provider": "authkit"}
        assert config.port == 8239
        assert config.timeout == 300

    def test_local_urls(self):
        config = OAuthConfig(port=9123)

        assert config.redirect_uri == "http://localhost:9123/callback"
        assert config.local_authorize_url == "http://localhost:9123/authorize"
        assert config.local_signup_url == "http://localhost:9123/authorize?signup=true"

    def test_config_is_immutable(self):
        config = OAuthConfig()

        with pytest.raises(AttributeError):
            config.port = 9000  # type: ignore[misc]


class TestOAuthConfigValidation:
    @pytest.mark.parametrize("port", [80, 1023, 65536, True])
    def test_rejects_bad_ports(self, port):
        with pytest.raises(ValidationError) as exc_info:
            OAuthConfig(port=port)

        assert exc_info.value.field == "port"

    @pytest.mark.parametrize("timeout", [0, 3601, -5])
    def test_rejects_bad_timeouts(self, timeout):
        with pytest.raises(ValidationError):
            OAuthConfig(timeout=timeout)

    def test_rejects_plain_http_remote_endpoint(self):
        with pytest.raises(ValidationError) as exc_info:
            OAuthConfig(token_endpoint="http://kya.beltic.app/api/auth/token")

        assert "HTTPS" in str(exc_info.value)

    def test_allows_plain_http_on_loopback(self):
        config = OAuthConfig(token_endpoint="http://127.0.0.1:5000/api/auth/token")

        assert config.token_endpoint.startswith("http://127.0.0.1")

    def test_rejects_empty_client_id(self):
        with pytest.raises(ValidationError):
            OAuthConfig(client_id="")

    def test_rejects_empty_scopes(self):
        with pytest.raises(ValidationError):
            OAuthConfig(scopes=())

    def test_rejects_scope_string(self):
        with pytest.raises(ValidationError):
            OAuthConfig(scopes="openid email")  # type: ignore[arg-type]

    def test_scopes_are_deduplicated_in_order(self):
        config = OAuthConfig(scopes=["email", "openid", "email"])

        assert config.scopes == ("email", "openid")


class TestBuildAuthorizationUrl:
    def test_contains_all_oauth_parameters(self, pkce):
        config = OAuthConfig()
        url = build_authorization_url(config, pkce, "state-123")
        params = dict(_query(url))

        assert url.startswith("https://api.workos.com/user_management/authorize?")
        assert params["client_id"] == config.client_id
        assert params["redirect_uri"] == "http://localhost:8239/callback"
        assert params["response_type"] == "code"
        assert params["code_challenge"] == "challenge-value"
        assert params["code_challenge_method"] == "S256"
        assert params["scope"] == "openid email profile"
        assert params["state"] == "state-123"
        assert params["provider"] == "authkit"

    def test_never_contains_the_verifier(self, pkce):
        url = build_authorization_url(OAuthConfig(), pkce, "state-123")

        assert pkce.code_verifier not in url

    def test_keeps_existing_query_parameters(self, pkce):
        config = OAuthConfig(
            authorization_endpoint="https://auth.example.com/authorize?tenant=acme",
            authorize_params={},
        )
        query = _query(build_authorization_url(config, pkce, "s"))

        assert query[0] == ("tenant", "acme")
        assert ("state", "s") in query

    def test_oauth_parameters_replace_duplicates_from_endpoint(self, pkce):
        config = OAuthConfig(
            authorization_endpoint="https://auth.example.com/authorize?state=stale",
        )
        query = _query(build_authorization_url(config, pkce, "fresh"))

        assert [value for key, value in query if key == "state"] == ["fresh"]


class TestBuildSignupUrl:
    def test_none_without_signup_endpoint(self):
        config = OAuthConfig()

        assert build_signup_url(config, "https://auth.example.com/authorize?x=1") is None

    def test_signup_url_returns_to_authorization_url(self):
        config = OAuthConfig(signup_endpoint="https://kya.beltic.app/signup")
        auth_url = "https://api.workos.com/user_management/authorize?state=abc&scope=openid"

        signup_url = build_signup_url(config, auth_url)

        assert signup_url is not None
        assert signup_url.startswith("https://kya.beltic.app/signup?")
        assert dict(_query(signup_url))["next"] == auth_url
