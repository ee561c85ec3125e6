from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from authshell.backend.google_oauth import AUTHORIZATION_URL, GoogleIdTokenSource, _pkce_pair
from authshell.exceptions import FederatedSignInError


class TestGoogleIdTokenSource:
    @pytest.fixture
    def source(self, logger):
        return GoogleIdTokenSource("client-123", "secret", logger, open_browser=MagicMock(return_value=True))

    def test_is_configured(self, logger):
        """Should require a client id."""
        assert GoogleIdTokenSource("client-123", "", logger).is_configured
        assert not GoogleIdTokenSource("  ", "", logger).is_configured

    def test_build_authorization_url(self, source):
        """Should request an OpenID code with PKCE and the account chooser."""
        url = source.build_authorization_url("http://127.0.0.1:5000", "st", "chal")

        assert url.startswith(AUTHORIZATION_URL)
        params = parse_qs(urlsplit(url).query)
        assert params["client_id"] == ["client-123"]
        assert params["redirect_uri"] == ["http://127.0.0.1:5000"]
        assert params["response_type"] == ["code"]
        assert params["code_challenge_method"] == ["S256"]
        assert params["prompt"] == ["select_account"]
        assert "openid" in params["scope"][0]

    def test_pkce_pair(self):
        """Should produce an unpadded challenge distinct from the verifier."""
        verifier, challenge = _pkce_pair()
        assert verifier != challenge
        assert "=" not in challenge

    def test_parse_callback_returns_code(self):
        """Should return the code when the state matches."""
        assert GoogleIdTokenSource.parse_callback({"code": "abc", "state": "s"}, "s") == "abc"

    def test_parse_callback_cancelled(self):
        """Should treat access_denied as a cancellation."""
        assert GoogleIdTokenSource.parse_callback({"error": "access_denied"}, "s") is None

    @pytest.mark.parametrize("params", [
        {"error": "server_error"},
        {"code": "abc", "state": "other"},
        {"state": "s"},
    ])
    def test_parse_callback_failures(self, params):
        """Should raise on OAuth errors, state mismatch or a missing code."""
        with pytest.raises(FederatedSignInError):
            GoogleIdTokenSource.parse_callback(params, "s")

    @pytest.mark.asyncio
    async def test_request_id_token_not_configured(self, logger):
        """Should refuse to start without a client id."""
        with pytest.raises(FederatedSignInError):
            await GoogleIdTokenSource("", "", logger).request_id_token()

    @pytest.mark.asyncio
    async def test_request_id_token_browser_failure(self, logger):
        """Should fail when the system browser cannot be opened."""
        source = GoogleIdTokenSource("client-123", "", logger, open_browser=MagicMock(return_value=False))
        with pytest.raises(FederatedSignInError):
            await source.request_id_token()

    @pytest.mark.asyncio
    async def test_request_id_token_timeout(self, logger):
        """Should return None when no redirect arrives in time."""
        source = GoogleIdTokenSource(
            "client-123", "", logger, timeout_s=0.01, open_browser=MagicMock(return_value=True),
        )
        assert await source.request_id_token() is None

    @pytest.mark.asyncio
    async def test_exchange_code(self, source):
        """Should post the code and verifier and return the id token."""
        response = httpx.Response(200, json={"id_token": "jwt"})
        with patch("authshell.backend.google_oauth.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value.__aenter__.return_value
            client.post = AsyncMock(return_value=response)

            token = await source.exchange_code("code-1", "verifier-1", "http://127.0.0.1:1")

        assert token == "jwt"
        sent = client.post.call_args.kwargs["data"]
        assert sent["code"] == "code-1"
        assert sent["code_verifier"] == "verifier-1"
        assert sent["grant_type"] == "authorization_code"

    @pytest.mark.asyncio
    async def test_exchange_code_http_error(self, source):
        """Should raise when the token endpoint rejects the code."""
        with patch("authshell.backend.google_oauth.httpx.AsyncClient") as client_cls:
            client = client_cls.return_value.__aenter__.return_value
            client.post = AsyncMock(return_value=httpx.Response(400, json={"error": "invalid_grant"}))

            with pytest.raises(FederatedSignInError):
                await source.exchange_code("code-1", "verifier-1", "http://127.0.0.1:1")
