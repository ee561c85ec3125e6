"""
Google Identity Token Source.

Desktop OAuth 2.0 authorization-code flow with PKCE over a loopback
redirect:

1. Start a one-shot HTTP listener on ``127.0.0.1`` (ephemeral port).
2. Open the Google account chooser in the system browser.
3. Receive ``?code=...&state=...`` on the listener.
4. Exchange the code at the token endpoint for an OpenID ``id_token``.

The id token is then handed to Supabase (``sign_in_with_id_token``).
Closing the chooser (``error=access_denied``) or letting the flow time
out counts as a cancellation and yields ``None``.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import secrets
import webbrowser
from functools import partial
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx

from authshell.exceptions import FederatedSignInError
from authshell.logger import StructuredLogger

AUTHORIZATION_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL: str = "https://oauth2.googleapis.com/token"

_LOOPBACK_HOST: str = "127.0.0.1"
_CANCELLED_ERROR: str = "access_denied"

_DONE_PAGE: bytes = (
    b"<!doctype html><html><body style='font-family:sans-serif'>"
    b"<h3>You can close this tab and return to the application.</h3>"
    b"</body></html>"
)


def _pkce_pair() -> tuple[str, str]:
    """Return ``(code_verifier, code_challenge)`` for the S256 method."""
    verifier = secrets.token_urlsafe(64)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


class GoogleIdTokenSource:
    """Implements ``IIdentityTokenSource`` for Google accounts.

    Parameters
    ----------
    client_id:
        OAuth client id of a "Desktop app" credential.
    client_secret:
        The matching client secret (not confidential for desktop clients).
    logger:
        Structured logger instance.
    timeout_s:
        How long to wait for the browser redirect before giving up.
    open_browser:
        Callable used to open the authorization URL.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        logger: StructuredLogger,
        timeout_s: float = 180.0,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self._client_id = client_id.strip()
        self._client_secret = client_secret
        self._logger = logger
        self._timeout_s = timeout_s
        self._open_browser = open_browser

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id)

    def build_authorization_url(self, redirect_uri: str, state: str, code_challenge: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        return f"{AUTHORIZATION_URL}?{urlencode(params)}"

    async def request_id_token(self) -> Optional[str]:
        if not self.is_configured:
            raise FederatedSignInError("Google client id is not configured.")

        state = secrets.token_urlsafe(16)
        verifier, challenge = _pkce_pair()
        loop = asyncio.get_running_loop()
        callback: asyncio.Future[dict[str, str]] = loop.create_future()

        server = await asyncio.start_server(
            partial(self._handle_redirect, callback), host=_LOOPBACK_HOST, port=0,
        )
        try:
            port = server.sockets[0].getsockname()[1]
            redirect_uri = f"http://{_LOOPBACK_HOST}:{port}"
            url = self.build_authorization_url(redirect_uri, state, challenge)

            self._logger.info("Opening Google account chooser.", extra={"event": "GOOGLE_SIGN_IN_START"})
            if not self._open_browser(url):
                raise FederatedSignInError("Could not open the system browser.")

            try:
                params = await asyncio.wait_for(callback, timeout=self._timeout_s)
            except asyncio.TimeoutError:
                self._logger.info(
                    "Google sign-in timed out after %.0fs.", self._timeout_s,
                    extra={"event": "GOOGLE_SIGN_IN_TIMEOUT"},
                )
                return None
        finally:
            server.close()
            await server.wait_closed()

        code = self.parse_callback(params, expected_state=state)
        if code is None:
            self._logger.info("Google sign-in cancelled.", extra={"event": "GOOGLE_SIGN_IN_CANCELLED"})
            return None
        return await self.exchange_code(code, verifier, redirect_uri)

    @staticmethod
    def parse_callback(params: dict[str, str], expected_state: str) -> Optional[str]:
        """Return the authorization code, or ``None`` when the user cancelled.

        Raises
        ------
        FederatedSignInError
            On any other OAuth error, a state mismatch or a missing code.
        """
        error = params.get("error")
        if error == _CANCELLED_ERROR:
            return None
        if error:
            raise FederatedSignInError(f"Google returned an error: {error}")
        if not secrets.compare_digest(params.get("state", ""), expected_state):
            raise FederatedSignInError("OAuth state mismatch.")
        code = params.get("code", "")
        if not code:
            raise FederatedSignInError("Google redirect carried no authorization code.")
        return code

    async def exchange_code(self, code: str, code_verifier: str, redirect_uri: str) -> str:
        """Exchange an authorization code for an id token.

        Returns the id token, which may be empty if Google omitted it.
        """
        payload = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "code": code,
            "code_verifier": code_verifier,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        }
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(TOKEN_URL, data=payload)
        except httpx.HTTPError as exc:
            raise FederatedSignInError("Google token exchange failed.", exc) from exc

        if response.status_code != httpx.codes.OK:
            self._logger.warning(
                "Google token exchange returned HTTP %s.", response.status_code,
                extra={"event": "GOOGLE_TOKEN_EXCHANGE_FAILED"},
            )
            raise FederatedSignInError(
                f"Google token exchange returned HTTP {response.status_code}."
            )
        return str(response.json().get("id_token") or "")

    async def _handle_redirect(
        self,
        callback: "asyncio.Future[dict[str, str]]",
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            request_line = await reader.readline()
            while True:
                header = await reader.readline()
                if header in (b"\r\n", b"\n", b""):
                    break

            parts = request_line.decode("latin-1").split(" ")
            target = parts[1] if len(parts) >= 2 else "/"
            params = dict(parse_qsl(urlsplit(target).query))

            if not params:
                writer.write(b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\nConnection: close\r\n\r\n")
            else:
                writer.write(
                    b"HTTP/1.1 200 OK\r\n"
                    b"Content-Type: text/html; charset=utf-8\r\n"
                    + f"Content-Length: {len(_DONE_PAGE)}\r\n".encode("ascii")
                    + b"Connection: close\r\n\r\n"
                    + _DONE_PAGE
                )
                if not callback.done():
                    callback.set_result(params)
            await writer.drain()
        finally:
            writer.close()
