"""OAuth 2.0 (PKCE) authentication against the X API.

The connect flow:
    1. generate_pkce() creates a code verifier, its S256 challenge and a state.
    2. build_authorization_url() sends the user to X to approve access.
    3. X redirects to redirect_uri with ?code=...&state=...
    4. OAuthClient.exchange_code() trades the code for access + refresh tokens.

Access tokens live for two hours. TokenManager refreshes them shortly before
they expire and persists the new pair immediately, because X rotates the
refresh token on every use.
"""

import base64
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from .errors import AuthError, NotAuthenticated
from .logging_config import truncate_for_log
from .models import Credential, User
from .state import StateManager

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://x.com/i/oauth2/authorize"
TOKEN_URL = "https://api.x.com/2/oauth2/token"
USERS_ME_URL = "https://api.x.com/2/users/me"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8765/callback"
SCOPES = "bookmark.read tweet.read users.read offline.access"

# Refresh when less than this much lifetime is left
REFRESH_MARGIN_SECONDS = 5 * 60

_UNRESERVED_CHARS = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
)


@dataclass
class PKCEChallenge:
    code_verifier: str
    code_challenge: str
    state: str


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: str
    expires_in: int
    scope: str = ""
    token_type: str = "bearer"


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_UNRESERVED_CHARS) for _ in range(length))


def code_challenge_for(code_verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce() -> PKCEChallenge:
    verifier = _random_string(64)
    return PKCEChallenge(
        code_verifier=verifier,
        code_challenge=code_challenge_for(verifier),
        state=_random_string(32),
    )


def build_authorization_url(
    client_id: str,
    code_challenge: str,
    state: str,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": SCOPES,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def parse_callback_url(url: str) -> tuple[str, str]:
    """Extract (code, state) from the URL X redirected the browser to."""
    query = parse_qs(urlparse(url.strip()).query)
    error = query.get("error", [""])[0]
    if error:
        raise AuthError(f"X authorization denied: {error}")
    code = query.get("code", [""])[0]
    state = query.get("state", [""])[0]
    if not code or not state:
        raise AuthError("Invalid OAuth callback: missing code or state.")
    return code, state


class OAuthClient:
    """Talks to the X OAuth token endpoint and /users/me."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        http: httpx.Client | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._client = http or httpx.Client(timeout=30.0)

    def exchange_code(self, code: str, code_verifier: str) -> TokenResponse:
        return self._token_request(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
                "code_verifier": code_verifier,
            },
            action="Token exchange",
        )

    def refresh(self, refresh_token: str) -> TokenResponse:
        return self._token_request(
            {
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
                "client_id": self.client_id,
            },
            action="Token refresh",
        )

    def fetch_current_user(self, access_token: str) -> User:
        try:
            response = self._client.get(
                USERS_ME_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Failed to fetch user: {e}") from e

        if response.status_code != 200:
            raise AuthError(
                f"Failed to fetch user ({response.status_code}): {truncate_for_log(response.text)}"
            )
        try:
            data = response.json()["data"]
            return User(id=data["id"], name=data.get("name", ""), username=data["username"])
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            raise AuthError(f"Failed to fetch user: unexpected payload ({e})") from e

    def _token_request(self, form: dict, action: str) -> TokenResponse:
        try:
            response = self._client.post(
                TOKEN_URL,
                data=form,
                auth=(self.client_id, self.client_secret),
            )
        except httpx.HTTPError as e:
            raise AuthError(f"{action} failed: {e}") from e

        if response.status_code != 200:
            raise AuthError(
                f"{action} failed ({response.status_code}): {truncate_for_log(response.text)}"
            )

        try:
            data = response.json()
            return TokenResponse(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_in=int(data["expires_in"]),
                scope=data.get("scope", ""),
                token_type=data.get("token_type", "bearer"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise AuthError(f"{action} returned an unexpected payload: {e}") from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def credential_from_token(
    token: TokenResponse, client_id: str, client_secret: str, now: float
) -> Credential:
    return Credential(
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        expires_at=now + token.expires_in,
        client_id=client_id,
        client_secret=client_secret,
    )


class TokenManager:
    """Hands out a usable access token, refreshing it when close to expiry."""

    def __init__(
        self,
        state: StateManager,
        oauth: OAuthClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.state = state
        self._oauth = oauth
        self._clock = clock

    def ensure_valid_token(self) -> str:
        cred = self.state.credential
        if cred is None or not cred.access_token or not cred.refresh_token:
            raise NotAuthenticated()

        now = self._clock()
        if cred.expires_at - now > REFRESH_MARGIN_SECONDS:
            return cred.access_token

        logger.info("Access token expires soon. Refreshing...")
        if self._oauth is not None:
            token = self._oauth.refresh(cred.refresh_token)
        else:
            with OAuthClient(cred.client_id, cred.client_secret) as oauth:
                token = oauth.refresh(cred.refresh_token)

        self.state.credential = credential_from_token(
            token, cred.client_id, cred.client_secret, self._clock()
        )
        self.state.save()
        logger.debug("Token refreshed; new expiry in %ds", token.expires_in)
        return self.state.credential.access_token
