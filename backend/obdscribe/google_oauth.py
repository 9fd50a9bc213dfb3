"""Google OAuth 2.0 authorization-code flow.

The ``state`` parameter carries the post-login redirect path.  It is signed
and short-lived so a callback can only redirect to a path this service
chose, and only shortly after the flow started.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
import jwt


GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_SCOPES = ("openid", "email", "profile")

DEFAULT_REDIRECT_PATH = "/app/new-report"
STATE_TTL = timedelta(minutes=10)
STATE_ALGORITHM = "HS256"
STATE_AUDIENCE = "obdscribe-google-oauth"


class GoogleOAuthError(Exception):
    """A Google endpoint returned a non-success response."""

    def __init__(self, code: str, detail: str = "") -> None:
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.detail = detail


@dataclass(frozen=True)
class GoogleProfile:
    sub: str
    email: str
    email_verified: bool = False
    name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_userinfo(cls, payload: dict[str, Any]) -> "GoogleProfile":
        sub = payload.get("sub")
        email = payload.get("email")
        if not isinstance(sub, str) or not sub or not isinstance(email, str) or not email:
            raise GoogleOAuthError("PROFILE_FETCH_FAILED", "userinfo is missing sub or email")
        return cls(
            sub=sub,
            email=email,
            email_verified=bool(payload.get("email_verified", False)),
            name=payload.get("name") or None,
            picture=payload.get("picture") or None,
        )


def safe_redirect_path(path: Optional[str]) -> str:
    """Only site-relative paths may be used as post-login redirects."""
    if not path or not path.startswith("/") or path.startswith("//") or "\\" in path:
        return DEFAULT_REDIRECT_PATH
    return path


def encode_state(redirect_path: Optional[str], secret: str, *, now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "redirect": safe_redirect_path(redirect_path),
        "nonce": secrets.token_urlsafe(16),
        "aud": STATE_AUDIENCE,
        "iat": issued_at,
        "exp": issued_at + STATE_TTL,
    }
    return jwt.encode(payload, secret, algorithm=STATE_ALGORITHM)


def decode_state(state: Optional[str], secret: str) -> Optional[str]:
    """Return the redirect path carried by ``state``, or ``None`` if it is invalid."""
    if not state:
        return None
    try:
        payload = jwt.decode(
            state,
            secret,
            algorithms=[STATE_ALGORITHM],
            audience=STATE_AUDIENCE,
            options={"require": ["exp", "aud"]},
        )
    except jwt.PyJWTError:
        return None
    return safe_redirect_path(payload.get("redirect"))


class GoogleOAuthClient:
    """Thin async client for Google's authorization, token and userinfo endpoints."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._http_client = http_client
        self._timeout = timeout

    def build_authorization_url(self, state: str, redirect_hint: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",
            "include_granted_scopes": "true",
            "state": state,
        }
        if redirect_hint:
            params["prompt"] = "consent"
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if not response.is_success:
            raise GoogleOAuthError("EXCHANGE_FAILED", response.text)
        tokens = response.json()
        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise GoogleOAuthError("EXCHANGE_FAILED", "token response has no access_token")
        return tokens

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        response = await self._request(
            "GET",
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            raise GoogleOAuthError("PROFILE_FETCH_FAILED", response.text)
        payload = response.json()
        if not isinstance(payload, dict):
            raise GoogleOAuthError("PROFILE_FETCH_FAILED", "userinfo is not a JSON object")
        return GoogleProfile.from_userinfo(payload)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)
