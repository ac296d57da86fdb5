"""Supabase Auth (GoTrue) client."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from jose import JWTError, jwt

from ..errors import AuthError
from .base import SIGNED_OUT, AuthProvider, AuthSession

logger = logging.getLogger(__name__)


def _session_from_payload(payload: Dict[str, Any]) -> AuthSession:
    user = payload.get("user") or {}
    expires_in = payload.get("expires_in")
    return AuthSession(
        user_id=str(user.get("id", "")),
        email=user.get("email", ""),
        access_token=payload["access_token"],
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in) if expires_in else None,
    )


class SupabaseAuth(AuthProvider):
    """AuthProvider backed by a Supabase project's `/auth/v1` endpoints."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.base_url = f"{url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"apikey": self.anon_key, "Content-Type": "application/json"},
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.post(path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth request {path} failed: {e}")
            raise AuthError(f"Authentication service unavailable: {e}") from e
        if response.status_code >= 400:
            try:
                detail = response.json()
                message = detail.get("msg") or detail.get("error_description") or detail.get("message")
            except ValueError:
                message = None
            raise AuthError(message or f"Authentication failed with status {response.status_code}")
        return response

    async def sign_up(self, email: str, password: str) -> AuthSession:
        response = await self._post("/signup", json={"email": email, "password": password})
        payload = response.json()
        if "access_token" not in payload:
            raise AuthError("Check your email for the confirmation link")
        return await self._signed_in(_session_from_payload(payload))

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return await self._signed_in(_session_from_payload(response.json()))

    async def sign_out(self, access_token: Optional[str] = None) -> None:
        session = await self.get_session(access_token)
        if session is None:
            return
        await self._post("/logout", headers={"Authorization": f"Bearer {session.access_token}"})
        if self._current and self._current.access_token == session.access_token:
            self._current = None
        await self._emit(SIGNED_OUT, session)

    async def get_session(self, access_token: Optional[str] = None) -> Optional[AuthSession]:
        """Validate a token with the auth server.

        Expired tokens are rejected from their claims without a network call.
        """
        if access_token is None:
            return self._current
        try:
            claims = jwt.get_unverified_claims(access_token)
        except JWTError:
            return None
        expires_at = None
        if "exp" in claims:
            expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
            if expires_at <= datetime.now(timezone.utc):
                return None

        client = await self._get_client()
        try:
            response = await client.get("/user", headers={"Authorization": f"Bearer {access_token}"})
        except httpx.HTTPError as e:
            logger.error(f"Could not verify session: {e}")
            return None
        if response.status_code != 200:
            return None
        user = response.json()
        return AuthSession(
            user_id=str(user.get("id") or claims.get("sub", "")),
            email=user.get("email") or claims.get("email", ""),
            access_token=access_token,
            expires_at=expires_at,
        )
