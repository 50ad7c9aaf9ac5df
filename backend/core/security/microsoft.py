"""
Microsoft identity platform bearer token validation.

Tokens are RS256 JWTs signed with keys published at the tenant's JWKS
endpoint. Keys are fetched with httpx and cached on the validator instance.
"""

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

LOGIN_BASE_URL = "https://login.microsoftonline.com"

# Key sets are kept for at most this many tenants; the oldest is evicted first
MAX_CACHED_TENANTS = 8


class MicrosoftAuthConfigError(Exception):
    """Raised when the validator is missing its client id configuration."""

    pass


@dataclass
class MicrosoftIdentity:
    """Verified caller identity."""

    subject: str
    tenant_id: str
    name: str | None = None
    email: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


def allowed_audiences(client_id: str) -> set[str]:
    return {
        client_id,
        f"api://{client_id}",
        f"api://{client_id}/.default",
        f"api://{client_id}/user_impersonation",
    }


class MicrosoftTokenValidator:
    """Validates Microsoft-issued bearer tokens for one application registration."""

    def __init__(
        self,
        client_id: str | None,
        tenant_id: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
        jwks_requests_per_minute: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            client_id: Application (client) id tokens must be issued for
            tenant_id: Configured tenant; used when a token carries no ``tid``
            timeout: JWKS request timeout in seconds
            http_client: Client used for JWKS requests (one is created if omitted)
            jwks_requests_per_minute: Cap on JWKS fetches across all tenants;
                tokens needing a fetch beyond it are rejected
            clock: Monotonic time source, in seconds
        """
        self.client_id = client_id
        self.tenant_id = tenant_id
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None
        self._jwks: dict[str, list[dict[str, Any]]] = {}
        self.jwks_requests_per_minute = max(1, jwks_requests_per_minute)
        self._clock = clock
        self._fetch_times: deque[float] = deque()

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _fetch_allowed(self) -> bool:
        """True while fewer than ``jwks_requests_per_minute`` fetches ran in the last minute."""
        now = self._clock()
        while self._fetch_times and now - self._fetch_times[0] >= 60.0:
            self._fetch_times.popleft()
        return len(self._fetch_times) < self.jwks_requests_per_minute

    async def _fetch_keys(self, tenant_id: str) -> list[dict[str, Any]] | None:
        if not self._fetch_allowed():
            logger.warning("JWKS request limit reached, not fetching keys for tenant %s", tenant_id)
            return None
        self._fetch_times.append(self._clock())

        url = f"{LOGIN_BASE_URL}/{tenant_id}/discovery/v2.0/keys"
        response = await self._http.get(url)
        response.raise_for_status()
        keys = response.json().get("keys", [])

        self._jwks.pop(tenant_id, None)
        self._jwks[tenant_id] = keys
        while len(self._jwks) > MAX_CACHED_TENANTS:
            self._jwks.pop(next(iter(self._jwks)))
        return keys

    async def _signing_key(self, tenant_id: str, kid: str | None) -> dict[str, Any] | None:
        keys = self._jwks.get(tenant_id)
        if keys is None:
            keys = await self._fetch_keys(tenant_id) or []
        for key in keys:
            if key.get("kid") == kid:
                return key
        # Keys rotate; refetch for an unknown kid, within the request limit
        for key in await self._fetch_keys(tenant_id) or []:
            if key.get("kid") == kid:
                return key
        return None

    async def verify(self, token: str | None) -> MicrosoftIdentity | None:
        """
        Verify a bearer token.

        Returns:
            MicrosoftIdentity when the token is valid, otherwise None

        Raises:
            MicrosoftAuthConfigError: No client id configured
        """
        if not self.client_id:
            raise MicrosoftAuthConfigError("MICROSOFT_CLIENT_ID is not configured")
        if not token:
            return None

        try:
            header = jwt.get_unverified_header(token)
            unverified = jwt.get_unverified_claims(token)
        except JWTError:
            return None

        tenant_id = unverified.get("tid") or self.tenant_id
        if not tenant_id:
            logger.warning("Token has no tenant and none is configured")
            return None
        if self.tenant_id and tenant_id != self.tenant_id:
            logger.warning("Token tenant %s differs from configured tenant", tenant_id)

        try:
            key = await self._signing_key(tenant_id, header.get("kid"))
        except httpx.HTTPError as e:
            logger.error("Failed to fetch signing keys: %s", type(e).__name__)
            return None
        if key is None:
            logger.warning("No signing key matches token kid")
            return None

        try:
            # python-jose accepts a single audience only; audiences are checked below
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                issuer=f"{LOGIN_BASE_URL}/{tenant_id}/v2.0",
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.info("Token rejected: %s", e)
            return None

        audience = claims.get("aud")
        audiences = audience if isinstance(audience, list) else [audience]
        if not allowed_audiences(self.client_id).intersection(audiences):
            logger.info("Token rejected: audience mismatch")
            return None

        return MicrosoftIdentity(
            subject=str(claims.get("oid") or claims.get("sub") or ""),
            tenant_id=tenant_id,
            name=claims.get("name"),
            email=claims.get("preferred_username") or claims.get("email"),
            claims=claims,
        )
