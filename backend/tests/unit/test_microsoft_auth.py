"""
Unit tests for Microsoft bearer token validation.

Tokens are signed with a throwaway RSA key whose public half is served by an
httpx mock transport standing in for the tenant JWKS endpoint.
"""

import time

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from core.security import MicrosoftAuthConfigError, MicrosoftTokenValidator
from core.security.microsoft import MAX_CACHED_TENANTS

pytestmark = pytest.mark.asyncio

CLIENT_ID = "11111111-2222-3333-4444-555555555555"
TENANT_ID = "tenant-abc"


@pytest.fixture(scope="module")
def private_pem() -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="module")
def public_jwk(private_pem) -> dict:
    key = jwk.construct(private_pem, "RS256").public_key().to_dict()
    key["kid"] = "key-1"
    return key


@pytest.fixture
def jwks_requests() -> list[str]:
    return []


def _validator(public_jwk: dict, jwks_requests: list[str], **kwargs) -> MicrosoftTokenValidator:
    def handler(request: httpx.Request) -> httpx.Response:
        jwks_requests.append(str(request.url))
        return httpx.Response(200, json={"keys": [public_jwk]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MicrosoftTokenValidator(
        client_id=CLIENT_ID, tenant_id=TENANT_ID, http_client=client, **kwargs
    )


@pytest.fixture
def validator(public_jwk, jwks_requests):
    return _validator(public_jwk, jwks_requests)


def _token(private_pem: bytes, kid: str = "key-1", **overrides) -> str:
    now = int(time.time())
    claims = {
        "aud": CLIENT_ID,
        "iss": f"https://login.microsoftonline.com/{TENANT_ID}/v2.0",
        "tid": TENANT_ID,
        "oid": "user-oid",
        "name": "Admin User",
        "preferred_username": "admin@example.com",
        "iat": now,
        "nbf": now,
        "exp": now + 600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


class TestVerify:
    async def test_valid_token(self, validator, private_pem, jwks_requests):
        identity = await validator.verify(_token(private_pem))

        assert identity is not None
        assert identity.subject == "user-oid"
        assert identity.email == "admin@example.com"
        assert identity.tenant_id == TENANT_ID
        assert jwks_requests == [
            f"https://login.microsoftonline.com/{TENANT_ID}/discovery/v2.0/keys"
        ]

    @pytest.mark.parametrize(
        "audience",
        [f"api://{CLIENT_ID}", f"api://{CLIENT_ID}/.default", f"api://{CLIENT_ID}/user_impersonation"],
    )
    async def test_api_audiences_accepted(self, validator, private_pem, audience):
        assert await validator.verify(_token(private_pem, aud=audience)) is not None

    async def test_keys_are_cached(self, validator, private_pem, jwks_requests):
        await validator.verify(_token(private_pem))
        await validator.verify(_token(private_pem))

        assert len(jwks_requests) == 1

    async def test_tenant_falls_back_to_configuration(self, validator, private_pem):
        token = _token(private_pem, tid=None)
        assert await validator.verify(token) is not None


class TestReject:
    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    async def test_malformed_or_missing(self, validator, token):
        assert await validator.verify(token) is None

    async def test_wrong_audience(self, validator, private_pem):
        assert await validator.verify(_token(private_pem, aud="someone-else")) is None

    async def test_wrong_issuer(self, validator, private_pem):
        token = _token(private_pem, iss="https://login.microsoftonline.com/evil/v2.0")
        assert await validator.verify(token) is None

    async def test_expired(self, validator, private_pem):
        past = int(time.time()) - 3600
        token = _token(private_pem, iat=past - 600, nbf=past - 600, exp=past)
        assert await validator.verify(token) is None

    async def test_unknown_kid_refetches_once(self, validator, private_pem, jwks_requests):
        assert await validator.verify(_token(private_pem, kid="rotated")) is None
        assert len(jwks_requests) == 2

    async def test_signed_by_other_key(self, validator):
        other = rsa.generate_private_key(public_exponent=65537, key_size=2048).private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        assert await validator.verify(_token(other)) is None

    async def test_jwks_unreachable(self, private_pem):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        validator = MicrosoftTokenValidator(
            client_id=CLIENT_ID,
            tenant_id=TENANT_ID,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        assert await validator.verify(_token(private_pem)) is None

    async def test_missing_client_id_is_a_configuration_error(self):
        validator = MicrosoftTokenValidator(client_id=None, tenant_id=TENANT_ID)
        with pytest.raises(MicrosoftAuthConfigError):
            await validator.verify("anything")
        await validator.close()


class TestJwksRequestLimit:
    async def test_unknown_kids_do_not_flood_the_endpoint(self, validator, private_pem, jwks_requests):
        for i in range(20):
            assert await validator.verify(_token(private_pem, kid=f"bogus-{i}")) is None

        assert len(jwks_requests) == 5

    async def test_cached_keys_still_verify_while_limited(self, validator, private_pem, jwks_requests):
        for i in range(10):
            await validator.verify(_token(private_pem, kid=f"bogus-{i}"))

        assert await validator.verify(_token(private_pem)) is not None
        assert len(jwks_requests) == 5

    async def test_limit_resets_after_a_minute(self, public_jwk, private_pem, jwks_requests):
        now = [1000.0]
        validator = _validator(public_jwk, jwks_requests, clock=lambda: now[0])
        for i in range(10):
            await validator.verify(_token(private_pem, kid=f"bogus-{i}"))
        assert len(jwks_requests) == 5

        now[0] += 30
        await validator.verify(_token(private_pem, kid="bogus-late"))
        assert len(jwks_requests) == 5

        now[0] += 31
        await validator.verify(_token(private_pem, kid="bogus-later"))
        assert len(jwks_requests) == 6

    async def test_uncached_tenant_rejected_while_limited(self, public_jwk, private_pem, jwks_requests):
        validator = _validator(public_jwk, jwks_requests, jwks_requests_per_minute=1)
        assert await validator.verify(_token(private_pem)) is not None

        other = "tenant-other"
        token = _token(private_pem, tid=other, iss=f"https://login.microsoftonline.com/{other}/v2.0")
        assert await validator.verify(token) is None
        assert len(jwks_requests) == 1


class TestJwksCache:
    async def test_cache_is_bounded_across_tenants(self, public_jwk, private_pem, jwks_requests):
        validator = _validator(public_jwk, jwks_requests, jwks_requests_per_minute=100)
        tenants = [f"tenant-{i}" for i in range(MAX_CACHED_TENANTS + 4)]
        for tenant in tenants:
            token = _token(private_pem, tid=tenant, iss=f"https://login.microsoftonline.com/{tenant}/v2.0")
            assert await validator.verify(token) is not None

        assert len(validator._jwks) == MAX_CACHED_TENANTS
        assert tenants[0] not in validator._jwks
        assert tenants[-1] in validator._jwks

    async def test_evicted_tenant_is_fetched_again(self, public_jwk, private_pem, jwks_requests):
        validator = _validator(public_jwk, jwks_requests, jwks_requests_per_minute=100)
        tenants = [f"tenant-{i}" for i in range(MAX_CACHED_TENANTS + 1)]
        for tenant in tenants + tenants[:1]:
            token = _token(private_pem, tid=tenant, iss=f"https://login.microsoftonline.com/{tenant}/v2.0")
            await validator.verify(token)

        assert len(jwks_requests) == MAX_CACHED_TENANTS + 2
