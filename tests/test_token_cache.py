"""Tests for the access token cache."""

import asyncio

import httpx
import pytest

from ets_dpop import (
    ConstantCredential,
    DeferredCredential,
    KeyPair,
    TokenCache,
    TokenVendingError,
)

ISSUER_URL = "https://ets.example.com/tvm/issue"


@pytest.fixture
def key_pair():
    return KeyPair.generate()


@pytest.fixture
def cache(issuer, clock):
    return TokenCache(http_client=issuer.client(), clock=clock)


class TestCacheHit:
    """Tests for reuse and refresh of cached tokens."""

    @pytest.mark.asyncio
    async def test_cached_within_margin(self, cache, issuer, key_pair, clock):
        """Test a second call inside the lifetime reuses the token."""
        first = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        clock.advance(100)
        second = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert first.access_token == second.access_token == "tok1"
        assert first.expires_in == 600
        assert second.expires_in == 500
        assert issuer.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_at_margin(self, cache, issuer, key_pair, clock):
        """Test a token with 20 seconds left is refreshed."""
        issuer.body = {"accessToken": "tok{n}", "expiresIn": 600}

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        clock.advance(579)
        still_cached = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert still_cached.access_token == "tok1"
        assert issuer.calls == 1

        clock.advance(1)
        refreshed = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert refreshed.access_token == "tok2"
        assert issuer.calls == 2
        assert cache.cached.expires_at == int(clock.now) + 600

    @pytest.mark.asyncio
    async def test_refresh_after_expiry(self, cache, issuer, key_pair, clock):
        """Test an expired token is replaced."""
        issuer.body = {"accessToken": "tok{n}", "expiresIn": 60}

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        clock.advance(3600)
        token = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert token.access_token == "tok2"
        assert issuer.calls == 2

    @pytest.mark.asyncio
    async def test_short_lived_token_is_never_cached(self, cache, issuer, key_pair):
        """Test a lifetime inside the refresh margin forces a refresh every call."""
        issuer.body = {"accessToken": "tok{n}", "expiresIn": 10}

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert issuer.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, issuer, key_pair):
        """Test invalidate forces the next call to the issuer."""
        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        cache.invalidate()
        assert cache.cached is None

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert issuer.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_refresh_is_single_flight(self, cache, issuer, key_pair):
        """Test concurrent cache misses share one issuer request."""
        tokens = await asyncio.gather(
            *(cache.ensure_access_token(key_pair, "ets", ISSUER_URL) for _ in range(5))
        )

        assert {token.access_token for token in tokens} == {"tok1"}
        assert issuer.calls == 1


class TestExpiresIn:
    """Tests for the default lifetime."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"accessToken": "tok1"}, {"accessToken": "tok1", "expiresIn": None}])
    async def test_missing_expires_in(self, cache, issuer, key_pair, clock, body):
        """Test a missing expiresIn defaults to 300 seconds."""
        issuer.body = body

        token = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert cache.cached.expires_at == int(clock.now) + 300
        assert token.expires_in == 300

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", [0, -5, "soon", False, "nan", "inf"])
    async def test_unusable_expires_in(self, cache, issuer, key_pair, clock, expires_in):
        """Test non-positive or non-numeric lifetimes default to 300 seconds."""
        issuer.body = {"accessToken": "tok1", "expiresIn": expires_in}

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert cache.cached.expires_at == int(clock.now) + 300

    @pytest.mark.asyncio
    async def test_numeric_string_expires_in(self, cache, issuer, key_pair, clock):
        """Test a numeric string lifetime is honored."""
        issuer.body = {"accessToken": "tok1", "expiresIn": "120"}

        await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert cache.cached.expires_at == int(clock.now) + 120

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in, expected", [(0.5, 1), (10.7, 10), ("1.5", 1)])
    async def test_fractional_expires_in(self, cache, issuer, key_pair, clock, expires_in, expected):
        """Test fractional lifetimes round down to at least one second."""
        issuer.body = {"accessToken": "tok1", "expiresIn": expires_in}

        token = await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert cache.cached.expires_at == int(clock.now) + expected
        assert token.expires_in == expected


class TestIssuerRequest:
    """Tests for the token vending request."""

    @pytest.mark.asyncio
    async def test_request_body(self, cache, issuer, key_pair):
        """Test the issuer gets the public JWK and the exchange credential."""
        await cache.ensure_access_token(key_pair, "bootstrap-credential", ISSUER_URL)

        assert issuer.requests == [
            {"dpopPublicJwk": key_pair.public_jwk, "etsToken": "bootstrap-credential"}
        ]

    @pytest.mark.asyncio
    async def test_async_supplier(self, cache, issuer, key_pair):
        """Test a coroutine function supplies the credential."""

        async def fetch_credential():
            return "from-coroutine"

        await cache.ensure_access_token(key_pair, fetch_credential, ISSUER_URL)

        assert issuer.requests[0]["etsToken"] == "from-coroutine"

    @pytest.mark.asyncio
    async def test_supplier_not_called_on_hit(self, cache, issuer, key_pair):
        """Test the credential is only resolved when a refresh is needed."""
        resolved = []

        def fetch_credential():
            resolved.append(True)
            return "sync-credential"

        await cache.ensure_access_token(key_pair, DeferredCredential(fetch_credential), ISSUER_URL)
        await cache.ensure_access_token(key_pair, DeferredCredential(fetch_credential), ISSUER_URL)

        assert resolved == [True]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("supplier", [None, "", ConstantCredential()])
    async def test_missing_supplier(self, cache, issuer, key_pair, supplier):
        """Test an absent credential is sent as an empty string."""
        await cache.ensure_access_token(key_pair, supplier, ISSUER_URL)

        assert issuer.requests[0]["etsToken"] == ""

    @pytest.mark.asyncio
    async def test_issuer_error(self, cache, issuer, key_pair):
        """Test a non-2xx answer raises with status and body."""
        issuer.status_code = 403
        issuer.body = "credential rejected"

        with pytest.raises(TokenVendingError) as exc:
            await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)

        assert exc.value.code == "TOKEN_VENDING_FAILED"
        assert exc.value.status == 403
        assert exc.value.body == "credential rejected"
        assert cache.cached is None

    @pytest.mark.asyncio
    async def test_issuer_error_is_not_retried(self, cache, issuer, key_pair):
        """Test a failed refresh makes exactly one request."""
        issuer.status_code = 503
        issuer.body = {"error": "unavailable"}

        with pytest.raises(TokenVendingError):
            await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert issuer.calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["not json", {"expiresIn": 60}, {"accessToken": 42}, ["tok1"]])
    async def test_invalid_success_body(self, cache, issuer, key_pair, body):
        """Test a 200 without a usable accessToken is an error."""
        issuer.body = body

        with pytest.raises(TokenVendingError) as exc:
            await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert exc.value.status == 200

    @pytest.mark.asyncio
    async def test_transport_error(self, key_pair, clock):
        """Test an unreachable issuer raises TokenVendingError."""

        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(unreachable))
        cache = TokenCache(http_client=client, clock=clock)

        with pytest.raises(TokenVendingError) as exc:
            await cache.ensure_access_token(key_pair, "ets", ISSUER_URL)
        assert exc.value.status is None
        assert isinstance(exc.value.__cause__, httpx.ConnectError)
