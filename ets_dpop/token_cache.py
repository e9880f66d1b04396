"""Expiry-aware cache for DPoP-bound access tokens."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
import structlog

from .credentials import CredentialSupplier, credential_supplier
from .errors import TokenVendingError
from .keys import KeyPair

logger = structlog.get_logger(__name__)

# A cached token is refreshed once it has this many seconds left or fewer.
REFRESH_MARGIN_SECS = 20
# Lifetime assumed when the issuer does not send a positive expiresIn.
DEFAULT_EXPIRES_IN_SECS = 300


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    expires_at: int


@dataclass(frozen=True)
class IssuedToken:
    """An access token and its remaining lifetime in seconds."""

    access_token: str
    expires_in: int


class TokenCache:
    """
    Holds the current access token and refreshes it from the issuer.

    Refreshes are single-flight: concurrent callers that miss the cache wait
    for one issuer request and then share its token.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        refresh_margin: int = REFRESH_MARGIN_SECS,
        default_expires_in: int = DEFAULT_EXPIRES_IN_SECS,
        timeout: float = 30.0,
    ):
        self._http_client = http_client
        self._clock = clock
        self.refresh_margin = refresh_margin
        self.default_expires_in = default_expires_in
        self.timeout = timeout
        self._cached: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._cached

    def invalidate(self) -> None:
        """Forget the cached token so the next call goes to the issuer."""
        self._cached = None

    async def ensure_access_token(
        self,
        key_pair: KeyPair,
        supplier: Any,
        issuer_url: str,
    ) -> IssuedToken:
        """
        Return a usable access token, asking the issuer only when needed.

        Args:
            key_pair: Keypair the token must be bound to
            supplier: Exchange credential: a CredentialSupplier, a string,
                a callable returning a string or an awaitable, or None
            issuer_url: Absolute URL of the token vending endpoint

        Raises:
            TokenVendingError: If the issuer fails or returns a bad body
        """
        token = self._fresh_token()
        if token is not None:
            logger.debug("Access token cache hit", expires_in=token.expires_in)
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited.
            token = self._fresh_token()
            if token is not None:
                return token
            return await self._refresh(key_pair, credential_supplier(supplier), issuer_url)

    def _fresh_token(self) -> Optional[IssuedToken]:
        cached = self._cached
        if cached is None:
            return None
        remaining = cached.expires_at - int(self._clock())
        if remaining > self.refresh_margin:
            return IssuedToken(cached.access_token, remaining)
        return None

    async def _refresh(
        self,
        key_pair: KeyPair,
        supplier: CredentialSupplier,
        issuer_url: str,
    ) -> IssuedToken:
        request_body = {
            "dpopPublicJwk": key_pair.public_jwk,
            "etsToken": await supplier.resolve(),
        }

        response = await self._post(issuer_url, request_body)
        if not response.is_success:
            logger.error(
                "Token vending failed",
                issuer_url=issuer_url,
                status=response.status_code,
            )
            raise TokenVendingError(response.status_code, response.text)

        try:
            token_json = response.json()
        except ValueError as e:
            raise TokenVendingError(
                response.status_code, response.text, "Token vending returned invalid JSON"
            ) from e

        access_token = token_json.get("accessToken") if isinstance(token_json, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise TokenVendingError(
                response.status_code, response.text, "Token vending response has no accessToken"
            )

        expires_in = _positive_seconds(token_json.get("expiresIn")) or self.default_expires_in
        now = int(self._clock())
        self._cached = CachedToken(access_token, now + expires_in)

        logger.info("Access token refreshed", jkt=key_pair.thumbprint, expires_in=expires_in)
        return IssuedToken(access_token, expires_in)

    async def _post(self, issuer_url: str, body: dict) -> httpx.Response:
        try:
            if self._http_client is not None:
                return await self._http_client.post(issuer_url, json=body)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(issuer_url, json=body)
        except httpx.HTTPError as e:
            logger.error("Token vending request failed", issuer_url=issuer_url, error=str(e))
            raise TokenVendingError(None, str(e), f"Token vending request failed: {e}") from e


def _positive_seconds(value: Any) -> int:
    """
    Whole seconds from an expiresIn value, or 0 when unusable.

    Positive lifetimes are rounded down, but never below one second, so a
    fractional lifetime such as 0.5 is honored rather than replaced by the
    default.
    """
    if isinstance(value, bool):
        return 0
    try:
        seconds = float(value)
        if not seconds > 0:
            return 0
        return max(1, int(seconds))
    except (TypeError, ValueError, OverflowError):
        return 0
