"""Produces the Authorization and DPoP headers for one outgoing call."""

import time
from typing import Callable, Dict, Optional, Union

import httpx

from .credentials import CredentialSource, CredentialSupplier, credential_supplier
from .keys import KeyManager
from .proof import DpopProofGenerator
from .token_cache import TokenCache

DPOP_HEADER = "DPoP"
AUTHORIZATION_HEADER = "Authorization"


class RequestAuthorizer:
    """
    DPoP authorizer owning one keypair and one token cache.

    Every call gets a new proof; the keypair and the access token are
    reused while they stay valid.

    Example:
        >>> authorizer = RequestAuthorizer("https://ets.example.com/tvm/issue", "bootstrap")
        >>> headers = await authorizer.authorize("https://ets.example.com/api", "POST")
    """

    def __init__(
        self,
        issuer_url: str,
        credentials: Union[CredentialSource, CredentialSupplier] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 30.0,
    ):
        self.issuer_url = issuer_url
        self.credentials = credential_supplier(credentials)
        self.key_manager = KeyManager()
        self.token_cache = TokenCache(http_client=http_client, clock=clock, timeout=timeout)
        self.proof_generator = DpopProofGenerator(clock=clock)

    async def authorize(self, request_url: str, http_method: str = "POST") -> Dict[str, str]:
        """
        Build the headers for a request.

        Args:
            request_url: Absolute URL of the request
            http_method: HTTP method of the request

        Returns:
            ``{"Authorization": "Bearer <token>", "DPoP": <proof>}``
        """
        key_pair = await self.key_manager.ensure_key_pair()
        token = await self.token_cache.ensure_access_token(
            key_pair, self.credentials, self.issuer_url
        )
        proof = self.proof_generator.create_proof(request_url, http_method, key_pair)
        return {
            AUTHORIZATION_HEADER: f"Bearer {token.access_token}",
            DPOP_HEADER: proof,
        }
