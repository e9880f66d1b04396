"""
ETS DPoP - client-side Demonstrating Proof of Possession (RFC 9449)

Obtains access tokens bound to a local P-256 key from a token vending
endpoint and signs a fresh DPoP proof for every outgoing request.
"""

from .authorizer import RequestAuthorizer
from .config import GatewayOptions, join_url
from .credentials import ConstantCredential, CredentialSupplier, DeferredCredential
from .errors import (
    ConfigurationError,
    DPoPClientError,
    GatewayError,
    InvalidSignatureEncoding,
    KeyGenerationFailure,
    TokenVendingError,
    UrlParseError,
)
from .gateway import GatewayClient
from .keys import KeyManager, KeyPair, public_jwk
from .proof import DpopProofGenerator, create_proof, request_target
from .signature import der_to_jose
from .thumbprint import compute_thumbprint, compute_thumbprint_from_jwk
from .token_cache import IssuedToken, TokenCache

__version__ = "0.1.0"
__all__ = [
    "RequestAuthorizer",
    "GatewayClient",
    "GatewayOptions",
    "join_url",
    "CredentialSupplier",
    "ConstantCredential",
    "DeferredCredential",
    "KeyManager",
    "KeyPair",
    "public_jwk",
    "DpopProofGenerator",
    "create_proof",
    "request_target",
    "der_to_jose",
    "TokenCache",
    "IssuedToken",
    "compute_thumbprint",
    "compute_thumbprint_from_jwk",
    "DPoPClientError",
    "KeyGenerationFailure",
    "TokenVendingError",
    "UrlParseError",
    "InvalidSignatureEncoding",
    "ConfigurationError",
    "GatewayError",
]
