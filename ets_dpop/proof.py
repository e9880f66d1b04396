"""DPoP proof generation (RFC 9449 section 4)."""

import json
import time
import uuid
from typing import Any, Callable, Dict

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.ec import ECDSA

from .errors import UrlParseError
from .keys import KeyPair
from .signature import der_to_jose
from .thumbprint import base64url_encode

PROOF_TYPE = "dpop+jwt"
ALGORITHM = "ES256"


def request_target(url: str) -> str:
    """
    Return the ``htu`` value for a request URL.

    The URL is normalized the way httpx sends it: percent-encoded, with
    ``.`` and ``..`` path segments resolved, the host lower-cased and a
    default port omitted. Keeps the origin, the path and the query; drops
    the fragment and any userinfo.

    Raises:
        UrlParseError: If the URL is not absolute or cannot be parsed
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise UrlParseError(str(url), str(e)) from e

    if not parsed.scheme or not parsed.raw_host:
        raise UrlParseError(url)

    host = parsed.raw_host.decode("ascii")
    if ":" in host:
        host = f"[{host}]"
    if parsed.port is not None:
        host = f"{host}:{parsed.port}"

    path, _, query = parsed.raw_path.decode("ascii").partition("?")
    query = f"?{query}" if query else ""
    return f"{parsed.scheme}://{host}{path or '/'}{query}"


class DpopProofGenerator:
    """
    Builds single-use DPoP proofs bound to one request.

    Example:
        >>> generator = DpopProofGenerator()
        >>> proof = generator.create_proof(
        ...     "https://api.example.com/v1/items", "POST", KeyPair.generate()
        ... )
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def create_proof(self, request_url: str, http_method: str, key_pair: KeyPair) -> str:
        """
        Create a DPoP proof for an HTTP request.

        Args:
            request_url: Absolute URL of the request
            http_method: HTTP method, any case
            key_pair: Keypair whose public key goes into the header

        Returns:
            The compact ``header.payload.signature`` proof
        """
        header = {
            "typ": PROOF_TYPE,
            "alg": ALGORITHM,
            "jwk": key_pair.public_jwk,
        }
        payload = {
            "htm": http_method.upper(),
            "htu": request_target(request_url),
            "jti": str(uuid.uuid4()),
            "iat": int(self._clock()),
        }

        signing_input = f"{_encode_segment(header)}.{_encode_segment(payload)}"
        der_sig = key_pair.private_key.sign(signing_input.encode("utf-8"), ECDSA(hashes.SHA256()))

        return f"{signing_input}.{base64url_encode(der_to_jose(der_sig))}"


def create_proof(request_url: str, http_method: str, key_pair: KeyPair) -> str:
    """Create a proof with the wall clock."""
    return DpopProofGenerator().create_proof(request_url, http_method, key_pair)


def _encode_segment(data: Dict[str, Any]) -> str:
    return base64url_encode(json.dumps(data, separators=(",", ":")).encode("utf-8"))
