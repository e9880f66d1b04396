"""JWK Thumbprint computation (RFC 7638) and base64url helpers."""

import base64
import hashlib
import json
from typing import Any, Dict

from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey

# P-256 coordinate size in bytes
COORDINATE_SIZE = 32


def compute_thumbprint(public_key: EllipticCurvePublicKey) -> str:
    """
    Compute the JWK thumbprint of an EC P-256 public key.

    Args:
        public_key: An EC P-256 public key

    Returns:
        Base64url-encoded SHA-256 thumbprint (the DPoP ``jkt`` value)
    """
    numbers = public_key.public_numbers()
    return compute_thumbprint_from_jwk(
        {
            "kty": "EC",
            "crv": "P-256",
            "x": int_to_base64url(numbers.x, COORDINATE_SIZE),
            "y": int_to_base64url(numbers.y, COORDINATE_SIZE),
        }
    )


def compute_thumbprint_from_jwk(jwk: Dict[str, Any]) -> str:
    """Compute the thumbprint from a ``{kty, crv, x, y}`` dictionary."""
    canonical = json.dumps(
        {"crv": jwk["crv"], "kty": jwk["kty"], "x": jwk["x"], "y": jwk["y"]},
        separators=(",", ":"),
        sort_keys=True,
    )
    return base64url_encode(hashlib.sha256(canonical.encode()).digest())


def int_to_base64url(value: int, length: int) -> str:
    """Encode an integer as fixed-length big-endian base64url."""
    return base64url_encode(value.to_bytes(length, byteorder="big"))


def base64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(data: str) -> bytes:
    """Base64url decode, restoring stripped padding."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)
