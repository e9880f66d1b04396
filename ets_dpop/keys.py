"""Process-lifetime P-256 key management."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

import structlog
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey,
    EllipticCurvePublicKey,
    SECP256R1,
)

from .errors import KeyGenerationFailure
from .thumbprint import COORDINATE_SIZE, compute_thumbprint, int_to_base64url

logger = structlog.get_logger(__name__)

KEY_TYPE = "EC"
CURVE = "P-256"


@dataclass(frozen=True)
class KeyPair:
    """An ES256 signing key and its public half."""

    private_key: EllipticCurvePrivateKey
    public_key: EllipticCurvePublicKey = field(init=False)

    def __post_init__(self):
        if not isinstance(self.private_key.curve, SECP256R1):
            raise ValueError(f"ES256 requires a P-256 key, got {self.private_key.curve.name}")
        object.__setattr__(self, "public_key", self.private_key.public_key())

    @classmethod
    def generate(cls) -> "KeyPair":
        """Generate a new random P-256 keypair."""
        try:
            private_key = ec.generate_private_key(SECP256R1())
        except Exception as e:
            raise KeyGenerationFailure(f"P-256 key generation failed: {e}") from e
        return cls(private_key)

    @property
    def thumbprint(self) -> str:
        """JWK thumbprint of the public key."""
        return compute_thumbprint(self.public_key)

    @property
    def public_jwk(self) -> Dict[str, str]:
        return public_jwk(self.public_key)


def public_jwk(public_key: EllipticCurvePublicKey) -> Dict[str, str]:
    """
    Build the minimal public JWK a verifier needs.

    Coordinates are always encoded on 32 bytes, including leading zeros.
    """
    numbers = public_key.public_numbers()
    return {
        "kty": KEY_TYPE,
        "crv": CURVE,
        "x": int_to_base64url(numbers.x, COORDINATE_SIZE),
        "y": int_to_base64url(numbers.y, COORDINATE_SIZE),
    }


class KeyManager:
    """
    Owns the single signing keypair of an authorizer.

    The key is generated on first use and kept for the lifetime of the
    manager. It is never written to storage.
    """

    def __init__(self, key_pair: Optional[KeyPair] = None):
        self._key_pair = key_pair
        self._lock = asyncio.Lock()

    @property
    def key_pair(self) -> Optional[KeyPair]:
        """The current keypair, or None if none was generated yet."""
        return self._key_pair

    async def ensure_key_pair(self) -> KeyPair:
        if self._key_pair is not None:
            return self._key_pair

        async with self._lock:
            if self._key_pair is None:
                key_pair = KeyPair.generate()
                logger.info("DPoP keypair generated", jkt=key_pair.thumbprint)
                self._key_pair = key_pair
        return self._key_pair
