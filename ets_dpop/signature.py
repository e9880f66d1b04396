"""DER to JOSE conversion of ECDSA P-256 signatures.

``cryptography`` returns ECDSA signatures DER-encoded::

    0x30 <len> 0x02 <r_len> <r> 0x02 <s_len> <s>

JWS (RFC 7518 section 3.4) wants the fixed-width ``r || s`` form instead,
32 big-endian bytes each for ES256.
"""

from .errors import InvalidSignatureEncoding

SEQUENCE_TAG = 0x30
INTEGER_TAG = 0x02
COMPONENT_SIZE = 32


def der_to_jose(der_sig: bytes) -> bytes:
    """
    Convert a DER-encoded ECDSA signature to the 64-byte JOSE form.

    Args:
        der_sig: Signature as produced by ``EllipticCurvePrivateKey.sign``

    Returns:
        ``r`` and ``s`` as 32-byte big-endian integers, concatenated

    Raises:
        InvalidSignatureEncoding: On a wrong tag, a truncated or overlong
            length, or an integer wider than 32 bytes
    """
    der_sig = bytes(der_sig)
    if not der_sig or der_sig[0] != SEQUENCE_TAG:
        raise InvalidSignatureEncoding(der_sig, "expected SEQUENCE tag")

    seq_len, idx = _read_length(der_sig, 1)
    if idx + seq_len > len(der_sig):
        raise InvalidSignatureEncoding(der_sig, "sequence is truncated")
    end = idx + seq_len

    r, idx = _read_integer(der_sig, idx, end, "r")
    s, idx = _read_integer(der_sig, idx, end, "s")

    return _pad(der_sig, r, "r") + _pad(der_sig, s, "s")


def _read_length(der_sig: bytes, idx: int):
    """Read a short- or long-form DER length starting at ``idx``."""
    if idx >= len(der_sig):
        raise InvalidSignatureEncoding(der_sig, "missing length")
    first = der_sig[idx]
    idx += 1
    if not first & 0x80:
        return first, idx

    num_bytes = first & 0x7F
    if num_bytes == 0 or idx + num_bytes > len(der_sig):
        raise InvalidSignatureEncoding(der_sig, "bad long-form length")
    length = int.from_bytes(der_sig[idx : idx + num_bytes], "big")
    return length, idx + num_bytes


def _read_integer(der_sig: bytes, idx: int, end: int, name: str):
    if idx >= end or der_sig[idx] != INTEGER_TAG:
        raise InvalidSignatureEncoding(der_sig, f"expected INTEGER tag for {name}")
    length, idx = _read_length(der_sig, idx + 1)
    if length == 0 or idx + length > end:
        raise InvalidSignatureEncoding(der_sig, f"{name} is truncated")
    return der_sig[idx : idx + length], idx + length


def _pad(der_sig: bytes, component: bytes, name: str) -> bytes:
    """Strip sign-padding zeros and left-pad to the fixed component size."""
    component = component.lstrip(b"\x00")
    if len(component) > COMPONENT_SIZE:
        raise InvalidSignatureEncoding(
            der_sig, f"{name} is {len(component)} bytes, max {COMPONENT_SIZE}"
        )
    return component.rjust(COMPONENT_SIZE, b"\x00")
