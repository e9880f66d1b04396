"""Errors raised by the DPoP client."""

from typing import Optional


class DPoPClientError(Exception):
    """Base DPoP client error."""

    code = "DPOP_CLIENT_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message
        super().__init__(message)


class KeyGenerationFailure(DPoPClientError):
    """The crypto backend could not generate a P-256 signing key."""

    code = "KEY_GENERATION_FAILED"


class TokenVendingError(DPoPClientError):
    """The issuer rejected the token request or could not be reached."""

    code = "TOKEN_VENDING_FAILED"

    def __init__(self, status: Optional[int], body: str, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Token vending failed: {status} {body}")


class UrlParseError(DPoPClientError):
    """A request URL is not a valid absolute URL."""

    code = "INVALID_URL"

    def __init__(self, url: str, reason: str = "expected an absolute URL"):
        self.url = url
        super().__init__(f"Invalid request URL {url!r}: {reason}")


class InvalidSignatureEncoding(DPoPClientError):
    """A signature did not have the expected DER layout."""

    code = "INVALID_SIGNATURE_ENCODING"

    def __init__(self, signature: bytes, reason: str):
        self.signature = bytes(signature)
        self.reason = reason
        super().__init__(f"Invalid DER signature ({reason}): {self.signature.hex()}")


class ConfigurationError(DPoPClientError):
    """Gateway options are missing or malformed."""

    code = "INVALID_CONFIG"


class GatewayError(DPoPClientError):
    """The gateway answered with an error or a non-JSON body."""

    code = "GATEWAY_ERROR"

    def __init__(self, status: int, body: str, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Gateway error {status}: {body}")
