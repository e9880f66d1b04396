"""Gateway client options."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .credentials import CredentialSource
from .errors import ConfigurationError

DEFAULT_TOKEN_PATH = "/tvm/issue"
DEFAULT_API_PATH = "/api"
DEFAULT_TIMEOUT_SECS = 30.0


@dataclass
class GatewayOptions:
    """
    Where to get tokens and where to send authenticated calls.

    ``base_url`` is stored without trailing slashes. ``ets_token`` is the
    exchange credential source: a string, a callable, or None.
    """

    base_url: str
    token_path: str = DEFAULT_TOKEN_PATH
    api_path: str = DEFAULT_API_PATH
    ets_token: CredentialSource = None
    timeout: float = DEFAULT_TIMEOUT_SECS

    def __post_init__(self):
        if not isinstance(self.base_url, str) or len(self.base_url) < 4:
            raise ConfigurationError("GatewayOptions requires a base_url")
        self.base_url = self.base_url.rstrip("/")
        self.token_path = self.token_path or DEFAULT_TOKEN_PATH
        self.api_path = self.api_path or DEFAULT_API_PATH
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigurationError(f"timeout must be a number, got {self.timeout!r}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

    @property
    def token_url(self) -> str:
        return join_url(self.base_url, self.token_path)

    @property
    def api_url(self) -> str:
        return join_url(self.base_url, self.api_path)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GatewayOptions":
        """
        Load options from ETS_* environment variables.

        ETS_BASE_URL is required; ETS_TOKEN_PATH, ETS_API_PATH, ETS_TOKEN and
        ETS_TIMEOUT are optional.
        """
        env = os.environ if environ is None else environ

        base_url = env.get("ETS_BASE_URL")
        if not base_url:
            raise ConfigurationError("Required environment variable ETS_BASE_URL is not set")

        timeout = env.get("ETS_TIMEOUT")
        try:
            timeout_secs = float(timeout) if timeout else DEFAULT_TIMEOUT_SECS
        except ValueError as e:
            raise ConfigurationError(f"ETS_TIMEOUT must be a number, got: {timeout}") from e

        return cls(
            base_url=base_url,
            token_path=env.get("ETS_TOKEN_PATH", DEFAULT_TOKEN_PATH),
            api_path=env.get("ETS_API_PATH", DEFAULT_API_PATH),
            ets_token=env.get("ETS_TOKEN") or None,
            timeout=timeout_secs,
        )


def join_url(base: str, path: str) -> str:
    """Join a base URL and a path with exactly one slash; absolute paths win."""
    if path.startswith("http://") or path.startswith("https://"):
        return path
    left = base[:-1] if base.endswith("/") else base
    right = path if path.startswith("/") else "/" + path
    return left + right
