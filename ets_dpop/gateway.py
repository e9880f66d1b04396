"""httpx client for a DPoP-protected JSON gateway."""

import json
from typing import Any, Dict, Optional

import httpx
import structlog

from .authorizer import RequestAuthorizer
from .config import GatewayOptions, join_url
from .errors import GatewayError

logger = structlog.get_logger(__name__)

_BODYLESS_METHODS = ("GET", "HEAD")


class GatewayClient:
    """
    Sends JSON calls to the gateway with a bearer token and a fresh proof.

    Example:
        >>> options = GatewayOptions(base_url="https://ets.example.com", ets_token="bootstrap")
        >>> async with GatewayClient(options) as gateway:
        ...     result = await gateway.post_json({"prompt": "hello"})
    """

    def __init__(
        self,
        options: GatewayOptions,
        http_client: Optional[httpx.AsyncClient] = None,
        authorizer: Optional[RequestAuthorizer] = None,
    ):
        self.options = options
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=options.timeout)
        self.authorizer = authorizer or RequestAuthorizer(
            options.token_url,
            options.ets_token,
            http_client=self._http_client,
        )

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def fetch_response(
        self,
        payload: Any = None,
        *,
        path: Optional[str] = None,
        method: str = "POST",
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Send one authenticated request and return the raw response.

        Args:
            payload: JSON-serializable body, ignored for GET and HEAD;
                None is sent as an empty object
            path: Path under base_url or an absolute URL, default api_path
            method: HTTP method
            headers: Extra headers; they override the generated ones
        """
        request_url = join_url(self.options.base_url, path or self.options.api_path)
        method_name = method.upper()

        request_headers = await self.authorizer.authorize(request_url, method_name)
        send_body = method_name not in _BODYLESS_METHODS
        if send_body:
            request_headers["Content-Type"] = "application/json"
        if headers:
            request_headers.update(headers)

        logger.debug("Sending gateway request", method=method_name, url=request_url)
        return await self._http_client.request(
            method_name,
            request_url,
            headers=request_headers,
            content=json.dumps({} if payload is None else payload) if send_body else None,
        )

    async def post_json(
        self,
        payload: Any = None,
        *,
        path: Optional[str] = None,
        method: str = "POST",
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send a request and decode the JSON answer.

        Raises:
            GatewayError: On a non-JSON content type or a non-2xx status
        """
        response = await self.fetch_response(payload, path=path, method=method, headers=headers)

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise GatewayError(
                response.status_code,
                response.text,
                f"Unexpected content type: {content_type} body={response.text}",
            )

        if not response.is_success:
            logger.warning("Gateway call failed", status=response.status_code)
            raise GatewayError(response.status_code, response.text)
        return response.json()
