"""
HTTP JSON-RPC transport.

The fork client only depends on the Transport protocol; HttpProvider is the
aiohttp implementation used against real endpoints.
"""
import itertools
from typing import Any, Dict, List, Optional, Protocol, Sequence

import aiohttp
import structlog

from .cache.keys import RpcRequest
from .constants import DEFAULT_HTTP_TIMEOUT, JSONRPC_VERSION
from .errors import ProviderError

logger = structlog.get_logger()


class Transport(Protocol):
    """Anything able to send JSON-RPC calls to a remote endpoint."""

    url: str

    async def request(self, method: str, params: Sequence[Any]) -> Any:
        ...

    async def send_batch(self, requests: Sequence[RpcRequest]) -> List[Any]:
        ...


class HttpProvider:
    """
    JSON-RPC 2.0 client over HTTP.

    A session is opened lazily and reused until close() is called.
    """

    def __init__(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT
    ):
        """
        Initialize the provider.

        Args:
            url: Endpoint URL
            headers: Extra HTTP headers sent with every request
            timeout: Total timeout of one HTTP request, in seconds
        """
        self.url = url
        self.headers = headers or {}
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Sequence[Any]) -> Any:
        """
        Send a single call.

        Returns:
            The raw "result" member of the response

        Raises:
            ProviderError: On an HTTP error status or a JSON-RPC error object
        """
        payload = self._payload(method, params)
        response = await self._post(payload)
        if not isinstance(response, dict):
            raise ProviderError(f"Invalid JSON-RPC response for {method}: {response!r}")
        return _extract_result(response)

    async def send_batch(self, requests: Sequence[RpcRequest]) -> List[Any]:
        """
        Send several calls in one HTTP request.

        Returns:
            Raw results, in the same order as the requests

        Raises:
            ProviderError: If the batch or any of its calls failed
        """
        payloads = [self._payload(r.method, r.params) for r in requests]
        responses = await self._post(payloads)
        if not isinstance(responses, list) or len(responses) != len(payloads):
            raise ProviderError(f"Invalid JSON-RPC batch response: {responses!r}")

        # Servers may answer out of order
        by_id = {r.get("id"): r for r in responses if isinstance(r, dict)}
        results = []
        for payload in payloads:
            response = by_id.get(payload["id"])
            if response is None:
                raise ProviderError(f"Missing response for batch request {payload['id']}")
            results.append(_extract_result(response))
        return results

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    def _payload(self, method: str, params: Sequence[Any]) -> Dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }

    async def _post(self, payload: Any) -> Any:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

        async with self.session.post(self.url, json=payload) as response:
            if response.status >= 400:
                body = await response.text()
                logger.error("rpc_http_error", url=self.url, status=response.status)
                raise ProviderError(f"HTTP {response.status} from JSON-RPC endpoint: {body}")
            return await response.json(content_type=None)


def _extract_result(response: Dict[str, Any]) -> Any:
    error = response.get("error")
    if error is not None:
        if isinstance(error, dict):
            raise ProviderError(
                error.get("message", "unknown error"),
                code=error.get("code"),
                data=error.get("data"),
            )
        raise ProviderError(str(error))
    return response.get("result")
