"""
Request execution against the remote endpoint.

Some providers intermittently answer "header not found" for blocks they do
know about. Calls to those providers are retried once; every other failure
reaches the caller unchanged.
"""
from typing import Any, List, Sequence

import structlog

from . import monitoring
from .cache.keys import RpcRequest
from .constants import FLAKY_PROVIDER_MARKER, TRANSIENT_ERROR_MESSAGE
from .transport import Transport

logger = structlog.get_logger()


class RequestExecutor:
    def __init__(self, transport: Transport):
        self.transport = transport

    async def execute(self, method: str, params: Sequence[Any], is_retry_call: bool = False) -> Any:
        """
        Send a single call and return its raw result.

        Args:
            method: JSON-RPC method name
            params: Positional parameters
            is_retry_call: Whether this is already the retry attempt

        Raises:
            Exception: Whatever the transport raised, if not retried
        """
        monitoring.record_request(method)
        try:
            return await self.transport.request(method, params)
        except Exception as e:
            if self._should_retry(is_retry_call, e):
                logger.warning("rpc_retry", method=method, url=self.transport.url, error=str(e))
                monitoring.record_retry(method)
                return await self.execute(method, params, is_retry_call=True)
            raise

    async def execute_batch(self, requests: Sequence[RpcRequest], is_retry_call: bool = False) -> List[Any]:
        """
        Send a batch of calls and return their raw results in order.

        Args:
            requests: Calls to send together
            is_retry_call: Whether this is already the retry attempt
        """
        for request in requests:
            monitoring.record_request(request.method)
        try:
            return await self.transport.send_batch(requests)
        except Exception as e:
            if self._should_retry(is_retry_call, e):
                methods = [r.method for r in requests]
                logger.warning("rpc_batch_retry", methods=methods, url=self.transport.url, error=str(e))
                for method in methods:
                    monitoring.record_retry(method)
                return await self.execute_batch(requests, is_retry_call=True)
            raise

    def _should_retry(self, is_retry_call: bool, error: Exception) -> bool:
        return (
            not is_retry_call
            and FLAKY_PROVIDER_MARKER in self.transport.url
            and TRANSIENT_ERROR_MESSAGE in str(error)
        )
