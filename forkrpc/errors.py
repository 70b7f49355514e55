"""Exception types raised by the fork client."""
from typing import Any, Optional


class ForkRpcError(Exception):
    """Base class for errors raised by forkrpc."""
    pass


class ProviderError(ForkRpcError):
    """
    Raised when the remote JSON-RPC endpoint fails a request.

    Covers JSON-RPC error objects and non-2xx HTTP responses. Network level
    failures from aiohttp are not wrapped.
    """

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class InvalidResponseError(ForkRpcError):
    """Raised when a raw payload does not match the expected schema."""
    pass


class ForkBlockNumberError(ForkRpcError):
    """Raised when the requested fork block cannot be used."""
    pass
