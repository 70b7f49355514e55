"""
forkrpc: caching JSON-RPC client for forking a live chain.

Historical chain data fetched from the remote endpoint is cached in memory
and, optionally, on disk. Only data that can no longer be affected by a
chain reorganization is ever cached.
"""

from .client import JsonRpcClient, BatchEntry
from .errors import ForkRpcError, ProviderError, InvalidResponseError, ForkBlockNumberError
from .factory import ForkClientResult, make_fork_client
from .transport import HttpProvider, Transport
from .types import (
    AccountData,
    RpcBlock,
    RpcBlockWithTransactions,
    RpcLog,
    RpcTransaction,
    RpcTransactionReceipt,
)

__version__ = "0.1.0"

__all__ = [
    'JsonRpcClient',
    'BatchEntry',
    'ForkRpcError',
    'ProviderError',
    'InvalidResponseError',
    'ForkBlockNumberError',
    'ForkClientResult',
    'make_fork_client',
    'HttpProvider',
    'Transport',
    'AccountData',
    'RpcBlock',
    'RpcBlockWithTransactions',
    'RpcLog',
    'RpcTransaction',
    'RpcTransactionReceipt',
]
