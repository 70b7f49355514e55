"""
Caching JSON-RPC client used to fork a remote chain.

Every request goes through the same pipeline: derive the cache key, try the
in-memory cache, then the disk cache, and finally the remote endpoint. Fresh
results are decoded and only cached when the block they depend on is outside
the reorg-safety window observed at construction.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Literal, Optional, Sequence, Tuple, Union, overload

import structlog
from pydantic import TypeAdapter

from . import monitoring
from .cache import (
    MISSING,
    DiskCache,
    MemoryCache,
    ReorgSafetyWindow,
    RpcRequest,
    derive_batch_key,
    derive_key,
)
from .encoding import buffer_to_hex, number_to_rpc_quantity
from .errors import InvalidResponseError
from .executor import RequestExecutor
from .transport import Transport
from .types import (
    AccountData,
    RpcBlock,
    RpcBlockWithTransactions,
    RpcLog,
    RpcTransaction,
    RpcTransactionReceipt,
    decode,
    log_list,
    nullable_block,
    nullable_block_with_transactions,
    nullable_receipt,
    nullable_transaction,
    rpc_data,
    rpc_quantity,
)

logger = structlog.get_logger()

BlockNumberExtractor = Callable[[Any], Optional[int]]


@dataclass(frozen=True)
class BatchEntry:
    """A call inside a batch, with the adapter decoding its result."""
    request: RpcRequest
    adapter: TypeAdapter


class JsonRpcClient:
    """
    Client for the historical data of a forked network.

    Each instance owns its in-memory cache, so clients for different
    networks never share entries.
    """

    def __init__(
        self,
        transport: Transport,
        network_id: int,
        latest_block_number: int,
        max_reorg: int,
        fork_cache_path: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the client.

        Args:
            transport: Transport used for remote calls
            network_id: Id of the forked network, part of every cache key
            latest_block_number: Chain height observed before creating the client
            max_reorg: Number of most recent blocks considered unsafe to cache
            fork_cache_path: Directory for the persistent cache, or None to
                keep results in memory only
        """
        self.transport = transport
        self._network_id = network_id
        self.window = ReorgSafetyWindow(latest_block_number, max_reorg)
        self.executor = RequestExecutor(transport)
        self.cache = MemoryCache()
        self.disk_cache: Optional[DiskCache] = None
        if fork_cache_path is not None:
            self.disk_cache = DiskCache(fork_cache_path, network_id)

    @property
    def network_id(self) -> int:
        return self._network_id

    def get_network_id(self) -> int:
        return self._network_id

    async def get_storage_at(self, address: bytes, position: bytes, block_number: int) -> bytes:
        """Get the value of a storage slot at a given block."""
        return await self._perform(
            "eth_getStorageAt",
            [buffer_to_hex(address), buffer_to_hex(position), number_to_rpc_quantity(block_number)],
            rpc_data,
            lambda _: block_number
        )

    @overload
    async def get_block_by_number(
        self, block_number: int, include_transactions: Literal[False] = False
    ) -> Optional[RpcBlock]: ...

    @overload
    async def get_block_by_number(
        self, block_number: int, include_transactions: Literal[True]
    ) -> Optional[RpcBlockWithTransactions]: ...

    async def get_block_by_number(self, block_number, include_transactions=False):
        """
        Get a block by its number.

        Args:
            block_number: Number of the block
            include_transactions: Return full transactions instead of hashes

        Returns:
            The block, or None if it doesn't exist
        """
        return await self._perform(
            "eth_getBlockByNumber",
            [number_to_rpc_quantity(block_number), include_transactions],
            _block_adapter(include_transactions),
            _block_number_of_block
        )

    @overload
    async def get_block_by_hash(
        self, block_hash: bytes, include_transactions: Literal[False] = False
    ) -> Optional[RpcBlock]: ...

    @overload
    async def get_block_by_hash(
        self, block_hash: bytes, include_transactions: Literal[True]
    ) -> Optional[RpcBlockWithTransactions]: ...

    async def get_block_by_hash(self, block_hash, include_transactions=False):
        """
        Get a block by its hash.

        Args:
            block_hash: Hash of the block
            include_transactions: Return full transactions instead of hashes

        Returns:
            The block, or None if it doesn't exist
        """
        return await self._perform(
            "eth_getBlockByHash",
            [buffer_to_hex(block_hash), include_transactions],
            _block_adapter(include_transactions),
            _block_number_of_block
        )

    async def get_transaction_by_hash(self, transaction_hash: bytes) -> Optional[RpcTransaction]:
        """Get a transaction, or None if it doesn't exist. Pending transactions are never cached."""
        return await self._perform(
            "eth_getTransactionByHash",
            [buffer_to_hex(transaction_hash)],
            nullable_transaction,
            lambda tx: tx.block_number if tx is not None else None
        )

    async def get_transaction_receipt(self, transaction_hash: bytes) -> Optional[RpcTransactionReceipt]:
        """Get a transaction receipt, or None if it doesn't exist."""
        return await self._perform(
            "eth_getTransactionReceipt",
            [buffer_to_hex(transaction_hash)],
            nullable_receipt,
            lambda receipt: receipt.block_number if receipt is not None else None
        )

    async def get_logs(
        self,
        from_block: int,
        to_block: int,
        address: Optional[Union[bytes, Sequence[bytes]]] = None,
        topics: Optional[Sequence[Optional[Sequence[Optional[bytes]]]]] = None
    ) -> Tuple[RpcLog, ...]:
        """
        Get the logs emitted in a block range.

        The result can only be cached once to_block is out of the reorg window.

        Args:
            from_block: First block of the range
            to_block: Last block of the range, inclusive
            address: Emitting contract address, or a list of them
            topics: Topic filters by position; None matches anything

        Returns:
            Matching logs, possibly empty
        """
        log_filter = {
            "fromBlock": number_to_rpc_quantity(from_block),
            "toBlock": number_to_rpc_quantity(to_block),
        }
        if address is not None:
            if isinstance(address, bytes):
                log_filter["address"] = buffer_to_hex(address)
            else:
                log_filter["address"] = [buffer_to_hex(a) for a in address]
        if topics is not None:
            log_filter["topics"] = [
                [buffer_to_hex(t) if t is not None else None for t in items] if items is not None else None
                for items in topics
            ]

        return await self._perform(
            "eth_getLogs",
            [log_filter],
            log_list,
            lambda _: to_block
        )

    async def get_account_data(self, address: bytes, block_number: int) -> AccountData:
        """
        Get the code, nonce and balance of an account in a single batch.

        Args:
            address: Account address
            block_number: Block at which the account is read

        Returns:
            AccountData for the account
        """
        params = (buffer_to_hex(address), number_to_rpc_quantity(block_number))
        code, transaction_count, balance = await self._perform_batch(
            [
                BatchEntry(RpcRequest("eth_getCode", params), rpc_data),
                BatchEntry(RpcRequest("eth_getTransactionCount", params), rpc_quantity),
                BatchEntry(RpcRequest("eth_getBalance", params), rpc_quantity),
            ],
            lambda _: block_number
        )

        return AccountData(code=code, transaction_count=transaction_count, balance=balance)

    async def _perform(
        self,
        method: str,
        params: List[Any],
        adapter: TypeAdapter,
        get_max_affected_block_number: BlockNumberExtractor
    ) -> Any:
        cache_key = derive_key(self._network_id, method, params)

        cached_result = self.cache.get(cache_key)
        if cached_result is not MISSING:
            logger.debug("cache_hit", tier=monitoring.MEMORY_TIER, method=method, key=cache_key)
            monitoring.record_hit(monitoring.MEMORY_TIER)
            return cached_result

        if self.disk_cache is not None:
            raw_cached = await self.disk_cache.get_raw(cache_key)
            if raw_cached is not None:
                decoded = decode(raw_cached, adapter)
                self.cache.set(cache_key, decoded)
                logger.debug("cache_hit", tier=monitoring.DISK_TIER, method=method, key=cache_key)
                monitoring.record_hit(monitoring.DISK_TIER)
                return decoded

        monitoring.record_miss()
        raw_result = await self.executor.execute(method, params)
        decoded_result = decode(raw_result, adapter)

        block_number = get_max_affected_block_number(decoded_result)
        await self._store(cache_key, decoded_result, raw_result, block_number)

        return decoded_result

    async def _perform_batch(
        self,
        batch: Sequence[BatchEntry],
        get_max_affected_block_number: BlockNumberExtractor
    ) -> List[Any]:
        # The batch is cached as one entry; its members are never looked up alone
        requests = [entry.request for entry in batch]
        cache_key = derive_batch_key(self._network_id, requests)

        cached_result = self.cache.get(cache_key)
        if cached_result is not MISSING:
            logger.debug("cache_hit", tier=monitoring.MEMORY_TIER, batch_size=len(batch), key=cache_key)
            monitoring.record_hit(monitoring.MEMORY_TIER)
            return cached_result

        if self.disk_cache is not None:
            raw_cached = await self.disk_cache.get_raw(cache_key)
            if isinstance(raw_cached, list):
                decoded = self._decode_batch(raw_cached, batch)
                self.cache.set(cache_key, decoded)
                logger.debug("cache_hit", tier=monitoring.DISK_TIER, batch_size=len(batch), key=cache_key)
                monitoring.record_hit(monitoring.DISK_TIER)
                return decoded

        monitoring.record_miss()
        raw_results = await self.executor.execute_batch(requests)
        decoded_results = self._decode_batch(raw_results, batch)

        block_number = get_max_affected_block_number(decoded_results)
        await self._store(cache_key, decoded_results, raw_results, block_number)

        return decoded_results

    def _decode_batch(self, raw_results: List[Any], batch: Sequence[BatchEntry]) -> List[Any]:
        if len(raw_results) != len(batch):
            raise InvalidResponseError(
                f"Expected {len(batch)} results in batch response, got {len(raw_results)}"
            )
        return [decode(raw, entry.adapter) for raw, entry in zip(raw_results, batch)]

    async def _store(self, cache_key: str, decoded: Any, raw: Any, block_number: Optional[int]) -> None:
        if not self.window.is_cacheable(block_number):
            logger.debug("response_not_cacheable", key=cache_key, block_number=block_number,
                         last_safe_block=self.window.last_safe_block)
            return

        self.cache.set(cache_key, decoded)
        monitoring.record_store(monitoring.MEMORY_TIER)

        if self.disk_cache is not None:
            # Raw payloads are persisted so they can be decoded again by newer schemas
            if await self.disk_cache.set_raw(cache_key, raw):
                monitoring.record_store(monitoring.DISK_TIER)


def _block_adapter(include_transactions: bool) -> TypeAdapter:
    if include_transactions:
        return nullable_block_with_transactions
    return nullable_block


def _block_number_of_block(block: Optional[Union[RpcBlock, RpcBlockWithTransactions]]) -> Optional[int]:
    if block is None:
        return None
    return block.number
