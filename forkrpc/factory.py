"""
Construction of a fork client from settings.

The factory queries the remote endpoint for its network id and height, picks
the block to fork from and decides whether responses may be persisted.
"""
from dataclasses import dataclass
from typing import Optional

import structlog

from .client import JsonRpcClient
from .config.settings import ForkSettings
from .constants import FALLBACK_MAX_REORG, LARGEST_POSSIBLE_REORG
from .encoding import parse_rpc_quantity
from .errors import ForkBlockNumberError, InvalidResponseError
from .transport import HttpProvider, Transport

logger = structlog.get_logger()


@dataclass
class ForkClientResult:
    fork_client: JsonRpcClient
    fork_block_number: int
    fork_block_hash: bytes


def get_max_reorg(network_id: int) -> int:
    """Reorg depth considered unsafe for a network."""
    return LARGEST_POSSIBLE_REORG.get(network_id, FALLBACK_MAX_REORG)


async def get_network_id(transport: Transport) -> int:
    raw = await transport.request("net_version", [])
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidResponseError(f"Invalid net_version response: {raw!r}") from e


async def get_latest_block_number(transport: Transport) -> int:
    raw = await transport.request("eth_blockNumber", [])
    try:
        return parse_rpc_quantity(raw)
    except ValueError as e:
        raise InvalidResponseError(f"Invalid eth_blockNumber response: {raw!r}") from e


async def make_fork_client(
    settings: ForkSettings,
    transport: Optional[Transport] = None
) -> ForkClientResult:
    """
    Create a client for the network behind settings.json_rpc_url.

    Args:
        settings: Fork settings
        transport: Transport to use instead of an HttpProvider

    Returns:
        The client along with the number and hash of the fork block

    Raises:
        ForkBlockNumberError: If the pinned block is negative, ahead of the chain or
            the fork block cannot be fetched
    """
    if transport is None:
        transport = HttpProvider(
            settings.json_rpc_url,
            headers=settings.http_headers,
            timeout=settings.timeout
        )

    network_id = await get_network_id(transport)
    latest_block = await get_latest_block_number(transport)
    max_reorg = get_max_reorg(network_id)
    last_safe_block = latest_block - max_reorg

    if settings.block_number is not None:
        if settings.block_number < 0:
            raise ForkBlockNumberError(f"Invalid fork block number {settings.block_number}")

        if settings.block_number > latest_block:
            raise ForkBlockNumberError(
                f"Trying to initialize a provider with block {settings.block_number} "
                f"but the current block is {latest_block}"
            )

        if settings.block_number > last_safe_block:
            logger.warning(
                "fork_block_within_reorg_window",
                block_number=settings.block_number,
                latest_block=latest_block,
                max_reorg=max_reorg,
                confirmations=latest_block - settings.block_number + 1,
            )

        fork_block_number = settings.block_number
    else:
        # Chains younger than the reorg depth fork from genesis
        fork_block_number = max(last_safe_block, 0)

    # An unpinned fork moves with the chain, so its responses are not persisted
    cache_to_disk = settings.block_number is not None and settings.cache_path is not None

    fork_client = JsonRpcClient(
        transport,
        network_id,
        latest_block,
        max_reorg,
        settings.cache_path if cache_to_disk else None
    )

    block = await fork_client.get_block_by_number(fork_block_number)
    if block is None or block.hash is None:
        raise ForkBlockNumberError(f"Fork block {fork_block_number} could not be fetched")

    logger.info(
        "fork_client_created",
        network_id=network_id,
        fork_block_number=fork_block_number,
        latest_block=latest_block,
        max_reorg=max_reorg,
        cache_to_disk=cache_to_disk,
    )

    return ForkClientResult(
        fork_client=fork_client,
        fork_block_number=fork_block_number,
        fork_block_hash=block.hash,
    )
