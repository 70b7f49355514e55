"""
Response schemas for the JSON-RPC methods used by the fork client.

Raw transport results are plain JSON values. Every result is validated and
converted through one of the adapters defined here before it reaches a
caller or the in-memory cache.
"""
from typing import Annotated, Any, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError

from .encoding import parse_rpc_address, parse_rpc_data, parse_rpc_hash, parse_rpc_quantity
from .errors import InvalidResponseError


RpcQuantity = Annotated[int, BeforeValidator(parse_rpc_quantity)]
RpcData = Annotated[bytes, BeforeValidator(parse_rpc_data)]
RpcHash = Annotated[bytes, BeforeValidator(parse_rpc_hash)]
RpcAddress = Annotated[bytes, BeforeValidator(parse_rpc_address)]


class RpcModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RpcTransaction(RpcModel):
    """A transaction as returned by eth_getTransactionByHash."""
    block_hash: Optional[RpcHash] = Field(alias="blockHash")
    block_number: Optional[RpcQuantity] = Field(alias="blockNumber")
    from_: RpcAddress = Field(alias="from")
    gas: RpcQuantity
    gas_price: RpcQuantity = Field(alias="gasPrice")
    hash: RpcHash
    input: RpcData
    nonce: RpcQuantity
    to: Optional[RpcAddress] = None
    transaction_index: Optional[RpcQuantity] = Field(alias="transactionIndex")
    value: RpcQuantity
    v: RpcQuantity
    r: RpcQuantity
    s: RpcQuantity

    # Typed transactions (EIP-2718 and later)
    type: Optional[RpcQuantity] = None
    chain_id: Optional[RpcQuantity] = Field(default=None, alias="chainId")
    max_fee_per_gas: Optional[RpcQuantity] = Field(default=None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Optional[RpcQuantity] = Field(default=None, alias="maxPriorityFeePerGas")


class _BlockFields(RpcModel):
    number: Optional[RpcQuantity]
    hash: Optional[RpcHash]
    parent_hash: RpcHash = Field(alias="parentHash")
    nonce: Optional[RpcData]
    sha3_uncles: RpcHash = Field(alias="sha3Uncles")
    logs_bloom: Optional[RpcData] = Field(alias="logsBloom")
    transactions_root: RpcHash = Field(alias="transactionsRoot")
    state_root: RpcHash = Field(alias="stateRoot")
    receipts_root: RpcHash = Field(alias="receiptsRoot")
    miner: RpcAddress
    difficulty: RpcQuantity
    total_difficulty: Optional[RpcQuantity] = Field(default=None, alias="totalDifficulty")
    extra_data: RpcData = Field(alias="extraData")
    size: RpcQuantity
    gas_limit: RpcQuantity = Field(alias="gasLimit")
    gas_used: RpcQuantity = Field(alias="gasUsed")
    timestamp: RpcQuantity
    uncles: Tuple[RpcHash, ...]
    mix_hash: Optional[RpcHash] = Field(default=None, alias="mixHash")
    base_fee_per_gas: Optional[RpcQuantity] = Field(default=None, alias="baseFeePerGas")


class RpcBlock(_BlockFields):
    """A block whose transactions are listed by hash."""
    transactions: Tuple[RpcHash, ...]


class RpcBlockWithTransactions(_BlockFields):
    """A block with full transaction bodies."""
    transactions: Tuple[RpcTransaction, ...]


class RpcLog(RpcModel):
    """An event log entry."""
    log_index: Optional[RpcQuantity] = Field(alias="logIndex")
    transaction_index: Optional[RpcQuantity] = Field(alias="transactionIndex")
    transaction_hash: Optional[RpcHash] = Field(alias="transactionHash")
    block_hash: Optional[RpcHash] = Field(alias="blockHash")
    block_number: Optional[RpcQuantity] = Field(alias="blockNumber")
    address: RpcAddress
    data: RpcData
    topics: Tuple[RpcData, ...]
    removed: Optional[bool] = None


class RpcTransactionReceipt(RpcModel):
    """A transaction receipt as returned by eth_getTransactionReceipt."""
    transaction_hash: RpcHash = Field(alias="transactionHash")
    transaction_index: RpcQuantity = Field(alias="transactionIndex")
    block_hash: RpcHash = Field(alias="blockHash")
    block_number: RpcQuantity = Field(alias="blockNumber")
    from_: RpcAddress = Field(alias="from")
    to: Optional[RpcAddress]
    cumulative_gas_used: RpcQuantity = Field(alias="cumulativeGasUsed")
    gas_used: RpcQuantity = Field(alias="gasUsed")
    contract_address: Optional[RpcAddress] = Field(alias="contractAddress")
    logs: Tuple[RpcLog, ...]
    logs_bloom: RpcData = Field(alias="logsBloom")
    status: Optional[RpcQuantity] = None
    root: Optional[RpcData] = None
    type: Optional[RpcQuantity] = None
    effective_gas_price: Optional[RpcQuantity] = Field(default=None, alias="effectiveGasPrice")


class AccountData(BaseModel):
    """Code, nonce and balance of an account at a given block."""
    model_config = ConfigDict(frozen=True)

    code: bytes
    transaction_count: int
    balance: int


# Adapters used to decode raw results, one per response shape
rpc_data = TypeAdapter(RpcData)
rpc_quantity = TypeAdapter(RpcQuantity)
nullable_block = TypeAdapter(Optional[RpcBlock])
nullable_block_with_transactions = TypeAdapter(Optional[RpcBlockWithTransactions])
nullable_transaction = TypeAdapter(Optional[RpcTransaction])
nullable_receipt = TypeAdapter(Optional[RpcTransactionReceipt])
log_list = TypeAdapter(Tuple[RpcLog, ...])


def decode(raw: Any, adapter: TypeAdapter) -> Any:
    """
    Validate a raw JSON value and convert it to its Python type.

    Args:
        raw: Undecoded value from the transport or the disk cache
        adapter: Adapter describing the expected shape

    Returns:
        The decoded value

    Raises:
        InvalidResponseError: If the value does not match the adapter's type
    """
    try:
        return adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidResponseError(
            f"Invalid JSON-RPC response's result: {e.error_count()} validation error(s)\n{e}"
        ) from e
