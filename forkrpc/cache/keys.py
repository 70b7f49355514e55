"""
Cache key derivation for JSON-RPC requests.

A key identifies a request on one network: two requests with the same
network id, method and parameters always map to the same key, and any
difference in those inputs yields a different key.
"""
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple


@dataclass(frozen=True)
class RpcRequest:
    """A single JSON-RPC method call."""
    method: str
    params: Tuple[Any, ...] = ()


def _serialize_params(params: Sequence[Any]) -> str:
    # Sorted keys keep dict params (e.g. log filters) stable
    return json.dumps(list(params), sort_keys=True, separators=(",", ":"))


def derive_key(network_id: int, method: str, params: Sequence[Any]) -> str:
    """
    Derive the cache key of a request.

    The plaintext "<network_id> <method> <params as JSON>" is hashed with md5,
    which is used as a well-distributed identifier, not as a security measure.

    Args:
        network_id: Id of the network the request targets
        method: JSON-RPC method name
        params: Positional parameters, JSON serializable

    Returns:
        Hex digest usable as a file name
    """
    plaintext = f"{network_id} {method} {_serialize_params(params)}"
    return hashlib.md5(plaintext.encode("utf-8")).hexdigest()


def derive_batch_key(network_id: int, requests: Iterable[RpcRequest]) -> str:
    """
    Derive the cache key of a batch, which is cached as a single unit.

    Method names are concatenated and parameters flattened, both in batch
    order, then hashed like a single request.
    """
    method = ""
    params: List[Any] = []
    for request in requests:
        method += request.method
        params.extend(request.params)

    return derive_key(network_id, method, params)
