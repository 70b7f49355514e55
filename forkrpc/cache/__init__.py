"""
Caching layer of the fork client.

Two tiers back every cacheable request: an in-memory map of decoded results
and an optional directory of raw JSON payloads. What may enter either tier is
decided by the reorg-safety window observed when the client was created.
"""

from .keys import RpcRequest, derive_key, derive_batch_key
from .memory import MISSING, MemoryCache
from .disk import DiskCache
from .policy import ReorgSafetyWindow

__all__ = [
    'RpcRequest',
    'derive_key',
    'derive_batch_key',
    'MISSING',
    'MemoryCache',
    'DiskCache',
    'ReorgSafetyWindow',
]
