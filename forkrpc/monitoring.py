"""
Prometheus metrics for the fork client.

Counters track how often requests are answered by each cache tier and how
often the remote endpoint is actually called.
"""
from prometheus_client import Counter

CACHE_HITS = Counter('forkrpc_cache_hits_total', 'Total number of cache hits', ['tier'])
CACHE_MISSES = Counter('forkrpc_cache_misses_total', 'Total number of requests missing every cache tier')
CACHE_STORES = Counter('forkrpc_cache_stores_total', 'Total number of entries written to a cache tier', ['tier'])
RPC_REQUESTS = Counter('forkrpc_rpc_requests_total', 'Total number of calls sent to the remote endpoint', ['method'])
RPC_RETRIES = Counter('forkrpc_rpc_retries_total', 'Total number of retried remote calls', ['method'])

# Cache tiers for metrics
MEMORY_TIER = 'memory'
DISK_TIER = 'disk'


def record_hit(tier: str) -> None:
    CACHE_HITS.labels(tier=tier).inc()


def record_miss() -> None:
    CACHE_MISSES.inc()


def record_store(tier: str) -> None:
    CACHE_STORES.labels(tier=tier).inc()


def record_request(method: str) -> None:
    RPC_REQUESTS.labels(method=method).inc()


def record_retry(method: str) -> None:
    RPC_RETRIES.labels(method=method).inc()
