"""Constants for the forkrpc client."""

# Retry heuristic
FLAKY_PROVIDER_MARKER = "infura"  # Substring of the endpoint URL
TRANSIENT_ERROR_MESSAGE = "header not found"

# Reorg safety
FALLBACK_MAX_REORG = 30  # Used for networks without a known reorg depth

# Largest reorg depth observed per network id
LARGEST_POSSIBLE_REORG = {
    1: 5,     # mainnet
    3: 100,   # ropsten
    4: 5,     # rinkeby
    5: 5,     # goerli
    42: 5,    # kovan
}

# Transport
DEFAULT_HTTP_TIMEOUT = 20  # seconds
JSONRPC_VERSION = "2.0"

# Disk cache layout
NETWORK_DIR_TEMPLATE = "network-{network_id}"
REQUEST_FILE_TEMPLATE = "request-{key}.json"
