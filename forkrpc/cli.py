"""
Command line entry point: connect to a remote endpoint and report the fork point.

    FORKRPC_JSON_RPC_URL=https://... forkrpc-info --block-number 12345 --cache-path cache/
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

import aiohttp
import structlog
from pydantic import ValidationError

from .config import ForkSettings, configure_logging, log_error
from .errors import ForkRpcError
from .factory import make_fork_client
from .transport import HttpProvider

logger = structlog.get_logger()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect the fork point of a remote JSON-RPC endpoint")
    parser.add_argument("--url", help="JSON-RPC endpoint (defaults to FORKRPC_JSON_RPC_URL)")
    parser.add_argument("--block-number", type=int, help="Block to fork from")
    parser.add_argument("--cache-path", type=Path, help="Directory of the persistent cache")
    parser.add_argument("--log-level", help="Log level (defaults to FORKRPC_LOG_LEVEL)")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> ForkSettings:
    overrides = {
        "json_rpc_url": args.url,
        "block_number": args.block_number,
        "cache_path": args.cache_path,
        "log_level": args.log_level,
    }
    return ForkSettings(**{k: v for k, v in overrides.items() if v is not None})


async def run(settings: ForkSettings) -> dict:
    transport = HttpProvider(settings.json_rpc_url, headers=settings.http_headers, timeout=settings.timeout)
    try:
        result = await make_fork_client(settings, transport)
        return {
            "network_id": result.fork_client.network_id,
            "fork_block_number": result.fork_block_number,
            "fork_block_hash": "0x" + result.fork_block_hash.hex(),
            "cache_to_disk": result.fork_client.disk_cache is not None,
        }
    finally:
        await transport.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as e:
        configure_logging(args.log_level or "INFO")
        log_error(logger, e)
        return 1

    configure_logging(settings.log_level, settings.json_logs)

    try:
        info = asyncio.run(run(settings))
    except (ForkRpcError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        log_error(logger, e, {"url": settings.json_rpc_url})
        return 1

    print(json.dumps(info, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
