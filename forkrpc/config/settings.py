from pathlib import Path
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import DEFAULT_HTTP_TIMEOUT


class ForkSettings(BaseSettings):
    """
    Settings of a fork client, read from FORKRPC_* environment variables or
    a .env file.
    """
    model_config = SettingsConfigDict(env_prefix="FORKRPC_", env_file=".env", extra="ignore")

    # Remote endpoint
    json_rpc_url: str
    http_headers: Dict[str, str] = {}
    timeout: float = DEFAULT_HTTP_TIMEOUT  # seconds

    # Fork
    block_number: Optional[int] = None  # Latest safe block when unset

    # Persistent cache, only used when block_number is pinned
    cache_path: Optional[Path] = None

    # Monitoring
    log_level: str = "INFO"
    json_logs: bool = True
