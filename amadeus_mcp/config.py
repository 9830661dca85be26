"""
Configuration helpers for the Amadeus MCP gateway.

This module centralizes node URL selection, API key and faucet key loading,
default timeouts, and safety limits. No secrets are stored in the repository;
keys are read from the environment or a local file if present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Default connection settings
DEFAULT_MAINNET_URL = os.getenv(
    "AMADEUS_MAINNET_URL", os.getenv("BLOCKCHAIN_URL", "https://nodes.amadeus.bot")
)
DEFAULT_TESTNET_URL = os.getenv("AMADEUS_TESTNET_RPC") or None


def _load_float(env_var: str, default: float) -> float:
    raw_value = os.getenv(env_var)
    if raw_value:
        try:
            return float(raw_value)
        except ValueError:
            return default
    return default


def _load_timeout() -> float:
    return _load_float("AMADEUS_HTTP_TIMEOUT", 10.0)


def _load_bool(env_var: str, default: bool = False) -> bool:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_TIMEOUT = _load_timeout()
DEFAULT_STORE_TIMEOUT = _load_float("AMADEUS_STORE_TIMEOUT", 5.0)

# Key handling
API_KEY_ENV_VAR = "AMADEUS_API_KEY"
API_KEY_FILE_ENV_VAR = "AMADEUS_API_KEY_FILE"
LEGACY_API_KEY_ENV_VAR = "BLOCKCHAIN_API_KEY"
DEFAULT_API_KEY_FILE = "apikey.txt"
FAUCET_KEY_ENV_VAR = "AMADEUS_TESTNET_SK"
FAUCET_KEY_FILE_ENV_VAR = "AMADEUS_TESTNET_SK_FILE"

# Faucet
FAUCET_STORE = os.getenv("AMADEUS_FAUCET_STORE", "faucet.sqlite3")
FAUCET_COOLDOWN_SECONDS = 24 * 60 * 60
FAUCET_AMOUNT = 100_000_000_000  # 100 AMA in atomic units (9 decimals)
FAUCET_SYMBOL = "AMA"

# Safety limits
MAX_HISTORY_LIMIT = 100
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_RATE_LIMIT_QPS = _load_float("AMADEUS_RATE_LIMIT_QPS", 5.0)
LOG_LEVEL = os.getenv("AMADEUS_MCP_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("AMADEUS_MCP_LOG_FORMAT", "json")  # json or plain
TRUST_PROXY_HEADERS = _load_bool("AMADEUS_TRUST_PROXY_HEADERS")
STDIO_ORIGIN = os.getenv("AMADEUS_STDIO_ORIGIN", "stdio")
HTTP_HOST = os.getenv("AMADEUS_MCP_HOST", "127.0.0.1")
HTTP_PORT = int(_load_float("AMADEUS_MCP_PORT", 8000))


def _read_key(env_var: str, file_env_var: str, default_file: Optional[str] = None) -> Optional[str]:
    env_key = os.getenv(env_var)
    if env_key:
        return env_key.strip()

    key_path = os.getenv(file_env_var, default_file or "")
    if key_path:
        path = Path(key_path)
        if path.is_file():
            return path.read_text(encoding="utf-8").strip() or None

    return None


def load_api_key() -> Optional[str]:
    """
    Load the node API key from environment or a local file.

    Returns:
        The API key string if available, otherwise None. The key is never logged
        or returned to callers.
    """
    key = _read_key(API_KEY_ENV_VAR, API_KEY_FILE_ENV_VAR, DEFAULT_API_KEY_FILE)
    if key:
        return key
    legacy = os.getenv(LEGACY_API_KEY_ENV_VAR)
    return legacy.strip() if legacy else None


def load_faucet_key() -> Optional[str]:
    """Load the base58 faucet seed used to sign testnet mint transfers."""
    return _read_key(FAUCET_KEY_ENV_VAR, FAUCET_KEY_FILE_ENV_VAR)


@dataclass(slots=True)
class AmadeusConfig:
    """Runtime configuration for node access and the faucet."""

    mainnet_url: str = DEFAULT_MAINNET_URL
    testnet_url: Optional[str] = DEFAULT_TESTNET_URL
    timeout: float = DEFAULT_TIMEOUT
    api_key: Optional[str] = load_api_key()
    faucet_key: Optional[str] = load_faucet_key()
    faucet_store: str = FAUCET_STORE
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    faucet_cooldown_seconds: float = FAUCET_COOLDOWN_SECONDS
    faucet_amount: int = FAUCET_AMOUNT
    faucet_symbol: str = FAUCET_SYMBOL
    max_history_limit: int = MAX_HISTORY_LIMIT
    default_history_limit: int = DEFAULT_HISTORY_LIMIT
    rate_limit_qps: float = DEFAULT_RATE_LIMIT_QPS
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    trust_proxy_headers: bool = TRUST_PROXY_HEADERS
    stdio_origin: str = STDIO_ORIGIN
    http_host: str = HTTP_HOST
    http_port: int = HTTP_PORT
    per_tool_rate_limits: dict[str, float] = field(
        default_factory=lambda: {"claim_testnet_ama": 1.0, "submit_transaction": 2.0}
    )

    def network_url(self, network: str) -> Optional[str]:
        if network == "testnet":
            return self.testnet_url
        return self.mainnet_url


default_config = AmadeusConfig()
