"""
Configuration module for deadswitch.

Centralizes all configuration with environment variable support
and validation.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("DEADSWITCH_ENV", "dev")  # dev|stage|prod

# Registry storage
REGISTRY_BACKEND = os.getenv("DEADSWITCH_REGISTRY", "sqlite")  # sqlite|memory
DB_PATH = os.getenv("DEADSWITCH_DB_PATH", "data/deadswitch.db")

# Rate limits (requests per minute, per caller)
CLAIM_RPM = int(os.getenv("CLAIM_RPM", "30"))
DERIVE_RPM = int(os.getenv("DERIVE_RPM", "60"))

# Identity of the caller is injected by the hosting environment
CALLER_HEADER = os.getenv("CALLER_HEADER", "X-Caller-Identity")

# Will registration bounds (seconds)
MIN_HEARTBEAT_SECONDS = int(os.getenv("MIN_HEARTBEAT_SECONDS", "1"))
MAX_HEARTBEAT_SECONDS = int(os.getenv("MAX_HEARTBEAT_SECONDS", str(10 * 365 * 86400)))
MAX_PAYOUT_ADDRESS_LENGTH = int(os.getenv("MAX_PAYOUT_ADDRESS_LENGTH", "128"))
MAX_SECRET_BYTES = int(os.getenv("MAX_SECRET_BYTES", str(64 * 1024)))

# Settlement
CLAIM_LEDGER_AMOUNT = int(os.getenv("CLAIM_LEDGER_AMOUNT", "1000"))
LEDGER_URL = os.getenv("LEDGER_URL", "")
LEDGER_TIMEOUT_SECONDS = float(os.getenv("LEDGER_TIMEOUT_SECONDS", "5"))

# Bitcoin network
BITCOIN_NETWORK = os.getenv("BITCOIN_NETWORK", "testnet")  # mainnet|testnet|regtest
BALANCE_API_URL = os.getenv("BALANCE_API_URL", "")
BALANCE_TIMEOUT_SECONDS = float(os.getenv("BALANCE_TIMEOUT_SECONDS", "5"))

# Key derivation
KEY_NAME = os.getenv("KEY_NAME", "dev_test_key")
MASTER_SEED_PATH = os.getenv("MASTER_SEED_PATH", "secrets/master_seed.json")

# Logging
LOG_LEVEL = os.getenv("DEADSWITCH_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("DEADSWITCH_LOG_JSON", "1").lower() in ("1", "true", "yes")

BITCOIN_NETWORKS = ("mainnet", "testnet", "regtest")

DEFAULT_BALANCE_API_URLS = {
    "mainnet": "https://blockstream.info/api",
    "testnet": "https://blockstream.info/testnet/api",
    "regtest": "http://localhost:3002",
}


def balance_api_url() -> str:
    """Balance API base URL, defaulting per network."""
    return BALANCE_API_URL or DEFAULT_BALANCE_API_URLS.get(BITCOIN_NETWORK, "")


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate configuration values and required files.
    Returns dict of check name -> passed.
    """
    checks = {
        "bitcoin_network": BITCOIN_NETWORK in BITCOIN_NETWORKS,
        "registry_backend": REGISTRY_BACKEND in ("sqlite", "memory"),
        "heartbeat_bounds": 0 < MIN_HEARTBEAT_SECONDS <= MAX_HEARTBEAT_SECONDS,
        "master_seed": Path(MASTER_SEED_PATH).exists(),
    }
    if is_production():
        checks["ledger_url"] = bool(LEDGER_URL)
    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DEADSWITCH_DEBUG", "").lower() in ("1", "true", "yes")
