"""pointlock configuration constants.

Field widths below define the persisted record layout and the identifier
preimage; changing any of them changes every contract id.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# Field widths (bytes)
IDENTITY_SIZE = 32
HASH_SIZE = 32
AMOUNT_SIZE = 32
COORD_SIZE = 32
TIMELOCK_SIZE = 8

U64_MAX = (1 << 64) - 1
U256_MAX = (1 << 256) - 1

# Record layout: sender, receiver, amount, commitment{x,y}, c1{x,y}, c2{x,y},
# timelock, withdrawn, refunded
RECORD_SIZE = (
    IDENTITY_SIZE * 2
    + AMOUNT_SIZE
    + COORD_SIZE * 6
    + TIMELOCK_SIZE
    + 2
)

# Curves
CURVE_SECP256K1 = "secp256k1"
SUPPORTED_CURVES = frozenset({CURVE_SECP256K1})
DEFAULT_CURVE = CURVE_SECP256K1

# Withdrawal payout: receiver and claimant each get amount // PAYOUT_SHARES,
# the remainder stays with the contract pool.
PAYOUT_SHARES = 2

# Store
LOCK_STRIPES = 64

# CLI
DEFAULT_STATE_FILE = "pointlock-state.json"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class EngineConfig:
    """Runtime settings for the engine and the command line."""

    curve: str = DEFAULT_CURVE
    state_file: str = DEFAULT_STATE_FILE
    log_level: str = DEFAULT_LOG_LEVEL
    verbose: bool = False

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "EngineConfig":
        """Load configuration from environment variables."""
        env = os.environ if environ is None else environ
        config = cls()
        config.curve = env.get("POINTLOCK_CURVE", DEFAULT_CURVE)
        config.state_file = env.get("POINTLOCK_STATE_FILE", DEFAULT_STATE_FILE)
        config.log_level = env.get("POINTLOCK_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        config.verbose = env.get("POINTLOCK_VERBOSE", "").lower() in ("true", "1", "yes")
        return config

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.verbose else self.log_level
