"""
Configuration module for the LP reward distributor.
Loads environment variables and defines constants.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # RPC Configuration
    RPC_URL: str = os.getenv("RPC_URL", "https://cloudflare-eth.com")
    RPC_TIMEOUT: int = int(os.getenv("RPC_TIMEOUT", "30"))

    # Subgraph Configuration
    SUBGRAPH_URL: Optional[str] = os.getenv(
        "SUBGRAPH_URL", "https://api.thegraph.com/subgraphs/name/alirun/uniswap-v3"
    )
    WRAPPER_SUBGRAPH_URL: Optional[str] = os.getenv(
        "WRAPPER_SUBGRAPH_URL", "https://api.thegraph.com/subgraphs/name/alirun/guni"
    )
    SUBGRAPH_TIMEOUT: int = int(os.getenv("SUBGRAPH_TIMEOUT", "30"))
    PAGE_SIZE: int = int(os.getenv("PAGE_SIZE", "1000"))

    # Contract Addresses
    POOL_ADDRESS: str = os.getenv("POOL_ADDRESS", "0x5cef3aed38eb937f3dc0864307ac6c9a9694abfa")
    WRAPPER_ADDRESS: str = os.getenv("WRAPPER_ADDRESS", "0x2A2Cd905141F1cDf3620dB6A1eD0Abc4F7E8635C")

    # Reward Schedule
    SHARE_SCALE: int = 10**12
    BUDGET_PER_STEP: int = int(os.getenv("BUDGET_PER_STEP", str(10**18)))  # 1 token per step
    BLOCK_STEP: int = int(os.getenv("BLOCK_STEP", str(3600 // 15)))  # ~1 hour of blocks
    LOOKBACK_BLOCKS: int = int(os.getenv("LOOKBACK_BLOCKS", "1000"))
    RECALC_INTERVAL: int = int(os.getenv("RECALC_INTERVAL", "3600"))  # seconds
    SKIP_FAILED_INTERVALS: bool = _env_bool("SKIP_FAILED_INTERVALS")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "lp_rewards.log")

    # Validation
    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages, empty if valid
        """
        errors = []

        if not cls.SUBGRAPH_URL:
            errors.append("SUBGRAPH_URL not set in .env")

        if not cls.WRAPPER_SUBGRAPH_URL:
            errors.append("WRAPPER_SUBGRAPH_URL not set in .env")

        if not cls.POOL_ADDRESS:
            errors.append("POOL_ADDRESS not set in .env")

        if not cls.WRAPPER_ADDRESS:
            errors.append("WRAPPER_ADDRESS not set in .env")

        if cls.PAGE_SIZE <= 0:
            errors.append("PAGE_SIZE must be positive")

        if cls.BLOCK_STEP <= 0:
            errors.append("BLOCK_STEP must be positive")

        if cls.BUDGET_PER_STEP < 0:
            errors.append("BUDGET_PER_STEP must not be negative")

        if cls.LOOKBACK_BLOCKS <= 0:
            errors.append("LOOKBACK_BLOCKS must be positive")

        return errors
