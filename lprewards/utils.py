"""
Utility functions for the LP reward distributor.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from web3 import Web3

TICK_BASE = 1.0001
TICK_PRICE_MULTIPLIER = 1e12


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
):
    """
    Retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for delay after each retry
        exceptions: Exception types that trigger a retry

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            current_delay = delay
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        logging.warning(
                            f"{func.__name__} failed (attempt {attempt + 1}/{max_attempts}): {e}"
                        )
                        time.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logging.error(
                            f"{func.__name__} failed after {max_attempts} attempts: {e}"
                        )

            raise last_exception

        return wrapper

    return decorator


def tick_to_price(tick: int) -> float:
    """
    Human-readable price for a pool tick. Display only.

    Args:
        tick: Current pool tick

    Returns:
        1.0001 ** tick scaled by 1e12
    """
    return (TICK_BASE ** tick) * TICK_PRICE_MULTIPLIER


def format_token_amount(amount: int, decimals: int = 18) -> float:
    """
    Format token amount from wei to human-readable.

    Args:
        amount: Token amount in smallest unit
        decimals: Token decimals

    Returns:
        Human-readable amount
    """
    return amount / (10**decimals)


def checksum_address(address: str) -> str:
    """
    Convert address to checksum format.

    Args:
        address: Ethereum address

    Returns:
        Checksummed address
    """
    return Web3.to_checksum_address(address)


def truncate_address(address: str, chars: int = 6) -> str:
    """
    Truncate Ethereum address for display.

    Args:
        address: Ethereum address
        chars: Number of characters to show on each end

    Returns:
        Truncated address (e.g., "0xabc...123")
    """
    if len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"
