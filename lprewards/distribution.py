"""
Normalizes raw snapshot records into liquidity and holder share tables.
"""

import logging
from collections import defaultdict
from typing import Iterable

from config import Config
from lprewards.exceptions import UpstreamUnavailable
from lprewards.models import (
    HolderShareTable,
    LiquidityDistribution,
    Position,
    WrapperHolderBalance,
    normalize_address,
)

logger = logging.getLogger(__name__)


def compute_liquidity_distribution(positions: Iterable[Position]) -> LiquidityDistribution:
    """
    Sum in-range liquidity per owner.

    Zero-liquidity positions are skipped so they never show up as
    zero-weight owners.

    Args:
        positions: Positions from one snapshot

    Returns:
        LiquidityDistribution whose total equals the sum of by_owner
    """
    by_owner = defaultdict(int)
    total = 0
    for position in positions:
        if position.liquidity == 0:
            continue
        by_owner[normalize_address(position.owner)] += position.liquidity
        total += position.liquidity

    return LiquidityDistribution(by_owner=dict(by_owner), total=total)


def compute_holder_share_table(
    holders: Iterable[WrapperHolderBalance],
    total_supply: int,
    scale: int = Config.SHARE_SCALE,
) -> HolderShareTable:
    """
    Convert holder balances into fixed-point shares of the wrapper supply.

    share = balance * scale // total_supply

    Args:
        holders: Holder balances from one snapshot
        total_supply: Wrapper total supply at the same block
        scale: Fixed-point denominator

    Returns:
        Mapping of holder to scaled share; empty when total_supply is zero

    Raises:
        UpstreamUnavailable: If the holder balances add up to more than total_supply
    """
    if total_supply == 0:
        return {}

    balances = defaultdict(int)
    for entry in holders:
        if entry.balance == 0:
            continue
        balances[normalize_address(entry.holder)] += entry.balance

    tracked = sum(balances.values())
    if tracked > total_supply:
        logger.error(
            f"Tracked holder balances ({tracked}) exceed wrapper total supply ({total_supply})"
        )
        raise UpstreamUnavailable(
            f"Wrapper holder balances ({tracked}) exceed total supply ({total_supply})"
        )

    return {holder: balance * scale // total_supply for holder, balance in balances.items()}
