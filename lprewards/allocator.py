"""
Splits one interval's reward budget across liquidity owners and wrapper holders.

An allocation is a tree of AllocationNode objects. Each node divides the
amount it receives across its weights with floor division; a key that has
a child node hands its slice to that node instead of being credited. The
pool is the root node and the wrapper is a child keyed by its address, so
a wrapper of a wrapper is just one more level.

Remainders are never redistributed: the credited total can be lower than
the budget by at most one unit per division.
"""

import logging
from collections import defaultdict
from typing import Dict, Optional

from config import Config
from lprewards.models import (
    HolderShareTable,
    LiquidityDistribution,
    RewardAllocation,
    normalize_address,
)

logger = logging.getLogger(__name__)


class AllocationNode:
    """Integer weights over a denominator, with optional nested nodes."""

    def __init__(
        self,
        weights: Dict[str, int],
        denominator: int,
        children: Optional[Dict[str, "AllocationNode"]] = None,
        label: str = "node",
    ):
        """
        Args:
            weights: Address -> integer weight
            denominator: Divisor applied to amount * weight
            children: Address -> node that receives that address's slice
            label: Name used in log messages
        """
        if denominator < 0:
            raise ValueError(f"Denominator must not be negative: {denominator}")
        self.weights = {normalize_address(k): v for k, v in weights.items()}
        self.denominator = denominator
        self.children = {normalize_address(k): v for k, v in (children or {}).items()}
        self.label = label

    def add_child(self, address: str, node: "AllocationNode") -> None:
        self.children[normalize_address(address)] = node

    def slice_for(self, amount: int, weight: int) -> int:
        return amount * weight // self.denominator

    def distribute(self, amount: int, rewards: Dict[str, int]) -> int:
        """
        Credit amount across this node's weights into rewards.

        Args:
            amount: Amount routed to this node
            rewards: Accumulating address -> reward map (mutated)

        Returns:
            Part of amount that reached a node with no weights (unclaimed)
        """
        if not self.weights or self.denominator == 0:
            if amount:
                logger.warning(f"{self.label} has no recipients; {amount} left unclaimed")
            return amount

        unclaimed = 0
        for address, weight in self.weights.items():
            part = self.slice_for(amount, weight)
            child = self.children.get(address)
            if child is not None:
                unclaimed += child.distribute(part, rewards)
            else:
                rewards[address] += part
        return unclaimed


def build_allocation_tree(
    distribution: LiquidityDistribution,
    wrapper_address: Optional[str] = None,
    holder_shares: Optional[HolderShareTable] = None,
    scale: int = Config.SHARE_SCALE,
) -> AllocationNode:
    """
    Build the pool -> wrapper -> holder allocation tree.

    Args:
        distribution: Liquidity per owner
        wrapper_address: Owner whose slice belongs to wrapper holders
        holder_shares: Holder -> fixed-point share of wrapper supply
        scale: Fixed-point denominator of holder_shares

    Returns:
        Root AllocationNode for the pool
    """
    root = AllocationNode(distribution.by_owner, distribution.total, label="pool")
    if wrapper_address:
        wrapper = AllocationNode(holder_shares or {}, scale, label=f"wrapper {wrapper_address}")
        root.add_child(wrapper_address, wrapper)
    return root


def allocate(
    budget: int,
    distribution: LiquidityDistribution,
    wrapper_address: Optional[str],
    holder_shares: HolderShareTable,
    scale: int = Config.SHARE_SCALE,
) -> RewardAllocation:
    """
    Allocate one interval's budget.

    Each owner receives budget * liquidity // total. The wrapper's own
    slice is never credited to the wrapper address; each holder receives
    slice * share // scale, added to any direct credit it already has.

    Args:
        budget: Reward for this interval
        distribution: Liquidity per owner
        wrapper_address: Wrapper token address
        holder_shares: Holder -> fixed-point share of wrapper supply
        scale: Fixed-point denominator of holder_shares

    Returns:
        RewardAllocation for the interval
    """
    if budget < 0:
        raise ValueError(f"Budget must not be negative: {budget}")

    tree = build_allocation_tree(distribution, wrapper_address, holder_shares, scale)
    return allocate_tree(budget, tree)


def allocate_tree(budget: int, tree: AllocationNode) -> RewardAllocation:
    """
    Allocate budget through an already built tree.

    Args:
        budget: Reward for this interval
        tree: Root allocation node

    Returns:
        RewardAllocation for the interval
    """
    rewards = defaultdict(int)
    unclaimed = tree.distribute(budget, rewards)
    allocation = RewardAllocation(budget=budget, rewards=dict(rewards), unclaimed=unclaimed)

    logger.debug(
        f"Allocated {allocation.credited}/{budget} to {len(allocation.rewards)} addresses "
        f"(truncation loss {allocation.truncation_loss}, unclaimed {unclaimed})"
    )
    return allocation
