"""
Running per-address reward totals across the intervals of one pass.
"""

import logging
from typing import Dict, Hashable, Iterator, List, Optional, Set, Tuple

from lprewards.exceptions import DuplicateMerge
from lprewards.models import RewardAllocation, normalize_address

logger = logging.getLogger(__name__)


class RunningTotal:
    """Cumulative rewards owned by a single driver pass."""

    def __init__(self):
        self.totals: Dict[str, int] = {}
        self.merged_intervals: Set[Hashable] = set()
        self.unclaimed: int = 0
        self.truncation_loss: int = 0

    def merge(self, allocation: RewardAllocation, interval_id: Optional[Hashable] = None) -> None:
        """
        Add one interval's allocation to the totals.

        Args:
            allocation: Allocation for one interval
            interval_id: Identity of the interval (e.g. its block number)

        Raises:
            DuplicateMerge: If interval_id was already merged
            ValueError: If any reward is negative; nothing is merged
        """
        if interval_id is not None and interval_id in self.merged_intervals:
            raise DuplicateMerge(interval_id)
        for address, amount in allocation.rewards.items():
            if amount < 0:
                raise ValueError(f"Negative reward {amount} for {address}")

        if interval_id is not None:
            self.merged_intervals.add(interval_id)
        for address, amount in allocation.rewards.items():
            self.totals[address] = self.totals.get(address, 0) + amount

        self.unclaimed += allocation.unclaimed
        self.truncation_loss += allocation.truncation_loss

    def get(self, address: str) -> int:
        return self.totals.get(normalize_address(address), 0)

    @property
    def total_distributed(self) -> int:
        return sum(self.totals.values())

    def top(self, n: int = 3) -> List[Tuple[str, int]]:
        """Largest totals first; ties broken by address."""
        return sorted(self.totals.items(), key=lambda item: (-item[1], item[0]))[:n]

    def __contains__(self, address: str) -> bool:
        return normalize_address(address) in self.totals

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.totals))

    def __len__(self) -> int:
        return len(self.totals)
