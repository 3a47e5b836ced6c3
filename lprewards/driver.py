"""
Walks a block range in fixed steps and accumulates per-interval rewards.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from config import Config
from lprewards.accumulator import RunningTotal
from lprewards.allocator import allocate
from lprewards.distribution import compute_holder_share_table, compute_liquidity_distribution
from lprewards.exceptions import UpstreamUnavailable
from lprewards.models import RewardAllocation, normalize_address
from lprewards.snapshot_loader import SnapshotLoader

logger = logging.getLogger(__name__)


@dataclass
class PassSummary:
    """Outcome of one full block-range pass."""
    from_block: int
    to_block: int
    intervals_processed: int = 0
    intervals_skipped: int = 0
    total_credited: int = 0
    total_unclaimed: int = 0
    total_truncation_loss: int = 0
    elapsed_seconds: float = 0.0


class IntervalDriver:
    """Runs Loader -> Calculator -> Allocator -> Accumulator per interval."""

    def __init__(
        self,
        loader: SnapshotLoader,
        pool_address: Optional[str] = None,
        wrapper_address: Optional[str] = None,
        scale: int = Config.SHARE_SCALE,
        skip_failed_intervals: Optional[bool] = None,
    ):
        """
        Initialize interval driver.

        Args:
            loader: Snapshot loader
            pool_address: Pool whose in-range liquidity earns rewards
            wrapper_address: Wrapper token whose slice goes to its holders
            scale: Fixed-point scale for holder shares
            skip_failed_intervals: Skip intervals whose fetch failed instead of aborting the pass
        """
        self.loader = loader
        self.pool_address = normalize_address(pool_address or Config.POOL_ADDRESS)
        self.wrapper_address = normalize_address(wrapper_address or Config.WRAPPER_ADDRESS)
        self.scale = scale
        self.skip_failed_intervals = (
            Config.SKIP_FAILED_INTERVALS if skip_failed_intervals is None else skip_failed_intervals
        )
        self.last_summary: Optional[PassSummary] = None

    def compute_interval(self, block_number: int, budget: int) -> RewardAllocation:
        """
        Compute the allocation for the interval starting at block_number.

        Raises:
            UpstreamUnavailable: If the snapshot could not be loaded or is inconsistent
        """
        snapshot = self.loader.load(self.pool_address, block_number)
        distribution = compute_liquidity_distribution(snapshot.positions)
        holder_shares = compute_holder_share_table(
            snapshot.holders, snapshot.wrapper_total_supply, self.scale
        )
        return allocate(budget, distribution, self.wrapper_address, holder_shares, self.scale)

    def run(self, from_block: int, to_block: int, step: int, budget_per_step: int) -> RunningTotal:
        """
        Accumulate rewards over [from_block, to_block).

        Args:
            from_block: First interval's snapshot block
            to_block: Exclusive end of the range
            step: Blocks per interval
            budget_per_step: Reward budget for each interval

        Returns:
            Fresh RunningTotal for this pass

        Raises:
            UpstreamUnavailable: If an interval fails and skip_failed_intervals is off
        """
        if step <= 0:
            raise ValueError(f"Step must be positive: {step}")
        if budget_per_step < 0:
            raise ValueError(f"Budget must not be negative: {budget_per_step}")

        start = time.monotonic()
        running_total = RunningTotal()
        summary = PassSummary(from_block=from_block, to_block=to_block)

        current_block = from_block
        while current_block < to_block:
            logger.info(f"Processing block: {current_block}")
            try:
                allocation = self.compute_interval(current_block, budget_per_step)
            except UpstreamUnavailable as e:
                if not self.skip_failed_intervals:
                    logger.error(f"Interval at block {current_block} failed, aborting pass: {e}")
                    raise
                logger.warning(f"Skipping interval at block {current_block}: {e}")
                summary.intervals_skipped += 1
                current_block += step
                continue

            running_total.merge(allocation, interval_id=current_block)
            summary.intervals_processed += 1
            summary.total_credited += allocation.credited
            summary.total_unclaimed += allocation.unclaimed
            summary.total_truncation_loss += allocation.truncation_loss

            for owner, amount in running_total.top(3):
                logger.info(f"Owner: {owner} Rewards: {amount}")
            logger.info(f"Total distributed: {running_total.total_distributed}")

            current_block += step

        summary.elapsed_seconds = time.monotonic() - start
        self.last_summary = summary
        logger.info(
            f"Pass [{from_block}, {to_block}) done: {summary.intervals_processed} intervals, "
            f"{summary.intervals_skipped} skipped, credited {summary.total_credited}, "
            f"unclaimed {summary.total_unclaimed}, truncation loss {summary.total_truncation_loss} "
            f"in {summary.elapsed_seconds:.1f}s"
        )
        return running_total
