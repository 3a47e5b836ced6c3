"""
Periodic recalculation of the reward totals relative to the chain head.
"""

import logging
import time
from typing import Callable, Optional

from config import Config
from lprewards.accumulator import RunningTotal
from lprewards.chain import ChainHead
from lprewards.driver import IntervalDriver
from lprewards.exceptions import UpstreamUnavailable
from lprewards.ledger import RewardsLedger

logger = logging.getLogger(__name__)


class RewardsScheduler:
    """Re-runs the whole block range on a fixed period and publishes the result."""

    def __init__(
        self,
        driver: IntervalDriver,
        chain_head: ChainHead,
        ledger: Optional[RewardsLedger] = None,
        lookback_blocks: Optional[int] = None,
        step: Optional[int] = None,
        budget_per_step: Optional[int] = None,
    ):
        self.driver = driver
        self.chain_head = chain_head
        self.ledger = ledger or RewardsLedger()
        self.lookback_blocks = lookback_blocks or Config.LOOKBACK_BLOCKS
        self.step = step or Config.BLOCK_STEP
        self.budget_per_step = Config.BUDGET_PER_STEP if budget_per_step is None else budget_per_step

    def block_range(self) -> tuple[int, int]:
        """Range ending one block behind the current head."""
        to_block = self.chain_head.get_latest_block() - 1
        from_block = to_block - self.lookback_blocks
        return from_block, to_block

    def recalculate(self) -> RunningTotal:
        """
        Run one pass over a freshly computed range and publish it.

        Returns:
            RunningTotal of the pass
        """
        from_block, to_block = self.block_range()
        logger.info(f"Recalculating rewards for blocks [{from_block}, {to_block})")
        running_total = self.driver.run(from_block, to_block, self.step, self.budget_per_step)
        self.ledger.publish(running_total, to_block)
        return running_total

    def run_forever(
        self,
        interval_seconds: Optional[int] = None,
        iterations: Optional[int] = None,
        on_pass: Optional[Callable[[RunningTotal], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Recalculate every interval_seconds.

        A failed pass is logged and the previously published totals stay live.

        Args:
            interval_seconds: Seconds between passes
            iterations: Stop after this many passes (None runs forever)
            on_pass: Called with each successful pass's totals
            sleep: Sleep function
        """
        interval_seconds = interval_seconds or Config.RECALC_INTERVAL
        completed = 0
        while iterations is None or completed < iterations:
            try:
                running_total = self.recalculate()
                if on_pass is not None:
                    on_pass(running_total)
            except UpstreamUnavailable as e:
                logger.error(f"Recalculation failed, keeping previous totals: {e}")

            completed += 1
            if iterations is not None and completed >= iterations:
                break
            sleep(interval_seconds)
