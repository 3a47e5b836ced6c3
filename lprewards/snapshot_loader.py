"""
Assembles complete block-pinned snapshots of pool positions and wrapper holders.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from config import Config
from lprewards.exceptions import UpstreamUnavailable
from lprewards.models import Position, Snapshot, WrapperHolderBalance, parse_uint
from lprewards.subgraph_client import SubgraphClient
from lprewards.utils import tick_to_price

logger = logging.getLogger(__name__)


class SnapshotLoader:
    """Loads every in-range position and every wrapper holder at a block."""

    def __init__(
        self,
        pool_client: SubgraphClient,
        wrapper_client: SubgraphClient,
        page_size: Optional[int] = None,
    ):
        """
        Initialize snapshot loader.

        Args:
            pool_client: Client for the pool positions subgraph
            wrapper_client: Client for the wrapper token subgraph
            page_size: Records per page (defaults to Config.PAGE_SIZE)
        """
        self.pool_client = pool_client
        self.wrapper_client = wrapper_client
        self.page_size = page_size or Config.PAGE_SIZE

    def load_pool_tick(self, pool_address: str, block_number: int) -> int:
        """
        Load the pool's current tick at a block.

        Args:
            pool_address: Pool address
            block_number: Snapshot block

        Returns:
            Current tick

        Raises:
            UpstreamUnavailable: If the pool is missing or the tick is malformed
        """
        raw_tick = self.pool_client.fetch_pool_tick(pool_address, block_number)
        if raw_tick is None:
            raise UpstreamUnavailable(f"Pool {pool_address} has no tick at block {block_number}")
        try:
            tick = int(raw_tick)
        except (TypeError, ValueError):
            raise UpstreamUnavailable(f"Malformed tick {raw_tick!r} at block {block_number}") from None

        logger.info(f"Tick: {tick}")
        logger.debug(f"Tick price: {tick_to_price(tick)}")
        return tick

    def load_positions(self, pool_address: str, block_number: int, tick: int) -> List[Position]:
        """
        Load all in-range positions at a block.

        Args:
            pool_address: Pool address
            block_number: Snapshot block
            tick: Current tick used for the in-range filter

        Returns:
            Positions in id order
        """
        records = self.pool_client.fetch_all_paginated(
            self.pool_client.fetch_positions,
            page_size=self.page_size,
            pool_address=pool_address,
            tick=tick,
            block_number=block_number,
        )
        positions = [Position.from_subgraph(record) for record in records]
        logger.info(f"Got positions: {len(positions)}")
        return positions

    def load_wrapper_supply(self, block_number: int) -> int:
        """
        Load the wrapper's total supply at a block.

        Args:
            block_number: Snapshot block

        Returns:
            Total supply, 0 when the wrapper did not exist yet
        """
        raw_supply = self.wrapper_client.fetch_wrapper_total_supply(block_number)
        if raw_supply is None:
            return 0
        return parse_uint(raw_supply, "totalSupply")

    def load_wrapper_holders(self, block_number: int) -> List[WrapperHolderBalance]:
        """
        Load all wrapper holder balances at a block.

        Args:
            block_number: Snapshot block

        Returns:
            Holder balances in id order
        """
        records = self.wrapper_client.fetch_all_paginated(
            self.wrapper_client.fetch_wrapper_holders,
            page_size=self.page_size,
            block_number=block_number,
        )
        holders = [WrapperHolderBalance.from_subgraph(record) for record in records]
        logger.info(f"Got users: {len(holders)}")
        return holders

    def _load_pool_side(self, pool_address: str, block_number: int) -> Tuple[int, List[Position]]:
        start = time.monotonic()
        tick = self.load_pool_tick(pool_address, block_number)
        positions = self.load_positions(pool_address, block_number, tick)
        logger.debug(f"Pool snapshot loaded in {(time.monotonic() - start) * 1000:.0f} ms")
        return tick, positions

    def _load_wrapper_side(self, block_number: int) -> Tuple[int, List[WrapperHolderBalance]]:
        start = time.monotonic()
        total_supply = self.load_wrapper_supply(block_number)
        if total_supply == 0:
            logger.info(f"Wrapper total supply is zero at block {block_number}")
            return 0, []

        logger.info(f"Wrapper total supply: {total_supply}")
        holders = self.load_wrapper_holders(block_number)
        logger.debug(f"Wrapper snapshot loaded in {(time.monotonic() - start) * 1000:.0f} ms")
        return total_supply, holders

    def load(self, pool_address: str, block_number: int) -> Snapshot:
        """
        Load a complete snapshot at a block.

        The pool and wrapper fetches run concurrently; if either fails the
        whole snapshot is abandoned.

        Args:
            pool_address: Pool address
            block_number: Snapshot block

        Returns:
            Snapshot pinned to block_number

        Raises:
            UpstreamUnavailable: If either side could not be fetched
        """
        with ThreadPoolExecutor(max_workers=2) as executor:
            pool_future = executor.submit(self._load_pool_side, pool_address, block_number)
            wrapper_future = executor.submit(self._load_wrapper_side, block_number)
            tick, positions = pool_future.result()
            total_supply, holders = wrapper_future.result()

        return Snapshot(
            block_number=block_number,
            tick=tick,
            positions=positions,
            holders=holders,
            wrapper_total_supply=total_supply,
        )
