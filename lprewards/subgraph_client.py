"""
Subgraph client for fetching pool positions and wrapper holder balances.
Every query is pinned to a historical block so pages stay consistent.
"""

import logging
from typing import Callable, Optional

import requests

from config import Config
from lprewards.exceptions import UpstreamUnavailable
from lprewards.utils import retry

logger = logging.getLogger(__name__)

POOL_TICK_QUERY = """
query GetPoolTick($blockNumber: Int!, $poolAddress: ID!) {
  pools(block: { number: $blockNumber }, where: { id: $poolAddress }) {
    tick
  }
}
"""

POSITIONS_QUERY = """
query GetPositions(
  $first: Int!
  $blockNumber: Int!
  $tick: BigInt!
  $poolAddress: String!
  $lastId: ID!
) {
  positions(
    first: $first
    block: { number: $blockNumber }
    where: {
      tickLower_lte: $tick
      tickUpper_gt: $tick
      pool: $poolAddress
      id_gt: $lastId
    }
    orderBy: id
    orderDirection: asc
  ) {
    id
    owner
    liquidity
  }
}
"""

WRAPPER_SUPPLY_QUERY = """
query GetWrapperSupply($blockNumber: Int!) {
  pools(block: { number: $blockNumber }) {
    totalSupply
  }
}
"""

WRAPPER_HOLDERS_QUERY = """
query GetWrapperHolders($first: Int!, $blockNumber: Int!, $lastId: ID!) {
  users(
    first: $first
    block: { number: $blockNumber }
    where: { id_gt: $lastId }
    orderBy: id
    orderDirection: asc
  ) {
    id
    balance
  }
}
"""


class SubgraphClient:
    """Client for querying a GraphQL subgraph endpoint."""

    def __init__(self, subgraph_url: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initialize subgraph client.

        Args:
            subgraph_url: Subgraph endpoint URL
            timeout: Request timeout in seconds
        """
        self.url = subgraph_url or Config.SUBGRAPH_URL
        if not self.url:
            raise ValueError("SUBGRAPH_URL not configured")
        self.timeout = timeout or Config.SUBGRAPH_TIMEOUT
        self.session = requests.Session()

    @retry(max_attempts=3, delay=2.0, exceptions=(UpstreamUnavailable,))
    def query(self, query: str, variables: Optional[dict] = None) -> dict:
        """
        Execute a GraphQL query.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            Query response data

        Raises:
            UpstreamUnavailable: If the request fails or the response is malformed
        """
        try:
            response = self.session.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Subgraph query failed: {e}")
            raise UpstreamUnavailable(f"Subgraph request to {self.url} failed: {e}") from e

        if not isinstance(result, dict):
            raise UpstreamUnavailable(f"Unexpected subgraph response: {result!r}")

        if result.get("errors"):
            logger.error(f"Subgraph returned errors: {result['errors']}")
            raise UpstreamUnavailable(f"GraphQL errors: {result['errors']}")

        data = result.get("data")
        if not isinstance(data, dict):
            raise UpstreamUnavailable(f"Subgraph response has no data: {result!r}")
        return data

    def _entity_list(self, data: dict, key: str) -> list[dict]:
        entities = data.get(key)
        if not isinstance(entities, list):
            raise UpstreamUnavailable(f"Subgraph response missing '{key}' list")
        for entity in entities:
            if not isinstance(entity, dict):
                raise UpstreamUnavailable(f"Malformed '{key}' entry: {entity!r}")
        return entities

    def fetch_pool_tick(self, pool_address: str, block_number: int) -> Optional[str]:
        """
        Fetch the pool's current tick at a block.

        Args:
            pool_address: Pool address
            block_number: Block to pin the query to

        Returns:
            Tick as returned by the subgraph, or None if the pool is unknown
        """
        variables = {
            "poolAddress": pool_address.lower(),
            "blockNumber": block_number,
        }
        pools = self._entity_list(self.query(POOL_TICK_QUERY, variables), "pools")
        if not pools:
            return None
        return pools[0].get("tick")

    def fetch_positions(
        self,
        pool_address: str,
        tick: int,
        block_number: int,
        first: int = 1000,
        last_id: str = "",
    ) -> list[dict]:
        """
        Fetch one page of in-range positions.

        Args:
            pool_address: Pool address
            tick: Current pool tick; positions with tickLower <= tick < tickUpper match
            block_number: Block to pin the query to
            first: Page size
            last_id: Exclusive lower bound on position id

        Returns:
            List of position dictionaries ordered by id
        """
        variables = {
            "first": first,
            "poolAddress": pool_address.lower(),
            "blockNumber": block_number,
            "tick": str(tick),
            "lastId": last_id,
        }
        return self._entity_list(self.query(POSITIONS_QUERY, variables), "positions")

    def fetch_wrapper_total_supply(self, block_number: int) -> Optional[str]:
        """
        Fetch the wrapper's total supply at a block.

        Args:
            block_number: Block to pin the query to

        Returns:
            Total supply as returned by the subgraph, or None if no wrapper entity exists yet
        """
        pools = self._entity_list(
            self.query(WRAPPER_SUPPLY_QUERY, {"blockNumber": block_number}), "pools"
        )
        if not pools:
            return None
        return pools[0].get("totalSupply")

    def fetch_wrapper_holders(
        self,
        block_number: int,
        first: int = 1000,
        last_id: str = "",
    ) -> list[dict]:
        """
        Fetch one page of wrapper holder balances.

        Args:
            block_number: Block to pin the query to
            first: Page size
            last_id: Exclusive lower bound on holder id

        Returns:
            List of holder dictionaries ordered by id
        """
        variables = {
            "first": first,
            "blockNumber": block_number,
            "lastId": last_id,
        }
        return self._entity_list(self.query(WRAPPER_HOLDERS_QUERY, variables), "users")

    def fetch_all_paginated(
        self,
        fetch_func: Callable[..., list[dict]],
        page_size: int = 1000,
        **kwargs,
    ) -> list[dict]:
        """
        Fetch all results by walking id_gt cursors.

        Args:
            fetch_func: Function to call for each page; must accept first and last_id
            page_size: Results per page
            **kwargs: Arguments to pass to fetch_func

        Returns:
            All results combined, in id order
        """
        all_results = []
        last_id = ""
        pages = 0

        while True:
            results = fetch_func(first=page_size, last_id=last_id, **kwargs)
            pages += 1
            all_results.extend(results)

            # Stop if we got fewer results than requested (last page)
            if len(results) < page_size:
                break

            last = results[-1]
            next_id = last.get("id") if isinstance(last, dict) else None
            if next_id is None or str(next_id) == last_id:
                raise UpstreamUnavailable(
                    f"Pagination cursor did not advance past {last_id!r}"
                )
            last_id = str(next_id)

            logger.info(f"Fetched {len(all_results)} results so far...")

        logger.debug(f"Paginated fetch finished: {len(all_results)} results in {pages} pages")
        return all_results
