"""
Shared fixtures: in-memory subgraph fakes and snapshot builders.
"""

import pytest

from lprewards.models import Position, Snapshot, WrapperHolderBalance
from lprewards.subgraph_client import SubgraphClient

POOL = "0x5cef3aed38eb937f3dc0864307ac6c9a9694abfa"
WRAPPER = "0x2a2cd905141f1cdf3620db6a1ed0abc4f7e8635c"
OWNER_A = "0x000000000000000000000000000000000000000a"
OWNER_B = "0x000000000000000000000000000000000000000b"
HOLDER_1 = "0x0000000000000000000000000000000000000101"
HOLDER_2 = "0x0000000000000000000000000000000000000102"


class FakeSubgraph:
    """
    Answers POSITIONS / pools / users queries from in-memory records,
    honouring first and id_gt the way the subgraph does.
    """

    def __init__(self, positions=None, holders=None, tick="10", total_supply="0"):
        self.positions = sorted(positions or [], key=lambda r: r["id"])
        self.holders = sorted(holders or [], key=lambda r: r["id"])
        self.tick = tick
        self.total_supply = total_supply
        self.calls = []

    def _page(self, records, variables):
        last_id = variables.get("lastId", "")
        matching = [r for r in records if r["id"] > last_id]
        return matching[: variables["first"]]

    def __call__(self, query, variables=None):
        variables = variables or {}
        self.calls.append((query, variables))
        if "GetPoolTick" in query:
            return {"pools": [] if self.tick is None else [{"tick": self.tick}]}
        if "GetPositions" in query:
            return {"positions": self._page(self.positions, variables)}
        if "GetWrapperSupply" in query:
            return {"pools": [] if self.total_supply is None else [{"totalSupply": self.total_supply}]}
        if "GetWrapperHolders" in query:
            return {"users": self._page(self.holders, variables)}
        raise AssertionError(f"Unexpected query: {query}")


def make_client(fake: FakeSubgraph) -> SubgraphClient:
    client = SubgraphClient("http://subgraph.test")
    client.query = fake
    return client


def position_records(count: int, owner: str = OWNER_A, liquidity: str = "1"):
    return [{"id": f"{i:06d}", "owner": owner, "liquidity": liquidity} for i in range(count)]


@pytest.fixture
def scenario_snapshot():
    """A=100, B=100, W=100; wrapper supply 50 split H1=30, H2=20."""
    return Snapshot(
        block_number=100,
        tick=0,
        positions=[
            Position("1", OWNER_A, 100),
            Position("2", OWNER_B, 100),
            Position("3", WRAPPER, 100),
        ],
        holders=[
            WrapperHolderBalance(HOLDER_1, 30),
            WrapperHolderBalance(HOLDER_2, 20),
        ],
        wrapper_total_supply=50,
    )
