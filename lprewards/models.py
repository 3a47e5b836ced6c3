"""
Data model for snapshots, distributions and allocations.

All monetary and share quantities are Python ints; addresses are
normalized to lowercase before they are used as keys.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from lprewards.exceptions import UpstreamUnavailable


def normalize_address(address: str) -> str:
    """
    Normalize an address for use as a map key.

    Args:
        address: Hex address in any case

    Returns:
        Lowercase address with surrounding whitespace removed
    """
    if not isinstance(address, str) or not address.strip():
        raise ValueError(f"Invalid address: {address!r}")
    return address.strip().lower()


def parse_uint(value, field_name: str) -> int:
    """Parse a subgraph BigInt (decimal string or int) into a non-negative int."""
    if isinstance(value, bool):
        raise UpstreamUnavailable(f"Malformed {field_name}: {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise UpstreamUnavailable(f"Malformed {field_name}: {value!r}") from None
    if parsed < 0:
        raise UpstreamUnavailable(f"Negative {field_name}: {value!r}")
    return parsed


@dataclass(frozen=True)
class Position:
    """One liquidity position in the pool at a snapshot."""
    id: str
    owner: str
    liquidity: int

    @classmethod
    def from_subgraph(cls, record: dict) -> "Position":
        try:
            return cls(
                id=str(record["id"]),
                owner=normalize_address(record["owner"]),
                liquidity=parse_uint(record["liquidity"], "liquidity"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Malformed position record {record!r}: {e}") from e


@dataclass(frozen=True)
class WrapperHolderBalance:
    """One holder's wrapper token balance at a snapshot."""
    holder: str
    balance: int

    @classmethod
    def from_subgraph(cls, record: dict) -> "WrapperHolderBalance":
        try:
            return cls(
                holder=normalize_address(record["id"]),
                balance=parse_uint(record["balance"], "balance"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Malformed holder record {record!r}: {e}") from e


@dataclass(frozen=True)
class Snapshot:
    """Positions and wrapper holders pinned to one block."""
    block_number: int
    tick: int
    positions: List[Position]
    holders: List[WrapperHolderBalance]
    wrapper_total_supply: int


@dataclass
class LiquidityDistribution:
    """In-range liquidity per owner; total is the sum of by_owner."""
    by_owner: Dict[str, int] = field(default_factory=dict)
    total: int = 0


# holder -> share of wrapper supply, fixed-point scaled
HolderShareTable = Dict[str, int]


@dataclass
class RewardAllocation:
    """
    Rewards credited for one interval.

    unclaimed holds the part of the budget that was routed to a node with
    nobody to credit (a wrapper without holders, or an empty pool).
    """
    budget: int
    rewards: Dict[str, int] = field(default_factory=dict)
    unclaimed: int = 0

    @property
    def credited(self) -> int:
        return sum(self.rewards.values())

    @property
    def truncation_loss(self) -> int:
        return self.budget - self.credited - self.unclaimed
