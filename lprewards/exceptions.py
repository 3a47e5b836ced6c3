"""
Exceptions raised by the reward distributor.
"""


class LPRewardsError(Exception):
    """Base class for reward distributor errors."""


class UpstreamUnavailable(LPRewardsError):
    """A subgraph or RPC call failed or returned malformed data."""


class DuplicateMerge(LPRewardsError):
    """An interval's allocation was merged into a running total twice."""

    def __init__(self, interval_id):
        super().__init__(f"Interval {interval_id} already merged into this running total")
        self.interval_id = interval_id


class ConfigurationError(LPRewardsError):
    """Settings are missing or invalid."""
