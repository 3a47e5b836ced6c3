"""
Liquidity-weighted reward distribution for a concentrated-liquidity pool
and the holders of a wrapper token that owns part of its liquidity.
"""

__version__ = "0.1.0"
