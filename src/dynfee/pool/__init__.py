"""Pool layer: the external AMM contract and a paper-mode simulation of it."""

from dynfee.pool.base import LiquidityPool, SettlementCallbacks
from dynfee.pool.simulated import SimulatedPool

__all__ = ["LiquidityPool", "SettlementCallbacks", "SimulatedPool"]
