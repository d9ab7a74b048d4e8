"""Settlement layer: the two-phase swap/mint coordinator."""

from dynfee.settlement.coordinator import SettlementCoordinator

__all__ = ["SettlementCoordinator"]
