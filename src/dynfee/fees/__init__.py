"""Fee derivation: volatility probe and the weighted, clamped fee model."""

from dynfee.fees.model import DynamicFeeModel, blend_fee, normalize
from dynfee.fees.volatility import VolatilityProbe

__all__ = ["DynamicFeeModel", "VolatilityProbe", "blend_fee", "normalize"]
