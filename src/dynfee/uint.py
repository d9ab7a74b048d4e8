"""Fixed-width unsigned integer helpers.

Fees, liquidity and sums are plain Python ints, checked against the
widths the pool uses natively instead of silently wrapping.
"""

from dynfee.exceptions import ArithmeticOverflowError

UINT24_MAX = 2**24 - 1
UINT128_MAX = 2**128 - 1
UINT256_MAX = 2**256 - 1


def checked_uint256(value: int, what: str = "value") -> int:
    """Return value unchanged if it fits in uint256.

    Raises:
        ArithmeticOverflowError: If value is negative or above UINT256_MAX.
    """
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflowError(f"{what} out of uint256 range: {value}")
    return value


def narrow_uint24(value: int) -> int:
    """Narrow value to a uint24 fee, failing rather than wrapping."""
    if value < 0 or value > UINT24_MAX:
        raise ArithmeticOverflowError(f"fee out of uint24 range: {value}")
    return value
