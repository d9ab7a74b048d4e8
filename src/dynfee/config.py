"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynfee.uint import UINT24_MAX


class FeeSettings(BaseSettings):
    """Dynamic fee parameters, fixed for the lifetime of an engine instance.

    Fees are in the pool's native units (hundredths of a basis point,
    so 500 = 0.05% and 10000 = 1.00%). Weights are a percentage blend.
    The three scales divide raw volume, liquidity and volatility down to
    coarse integer factors before blending.
    """

    model_config = SettingsConfigDict(env_prefix="FEE_", frozen=True)

    min_fee: int = 500  # 0.05%
    max_fee: int = 10000  # 1.00%
    volume_weight: int = 40
    liquidity_weight: int = 30
    volatility_weight: int = 30
    window_seconds: int = 86400  # trailing 24h

    volume_scale: int = 10**18
    liquidity_scale: int = 10**18
    volatility_scale: int = 10**18

    @model_validator(mode="after")
    def _check_bounds(self) -> Self:
        total = self.volume_weight + self.liquidity_weight + self.volatility_weight
        if total != 100:
            raise ValueError(f"fee weights must sum to 100, got {total}")
        if min(self.volume_weight, self.liquidity_weight, self.volatility_weight) < 0:
            raise ValueError("fee weights must be non-negative")
        if not 0 <= self.min_fee <= self.max_fee <= UINT24_MAX:
            raise ValueError(
                f"fee bounds must satisfy 0 <= min_fee <= max_fee <= {UINT24_MAX}"
            )
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if min(self.volume_scale, self.liquidity_scale, self.volatility_scale) <= 0:
            raise ValueError("normalization scales must be positive")
        return self


class PoolSettings(BaseSettings):
    """Simulated pool used in paper mode.

    The engine address holds the seed balances the coordinator pays
    settlements from.
    """

    model_config = SettingsConfigDict(env_prefix="POOL_")

    address: str = "pool:paper"
    engine_address: str = "engine:paper"
    token0: str = "TKN0"
    token1: str = "TKN1"
    sqrt_price: Decimal = Decimal("1")
    initial_liquidity: int = 2 * 10**18
    history_seconds: int = 86400  # pre-seeded observation lookback
    seed_balance: int = 10**24  # per token, held by the engine


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    fees: FeeSettings = FeeSettings()
    pool: PoolSettings = PoolSettings()
    api: ApiSettings = ApiSettings()
