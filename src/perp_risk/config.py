"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Decimal arithmetic and margin formula defaults."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    decimal_precision: int = 34  # significant digits for every calculation
    default_imr_factor_power: Decimal = Decimal("1")  # linear notional scaling
    margin_ratio_dp: int | None = None  # round total margin ratio when set


class SolverSettings(BaseSettings):
    """Bounds for the max-quantity and liquidation price solvers.

    All fields configurable via SOLVER_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SOLVER_")

    max_iterations: int = 200
    default_qty_dp: int = 4  # decimal places for max order quantity
    price_tolerance: Decimal = Decimal("0.00000001")
    max_bracket_expansions: int = 64  # doublings when searching for a price bracket


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    engine: EngineSettings = EngineSettings()
    solver: SolverSettings = SolverSettings()
