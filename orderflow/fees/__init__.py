"""
Fees — delivery configuration, fee strategies and the fee engine.

    from orderflow import fees as F

    engine = F.FeeEngine(F.default_config(), distances)
    breakdown = engine.compute_fee(4.2, order_amount=Decimal("500"))
"""

from __future__ import annotations

from orderflow.fees._config import (
    FeeMode,
    SurchargeKind,
    AmountType,
    DeliveryTier,
    SurchargeRule,
    Warehouse,
    ProgressiveSchedule,
    DeliveryConfig,
    DEFAULT_TIERS,
    DEFAULT_SURCHARGES,
    DEFAULT_WAREHOUSES,
    TIRUVURU_WAREHOUSE,
    default_config,
    progressive_config,
    config_for_mode,
)
from orderflow.fees._rounding import round_to_increment, round_half_up, format_rupees, to_money
from orderflow.fees._types import SurchargeLine, WarehouseRef, TierQuote, FeeBreakdown
from orderflow.fees._strategies import (
    FeeStrategy,
    TieredFeeStrategy,
    ProgressiveFeeStrategy,
    strategy_for,
)
from orderflow.fees._engine import FeeEngine

__all__ = (
    "FeeMode",
    "SurchargeKind",
    "AmountType",
    "DeliveryTier",
    "SurchargeRule",
    "Warehouse",
    "ProgressiveSchedule",
    "DeliveryConfig",
    "DEFAULT_TIERS",
    "DEFAULT_SURCHARGES",
    "DEFAULT_WAREHOUSES",
    "TIRUVURU_WAREHOUSE",
    "default_config",
    "progressive_config",
    "config_for_mode",
    "round_to_increment",
    "round_half_up",
    "format_rupees",
    "to_money",
    "SurchargeLine",
    "WarehouseRef",
    "TierQuote",
    "FeeBreakdown",
    "FeeStrategy",
    "TieredFeeStrategy",
    "ProgressiveFeeStrategy",
    "strategy_for",
    "FeeEngine",
)
