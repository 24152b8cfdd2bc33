"""
Delivery configuration — tiers, surcharges, warehouses, thresholds.

One immutable, versioned object injected into the fee engine. Tables are
never mutated in place; ``with_*`` returns a validated copy.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, time, timedelta
from decimal import Decimal
from enum import Enum

from orderflow._types import Coordinates, CountryBounds, INDIA
from orderflow.districts import DistrictOverrides, DEFAULT_OVERRIDES, DEFAULT_SERVICEABLE_STATES
from orderflow.errors import ConfigurationError

# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class FeeMode(Enum):
    """
    Which fee model a deployment uses.

    TIERED: multi-warehouse distance bands with per-km charge.
    PROGRESSIVE: single warehouse, flat near fee, interpolated band, per-km beyond.
    """

    TIERED = "tiered"
    PROGRESSIVE = "progressive"


class SurchargeKind(Enum):
    WEIGHT = "weight"
    EXPRESS = "express"
    PEAK_HOUR = "peak_hour"
    WEEKDAY = "weekday"


class AmountType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DeliveryTier:
    """Distance band ``[min_km, max_km)``; ``max_km=None`` is unbounded."""

    min_km: float
    max_km: float | None
    base_fee: Decimal
    per_km_fee: Decimal
    estimated_time: str

    def contains(self, distance_km: float) -> bool:
        return distance_km >= self.min_km and (self.max_km is None or distance_km < self.max_km)


@dataclass(frozen=True, slots=True)
class SurchargeRule:
    """
    Independently toggleable extra charge.

    ``weekdays`` uses ``datetime.weekday()`` numbering (Monday=0, Sunday=6).
    Time windows include both ends; a start later than the end wraps past
    midnight.
    """

    id: str
    name: str
    kind: SurchargeKind
    amount_type: AmountType
    value: Decimal
    enabled: bool = True
    min_weight_kg: Decimal | None = None
    window_start: time | None = None
    window_end: time | None = None
    weekdays: frozenset[int] = frozenset()

    def matches(self, *, weight_kg: Decimal, is_express: bool, at: datetime) -> bool:
        if not self.enabled:
            return False
        match self.kind:
            case SurchargeKind.WEIGHT:
                return self.min_weight_kg is not None and weight_kg >= self.min_weight_kg
            case SurchargeKind.EXPRESS:
                return is_express
            case SurchargeKind.PEAK_HOUR:
                if self.window_start is None or self.window_end is None:
                    return False
                now = at.time().replace(second=0, microsecond=0)
                if self.window_start <= self.window_end:
                    return self.window_start <= now <= self.window_end
                # Window wraps past midnight, e.g. 22:00-02:00
                return now >= self.window_start or now <= self.window_end
            case SurchargeKind.WEEKDAY:
                return at.weekday() in self.weekdays

    def with_enabled(self, enabled: bool = True) -> SurchargeRule:
        return replace(self, enabled=enabled)


@dataclass(frozen=True, slots=True)
class Warehouse:
    """Fixed shipping origin. ``max_delivery_radius_km=None`` means unlimited."""

    id: str
    name: str
    city: str
    location: Coordinates
    max_delivery_radius_km: float | None
    priority: int
    is_active: bool = True
    address: str = ""
    opens_at: time = time(9, 0)
    closes_at: time = time(21, 0)

    def is_open(self, at: time) -> bool:
        return self.opens_at <= at <= self.closes_at

    def delivers_to(self, distance_km: float) -> bool:
        return self.max_delivery_radius_km is None or distance_km <= self.max_delivery_radius_km


@dataclass(frozen=True, slots=True)
class ProgressiveSchedule:
    """
    Single-warehouse fee curve.

    Up to ``near_km``: ``near_fee``. Up to ``band_end_km``: linear from
    ``band_start_fee`` to ``band_end_fee``. Beyond: ``band_end_fee`` plus
    ``per_extra_km`` per km past ``band_end_km``.
    """

    near_km: float = 2.0
    near_fee: Decimal = Decimal("25")
    band_end_km: float = 6.0
    band_start_fee: Decimal = Decimal("35")
    band_end_fee: Decimal = Decimal("60")
    per_extra_km: Decimal = Decimal("8")


# ═══════════════════════════════════════════════════════════════════════════════
# DeliveryConfig
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DeliveryConfig:
    """
    Immutable delivery configuration.

    Validated on construction; an inconsistent table raises
    ConfigurationError rather than producing a half-usable config.

    Example:
        config = (
            default_config()
            .with_free_delivery_threshold(Decimal("1500"))
            .with_surcharge_enabled("WEEKEND_SURCHARGE")
        )
    """

    version: str
    tiers: tuple[DeliveryTier, ...]
    surcharges: tuple[SurchargeRule, ...]
    warehouses: tuple[Warehouse, ...]
    free_delivery_threshold: Decimal = Decimal("2000")
    minimum_fee: Decimal = Decimal("40")
    maximum_fee: Decimal | None = Decimal("1000")
    rounding_increment: Decimal = Decimal("10")
    included_km: float = 2.0
    cache_ttl: timedelta = timedelta(minutes=60)
    standard_delivery_days: int = 3
    express_delivery_days: int = 1
    fee_mode: FeeMode = FeeMode.TIERED
    progressive: ProgressiveSchedule = field(default_factory=ProgressiveSchedule)
    serviceable_states: frozenset[str] = DEFAULT_SERVICEABLE_STATES
    district_overrides: DistrictOverrides = field(default_factory=lambda: DEFAULT_OVERRIDES)
    bounds: CountryBounds = INDIA
    timezone: str = "Asia/Kolkata"

    def __post_init__(self) -> None:
        _validate_tiers(self.tiers)
        _validate_warehouses(self.warehouses)
        _validate_surcharges(self.surcharges)
        if self.minimum_fee < 0:
            raise ConfigurationError("minimum_fee must be non-negative")
        if self.maximum_fee is not None and self.maximum_fee < self.minimum_fee:
            raise ConfigurationError("maximum_fee must be >= minimum_fee")
        if self.rounding_increment <= 0:
            raise ConfigurationError("rounding_increment must be positive")
        if self.free_delivery_threshold < 0:
            raise ConfigurationError("free_delivery_threshold must be non-negative")
        if self.included_km < 0:
            raise ConfigurationError("included_km must be non-negative")

    # ─── Lookups ─────────────────────────────────────────────────────────────

    def tier_for(self, distance_km: float) -> DeliveryTier:
        for tier in self.tiers:
            if tier.contains(distance_km):
                return tier
        # Negative distances are the only way to get here
        raise ValueError(f"no delivery tier for {distance_km} km")

    def active_warehouses(self) -> tuple[Warehouse, ...]:
        return tuple(w for w in self.warehouses if w.is_active)

    def warehouse(self, warehouse_id: str) -> Warehouse | None:
        return next((w for w in self.warehouses if w.id == warehouse_id), None)

    def surcharge(self, rule_id: str) -> SurchargeRule | None:
        return next((r for r in self.surcharges if r.id == rule_id), None)

    # ─── Fluent copies ───────────────────────────────────────────────────────

    def with_version(self, version: str) -> DeliveryConfig:
        return replace(self, version=version)

    def with_fee_mode(self, mode: FeeMode) -> DeliveryConfig:
        return replace(self, fee_mode=mode)

    def with_tiers(self, tiers: Iterable[DeliveryTier]) -> DeliveryConfig:
        return replace(self, tiers=tuple(tiers))

    def with_warehouses(self, warehouses: Iterable[Warehouse]) -> DeliveryConfig:
        return replace(self, warehouses=tuple(warehouses))

    def with_surcharges(self, rules: Iterable[SurchargeRule]) -> DeliveryConfig:
        return replace(self, surcharges=tuple(rules))

    def with_surcharge_enabled(self, rule_id: str, enabled: bool = True) -> DeliveryConfig:
        if self.surcharge(rule_id) is None:
            raise ConfigurationError(f"unknown surcharge rule {rule_id!r}")
        return replace(
            self,
            surcharges=tuple(
                r.with_enabled(enabled) if r.id == rule_id else r for r in self.surcharges
            ),
        )

    def with_free_delivery_threshold(self, amount: Decimal) -> DeliveryConfig:
        return replace(self, free_delivery_threshold=amount)

    def with_fee_limits(
        self,
        *,
        minimum: Decimal | None = None,
        maximum: Decimal | None = None,
    ) -> DeliveryConfig:
        return replace(
            self,
            minimum_fee=self.minimum_fee if minimum is None else minimum,
            maximum_fee=maximum,
        )

    def with_rounding_increment(self, increment: Decimal) -> DeliveryConfig:
        return replace(self, rounding_increment=increment)

    def with_cache_ttl(self, ttl: timedelta) -> DeliveryConfig:
        return replace(self, cache_ttl=ttl)

    def with_serviceable_states(self, states: Iterable[str]) -> DeliveryConfig:
        return replace(self, serviceable_states=frozenset(states))

    def with_district_overrides(self, overrides: Mapping[str, Mapping[str, str]]) -> DeliveryConfig:
        return replace(self, district_overrides=overrides)


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def _validate_tiers(tiers: tuple[DeliveryTier, ...]) -> None:
    if not tiers:
        raise ConfigurationError("at least one delivery tier is required")
    if tiers[0].min_km != 0:
        raise ConfigurationError("first delivery tier must start at 0 km")
    for prev, nxt in zip(tiers, tiers[1:]):
        if prev.max_km is None:
            raise ConfigurationError("only the last delivery tier may be unbounded")
        if nxt.min_km != prev.max_km:
            raise ConfigurationError(
                f"delivery tiers must be contiguous: {prev.max_km} km then {nxt.min_km} km"
            )
    for tier in tiers:
        if tier.max_km is not None and tier.max_km <= tier.min_km:
            raise ConfigurationError(f"empty delivery tier at {tier.min_km} km")
        if tier.base_fee < 0 or tier.per_km_fee < 0:
            raise ConfigurationError("tier fees must be non-negative")
    if tiers[-1].max_km is not None:
        raise ConfigurationError("last delivery tier must be unbounded")


def _validate_warehouses(warehouses: tuple[Warehouse, ...]) -> None:
    ids = [w.id for w in warehouses]
    if len(ids) != len(set(ids)):
        raise ConfigurationError("warehouse ids must be unique")
    if not any(w.is_active for w in warehouses):
        raise ConfigurationError("at least one active warehouse is required")


def _validate_surcharges(rules: tuple[SurchargeRule, ...]) -> None:
    ids = [r.id for r in rules]
    if len(ids) != len(set(ids)):
        raise ConfigurationError("surcharge rule ids must be unique")
    for rule in rules:
        if rule.value < 0:
            raise ConfigurationError(f"{rule.id}: surcharge must be non-negative")
        if rule.kind is SurchargeKind.WEIGHT and rule.min_weight_kg is None:
            raise ConfigurationError(f"{rule.id}: weight rule needs min_weight_kg")
        if rule.kind is SurchargeKind.PEAK_HOUR and (rule.window_start is None or rule.window_end is None):
            raise ConfigurationError(f"{rule.id}: peak-hour rule needs a time window")
        if rule.kind is SurchargeKind.WEEKDAY and not rule.weekdays:
            raise ConfigurationError(f"{rule.id}: weekday rule needs weekdays")


# ═══════════════════════════════════════════════════════════════════════════════
# Defaults
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_TIERS: tuple[DeliveryTier, ...] = (
    DeliveryTier(0, 5, Decimal("40"), Decimal("5"), "30-45 mins"),
    DeliveryTier(5, 10, Decimal("60"), Decimal("8"), "45-60 mins"),
    DeliveryTier(10, 20, Decimal("100"), Decimal("10"), "1-2 hours"),
    DeliveryTier(20, 50, Decimal("150"), Decimal("12"), "2-4 hours"),
    DeliveryTier(50, 100, Decimal("200"), Decimal("15"), "4-6 hours"),
    DeliveryTier(100, None, Decimal("300"), Decimal("20"), "1-2 days"),
)

DEFAULT_SURCHARGES: tuple[SurchargeRule, ...] = (
    SurchargeRule(
        id="WEIGHT_HEAVY",
        name="Heavy Item Surcharge",
        kind=SurchargeKind.WEIGHT,
        amount_type=AmountType.FIXED,
        value=Decimal("50"),
        min_weight_kg=Decimal("10"),
    ),
    SurchargeRule(
        id="EXPRESS_DELIVERY",
        name="Express Delivery",
        kind=SurchargeKind.EXPRESS,
        amount_type=AmountType.FIXED,
        value=Decimal("50"),
    ),
    SurchargeRule(
        id="PEAK_HOUR",
        name="Peak Hour Delivery",
        kind=SurchargeKind.PEAK_HOUR,
        amount_type=AmountType.FIXED,
        value=Decimal("30"),
        window_start=time(18, 0),
        window_end=time(21, 0),
    ),
    SurchargeRule(
        id="WEEKEND_SURCHARGE",
        name="Weekend Delivery",
        kind=SurchargeKind.WEEKDAY,
        amount_type=AmountType.PERCENTAGE,
        value=Decimal("10"),
        enabled=False,
        weekdays=frozenset({5, 6}),
    ),
)

DEFAULT_WAREHOUSES: tuple[Warehouse, ...] = (
    Warehouse(
        id="WH001",
        name="Tiruvuru Main Warehouse",
        city="Tiruvuru",
        address="Admin Office, Tiruvuru",
        location=Coordinates(16.5, 80.5),
        max_delivery_radius_km=500,
        priority=1,
        opens_at=time(9, 0),
        closes_at=time(21, 0),
    ),
    Warehouse(
        id="WH002",
        name="Hyderabad Distribution Center",
        city="Hyderabad",
        address="Gachibowli, Hyderabad",
        location=Coordinates(17.4065, 78.4772),
        max_delivery_radius_km=300,
        priority=2,
        opens_at=time(8, 0),
        closes_at=time(22, 0),
    ),
)

TIRUVURU_WAREHOUSE = Warehouse(
    id="TIRUVURU",
    name="Admin Warehouse",
    city="Tiruvuru",
    address="Boya Bazar, Tiruvuru, Krishna District, Andhra Pradesh - 521235",
    location=Coordinates(17.0956, 80.6089),
    max_delivery_radius_km=None,
    priority=1,
)


def default_config() -> DeliveryConfig:
    """Multi-warehouse tiered pricing as run in production."""
    return DeliveryConfig(
        version="tiered-2024.1",
        tiers=DEFAULT_TIERS,
        surcharges=DEFAULT_SURCHARGES,
        warehouses=DEFAULT_WAREHOUSES,
    )


def progressive_config() -> DeliveryConfig:
    """Single-warehouse progressive pricing (whole-rupee rounding, no surcharges, no floor)."""
    return DeliveryConfig(
        version="progressive-2024.1",
        tiers=DEFAULT_TIERS,
        surcharges=(),
        warehouses=(TIRUVURU_WAREHOUSE,),
        minimum_fee=Decimal("0"),
        maximum_fee=None,
        rounding_increment=Decimal("1"),
        fee_mode=FeeMode.PROGRESSIVE,
    )


def config_for_mode(mode: FeeMode) -> DeliveryConfig:
    return progressive_config() if mode is FeeMode.PROGRESSIVE else default_config()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

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
)
