"""
FeeEngine — distance, amount, weight and time → delivery fee.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import structlog

from orderflow._types import Coordinates
from orderflow.distance import DistanceEngine, DistanceMethod, haversine_km
from orderflow.errors import ConfigurationError
from orderflow.fees._config import AmountType, DeliveryConfig, Warehouse
from orderflow.fees._rounding import CENT, format_rupees, round_half_up, round_to_increment, to_money
from orderflow.fees._strategies import FeeStrategy, strategy_for
from orderflow.fees._types import FeeBreakdown, SurchargeLine, WarehouseRef, ZERO

log = structlog.get_logger(__name__)


def _ref(warehouse: Warehouse) -> WarehouseRef:
    return WarehouseRef(warehouse.id, warehouse.name, warehouse.city)


def _breakdown_text(
    base_fee: Decimal,
    distance_fee: Decimal,
    surcharges: tuple[SurchargeLine, ...],
    discount: Decimal,
    total: Decimal,
    is_free: bool,
) -> str:
    lines = [f"Base Fee: {format_rupees(base_fee)}"]
    if distance_fee > 0:
        lines.append(f"Distance Charge: {format_rupees(distance_fee)}")
    lines.extend(f"{s.name}: {format_rupees(s.amount)}" for s in surcharges)
    if is_free:
        lines.append(f"Free Delivery Discount: -{format_rupees(discount)}")
        lines.append("Total: ₹0 (FREE)")
    else:
        lines.append(f"Total: {format_rupees(total)}")
    return " | ".join(lines)


class FeeEngine:
    """
    Delivery fee computation over an immutable DeliveryConfig.

    The fee model (tiered or progressive) comes from ``config.fee_mode``
    unless a strategy is passed explicitly.

    Example:
        engine = FeeEngine(default_config(), DistanceEngine(deterministic=True))
        fee = await engine.quote(Coordinates(17.4, 78.48), order_amount=Decimal("500"))
        fee.total, fee.breakdown
    """

    def __init__(
        self,
        config: DeliveryConfig,
        distances: DistanceEngine | None = None,
        strategy: FeeStrategy | None = None,
    ) -> None:
        self._config = config
        self._distances = distances or DistanceEngine(ttl=config.cache_ttl, deterministic=True)
        self._strategy = strategy or strategy_for(config.fee_mode)
        self._tz = ZoneInfo(config.timezone)

    @property
    def config(self) -> DeliveryConfig:
        return self._config

    @property
    def distances(self) -> DistanceEngine:
        return self._distances

    @property
    def strategy(self) -> FeeStrategy:
        return self._strategy

    # ─── Warehouse selection ─────────────────────────────────────────────────

    def select_warehouse(self, destination: Coordinates) -> Warehouse:
        """Nearest active warehouse by straight line; lower priority wins ties."""
        active = self._config.active_warehouses()
        if not active:
            raise ConfigurationError("no active warehouse")
        return min(
            active,
            key=lambda w: (haversine_km(w.location, destination), w.priority),
        )

    def _primary_warehouse(self) -> Warehouse:
        return min(self._config.active_warehouses(), key=lambda w: w.priority)

    # ─── Pricing ─────────────────────────────────────────────────────────────

    def _local_time(self, now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(self._tz)
        if now.tzinfo is None:
            return now
        return now.astimezone(self._tz)

    def undeliverable(
        self,
        distance_km: float,
        warehouse: Warehouse,
        *,
        method: DistanceMethod = DistanceMethod.HAVERSINE,
        cached: bool = False,
    ) -> FeeBreakdown:
        return FeeBreakdown(
            warehouse=_ref(warehouse),
            distance_km=distance_km,
            distance_method=method.value,
            distance_cached=cached,
            base_fee=ZERO,
            distance_fee=ZERO,
            surcharges=(),
            subtotal=ZERO,
            discount=ZERO,
            total=ZERO,
            is_free_delivery=False,
            is_deliverable=False,
            estimated_time="Not available",
            estimated_days=0,
            strategy=self._strategy.name,
            config_version=self._config.version,
            breakdown=(
                f"Delivery not available. Distance {distance_km} km "
                "exceeds maximum delivery radius."
            ),
        )

    def compute_fee(
        self,
        distance_km: float,
        order_amount: Decimal | int | float | str,
        order_weight: Decimal | int | float | str = 0,
        is_express: bool = False,
        now: datetime | None = None,
        *,
        warehouse: Warehouse | None = None,
        method: DistanceMethod = DistanceMethod.HAVERSINE,
        cached: bool = False,
    ) -> FeeBreakdown:
        """
        Price a known distance.

        Order of operations: radius check, strategy base/distance fee,
        surcharges, subtotal, free-delivery discount or floor/ceiling, then
        half-up rounding to the configured increment.
        """
        if distance_km < 0:
            raise ValueError("distance_km must be non-negative")

        config = self._config
        origin = warehouse or self._primary_warehouse()
        if not origin.delivers_to(distance_km):
            log.info("delivery_out_of_range", warehouse=origin.id, distance_km=distance_km)
            return self.undeliverable(distance_km, origin, method=method, cached=cached)

        amount = to_money(order_amount)
        weight = to_money(order_weight)
        at = self._local_time(now)

        quote = self._strategy.price(distance_km, config)
        charge_base = quote.base_fee + quote.distance_fee

        surcharges = tuple(
            SurchargeLine(
                id=rule.id,
                name=rule.name,
                kind=rule.kind.value,
                amount=(
                    rule.value
                    if rule.amount_type is AmountType.FIXED
                    else round_half_up(charge_base * rule.value / 100, CENT)
                ),
            )
            for rule in config.surcharges
            if rule.matches(weight_kg=weight, is_express=is_express, at=at)
        )

        subtotal = charge_base + sum((s.amount for s in surcharges), ZERO)
        is_free = amount >= config.free_delivery_threshold

        if is_free:
            discount = subtotal
            total = ZERO
        else:
            discount = ZERO
            total = max(subtotal, config.minimum_fee)
            if config.maximum_fee is not None:
                total = min(total, config.maximum_fee)
            total = round_to_increment(total, config.rounding_increment)

        return FeeBreakdown(
            warehouse=_ref(origin),
            distance_km=distance_km,
            distance_method=method.value,
            distance_cached=cached,
            base_fee=quote.base_fee,
            distance_fee=quote.distance_fee,
            surcharges=surcharges,
            subtotal=subtotal,
            discount=discount,
            total=total,
            is_free_delivery=is_free,
            is_deliverable=True,
            estimated_time=quote.estimated_time,
            estimated_days=config.express_delivery_days if is_express else config.standard_delivery_days,
            strategy=self._strategy.name,
            config_version=config.version,
            breakdown=_breakdown_text(
                quote.base_fee, quote.distance_fee, surcharges, discount, total, is_free,
            ),
        )

    async def quote(
        self,
        destination: Coordinates,
        order_amount: Decimal | int | float | str,
        order_weight: Decimal | int | float | str = 0,
        is_express: bool = False,
        now: datetime | None = None,
    ) -> FeeBreakdown:
        """Select the warehouse, measure the distance, then price it."""
        warehouse = self.select_warehouse(destination)
        distance = await self._distances.distance(warehouse, destination)
        fee = self.compute_fee(
            distance.km,
            order_amount,
            order_weight,
            is_express,
            now,
            warehouse=warehouse,
            method=distance.method,
            cached=distance.cached,
        )
        log.info(
            "delivery_fee_computed",
            warehouse=warehouse.id,
            distance_km=distance.km,
            method=distance.method.value,
            cached=distance.cached,
            total=str(fee.total),
            deliverable=fee.is_deliverable,
        )
        return fee


__all__ = ("FeeEngine",)
