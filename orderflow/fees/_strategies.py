"""
Fee strategies — distance → base + distance charge.

Both sit behind ``FeeStrategy``; the engine applies surcharges, the
free-delivery threshold, limits and rounding identically for either.
"""

from __future__ import annotations

from typing import Protocol

from orderflow.fees._config import DeliveryConfig, FeeMode
from orderflow.fees._rounding import to_money, round_half_up
from orderflow.fees._types import TierQuote, ZERO


class FeeStrategy(Protocol):
    @property
    def name(self) -> str: ...

    def price(self, distance_km: float, config: DeliveryConfig) -> TierQuote: ...


class TieredFeeStrategy:
    """Band base fee plus per-km charge beyond the included allowance."""

    @property
    def name(self) -> str:
        return FeeMode.TIERED.value

    def price(self, distance_km: float, config: DeliveryConfig) -> TierQuote:
        tier = config.tier_for(distance_km)
        chargeable = max(ZERO, to_money(distance_km) - to_money(config.included_km))
        return TierQuote(
            base_fee=tier.base_fee,
            distance_fee=round_half_up(chargeable * tier.per_km_fee),
            estimated_time=tier.estimated_time,
        )


class ProgressiveFeeStrategy:
    """Flat near fee, linear band, then per extra km; whole rupees."""

    @property
    def name(self) -> str:
        return FeeMode.PROGRESSIVE.value

    def price(self, distance_km: float, config: DeliveryConfig) -> TierQuote:
        s = config.progressive
        estimated_time = config.tier_for(distance_km).estimated_time
        d = to_money(distance_km)
        near_km = to_money(s.near_km)
        band_end_km = to_money(s.band_end_km)

        if d <= near_km:
            return TierQuote(s.near_fee, ZERO, estimated_time)

        if d <= band_end_km:
            progress = (d - near_km) / (band_end_km - near_km)
            fee = round_half_up(s.band_start_fee + progress * (s.band_end_fee - s.band_start_fee))
            return TierQuote(s.band_start_fee, fee - s.band_start_fee, estimated_time)

        fee = round_half_up(s.band_end_fee + (d - band_end_km) * s.per_extra_km)
        return TierQuote(s.band_end_fee, fee - s.band_end_fee, estimated_time)


def strategy_for(mode: FeeMode) -> FeeStrategy:
    match mode:
        case FeeMode.TIERED:
            return TieredFeeStrategy()
        case FeeMode.PROGRESSIVE:
            return ProgressiveFeeStrategy()


__all__ = ("FeeStrategy", "TieredFeeStrategy", "ProgressiveFeeStrategy", "strategy_for")
