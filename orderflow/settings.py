"""
Settings and wiring.

    settings = Settings.from_env()
    services = await build_services(settings)

Environment (a ``.env`` file in the working directory is read first):

    ORDERFLOW_FEE_MODE                 tiered | progressive        (tiered)
    ORDERFLOW_DETERMINISTIC_DISTANCE   skip the distance provider  (false)
    GOOGLE_MAPS_API_KEY                distance matrix key         (unset: Haversine only)
    PINCODE_DATASET_PATH               postal-code CSV             (unset: store lookup only)
    ORDERFLOW_DATABASE_URL             SQLAlchemy async URL        (sqlite+aiosqlite:///orderflow.db)
    ORDERFLOW_PROVIDER_TIMEOUT         seconds per provider call   (5)
    ORDERFLOW_GEOCODER_URL             Nominatim base URL
    ORDERFLOW_USER_AGENT               geocoder User-Agent
    ORDERFLOW_LOG_LEVEL                structlog level             (INFO)
    ORDERFLOW_LOG_JSON                 JSON log lines              (false)

Settings are read once; changing them needs a restart.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from dotenv import load_dotenv

from orderflow.addresses import AddressBook
from orderflow.distance import DistanceEngine, DistanceProvider, GoogleDistanceMatrix
from orderflow.districts import DistrictResolver, PincodeDataset
from orderflow.errors import ConfigurationError
from orderflow.fees import DeliveryConfig, FeeEngine, FeeMode, config_for_mode
from orderflow.geo import (
    DEFAULT_NOMINATIM_URL,
    DEFAULT_USER_AGENT,
    CoordinateResolver,
    GeocodingProvider,
    NominatimGeocoder,
)
from orderflow.logs import configure_logging
from orderflow.orders import OrderEventPublisher, OrderTransactionCoordinator
from orderflow.pricing import DeliveryPricing
from orderflow.store import SQLAlchemyStore, Store

log = structlog.get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///orderflow.db"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def _flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    fee_mode: FeeMode = FeeMode.TIERED
    deterministic_distance: bool = False
    google_maps_api_key: str | None = None
    pincode_dataset_path: str | None = None
    database_url: str = DEFAULT_DATABASE_URL
    provider_timeout: float = 5.0
    geocoder_url: str = DEFAULT_NOMINATIM_URL
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Read settings from ``environ`` (default: the process environment
        after loading ``.env``).
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        env = environ

        mode = env.get("ORDERFLOW_FEE_MODE", FeeMode.TIERED.value).strip().lower()
        try:
            fee_mode = FeeMode(mode)
        except ValueError:
            raise ConfigurationError(f"ORDERFLOW_FEE_MODE must be tiered or progressive, got {mode!r}") from None

        raw_timeout = env.get("ORDERFLOW_PROVIDER_TIMEOUT", "5")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigurationError(f"ORDERFLOW_PROVIDER_TIMEOUT must be a number, got {raw_timeout!r}") from None
        if not 0 < timeout < 10:
            raise ConfigurationError("ORDERFLOW_PROVIDER_TIMEOUT must be between 0 and 10 seconds")

        return cls(
            fee_mode=fee_mode,
            deterministic_distance=_flag(env, "ORDERFLOW_DETERMINISTIC_DISTANCE"),
            google_maps_api_key=env.get("GOOGLE_MAPS_API_KEY") or None,
            pincode_dataset_path=env.get("PINCODE_DATASET_PATH") or None,
            database_url=env.get("ORDERFLOW_DATABASE_URL", DEFAULT_DATABASE_URL),
            provider_timeout=timeout,
            geocoder_url=env.get("ORDERFLOW_GEOCODER_URL", DEFAULT_NOMINATIM_URL),
            user_agent=env.get("ORDERFLOW_USER_AGENT", DEFAULT_USER_AGENT),
            log_level=env.get("ORDERFLOW_LOG_LEVEL", "INFO"),
            log_json=_flag(env, "ORDERFLOW_LOG_JSON"),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Services
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Services:
    """Everything the HTTP layer needs, built once per process."""

    store: Store
    config: DeliveryConfig
    districts: DistrictResolver
    coordinates: CoordinateResolver
    distances: DistanceEngine
    fees: FeeEngine
    pricing: DeliveryPricing
    addresses: AddressBook
    orders: OrderTransactionCoordinator


def wire(
    store: Store,
    config: DeliveryConfig,
    *,
    geocoder: GeocodingProvider | None = None,
    distance_provider: DistanceProvider | None = None,
    dataset: PincodeDataset | None = None,
    deterministic: bool = False,
    publisher: OrderEventPublisher | None = None,
) -> Services:
    """Assemble the engines around one store and one configuration."""
    districts = DistrictResolver(
        dataset if dataset is not None else PincodeDataset(None),
        fallback=store,
        overrides=config.district_overrides,
        serviceable_states=config.serviceable_states,
    )
    coordinates = CoordinateResolver(geocoder, config.bounds)
    distances = DistanceEngine(
        distance_provider,
        ttl=config.cache_ttl,
        deterministic=deterministic,
    )
    fees = FeeEngine(config, distances)
    return Services(
        store=store,
        config=config,
        districts=districts,
        coordinates=coordinates,
        distances=distances,
        fees=fees,
        pricing=DeliveryPricing(fees, coordinates, districts),
        addresses=AddressBook(store, districts, coordinates),
        orders=OrderTransactionCoordinator(store, districts, coordinates, fees, publisher),
    )


async def build_services(settings: Settings, store: Store | None = None) -> Services:
    """Production wiring: Nominatim, Google distance matrix when keyed, SQLAlchemy."""
    configure_logging(settings.log_level, json=settings.log_json)

    distance_provider: DistanceProvider | None = None
    if settings.google_maps_api_key and not settings.deterministic_distance:
        distance_provider = GoogleDistanceMatrix(
            settings.google_maps_api_key, timeout=settings.provider_timeout,
        )

    if store is None:
        store = await SQLAlchemyStore.create(settings.database_url)

    log.info(
        "services_configured",
        fee_mode=settings.fee_mode.value,
        distance_provider=distance_provider is not None,
        pincode_dataset=settings.pincode_dataset_path is not None,
    )
    return wire(
        store,
        config_for_mode(settings.fee_mode),
        geocoder=NominatimGeocoder(
            settings.geocoder_url,
            user_agent=settings.user_agent,
            timeout=settings.provider_timeout,
        ),
        distance_provider=distance_provider,
        dataset=PincodeDataset(settings.pincode_dataset_path),
        deterministic=settings.deterministic_distance,
    )


__all__ = ("DEFAULT_DATABASE_URL", "Settings", "Services", "wire", "build_services")
