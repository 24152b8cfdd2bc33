from __future__ import annotations

import pytest

from orderflow.errors import ConfigurationError
from orderflow.fees import FeeMode
from orderflow.geo import DEFAULT_NOMINATIM_URL
from orderflow.settings import DEFAULT_DATABASE_URL, Settings, build_services
from orderflow.store import MemoryStore


def test_defaults_from_an_empty_environment() -> None:
    settings = Settings.from_env({})

    assert settings.fee_mode is FeeMode.TIERED
    assert not settings.deterministic_distance
    assert settings.google_maps_api_key is None
    assert settings.pincode_dataset_path is None
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.provider_timeout == 5.0
    assert settings.geocoder_url == DEFAULT_NOMINATIM_URL


def test_values_from_the_environment() -> None:
    settings = Settings.from_env({
        "ORDERFLOW_FEE_MODE": " Progressive ",
        "ORDERFLOW_DETERMINISTIC_DISTANCE": "yes",
        "GOOGLE_MAPS_API_KEY": "secret",
        "PINCODE_DATASET_PATH": "/data/pincodes.csv",
        "ORDERFLOW_PROVIDER_TIMEOUT": "2.5",
        "ORDERFLOW_LOG_JSON": "1",
    })

    assert settings.fee_mode is FeeMode.PROGRESSIVE
    assert settings.deterministic_distance
    assert settings.google_maps_api_key == "secret"
    assert settings.pincode_dataset_path == "/data/pincodes.csv"
    assert settings.provider_timeout == 2.5
    assert settings.log_json


def test_blank_api_key_means_no_provider() -> None:
    assert Settings.from_env({"GOOGLE_MAPS_API_KEY": ""}).google_maps_api_key is None


@pytest.mark.parametrize(
    "env",
    [
        {"ORDERFLOW_FEE_MODE": "flat"},
        {"ORDERFLOW_DETERMINISTIC_DISTANCE": "maybe"},
        {"ORDERFLOW_PROVIDER_TIMEOUT": "soon"},
        {"ORDERFLOW_PROVIDER_TIMEOUT": "0"},
        {"ORDERFLOW_PROVIDER_TIMEOUT": "10"},
    ],
)
def test_bad_values_are_configuration_errors(env: dict[str, str]) -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_env(env)


async def test_build_services_follows_the_settings() -> None:
    settings = Settings.from_env({
        "ORDERFLOW_FEE_MODE": "progressive",
        "ORDERFLOW_DETERMINISTIC_DISTANCE": "true",
        "GOOGLE_MAPS_API_KEY": "secret",
    })
    store = MemoryStore()

    services = await build_services(settings, store)

    assert services.store is store
    assert services.config.fee_mode is FeeMode.PROGRESSIVE
    assert services.fees.strategy.name == "progressive"
    assert services.distances.deterministic
    assert services.pricing.fees is services.fees
    assert services.orders.store is store
