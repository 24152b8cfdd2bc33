"""
Road-distance providers.
"""

from __future__ import annotations

from typing import Any, Protocol

import requests
from kungfu import LazyCoroResult

from orderflow._types import Coordinates, ProviderError
from orderflow.lift import from_blocking

GOOGLE_DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


class DistanceProvider(Protocol):
    """External distance matrix. Success carries metres."""

    def distance_matrix(
        self, origin: Coordinates, destination: Coordinates,
    ) -> LazyCoroResult[float, ProviderError]: ...


def _element_meters(payload: Any) -> float:
    """Metres from a Distance Matrix response, ValueError for anything else."""
    if not isinstance(payload, dict) or payload.get("status") != "OK":
        status = payload.get("status") if isinstance(payload, dict) else None
        raise ValueError(f"response status {status!r}")
    try:
        element = payload["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError("malformed response") from e
    if element.get("status") != "OK":
        raise ValueError(f"element status {element.get('status')!r}")
    return float(element["distance"]["value"])


class GoogleDistanceMatrix:
    """Google Maps Distance Matrix API (driving, metric)."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 5.0,
        session: requests.Session | None = None,
        base_url: str = GOOGLE_DISTANCE_MATRIX_URL,
    ) -> None:
        if not api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY must be set to use the distance matrix provider.")
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url
        self.session = session or requests.Session()

    def _get(self, origin: Coordinates, destination: Coordinates) -> float:
        resp = self.session.get(
            self.base_url,
            params={
                "origins": str(origin),
                "destinations": str(destination),
                "units": "metric",
                "mode": "driving",
                "key": self.api_key,
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return _element_meters(resp.json())

    def distance_matrix(
        self, origin: Coordinates, destination: Coordinates,
    ) -> LazyCoroResult[float, ProviderError]:
        return from_blocking(
            lambda: self._get(origin, destination),
            on_error=lambda e: ProviderError("google_distance_matrix", f"{type(e).__name__}: {e}"),
            timeout=self.timeout,
        )


__all__ = ("GOOGLE_DISTANCE_MATRIX_URL", "DistanceProvider", "GoogleDistanceMatrix")
