"""HTTP client for the Google Geocoding and Distance Matrix services."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import httpx

from ...config import settings
from ...models.domain import (
    Appointment,
    Coordinate,
    GeocodedAppointment,
    GeocodingErrorType,
    GeocodingResult,
    TravelCost,
)
from ..timeutils import round_half_up
from .cache import LookupCache, address_cache_key, distance_cache_key
from .models import BatchGeocodeResult, GeocodeFailure
from .provider import TravelLookupError

CRITICAL_GEOCODING_ERRORS = frozenset(
    {
        GeocodingErrorType.API_KEY_MISSING,
        GeocodingErrorType.API_KEY_INVALID,
        GeocodingErrorType.QUOTA_EXCEEDED,
        GeocodingErrorType.NETWORK_ERROR,
    }
)

logger = logging.getLogger(__name__)


def error_type_from_status(status: str | None) -> GeocodingErrorType:
    match status:
        case "REQUEST_DENIED":
            return GeocodingErrorType.API_KEY_INVALID
        case "OVER_QUERY_LIMIT":
            return GeocodingErrorType.QUOTA_EXCEEDED
        case "INVALID_REQUEST":
            return GeocodingErrorType.INVALID_ADDRESS
        case "ZERO_RESULTS":
            return GeocodingErrorType.ZERO_RESULTS
        case _:
            return GeocodingErrorType.SERVER_ERROR


class GoogleMapsClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        chunk_size: int | None = None,
        batch_size: int | None = None,
        pause_seconds: float | None = None,
        cache_max_entries: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.base_url = (base_url or settings.google_maps_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.lookup_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.lookup_backoff_seconds
        self.chunk_size = chunk_size or settings.distance_chunk_size
        self.batch_size = batch_size or settings.geocode_batch_size
        self.pause_seconds = pause_seconds if pause_seconds is not None else settings.batch_pause_seconds
        max_entries = cache_max_entries or settings.lookup_cache_max_entries
        self.geocode_cache: LookupCache[GeocodingResult] = LookupCache(max_entries)
        self.distance_cache: LookupCache[TravelCost] = LookupCache(max_entries)
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # A fresh client per request keeps the batch geocoding threads independent.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def validate_api_key(self) -> Optional[GeocodingResult]:
        """Return a failed result describing the key problem, or ``None`` when the key looks usable."""

        if not self.api_key:
            return GeocodingResult(
                success=False,
                error="Google Maps API key not configured. Set VP_GOOGLE_MAPS_API_KEY.",
                error_type=GeocodingErrorType.API_KEY_MISSING,
            )
        if "DummyKey" in self.api_key:
            return GeocodingResult(
                success=False,
                error="Google Maps API key appears to be a dummy/test key. Please set a valid API key.",
                error_type=GeocodingErrorType.API_KEY_INVALID,
            )
        return None

    def _request_json(self, endpoint: str, params: dict) -> dict:
        url = f"{self.base_url}/{endpoint}/json"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params={**params, "key": self.api_key})
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise TravelLookupError(
                            f"Google Maps service at {self.base_url} is not reachable: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(
                        f"Google Maps request failed, retrying in {wait_time:.1f}s "
                        f"(attempt {attempt}/{self.max_retries}): {exc}"
                    )
                    time.sleep(wait_time)
        finally:
            client.close()

    def geocode(self, address: str) -> GeocodingResult:
        """Geocode one address. Failures are reported in the result, never raised."""

        cache_key = address_cache_key(address)
        cached = self.geocode_cache.get(cache_key)
        if cached is not None:
            return cached

        key_problem = self.validate_api_key()
        if key_problem is not None:
            return key_problem

        try:
            data = self._request_json("geocode", {"address": address})
        except TravelLookupError as exc:
            return GeocodingResult(success=False, error=str(exc), error_type=GeocodingErrorType.NETWORK_ERROR)
        except (httpx.HTTPError, ValueError) as exc:
            return GeocodingResult(
                success=False,
                error=f"Geocoding API error: {exc}",
                error_type=GeocodingErrorType.SERVER_ERROR,
            )

        status = data.get("status")
        if status != "OK":
            message = f"Geocoding failed: {status}"
            if data.get("error_message"):
                message += f" - {data['error_message']}"
            return GeocodingResult(success=False, error=message, error_type=error_type_from_status(status))

        first = data["results"][0]
        location = first["geometry"]["location"]
        result = GeocodingResult(
            success=True,
            latitude=location["lat"],
            longitude=location["lng"],
            formatted_address=first.get("formatted_address"),
        )
        self.geocode_cache.set(cache_key, result)
        return result

    def batch_geocode(self, appointments: Sequence[Appointment]) -> BatchGeocodeResult:
        """Geocode appointments in parallel batches, stopping at the first critical API error."""

        geocoded: list[GeocodedAppointment] = []
        errors: list[GeocodeFailure] = []
        critical: Optional[GeocodingResult] = None

        indexed = list(enumerate(appointments))
        batches = [
            indexed[start : start + self.batch_size]
            for start in range(0, len(appointments), self.batch_size)
        ]
        for batch_index, batch in enumerate(batches):
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results = list(executor.map(lambda item: self.geocode(item[1].address), batch))

            for (index, appointment), result in zip(batch, results):
                if result.success and result.latitude is not None and result.longitude is not None:
                    geocoded.append(
                        GeocodedAppointment(
                            id=appointment.id,
                            app_name=appointment.app_name,
                            address=appointment.address,
                            visit_duration_minutes=appointment.visit_duration_minutes,
                            start_time=appointment.start_time,
                            date=appointment.date,
                            flexibility=appointment.flexibility,
                            row_number=appointment.row_number,
                            latitude=result.latitude,
                            longitude=result.longitude,
                            formatted_address=result.formatted_address or appointment.address,
                        )
                    )
                elif result.error_type in CRITICAL_GEOCODING_ERRORS:
                    critical = critical or result
                else:
                    errors.append(
                        GeocodeFailure(
                            index=index,
                            message=result.error or "Geocoding failed",
                            error_type=result.error_type,
                        )
                    )

            if critical is not None:
                break
            if batch_index < len(batches) - 1:
                time.sleep(self.pause_seconds)

        if critical is not None:
            logger.warning(f"Batch geocoding stopped: {critical.error}")
            return BatchGeocodeResult(
                success=False,
                geocoded=geocoded,
                errors=[
                    GeocodeFailure(
                        index=-1,
                        message=critical.error or "Critical API error",
                        error_type=critical.error_type,
                    )
                ],
            )
        return BatchGeocodeResult(success=not errors, geocoded=geocoded, errors=errors)

    def travel_cost(
        self, origin: Coordinate, destinations: Sequence[Coordinate]
    ) -> list[Optional[TravelCost]]:
        """Driving distance and duration from ``origin`` to each destination.

        Results keep the destination order; destinations without a route map to ``None``.
        Raises ``TravelLookupError`` when the service cannot be used at all.
        """

        if not self.api_key:
            raise TravelLookupError("Google Maps API key not configured.")

        results: list[Optional[TravelCost]] = [None] * len(destinations)
        pending: list[int] = []
        for index, destination in enumerate(destinations):
            cached = self.distance_cache.get(distance_cache_key(origin, destination))
            if cached is not None:
                results[index] = cached
            else:
                pending.append(index)

        for start in range(0, len(pending), self.chunk_size):
            chunk = pending[start : start + self.chunk_size]
            params = {
                "origins": f"{origin.lat},{origin.lng}",
                "destinations": "|".join(f"{destinations[i].lat},{destinations[i].lng}" for i in chunk),
            }
            try:
                data = self._request_json("distancematrix", params)
            except (httpx.HTTPError, ValueError) as exc:
                raise TravelLookupError(f"Distance Matrix API error: {exc}") from exc

            if data.get("status") != "OK":
                message = f"Distance Matrix failed: {data.get('status')}"
                if data.get("error_message"):
                    message += f" - {data['error_message']}"
                raise TravelLookupError(message)

            rows = data.get("rows") or []
            if not rows or "elements" not in rows[0]:
                raise TravelLookupError("Invalid Distance Matrix response format")

            for index, element in zip(chunk, rows[0]["elements"]):
                if element.get("status") != "OK":
                    logger.debug(f"No route to destination {index}: {element.get('status')}")
                    continue
                cost = TravelCost(
                    distance_meters=element["distance"]["value"],
                    duration_minutes=round_half_up(element["duration"]["value"] / 60),
                    origin=origin,
                    destination=destinations[index],
                )
                self.distance_cache.set(distance_cache_key(origin, destinations[index]), cost)
                results[index] = cost

            if start + self.chunk_size < len(pending):
                time.sleep(self.pause_seconds)

        return results

    def clear_caches(self) -> None:
        self.geocode_cache.clear()
        self.distance_cache.clear()

    def cache_stats(self) -> dict[str, dict[str, int]]:
        return {
            "geocoding": self.geocode_cache.stats(),
            "distance": self.distance_cache.stats(),
        }
