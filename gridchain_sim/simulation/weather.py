"""
Hourly irradiance lookup against the Open-Meteo forecast API.

The lookup runs out of band: ``IrradianceService.request_update`` debounces
location changes on a timer thread, and a completed lookup only swaps the
series read by the next simulator tick. A failed or pending lookup leaves
``irradiance_at`` returning None, which makes the physics model fall back to
its analytic clear-sky curve.

Operations:
- fetch_irradiance_series(lat, lon): one synchronous GET, None on failure.
- IrradianceService.request_update(lat, lon): debounced background refresh.
- IrradianceService.refresh_now(lat, lon): synchronous refresh.
- IrradianceService.irradiance_at(time): non-blocking read for a tick.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from ..config import DEFAULT_WEATHER_URL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IrradianceSeries:
    """
    One day of hourly weather for a location.

    Attributes:
        latitude: Latitude the series was fetched for.
        longitude: Longitude the series was fetched for.
        hourly_wm2: Shortwave radiation per hour of day, W/m2 (None for gaps).
        temperature_c: 2 m air temperature per hour, Celsius.
        sunrise: Local sunrise timestamps as returned by the API.
        sunset: Local sunset timestamps as returned by the API.
    """
    latitude: float
    longitude: float
    hourly_wm2: List[Optional[float]]
    temperature_c: List[Optional[float]] = field(default_factory=list)
    sunrise: List[str] = field(default_factory=list)
    sunset: List[str] = field(default_factory=list)

    def irradiance_at(self, time: float) -> float | None:
        """
        Radiation for the hour containing ``time`` (hour of day), if known.
        """
        hour_index = int(math.floor(time)) % 24
        if hour_index >= len(self.hourly_wm2):
            return None
        value = self.hourly_wm2[hour_index]
        return None if value is None else float(value)


def _parse_series(latitude: float, longitude: float, data: dict) -> IrradianceSeries:
    hourly = data["hourly"]
    daily = data.get("daily") or {}
    radiation = [None if v is None else float(v) for v in hourly["shortwave_radiation"]]
    temperature = [None if v is None else float(v) for v in hourly.get("temperature_2m", [])]
    return IrradianceSeries(
        latitude=latitude,
        longitude=longitude,
        hourly_wm2=radiation,
        temperature_c=temperature,
        sunrise=list(daily.get("sunrise", [])),
        sunset=list(daily.get("sunset", [])),
    )


def fetch_irradiance_series(
    latitude: float,
    longitude: float,
    *,
    client: httpx.Client | None = None,
    base_url: str = DEFAULT_WEATHER_URL,
    timeout: float = 10.0,
) -> IrradianceSeries | None:
    """
    Fetch today's hourly shortwave radiation for a location.

    Args:
        latitude: Site latitude in degrees.
        longitude: Site longitude in degrees.
        client: Optional httpx client (tests pass one with a MockTransport).
        base_url: Forecast endpoint.
        timeout: Request timeout in seconds.

    Returns:
        IrradianceSeries, or None when the request or the payload fails.
        Failures are logged, never raised.
    """
    params = {
        "latitude": str(latitude),
        "longitude": str(longitude),
        "hourly": "temperature_2m,shortwave_radiation",
        "daily": "sunrise,sunset",
        "forecast_days": "1",
        "timezone": "auto",
    }
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout)
    try:
        response = client.get(base_url, params=params)
        response.raise_for_status()
        series = _parse_series(latitude, longitude, response.json())
    except httpx.HTTPError as exc:
        logger.warning("Weather lookup failed for (%.4f, %.4f): %s", latitude, longitude, exc)
        return None
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Weather payload malformed for (%.4f, %.4f): %s", latitude, longitude, exc)
        return None
    finally:
        if owns_client:
            client.close()

    logger.info(
        "Loaded %d hours of irradiance for (%.4f, %.4f)",
        len(series.hourly_wm2),
        latitude,
        longitude,
    )
    return series


class IrradianceService:
    """
    Holds the latest irradiance series and refreshes it in the background.

    Rapid location changes are coalesced: each ``request_update`` cancels the
    pending timer and restarts the debounce window, so only the last location
    is fetched. Results for a location that is no longer the requested one are
    discarded.

    Args:
        base_url: Forecast endpoint.
        timeout: Request timeout in seconds.
        debounce_s: Quiet period before a lookup starts.
        client: Optional shared httpx client.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_WEATHER_URL,
        timeout: float = 10.0,
        debounce_s: float = 0.8,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.debounce_s = debounce_s
        self.client = client
        self._lock = threading.Lock()
        self._series: IrradianceSeries | None = None
        self._timer: threading.Timer | None = None
        self._requested: tuple[float, float] | None = None
        self._loading = False

    @property
    def series(self) -> IrradianceSeries | None:
        with self._lock:
            return self._series

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    def irradiance_at(self, time: float) -> float | None:
        """
        Radiation for the next tick, or None to use the analytic model.
        """
        series = self.series
        if series is None:
            return None
        return series.irradiance_at(time)

    def request_update(self, latitude: float, longitude: float) -> None:
        """
        Schedule a debounced refresh for a new location. Never blocks.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._requested = (latitude, longitude)
            self._loading = True
            timer = threading.Timer(self.debounce_s, self.refresh_now, args=(latitude, longitude))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def refresh_now(self, latitude: float, longitude: float) -> IrradianceSeries | None:
        """
        Fetch synchronously and install the result if the location is still current.
        """
        with self._lock:
            if self._requested is None:
                self._requested = (latitude, longitude)
        series = fetch_irradiance_series(
            latitude,
            longitude,
            client=self.client,
            base_url=self.base_url,
            timeout=self.timeout,
        )
        with self._lock:
            if self._requested != (latitude, longitude):
                logger.debug("Discarding stale irradiance for (%.4f, %.4f)", latitude, longitude)
                return series
            self._loading = False
            self._timer = None
            # None puts the next ticks back on the analytic model
            self._series = series
        return series

    def cancel(self) -> None:
        """Drop any pending refresh."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._loading = False
