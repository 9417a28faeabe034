from __future__ import annotations

import time

import httpx

from gridchain_sim.simulation.weather import IrradianceService, IrradianceSeries, fetch_irradiance_series

BASE_URL = "https://weather.test/v1/forecast"


def _forecast_payload() -> dict:
    radiation = [0.0] * 6 + [100.0 * h for h in range(1, 13)] + [0.0] * 6
    radiation[20] = None
    return {
        "hourly": {
            "time": [f"2024-06-21T{h:02d}:00" for h in range(24)],
            "temperature_2m": [20.0 + h * 0.1 for h in range(24)],
            "shortwave_radiation": radiation,
        },
        "daily": {"sunrise": ["2024-06-21T05:42"], "sunset": ["2024-06-21T20:08"]},
    }


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_sends_forecast_query_and_parses_series() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=_forecast_payload())

    series = fetch_irradiance_series(34.05, -118.25, client=_client(handler), base_url=BASE_URL)

    assert seen["latitude"] == "34.05"
    assert seen["longitude"] == "-118.25"
    assert seen["hourly"] == "temperature_2m,shortwave_radiation"
    assert seen["daily"] == "sunrise,sunset"
    assert seen["forecast_days"] == "1"
    assert seen["timezone"] == "auto"

    assert isinstance(series, IrradianceSeries)
    assert len(series.hourly_wm2) == 24
    assert series.irradiance_at(12.75) == 700.0
    assert series.irradiance_at(20.0) is None
    assert series.sunrise == ["2024-06-21T05:42"]


def test_fetch_returns_none_on_http_error(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": True})

    with caplog.at_level("WARNING"):
        assert fetch_irradiance_series(1.0, 2.0, client=_client(handler), base_url=BASE_URL) is None
    assert "Weather lookup failed" in caplog.text


def test_fetch_returns_none_on_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    assert fetch_irradiance_series(1.0, 2.0, client=_client(handler), base_url=BASE_URL) is None


def test_fetch_returns_none_on_malformed_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"hourly": {}})

    assert fetch_irradiance_series(1.0, 2.0, client=_client(handler), base_url=BASE_URL) is None


def test_service_falls_back_until_a_series_is_loaded() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_forecast_payload())

    service = IrradianceService(base_url=BASE_URL, client=_client(handler))
    assert service.irradiance_at(12.0) is None

    service.refresh_now(34.05, -118.25)

    assert service.irradiance_at(12.0) == 700.0
    assert not service.loading


def test_failed_refresh_clears_previous_series() -> None:
    responses = [httpx.Response(200, json=_forecast_payload()), httpx.Response(500)]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    service = IrradianceService(base_url=BASE_URL, client=_client(handler))
    service.refresh_now(34.05, -118.25)
    assert service.series is not None

    service.refresh_now(34.05, -118.25)
    assert service.series is None
    assert service.irradiance_at(12.0) is None


def test_request_update_is_debounced_to_last_location() -> None:
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append((request.url.params["latitude"], request.url.params["longitude"]))
        return httpx.Response(200, json=_forecast_payload())

    service = IrradianceService(base_url=BASE_URL, debounce_s=0.05, client=_client(handler))
    service.request_update(10.0, 10.0)
    service.request_update(20.0, 20.0)
    service.request_update(45.46, 9.19)
    assert service.loading

    deadline = time.monotonic() + 2.0
    while service.loading and time.monotonic() < deadline:
        time.sleep(0.01)

    assert requested == [("45.46", "9.19")]
    assert service.series is not None
    assert service.series.latitude == 45.46


def test_cancel_drops_pending_refresh() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_forecast_payload())

    service = IrradianceService(base_url=BASE_URL, debounce_s=0.05, client=_client(handler))
    service.request_update(1.0, 1.0)
    service.cancel()
    time.sleep(0.15)

    assert calls == []
    assert not service.loading
