from __future__ import annotations

import math

SUNRISE_HOUR = 6.0
SUNSET_HOUR = 18.0
CLEAR_SKY_PEAK_KW_PER_M2 = 0.8
MIN_TILT_FACTOR = 0.5


def tilt_factor(latitude: float | None = None, tilt: float | None = None) -> float:
    """
    Capture penalty for a panel tilt that diverges from the site latitude.

    Optimal tilt is roughly the latitude; every 5 degrees of misalignment
    costs 1% of output, never more than half.

    Args:
        latitude: Site latitude in degrees.
        tilt: Panel tilt in degrees.

    Returns:
        Factor in [0.5, 1.0]; 1.0 when either argument is missing.
    """
    if latitude is None or tilt is None:
        return 1.0
    return max(MIN_TILT_FACTOR, 1.0 - abs(latitude - tilt) / 500.0)


def compute_solar(
    time: float,
    area: float,
    efficiency: float,
    irradiance: float | None = None,
    latitude: float | None = None,
    tilt: float | None = None,
) -> float:
    """
    PV output in kW at a given hour of the day.

    With a measured irradiance (W/m2) the output is
    ``area * irradiance * efficiency * tilt_factor / 1000``. Without it a
    half-sine clear-sky day between 06:00 and 18:00 peaking at 0.8 kW/m2 is
    used.

    Args:
        time: Hour of the day (0-24, fractional).
        area: Panel area in m2.
        efficiency: Panel efficiency (0-1).
        irradiance: Optional shortwave radiation in W/m2.
        latitude: Optional site latitude, used with ``tilt``.
        tilt: Optional panel tilt in degrees.

    Returns:
        Output in kW rounded to 2 decimals.
    """
    factor = tilt_factor(latitude, tilt)

    if irradiance is not None:
        return round(area * irradiance * efficiency * factor / 1000.0, 2)

    if time < SUNRISE_HOUR or time > SUNSET_HOUR:
        return 0.0

    sun_height = math.sin(math.pi * (time - SUNRISE_HOUR) / (SUNSET_HOUR - SUNRISE_HOUR))
    output_kw = area * efficiency * CLEAR_SKY_PEAK_KW_PER_M2 * factor * sun_height
    return round(max(0.0, output_kw), 2)
