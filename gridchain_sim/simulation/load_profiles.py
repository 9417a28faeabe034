from __future__ import annotations

import math

import numpy as np

BASE_LOAD_KW = 0.5
MORNING_PEAK_KW = 1.5
MORNING_WINDOW = (6.0, 9.0)
EVENING_PEAK_KW = 2.5
EVENING_WINDOW = (17.0, 22.0)
LOAD_NOISE_KW = 0.1
MIN_LOAD_KW = 0.2


def _half_sine_bump(time: float, amplitude: float, window: tuple[float, float]) -> float:
    start, end = window
    if time < start or time > end:
        return 0.0
    return amplitude * math.sin(math.pi * (time - start) / (end - start))


def compute_load(
    time: float,
    rng: np.random.Generator | None = None,
    noise_kw: float = LOAD_NOISE_KW,
) -> float:
    """
    Household demand in kW at a given hour of the day.

    Base load (fridge, standby) plus a morning bump over 06-09 and an evening
    bump over 17-22, each a half sine, plus uniform noise.

    Args:
        time: Hour of the day (0-24, fractional).
        rng: Random generator for the noise term; a fresh unseeded one is used
            when omitted. Pass a seeded generator to pin outputs.
        noise_kw: Half-width of the uniform noise band. 0 disables the noise.

    Returns:
        Load in kW, floored at 0.2 and rounded to 2 decimals.
    """
    load = BASE_LOAD_KW
    load += _half_sine_bump(time, MORNING_PEAK_KW, MORNING_WINDOW)
    load += _half_sine_bump(time, EVENING_PEAK_KW, EVENING_WINDOW)

    if noise_kw > 0.0:
        if rng is None:
            rng = np.random.default_rng()
        load += float(rng.uniform(-noise_kw, noise_kw))

    return round(max(MIN_LOAD_KW, load), 2)
