from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

DEFAULT_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"


def _load_dotenv(path: str = ".env") -> Dict[str, str]:
    """
    Basic .env loader to populate os.environ.
    Values already present in the environment win over the file.
    Returns a mapping of parsed key/value pairs.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    parsed: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)
        parsed[key] = value
    return parsed


_load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Process-level settings for the driver, the weather lookup and the reports.

    Attributes:
        weather_url: Open-Meteo forecast endpoint.
        weather_timeout_s: HTTP timeout for one irradiance lookup.
        weather_debounce_s: Quiet period before a location change triggers a lookup.
        weather_enabled: When False the analytic solar model is always used.
        tick_seconds: Wall-clock cadence of the periodic ticker.
        time_step_hours: Simulated hours advanced per tick.
        results_dir: Root folder for CSV/plot exports.
    """
    weather_url: str = DEFAULT_WEATHER_URL
    weather_timeout_s: float = 10.0
    weather_debounce_s: float = 0.8
    weather_enabled: bool = True
    tick_seconds: float = 1.0
    time_step_hours: float = 0.25
    results_dir: Path = Path("results")


def load_settings() -> Settings:
    """
    Build Settings from GRIDCHAIN_* environment variables.

    Returns:
        Settings with defaults for every unset variable.
    """
    results_dir = Path(os.getenv("GRIDCHAIN_RESULTS_DIR", "results")).expanduser()
    if not results_dir.is_absolute():
        results_dir = Path.cwd() / results_dir
    return Settings(
        weather_url=os.getenv("GRIDCHAIN_WEATHER_URL", DEFAULT_WEATHER_URL),
        weather_timeout_s=_env_float("GRIDCHAIN_WEATHER_TIMEOUT_S", 10.0),
        weather_debounce_s=_env_float("GRIDCHAIN_WEATHER_DEBOUNCE_S", 0.8),
        weather_enabled=_env_bool("GRIDCHAIN_WEATHER_ENABLED", True),
        tick_seconds=_env_float("GRIDCHAIN_TICK_SECONDS", 1.0),
        time_step_hours=_env_float("GRIDCHAIN_TIME_STEP_HOURS", 0.25),
        results_dir=results_dir,
    )
