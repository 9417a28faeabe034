from __future__ import annotations

import logging
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List

import numpy as np
import pandas as pd

from .config import Settings, load_settings
from .errors import ConfigurationError
from .ledger.chain import Ledger, TamperResult
from .ledger.records import RawPayload, Record
from .ledger.validator import IntegrityReason, ValidationResult
from .result_builder import ResultBuilder, snapshots_to_frame
from .simulation.energy_simulator import MicrogridSimulator, PeriodicTicker, TickOutcome
from .simulation.models import MicrogridConfig
from .simulation.weather import IrradianceService

logger = logging.getLogger(__name__)

_CONFIG_FIELDS = {f.name for f in fields(MicrogridConfig)}
_LOCATION_FIELDS = {"latitude", "longitude"}


class GridChainApplication:
    """
    High-level orchestrator used by the CLI and the FastAPI surface.

    Owns exactly one ledger, the simulator feeding it, the optional
    irradiance service and the periodic ticker. Every chain mutation goes
    through the ledger's own lock.
    """

    def __init__(
        self,
        *,
        config: MicrogridConfig | None = None,
        settings: Settings | None = None,
        ledger: Ledger | None = None,
        irradiance: IrradianceService | None = None,
        seed: int | None = None,
        start_time: float = 12.0,
        record_interval_hours: float | None = None,
        result_builder: ResultBuilder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            config: Microgrid configuration; defaults to MicrogridConfig().
            settings: Process settings; loaded from the environment when omitted.
            ledger: Ledger to write to; a new one when omitted.
            irradiance: Optional weather service; None keeps the analytic model.
            seed: Seed for the load noise generator.
            start_time: Simulated hour of day at start and after reset.
            record_interval_hours: Record only on multiples of this interval.
            result_builder: Optional exporter for ``export``.
            clock: Timestamp source shared by ledger and simulator.
        """
        self.settings = settings or load_settings()
        self.ledger = ledger or Ledger(clock=clock)
        self.irradiance = irradiance
        self.result_builder = result_builder
        self.simulator = MicrogridSimulator(
            (config or MicrogridConfig()).validate(),
            self.ledger,
            irradiance_source=irradiance.irradiance_at if irradiance else None,
            rng=np.random.default_rng(seed),
            time_step=self.settings.time_step_hours,
            start_time=start_time,
            record_interval_hours=record_interval_hours,
            clock=clock,
        )
        self.ticker = PeriodicTicker(self.simulator, interval_s=self.settings.tick_seconds)
        self.last_validation = ValidationResult(True)
        self.simulator.seed_genesis()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "GridChainApplication":
        """
        Build an application whose weather service follows the settings.
        """
        settings = settings or load_settings()
        irradiance = None
        if settings.weather_enabled:
            irradiance = IrradianceService(
                base_url=settings.weather_url,
                timeout=settings.weather_timeout_s,
                debounce_s=settings.weather_debounce_s,
            )
        app = cls(settings=settings, irradiance=irradiance, **kwargs)
        if irradiance is not None:
            irradiance.request_update(app.config.latitude, app.config.longitude)
        return app

    @property
    def config(self) -> MicrogridConfig:
        return self.simulator.config

    @property
    def running(self) -> bool:
        return self.ticker.running

    def state(self) -> Dict[str, Any]:
        """
        Current simulated time, snapshot, configuration and chain status.
        """
        sim = self.simulator
        irradiance = self.irradiance.irradiance_at(sim.time) if self.irradiance else None
        return {
            "time": sim.time,
            "tick_count": sim.tick_count,
            "running": self.running,
            "snapshot": sim.state.to_dict(),
            "config": asdict(sim.config),
            "peak_power_kw": sim.config.peak_power_kw,
            "chain_length": len(self.ledger),
            "secure": self.last_validation.valid,
            "validation": self.last_validation.to_dict(),
            "solar_source": "weather" if irradiance is not None else "model",
            "weather_loading": self.irradiance.loading if self.irradiance else False,
        }

    def tick(self, count: int = 1) -> List[TickOutcome]:
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        return self.simulator.run(count)

    def start(self) -> None:
        self.ticker.start()

    def pause(self) -> None:
        self.ticker.pause()

    def reset(self) -> Record:
        """
        Discard the chain and re-seed genesis; the ticker keeps its state.
        """
        genesis = self.simulator.reset()
        self.last_validation = ValidationResult(True)
        return genesis

    def update_config(self, **changes: Any) -> MicrogridConfig:
        """
        Apply configuration changes; a location change triggers a weather refresh.

        Raises:
            ConfigurationError: On unknown fields or invalid values.
        """
        unknown = set(changes) - _CONFIG_FIELDS
        if unknown:
            raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")
        previous = self.simulator.config
        updated = previous.with_changes(**changes)
        self.simulator.update_config(updated)

        moved = any(getattr(previous, k) != getattr(updated, k) for k in _LOCATION_FIELDS)
        if moved and self.irradiance is not None:
            self.irradiance.request_update(updated.latitude, updated.longitude)
        return updated

    def validate(self) -> ValidationResult:
        """
        Audit the chain and remember the outcome for ``state``.
        """
        result = self.ledger.validate()
        self.last_validation = result
        if result.valid:
            logger.info("Audit complete: chain of %d records is valid", len(self.ledger))
        else:
            logger.warning(
                "Audit complete: breach at record %s (%s)",
                result.error_index,
                result.reason.value if result.reason else "-",
            )
        return result

    def inject(self, payload: Any) -> Record:
        """
        Append a hand-written record (manual block injection).

        Raises:
            SerializationError: If the payload is not JSON-representable.
        """
        raw = payload if isinstance(payload, RawPayload) else RawPayload.from_value(payload)
        record = self.ledger.append(raw)
        logger.info("Manual record %d injected", record.index)
        return record

    def tamper(self, index: int, payload: Any) -> TamperResult:
        """
        Overwrite a record's payload in place (simulated attack).

        Raises:
            RecordNotFoundError: If ``index`` is outside the chain.
            SerializationError: If the payload is not JSON-representable.
        """
        result = self.ledger.tamper(index, payload)
        if result.changed:
            self.last_validation = ValidationResult(False, index, IntegrityReason.DATA_TAMPERED)
        return result

    def history_frame(self) -> pd.DataFrame:
        return snapshots_to_frame(self.ledger.records())

    def export(self, name: str = "microgrid") -> Path:
        """
        Write the current chain through the ResultBuilder.
        """
        builder = self.result_builder or ResultBuilder(self.settings.results_dir)
        records = self.ledger.records()
        return builder.build(records, name=name, time_step=self.simulator.time_step)

    def close(self) -> None:
        self.ticker.pause()
        if self.irradiance is not None:
            self.irradiance.cancel()
