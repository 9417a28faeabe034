from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any, Sequence

from .application import GridChainApplication
from .config import load_settings
from .errors import ConfigurationError, RecordNotFoundError, SerializationError
from .ledger.records import RawPayload
from .result_builder import ResultBuilder
from .simulation.models import MicrogridConfig
from .simulation.weather import IrradianceService

_CONFIG_OPTIONS = {
    "latitude": "latitude",
    "longitude": "longitude",
    "area": "solar_panel_area",
    "efficiency": "solar_efficiency",
    "tilt": "solar_panel_tilt",
    "capacity": "battery_capacity",
    "initial_soc": "initial_battery_charge",
}


def build_argument_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser used by entry points.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(description="GridChain microgrid simulator CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Simulate a number of ticks and audit the chain")
    run.add_argument("--ticks", type=int, default=96, help="Ticks to run (default: one day at 15 min)")
    run.add_argument("--seed", type=int, default=None, help="Seed for the load noise")
    run.add_argument("--start-time", type=float, default=12.0, dest="start_time", help="Start hour of day")
    run.add_argument(
        "--step-hours",
        type=float,
        default=None,
        dest="step_hours",
        help="Simulated hours per tick (overrides GRIDCHAIN_TIME_STEP_HOURS)",
    )
    run.add_argument(
        "--record-every-hours",
        type=float,
        default=None,
        dest="record_every_hours",
        help="Only record ticks on multiples of this many hours (default: every tick)",
    )
    run.add_argument("--config-file", type=str, default=None, help="JSON file with a microgrid configuration")
    run.add_argument("--latitude", type=float)
    run.add_argument("--longitude", type=float)
    run.add_argument("--area", type=float, help="Panel area in m2")
    run.add_argument("--efficiency", type=float, help="Panel efficiency (0-1)")
    run.add_argument("--tilt", type=float, help="Panel tilt in degrees")
    run.add_argument("--capacity", type=float, help="Battery capacity in kWh")
    run.add_argument("--initial-soc", type=float, dest="initial_soc", help="Initial state of charge in percent")
    run.add_argument(
        "--weather",
        action="store_true",
        help="Fetch today's irradiance for the site before running",
    )
    run.add_argument(
        "--inject",
        action="append",
        default=[],
        metavar="JSON",
        help="Append a manual record after the run (repeatable)",
    )
    run.add_argument(
        "--tamper",
        nargs=2,
        action="append",
        default=[],
        metavar=("INDEX", "JSON"),
        help="Overwrite a record payload after the run (repeatable)",
    )
    run.add_argument("--save", action="store_true", help="Export CSV/plot into the results folder")
    run.add_argument("--output-dir", type=str, default=None, help="Results root (overrides GRIDCHAIN_RESULTS_DIR)")
    run.add_argument("--show-chain", action="store_true", help="Include every record in the output")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON file ({file_path}): {exc}") from exc


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _config_from_args(args: argparse.Namespace) -> MicrogridConfig:
    data: dict[str, Any] = {}
    if args.config_file:
        data.update(_load_json_file(args.config_file))
    known = {f.name for f in fields(MicrogridConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")
    for option, field_name in _CONFIG_OPTIONS.items():
        value = getattr(args, option)
        if value is not None:
            data[field_name] = value
    return MicrogridConfig(**data).validate()


def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    if args.step_hours is not None:
        if not args.step_hours > 0:
            raise ConfigurationError(f"--step-hours must be > 0, got {args.step_hours}")
        settings = replace(settings, time_step_hours=args.step_hours)
    config = _config_from_args(args)

    irradiance = None
    if args.weather:
        irradiance = IrradianceService(
            base_url=settings.weather_url,
            timeout=settings.weather_timeout_s,
        )
        irradiance.refresh_now(config.latitude, config.longitude)

    output_root = Path(args.output_dir) if args.output_dir else settings.results_dir
    app = GridChainApplication(
        config=config,
        settings=settings,
        irradiance=irradiance,
        seed=args.seed,
        start_time=args.start_time,
        record_interval_hours=args.record_every_hours,
        result_builder=ResultBuilder(output_root) if args.save else None,
    )
    if args.ticks > 0:
        app.tick(args.ticks)

    injected = []
    for text in args.inject:
        injected.append(app.inject(RawPayload.from_json(text)).index)

    tampered = []
    for raw_index, text in args.tamper:
        result = app.tamper(int(raw_index), RawPayload.from_json(text))
        tampered.append({"index": result.record.index, "changed": result.changed})

    validation = app.validate()
    state = app.state()
    summary: dict[str, Any] = {
        "ticks": args.ticks,
        "time": state["time"],
        "chain_length": state["chain_length"],
        "solar_source": state["solar_source"],
        "config": asdict(app.config),
        "snapshot": state["snapshot"],
        "injected": injected,
        "tampered": tampered,
        "validation": validation.to_dict(),
    }
    if args.save:
        summary["output_dir"] = str(app.export())
    if args.show_chain:
        summary["chain"] = [r.to_dict() for r in app.ledger.records()]
    _print_json(summary)
    return 0 if validation.valid else 1


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("gridchain_sim.api.app:app", host=args.host, port=args.port)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """
    CLI entry point.

    Args:
        argv: Optional sequence of CLI args (defaults to sys.argv).

    Returns:
        Process exit code: 0 on a valid chain, 1 when the audit found a
        breach, 2 on invalid input.
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "run":
            return _run(args)
        if args.command == "serve":
            return _serve(args)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    except SerializationError as exc:
        print(f"Malformed input: {exc}", file=sys.stderr)
        return 2
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
