"""CLI entry point for adnotate services.

Services can run in one-shot mode (``--once``) or continuously with a
Prometheus metrics server.

Examples:
    ```bash
    python -m adnotate <service> [options]
    python -m adnotate syncer --once
    python -m adnotate syncer --days 30
    python -m adnotate api --log-level DEBUG
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import ValidationError

from adnotate.core import StateConfig, create_state_store, start_metrics_server
from adnotate.core.base_service import BaseService
from adnotate.core.exceptions import AdnotateError
from adnotate.core.logger import Logger, StructuredFormatter
from adnotate.core.state import StateStore
from adnotate.core.yaml import load_yaml
from adnotate.models import parse_lookback_days
from adnotate.models.constants import ServiceName
from adnotate.services.api import Api
from adnotate.services.syncer import Syncer


CONFIG_BASE = Path("config")
STATE_CONFIG = CONFIG_BASE / "state.yaml"


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.SYNCER: ServiceEntry(Syncer, CONFIG_BASE / "services" / "syncer.yaml"),
    ServiceName.API: ServiceEntry(Api, CONFIG_BASE / "services" / "api.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service_class: type[BaseService[Any]],
    state: StateStore,
    service_dict: dict[str, Any],
    *,
    once: bool,
    days: int | None = None,
) -> int:
    """Run a service in one-shot or continuous mode.

    In one-shot mode the service runs a single cycle and exits; for the
    syncer the exit code reflects whether that run completed. ``days``
    implies one-shot mode and turns the syncer run into a historical one.
    In continuous mode, a Prometheus metrics server is started and the
    service runs until a shutdown signal is received.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if service_dict:
        service = service_class.from_dict(service_dict, state=state)
    else:
        service = service_class(state=state)

    if once or days is not None:
        try:
            async with service:
                if isinstance(service, Syncer):
                    result = await service.sync(days)
                    if not result.completed:
                        logger.error(f"{service_name}_failed", reason=result.aborted)
                        return 1
                else:
                    await service.run()
            logger.info(f"{service_name}_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error(f"{service_name}_failed", error=str(e))
            return 1

    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def _lookback_arg(value: str) -> int:
    try:
        return parse_lookback_days(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the service runner."""
    parser = argparse.ArgumentParser(
        prog="adnotate",
        description="Ad activity to annotation sync runner",
    )

    parser.add_argument(
        "service",
        choices=list(SERVICE_REGISTRY.keys()),
        help="Service to run",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )

    parser.add_argument(
        "--state-config",
        type=Path,
        default=STATE_CONFIG,
        help=f"State store config path (default: {STATE_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (default: run continuously)",
    )

    parser.add_argument(
        "--days",
        type=_lookback_arg,
        help="Syncer only: run one historical sync over the last N days",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.days is not None and args.service != ServiceName.SYNCER:
        parser.error("--days is only supported by the syncer service")
    return args


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that all
    log output, from ``Logger`` and from plain ``logging.getLogger()``
    calls, is rendered as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, open the state store, and run the service."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path

    try:
        state_config = StateConfig(**_load_yaml_dict(args.state_config))
        service_dict = _load_yaml_dict(config_path)
        state = create_state_store(state_config)
    except (AdnotateError, ValidationError) as e:
        logger.error("config_invalid", error=str(e))
        return 1

    try:
        async with state:
            return await run_service(
                service_name=args.service,
                service_class=entry.cls,
                state=state,
                service_dict=service_dict,
                once=args.once,
                days=args.days,
            )
    except (ConnectionError, AdnotateError) as e:
        logger.error("connection_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
