"""CLI entry point for the remediation runner."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from typing import Optional, Sequence

from common.config import ConfigError, get_settings
from stall_watch.errors import MetricsQueryError
from stall_watch.metrics import TimeSeriesClient
from stall_watch.mqtt import RemediationDispatcher

from .config import RunnerConfig
from .runner import run_forever

logger = logging.getLogger(__name__)


def _terminate(signum, frame) -> None:
    # Salida inmediata, incluso a mitad de un publish. No hay estado que persistir.
    os._exit(0)


def _install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _terminate)
    signal.signal(signal.SIGTERM, _terminate)


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Restart devices whose sensor readings stopped changing")
    p.add_argument("--once", action="store_true", help="run a single cycle and exit")
    p.add_argument(
        "--keep-going",
        action="store_true",
        help="log metrics query failures and continue with the next cycle instead of exiting",
    )
    p.add_argument("--env-file", default=None, help="dotenv file to load before reading the environment")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    try:
        settings = get_settings(args.env_file)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    logging.getLogger().setLevel(settings.log_level)

    cfg = RunnerConfig.from_settings(settings, once=args.once, keep_going=args.keep_going)
    metrics = TimeSeriesClient(settings.prometheus_url)
    dispatcher = RemediationDispatcher(settings.broker)

    logger.info("Stall remediator started")
    logger.info(
        "Config: metric=%s window=%ds label=%s broker=%s:%d",
        cfg.metric, cfg.window_seconds, cfg.device_label, settings.broker.host, settings.broker.port,
    )

    _install_signal_handlers()
    try:
        asyncio.run(run_forever(cfg, metrics, dispatcher, max_cycles=1 if cfg.once else None))
    except MetricsQueryError as e:
        logger.error("Metrics query failed, stopping: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
