"""Remediation loop: query -> stall detection -> restart command -> sleep."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from stall_watch.detection import stalled_devices
from stall_watch.errors import MetricsQueryError, PublishError
from stall_watch.metrics import TimeSeriesClient
from stall_watch.mqtt import RemediationDispatcher

from .config import RunnerConfig

logger = logging.getLogger(__name__)


async def run_once(
    cfg: RunnerConfig,
    metrics: TimeSeriesClient,
    dispatcher: RemediationDispatcher,
) -> List[str]:
    """Un ciclo completo. Devuelve los device ids a los que se envió el reinicio.

    MetricsQueryError se propaga sin publicar nada. Un PublishError solo
    afecta a su dispositivo; el resto del ciclo continúa.
    """
    result = await metrics.query_range(cfg.metric, cfg.window_seconds)

    dispatched: List[str] = []
    for device_id in stalled_devices(result.series, cfg.device_label):
        logger.info("[REMEDIATION] %s is stalled, resetting", device_id)
        try:
            await dispatcher.remediate(device_id)
        except PublishError as e:
            logger.error("[REMEDIATION] %s", e)
            continue
        dispatched.append(device_id)

    logger.info(
        "[REMEDIATION] Cycle done: series=%d remediated=%d",
        len(result.series), len(dispatched),
    )
    return dispatched


async def run_forever(
    cfg: RunnerConfig,
    metrics: TimeSeriesClient,
    dispatcher: RemediationDispatcher,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    max_cycles: Optional[int] = None,
) -> None:
    """Alterna Polling y Sleeping hasta que el proceso termine.

    Con keep_going=False un error de consulta sale del loop hacia el
    proceso. Con keep_going=True se registra y el siguiente ciclo arranca
    tras el sleep normal; no hay reintento dentro del ciclo.
    """
    cycles = 0
    while True:
        try:
            await run_once(cfg, metrics, dispatcher)
        except MetricsQueryError as e:
            if not cfg.keep_going:
                raise
            logger.error("[REMEDIATION] Cycle aborted: %s", e)

        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            return

        logger.debug("[REMEDIATION] Sleeping %ds", cfg.window_seconds)
        await sleep(cfg.window_seconds)
