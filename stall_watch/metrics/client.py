"""Cliente HTTP async para consultas de rango sobre el metrics store."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..errors import DecodeError, NetworkError
from .models import MATRIX_RESULT_TYPE, QueryResultSet, decode_query_result

logger = logging.getLogger(__name__)

QUERY_RANGE_PATH = "/api/v1/query_range"

# ~240 muestras por serie sin importar el tamaño de la ventana
TARGET_SAMPLES = 240
MIN_STEP_SECONDS = 2
MAX_STEP_SECONDS = 60

DEFAULT_TIMEOUT_SECONDS = 10.0


def compute_step(start: int, end: int) -> int:
    """Step de muestreo en segundos: clamp((end - start) // 240, 2, 60)."""
    return min(MAX_STEP_SECONDS, max(MIN_STEP_SECONDS, (end - start) // TARGET_SAMPLES))


@dataclass(frozen=True)
class TimeRangeQuery:
    query: str
    start: int
    end: int
    step: int

    @classmethod
    def for_window(cls, query: str, window_seconds: int, now: float) -> "TimeRangeQuery":
        if int(window_seconds) <= 0:
            raise ValueError(f"window must be at least one second, got {window_seconds!r}")
        end = int(now)
        start = end - int(window_seconds)
        return cls(query=query, start=start, end=end, step=compute_step(start, end))

    def to_params(self) -> dict[str, str]:
        return {
            "query": self.query,
            "start": str(self.start),
            "end": str(self.end),
            "step": str(self.step),
        }


class TimeSeriesClient:
    """Ejecuta una única consulta query_range por ciclo.

    Errores:
    - NetworkError: fallo de transporte o status HTTP no 2xx.
    - DecodeError: body no JSON o fuera de schema.
    Ninguno se reintenta aquí; el ciclo se aborta.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.url = base_url.rstrip("/") + QUERY_RANGE_PATH
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    async def query_range(self, query: str, window_seconds: int) -> QueryResultSet:
        range_query = TimeRangeQuery.for_window(query, window_seconds, self._clock())
        logger.debug(
            "[PROM] query_range start=%d end=%d step=%d query=%s",
            range_query.start, range_query.end, range_query.step, query,
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(self.url, params=range_query.to_params())
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {self.url} failed: {e}") from e

        if not resp.is_success:
            raise NetworkError(
                f"Metrics store returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Malformed json response: {e}") from e

        result = decode_query_result(payload)
        if not result.ok:
            logger.warning("[PROM] Query returned status=%s error=%s", result.status.value, result.error)
        elif result.result_type != MATRIX_RESULT_TYPE:
            logger.warning("[PROM] Ignoring resultType=%s (expected matrix)", result.result_type)
        else:
            logger.debug("[PROM] %d series returned", len(result.series))
        return result
