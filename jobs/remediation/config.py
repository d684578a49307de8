"""Remediation runner configuration."""

from __future__ import annotations

from dataclasses import dataclass

from common.config import Settings


@dataclass(frozen=True)
class RunnerConfig:
    """Configuración del loop de detección y remediación.

    La ventana de detección y el intervalo entre ciclos son el mismo valor:
    cada ciclo mira exactamente hacia atrás lo que durmió el anterior.
    """
    metric: str
    window_seconds: int
    device_label: str
    once: bool = False
    keep_going: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, once: bool = False, keep_going: bool = False) -> "RunnerConfig":
        return cls(
            metric=settings.metric,
            window_seconds=settings.duration_seconds,
            device_label=settings.device_label,
            once=once,
            keep_going=keep_going,
        )
