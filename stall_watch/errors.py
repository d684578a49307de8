"""Errores del agente de remediación."""

from __future__ import annotations

from typing import Optional


class StallWatchError(Exception):
    """Base de todos los errores del agente."""


class MetricsQueryError(StallWatchError):
    """La consulta al metrics store falló. Aborta el ciclo actual."""


class NetworkError(MetricsQueryError):
    """Fallo de transporte o respuesta HTTP no exitosa."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DecodeError(MetricsQueryError):
    """La respuesta no es JSON o no cumple el schema esperado."""


class PublishError(StallWatchError):
    """No se pudo entregar el comando de remediación al broker."""

    def __init__(self, device_id: str, reason: str):
        self.device_id = device_id
        self.reason = reason
        super().__init__(f"Remediation for '{device_id}' failed: {reason}")
