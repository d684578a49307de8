"""Despacho de comandos de remediación vía MQTT."""

from .dispatcher import RemediationCommand, RemediationDispatcher

__all__ = ["RemediationCommand", "RemediationDispatcher"]
