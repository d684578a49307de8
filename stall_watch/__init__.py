"""Detección de sensores estancados y remediación vía MQTT."""
