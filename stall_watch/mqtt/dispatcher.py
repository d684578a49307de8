"""Publicación del comando de reinicio para un dispositivo estancado.

Una conexión MQTT nueva por comando:
    connect -> publish (QoS 1) -> disconnect -> esperar on_disconnect (<= 1s)

Si la confirmación de desconexión no llega a tiempo el intento se abandona:
se registra como error y se sigue con el siguiente dispositivo.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from common.config import BrokerSettings

from ..errors import PublishError

logger = logging.getLogger(__name__)

DEFAULT_DISCONNECT_TIMEOUT = 1.0

RESTART_TOPIC = "cmnd/{device_id}/restart"
RESTART_PAYLOAD = "1"
QOS_AT_LEAST_ONCE = 1
TOPIC_FORBIDDEN_CHARS = ("+", "#", "\x00")


@dataclass(frozen=True)
class RemediationCommand:
    topic: str
    payload: str
    qos: int = QOS_AT_LEAST_ONCE
    retain: bool = False

    @classmethod
    def restart(cls, device_id: str) -> "RemediationCommand":
        # El device id viene de un label del store: puede ser cualquier string
        if not device_id or any(c in device_id for c in TOPIC_FORBIDDEN_CHARS):
            raise ValueError(f"device id {device_id!r} does not form a valid publish topic")
        return cls(topic=RESTART_TOPIC.format(device_id=device_id), payload=RESTART_PAYLOAD)


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
    )


class _DisconnectWaiter:
    """Puente entre los callbacks de paho (thread de red) y asyncio."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self.disconnected = asyncio.Event()
        self.connect_failure: Optional[str] = None
        self.disconnect_reason: Optional[str] = None

    def on_connect(self, client, userdata, flags, rc, properties=None):
        if getattr(rc, "is_failure", False):
            self.connect_failure = str(rc)

    def on_disconnect(self, client, userdata, flags, rc, properties=None):
        if getattr(rc, "is_failure", False):
            self.disconnect_reason = str(rc)
        self._loop.call_soon_threadsafe(self.disconnected.set)


class RemediationDispatcher:
    """Publica comandos de remediación, uno por conexión.

    No hay pool ni reutilización de conexiones: cada llamada a remediate()
    abre su propio cliente y detiene su network loop antes de volver.
    """

    def __init__(
        self,
        broker: BrokerSettings,
        disconnect_timeout: float = DEFAULT_DISCONNECT_TIMEOUT,
        client_factory: Callable[[str], mqtt.Client] = _default_client_factory,
    ):
        self.broker = broker
        self.disconnect_timeout = disconnect_timeout
        self._client_factory = client_factory

    def _build_client(self, waiter: _DisconnectWaiter) -> mqtt.Client:
        client = self._client_factory(self.broker.client_id())
        client.on_connect = waiter.on_connect
        client.on_disconnect = waiter.on_disconnect
        if self.broker.credentials is not None:
            client.username_pw_set(self.broker.credentials.username, self.broker.credentials.password)
        return client

    async def remediate(self, device_id: str) -> None:
        try:
            command = RemediationCommand.restart(device_id)
        except ValueError as e:
            raise PublishError(device_id, str(e)) from e

        waiter = _DisconnectWaiter(asyncio.get_running_loop())
        client = self._build_client(waiter)

        logger.debug("[MQTT] Connecting to %s:%d", self.broker.host, self.broker.port)
        try:
            await asyncio.to_thread(
                client.connect, self.broker.host, self.broker.port, self.broker.keepalive,
            )
        except (OSError, ValueError) as e:
            raise PublishError(device_id, f"connection to {self.broker.host}:{self.broker.port} failed: {e}") from e

        client.loop_start()
        disconnect_requested = False
        try:
            try:
                info = client.publish(command.topic, command.payload, qos=command.qos, retain=command.retain)
            except ValueError as e:
                raise PublishError(device_id, f"publish rejected: {e}") from e
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                if waiter.connect_failure:
                    raise PublishError(device_id, f"broker refused connection: {waiter.connect_failure}")
                raise PublishError(device_id, f"publish rejected: {mqtt.error_string(info.rc)}")
            client.disconnect()
            disconnect_requested = True

            try:
                await asyncio.wait_for(waiter.disconnected.wait(), timeout=self.disconnect_timeout)
            except asyncio.TimeoutError:
                logger.error(
                    "[MQTT] No disconnect confirmation for %s within %.1fs, abandoning attempt",
                    command.topic, self.disconnect_timeout,
                )
                return
        finally:
            if not disconnect_requested:
                client.disconnect()
            await asyncio.to_thread(client.loop_stop)

        if waiter.connect_failure:
            raise PublishError(device_id, f"broker refused connection: {waiter.connect_failure}")
        if waiter.disconnect_reason:
            logger.warning("[MQTT] %s: disconnected with reason %s", command.topic, waiter.disconnect_reason)
        logger.info("[MQTT] Published %s payload=%s", command.topic, command.payload)
