"""Fixtures compartidas: metrics store falso (httpx.MockTransport) y cliente MQTT falso."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
import paho.mqtt.client as mqtt
import pytest

from common.config import BrokerSettings
from stall_watch.metrics import TimeSeriesClient
from stall_watch.mqtt import RemediationDispatcher

NOW = 1_706_688_600.0
PROMETHEUS_URL = "http://prometheus:9090"


def matrix_response(*series: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "status": "success",
        "data": {"resultType": "matrix", "result": list(series)},
    }


def series(labels: Dict[str, str], values: List[str], start: float = NOW - 600, step: float = 2.5) -> Dict[str, Any]:
    return {
        "metric": labels,
        "values": [[start + i * step, value] for i, value in enumerate(values)],
    }


class FakeMQTTClient:
    """Imita la superficie de paho.mqtt.client.Client usada por el dispatcher."""

    def __init__(
        self,
        client_id: str,
        confirm_disconnect: bool = True,
        connect_error: Optional[Exception] = None,
        publish_rc: int = mqtt.MQTT_ERR_SUCCESS,
        connack_rc: Any = 0,
        publish_error: Optional[Exception] = None,
    ):
        self.client_id = client_id
        self.confirm_disconnect = confirm_disconnect
        self.connect_error = connect_error
        self.publish_rc = publish_rc
        self.connack_rc = connack_rc
        self.publish_error = publish_error

        self.on_connect: Optional[Callable] = None
        self.on_disconnect: Optional[Callable] = None
        self.credentials: Optional[tuple] = None
        self.connected_to: Optional[tuple] = None
        self.published: List[tuple] = []
        self.loop_started = False
        self.loop_stopped = False
        self.disconnect_requested = False

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def connect(self, host, port=1883, keepalive=60):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = (host, port, keepalive)

    def loop_start(self):
        self.loop_started = True
        if self.on_connect:
            self.on_connect(self, None, {}, self.connack_rc, None)

    def loop_stop(self):
        self.loop_stopped = True

    def publish(self, topic, payload=None, qos=0, retain=False):
        if "+" in topic or "#" in topic:
            raise ValueError("Publish topic cannot contain wildcards.")
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self.publish_rc, mid=len(self.published))

    def disconnect(self):
        self.disconnect_requested = True
        if self.confirm_disconnect and self.on_disconnect:
            self.on_disconnect(self, None, {}, 0, None)


class FakeBroker:
    """Fábrica de FakeMQTTClient que recuerda cada conexión creada."""

    def __init__(self, **client_kwargs):
        self.client_kwargs = client_kwargs
        self.clients: List[FakeMQTTClient] = []

    def __call__(self, client_id: str) -> FakeMQTTClient:
        client = FakeMQTTClient(client_id, **self.client_kwargs)
        self.clients.append(client)
        return client

    @property
    def published(self) -> List[tuple]:
        return [msg for client in self.clients for msg in client.published]


class FakeMetricsStore:
    """Handler para httpx.MockTransport con respuesta configurable."""

    def __init__(self, body: Any = None, status_code: int = 200):
        self.body = body if body is not None else matrix_response()
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    def client(self) -> TimeSeriesClient:
        return TimeSeriesClient(PROMETHEUS_URL, transport=httpx.MockTransport(self), clock=lambda: NOW)


@pytest.fixture
def broker_settings() -> BrokerSettings:
    return BrokerSettings(host="mqtt.local", port=1883)


@pytest.fixture
def fake_broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def dispatcher(broker_settings, fake_broker) -> RemediationDispatcher:
    return RemediationDispatcher(broker_settings, disconnect_timeout=0.2, client_factory=fake_broker)


ENV_VARS = [
    "MQTT_HOSTNAME", "MQTT_PORT", "MQTT_USERNAME", "MQTT_PASSWORD", "MQTT_CLIENT_ID_PREFIX",
    "PROMETHEUS_URL", "METRIC", "DURATION", "DEVICE_LABEL", "LOG_LEVEL", "STALL_WATCH_ENV_FILE",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Entorno mínimo válido, aislado de cualquier .env local."""
    for name in ENV_VARS:
        # setenv first so teardown also removes values load_dotenv writes
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MQTT_HOSTNAME", "mqtt.local")
    monkeypatch.setenv("PROMETHEUS_URL", "http://prometheus:9090")
    monkeypatch.setenv("METRIC", "sensor_temperature")
    return monkeypatch
