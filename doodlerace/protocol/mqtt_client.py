"""
mqtt_client.py

MQTT transport for controller traffic.

paho runs its network loop on its own thread. That thread only does two
things here: push (topic, payload) onto a queue and update status fields.
Everything that touches pairing or race state happens on the main loop via
drain().
"""
from __future__ import annotations

import queue
import re
import secrets
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from doodlerace.utils import _escape_bytes

Message = Tuple[str, bytes]

_PLAYER_SUFFIX = re.compile(r"/player\d+$")

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883, "ws": 80, "wss": 443}

STATUS_DISABLED = "MQTT broker not configured (set MQTT_BROKER_URL)"
STATUS_CONNECTED = "Controllers connected"
STATUS_CONNECTING = "Connecting..."
STATUS_WAITING = "Waiting for connection"


@dataclass(frozen=True)
class TransportConfig:
    broker_url: str = ""
    username: str = ""
    password: str = ""
    topic: str = "yokohama/hackathon/running/player1"
    control_topic: str = "dorosupi/controller"
    keepalive_s: int = 30
    multi_player: bool = True
    log_rx: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.broker_url)


@dataclass(frozen=True)
class BrokerAddress:
    host: str
    port: int
    transport: str  # "tcp" | "websockets"
    tls: bool
    path: str = "/mqtt"


def parse_broker_url(url: str) -> BrokerAddress:
    """
    mqtt://host:1883, mqtts://host, ws://host:9001/mqtt, wss://host/mqtt
    A bare "host[:port]" is treated as mqtt://.
    """
    if "://" not in url:
        url = "mqtt://" + url
    u = urlparse(url)
    scheme = u.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"Unsupported broker scheme: {scheme!r}")
    if not u.hostname:
        raise ValueError(f"Broker url has no host: {url!r}")

    websockets = scheme in ("ws", "wss")
    return BrokerAddress(
        host=u.hostname,
        port=u.port or _DEFAULT_PORTS[scheme],
        transport="websockets" if websockets else "tcp",
        tls=scheme in ("wss", "mqtts", "ssl"),
        path=(u.path or "/mqtt") if websockets else "/mqtt",
    )


def subscription_topics(topic: str, control_topic: str, *, multi_player: bool = True) -> List[str]:
    """
    ".../running/player1" -> [".../running/+", control_topic] in multi-player mode.
    """
    sub = _PLAYER_SUFFIX.sub("/+", topic) if multi_player else topic
    out = [sub]
    if control_topic and control_topic != sub:
        out.append(control_topic)
    return out


def build_client_id() -> str:
    return f"dorosupi-{secrets.token_hex(4)}"


class MqttTransport:
    """
    Explicit lifecycle around one paho client:

      with MqttTransport(cfg) as t:
          for topic, payload in t.drain(): ...

    Failures never raise out of connect(); they end up in `error` / `status`.
    """

    def __init__(self, cfg: TransportConfig) -> None:
        self.cfg = cfg
        self.connected = False
        self.connecting = False
        self.error: Optional[str] = None

        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._client: Optional[mqtt.Client] = None
        self._topic = cfg.topic
        self._subscribed: List[str] = []

    # -------- status --------

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled

    @property
    def status(self) -> str:
        if not self.enabled:
            return STATUS_DISABLED
        if self.error:
            return self.error
        if self.connected:
            return STATUS_CONNECTED
        if self.connecting:
            return STATUS_CONNECTING
        return STATUS_WAITING

    @property
    def topics(self) -> List[str]:
        return subscription_topics(self._topic, self.cfg.control_topic, multi_player=self.cfg.multi_player)

    # -------- lifecycle --------

    def connect(self) -> bool:
        if not self.enabled:
            self.error = None
            return False
        if self._client is not None:
            return True

        try:
            addr = parse_broker_url(self.cfg.broker_url)
        except ValueError as e:
            self.error = str(e)
            return False

        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=build_client_id(),
            clean_session=True,
            transport=addr.transport,
        )
        if addr.transport == "websockets":
            client.ws_set_options(path=addr.path)
        if addr.tls:
            client.tls_set()
        if self.cfg.username:
            client.username_pw_set(self.cfg.username, self.cfg.password or None)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message

        self.connecting = True
        self.error = None
        try:
            client.connect_async(addr.host, addr.port, keepalive=self.cfg.keepalive_s)
            client.loop_start()
        except (OSError, ValueError) as e:
            self.connecting = False
            self.error = f"MQTT connect failed: {e}"
            print(f"[mqtt] {self.error}")
            return False

        self._client = client
        print(f"[mqtt] connecting {addr.host}:{addr.port} ({addr.transport})")
        return True

    def disconnect(self) -> None:
        client = self._client
        self._client = None
        if client is not None:
            client.disconnect()
            client.loop_stop()
        self._subscribed = []
        self.connected = False
        self.connecting = False

    def resubscribe(self, topic: str) -> None:
        """
        Switch topic template. Old subscriptions go first so nothing is
        delivered twice.

        The bundled app fixes MQTT_TOPIC at startup and never calls this; it
        is for callers that embed the transport and change topics at runtime.
        """
        self._topic = topic
        if self._client is None or not self.connected:
            return
        if self._subscribed:
            self._client.unsubscribe(self._subscribed)
            self._subscribed = []
        self._subscribe(self._client)

    def __enter__(self) -> "MqttTransport":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.disconnect()

    # -------- inbox --------

    def drain(self, limit: Optional[int] = None) -> List[Message]:
        out: List[Message] = []
        while limit is None or len(out) < limit:
            try:
                out.append(self._inbox.get_nowait())
            except queue.Empty:
                break
        return out

    # -------- paho callbacks (network thread) --------

    def _subscribe(self, client: mqtt.Client) -> None:
        topics = self.topics
        client.subscribe([(t, 0) for t in topics])
        self._subscribed = topics
        print(f"[mqtt] subscribed {topics}")

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        self.connecting = False
        if reason_code.is_failure:
            self.connected = False
            self.error = f"MQTT connect refused: {reason_code}"
            print(f"[mqtt] {self.error}")
            return
        self.connected = True
        self.error = None
        self._subscribe(client)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self.connected = False
        self.connecting = False
        if reason_code.is_failure:
            print(f"[mqtt] disconnected: {reason_code}")

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        for rc in reason_code_list:
            if rc.is_failure:
                self.error = f"MQTT subscribe failed: {rc}"
                print(f"[mqtt] {self.error}")

    def _on_message(self, client, userdata, msg) -> None:
        payload = bytes(msg.payload or b"")
        if self.cfg.log_rx:
            print("RX_RAW :", msg.topic, _escape_bytes(payload))
        self._inbox.put((msg.topic, payload))
