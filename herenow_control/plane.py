"""
MQTT Control Plane
==================

Bounded Context: The service's remote surface over MQTT.

A running HereNow service listens on one command topic and answers on two:

    herenow/<service_id>/commands   <- JSON commands (QoS 1)
    herenow/<service_id>/status     -> lifecycle + transitions/taps (QoS 1, retained)
    herenow/<service_id>/replies    -> one reply per command (QoS 1)

paho-mqtt owns its network thread (loop_start/loop_stop). _on_message
only parses the payload; running the command is handed to ``dispatch``,
which the service binds to ``loop.call_soon_threadsafe`` so scheduler,
monitor and cache state is only mutated from the event loop thread.
"""

import json
import logging
from datetime import datetime
from threading import Event
from typing import Any, Callable, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandNotAvailableError, CommandRegistry

logger = logging.getLogger(__name__)

Dispatcher = Callable[[Callable[[], None]], Any]


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


class MQTTControlPlane:
    """
    Receives commands, runs them through a CommandRegistry, publishes replies.

    Command:
        {"command": "cancel", "notification_id": "n1", "request_id": "abc"}

    Reply (reply_topic, only when one is configured):
        {"command": "cancel", "request_id": "abc", "ok": true, "result": ...}
        {"command": "cancel", "request_id": "abc", "ok": false, "error": "..."}

    Example:
        plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="herenow/svc-1/commands",
            status_topic="herenow/svc-1/status",
            reply_topic="herenow/svc-1/replies",
            client_id="herenow_svc-1_control",
            dispatch=loop.call_soon_threadsafe,
        )
        plane.command_registry.register('status', service.status, "Service status")
        plane.connect(timeout=5.0)
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        reply_topic: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        dispatch: Optional[Dispatcher] = None,
        registry: Optional[CommandRegistry] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.reply_topic = reply_topic
        self.client_id = client_id
        self.dispatch = dispatch or _run_inline
        self.command_registry = registry or CommandRegistry()

        self._connected = Event()
        self._loop_started = False

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

    # ===== Lifecycle =====

    def connect(self, timeout: float = 5.0) -> bool:
        """Start the network loop and block until CONNACK or timeout."""
        endpoint = f"{self.broker_host}:{self.broker_port}"
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Control plane could not reach {endpoint}: {e}")
            return False

        self.client.loop_start()
        self._loop_started = True

        if not self._connected.wait(timeout=timeout):
            logger.error(f"❌ No CONNACK from {endpoint} within {timeout}s")
            return False
        logger.info(f"🛰️ Control plane online at {endpoint}")
        return True

    def disconnect(self) -> None:
        """Idempotent."""
        if not self._loop_started:
            return
        self.publish_status("disconnected")
        self.client.loop_stop()
        self.client.disconnect()
        self._loop_started = False
        self._connected.clear()
        logger.info("🛰️ Control plane offline")

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ===== Outbound =====

    def _publish_json(self, topic: str, body: Dict[str, Any], retain: bool = False) -> None:
        try:
            self.client.publish(topic, json.dumps(body, default=str), qos=1, retain=retain)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"❌ Publish to {topic} failed: {e}")

    def publish_status(self, status: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Retained, so a late subscriber sees the last state. Callable from any thread."""
        message: Dict[str, Any] = {
            "status": status,
            "timestamp": datetime.now().astimezone().isoformat(),
            "client_id": self.client_id,
        }
        if details:
            message["details"] = details
        self._publish_json(self.status_topic, message, retain=True)

    def publish_reply(self, reply: Dict[str, Any]) -> None:
        if self.reply_topic:
            self._publish_json(self.reply_topic, reply)

    # ===== Command execution =====

    def handle_command(self, command_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one decoded command and publish its reply.

        Validation errors (ValueError, KeyError, TypeError) and unknown
        commands become ``ok: false`` replies; anything else is logged with
        a traceback and reported the same way so the service keeps running.
        """
        name = str(command_data.get('command', '')).lower()
        reply: Dict[str, Any] = {"command": name, "request_id": command_data.get('request_id')}

        try:
            result = self.command_registry.execute(name, command_data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            reply.update(ok=False, error=str(e))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"⚠️ Rejected '{name}': {e}")
            reply.update(ok=False, error=f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.error(f"❌ Handler for '{name}' raised", exc_info=True)
            reply.update(ok=False, error=f"{type(e).__name__}: {e}")
        else:
            logger.info(f"🎯 {name} ok")
            reply.update(ok=True, result=result)

        self.publish_reply(reply)
        return reply

    # ===== paho callbacks (network thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Broker refused control plane: {reason_code}")
            self._connected.clear()
            return
        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Listening on {self.command_topic}")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self._connected.clear()
        if reason_code.is_failure:
            logger.warning(f"⚠️ Control plane lost broker: {reason_code}")

    def _on_message(self, client, userdata, msg):
        try:
            command_data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Undecodable command on {msg.topic}: {e}")
            return

        if not isinstance(command_data, dict) or not command_data.get('command'):
            logger.warning(f"⚠️ Ignoring message without 'command' on {msg.topic}")
            return

        self.dispatch(lambda: self.handle_command(command_data))
