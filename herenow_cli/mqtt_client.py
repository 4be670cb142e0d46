"""
MQTT client wrapper for sending commands to the HereNow service.

Handles MQTT connection, publishing, optional reply waiting and
disconnection.
"""

import json
import threading
import uuid
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    MQTT client for sending commands to the HereNow service.

    Publishes commands to the control plane topic with QoS 1. When a
    reply topic is given, waits for the reply carrying the same
    request_id.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

        self._reply: Optional[Dict[str, Any]] = None
        self._reply_event = threading.Event()
        self._request_id: Optional[str] = None

    def _on_message(self, client, userdata, msg) -> None:
        try:
            reply = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return
        if isinstance(reply, dict) and reply.get("request_id") == self._request_id:
            self._reply = reply
            self._reply_event.set()

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        reply_topic: Optional[str] = None,
        timeout: float = 5.0,
    ) -> Optional[Dict[str, Any]]:
        """
        Send command to MQTT topic.

        Args:
            topic: Command topic (e.g., "herenow/sf-mission/commands")
            command: Command dictionary (JSON serialized)
            qos: Quality of Service (default: 1 for control commands)
            reply_topic: Wait for the service's reply on this topic
            timeout: Seconds to wait for the reply

        Returns:
            The reply dict, or None when not waiting (or timed out)

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            ValueError: If command serialization fails
        """
        command = dict(command)
        self._request_id = command.setdefault("request_id", uuid.uuid4().hex)
        self._reply = None
        self._reply_event.clear()

        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except ConnectionRefusedError:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            )

        try:
            self.client.loop_start()
            if reply_topic:
                self.client.on_message = self._on_message
                self.client.subscribe(reply_topic, qos=1)

            result = self.client.publish(topic, payload, qos=qos)
            result.wait_for_publish(timeout=timeout)
            print(f"✅ Command sent: {command.get('command', 'unknown')}")

            if reply_topic and not self._reply_event.wait(timeout=timeout):
                print(f"⚠️  No reply within {timeout}s")
            return self._reply
        finally:
            self.client.loop_stop()
            self.client.disconnect()
