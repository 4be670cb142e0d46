"""
MQTT Presenter
==============

Bounded Context: Showing notifications on a remote device.

Each delivered notification becomes one JSON message on ``topic``. The
device side (app shell, companion display) renders it, and a tap comes
back through the control plane ``tap`` command. Permission is modelled
as "connected to the broker": a presenter that never connected reports
no permission and the scheduler records NO_PERMISSION.

Payload:
    {
        "id": "daily-reveal",
        "title": "Today's event is live",
        "body": "...",
        "icon": "/favicon.ico",
        "category": "daily_event",
        "action_url": null,
        "data": {},
        "delivered_at": "2025-10-24T08:00:00.000123+00:00"
    }
"""

import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from herenow_logging import LogEvent, StructuredLogger, create_logger

from ..schemas import NotificationRequest
from .base import BasePresenter


class MQTTPresenter(BasePresenter):
    """
    Publishes notifications with paho-mqtt (QoS 1 unless told otherwise).

    paho's network loop runs on its own thread; connection state lives in
    a threading.Event and the delivery counter behind a lock.
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: Optional[StructuredLogger] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        super().__init__()
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.endpoint = f"{broker_host}:{broker_port}"
        self.topic = topic
        self.client_id = client_id
        self.qos = qos
        self.logger = logger or create_logger("presenter")

        self._online = threading.Event()
        self._count_lock = threading.Lock()

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

    # ===== Connection =====

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused notification client: {reason_code}",
                metadata={'broker': self.endpoint},
            )
            return
        self._online.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Notification topic ready",
            metadata={'broker': self.endpoint, 'topic': self.topic, 'client_id': self.client_id},
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._online.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Notification client offline",
            metadata={'broker': self.endpoint, 'reason_code': str(reason_code)},
        )

    def connect(self, timeout: float = 10.0) -> bool:
        try:
            self.client.connect(self.broker_host, self.broker_port)
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Broker unreachable",
                metadata={'broker': self.endpoint},
                exc_info=e,
            )
            return False
        self.client.loop_start()

        if not self._online.wait(timeout=timeout):
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"No CONNACK within {timeout}s",
                metadata={'broker': self.endpoint},
            )
            return False
        return True

    def disconnect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self._online.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Notification client closed",
            metadata={'presented_count': self._presented_count},
        )

    def is_connected(self) -> bool:
        return self._online.is_set()

    # ===== BasePresenter =====

    def has_permission(self) -> bool:
        return self.is_connected()

    def request_permission(self) -> bool:
        return self.is_connected() or self.connect()

    def format_message(self, request: NotificationRequest) -> Dict[str, Any]:
        return {
            'id': request.id,
            'title': request.title,
            'body': request.body,
            'icon': request.image_url,
            'category': request.category.value,
            'action_url': request.action_url,
            'data': request.data or {},
            'delivered_at': datetime.now(timezone.utc).isoformat(),
        }

    def present(self, request: NotificationRequest) -> bool:
        meta = {'topic': self.topic, 'notification_id': request.id}
        if not self.is_connected():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Notification dropped, client offline",
                metadata=meta,
            )
            return False

        payload = json.dumps(self.format_message(request), default=str)
        try:
            info = self.client.publish(self.topic, payload, qos=self.qos)
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Notification publish raised",
                metadata=meta,
                exc_info=e,
            )
            return False

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Notification publish rejected: {mqtt.error_string(info.rc)}",
                metadata=meta,
            )
            return False

        with self._count_lock:
            self._presented_count += 1
        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Notification published",
            metadata={**meta, 'qos': self.qos},
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update(connected=self.is_connected(), topic=self.topic, broker=self.endpoint)
        return stats
