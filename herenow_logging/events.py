"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging.

Event Naming Convention:
    <component>.<category>.<action>

    component: storage, cache, geofence, location, notification, mqtt, error
    category: probe, transition, scheduled, delivered, ...
    action: success, failed, dropped, ...

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.notification_id
    | filter event = "notification.suppressed"
    | stats count() by metadata.reason
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - storage.*: Keyed store interactions
    - cache.*: Day-scoped cache behaviour
    - geofence.*: Region registry and transitions
    - location.*: Position source interactions
    - notification.*: Scheduling and delivery
    - mqtt.*: MQTT broker interactions
    - error.*: Error conditions
    """

    # ========== Storage Events ==========
    STORAGE_AVAILABLE = "storage.probe.success"
    """Probe write/read succeeded at startup."""

    STORAGE_UNAVAILABLE = "storage.probe.failed"
    """Probe failed; store runs in degraded (always empty) mode."""

    STORAGE_CLEARED = "storage.cleared"
    """All keys under the namespace prefix removed."""

    # ========== Cache Events ==========
    CACHE_STALE = "cache.stale"
    """Day-scoped entry found with an old day stamp."""

    CACHE_COUNTER_RESET = "cache.counter.reset"
    """Daily counter restarted for a new day."""

    # ========== Geofence Events ==========
    GEOFENCE_REGISTERED = "geofence.registered"
    """Region added to the monitor."""

    GEOFENCE_UNREGISTERED = "geofence.unregistered"
    """Region removed from the monitor."""

    GEOFENCE_TRANSITION = "geofence.transition"
    """Region enter/exit fired."""

    # ========== Location Events ==========
    LOCATION_UPDATED = "location.updated"
    """New position sample accepted."""

    LOCATION_WATCH_STARTED = "location.watch.started"
    """Continuous updates subscription started."""

    LOCATION_WATCH_STOPPED = "location.watch.stopped"
    """Continuous updates subscription stopped."""

    LOCATION_FAILED = "location.failed"
    """One-shot read or stream update failed."""

    # ========== Notification Events ==========
    NOTIFICATION_DELIVERED = "notification.delivered"
    """Notification handed to the presenter."""

    NOTIFICATION_SUPPRESSED = "notification.suppressed"
    """Notification blocked by preferences, quiet hours or permission."""

    NOTIFICATION_SCHEDULED = "notification.scheduled"
    """Timer armed for a scheduled notification."""

    NOTIFICATION_DISCARDED = "notification.discarded"
    """Scheduled time already passed; request dropped."""

    NOTIFICATION_CANCELLED = "notification.cancelled"
    """Pending schedule disarmed."""

    NOTIFICATION_RESTORED = "notification.restored"
    """Pending schedules rehydrated from storage."""

    NOTIFICATION_TAPPED = "notification.tapped"
    """Delivered notification acknowledged by the user."""

    PREFERENCES_UPDATED = "notification.preferences.updated"
    """Notification preferences replaced and persisted."""

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Error Events ==========
    STORAGE_ERROR = "error.storage"
    """Backend raised during a read/write."""

    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize a value to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Persisted data could not be decoded; treated as absent."""

    CALLBACK_ERROR = "error.callback"
    """A subscriber callback raised."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
STORAGE_EVENTS = {
    LogEvent.STORAGE_AVAILABLE,
    LogEvent.STORAGE_UNAVAILABLE,
    LogEvent.STORAGE_CLEARED,
    LogEvent.CACHE_STALE,
    LogEvent.CACHE_COUNTER_RESET,
}

GEOFENCE_EVENTS = {
    LogEvent.GEOFENCE_REGISTERED,
    LogEvent.GEOFENCE_UNREGISTERED,
    LogEvent.GEOFENCE_TRANSITION,
    LogEvent.LOCATION_UPDATED,
    LogEvent.LOCATION_WATCH_STARTED,
    LogEvent.LOCATION_WATCH_STOPPED,
    LogEvent.LOCATION_FAILED,
}

NOTIFICATION_EVENTS = {
    LogEvent.NOTIFICATION_DELIVERED,
    LogEvent.NOTIFICATION_SUPPRESSED,
    LogEvent.NOTIFICATION_SCHEDULED,
    LogEvent.NOTIFICATION_DISCARDED,
    LogEvent.NOTIFICATION_CANCELLED,
    LogEvent.NOTIFICATION_RESTORED,
    LogEvent.NOTIFICATION_TAPPED,
    LogEvent.PREFERENCES_UPDATED,
}

MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

ERROR_EVENTS = {
    LogEvent.STORAGE_ERROR,
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.CALLBACK_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
