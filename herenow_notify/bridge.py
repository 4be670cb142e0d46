"""
Geofence -> Notification Bridge
===============================

Routes geofence transitions into the scheduler's delivery path for
location-triggered notifications. Holds no state of its own.
"""

from typing import Dict, Iterable, List

from herenow_geofence import GeofenceEvent, GeofenceMonitor, GeofenceRegion

from .scheduler import DeliveryOutcome, NotificationScheduler
from .schemas import LocationNotification


def match_location_notifications(
    region_id: str,
    event: GeofenceEvent,
    registry: Iterable[LocationNotification],
) -> List[LocationNotification]:
    """Entries for region_id whose trigger is BOTH or equals event."""
    return [notification for notification in registry if notification.matches(region_id, event)]


class GeofenceNotificationBridge:
    """
    Connects GeofenceMonitor output to NotificationScheduler input.

    Usage:
        bridge = GeofenceNotificationBridge(scheduler)
        bridge.attach(monitor)
    """

    def __init__(self, scheduler: NotificationScheduler):
        self.scheduler = scheduler

    def attach(self, monitor: GeofenceMonitor) -> None:
        monitor.add_transition_listener(self.on_transition)

    def detach(self, monitor: GeofenceMonitor) -> None:
        monitor.remove_transition_listener(self.on_transition)

    def on_transition(self, region: GeofenceRegion, event: GeofenceEvent) -> Dict[str, DeliveryOutcome]:
        """
        Deliver every matching location notification.

        Returns:
            notification id -> outcome
        """
        matches = match_location_notifications(
            region.id, event, self.scheduler.location_notifications()
        )
        return {
            notification.id: self.scheduler.deliver_location_notification(notification)
            for notification in matches
        }
