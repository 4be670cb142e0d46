"""
HereNow Service - Command-driven host for the core.

This module provides the HereNowService class which exposes the core
(daily event store, geofence monitor, notification scheduler) through
the MQTT control plane.

Threading Model:
- asyncio event loop thread: owns every core component; timers
  (AsyncioTimerQueue) and command handlers run here
- paho-mqtt network threads (control plane, MQTT presenter): only
  decode messages and hand them to the loop via call_soon_threadsafe

Position samples arrive as ``location_sample`` commands and are pushed
into the service's ManualPositionSource, which feeds the monitor's
continuous subscription.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from herenow_geofence import GeofenceEvent, GeofenceRegion, LocationSample, ManualPositionSource
from herenow_notify import (
    LocationNotification,
    NotificationRequest,
    ScheduledNotification,
)
from herenow_notify.schemas import parse_timestamp

from herenow_app.config import AppConfig, RegionConfig
from herenow_app.context import ServiceContext

logger = logging.getLogger(__name__)


class HereNowService:
    """
    Main HereNow service.

    Usage:
        context = build_context(...)
        control_plane = MQTTControlPlane(..., dispatch=loop.call_soon_threadsafe)
        service = HereNowService(config, context, control_plane)
        service.setup()
        await service.serve()  # until stop()
    """

    def __init__(
        self,
        config: AppConfig,
        context: ServiceContext,
        control_plane,  # MQTTControlPlane
    ):
        self.config = config
        self.context = context
        self.control_plane = control_plane

        self._stop_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._setup_done = False

        logger.info(f"HereNowService initialized for service_id={config.service_id}")

    # ─────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────

    def setup(self) -> None:
        """Register regions, hooks and control commands. Call once."""
        if self._setup_done:
            logger.warning("Service already set up")
            return

        self._initialize_regions()

        self.context.monitor.add_transition_listener(self._on_transition)
        self.context.scheduler.register_tap_handler(self._on_tap)

        self._setup_control_handlers()
        self._setup_done = True
        logger.info("Service setup complete")

    def _initialize_regions(self) -> None:
        for region_config in self.config.regions:
            region = region_config.to_region()
            self.context.monitor.register_region(region)
            logger.info(
                f"Initialized region: {region.id} "
                f"(radius={region.radius_meters}m, center={region.center.to_dict()})"
            )

    def _setup_control_handlers(self) -> None:
        registry = self.control_plane.command_registry

        # Location
        registry.register("location_sample", self._handle_location_sample, "Feed a position sample")
        registry.register("register_region", self._handle_register_region, "Register a geofence")
        registry.register("unregister_region", self._handle_unregister_region, "Unregister a geofence")
        registry.register("list_regions", self._handle_list_regions, "List geofences")

        # Notifications
        registry.register("show", self._handle_show, "Show a notification now")
        registry.register("schedule", self._handle_schedule, "Schedule a notification")
        registry.register("cancel", self._handle_cancel, "Cancel a scheduled notification")
        registry.register("cancel_all", self._handle_cancel_all, "Cancel all scheduled notifications")
        registry.register("pending", self._handle_pending, "List pending notifications")
        registry.register(
            "register_location_notification",
            self._handle_register_location_notification,
            "Register a location-triggered notification",
        )
        registry.register(
            "unregister_location_notification",
            self._handle_unregister_location_notification,
            "Remove a location-triggered notification",
        )
        registry.register("set_preferences", self._handle_set_preferences, "Update notification preferences")
        registry.register("tap", self._handle_tap, "Acknowledge a delivered notification")

        # Daily event
        registry.register("watch_ad", self._handle_watch_ad, "Record an ad watch")

        # Service
        registry.register("status", self._handle_status, "Service status")
        registry.register("clear", self._handle_clear, "Clear all app data")

        logger.info(f"Control handlers registered ({registry.count()} commands)")

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    async def serve(self) -> None:
        """
        Run until stop() is called.

        Lifecycle:
        1. Connect control plane
        2. Start continuous location updates
        3. Wait for stop
        4. Stop location updates, disconnect control plane
        """
        if not self._setup_done:
            self.setup()

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        self.context.monitor.start_continuous_updates(self._on_sample)
        self.control_plane.publish_status("running", self._status())
        logger.info("✅ HereNow service started")

        try:
            await self._stop_event.wait()
        finally:
            self.context.monitor.stop()
            self.control_plane.publish_status("stopped")
            self.control_plane.disconnect()
            logger.info("✅ HereNow service stopped")

    def stop(self) -> None:
        """Request shutdown. Safe to call from any thread."""
        if self._loop is None or self._stop_event is None:
            return
        self._loop.call_soon_threadsafe(self._stop_event.set)

    # ─────────────────────────────────────────────────────────────────────
    # Hooks (event loop thread)
    # ─────────────────────────────────────────────────────────────────────

    def _on_sample(self, sample: LocationSample) -> None:
        logger.debug(f"Sample processed: {sample.latitude:.6f},{sample.longitude:.6f}")

    def _on_transition(self, region: GeofenceRegion, event: GeofenceEvent) -> None:
        self.control_plane.publish_status(
            "geofence_transition",
            {"region_id": region.id, "event": event.value},
        )

    def _on_tap(self, request: NotificationRequest) -> None:
        self.control_plane.publish_status(
            "notification_tapped",
            {"notification_id": request.id, "action_url": request.action_url},
        )

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (event loop thread)
    # ─────────────────────────────────────────────────────────────────────

    def _handle_location_sample(self, command: Dict) -> Dict[str, Any]:
        sample = LocationSample.from_dict(command, default_timestamp=self.context.clock.now())
        source = self.context.source
        if isinstance(source, ManualPositionSource) and self.context.monitor.is_running:
            source.push(sample)
        else:
            self.context.monitor.evaluate(sample)
        return {"inside": [r.id for r in self.context.monitor.active_regions() if r.is_active]}

    def _handle_register_region(self, command: Dict) -> Dict[str, Any]:
        region = RegionConfig.from_dict(command).to_region()
        self.context.monitor.register_region(region)
        logger.info(f"Region added: {region.id}")
        return region.to_dict()

    def _handle_unregister_region(self, command: Dict) -> Dict[str, Any]:
        removed = self.context.monitor.unregister_region(command["region_id"])
        return {"region_id": command["region_id"], "removed": removed}

    def _handle_list_regions(self, command: Dict) -> List[Dict[str, Any]]:
        return [region.to_dict() for region in self.context.monitor.active_regions()]

    def _handle_show(self, command: Dict) -> Dict[str, Any]:
        request = NotificationRequest.from_dict(command["notification"])
        outcome = self.context.scheduler.show_now(request)
        return {"notification_id": request.id, "outcome": outcome.value}

    def _handle_schedule(self, command: Dict) -> Dict[str, Any]:
        request = NotificationRequest.from_dict(command["notification"])
        if "scheduled_time" in command:
            scheduled_time = parse_timestamp(command["scheduled_time"])
        else:
            scheduled_time = self.context.clock.now() + timedelta(seconds=float(command["delay_s"]))

        scheduled = ScheduledNotification(
            request=request,
            scheduled_time=scheduled_time,
            repeating=bool(command.get("repeating", False)),
            repeat_interval=command.get("repeat_interval"),
        )
        return {
            "notification_id": request.id,
            "scheduled": self.context.scheduler.schedule(scheduled),
            "scheduled_time": scheduled.scheduled_time.isoformat(),
        }

    def _handle_cancel(self, command: Dict) -> Dict[str, Any]:
        notification_id = command["notification_id"]
        return {"notification_id": notification_id, "cancelled": self.context.scheduler.cancel(notification_id)}

    def _handle_cancel_all(self, command: Dict) -> Dict[str, Any]:
        return {"cancelled": self.context.scheduler.cancel_all()}

    def _handle_pending(self, command: Dict) -> List[Dict[str, Any]]:
        return [scheduled.to_dict() for scheduled in self.context.scheduler.pending()]

    def _handle_register_location_notification(self, command: Dict) -> Dict[str, Any]:
        notification = LocationNotification(
            request=NotificationRequest.from_dict(command["notification"]),
            geofence_id=command["geofence_id"],
            trigger=command.get("trigger", "both"),
        )
        self.context.scheduler.register_location_notification(notification)
        return notification.to_dict()

    def _handle_unregister_location_notification(self, command: Dict) -> Dict[str, Any]:
        notification_id = command["notification_id"]
        removed = self.context.scheduler.unregister_location_notification(notification_id)
        return {"notification_id": notification_id, "removed": removed}

    def _handle_set_preferences(self, command: Dict) -> Dict[str, Any]:
        preferences = self.context.scheduler.update_preferences(command["preferences"])
        return preferences.to_dict()

    def _handle_tap(self, command: Dict) -> Dict[str, Any]:
        notification_id = command["notification_id"]
        return {"notification_id": notification_id, "acknowledged": self.context.scheduler.acknowledge(notification_id)}

    def _handle_watch_ad(self, command: Dict) -> Dict[str, Any]:
        events = self.context.events
        count = events.record_ad_watch()
        return {
            "count": count,
            "unlocked": events.is_event_unlocked(),
            "remaining": events.ads_remaining(),
        }

    def _handle_status(self, command: Dict) -> Dict[str, Any]:
        return self._status()

    def _handle_clear(self, command: Dict) -> Dict[str, int]:
        result = self.context.clear()
        logger.info(f"App data cleared: {result}")
        return result

    def _status(self) -> Dict[str, Any]:
        ctx = self.context
        last = ctx.monitor.last_known_location
        return {
            "service_id": self.config.service_id,
            "storage_available": ctx.store.available,
            "location_running": ctx.monitor.is_running,
            "last_known_location": last.to_dict() if last else None,
            "regions": len(ctx.monitor.active_regions()),
            "inside": [r.id for r in ctx.monitor.active_regions() if r.is_active],
            "scheduler": ctx.scheduler.get_stats(),
            "presenter": ctx.presenter.get_stats(),
            "daily_event": {
                "cached": ctx.events.get_cached_daily_event() is not None,
                "ad_watch_count": ctx.events.get_ad_watch_count(),
                "unlocked": ctx.events.is_event_unlocked(),
                "revealed": ctx.events.is_event_revealed(remember=False),
            },
        }
