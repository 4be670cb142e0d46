"""
Notification Scheduler
======================

Bounded Context: Gate and time-shift notification delivery.

Delivery path (shared by show_now, timers and the geofence bridge):
    1. preferences.enabled            -> SUPPRESSED_DISABLED
    2. preferences.categories[cat]    -> SUPPRESSED_CATEGORY
    3. quiet hours (local wall clock) -> SUPPRESSED_QUIET_HOURS
    4. presenter permission           -> NO_PERMISSION
    5. presenter.present()            -> DELIVERED / FAILED

Suppression is a no-op, never an exception. Every outcome is returned
and kept in a short history.

Scheduling:
- delay <= 0 at schedule() time: discarded
- one armed timer per pending id; scheduling an id again replaces it
- repeating schedules re-arm at scheduled_time + interval, same id
- the pending set is persisted on every change and rehydrated at
  construction; past-due entries are dropped without delivery
"""

from collections import OrderedDict, deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from herenow_logging import LogEvent, StructuredLogger, create_logger
from herenow_store import Clock, KeyedStore, StorageKey

from .presenters import BasePresenter
from .schemas import (
    LocationNotification,
    NotificationPreferences,
    NotificationRequest,
    ScheduledNotification,
)
from .timers import TimerQueue

DEFAULT_ICON = "/favicon.ico"
HISTORY_SIZE = 100

TapHandler = Callable[[NotificationRequest], None]


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    SUPPRESSED_DISABLED = "suppressed_disabled"
    SUPPRESSED_CATEGORY = "suppressed_category"
    SUPPRESSED_QUIET_HOURS = "suppressed_quiet_hours"
    NO_PERMISSION = "no_permission"
    FAILED = "failed"

    @property
    def delivered(self) -> bool:
        return self is DeliveryOutcome.DELIVERED


@dataclass(frozen=True)
class DeliveryRecord:
    notification_id: str
    outcome: DeliveryOutcome
    at: datetime
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'notification_id': self.notification_id,
            'outcome': self.outcome.value,
            'at': self.at.isoformat(),
            'source': self.source,
        }


class NotificationScheduler:
    """
    Preference-gated delivery, timers, persistence and tap fan-out.

    Usage:
        scheduler = NotificationScheduler(store, clock, timers, presenter)
        scheduler.show_now(request)                         # DeliveryOutcome
        scheduler.schedule(ScheduledNotification(request, at))
        scheduler.register_tap_handler(lambda r: print(r.id))
    """

    def __init__(
        self,
        store: KeyedStore,
        clock: Clock,
        timers: TimerQueue,
        presenter: BasePresenter,
        logger: Optional[StructuredLogger] = None,
        default_icon: str = DEFAULT_ICON,
    ):
        self.store = store
        self.clock = clock
        self.timers = timers
        self.presenter = presenter
        self.logger = logger or create_logger("scheduler")
        self.default_icon = default_icon

        self._pending: Dict[str, Tuple[ScheduledNotification, Any]] = {}
        self._location: Dict[str, LocationNotification] = {}
        self._tap_handlers: List[TapHandler] = []
        self.history: Deque[DeliveryRecord] = deque(maxlen=HISTORY_SIZE)
        self._recent: "OrderedDict[str, NotificationRequest]" = OrderedDict()

        self._preferences = self._load_preferences()
        self.presenter.set_tap_listener(self.handle_tap)
        self._restore()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def _load_preferences(self) -> NotificationPreferences:
        raw = self.store.get(StorageKey.NOTIFICATION_PREFS)
        if raw is None:
            return NotificationPreferences()
        try:
            return NotificationPreferences.from_dict(raw)
        except ValueError as e:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Ignoring malformed notification preferences",
                exc_info=e,
            )
            return NotificationPreferences()

    def get_preferences(self) -> NotificationPreferences:
        return self._preferences

    def set_preferences(self, preferences: NotificationPreferences) -> None:
        if not isinstance(preferences, NotificationPreferences):
            raise ValueError(f"Expected NotificationPreferences, got {type(preferences).__name__}")
        self._preferences = preferences
        self.store.set(StorageKey.NOTIFICATION_PREFS, preferences.to_dict())
        self.logger.info(
            event=LogEvent.PREFERENCES_UPDATED,
            message="Notification preferences updated",
            metadata=preferences.to_dict(),
        )

    def update_preferences(self, changes: Dict[str, Any]) -> NotificationPreferences:
        """Merge changes into the current preferences and persist."""
        preferences = self._preferences.updated(changes)
        self.set_preferences(preferences)
        return preferences

    def is_quiet_hours(self) -> bool:
        return self._preferences.is_quiet_at(self.clock.now())

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------

    def request_permission(self) -> bool:
        return self.presenter.request_permission()

    def has_permission(self) -> bool:
        return self.presenter.has_permission()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _gate(self, request: NotificationRequest) -> Optional[DeliveryOutcome]:
        prefs = self._preferences
        if not prefs.enabled:
            return DeliveryOutcome.SUPPRESSED_DISABLED
        if not prefs.category_enabled(request.category):
            return DeliveryOutcome.SUPPRESSED_CATEGORY
        if prefs.is_quiet_at(self.clock.now()):
            return DeliveryOutcome.SUPPRESSED_QUIET_HOURS
        if not self.presenter.has_permission():
            return DeliveryOutcome.NO_PERMISSION
        return None

    def _deliver(self, request: NotificationRequest, source: str) -> DeliveryOutcome:
        outcome = self._gate(request)

        if outcome is None:
            try:
                presented = self.presenter.present(request.with_default_icon(self.default_icon))
                outcome = DeliveryOutcome.DELIVERED if presented else DeliveryOutcome.FAILED
            except Exception as e:
                self.logger.error(
                    event=LogEvent.CALLBACK_ERROR,
                    message="Presenter failed",
                    metadata={'notification_id': request.id},
                    exc_info=e,
                )
                outcome = DeliveryOutcome.FAILED

        self.history.append(DeliveryRecord(request.id, outcome, self.clock.now(), source))

        metadata = {
            'notification_id': request.id,
            'category': request.category.value,
            'outcome': outcome.value,
            'source': source,
        }
        if outcome.delivered:
            self._recent[request.id] = request
            self._recent.move_to_end(request.id)
            while len(self._recent) > HISTORY_SIZE:
                self._recent.popitem(last=False)
            self.logger.info(
                event=LogEvent.NOTIFICATION_DELIVERED,
                message="Delivered notification",
                metadata=metadata,
            )
        else:
            self.logger.info(
                event=LogEvent.NOTIFICATION_SUPPRESSED,
                message="Notification not delivered",
                metadata=metadata,
            )
        return outcome

    def show_now(self, request: NotificationRequest) -> DeliveryOutcome:
        """Deliver immediately, subject to preferences and quiet hours."""
        return self._deliver(request, source="immediate")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, scheduled: ScheduledNotification) -> bool:
        """
        Arm a timer for scheduled.scheduled_time.

        Returns:
            False if the time is not in the future (nothing armed)
        """
        if not self._arm(scheduled):
            return False
        self._persist()
        return True

    def _arm(self, scheduled: ScheduledNotification) -> bool:
        delay = (scheduled.scheduled_time - self.clock.now()).total_seconds()
        if delay <= 0:
            self.logger.debug(
                event=LogEvent.NOTIFICATION_DISCARDED,
                message="Scheduled time has passed; discarded",
                metadata={'notification_id': scheduled.id, 'scheduled_time': scheduled.scheduled_time.isoformat()},
            )
            return False

        previous = self._pending.pop(scheduled.id, None)
        if previous is not None:
            self.timers.cancel(previous[1])

        handle = self.timers.arm(delay, lambda: self._fire(scheduled))
        self._pending[scheduled.id] = (scheduled, handle)

        self.logger.info(
            event=LogEvent.NOTIFICATION_SCHEDULED,
            message="Scheduled notification",
            metadata={
                'notification_id': scheduled.id,
                'scheduled_time': scheduled.scheduled_time.isoformat(),
                'delay_s': round(delay, 3),
                'repeat': scheduled.repeat_interval.value if scheduled.repeating else None,
            },
        )
        return True

    def _fire(self, scheduled: ScheduledNotification) -> None:
        entry = self._pending.get(scheduled.id)
        if entry is None or entry[0] is not scheduled:
            # Cancelled or replaced after the timer was handed out
            return
        del self._pending[scheduled.id]

        self._deliver(scheduled.request, source="scheduled")

        if scheduled.repeating:
            following = scheduled.next_occurrence()
            # Skip occurrences already in the past (no catch-up delivery)
            while following.scheduled_time <= self.clock.now():
                following = following.next_occurrence()
            self._arm(following)

        self._persist()

    def cancel(self, notification_id: str) -> bool:
        """Disarm a pending notification. Returns False if none was pending."""
        entry = self._pending.pop(notification_id, None)
        if entry is None:
            return False
        self.timers.cancel(entry[1])
        self._persist()
        self.logger.info(
            event=LogEvent.NOTIFICATION_CANCELLED,
            message="Cancelled scheduled notification",
            metadata={'notification_id': notification_id},
        )
        return True

    def cancel_all(self) -> int:
        """Disarm every pending timer and clear persisted schedule state."""
        count = len(self._pending)
        for _, handle in self._pending.values():
            self.timers.cancel(handle)
        self._pending.clear()
        self.store.remove(StorageKey.SCHEDULED_NOTIFICATIONS)
        self.logger.info(
            event=LogEvent.NOTIFICATION_CANCELLED,
            message="Cancelled all scheduled notifications",
            metadata={'count': count},
        )
        return count

    def forget_user_state(self) -> None:
        """
        Drop in-memory preferences and location registrations.

        Called after the namespace is wiped so the scheduler matches what a
        fresh start would load: default preferences, no location triggers.
        Nothing is written to storage.
        """
        self._preferences = NotificationPreferences()
        self._location.clear()

    def pending(self) -> List[ScheduledNotification]:
        """Pending schedules ordered by scheduled time."""
        return sorted(
            (scheduled for scheduled, _ in self._pending.values()),
            key=lambda s: s.scheduled_time,
        )

    def get_pending(self, notification_id: str) -> Optional[ScheduledNotification]:
        entry = self._pending.get(notification_id)
        return entry[0] if entry else None

    def _persist(self) -> None:
        self.store.set(
            StorageKey.SCHEDULED_NOTIFICATIONS,
            [scheduled.to_dict() for scheduled in self.pending()],
        )

    def _restore(self) -> None:
        raw = self.store.get(StorageKey.SCHEDULED_NOTIFICATIONS)
        if raw is None:
            return
        if not isinstance(raw, list):
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Ignoring malformed persisted schedule",
            )
            self.store.remove(StorageKey.SCHEDULED_NOTIFICATIONS)
            return

        restored = dropped = 0
        for item in raw:
            try:
                scheduled = ScheduledNotification.from_dict(item)
            except (ValueError, TypeError) as e:
                self.logger.warning(
                    event=LogEvent.DESERIALIZATION_ERROR,
                    message="Skipping malformed scheduled notification",
                    exc_info=e,
                )
                dropped += 1
                continue
            if self._arm(scheduled):
                restored += 1
            else:
                dropped += 1

        self._persist()
        self.logger.info(
            event=LogEvent.NOTIFICATION_RESTORED,
            message="Restored scheduled notifications",
            metadata={'restored': restored, 'dropped': dropped},
        )

    # ------------------------------------------------------------------
    # Location-triggered notifications
    # ------------------------------------------------------------------

    def register_location_notification(self, notification: LocationNotification) -> None:
        """Add to the registry (same id replaces)."""
        if not isinstance(notification, LocationNotification):
            raise ValueError(f"Expected LocationNotification, got {type(notification).__name__}")
        self._location[notification.id] = notification

    def unregister_location_notification(self, notification_id: str) -> bool:
        return self._location.pop(notification_id, None) is not None

    def location_notifications(self) -> List[LocationNotification]:
        return list(self._location.values())

    def deliver_location_notification(self, notification: LocationNotification) -> DeliveryOutcome:
        return self._deliver(notification.request, source=f"geofence:{notification.geofence_id}")

    # ------------------------------------------------------------------
    # Taps
    # ------------------------------------------------------------------

    def register_tap_handler(self, handler: TapHandler) -> None:
        self._tap_handlers.append(handler)

    def acknowledge(self, notification_id: str) -> bool:
        """
        Tap on a recently delivered notification, by id.

        Returns:
            False if no delivery with that id is remembered
        """
        request = self._recent.get(notification_id)
        if request is None:
            return False
        self.handle_tap(request)
        return True

    def handle_tap(self, request: NotificationRequest) -> None:
        """Run every tap handler, in registration order."""
        self.logger.info(
            event=LogEvent.NOTIFICATION_TAPPED,
            message="Notification tapped",
            metadata={'notification_id': request.id, 'handlers': len(self._tap_handlers)},
        )
        for handler in list(self._tap_handlers):
            try:
                handler(request)
            except Exception as e:
                self.logger.error(
                    event=LogEvent.CALLBACK_ERROR,
                    message="Tap handler failed",
                    metadata={'notification_id': request.id},
                    exc_info=e,
                )

    def get_stats(self) -> Dict[str, Any]:
        delivered = sum(1 for record in self.history if record.outcome.delivered)
        return {
            'pending': len(self._pending),
            'location_notifications': len(self._location),
            'tap_handlers': len(self._tap_handlers),
            'recent_delivered': delivered,
            'recent_suppressed': len(self.history) - delivered,
            'quiet_hours': self.is_quiet_hours(),
        }
