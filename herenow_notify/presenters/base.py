"""
Base Presenter
==============

Bounded Context: Notification presentation primitive.

A presenter displays a notification, reports permission state and
forwards tap acknowledgements to a single listener (the scheduler).

Architecture:
    BasePresenter (abstract)
        ↓
    MemoryPresenter, MQTTPresenter (concrete)
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..schemas import NotificationRequest

TapListener = Callable[[NotificationRequest], None]


class BasePresenter(ABC):
    """
    Abstract base class for presenters.

    Subclasses implement present() and has_permission().
    """

    def __init__(self):
        self._tap_listener: Optional[TapListener] = None
        self._presented_count = 0

    @abstractmethod
    def present(self, request: NotificationRequest) -> bool:
        """
        Display a notification.

        Returns:
            True if the notification was handed to the user's device
        """
        raise NotImplementedError("Subclasses must implement present()")

    @abstractmethod
    def has_permission(self) -> bool:
        raise NotImplementedError("Subclasses must implement has_permission()")

    def request_permission(self) -> bool:
        """Ask for permission. Default: report current state."""
        return self.has_permission()

    def set_tap_listener(self, listener: Optional[TapListener]) -> None:
        self._tap_listener = listener

    def acknowledge(self, request: NotificationRequest) -> None:
        """User tapped a delivered notification."""
        if self._tap_listener is not None:
            self._tap_listener(request)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'presenter': type(self).__name__,
            'presented_count': self._presented_count,
            'permission': self.has_permission(),
        }
