"""
In-memory presenter: records deliveries and simulates taps and permission.
"""

from collections import deque
from typing import Deque, List, Optional

from ..schemas import NotificationRequest
from .base import BasePresenter

DELIVERED_LIMIT = 100


class MemoryPresenter(BasePresenter):
    """
    Presenter that keeps the most recent deliveries (``limit``, default 100).

    Usage:
        presenter = MemoryPresenter()
        scheduler = NotificationScheduler(..., presenter=presenter)
        scheduler.show_now(request)
        presenter.delivered_ids  # ["daily-reveal"]
        presenter.tap("daily-reveal")  # runs tap handlers
    """

    def __init__(
        self,
        permission: bool = True,
        grant_on_request: bool = True,
        limit: int = DELIVERED_LIMIT,
    ):
        super().__init__()
        self.permission = permission
        self.grant_on_request = grant_on_request
        self._delivered: Deque[NotificationRequest] = deque(maxlen=limit)

    @property
    def delivered(self) -> List[NotificationRequest]:
        return list(self._delivered)

    def present(self, request: NotificationRequest) -> bool:
        self._delivered.append(request)
        self._presented_count += 1
        return True

    def has_permission(self) -> bool:
        return self.permission

    def request_permission(self) -> bool:
        if not self.permission and self.grant_on_request:
            self.permission = True
        return self.permission

    @property
    def delivered_ids(self) -> List[str]:
        return [request.id for request in self.delivered]

    def find(self, notification_id: str) -> Optional[NotificationRequest]:
        """Most recent delivery with this id."""
        for request in reversed(self._delivered):
            if request.id == notification_id:
                return request
        return None

    def tap(self, notification_id: str) -> bool:
        """
        Simulate a user tap on a delivered notification.

        Returns:
            False if nothing with that id was delivered
        """
        request = self.find(notification_id)
        if request is None:
            return False
        self.acknowledge(request)
        return True

    def clear(self) -> None:
        self._delivered.clear()
