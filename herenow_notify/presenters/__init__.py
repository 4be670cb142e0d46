"""
Presenters
==========

    BasePresenter (abstract)
        ↓
    MemoryPresenter (tests, local runs), MQTTPresenter (device fan-out)
"""

from .base import BasePresenter, TapListener
from .memory import MemoryPresenter
from .mqtt import MQTTPresenter

__all__ = [
    'BasePresenter',
    'TapListener',
    'MemoryPresenter',
    'MQTTPresenter',
]
