"""
Delivery - Request-driven publish state machine
"""
from .modes import DeliveryMode, DeliveryRequest
from .interfaces import FrameSink, FrameSource, TimerHandle, TimerService
from .timers import PeriodicTimer, ThreadingTimerService
from .coordinator import DeliveryCoordinator, NoDataYet, DEFAULT_MAX_PUBLISH_FREQUENCY

__all__ = [
    # Modes
    "DeliveryMode",
    "DeliveryRequest",
    # Interfaces
    "FrameSource",
    "FrameSink",
    "TimerService",
    "TimerHandle",
    # Timers
    "PeriodicTimer",
    "ThreadingTimerService",
    # Coordinator
    "DeliveryCoordinator",
    "NoDataYet",
    "DEFAULT_MAX_PUBLISH_FREQUENCY",
]
