"""pulsewatch: HTTP endpoint health monitoring with transition alerts."""

__version__ = "0.1.0"

from .errors import (
    ConfigurationError,
    InvalidTargetError,
    MonitorTaskError,
    NotificationError,
    PulsewatchError,
)
from .models import HealthStatus, MonitoringSnapshot, ProbeResult, Target, TargetUpdate
from .monitor import ServiceMonitor
from .notifications import NotificationDispatcher
from .probe import check_target
from .state import MonitoringState
from .supervisor import MonitoringSupervisor

__all__ = [
    "ConfigurationError",
    "HealthStatus",
    "InvalidTargetError",
    "MonitorTaskError",
    "MonitoringSnapshot",
    "MonitoringState",
    "MonitoringSupervisor",
    "NotificationDispatcher",
    "NotificationError",
    "ProbeResult",
    "PulsewatchError",
    "ServiceMonitor",
    "Target",
    "TargetUpdate",
    "check_target",
]
