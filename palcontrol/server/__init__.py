from .enums import RunState
from .lock import OperationBusyError, OperationLock
from .monitor import MonitorLoop, MonitorStatus
from .orchestrator import ServerOrchestrator
from .protocols import (
    LifecycleTimings,
    ShutdownOutcome,
    StartResult,
    StartupError,
    graceful_shutdown,
    start_server,
)
from .server_state import ServerStateTracker

__all__ = [
    "LifecycleTimings",
    "MonitorLoop",
    "MonitorStatus",
    "OperationBusyError",
    "OperationLock",
    "RunState",
    "ServerOrchestrator",
    "ServerStateTracker",
    "ShutdownOutcome",
    "StartResult",
    "StartupError",
    "graceful_shutdown",
    "start_server",
]
