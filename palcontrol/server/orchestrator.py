import logging
from typing import Optional

from palcontrol.launcher import LaunchTarget
from palcontrol.security import sanitize_error_message

from .lock import OperationBusyError, OperationLock
from .monitor import MonitorLoop, MonitorStatus
from .protocols import (
    Launcher,
    LifecycleTimings,
    RemoteControl,
    ShutdownOutcome,
    StartResult,
    StartupError,
    graceful_shutdown,
    start_server,
)
from .server_state import ServerStateTracker, StatusPublisher

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "another operation is in progress"


class ServerOrchestrator:
    """
    Punto de entrada único para arrancar, parar y vigilar el servidor.

    Se construye una vez al iniciar el proceso y es dueño del lock, del tracker
    de estado y del monitor.
    """

    def __init__(
        self,
        client: RemoteControl,
        launcher: Launcher,
        target: LaunchTarget,
        timings: LifecycleTimings,
        publisher: Optional[StatusPublisher] = None,
    ):
        self.client = client
        self.launcher = launcher
        self.target = target
        self.timings = timings
        self.lock = OperationLock()
        self.tracker = ServerStateTracker(info_source=client, publisher=publisher)
        self.monitor = MonitorLoop(
            client=client,
            tracker=self.tracker,
            lock=self.lock,
            shutdown=self.shutdown,
            interval=timings.monitor_interval,
            threshold=timings.idle_threshold,
        )

    async def start_server(self) -> StartResult:
        """Arranque manual, protegido por el lock."""
        try:
            return await self.lock.run(self._start)
        except OperationBusyError:
            return StartResult(started=False, reason="busy", message=BUSY_MESSAGE)

    async def _start(self) -> StartResult:
        try:
            result = await start_server(self.client, self.launcher, self.target, self.timings)
        except StartupError as e:
            message = sanitize_error_message(e)
            logger.warning("Arranque fallido: %s", message)
            return StartResult(started=False, reason="failed", message=message)

        # "already_running" también confirma que está UP, aunque el tracker no lo supiera.
        if result.started or result.reason == "already_running":
            await self.tracker.notify_up()
        return result

    async def shutdown(self) -> ShutdownOutcome:
        """El protocolo de apagado, sin lock. El monitor lo ejecuta bajo su propio lock.run()."""
        return await graceful_shutdown(self.client, self.tracker, self.timings)

    async def stop_server(self) -> ShutdownOutcome:
        """Parada manual, protegida por el lock."""
        try:
            return await self.lock.run(self.shutdown)
        except OperationBusyError:
            return ShutdownOutcome(False, BUSY_MESSAGE)

    async def start_monitoring(self) -> None:
        await self.monitor.start()

    def stop_monitoring(self) -> None:
        self.monitor.stop()

    def monitor_status(self) -> MonitorStatus:
        return self.monitor.status()
