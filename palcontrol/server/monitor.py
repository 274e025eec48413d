import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from discord.ext import tasks

from palcontrol.logging_utils import perf_timer
from palcontrol.security import sanitize_error_message

from .enums import RunState
from .lock import OperationBusyError, OperationLock
from .protocols import RemoteControl, ShutdownOutcome
from .server_state import ServerStateTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitorStatus:
    active: bool
    state: RunState
    interval_seconds: float
    threshold: int
    idle_checks: int


class MonitorLoop:
    """
    Vigila el servidor cada `interval` segundos y lo apaga tras `threshold`
    comprobaciones seguidas sin jugadores.

    El contador de inactividad solo lo modifica esta clase. El tracker le avisa
    de cada transición para que lo reinicie.
    """

    def __init__(
        self,
        client: RemoteControl,
        tracker: ServerStateTracker,
        lock: OperationLock,
        shutdown: Callable[[], Awaitable[ShutdownOutcome]],
        interval: float,
        threshold: int,
    ):
        self._client = client
        self._tracker = tracker
        self._lock = lock
        self._shutdown = shutdown
        self.interval = interval
        self.threshold = threshold
        self.idle_checks = 0
        self._active = False

        self._task = tasks.loop(seconds=interval)(self._scheduled_tick)
        tracker.add_listener(self._on_transition)

    @property
    def active(self) -> bool:
        return self._active

    def _on_transition(self, state: RunState) -> None:
        self.idle_checks = 0

    async def start(self) -> None:
        """Comprueba el estado una vez al momento y programa las comprobaciones periódicas."""
        if self._active:
            logger.info("El monitor ya estaba activo, se ignora el arranque.")
            return

        self._active = True
        self.idle_checks = 0

        try:
            if await self._client.is_up():
                await self._tracker.notify_up()
            else:
                await self._tracker.notify_down()
        except Exception as e:
            # El estado se queda en UNKNOWN y la primera comprobación lo resolverá.
            logger.warning("Comprobación inicial fallida: %s", sanitize_error_message(e))

        previous = self._task.get_task()
        if previous is not None and not previous.done():
            # Tras un stop() la tarea anterior sigue viva hasta que procesa la cancelación.
            await asyncio.wait([previous])
        self._task.start()
        logger.info(
            "Monitor iniciado: cada %ss, apagado tras %d comprobaciones vacías.",
            self.interval,
            self.threshold,
        )

    def stop(self) -> None:
        if not self._active:
            logger.info("El monitor no estaba activo, se ignora la parada.")
            return

        self._active = False
        self.idle_checks = 0
        self._task.cancel()
        logger.info("Monitor detenido.")

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            active=self._active,
            state=self._tracker.state,
            interval_seconds=self.interval,
            threshold=self.threshold,
            idle_checks=self.idle_checks,
        )

    async def _scheduled_tick(self) -> None:
        # La primera vuelta de tasks.loop es inmediata y coincide con la
        # comprobación que ya hizo start().
        if self._task.current_loop == 0:
            return
        await self.tick()

    async def tick(self) -> None:
        """Una comprobación del monitor. Nunca lanza excepciones."""
        if self._tracker.state is RunState.DOWN:
            logger.debug("Servidor DOWN, se omite la comprobación.")
            return

        try:
            with perf_timer("Comprobación del monitor"):
                await self._check()
        except Exception as e:
            logger.error("Error durante la comprobación del monitor: %s", sanitize_error_message(e))

    async def _check(self) -> None:
        if not await self._client.is_up():
            await self._tracker.notify_down()
            return

        if self._tracker.state is not RunState.UP:
            await self._tracker.notify_up()

        players = await self._client.get_players()
        if players:
            if self.idle_checks > 0:
                logger.info(
                    "%d jugador(es) conectados, se reinicia el contador de inactividad.",
                    len(players),
                )
            self.idle_checks = 0
            return

        self.idle_checks += 1
        logger.info("Servidor vacío: comprobación %d/%d", self.idle_checks, self.threshold)

        if self.idle_checks >= self.threshold:
            await self._auto_stop()

    async def _auto_stop(self) -> None:
        logger.warning("Umbral de inactividad alcanzado, intentando apagar el servidor.")
        try:
            outcome = await self._lock.run(self._shutdown)
        except OperationBusyError:
            logger.info("Auto-apagado omitido: hay otra operación en curso.")
            return

        if outcome.success:
            logger.info("Auto-apagado completado: %s", outcome.message)
            self.idle_checks = 0
        else:
            # Se conserva el contador: la próxima comprobación vuelve a evaluar.
            logger.warning("Auto-apagado fallido: %s", outcome.message)
