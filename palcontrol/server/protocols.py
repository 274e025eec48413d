"""
Protocolos de arranque y apagado del servidor.

Son los únicos caminos para arrancar o parar el servidor, los use un comando
manual o el monitor de inactividad. Ninguno toma el OperationLock por sí mismo:
eso lo hace quien los invoca (ServerOrchestrator o MonitorLoop).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from palcontrol.launcher import LaunchError, LaunchTarget
from palcontrol.security import sanitize_error_message

from .server_state import ServerStateTracker

logger = logging.getLogger(__name__)

SHUTDOWN_REASON = "Stopping (admin request)."


class RemoteControl(Protocol):
    async def is_up(self) -> bool: ...

    async def get_info(self) -> dict: ...

    async def get_players(self) -> list: ...

    async def save_world(self) -> None: ...

    async def shutdown(self, delay_seconds: int = 0, message: str = "") -> None: ...


class Launcher(Protocol):
    async def launch(self, target: LaunchTarget) -> None: ...


@dataclass(frozen=True)
class LifecycleTimings:
    """Tiempos ya validados, en segundos."""

    start_timeout: float = 120.0
    poll_interval: float = 3.0
    settle_delay: float = 1.5
    shutdown_grace_seconds: int = 2
    monitor_interval: float = 600.0
    idle_threshold: int = 2


@dataclass(frozen=True)
class StartResult:
    started: bool
    reason: Optional[str] = None
    message: str = ""


@dataclass(frozen=True)
class ShutdownOutcome:
    success: bool
    message: str


class StartupError(Exception):
    """El servidor no se pudo lanzar o no respondió a tiempo."""


async def wait_for(
    predicate: Callable[[], Awaitable[bool]],
    timeout: float,
    interval: float,
) -> bool:
    """
    Evalúa `predicate` cada `interval` segundos hasta que devuelva True o pase
    `timeout`. Un fallo puntual del predicado cuenta como "todavía no".
    """
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if await predicate():
                return True
        except Exception as e:
            logger.debug("Fallo transitorio durante el sondeo: %s", sanitize_error_message(e))
        await asyncio.sleep(interval)
    return False


async def start_server(
    client: RemoteControl,
    launcher: Launcher,
    target: LaunchTarget,
    timings: LifecycleTimings,
) -> StartResult:
    """
    Lanza el servidor y espera a que la API responda.

    No cambia el RunState: quien llama debe hacer notify_up() si started=True.
    Lanza StartupError si el lanzador falla o el servidor no arranca a tiempo.
    """
    if await client.is_up():
        return StartResult(started=False, reason="already_running", message="already running")

    try:
        await launcher.launch(target)
    except LaunchError as e:
        raise StartupError(f"launch failed: {sanitize_error_message(e)}") from e

    logger.info("Servidor lanzado, esperando a que la API responda...")
    if not await wait_for(client.is_up, timings.start_timeout, timings.poll_interval):
        raise StartupError("did not come up in time")

    return StartResult(started=True, message="started")


async def _wait_until_down(client: RemoteControl, timings: LifecycleTimings) -> bool:
    async def is_down() -> bool:
        return not await client.is_up()

    return await wait_for(is_down, timings.start_timeout, timings.poll_interval)


async def graceful_shutdown(
    client: RemoteControl,
    tracker: ServerStateTracker,
    timings: LifecycleTimings,
) -> ShutdownOutcome:
    """
    Apagado seguro: solo con el servidor vacío, guardando el mundo y volviendo a
    comprobar los jugadores justo antes de apagar.

    Nunca lanza excepciones; todos los resultados son un ShutdownOutcome.
    """
    try:
        if not await client.is_up():
            return ShutdownOutcome(False, "already down")

        players = await client.get_players()
        if players:
            return ShutdownOutcome(False, f"cannot stop: {len(players)} player(s) online")

        await client.save_world()

        # Da tiempo a que se registre alguien que estaba entrando.
        await asyncio.sleep(timings.settle_delay)

        players = await client.get_players()
        if players:
            logger.info("Apagado abortado: %d jugador(es) acaban de entrar.", len(players))
            return ShutdownOutcome(False, f"aborted: {len(players)} player(s) just connected")

        await client.shutdown(timings.shutdown_grace_seconds, SHUTDOWN_REASON)

        if not await _wait_until_down(client, timings):
            return ShutdownOutcome(False, "shutdown timed out")

        await tracker.notify_down()
        return ShutdownOutcome(True, "graceful stop completed")

    except Exception as e:
        logger.warning("Fallo durante el apagado: %s", sanitize_error_message(e, include_type=True))
        return ShutdownOutcome(False, f"stop failed: {sanitize_error_message(e)}")
