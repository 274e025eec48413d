import logging
from typing import Awaitable, Callable, Optional, Protocol

from palcontrol.security import sanitize_error_message

from .enums import RunState

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "Palworld Server"

StatusPublisher = Callable[[RunState, str], Awaitable[None]]
TransitionListener = Callable[[RunState], None]


class InfoSource(Protocol):
    async def get_info(self) -> dict: ...


class ServerStateTracker:
    """
    Guarda lo que el bot cree sobre el servidor: UNKNOWN, UP o DOWN, y el último
    nombre conocido para poder mostrarlo aunque esté apagado.

    Las transiciones solo ocurren a través de notify_up/notify_down. En cada cambio
    real se avisa a los listeners (el monitor reinicia su contador) y se publica
    el estado, por ejemplo en la presencia del bot de Discord.
    """

    def __init__(
        self,
        info_source: Optional[InfoSource] = None,
        publisher: Optional[StatusPublisher] = None,
    ):
        self._state = RunState.UNKNOWN
        self._last_known_name = DEFAULT_SERVER_NAME
        self._info_source = info_source
        self._publisher = publisher
        self._listeners: list[TransitionListener] = []

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def last_known_name(self) -> str:
        return self._last_known_name

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def remember_name(self, info: dict) -> None:
        """Actualiza el nombre con la respuesta de /info, solo si el servidor está UP."""
        name = (info or {}).get("servername")
        if self._state is RunState.UP and name:
            self._last_known_name = name

    async def notify_up(self) -> None:
        await self._transition_to(RunState.UP)

    async def notify_down(self) -> None:
        await self._transition_to(RunState.DOWN)

    async def _transition_to(self, observed: RunState) -> None:
        if observed is self._state:
            return

        previous, self._state = self._state, observed
        logger.info("Estado del servidor: %s -> %s", previous.value, observed.value)

        for listener in self._listeners:
            listener(observed)

        if observed is RunState.UP:
            await self._refresh_name()

        await self._publish()

    async def _refresh_name(self) -> None:
        if self._info_source is None:
            return
        try:
            self.remember_name(await self._info_source.get_info())
        except Exception as e:
            logger.debug(
                "No se pudo obtener el nombre del servidor: %s", sanitize_error_message(e)
            )

    async def _publish(self) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher(self._state, self._last_known_name)
        except Exception as e:
            # Es algo cosmético: nunca debe abortar un arranque o un apagado.
            logger.error("Fallo al publicar el estado: %s", sanitize_error_message(e))
