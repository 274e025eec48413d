import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationBusyError(Exception):
    """Ya hay otra operación de arranque o apagado en curso."""

    def __init__(self, message: str = "Another operation is in progress."):
        super().__init__(message)


class OperationLock:
    """
    Exclusión mutua de una sola plaza para las operaciones que cambian el estado
    del servidor (arranque, parada manual y auto-apagado).

    No es reentrante y no encola: un segundo intento falla al instante.
    """

    def __init__(self) -> None:
        self._busy = False

    @property
    def locked(self) -> bool:
        return self._busy

    async def run(self, action: Callable[[], Awaitable[T]]) -> T:
        """Ejecuta `action` con el lock tomado. Lanza OperationBusyError si está ocupado."""
        if self._busy:
            logger.debug("Lock ocupado, se rechaza la operación.")
            raise OperationBusyError()

        # Sin await entre la comprobación y la asignación: nadie puede colarse.
        self._busy = True
        try:
            return await action()
        finally:
            self._busy = False
