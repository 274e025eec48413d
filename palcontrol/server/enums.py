from enum import Enum


class RunState(Enum):
    """
    Lo que el orquestador cree sobre el servidor supervisado.

    Solo el ServerStateTracker cambia este valor.
    """

    # Aún no se ha hecho ninguna comprobación.
    UNKNOWN = "Unknown"
    # La API REST responde.
    UP = "Up"
    # La API REST no responde.
    DOWN = "Down"
