import functools
import logging
import time
from contextlib import contextmanager
from typing import Iterator

import discord

LOG_FORMAT = "[%(asctime)s] %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PERFORMANCE_LOGGER = "palcontrol.performance"


def setup_logging(level: str = "INFO", performance: bool = False) -> None:
    """Configura el logging de toda la aplicación. Se llama una sola vez desde la CLI."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # discord.py es muy ruidoso en DEBUG.
    logging.getLogger("discord").setLevel(max(root.level, logging.INFO))
    # Las mediciones van a DEBUG en su propio logger, independiente del nivel general.
    logging.getLogger(PERFORMANCE_LOGGER).setLevel(logging.DEBUG if performance else logging.INFO)


def setup_command_logger() -> logging.Logger:
    """Logger dedicado al registro de uso de los slash commands."""
    return logging.getLogger("palcontrol.commands")


def log_command_usage(logger: logging.Logger):
    """
    Decorador para registrar quién usa cada comando.

    Se aplica debajo de @bot.tree.command, sobre la función del comando, y
    conserva su firma para que discord.py pueda leer los parámetros.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(interaction: discord.Interaction, *args, **kwargs):
            command_name = getattr(interaction.command, "name", func.__name__)
            logger.info(
                "Comando /%s usado por %s (guild=%s)",
                command_name,
                interaction.user,
                interaction.guild_id,
            )
            return await func(interaction, *args, **kwargs)

        return wrapper

    return decorator


@contextmanager
def perf_timer(operation: str) -> Iterator[None]:
    """Registra en DEBUG cuánto tardó `operation`, si el logging de rendimiento está activo."""
    logger = logging.getLogger(PERFORMANCE_LOGGER)
    if not logger.isEnabledFor(logging.DEBUG):
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("%s completado en %.2f ms", operation, elapsed_ms)
