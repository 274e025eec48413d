import argparse
import asyncio
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from palcontrol.config import load_config_orchestator
from palcontrol.discord_bot.client import init_discord_client
from palcontrol.discord_bot.handlers import register_handlers_discord
from palcontrol.discord_bot.utils import make_presence_publisher
from palcontrol.launcher import ProcessLauncher
from palcontrol.logging_utils import setup_logging
from palcontrol.palworld_client import PalworldClient
from palcontrol.security import SecurityValidationError
from palcontrol.server import ServerOrchestrator

logger = logging.getLogger("palcontrol")


async def main(path: Union[Path, str]):
    path = Path(path) if isinstance(path, str) else path
    config = load_config_orchestator(path)
    setup_logging(config.logging_config.level, config.logging_config.performance)

    logger.info("Verificando la configuración de arranque del servidor...")
    target = config.server_config.launch_target()
    logger.info("Método de arranque: %s", type(target).__name__)

    palworld = config.palworld_config
    async with PalworldClient(
        palworld.rest_url,
        palworld.rest_user,
        palworld.rest_password,
        timeout=palworld.request_timeout_seconds,
    ) as client:
        discord_bot = init_discord_client()
        orchestrator = ServerOrchestrator(
            client=client,
            launcher=ProcessLauncher(),
            target=target,
            timings=config.server_config.timings(),
            publisher=make_presence_publisher(discord_bot),
        )
        register_handlers_discord(discord_bot, config, orchestrator)
        logger.info("Bot de Discord configurado.")

        try:
            async with discord_bot:
                await discord_bot.start(config.discord_config.bot_token)
        finally:
            orchestrator.stop_monitoring()


def run():
    """Función de entrada para el comando de consola."""
    parser = argparse.ArgumentParser(
        description="Bot de Discord para iniciar, detener y vigilar un servidor de Palworld."
    )
    parser.add_argument(
        "env_file", type=str, help="Ruta al archivo de configuración .env"
    )
    args = parser.parse_args()

    # Logging básico hasta que se lea LOG_LEVEL del .env.
    setup_logging()

    try:
        asyncio.run(main(args.env_file))
    except KeyboardInterrupt:
        logger.info("Cerrando bot...")
    except (FileNotFoundError, ValidationError, SecurityValidationError) as e:
        logger.error("Fallo en la comprobación inicial. El bot no se ha iniciado: %s", e)
        raise SystemExit(1)
    except Exception:
        logger.exception("Ocurrió un error inesperado")
        raise SystemExit(1)


if __name__ == "__main__":
    run()
