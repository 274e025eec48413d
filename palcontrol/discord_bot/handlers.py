import logging
from collections.abc import Sequence

import discord
from discord import app_commands
from discord.app_commands import AppCommandError, CheckFailure
from discord.ext import commands

from palcontrol.config import ManagerConfig
from palcontrol.logging_utils import log_command_usage, setup_command_logger
from palcontrol.security import sanitize_error_message
from palcontrol.server import ServerOrchestrator

from .commands import (
    check_server_status,
    list_players,
    show_help,
    show_monitor_status,
    start_palworld_server,
    stop_palworld_server,
)
from .i18n import TranslationsManager

logger = logging.getLogger(__name__)
command_logger = setup_command_logger()
log_command = log_command_usage(command_logger)
t = TranslationsManager()


def has_admin_role(user: object, role_name: str) -> bool:
    roles: Sequence[discord.Role] = getattr(user, "roles", [])
    return any(role.name == role_name for role in roles)


def make_admin_check(role_name: str):
    """Check de app_commands: solo los miembros con el rol configurado."""

    async def is_admin(interaction: discord.Interaction) -> bool:
        if has_admin_role(interaction.user, role_name):
            return True

        await interaction.response.send_message(
            t.get_string(
                "errors.not_authorized", str(interaction.locale), role_name=role_name
            ),
            ephemeral=True,
        )
        return False

    return is_admin


async def _reply_unexpected_error(interaction: discord.Interaction, error: AppCommandError):
    if isinstance(error, CheckFailure):
        # El check ya respondió al usuario.
        return

    original = getattr(error, "original", error)
    command_name = getattr(interaction.command, "name", "?")
    logger.error(
        "Error en el comando /%s de %s: %s",
        command_name,
        interaction.user,
        sanitize_error_message(original, include_type=True),
    )

    message = t.get_string("errors.unexpected", str(interaction.locale))
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


def register_handlers_discord(
    bot: commands.Bot, config: ManagerConfig, orchestrator: ServerOrchestrator
):
    """Registra los slash commands y eventos para el bot de Discord."""
    guild_obj = discord.Object(id=config.discord_config.guild_id)
    is_admin = make_admin_check(config.discord_config.admin_role)
    bot.tree.error(_reply_unexpected_error)

    @bot.tree.command(
        name="palstatus", description="Show server status and players", guild=guild_obj
    )
    @app_commands.check(is_admin)
    @log_command
    async def palstatus(interaction: discord.Interaction):
        await check_server_status(interaction, orchestrator, t, str(interaction.locale))

    @bot.tree.command(name="palplayers", description="List current players", guild=guild_obj)
    @app_commands.check(is_admin)
    @log_command
    async def palplayers(interaction: discord.Interaction):
        await list_players(interaction, orchestrator, t, str(interaction.locale))

    @bot.tree.command(name="palstart", description="Start the Palworld server", guild=guild_obj)
    @app_commands.check(is_admin)
    @log_command
    async def palstart(interaction: discord.Interaction):
        await start_palworld_server(interaction, orchestrator, t, str(interaction.locale))

    @bot.tree.command(
        name="palstop",
        description="Gracefully stop server when 0 players",
        guild=guild_obj,
    )
    @app_commands.check(is_admin)
    @log_command
    async def palstop(interaction: discord.Interaction):
        await stop_palworld_server(interaction, orchestrator, t, str(interaction.locale))

    @bot.tree.command(
        name="palmonitor", description="Show the auto-stop monitor state", guild=guild_obj
    )
    @app_commands.check(is_admin)
    @log_command
    async def palmonitor(interaction: discord.Interaction):
        await show_monitor_status(interaction, orchestrator, t, str(interaction.locale))

    @bot.tree.command(name="palhelp", description="List the bot commands", guild=guild_obj)
    @app_commands.check(is_admin)
    @log_command
    async def palhelp(interaction: discord.Interaction):
        await show_help(interaction, t, str(interaction.locale))

    # Evento que se ejecuta cuando el bot está listo
    @bot.event
    async def on_ready():
        logger.info("Bot de Discord conectado como %s", bot.user)
        try:
            synced = await bot.tree.sync(guild=guild_obj)
            logger.info("Sincronizados %d comandos.", len(synced))
        except discord.HTTPException as e:
            logger.error("Error al sincronizar comandos: %s", sanitize_error_message(e))

        # on_ready puede repetirse tras una reconexión; start_monitoring es idempotente.
        if config.server_config.auto_shutdown_enabled:
            await orchestrator.start_monitoring()
        else:
            logger.info("El auto-apagado está deshabilitado.")
