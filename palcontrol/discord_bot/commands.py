import asyncio
import logging

import discord

from palcontrol.palworld_client import player_display_name
from palcontrol.security import sanitize_error_message
from palcontrol.server import ServerOrchestrator

from .i18n import TranslationsManager
from .utils import build_status_embed

logger = logging.getLogger(__name__)


# --- Utilidades ---


async def fetch_status_embed(
    orchestrator: ServerOrchestrator,
    title_key: str,
    t: TranslationsManager,
    locale: str,
) -> discord.Embed:
    """Consulta info, métricas y jugadores a la vez y arma el embed de estado."""
    client = orchestrator.client
    info, metrics, players = await asyncio.gather(
        client.get_info(), client.get_metrics(), client.get_players()
    )
    orchestrator.tracker.remember_name(info)
    name = info.get("servername") or orchestrator.tracker.last_known_name
    return build_status_embed(
        t.get_string(title_key, locale, name=name), info, metrics, players, t, locale
    )


async def require_server_up(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
) -> bool:
    """Responde y devuelve False si el servidor está apagado."""
    if await orchestrator.client.is_up():
        return True
    await interaction.followup.send(t.get_string("status.down", locale))
    return False


# --- Comandos ---


async def check_server_status(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
):
    """Muestra el estado actual y real del servidor. No toma el lock."""
    await interaction.response.defer()
    if not await require_server_up(interaction, orchestrator, t, locale):
        return

    embed = await fetch_status_embed(orchestrator, "status.title", t, locale)
    await interaction.followup.send(embed=embed)


async def list_players(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
):
    await interaction.response.defer()
    if not await require_server_up(interaction, orchestrator, t, locale):
        return

    players = await orchestrator.client.get_players()
    if players:
        text = "\n".join(f"• {player_display_name(p)}" for p in players)
    else:
        text = t.get_string("players.none", locale)
    await interaction.followup.send(text)


async def start_palworld_server(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
):
    """Arranca el servidor si está apagado y muestra el resultado."""
    await interaction.response.defer()
    result = await orchestrator.start_server()

    if result.reason == "busy":
        await interaction.followup.send(t.get_string("start.busy", locale))
        return

    if result.reason == "failed":
        await interaction.followup.send(
            t.get_string("start.failed", locale, message=result.message)
        )
        return

    if result.reason == "already_running":
        content = t.get_string("start.already_running", locale)
        title_key = "status.title"
    else:
        content = t.get_string("start.started", locale)
        title_key = "start.started_title"

    try:
        embed = await fetch_status_embed(orchestrator, title_key, t, locale)
    except Exception as e:
        # La API acaba de levantarse y puede no responder aún a todo.
        logger.debug("No se pudo armar el embed de estado: %s", sanitize_error_message(e))
        await interaction.followup.send(t.get_string("start.requested", locale))
        return

    await interaction.followup.send(content=content, embed=embed)


async def stop_palworld_server(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
):
    """Apagado seguro: el mismo protocolo que usa el monitor de inactividad."""
    await interaction.response.defer()
    outcome = await orchestrator.stop_server()

    key = "stop.success" if outcome.success else "stop.failed"
    await interaction.followup.send(t.get_string(key, locale, message=outcome.message))


async def show_monitor_status(
    interaction: discord.Interaction,
    orchestrator: ServerOrchestrator,
    t: TranslationsManager,
    locale: str,
):
    status = orchestrator.monitor_status()
    yes_no = "monitor.yes" if status.active else "monitor.no"

    embed = discord.Embed(title=t.get_string("monitor.title", locale), color=discord.Color.blurple())
    embed.add_field(name=t.get_string("monitor.active", locale), value=t.get_string(yes_no, locale))
    embed.add_field(name=t.get_string("monitor.state", locale), value=status.state.value)
    embed.add_field(
        name=t.get_string("monitor.interval", locale),
        value=f"{int(status.interval_seconds)}s",
    )
    embed.add_field(
        name=t.get_string("monitor.idle", locale),
        value=f"{status.idle_checks}/{status.threshold}",
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)


async def show_help(interaction: discord.Interaction, t: TranslationsManager, locale: str):
    embed = discord.Embed(title=t.get_string("help.title", locale), color=discord.Color.light_grey())
    for command in ("palstatus", "palplayers", "palstart", "palstop", "palmonitor"):
        embed.add_field(
            name=f"/{command}", value=t.get_string(f"help.{command}", locale), inline=False
        )
    await interaction.response.send_message(embed=embed)
