import logging

import discord
from discord.ext import commands

from palcontrol.server import RunState
from palcontrol.server.server_state import StatusPublisher

from .i18n import TranslationsManager

logger = logging.getLogger(__name__)


def format_uptime(seconds: int | float) -> str:
    """Convierte segundos en un texto como '2h 15m 30s'."""
    seconds = max(int(seconds or 0), 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def presence_text(state: RunState, server_name: str) -> str:
    status = "UP" if state is RunState.UP else "DOWN"
    return f"{server_name} is {status}"


def make_presence_publisher(bot: commands.Bot) -> StatusPublisher:
    """
    Publica el estado del servidor en la presencia del bot.

    El tracker captura y registra cualquier error que salga de aquí.
    """

    async def publish(state: RunState, server_name: str) -> None:
        if bot.user is None:
            logger.debug("El bot aún no está conectado, se omite la actualización de estado.")
            return

        text = presence_text(state, server_name)
        await bot.change_presence(activity=discord.CustomActivity(name=text))
        logger.info("Estado de Discord actualizado: %s", text)

    return publish


def build_status_embed(
    title: str,
    info: dict,
    metrics: dict,
    players: list,
    t: TranslationsManager,
    locale: str,
    color: discord.Color | None = None,
) -> discord.Embed:
    embed = discord.Embed(title=title, color=color or discord.Color.green())
    embed.add_field(name=t.get_string("status.state", locale), value="**UP**", inline=True)
    embed.add_field(name=t.get_string("status.players", locale), value=str(len(players)), inline=True)
    embed.add_field(
        name=t.get_string("status.version", locale),
        value=str(info.get("version") or "Unknown"),
        inline=True,
    )
    embed.add_field(
        name=t.get_string("status.uptime", locale),
        value=format_uptime(metrics.get("uptime", 0)),
        inline=True,
    )
    return embed
