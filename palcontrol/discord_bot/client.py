import discord
from discord.ext import commands


def init_discord_client() -> commands.Bot:
    """Crea el bot. Solo usa slash commands, así que basta con el intent de guilds."""
    intents = discord.Intents.none()
    intents.guilds = True
    return commands.Bot(command_prefix=commands.when_mentioned, intents=intents)
