"""
Cliente mínimo para la API REST de Palworld.

Documentación: https://tech.palworldgame.com/api/rest-api/palwold-rest-api
"""

import asyncio
import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


class PalworldAPIError(Exception):
    """La API respondió con error o no se pudo contactar."""


class PalworldClient:
    """
    Cliente sin estado (más allá de la sesión HTTP) para la API REST.

    Se usa como gestor de contexto asíncrono para cerrar la sesión:

        async with PalworldClient(url, "admin", password) as client:
            players = await client.get_players()
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = aiohttp.BasicAuth(username, password)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "PalworldClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        # La sesión se crea dentro del event loop que la va a usar.
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(auth=self._auth, timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _get(self, path: str) -> Any:
        try:
            async with self._get_session().get(self._url(path)) as response:
                if response.status >= 400:
                    raise PalworldAPIError(f"HTTP {response.status}: {response.reason}")
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise PalworldAPIError(f"GET {path} failed: {type(e).__name__} {e}") from e

    async def _post(self, path: str, body: dict | None = None) -> Any:
        try:
            async with self._get_session().post(self._url(path), json=body or {}) as response:
                if response.status >= 400:
                    raise PalworldAPIError(f"HTTP {response.status}: {response.reason}")
                try:
                    return await response.json(content_type=None)
                except ValueError:
                    # /save y /shutdown responden con el cuerpo vacío.
                    return {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PalworldAPIError(f"POST {path} failed: {type(e).__name__} {e}") from e

    async def get_info(self) -> dict:
        return await self._get("/info")

    async def get_players(self) -> list[dict]:
        """Lista de jugadores conectados. Acepta tanto una lista como {"players": [...]}."""
        data = await self._get("/players")
        return normalize_players(data)

    async def get_metrics(self) -> dict:
        return await self._get("/metrics")

    async def save_world(self) -> None:
        await self._post("/save")

    async def shutdown(self, delay_seconds: int = 0, message: str = "Stopping...") -> None:
        await self._post("/shutdown", {"waittime": delay_seconds, "message": message})

    async def is_up(self) -> bool:
        """Sonda de vida: True si /info responde."""
        try:
            await self.get_info()
            return True
        except PalworldAPIError as e:
            logger.debug("Sonda de vida fallida: %s", e)
            return False


def normalize_players(data: Any) -> list[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return list(data.get("players") or [])
    return []


def player_display_name(player: dict) -> str:
    return player.get("name") or player.get("playerName") or "Unknown"
