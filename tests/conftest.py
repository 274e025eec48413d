"""Dobles en memoria para la API REST, el lanzador y la publicación de estado."""

from collections import deque

import pytest

from palcontrol.launcher import ExecutableTarget, LaunchError
from palcontrol.palworld_client import PalworldAPIError
from palcontrol.server import LifecycleTimings


class FakePalworldClient:
    """
    Cliente con respuestas guionizadas.

    `up_script` y `players_script` se consumen en orden; cuando se agotan se usan
    `up` y `players`. Tras shutdown() el servidor pasa a estar caído.
    """

    def __init__(self, up=True, players=None, info=None):
        self.up = up
        self.players = players or []
        self.info = info if info is not None else {"servername": "Pal Test", "version": "v0.3"}
        self.metrics = {"uptime": 3725}
        self.up_script = deque()
        self.players_script = deque()
        self.save_error = None
        self.players_error = None
        self.goes_down_on_shutdown = True
        self.calls = []

    async def is_up(self):
        self.calls.append("is_up")
        if self.up_script:
            return self.up_script.popleft()
        return self.up

    async def get_info(self):
        self.calls.append("get_info")
        if not self.up:
            raise PalworldAPIError("GET /info failed: ClientConnectorError")
        return self.info

    async def get_metrics(self):
        self.calls.append("get_metrics")
        return self.metrics

    async def get_players(self):
        self.calls.append("get_players")
        if self.players_error is not None:
            raise self.players_error
        if self.players_script:
            return self.players_script.popleft()
        return self.players

    async def save_world(self):
        self.calls.append("save_world")
        if self.save_error is not None:
            raise self.save_error

    async def shutdown(self, delay_seconds=0, message=""):
        self.calls.append(("shutdown", delay_seconds, message))
        if self.goes_down_on_shutdown:
            self.up = False


class FakeLauncher:
    def __init__(self, client=None, error=None):
        self.client = client
        self.error = error
        self.launched = []

    async def launch(self, target):
        self.launched.append(target)
        if self.error is not None:
            raise LaunchError(self.error)
        if self.client is not None:
            self.client.up = True


class RecordingPublisher:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    async def __call__(self, state, name):
        self.published.append((state, name))
        if self.fail:
            raise RuntimeError("discord is unreachable")


@pytest.fixture
def timings():
    return LifecycleTimings(
        start_timeout=0.05,
        poll_interval=0.001,
        settle_delay=0,
        shutdown_grace_seconds=2,
        monitor_interval=60,
        idle_threshold=2,
    )


@pytest.fixture
def client():
    return FakePalworldClient()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def target():
    return ExecutableTarget(executable="PalServer.exe", args=("-port=8211",))
