import asyncio

import pytest

from conftest import FakeLauncher, FakePalworldClient
from palcontrol.server import RunState, StartupError, start_server
from palcontrol.server.orchestrator import ServerOrchestrator


def test_start_when_already_up_does_not_launch(client, timings, target):
    launcher = FakeLauncher()

    result = asyncio.run(start_server(client, launcher, target, timings))

    assert result.started is False
    assert result.reason == "already_running"
    assert launcher.launched == []


def test_start_launches_and_waits_for_api(timings, target):
    client = FakePalworldClient(up=False)
    # Primera sonda: caído. Luego tarda dos sondeos en responder.
    client.up_script.extend([False, False, False])
    launcher = FakeLauncher(client=client)

    result = asyncio.run(start_server(client, launcher, target, timings))

    assert result.started is True
    assert launcher.launched == [target]
    assert client.calls.count("is_up") == 4


def test_start_times_out_when_server_never_answers(timings, target):
    client = FakePalworldClient(up=False)
    launcher = FakeLauncher()

    with pytest.raises(StartupError, match="did not come up in time"):
        asyncio.run(start_server(client, launcher, target, timings))

    assert len(launcher.launched) == 1


def test_launch_failure_is_a_startup_error(timings, target):
    client = FakePalworldClient(up=False)
    launcher = FakeLauncher(error="Access is denied at C:\\Palworld\\PalServer.exe")

    with pytest.raises(StartupError) as excinfo:
        asyncio.run(start_server(client, launcher, target, timings))

    assert "C:\\Palworld" not in str(excinfo.value)


def test_protocol_does_not_touch_run_state(timings, target):
    client = FakePalworldClient(up=False)
    orchestrator = ServerOrchestrator(client, FakeLauncher(client=client), target, timings)

    asyncio.run(start_server(client, orchestrator.launcher, target, timings))

    assert orchestrator.tracker.state is RunState.UNKNOWN


def test_orchestrator_start_notifies_up(timings, target, publisher):
    client = FakePalworldClient(up=False)
    orchestrator = ServerOrchestrator(
        client, FakeLauncher(client=client), target, timings, publisher=publisher
    )

    result = asyncio.run(orchestrator.start_server())

    assert result.started is True
    assert orchestrator.tracker.state is RunState.UP
    assert publisher.published == [(RunState.UP, "Pal Test")]
    assert not orchestrator.lock.locked


def test_orchestrator_converts_startup_error(timings, target):
    client = FakePalworldClient(up=False)
    orchestrator = ServerOrchestrator(client, FakeLauncher(), target, timings)

    result = asyncio.run(orchestrator.start_server())

    assert result.started is False
    assert result.reason == "failed"
    assert result.message == "did not come up in time"
    assert orchestrator.tracker.state is RunState.UNKNOWN


def test_orchestrator_start_rejected_while_busy(client, timings, target):
    orchestrator = ServerOrchestrator(client, FakeLauncher(), target, timings)

    async def _scenario():
        async def _hold():
            return await orchestrator.start_server()

        return await orchestrator.lock.run(_hold)

    result = asyncio.run(_scenario())

    assert result.started is False
    assert result.reason == "busy"
