import asyncio
import dataclasses

from conftest import FakeLauncher, FakePalworldClient
from palcontrol.palworld_client import PalworldAPIError
from palcontrol.server import RunState, ServerStateTracker, graceful_shutdown
from palcontrol.server.orchestrator import ServerOrchestrator
from palcontrol.server.protocols import SHUTDOWN_REASON


def _up_tracker(client, publisher=None):
    tracker = ServerStateTracker(info_source=client, publisher=publisher)
    asyncio.run(tracker.notify_up())
    return tracker


def test_already_down_is_not_a_failure(timings):
    client = FakePalworldClient(up=False)
    tracker = ServerStateTracker()

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert "already down" in outcome.message
    assert "save_world" not in client.calls


def test_refuses_with_players_online(timings):
    client = FakePalworldClient(players=[{"name": "A"}])
    tracker = _up_tracker(client)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert "1" in outcome.message
    assert "cannot stop" in outcome.message
    assert "save_world" not in client.calls
    assert tracker.state is RunState.UP


def test_aborts_when_player_joins_during_save(timings):
    client = FakePalworldClient()
    client.players_script.extend([[], [{"name": "A"}]])
    tracker = _up_tracker(client)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert "aborted" in outcome.message
    assert "1 player(s)" in outcome.message
    assert "save_world" in client.calls
    assert not any(isinstance(c, tuple) for c in client.calls)
    assert tracker.state is RunState.UP


def test_save_failure_stops_the_attempt(timings):
    client = FakePalworldClient()
    client.save_error = PalworldAPIError("HTTP 401: Unauthorized")
    tracker = _up_tracker(client)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert outcome.message == "stop failed: HTTP 401: Unauthorized"
    assert client.calls.count("get_players") == 1


def test_successful_shutdown_marks_down(timings, publisher):
    client = FakePalworldClient()
    tracker = _up_tracker(client, publisher)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is True
    assert ("shutdown", 2, SHUTDOWN_REASON) in client.calls
    assert tracker.state is RunState.DOWN
    assert publisher.published[-1][0] is RunState.DOWN


def test_waits_the_settle_delay_between_checks(timings, monkeypatch):
    from palcontrol.server import protocols

    client = FakePalworldClient()
    tracker = _up_tracker(client)
    delays = []
    real_sleep = asyncio.sleep

    async def _fake_sleep(seconds):
        delays.append(seconds)
        await real_sleep(0)

    monkeypatch.setattr(protocols.asyncio, "sleep", _fake_sleep)
    slow = dataclasses.replace(timings, settle_delay=2.0)

    outcome = asyncio.run(graceful_shutdown(client, tracker, slow))

    assert outcome.success is True
    assert delays[0] == 2.0


def test_shutdown_timeout(timings):
    client = FakePalworldClient()
    client.goes_down_on_shutdown = False
    tracker = _up_tracker(client)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert outcome.message == "shutdown timed out"
    assert tracker.state is RunState.UP


def test_unexpected_errors_become_sanitized_outcomes(timings):
    client = FakePalworldClient()
    client.players_error = OSError("cannot open /var/lib/palworld/secret.txt")
    tracker = _up_tracker(client)

    outcome = asyncio.run(graceful_shutdown(client, tracker, timings))

    assert outcome.success is False
    assert "/var/lib" not in outcome.message
    assert "[PATH_REMOVED]" in outcome.message


def test_manual_stop_uses_lock_and_reports_busy(timings, target):
    client = FakePalworldClient()
    orchestrator = ServerOrchestrator(client, FakeLauncher(), target, timings)

    async def _scenario():
        async def _hold():
            return await orchestrator.stop_server()

        busy = await orchestrator.lock.run(_hold)
        done = await orchestrator.stop_server()
        return busy, done

    busy, done = asyncio.run(_scenario())

    assert busy.success is False
    assert "in progress" in busy.message
    assert done.success is True
    assert orchestrator.tracker.state is RunState.DOWN
