import asyncio
import sys
import time

import pytest

from palcontrol import launcher as launcher_module
from palcontrol.launcher import ExecutableTarget, LaunchError, ProcessLauncher, ServiceTarget


def test_spawns_executable_detached(tmp_path):
    marker = tmp_path / "started.txt"
    target = ExecutableTarget(
        executable=sys.executable,
        args=("-c", f"open(r'{marker}', 'w').write('ok')"),
        working_dir=str(tmp_path),
    )

    asyncio.run(ProcessLauncher().launch(target))

    # launch() no espera al proceso; le damos un momento.
    for _ in range(100):
        if marker.exists() and marker.read_text() == "ok":
            break
        time.sleep(0.05)
    assert marker.read_text() == "ok"


def test_missing_executable_raises_launch_error(tmp_path):
    target = ExecutableTarget(executable=str(tmp_path / "PalServer-missing"))

    with pytest.raises(LaunchError):
        asyncio.run(ProcessLauncher().launch(target))


def test_service_command_per_platform(monkeypatch):
    process_launcher = ProcessLauncher()

    monkeypatch.setattr(launcher_module.sys, "platform", "linux")
    assert process_launcher._service_command("PalServer") == ["systemctl", "start", "PalServer"]

    monkeypatch.setattr(launcher_module.sys, "platform", "win32")
    command = process_launcher._service_command("PalServer")
    assert command[0] == "powershell.exe"
    assert command[-1] == "Start-Service -Name 'PalServer'"


def test_service_start_failure_raises_launch_error(monkeypatch):
    process_launcher = ProcessLauncher()
    monkeypatch.setattr(
        process_launcher,
        "_service_command",
        lambda name: [sys.executable, "-c", "import sys; sys.stderr.write('Access is denied'); sys.exit(3)"],
    )

    with pytest.raises(LaunchError, match="Access denied"):
        asyncio.run(process_launcher.launch(ServiceTarget(name="PalServer")))


def test_service_start_success(monkeypatch):
    process_launcher = ProcessLauncher()
    monkeypatch.setattr(
        process_launcher, "_service_command", lambda name: [sys.executable, "-c", "pass"]
    )

    asyncio.run(process_launcher.launch(ServiceTarget(name="PalServer")))


def test_unknown_target_is_rejected():
    with pytest.raises(LaunchError):
        asyncio.run(ProcessLauncher().launch("PalServer.exe"))


def test_service_start_timeout_kills_command(monkeypatch, tmp_path):
    marker = tmp_path / "late.txt"
    process_launcher = ProcessLauncher()
    monkeypatch.setattr(launcher_module, "SERVICE_START_TIMEOUT_SECONDS", 0.2)
    monkeypatch.setattr(
        process_launcher,
        "_service_command",
        lambda name: [
            sys.executable,
            "-c",
            f"import time; time.sleep(1); open(r'{marker}', 'w').write('late')",
        ],
    )

    with pytest.raises(LaunchError, match="timed out"):
        asyncio.run(process_launcher.launch(ServiceTarget(name="PalServer")))

    # Si el comando siguiera vivo habría escrito el fichero al cabo de 1 s.
    time.sleep(1.5)
    assert not marker.exists()
