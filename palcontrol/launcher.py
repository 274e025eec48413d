import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Union

from palcontrol.security import sanitize_error_message

logger = logging.getLogger(__name__)

SERVICE_START_TIMEOUT_SECONDS = 60


class LaunchError(Exception):
    """No se pudo lanzar el servidor."""


@dataclass(frozen=True)
class ServiceTarget:
    """Servicio gestionado por el sistema operativo (Windows Service o unidad systemd)."""

    name: str


@dataclass(frozen=True)
class ExecutableTarget:
    """Ejecutable que se lanza desacoplado, sin shell."""

    executable: str
    args: tuple[str, ...] = field(default_factory=tuple)
    working_dir: str | None = None


LaunchTarget = Union[ServiceTarget, ExecutableTarget]


class ProcessLauncher:
    """Pone en marcha el servidor. No espera a que esté disponible."""

    async def launch(self, target: LaunchTarget) -> None:
        match target:
            case ServiceTarget(name=name):
                await self._start_service(name)
            case ExecutableTarget(executable=executable, args=args, working_dir=cwd):
                await self._spawn_detached(executable, list(args), cwd)
            case _:
                raise LaunchError(f"Unsupported launch target: {type(target).__name__}")

    def _service_command(self, name: str) -> list[str]:
        if sys.platform == "win32":
            # El nombre ya viene validado: solo [A-Za-z0-9_-].
            return [
                "powershell.exe",
                "-NoProfile",
                "-NonInteractive",
                "-ExecutionPolicy",
                "Bypass",
                "-Command",
                f"Start-Service -Name '{name}'",
            ]
        return ["systemctl", "start", name]

    async def _start_service(self, name: str) -> None:
        command = self._service_command(name)
        logger.info("Arrancando servicio '%s' con %s", name, command[0])
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=SERVICE_START_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise LaunchError("Service start command timed out") from e
        except OSError as e:
            raise LaunchError(sanitize_error_message(e)) from e

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise LaunchError(
                sanitize_error_message(detail or f"Service command exited with code {process.returncode}")
            )

    async def _spawn_detached(self, executable: str, args: list[str], cwd: str | None) -> None:
        logger.info("Lanzando ejecutable '%s' con %d argumento(s)", executable, len(args))
        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            kwargs["start_new_session"] = True

        try:
            # Se lanza y se olvida; el arranque se confirma sondeando la API.
            subprocess.Popen(
                [executable, *args],
                cwd=cwd or None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                **kwargs,
            )
        except (OSError, ValueError) as e:
            raise LaunchError(sanitize_error_message(e)) from e
