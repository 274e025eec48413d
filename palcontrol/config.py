import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from palcontrol.launcher import ExecutableTarget, LaunchTarget, ServiceTarget
from palcontrol.security import (
    validate_service_name,
    validate_start_command,
    validate_working_directory,
)
from palcontrol.server.protocols import LifecycleTimings

logger = logging.getLogger(__name__)


class DiscordConfig(BaseSettings):
    """Configuración específica para Discord."""

    bot_token: str = Field(..., description="Token del bot de Discord")
    guild_id: int = Field(..., description="ID del servidor de Discord donde se registran los comandos")
    admin_role: str = Field(
        "palserver", description="Rol necesario para usar los comandos del bot"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_prefix = "DISCORD_"


class PalworldConfig(BaseSettings):
    """Configuración para la conexión con la API REST del servidor de Palworld."""

    rest_url: str = Field(..., description="URL base de la API REST, p. ej. http://127.0.0.1:8212/v1/api")
    rest_user: str = Field("admin", description="Usuario de la API REST")
    rest_password: str = Field(..., description="Contraseña de administrador del servidor")
    request_timeout_seconds: int = Field(
        10, ge=1, le=60, description="Tiempo máximo de cada petición a la API"
    )

    @field_validator("rest_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("rest_url must start with http:// or https://")
        return value.rstrip("/")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_prefix = "PALWORLD_"


class ServerConfig(BaseSettings):
    """Cómo se arranca el servidor y los tiempos del ciclo de vida."""

    # variables para la gestión del proceso
    service_name: Optional[str] = Field(
        None, description="Nombre del servicio (Windows Service o unidad systemd)"
    )
    start_cmd: Optional[str] = Field(
        None, description="Comando para lanzar el servidor si no se usa un servicio"
    )
    start_cwd: Optional[str] = Field(None, description="Directorio de trabajo para start_cmd")

    # tiempos
    start_timeout_ms: int = Field(120_000, ge=5_000, le=600_000)
    poll_interval_ms: int = Field(3_000, ge=1_000, le=60_000)
    save_world_delay_ms: int = Field(
        1_500,
        ge=500,
        le=10_000,
        description="Espera tras guardar el mundo antes de volver a contar jugadores.",
    )
    shutdown_delay_seconds: int = Field(
        2, ge=0, le=30, description="Segundos que el servidor espera antes de apagarse."
    )

    # variables para el apagado automático
    auto_shutdown_enabled: bool = Field(
        True, description="Habilita el apagado automático si el servidor está vacío."
    )
    monitor_interval_ms: int = Field(600_000, ge=60_000, le=3_600_000)
    empty_check_threshold: int = Field(
        2,
        ge=1,
        le=10,
        description="Comprobaciones vacías seguidas antes de apagar.",
    )

    @field_validator("service_name", "start_cmd", "start_cwd", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _check_launch_method(self) -> "ServerConfig":
        if not self.service_name and not self.start_cmd:
            raise ValueError(
                "Either SERVER_SERVICE_NAME or SERVER_START_CMD must be configured."
            )
        return self

    def launch_target(self) -> LaunchTarget:
        """Valida la entrada y construye el objetivo para el ProcessLauncher."""
        if self.service_name:
            return ServiceTarget(name=validate_service_name(self.service_name))

        executable, args = validate_start_command(self.start_cmd or "")
        working_dir = validate_working_directory(self.start_cwd) if self.start_cwd else None
        return ExecutableTarget(executable=executable, args=tuple(args), working_dir=working_dir)

    def timings(self) -> LifecycleTimings:
        return LifecycleTimings(
            start_timeout=self.start_timeout_ms / 1000,
            poll_interval=self.poll_interval_ms / 1000,
            settle_delay=self.save_world_delay_ms / 1000,
            shutdown_grace_seconds=self.shutdown_delay_seconds,
            monitor_interval=self.monitor_interval_ms / 1000,
            idle_threshold=self.empty_check_threshold,
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_prefix = "SERVER_"


class LoggingConfig(BaseSettings):
    level: str = Field("INFO", description="ERROR, WARNING, INFO o DEBUG")
    performance: bool = Field(False, description="Registra la duración de las comprobaciones")

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value == "WARN":
            value = "WARNING"
        if value not in ("ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_prefix = "LOG_"


class ManagerConfig:
    def __init__(
        self,
        discord_config: DiscordConfig,
        palworld_config: PalworldConfig,
        server_config: ServerConfig,
        logging_config: LoggingConfig,
    ) -> None:
        self.discord_config = discord_config
        self.palworld_config = palworld_config
        self.server_config = server_config
        self.logging_config = logging_config


def load_config_orchestator(env_path: Union[Path, str] = ".env") -> ManagerConfig:
    """Carga la configuración combinada para el orquestador desde un archivo .env."""
    env_file = Path(env_path) if isinstance(env_path, str) else env_path
    if not env_file.exists():
        raise FileNotFoundError(f"El archivo de configuración {env_file} no existe.")

    try:
        return ManagerConfig(
            discord_config=DiscordConfig(_env_file=env_file),  # type: ignore
            palworld_config=PalworldConfig(_env_file=env_file),  # type: ignore
            server_config=ServerConfig(_env_file=env_file),  # type: ignore
            logging_config=LoggingConfig(_env_file=env_file),  # type: ignore
        )
    except ValidationError as e:
        logger.error("Error en la configuración del archivo %s:\n%s", env_file, e)
        raise
