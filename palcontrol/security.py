"""
Validación de la entrada que llega al lanzador de procesos y limpieza de los
mensajes de error antes de mostrarlos a los usuarios.
"""

import re
import shlex
from pathlib import Path, PureWindowsPath

MAX_SERVICE_NAME_LENGTH = 256
MAX_START_COMMAND_LENGTH = 2048
MAX_EXECUTABLE_PATH_LENGTH = 260
MAX_ARGUMENT_LENGTH = 1024

_SERVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_RESERVED_NAMES = {"con", "prn", "aux", "nul"} | {
    f"{prefix}{n}" for prefix in ("com", "lpt") for n in range(1, 10)
}

_DANGEROUS_EXECUTABLE_PATTERNS = [
    re.compile(r'[<>"|*?]'),
    re.compile(r"\.\."),
    re.compile(r"[;&|`$()]"),
    re.compile(r"\b(cmd|powershell|bash|sh)\b|/bin/(sh|bash)", re.IGNORECASE),
    re.compile(r"\s*(-|/)(c|command|exec)\s+", re.IGNORECASE),
]

_DANGEROUS_ARGUMENT_PATTERNS = [
    re.compile(r"[;&|`$()]"),
    re.compile(r"\s*(-|/)(c|command|exec)\s+", re.IGNORECASE),
    re.compile(r"\$\{.*\}"),
    re.compile(r"`.*`"),
    re.compile(r"\$\(.*\)"),
]

# (patrón, reemplazo) en el orden en que se aplican.
_REDACTIONS = [
    (re.compile(r"https?://[^@\s]+:[^@\s]+@\S+"), "[URL_WITH_CREDENTIALS]"),
    (re.compile(r"[A-Za-z]:\\[^\s<>\"|?*\n\r]+"), "[PATH_REMOVED]"),
    (re.compile(r"(?<![\w:/])/[^\s<>\"|?*\n\r]+"), "[PATH_REMOVED]"),
    (re.compile(r"password[=:]\s*\S+", re.IGNORECASE), "password=[REDACTED]"),
    (re.compile(r"token[=:]\s*\S+", re.IGNORECASE), "token=[REDACTED]"),
    (re.compile(r"key[=:]\s*\S+", re.IGNORECASE), "key=[REDACTED]"),
    (re.compile(r"auth[=:]\s*\S+", re.IGNORECASE), "auth=[REDACTED]"),
    (re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)\s*=\s*\S+"), r"$\1=[REDACTED]"),
    (re.compile(r"%[A-Za-z_][A-Za-z0-9_]*%"), "[ENV_VAR]"),
    (re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}(?::\d+)?\b"), "[IP_ADDRESS]"),
    (re.compile(r"service\s+['\"]([^'\"]+)['\"]", re.IGNORECASE), "service [SERVICE_NAME]"),
]

_STANDARD_MESSAGES = [
    (re.compile(r"cannot find .* file", re.IGNORECASE), "Required file not found"),
    (re.compile(r"access.* denied", re.IGNORECASE), "Access denied"),
    (re.compile(r"permission.* denied", re.IGNORECASE), "Permission denied"),
    (re.compile(r"network.* unreachable", re.IGNORECASE), "Network connection failed"),
    (re.compile(r"connection.* refused", re.IGNORECASE), "Connection refused"),
    (re.compile(r"timeout.* occurred", re.IGNORECASE), "Operation timeout"),
]


class SecurityValidationError(ValueError):
    """La entrada para el lanzador no pasó la validación."""


def sanitize_error_message(error: BaseException | str, include_type: bool = False) -> str:
    """
    Limpia un mensaje de error para que se pueda mostrar sin filtrar rutas,
    credenciales, direcciones IP ni nombres de servicio.
    """
    message = str(error)
    if not message and isinstance(error, BaseException):
        # asyncio.TimeoutError y similares no traen mensaje.
        message = type(error).__name__

    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)

    message = re.sub(r"\s+", " ", message).strip()

    for pattern, replacement in _STANDARD_MESSAGES:
        if pattern.search(message):
            message = replacement
            break

    if include_type and isinstance(error, BaseException):
        name = type(error).__name__
        if name not in ("Exception", "Error"):
            return f"{name}: {message}"

    return message


def validate_service_name(service_name: str) -> str:
    """Comprueba que el nombre de servicio solo tenga caracteres seguros."""
    if not isinstance(service_name, str):
        raise SecurityValidationError("Service name must be a string")

    if not 0 < len(service_name) <= MAX_SERVICE_NAME_LENGTH:
        raise SecurityValidationError(
            f"Service name must be between 1 and {MAX_SERVICE_NAME_LENGTH} characters"
        )

    if not _SERVICE_NAME_PATTERN.match(service_name):
        raise SecurityValidationError("Service name contains invalid characters")

    if service_name.lower() in _RESERVED_NAMES:
        raise SecurityValidationError("Service name uses reserved system name")

    return service_name


def split_command(command: str) -> list[str]:
    """Divide un comando respetando comillas, sin interpretar barras invertidas."""
    lexer = shlex.shlex(command, posix=True)
    lexer.whitespace_split = True
    lexer.escape = ""
    lexer.commenters = ""
    return list(lexer)


def validate_start_command(start_command: str) -> tuple[str, list[str]]:
    """
    Valida y separa el comando de arranque en (ejecutable, argumentos).

    Example: validate_start_command('"C:/Pal Server/PalServer.exe" -port=8211')
    """
    if not isinstance(start_command, str):
        raise SecurityValidationError("Start command must be a string")

    if not 0 < len(start_command) <= MAX_START_COMMAND_LENGTH:
        raise SecurityValidationError(
            f"Start command must be between 1 and {MAX_START_COMMAND_LENGTH} characters"
        )

    try:
        parts = split_command(start_command)
    except ValueError as e:
        raise SecurityValidationError(f"Start command cannot be parsed: {e}") from e

    if not parts:
        raise SecurityValidationError("Start command is empty after parsing")

    executable, args = parts[0], parts[1:]
    validate_executable_path(executable)
    for arg in args:
        validate_command_argument(arg)

    return executable, args


def _is_absolute(path: str) -> bool:
    return Path(path).is_absolute() or PureWindowsPath(path).is_absolute()


def validate_executable_path(executable_path: str) -> str:
    if not 0 < len(executable_path) <= MAX_EXECUTABLE_PATH_LENGTH:
        raise SecurityValidationError(
            f"Executable path must be between 1 and {MAX_EXECUTABLE_PATH_LENGTH} characters"
        )

    for pattern in _DANGEROUS_EXECUTABLE_PATTERNS:
        if pattern.search(executable_path):
            raise SecurityValidationError(
                "Executable path contains dangerous characters or patterns"
            )

    if not _is_absolute(executable_path):
        # Relativo: solo un nombre de archivo que se buscará en el PATH.
        if Path(executable_path).name != executable_path or "\\" in executable_path:
            raise SecurityValidationError(
                "Relative executable path cannot contain directory components"
            )
        return executable_path

    if not Path(executable_path).exists():
        raise SecurityValidationError("Executable file does not exist")

    return executable_path


def validate_command_argument(arg: str) -> str:
    if len(arg) > MAX_ARGUMENT_LENGTH:
        raise SecurityValidationError("Command argument too long")

    for pattern in _DANGEROUS_ARGUMENT_PATTERNS:
        if pattern.search(arg):
            raise SecurityValidationError("Command argument contains dangerous patterns")

    return arg


def validate_working_directory(working_dir: str) -> str:
    path = Path(working_dir)
    if not path.is_dir():
        raise SecurityValidationError("Working directory does not exist")
    return str(path)
