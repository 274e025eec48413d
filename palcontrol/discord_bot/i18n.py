import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
LOCALES_PATH = Path(__file__).parent / "locales"


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """{"start": {"busy": "..."}} -> {"start.busy": "..."}"""
    flat: Dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{full_key}."))
        else:
            flat[full_key] = str(value)
    return flat


class TranslationsManager:
    """Textos de la interfaz de Discord por idioma, con el inglés como respaldo."""

    def __init__(self, locales_path: Path = LOCALES_PATH):
        self._translations: Dict[str, Dict[str, str]] = {}
        self._load_translations(locales_path)

    @property
    def locales(self) -> list[str]:
        return sorted(self._translations)

    def _load_translations(self, locales_path: Path) -> None:
        if not locales_path.is_dir():
            logger.warning("No se encontró el directorio de locales '%s'", locales_path)
            return

        for file in locales_path.glob("*.json"):
            try:
                with open(file, "r", encoding="utf-8") as f:
                    self._translations[file.stem] = _flatten(json.load(f))
                logger.debug("Locale cargado: %s", file.stem)
            except (json.JSONDecodeError, OSError) as e:
                logger.error("Error al cargar el locale '%s': %s", file.stem, e)

    def get_string(self, key: str, locale: str = DEFAULT_LOCALE, **kwargs: Any) -> str:
        """
        Devuelve el texto para `key` en `locale` ('es-ES' -> 'es').

        Example: get_string("stop.failed", "es", message="shutdown timed out")
        """
        base_locale = str(locale).split("-")[0].lower()
        value = self._translations.get(base_locale, {}).get(key)
        if value is None:
            value = self._translations.get(DEFAULT_LOCALE, {}).get(key)
        if value is None:
            logger.warning("Traducción faltante para la clave: %s", key)
            return key

        try:
            return value.format(**kwargs)
        except (KeyError, IndexError) as e:
            logger.warning("Placeholder faltante %s para la clave: %s", e, key)
            return value
