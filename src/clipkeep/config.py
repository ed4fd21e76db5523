import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "clipkeep"
DB_FILENAME = "clipboard.db"
IMAGE_DIRNAME = "images"
LOG_FILENAME = "clipkeep.log"
CONFIG_FILENAME = "config.json"

POLL_INTERVAL = 0.5  # seconds between pasteboard change checks
STORE_TIMEOUT = 5.0  # seconds to wait on a locked database
MENU_DISPLAY_COUNT = 10
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown in menu item


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    poll_interval: float = POLL_INTERVAL
    store_timeout: float = STORE_TIMEOUT
    menu_display_count: int = MENU_DISPLAY_COUNT

    @property
    def db_path(self) -> Path:
        return self.data_dir / DB_FILENAME

    @property
    def image_dir(self) -> Path:
        return self.data_dir / IMAGE_DIRNAME

    @property
    def log_path(self) -> Path:
        return self.data_dir / LOG_FILENAME

    @property
    def config_file(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


def _clamp(value, low, high):
    return max(low, min(high, value))


def _parse_number(raw, default, low, high, cast=float):
    if raw is None:
        return default
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        return default
    return _clamp(value, low, high)


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable config file %s", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", path)
        return {}
    return data


def load_config(environ: dict[str, str] | None = None) -> AppConfig:
    """Build the application config from the environment and config.json.

    Environment variables take precedence over keys in the data directory's
    ``config.json``. Invalid values fall back to defaults and out-of-range
    values are clamped.
    """
    env = os.environ if environ is None else environ
    data_dir = Path(env.get("CLIPKEEP_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()
    file_settings = _read_config_file(data_dir / CONFIG_FILENAME)

    def pick(env_key: str, file_key: str):
        if env_key in env:
            return env[env_key]
        return file_settings.get(file_key)

    return AppConfig(
        data_dir=data_dir,
        poll_interval=_parse_number(pick("CLIPKEEP_POLL_INTERVAL", "poll_interval"), POLL_INTERVAL, 0.1, 5.0),
        store_timeout=_parse_number(pick("CLIPKEEP_STORE_TIMEOUT", "store_timeout"), STORE_TIMEOUT, 0.5, 60.0),
        menu_display_count=_parse_number(
            pick("CLIPKEEP_MENU_DISPLAY_COUNT", "menu_display_count"), MENU_DISPLAY_COUNT, 5, 50, cast=int
        ),
    )
