import os
from collections.abc import Callable
from typing import TypeVar

from dotenv import find_dotenv, load_dotenv

from expense_dashboard.logger import get_logger

logger = get_logger(__name__)

Number = TypeVar("Number", int, float)

CONFIG_FILENAME = "config.yaml"

CONFIG_KEYS = (
    "LOG_LEVEL",
    "LOG_DIR",
    "DASHBOARD_API_URL",
    "DASHBOARD_API_TOKEN",
    "REMOVAL_DELAY_MS",
    "STRICT_TRANSITIONS",
    "NOTIFICATION_TTL",
    "BANK_CONNECTIONS_TTL",
)

DEFAULT_REMOVAL_DELAY_MS = 300
DEFAULT_NOTIFICATION_TTL_SECONDS = 8.0
DEFAULT_BANK_CONNECTIONS_TTL_SECONDS = 60.0

# SSE headers to reduce proxy buffering and keep connections alive.
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SSE_KEEPALIVE_SECONDS = 15.0
SSE_QUEUE_SIZE = 100

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_SECRET_MARKERS = ("TOKEN", "SECRET", "PASSWORD", "KEY", "AUTH")

_config_path: str | None = None


def _dotenv_path() -> str | None:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        candidate = os.path.join(config_dir, ".env")
        if os.path.exists(candidate):
            return candidate
    return find_dotenv(usecwd=True) or None


def _config_file_path() -> str:
    config_dir = os.getenv("CONFIG_DIR")
    if config_dir:
        return os.path.join(config_dir, CONFIG_FILENAME)
    nested = os.path.join(os.getcwd(), "config", CONFIG_FILENAME)
    if os.path.exists(nested):
        return nested
    return os.path.join(os.getcwd(), CONFIG_FILENAME)


def _parse_value(raw: str) -> str:
    """Drop a trailing ``# comment`` and unwrap a quoted value."""
    raw = raw.strip()
    if raw[:1] not in {'"', "'"}:
        return raw.split("#", 1)[0].rstrip()

    quote = raw[0]
    chars: list[str] = []
    escaped = False
    for char in raw[1:]:
        if escaped:
            chars.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == quote:
            return "".join(chars)
        else:
            chars.append(char)
    # Unterminated quote, keep what was written
    return raw


def read_config_file(path: str | None) -> dict[str, str]:
    """Read flat ``KEY: value`` lines; nested YAML is not supported."""
    if not path or not os.path.exists(path):
        return {}

    values: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            key, separator, raw_value = line.strip().partition(":")
            key = key.strip()
            if not separator or not key or key.startswith("#"):
                continue
            value = _parse_value(raw_value)
            if value:
                values[key] = value
    return values


def load_environment() -> None:
    """Load ``.env`` then fill unset keys from ``config.yaml``; the process environment wins."""
    global _config_path

    dotenv_path = _dotenv_path()
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    _config_path = _config_file_path()
    file_values = read_config_file(_config_path)
    for key in CONFIG_KEYS:
        if key in file_values:
            os.environ.setdefault(key, file_values[key])


def _env_number(
    name: str,
    default: Number,
    convert: Callable[[str], Number],
    min_value: Number | None,
) -> Number:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = convert(raw.strip())
    except ValueError:
        logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("[ENV] %s=%s below minimum %s, using default %s.", name, value, min_value, default)
        return default
    return value


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    return _env_number(name, default, int, min_value)


def get_env_float(name: str, default: float = 0.0, min_value: float | None = None) -> float:
    return _env_number(name, default, float, min_value)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    logger.warning("[ENV] Invalid %s='%s', using default %s.", name, raw, default)
    return default


def removal_delay_seconds() -> float:
    return get_env_int("REMOVAL_DELAY_MS", DEFAULT_REMOVAL_DELAY_MS, min_value=0) / 1000.0


def strict_transitions() -> bool:
    return get_env_bool("STRICT_TRANSITIONS", False)


def notification_ttl_seconds() -> float:
    return get_env_float("NOTIFICATION_TTL", DEFAULT_NOTIFICATION_TTL_SECONDS, min_value=0.0)


def bank_connections_ttl_seconds() -> float:
    return get_env_float("BANK_CONNECTIONS_TTL", DEFAULT_BANK_CONNECTIONS_TTL_SECONDS, min_value=0.0)


def _mask_env_value(name: str, value: str) -> str:
    value = value.replace("\r", "\\r").replace("\n", "\\n")
    secret = any(marker in name.upper() for marker in _SECRET_MARKERS)
    if not secret and not value.lower().startswith("bearer "):
        return value
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}...{value[-2:]}"


def log_environment() -> None:
    logger.info("[ENV] Config file: %s", _config_path or "<none>")
    for key in CONFIG_KEYS:
        raw_value = os.getenv(key)
        value = "<unset>" if raw_value is None else _mask_env_value(key, raw_value)
        logger.info("[ENV] %s=%s", key, value)


load_environment()

for _directory in (os.getenv("LOG_DIR"), os.getenv("CONFIG_DIR")):
    if _directory and _directory not in {".", "./"}:
        os.makedirs(_directory, exist_ok=True)
