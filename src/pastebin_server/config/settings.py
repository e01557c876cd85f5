from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

DEFAULT_DATA_DIR = "~/.pastebin_server"
DEFAULT_ENV_FILE = ".env"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_CAPACITY = 10
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "DEBUG"

ENV_DATA_DIR = "PASTEBIN_DATA_DIR"
ENV_ENV_FILE = "PASTEBIN_ENV_FILE"
ENV_HOST = "PASTEBIN_HOST"
ENV_PORT = "PASTEBIN_PORT"
ENV_CAPACITY = "PASTEBIN_CAPACITY"
ENV_REQUEST_TIMEOUT = "PASTEBIN_REQUEST_TIMEOUT"
ENV_LOG_LEVEL = "PASTEBIN_LOG_LEVEL"
ENV_ALLOW_NON_LOOPBACK = "PASTEBIN_ALLOW_NON_LOOPBACK"

LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def resolve_path(path: str) -> Path:
    return Path(os.path.expanduser(path))


def env_file_path(data_dir: str) -> Path:
    explicit = os.environ.get(ENV_ENV_FILE)
    if explicit:
        return resolve_path(explicit)
    return resolve_path(data_dir) / DEFAULT_ENV_FILE


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in _TRUE_VALUES


def parse_port(value: Optional[str], default: int = 0) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if not (0 <= parsed <= 65535):
        return default
    return parsed


def parse_non_negative_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if parsed < 0:
        return default
    return parsed


def parse_positive_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    if not math.isfinite(parsed) or parsed <= 0:
        return default
    return parsed


def parse_log_level(value: Optional[str], default: str = DEFAULT_LOG_LEVEL) -> str:
    if value is None:
        return default
    normalized = str(value).strip().upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in LOG_LEVELS:
        return default
    return normalized


def load_env_file(path: Path) -> Dict[str, str]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (FileNotFoundError, OSError):
        return {}
    data: Dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        if key:
            data[key] = value
    return data


@dataclass(frozen=True)
class Settings:
    data_dir: str
    host: str
    port: int
    capacity: int
    request_timeout: float
    log_level: str
    allow_non_loopback: bool

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def build_settings(
    *,
    data_dir: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    capacity: Optional[int] = None,
    request_timeout: Optional[float] = None,
    log_level: Optional[str] = None,
    allow_non_loopback: Optional[bool] = None,
) -> Settings:
    initial_data_dir = data_dir or os.environ.get(ENV_DATA_DIR) or DEFAULT_DATA_DIR
    data_dir_path = resolve_path(initial_data_dir)
    env_path = env_file_path(str(data_dir_path))
    file_env = load_env_file(env_path)
    merged = dict(file_env)
    merged.update(os.environ)

    resolved_data_dir = str(resolve_path(data_dir or merged.get(ENV_DATA_DIR) or initial_data_dir))
    resolved_host = (host or merged.get(ENV_HOST) or DEFAULT_HOST).strip() or DEFAULT_HOST

    if port is None:
        resolved_port = parse_port(merged.get(ENV_PORT), default=DEFAULT_PORT)
    else:
        resolved_port = max(0, int(port))

    if capacity is None:
        resolved_capacity = parse_non_negative_int(merged.get(ENV_CAPACITY), default=DEFAULT_CAPACITY)
    else:
        resolved_capacity = max(0, int(capacity))

    if request_timeout is None:
        resolved_timeout = parse_positive_float(merged.get(ENV_REQUEST_TIMEOUT), default=DEFAULT_REQUEST_TIMEOUT)
    else:
        resolved_timeout = parse_positive_float(str(request_timeout), default=DEFAULT_REQUEST_TIMEOUT)

    resolved_log_level = parse_log_level(log_level if log_level is not None else merged.get(ENV_LOG_LEVEL))

    if allow_non_loopback is None:
        resolved_allow_non_loopback = parse_bool(merged.get(ENV_ALLOW_NON_LOOPBACK), default=False)
    else:
        resolved_allow_non_loopback = bool(allow_non_loopback)

    return Settings(
        data_dir=resolved_data_dir,
        host=resolved_host,
        port=resolved_port,
        capacity=resolved_capacity,
        request_timeout=resolved_timeout,
        log_level=resolved_log_level,
        allow_non_loopback=resolved_allow_non_loopback,
    )
