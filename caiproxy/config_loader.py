"""Configuration loading from YAML files with environment variable support."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("caiproxy")

DEFAULT_CONFIG_PATH = "configs/config_default.yaml"
CONFIG_PATH = os.getenv("CAIPROXY_CONFIG", DEFAULT_CONFIG_PATH)

DEFAULT_BACKEND_URL = "https://beta.character.ai"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class CacheSettings:
    key_prefix: str = "cai"
    csrf_ttl: int = 3600
    tgt_ttl: int = 3600
    history_ttl: int = 86400 * 7


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "memory"
    url: Optional[str] = None
    socket_timeout: Optional[float] = 5.0


@dataclass(frozen=True)
class BackendSettings:
    base_url: str = DEFAULT_BACKEND_URL
    auth_scheme: str = "Token"
    user_agent: str = DEFAULT_USER_AGENT
    csrf_enabled: bool = True
    csrf_cookie_name: str = "csrftoken"
    connect_timeout: float = 10.0
    read_timeout: float = 120.0
    stream_every_n_steps: int = 3
    batch_every_n_steps: int = 16
    ranking_method: str = "random"


@dataclass(frozen=True)
class ProxySettings:
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    max_body_bytes: int = 1024 * 1024
    backend: BackendSettings = field(default_factory=BackendSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    store: StoreSettings = field(default_factory=StoreSettings)


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path) -> Path:
    """Return the .env file that sits next to a config file."""
    stem = config_path.stem
    if stem.startswith("config_"):
        return config_path.with_name(f".env_{stem[len('config_'):]}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(path: str | None = None, substitute_env: bool = True) -> dict:
    """Load configuration from a YAML file.

    A missing file is not an error: the proxy runs on defaults plus
    environment overrides.
    """
    config_path = resolve_config_path(path or CONFIG_PATH)
    if not config_path.exists():
        logger.warning("Config file not found: %s (using defaults)", config_path)
        return {}

    logger.info("Loading configuration from %s", config_path)
    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path)
        if env_file.exists():
            logger.info("Loading environment variables from %s", env_file)
            env_values = load_env_values(env_file)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if substitute_env:
        data = _substitute_env_vars(data, env_values)
    return data


def _substitute_env_vars(obj: Any, env_values: Mapping[str, str] | None = None) -> Any:
    """Recursively replace ``${VAR}`` and ``$VAR`` placeholders.

    Unset variables leave the placeholder in place and log a warning.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning("Environment variable '%s' is not set; keeping placeholder", var_name)
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def _get(cfg: Mapping[str, Any], *keys: str):
    cur: Any = cfg
    for key in keys:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_bool(value) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return None


def _pick(*values):
    for value in values:
        if value is not None:
            return value
    return None


def load_settings(cfg: Mapping[str, Any] | None = None) -> ProxySettings:
    """Build typed settings from a config dict plus environment overrides."""
    if cfg is None:
        cfg = load_config()
    defaults = ProxySettings()
    backend_defaults = BackendSettings()
    cache_defaults = CacheSettings()
    store_defaults = StoreSettings()

    backend_cfg = _get(cfg, "backend") or {}
    cache_cfg = _get(cfg, "cache") or {}
    store_cfg = _get(cfg, "store") or {}

    backend = BackendSettings(
        base_url=(
            _to_str(os.getenv("CAIPROXY_BACKEND_URL"))
            or _to_str(backend_cfg.get("base_url"))
            or backend_defaults.base_url
        ).rstrip("/"),
        auth_scheme=_to_str(backend_cfg.get("auth_scheme")) or backend_defaults.auth_scheme,
        user_agent=_to_str(backend_cfg.get("user_agent")) or backend_defaults.user_agent,
        csrf_enabled=_pick(
            _to_bool(_get(backend_cfg, "csrf", "enabled")), backend_defaults.csrf_enabled
        ),
        csrf_cookie_name=(
            _to_str(_get(backend_cfg, "csrf", "cookie_name")) or backend_defaults.csrf_cookie_name
        ),
        connect_timeout=_pick(
            _to_float(_get(backend_cfg, "timeouts", "connect")), backend_defaults.connect_timeout
        ),
        read_timeout=_pick(
            _to_float(_get(backend_cfg, "timeouts", "read")), backend_defaults.read_timeout
        ),
        stream_every_n_steps=_pick(
            _to_int(backend_cfg.get("stream_every_n_steps")), backend_defaults.stream_every_n_steps
        ),
        batch_every_n_steps=_pick(
            _to_int(backend_cfg.get("batch_every_n_steps")), backend_defaults.batch_every_n_steps
        ),
        ranking_method=_to_str(backend_cfg.get("ranking_method")) or backend_defaults.ranking_method,
    )

    cache = CacheSettings(
        key_prefix=_to_str(cache_cfg.get("key_prefix")) or cache_defaults.key_prefix,
        csrf_ttl=_to_int(cache_cfg.get("csrf_ttl")) or cache_defaults.csrf_ttl,
        tgt_ttl=_to_int(cache_cfg.get("tgt_ttl")) or cache_defaults.tgt_ttl,
        history_ttl=_to_int(cache_cfg.get("history_ttl")) or cache_defaults.history_ttl,
    )

    store = StoreSettings(
        backend=_to_str(store_cfg.get("backend")) or store_defaults.backend,
        url=_to_str(os.getenv("CAIPROXY_STORE_URL")) or _to_str(store_cfg.get("url")),
        socket_timeout=_pick(_to_float(store_cfg.get("socket_timeout")), store_defaults.socket_timeout),
    )
    if store.url and not _to_str(store_cfg.get("backend")):
        store = StoreSettings(backend="redis", url=store.url, socket_timeout=store.socket_timeout)

    server_cfg = _get(cfg, "proxy_settings", "server") or {}
    port = _to_int(os.getenv("CAIPROXY_PORT"))
    if port is None:
        port = _to_int(server_cfg.get("port")) or defaults.port

    return ProxySettings(
        host=_to_str(os.getenv("CAIPROXY_HOST")) or _to_str(server_cfg.get("host")) or defaults.host,
        port=port,
        log_level=(
            _to_str(os.getenv("CAIPROXY_LOG_LEVEL"))
            or _to_str(_get(cfg, "proxy_settings", "log_level"))
            or defaults.log_level
        ).upper(),
        max_body_bytes=(
            _to_int(_get(cfg, "proxy_settings", "max_body_bytes")) or defaults.max_body_bytes
        ),
        backend=backend,
        cache=cache,
        store=store,
    )
