"""Configuration management.

Server settings come from environment variables (optionally a ``.env``
file); endpoints and their script blocks come from a YAML file.
"""

import os
import re
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

from luagate.core.exceptions import NoExtraConfigError, WrongExtraConfigError
from luagate.models.config import GatewayConfig, ScriptConfig
from luagate.scripting.loader import LiveLoader, OnceLoader, verify_checksums

load_dotenv()

ROUTER_NAMESPACE = "luagate/router"
PROXY_NAMESPACE = "luagate/proxy"
BACKEND_NAMESPACE = "luagate/proxy/backend"


def _str_to_bool(value: str) -> bool:
    """Convert string to boolean. Accepts: 'true', '1', 'yes', 'on' (case-insensitive)"""
    return value.lower() in ("true", "1", "yes", "on")


class EnvConfig:
    """Server configuration from environment variables."""

    def __init__(self):
        self.host: Optional[str] = os.environ.get("HOST")
        port = os.environ.get("PORT")
        self.port: Optional[int] = int(port) if port else None
        self.log_level: str = os.environ.get("LOG_LEVEL", "INFO")
        self.log_file: Optional[str] = os.environ.get("LOG_FILE", "logs/luagate.log") or None
        self.config_path: str = os.environ.get("CONFIG_PATH", "config.yaml")
        self.debug: bool = _str_to_bool(os.environ.get("DEBUG", "false"))

    @classmethod
    def from_env(cls) -> "EnvConfig":
        """Load configuration from environment variables"""
        return cls()


def get_env_config() -> EnvConfig:
    """Get environment configuration"""
    return EnvConfig.from_env()


def expand_env_vars(value: str) -> str:
    """Expand environment variables in string. Supports ${VAR}, ${VAR:-default}, ${VAR:default}"""
    pattern = r"\$\{([^}:]+)(?::?-([^}]*))?\}"
    return re.sub(pattern, lambda m: os.environ.get(m.group(1), m.group(2) or ""), value)


def expand_config_env_vars(config: Any) -> Any:
    """Recursively expand environment variables in config"""
    if isinstance(config, dict):
        return {k: expand_config_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [expand_config_env_vars(item) for item in config]
    elif isinstance(config, str):
        return expand_env_vars(config)
    return config


def load_config(config_path: str = "config.yaml") -> GatewayConfig:
    """Load and parse the gateway configuration from a YAML file"""
    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    return GatewayConfig(**expand_config_env_vars(raw_config))


def parse_script_config(extra_config: Mapping[str, Any], namespace: str) -> ScriptConfig:
    """Build the ScriptConfig stored under *namespace* in an extra_config block.

    Sources are read from disk here unless the block sets ``live``, in which
    case they are re-read on every lookup and no checksum is verified.

    Raises:
        NoExtraConfigError: nothing is configured under *namespace*
        WrongExtraConfigError: the block is not a mapping
        WrongChecksumTypeError, ChecksumMismatchError: md5 verification failed
    """
    if namespace not in extra_config:
        raise NoExtraConfigError(namespace)
    raw = extra_config[namespace]
    if not isinstance(raw, dict):
        raise WrongExtraConfigError(namespace)

    cfg = ScriptConfig(
        sources=raw.get("sources", []),
        pre=raw["pre"] if isinstance(raw.get("pre"), str) else "",
        post=raw["post"] if isinstance(raw.get("post"), str) else "",
        skip_next=raw.get("skip_next") is True,
        allow_open_libs=raw.get("allow_open_libs") is True,
        live=raw.get("live") is True,
    )

    if cfg.live:
        cfg.source_loader = LiveLoader()
        return cfg

    cfg.source_loader = OnceLoader.from_files(cfg.sources)

    checksums = raw.get("md5")
    if isinstance(checksums, dict):
        cfg.md5 = checksums
        verify_checksums(cfg.source_loader, checksums)

    logger.debug(f"[Lua] Parsed {namespace}: {len(cfg.sources)} source(s)")
    return cfg
