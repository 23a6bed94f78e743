"""
Configuration loading for amo-submit.

Settings are merged from, lowest to highest precedence: built-in defaults, a YAML
config file, the environment (after loading a `.env` file) and explicit overrides
such as CLI flags.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import platformdirs
import yaml
from dotenv import load_dotenv

from amo_submit.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_API_URL_PREFIX,
    DEFAULT_APPROVAL_CHECK_INTERVAL,
    DEFAULT_APPROVAL_CHECK_TIMEOUT,
    DEFAULT_JWT_EXPIRES_IN,
    DEFAULT_VALIDATION_CHECK_INTERVAL,
    DEFAULT_VALIDATION_CHECK_TIMEOUT,
    ENV_API_ENDPOINT,
    ENV_API_KEY,
    ENV_API_SECRET,
    ENV_APPROVAL_CHECK_INTERVAL,
    ENV_APPROVAL_CHECK_TIMEOUT,
    ENV_DOWNLOAD_DIR,
    ENV_JWT_EXPIRES_IN,
    ENV_VALIDATION_CHECK_INTERVAL,
    ENV_VALIDATION_CHECK_TIMEOUT,
)
from amo_submit.exceptions import ConfigFileError, ConfigValidationError
from amo_submit.log_utils import logger
from amo_submit.submit.interfaces import Credentials

ENV_VARS: Dict[str, str] = {
    "api_key": ENV_API_KEY,
    "api_secret": ENV_API_SECRET,
    "api_url_prefix": ENV_API_ENDPOINT,
    "api_jwt_expires_in": ENV_JWT_EXPIRES_IN,
    "validation_check_interval": ENV_VALIDATION_CHECK_INTERVAL,
    "validation_check_timeout": ENV_VALIDATION_CHECK_TIMEOUT,
    "approval_check_interval": ENV_APPROVAL_CHECK_INTERVAL,
    "approval_check_timeout": ENV_APPROVAL_CHECK_TIMEOUT,
    "download_dir": ENV_DOWNLOAD_DIR,
}


@dataclass
class ClientConfig:
    """Settings for one submission client."""

    api_key: str
    api_secret: str
    api_url_prefix: str = DEFAULT_API_URL_PREFIX
    api_jwt_expires_in: int = DEFAULT_JWT_EXPIRES_IN
    validation_check_interval: float = DEFAULT_VALIDATION_CHECK_INTERVAL
    validation_check_timeout: float = DEFAULT_VALIDATION_CHECK_TIMEOUT
    approval_check_interval: float = DEFAULT_APPROVAL_CHECK_INTERVAL
    approval_check_timeout: float = DEFAULT_APPROVAL_CHECK_TIMEOUT
    logger: logging.Logger = field(default=logger, repr=False)
    download_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigValidationError(
                "API key is required", details=f"set {ENV_API_KEY}"
            )
        if not self.api_secret:
            raise ConfigValidationError(
                "API secret is required", details=f"set {ENV_API_SECRET}"
            )
        self.download_dir = Path(self.download_dir).expanduser()
        self.api_jwt_expires_in = int(
            _clamp_positive(
                "api_jwt_expires_in", self.api_jwt_expires_in, DEFAULT_JWT_EXPIRES_IN
            )
        )
        self.validation_check_interval = _clamp_positive(
            "validation_check_interval",
            self.validation_check_interval,
            DEFAULT_VALIDATION_CHECK_INTERVAL,
        )
        self.validation_check_timeout = _clamp_positive(
            "validation_check_timeout",
            self.validation_check_timeout,
            DEFAULT_VALIDATION_CHECK_TIMEOUT,
        )
        self.approval_check_interval = _clamp_positive(
            "approval_check_interval",
            self.approval_check_interval,
            DEFAULT_APPROVAL_CHECK_INTERVAL,
        )
        self.approval_check_timeout = _clamp_positive(
            "approval_check_timeout",
            self.approval_check_timeout,
            DEFAULT_APPROVAL_CHECK_TIMEOUT,
        )

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.api_key, self.api_secret, self.api_jwt_expires_in)


def _clamp_positive(name: str, value: Any, default: float) -> float:
    """
    Normalize a setting to a positive number, falling back to `default` on parse errors.

    Parameters:
        name (str): Setting name used in warning messages.
        value (Any): Value to coerce to a float.
        default (float): Returned when `value` cannot be parsed.

    Returns:
        float: The parsed value, `default` if parsing fails, or `default` if the value is not positive.
    """
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r; using default of %s", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("%s must be > 0; using default of %s", name, default)
        return default
    return parsed


def default_config_path() -> Path:
    """Return the per-user config file location."""
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Read settings from a YAML file.

    A missing default file yields an empty mapping; a missing explicit file is an error.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML or is not a mapping.
    """
    explicit = path is not None
    config_path = Path(path) if explicit else default_config_path()
    if not config_path.exists():
        if explicit:
            raise ConfigFileError("Config file not found", details=str(config_path))
        return {}

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            f"Could not read config file {config_path}", details=str(e)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Config file {config_path} must contain a mapping",
            details=type(data).__name__,
        )

    known = {f.name for f in fields(ClientConfig)} - {"logger"}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning(f"Ignoring unknown config keys in {config_path}: {', '.join(unknown)}")
    logger.debug(f"Loaded config from {config_path}")
    return {key: value for key, value in data.items() if key in known}


def load_env_settings(env_file: Optional[Path] = None) -> Dict[str, str]:
    """Load `.env` (without overriding real environment variables) and collect known settings."""
    load_dotenv(env_file)
    return {
        name: os.environ[var]
        for name, var in ENV_VARS.items()
        if os.environ.get(var)
    }


def load_config(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ClientConfig:
    """
    Build a ClientConfig from the config file, environment and overrides.

    Parameters:
        config_file (Optional[Path]): Explicit YAML file; defaults to the per-user config path.
        env_file (Optional[Path]): Explicit `.env` file; defaults to python-dotenv's search.
        overrides (Optional[Mapping[str, Any]]): Highest-precedence values; None entries are ignored.

    Raises:
        ConfigFileError: If the config file is unreadable.
        ConfigValidationError: If the API key or secret is missing.
    """
    settings: Dict[str, Any] = {}
    settings.update(load_config_file(config_file))
    settings.update(load_env_settings(env_file))
    if overrides:
        settings.update({k: v for k, v in overrides.items() if v is not None})

    return ClientConfig(
        api_key=str(settings.pop("api_key", "") or ""),
        api_secret=str(settings.pop("api_secret", "") or ""),
        **settings,
    )
