"""Configuration loader for secret-sync.

Settings come from environment variables first, then from an optional flat
YAML file. Backend settings are looked up with the SOURCE_/DEST_ prefix
first, falling back to the unprefixed variable, so that
SOURCE_VAULT_ADDR wins over VAULT_ADDR for the source store.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .models import Environment
from .tag_filter import parse_filter_tags

logger = logging.getLogger(__name__)

PREFIX_SOURCE = "SOURCE_"
PREFIX_DEST = "DEST_"

ENV_CONFIG_PATH = "SECRET_SYNC_CONFIG"
ENV_SYNC_ENV = "ENVIRONMENT"
ENV_SYSTEM = "SYSTEM"
ENV_FILTER_TAGS = "FILTER_TAGS"
ENV_LOG_LEVEL = "LOG_LEVEL"

SYSTEM_VAULT = "vault"
SYSTEM_AWS = "aws"
SYSTEM_GCP = "gcp"
SYSTEMS = (SYSTEM_VAULT, SYSTEM_AWS, SYSTEM_GCP)

VAULT_DEFAULT_ENGINE = "secrets"
AWS_DEFAULT_REGION = "eu-central-1"


@dataclass
class BackendConfig:
    """Connection settings for one side of the sync."""
    system: str
    prefix: str
    settings: Dict[str, str] = field(default_factory=dict)


@dataclass
class SyncConfig:
    """Validated configuration for a sync run."""
    environment: Environment
    source: BackendConfig
    destination: BackendConfig
    filter_tags: Dict[str, str] = field(default_factory=dict)
    log_level: Optional[str] = None


class _Settings:
    """Lookup over environment variables with a config file fallback."""

    def __init__(self, environ: Mapping[str, str], file_values: Mapping[str, Any]):
        self._environ = environ
        self._file_values = file_values

    def get(self, key: str) -> str:
        value = self._environ.get(key)
        if value:
            return value
        value = self._file_values.get(key)
        return "" if value is None else str(value)

    def get_prefixed(self, prefix: str, key: str) -> str:
        return self.get(prefix + key) or self.get(key)


def _get_config_path(config_path: Optional[str], environ: Mapping[str, str]) -> Optional[str]:
    """
    Get the optional config file path.

    Priority order:
    1. Explicit path (e.g. --config)
    2. SECRET_SYNC_CONFIG environment variable

    Returns:
        Path to the config file, or None when no file is configured
    """
    if config_path:
        return config_path
    env_path = environ.get(ENV_CONFIG_PATH)
    if env_path:
        logger.debug(f"Using config file from {ENV_CONFIG_PATH}: {env_path}")
        return env_path
    return None


def _load_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load a flat YAML mapping of configuration variables.

    Raises:
        ConfigError: If the file is missing, unparsable or not a mapping
    """
    if not os.path.exists(config_path):
        raise ConfigError(
            f"Configuration file not found at: {config_path}\n"
            f"Unset {ENV_CONFIG_PATH} or point it to an existing YAML file."
        )

    try:
        with open(config_path, 'r') as f:
            values = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if values is None:
        return {}

    if not isinstance(values, dict):
        raise ConfigError(
            f"Config file at {config_path} must contain a mapping\n"
            f"Example:\n"
            f"ENVIRONMENT: dev\n"
            f"SOURCE_SYSTEM: aws\n"
            f"DEST_SYSTEM: vault"
        )

    logger.info(f"Configuration file loaded from {config_path}")
    return values


def _load_vault_settings(prefix: str, settings: _Settings) -> Dict[str, str]:
    address = settings.get_prefixed(prefix, "VAULT_ADDR")
    if not address:
        raise ConfigError(f"{prefix}VAULT_ADDR not defined, cannot connect to HashiCorp Vault")

    kubernetes_role = settings.get_prefixed(prefix, "VAULT_KUBERNETES_ROLE")
    token = "" if kubernetes_role else settings.get_prefixed(prefix, "VAULT_TOKEN")
    if not kubernetes_role and not token:
        raise ConfigError(
            f"{prefix}VAULT_KUBERNETES_ROLE or {prefix}VAULT_TOKEN not defined, "
            f"cannot authenticate to HashiCorp Vault"
        )

    return {
        "address": address,
        "kubernetes_role": kubernetes_role,
        "token": token,
        "engine": settings.get_prefixed(prefix, "VAULT_SECRETS_ENGINE") or VAULT_DEFAULT_ENGINE,
    }


def _load_aws_settings(prefix: str, settings: _Settings) -> Dict[str, str]:
    return {
        "region": settings.get_prefixed(prefix, "AWS_REGION") or AWS_DEFAULT_REGION,
        "role_arn": settings.get_prefixed(prefix, "AWS_ROLE_ARN"),
    }


def _load_gcp_settings(prefix: str, settings: _Settings) -> Dict[str, str]:
    project_id = settings.get_prefixed(prefix, "GCP_PROJECT")
    if not project_id:
        raise ConfigError(f"{prefix}GCP_PROJECT not defined, cannot connect to GCP Secret Manager")

    credentials_path = settings.get_prefixed(prefix, "GOOGLE_APPLICATION_CREDENTIALS")
    if credentials_path and not os.path.isfile(credentials_path):
        raise ConfigError(
            f"Service account file not found at: {credentials_path}\n"
            f"Please ensure the file exists or update {prefix}GOOGLE_APPLICATION_CREDENTIALS"
        )

    return {"project_id": project_id, "credentials_path": credentials_path}


_SETTINGS_LOADERS = {
    SYSTEM_VAULT: _load_vault_settings,
    SYSTEM_AWS: _load_aws_settings,
    SYSTEM_GCP: _load_gcp_settings,
}


def load_backend_config(prefix: str, settings: _Settings) -> BackendConfig:
    """
    Load the backend configuration for one side of the sync.

    Args:
        prefix: PREFIX_SOURCE or PREFIX_DEST
        settings: Variable lookup

    Raises:
        ConfigError: If the system is missing, unknown or lacks required settings
    """
    system = settings.get(prefix + ENV_SYSTEM)
    if not system:
        raise ConfigError(f"Required env variable {prefix}{ENV_SYSTEM} not defined")

    if system not in _SETTINGS_LOADERS:
        raise ConfigError(f"{prefix}{ENV_SYSTEM} should be one of: {', '.join(SYSTEMS)} (got '{system}')")

    return BackendConfig(system=system, prefix=prefix, settings=_SETTINGS_LOADERS[system](prefix, settings))


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    environment: Optional[str] = None,
    filter_tags: Optional[str] = None,
) -> SyncConfig:
    """
    Load and validate the sync configuration.

    Args:
        config_path: Optional YAML file (falls back to SECRET_SYNC_CONFIG)
        environ: Variables to read (defaults to os.environ)
        environment: Overrides ENVIRONMENT when given
        filter_tags: Overrides FILTER_TAGS when given

    Returns:
        SyncConfig with source and destination backends

    Raises:
        ConfigError: If any required setting is missing or invalid
    """
    if environ is None:
        environ = os.environ

    path = _get_config_path(config_path, environ)
    settings = _Settings(environ, _load_config_file(path) if path else {})

    env_name = environment or settings.get(ENV_SYNC_ENV)
    if not env_name:
        raise ConfigError(f"Required env variable {ENV_SYNC_ENV} not defined")

    sync_env = Environment.from_name(env_name)
    if sync_env is None:
        valid = ", ".join(env.env_name for env in Environment)
        raise ConfigError(f"'{env_name}' not accepted value for {ENV_SYNC_ENV} (one of: {valid})")

    tags_string = filter_tags if filter_tags is not None else settings.get(ENV_FILTER_TAGS)

    config = SyncConfig(
        environment=sync_env,
        source=load_backend_config(PREFIX_SOURCE, settings),
        destination=load_backend_config(PREFIX_DEST, settings),
        filter_tags=parse_filter_tags(tags_string),
        log_level=settings.get(ENV_LOG_LEVEL) or None,
    )

    logger.debug(f"Using sync environment: {config.environment}")
    logger.debug(f"Using source system: {config.source.system}")
    logger.debug(f"Using destination system: {config.destination.system}")

    return config
