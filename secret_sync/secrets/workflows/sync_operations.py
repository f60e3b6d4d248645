"""Workflow for a full source -> destination sync run."""
import logging
from typing import List, Optional

from ..domains.config_loader import (
    SYSTEM_AWS,
    SYSTEM_GCP,
    SYSTEM_VAULT,
    BackendConfig,
    SyncConfig,
)
from ..domains.errors import ConfigError
from ..domains.models import Secret
from ..domains.store import SecretStore
from ..domains.tag_filter import filter_by_tags
from .reconcile import SyncSummary, reconcile
from .scoping import get_scoped_secrets

logger = logging.getLogger(__name__)


def create_store(config: BackendConfig) -> SecretStore:
    """
    Create and connect the store for a backend configuration.

    Backend SDKs are imported on demand so only the configured ones are loaded.

    Raises:
        ConfigError: If the system is unknown
        StoreConnectionError: If the store cannot connect or authenticate
    """
    if config.system == SYSTEM_VAULT:
        from ..domains.vault_client import VaultSecretStore
        return VaultSecretStore.from_config(config)

    if config.system == SYSTEM_AWS:
        from ..domains.aws_client import AWSSecretStore
        return AWSSecretStore.from_config(config)

    if config.system == SYSTEM_GCP:
        from ..domains.gcp_client import GCPSecretStore
        return GCPSecretStore.from_config(config)

    raise ConfigError(f"Unknown secret store system '{config.system}' for {config.prefix}SYSTEM")


def get_source_secrets(config: SyncConfig, source: SecretStore) -> List[Secret]:
    """Read secrets in scope for the sync environment, narrowed by the tag filter."""
    secrets = get_scoped_secrets(source, config.environment)
    _, secrets = filter_by_tags(secrets, config.filter_tags)
    return secrets


def sync_secrets(
    config: SyncConfig,
    source: Optional[SecretStore] = None,
    destination: Optional[SecretStore] = None,
    dry_run: bool = False,
) -> SyncSummary:
    """
    Sync secrets in scope for config.environment from source to destination.

    Args:
        config: Validated sync configuration
        source: Source store (created from config when not given)
        destination: Destination store (created from config when not given)
        dry_run: Log the changes without applying them

    Returns:
        SyncSummary; per-secret failures are recorded, not raised

    Raises:
        StoreConnectionError: If a store cannot connect or be provisioned
        SecretListingError: If a store cannot be listed
    """
    if source is None:
        source = create_store(config.source)
    if destination is None:
        destination = create_store(config.destination)

    logger.info(
        f"Syncing {config.environment} secrets from {source.system} to {destination.system}"
        f"{' (dry run)' if dry_run else ''}"
    )

    secrets = get_source_secrets(config, source)

    if not dry_run:
        destination.ensure_storage_ready()

    summary = reconcile(destination, secrets, filter_tags=config.filter_tags, dry_run=dry_run)

    logger.info(f"Sync finished: {summary.to_dict()}")
    return summary
