"""Workflow for reading secrets from a store and scoping them to an environment."""
import logging
from typing import Dict, List, Optional, Tuple

from ..domains.errors import SecretReadError
from ..domains.models import Environment, Secret
from ..domains.store import SecretStore

logger = logging.getLogger(__name__)


def _specificity(env: Optional[Environment], target_env: Environment) -> int:
    """Lower is more specific: exact match, concrete env, nonprod, global."""
    if env is target_env:
        return 0
    if env is None or not env.is_group:
        return 1
    if env is Environment.NONPROD:
        return 2
    return 3


def _rank(secret: Secret, original_name: str, target_env: Environment) -> Tuple[int, bool, str]:
    # Ties go to the untrimmed name, then to the lowest original name
    return (
        _specificity(secret.environment, target_env),
        original_name != secret.name,
        original_name,
    )


def _add_scoped(scoped: Dict[str, Tuple[Secret, str]], secret: Secret, original_name: str,
                target_env: Environment, system: str) -> None:
    existing = scoped.get(secret.name)
    if existing is None:
        scoped[secret.name] = (secret, original_name)
        return

    (keep, keep_name), (drop, drop_name) = sorted(
        [existing, (secret, original_name)],
        key=lambda entry: _rank(entry[0], entry[1], target_env),
    )

    logger.warning(
        f"Secret {secret.name} defined by both {keep_name} ({keep.environment}) and "
        f"{drop_name} ({drop.environment}) in {system}, using {keep_name} and ignoring {drop_name}"
    )
    scoped[secret.name] = (keep, keep_name)

def get_scoped_secrets(store: SecretStore, target_env: Optional[Environment] = None) -> List[Secret]:
    """
    Read every secret from a store and keep those in scope for target_env.

    Args:
        store: Store to read from
        target_env: Sync environment. None reads the store as-is: every
            secret is kept and no name is trimmed (destination view).

    Returns:
        List of secrets; environment suffixes are trimmed from names when
        target_env is a concrete environment (not a group)

    Raises:
        SecretListingError: If the store cannot list its secrets
    """
    records = store.list_all_secrets()
    scoped: Dict[str, Tuple[Secret, str]] = {}

    for record in records:
        secret = Secret(record.name)
        try:
            data, tags = store.fetch_secret_data(record)
        except SecretReadError as e:
            logger.error(f"Skipping secret {record.name} in {store.system}: {e}")
            continue

        secret.add_data(data)
        secret.add_tags(tags)
        secret.resolve_environment()

        if target_env is None:
            scoped[secret.name] = (secret, record.name)
            continue

        if not secret.belongs_to(target_env):
            logger.debug(f"Ignoring secret {secret.name} from {store.system} (environment: {secret.environment})")
            continue

        if not target_env.is_group:
            secret.trim_name_env()

        logger.debug(f"Retrieving secret {secret.name} from {store.system}")
        _add_scoped(scoped, secret, record.name, target_env, store.system)

    logger.info(f"{len(scoped)} secrets successfully read from {store.system}")
    return [secret for secret, _ in scoped.values()]
