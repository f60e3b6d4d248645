"""Workflow for reconciling a destination store with a desired set of secrets.

The diff is computed first as a SyncPlan, then applied through the store.
Creates and updates are applied before deletes. A failing write or delete
is recorded and the remaining secrets are still processed.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..domains.errors import SecretStoreError
from ..domains.models import Secret
from ..domains.store import SecretStore
from ..domains.tag_filter import filter_by_tags
from .scoping import get_scoped_secrets

logger = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"


@dataclass
class SecretChange:
    """A single change to apply to the destination."""
    action: str
    secret: Secret
    write_data: bool = False
    write_tags: bool = False


@dataclass
class SyncPlan:
    """Changes needed to bring the destination in line with the desired secrets."""
    changes: List[SecretChange] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    def _by_action(self, action: str) -> List[SecretChange]:
        return [change for change in self.changes if change.action == action]

    @property
    def creates(self) -> List[SecretChange]:
        return self._by_action(ACTION_CREATE)

    @property
    def updates(self) -> List[SecretChange]:
        return self._by_action(ACTION_UPDATE)

    @property
    def deletes(self) -> List[SecretChange]:
        return self._by_action(ACTION_DELETE)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


@dataclass
class SyncFailure:
    name: str
    action: str
    error: str


@dataclass
class SyncSummary:
    """Outcome of a sync run."""
    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    failures: List[SyncFailure] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "failed": len(self.failures),
            "dry_run": self.dry_run,
        }


def plan_sync(desired: List[Secret], current: List[Secret]) -> SyncPlan:
    """
    Compare desired secrets with the destination's current secrets.

    Args:
        desired: Scoped secrets from the source
        current: Every secret currently in the destination

    Returns:
        SyncPlan with creates and updates ahead of deletes
    """
    plan = SyncPlan()
    current_by_name = {secret.name: secret for secret in current}
    desired_names = set()

    for new in desired:
        desired_names.add(new.name)
        cur = current_by_name.get(new.name)

        if cur is None:
            plan.changes.append(SecretChange(ACTION_CREATE, new, write_data=True, write_tags=True))
            continue

        write_data = not new.equal_data(cur)
        write_tags = not new.equal_tags(cur)
        if write_data or write_tags:
            plan.changes.append(SecretChange(ACTION_UPDATE, new, write_data=write_data, write_tags=write_tags))
        else:
            plan.unchanged.append(new.name)

    for cur in current:
        if cur.name not in desired_names:
            plan.changes.append(SecretChange(ACTION_DELETE, cur))

    return plan


def _apply_change(store: SecretStore, change: SecretChange) -> None:
    secret = change.secret
    if change.action == ACTION_DELETE:
        logger.info(f"Secret {secret.name} removed from source system, removing also from {store.system}")
        store.delete_secret(secret.name)
        return

    if change.write_data:
        store.write_secret_data(secret.name, secret.data)
    if change.write_tags:
        store.write_secret_tags(secret.name, secret.tags)


def apply_plan(store: SecretStore, plan: SyncPlan) -> SyncSummary:
    """
    Apply a plan to the destination store.

    Returns:
        SyncSummary with per-secret failures recorded
    """
    summary = SyncSummary(unchanged=len(plan.unchanged))

    for change in plan.changes:
        try:
            _apply_change(store, change)
        except SecretStoreError as e:
            logger.error(f"Failed to {change.action} secret {change.secret.name} in {store.system}: {e}")
            summary.failures.append(SyncFailure(change.secret.name, change.action, str(e)))
            continue

        if change.action == ACTION_CREATE:
            summary.created += 1
        elif change.action == ACTION_UPDATE:
            summary.updated += 1
        else:
            summary.deleted += 1

    return summary


def _log_plan(store: SecretStore, plan: SyncPlan) -> None:
    for change in plan.changes:
        parts = []
        if change.write_data:
            parts.append("data")
        if change.write_tags:
            parts.append("tags")
        detail = f" ({', '.join(parts)})" if parts else ""
        logger.info(f"Would {change.action} secret {change.secret.name} in {store.system}{detail}")


def reconcile(store: SecretStore, desired: List[Secret],
              filter_tags: Optional[Dict[str, Any]] = None,
              dry_run: bool = False) -> SyncSummary:
    """
    Bring the destination store in line with the desired secrets.

    Args:
        store: Destination store
        desired: Scoped (and already tag-filtered) secrets from the source
        filter_tags: Active tag filter; the destination listing is narrowed
            with it so secrets outside the filter are left untouched
        dry_run: Compute and log the plan without writing anything

    Returns:
        SyncSummary of the run

    Raises:
        SecretListingError: If the destination cannot be listed
    """
    current = get_scoped_secrets(store)
    if filter_tags:
        _, current = filter_by_tags(current, filter_tags)

    plan = plan_sync(desired, current)

    if dry_run:
        _log_plan(store, plan)
        return SyncSummary(
            created=len(plan.creates),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            unchanged=len(plan.unchanged),
            dry_run=True,
        )

    summary = apply_plan(store, plan)

    if summary.created or summary.updated:
        logger.info(f"Successfully created {summary.created} and updated {summary.updated} secrets in {store.system}")
    elif not plan.creates and not plan.updates:
        logger.info(f"All secrets up to date in {store.system}")
    if summary.deleted:
        logger.info(f"Successfully cleaned {summary.deleted} removed secrets from {store.system}")
    if summary.failures:
        logger.warning(f"{len(summary.failures)} secrets failed to sync to {store.system}")

    return summary
