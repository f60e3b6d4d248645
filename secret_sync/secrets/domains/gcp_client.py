"""GCP Secret Manager store."""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .config_loader import BackendConfig
from .errors import (
    SecretListingError,
    SecretReadError,
    SecretWriteError,
    StoreConnectionError,
)
from .models import ENVIRONMENT_TAG, SecretRecord
from .store import SecretStore

logger = logging.getLogger(__name__)

# No live version: NotFound when none was ever added, FailedPrecondition when destroyed/disabled
_NO_VERSION_ERRORS = (gcp_exceptions.NotFound, gcp_exceptions.FailedPrecondition)

# Label keys and values: lowercase letters, digits, "_" and "-"; keys start with a letter
_LABEL_KEY_RE = re.compile(r"^[a-z][a-z0-9_-]{0,62}$")
_LABEL_VALUE_RE = re.compile(r"^[a-z0-9_-]{0,63}$")


def tags_to_labels(tags: Dict[str, Any]) -> Dict[str, str]:
    """
    Lowercase tags into GCP labels, dropping pairs that are not valid labels.

    Labels exist so the secret can be filtered in GCP; the exact tags are
    kept in annotations.
    """
    labels = {}
    for key, value in tags.items():
        label_key, label_value = str(key).lower(), str(value).lower()
        if _LABEL_KEY_RE.match(label_key) and _LABEL_VALUE_RE.match(label_value):
            labels[label_key] = label_value
        else:
            logger.debug(f"Tag {key}={value} is not a valid GCP label, kept as annotation only")
    return labels


def tags_from_secret(labels: Dict[str, str], annotations: Dict[str, str]) -> Dict[str, Any]:
    """
    Rebuild tags from a secret's labels and annotations.

    Annotations hold tags exactly as written. A label only counts when no
    annotation lowercases to its key, and the "environment" label maps back
    to the Environment tag.
    """
    covered = {str(key).lower() for key in annotations}
    tags: Dict[str, Any] = {}
    for key, value in labels.items():
        if key in covered:
            continue
        tags[ENVIRONMENT_TAG if key == ENVIRONMENT_TAG.lower() else key] = value
    tags.update(annotations)
    return tags


class GCPSecretStore(SecretStore):
    """Secret store backed by GCP Secret Manager. Data is a JSON payload, tags are annotations mirrored into labels."""

    system = "GCP Secret Manager"

    def __init__(self, project_id: str, credentials_path: Optional[str] = None,
                 client: Optional[secretmanager.SecretManagerServiceClient] = None):
        self.project_id = project_id
        self.credentials_path = credentials_path
        self._client = client

    @classmethod
    def from_config(cls, config: BackendConfig) -> "GCPSecretStore":
        store = cls(config.settings["project_id"], config.settings.get("credentials_path") or None)
        try:
            store.client
        except Exception as e:
            raise StoreConnectionError(
                f"Failed to create {cls.system} client for project {store.project_id}: {e}",
                system=cls.system,
            ) from e
        logger.info(f"{cls.system} client created (project: {store.project_id})")
        return store

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            if self.credentials_path:
                self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                    self.credentials_path
                )
            else:
                self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}"

    def _secret_path(self, name: str) -> str:
        return f"{self.parent}/secrets/{name}"

    def list_all_secrets(self) -> List[SecretRecord]:
        records = []
        try:
            for secret in self.client.list_secrets(request={"parent": self.parent}):
                name = secret.name.rsplit("/", 1)[-1]
                tags = tags_from_secret(dict(secret.labels), dict(secret.annotations))
                records.append(SecretRecord(name=name, ref=secret.name, tags=tags))
        except gcp_exceptions.GoogleAPICallError as e:
            raise SecretListingError(
                f"Failed to list secrets in {self.parent}: {e}", system=self.system
            ) from e
        return records

    def fetch_secret_data(self, record: SecretRecord) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        secret_path = record.ref or self._secret_path(record.name)
        try:
            response = self.client.access_secret_version(
                request={"name": f"{secret_path}/versions/latest"}
            )
        except _NO_VERSION_ERRORS:
            return {}, dict(record.tags)
        except gcp_exceptions.GoogleAPICallError as e:
            raise SecretReadError(
                f"GCP fetch failed: {e}", system=self.system, path=record.name
            ) from e

        try:
            data = json.loads(response.payload.data.decode("UTF-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SecretReadError(
                f"Secret payload is not a JSON object: {e}", system=self.system, path=record.name
            ) from e
        if not isinstance(data, dict):
            raise SecretReadError(
                "Secret payload is not a JSON object", system=self.system, path=record.name
            )
        return data, dict(record.tags)

    def _create_secret(self, name: str, tags: Dict[str, str]) -> None:
        self.client.create_secret(
            request={
                "parent": self.parent,
                "secret_id": name,
                "secret": {
                    "replication": {"automatic": {}},
                    "labels": tags_to_labels(tags),
                    "annotations": tags,
                },
            }
        )

    def write_secret_data(self, name: str, data: Dict[str, Any]) -> None:
        payload = {"data": json.dumps(data).encode("UTF-8")}
        try:
            try:
                self.client.add_secret_version(
                    request={"parent": self._secret_path(name), "payload": payload}
                )
            except gcp_exceptions.NotFound:
                self._create_secret(name, {})
                self.client.add_secret_version(
                    request={"parent": self._secret_path(name), "payload": payload}
                )
        except gcp_exceptions.GoogleAPICallError as e:
            raise SecretWriteError(
                f"Unable to update secret data: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put data to {self.system} secret {name}")

    def write_secret_tags(self, name: str, tags: Dict[str, Any]) -> None:
        annotations = {str(k): str(v) for k, v in tags.items()}
        try:
            try:
                self.client.update_secret(
                    request={
                        "secret": {
                            "name": self._secret_path(name),
                            "labels": tags_to_labels(annotations),
                            "annotations": annotations,
                        },
                        "update_mask": {"paths": ["labels", "annotations"]},
                    }
                )
            except gcp_exceptions.NotFound:
                self._create_secret(name, annotations)
        except gcp_exceptions.GoogleAPICallError as e:
            raise SecretWriteError(
                f"Unable to update secret annotations: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put annotations to {self.system} secret {name}")

    def delete_secret(self, name: str) -> None:
        try:
            self.client.delete_secret(request={"name": self._secret_path(name)})
        except gcp_exceptions.GoogleAPICallError as e:
            raise SecretWriteError(
                f"Unable to delete secret: {e}", system=self.system, path=name
            ) from e
