"""HashiCorp Vault KV v2 store."""
import logging
from typing import Any, Dict, List, Tuple

import hvac
from hvac.exceptions import InvalidPath

from .config_loader import BackendConfig
from .errors import (
    SecretListingError,
    SecretReadError,
    SecretWriteError,
    StoreConnectionError,
)
from .models import SecretRecord
from .store import SecretStore

logger = logging.getLogger(__name__)

KUBERNETES_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"


class VaultSecretStore(SecretStore):
    """Secret store backed by a Vault KV v2 secrets engine."""

    system = "HashiCorp Vault"

    def __init__(self, client: hvac.Client, engine: str):
        self.client = client
        self.engine = engine

    @classmethod
    def from_config(cls, config: BackendConfig,
                    token_path: str = KUBERNETES_TOKEN_PATH) -> "VaultSecretStore":
        """
        Create a store and log in with a Kubernetes role or a token.

        Raises:
            StoreConnectionError: If the client cannot be created or login fails
        """
        settings = config.settings
        address = settings["address"]
        logger.info(f"Connecting to {cls.system} at {address} (engine: {settings['engine']})")

        try:
            client = hvac.Client(url=address)
            if settings.get("kubernetes_role"):
                with open(token_path, 'r') as f:
                    jwt = f.read().strip()
                client.auth.kubernetes.login(role=settings["kubernetes_role"], jwt=jwt)
            else:
                client.token = settings["token"]
            authenticated = client.is_authenticated()
        except Exception as e:
            raise StoreConnectionError(
                f"Unable to log in to {cls.system} at {address}: {e}", system=cls.system
            ) from e

        if not authenticated:
            raise StoreConnectionError(
                f"Not authenticated to {cls.system} at {address}", system=cls.system
            )

        return cls(client, settings["engine"])

    def ensure_storage_ready(self) -> None:
        """Mount a kv v2 secrets engine if it does not exist yet."""
        if self._has_engine():
            return

        logger.info(f"Secrets engine {self.engine} does not exist, creating new kv v2 engine")
        try:
            self.client.sys.enable_secrets_engine(
                backend_type="kv", path=self.engine, options={"version": "2"}
            )
        except Exception as e:
            raise StoreConnectionError(
                f"Secrets engine {self.engine} creation failed: {e}", system=self.system
            ) from e

    def _has_engine(self) -> bool:
        try:
            mounts = self.client.sys.list_mounted_secrets_engines()
        except Exception as e:
            raise StoreConnectionError(
                f"Problem reading secrets engines: {e}", system=self.system
            ) from e

        # Mount names end in "/"
        return f"{self.engine}/" in mounts.get("data", mounts)

    def list_all_secrets(self) -> List[SecretRecord]:
        return [SecretRecord(name=key) for key in self._list_keys("")]

    def _list_keys(self, path: str) -> List[str]:
        """Recursively list secret keys below path; directories end in "/"."""
        logger.debug(f"Retrieving secret keys from {self.engine}/metadata/{path}")
        try:
            response = self.client.secrets.kv.v2.list_secrets(path=path, mount_point=self.engine)
        except InvalidPath:
            if not path:
                logger.warning(f"No secrets found in {self.system} engine {self.engine}")
            return []
        except Exception as e:
            raise SecretListingError(
                f"Unable to list secret keys at {self.engine}/metadata/{path}: {e}",
                system=self.system, path=path,
            ) from e

        keys = []
        for key in response.get("data", {}).get("keys", []):
            if not isinstance(key, str):
                logger.error(f"Could not read secret key {key!r} at {path} as a string")
                continue
            if key.endswith("/"):
                keys.extend(self._list_keys(path + key))
            else:
                keys.append(path + key)
        return keys

    def fetch_secret_data(self, record: SecretRecord) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        path = record.name
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path, mount_point=self.engine, raise_on_deleted_version=True
            )
        except InvalidPath:
            # Metadata without a live version
            return {}, self._read_custom_metadata(path)
        except Exception as e:
            raise SecretReadError(
                f"Unable to read secret data: {e}", system=self.system, path=path
            ) from e

        body = response.get("data") or {}
        metadata = body.get("metadata") or {}
        return dict(body.get("data") or {}), dict(metadata.get("custom_metadata") or {})

    def _read_custom_metadata(self, path: str) -> Dict[str, Any]:
        try:
            response = self.client.secrets.kv.v2.read_secret_metadata(path=path, mount_point=self.engine)
        except Exception as e:
            raise SecretReadError(
                f"Unable to read secret metadata: {e}", system=self.system, path=path
            ) from e
        return dict((response.get("data") or {}).get("custom_metadata") or {})

    def write_secret_data(self, name: str, data: Dict[str, Any]) -> None:
        try:
            self.client.secrets.kv.v2.create_or_update_secret(
                path=name, secret=data, mount_point=self.engine
            )
        except Exception as e:
            raise SecretWriteError(
                f"Unable to update secret data: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put data to {self.system} secret {name}")

    def write_secret_tags(self, name: str, tags: Dict[str, Any]) -> None:
        # Vault custom metadata only holds string values
        custom_metadata = {str(k): str(v) for k, v in tags.items()}
        try:
            self.client.secrets.kv.v2.update_metadata(
                path=name, mount_point=self.engine, custom_metadata=custom_metadata
            )
        except Exception as e:
            raise SecretWriteError(
                f"Unable to update secret metadata: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put metadata to {self.system} secret {name}")

    def delete_secret(self, name: str) -> None:
        try:
            self.client.secrets.kv.v2.delete_metadata_and_all_versions(
                path=name, mount_point=self.engine
            )
        except Exception as e:
            raise SecretWriteError(
                f"Unable to delete secret: {e}", system=self.system, path=name
            ) from e
