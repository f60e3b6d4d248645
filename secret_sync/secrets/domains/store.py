"""
Secret Store Interface

Defines the abstract interface every secret backend implements. The sync
workflows only talk to stores through this interface.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from .models import SecretRecord


class SecretStore(ABC):
    """
    Abstract base class for secret stores.

    Implementations wrap a specific provider (HashiCorp Vault, AWS Secrets
    Manager, GCP Secret Manager, ...). Failures are raised as
    SecretStoreError subclasses.
    """

    system: str = "base"

    @abstractmethod
    def list_all_secrets(self) -> List[SecretRecord]:
        """
        List every secret in the store.

        Returns:
            Fully paginated list of records; hierarchical keys are flattened
            into full paths

        Raises:
            SecretListingError: If keys cannot be enumerated
        """
        pass

    @abstractmethod
    def fetch_secret_data(self, record: SecretRecord) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Fetch data and tags for a listed secret.

        A secret with metadata but no live version yields empty data.

        Returns:
            Tuple of (data, tags)

        Raises:
            SecretReadError: If the secret cannot be read
        """
        pass

    @abstractmethod
    def write_secret_data(self, name: str, data: Dict[str, Any]) -> None:
        """
        Overwrite a secret's data, creating the secret if it does not exist.

        Raises:
            SecretWriteError: If the write fails
        """
        pass

    @abstractmethod
    def write_secret_tags(self, name: str, tags: Dict[str, Any]) -> None:
        """
        Replace a secret's tags, creating the secret if it does not exist.

        Raises:
            SecretWriteError: If the write fails
        """
        pass

    @abstractmethod
    def delete_secret(self, name: str) -> None:
        """
        Delete a secret.

        Raises:
            SecretWriteError: If the delete fails
        """
        pass

    def ensure_storage_ready(self) -> None:
        """Provision the underlying namespace if needed. No-op by default."""
        pass
