"""Shared fixtures: an in-memory secret store standing in for a real backend."""
import copy
import json

import pytest

from secret_sync.secrets.domains.errors import (
    SecretListingError,
    SecretReadError,
    SecretWriteError,
)
from secret_sync.secrets.domains.models import SecretRecord
from secret_sync.secrets.domains.store import SecretStore


class InMemorySecretStore(SecretStore):
    """Dict-backed store. Writes go through a JSON round trip like a real backend."""

    system = "In-Memory"

    def __init__(self, secrets=None):
        # name -> {"data": {...}, "tags": {...}}
        self.secrets = {}
        for name, entry in (secrets or {}).items():
            self.secrets[name] = {
                "data": copy.deepcopy(entry.get("data", {})),
                "tags": copy.deepcopy(entry.get("tags", {})),
            }
        self.calls = []
        self.fail_list = False
        self.fail_reads = set()
        self.fail_writes = set()
        self.fail_deletes = set()
        self.ready = False

    def list_all_secrets(self):
        self.calls.append(("list",))
        if self.fail_list:
            raise SecretListingError("listing disabled", system=self.system)
        return [SecretRecord(name=name) for name in self.secrets]

    def fetch_secret_data(self, record):
        self.calls.append(("fetch", record.name))
        if record.name in self.fail_reads:
            raise SecretReadError("read disabled", system=self.system, path=record.name)
        entry = self.secrets[record.name]
        return copy.deepcopy(entry["data"]), copy.deepcopy(entry["tags"])

    def _entry(self, name):
        return self.secrets.setdefault(name, {"data": {}, "tags": {}})

    def write_secret_data(self, name, data):
        self.calls.append(("write_data", name))
        if name in self.fail_writes:
            raise SecretWriteError("write disabled", system=self.system, path=name)
        self._entry(name)["data"] = json.loads(json.dumps(data))

    def write_secret_tags(self, name, tags):
        self.calls.append(("write_tags", name))
        if name in self.fail_writes:
            raise SecretWriteError("write disabled", system=self.system, path=name)
        self._entry(name)["tags"] = json.loads(json.dumps(tags))

    def delete_secret(self, name):
        self.calls.append(("delete", name))
        if name in self.fail_deletes:
            raise SecretWriteError("delete disabled", system=self.system, path=name)
        del self.secrets[name]

    def ensure_storage_ready(self):
        self.calls.append(("ensure",))
        self.ready = True

    def writes(self):
        """Calls that changed the store."""
        return [call for call in self.calls if call[0] in ("write_data", "write_tags", "delete")]


@pytest.fixture
def make_store():
    """Factory fixture for in-memory stores."""
    return InMemorySecretStore


@pytest.fixture
def source_store():
    """Source store with secrets for several environments."""
    return InMemorySecretStore({
        "apps/my-app/db-password-dev": {"data": {"password": "dev-pw"}, "tags": {"team": "payments"}},
        "apps/my-app/db-password-prod": {"data": {"password": "prod-pw"}, "tags": {"team": "payments"}},
        "apps/my-app/api-key-nonprod": {"data": {"key": "np-key"}, "tags": {"team": "search"}},
        "apps/shared/license": {"data": {"license": "abc"}, "tags": {"Environment": "global"}},
        "apps/orphan": {"data": {"x": 1}, "tags": {}},
    })
