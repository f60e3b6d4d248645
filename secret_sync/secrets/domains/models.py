"""Domain models for secret synchronization."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .values import values_equal

ENVIRONMENT_TAG = "Environment"


class Environment(Enum):
    """Deployment environment or environment group.

    Each member carries two constant facets:
    - is_production: the environment is prod, or a group that includes prod
    - is_group: the environment spans several concrete environments
    """

    DEV = ("dev", False, False)
    TEST = ("test", False, False)
    STAGING = ("staging", False, False)
    PROD = ("prod", True, False)
    NONPROD = ("nonprod", False, True)
    GLOBAL = ("global", True, True)

    def __init__(self, env_name: str, is_production: bool, is_group: bool):
        self.env_name = env_name
        self.is_production = is_production
        self.is_group = is_group

    def __str__(self) -> str:
        return self.env_name

    @classmethod
    def from_name(cls, name: Any) -> Optional["Environment"]:
        """
        Look up an environment by its name.

        Args:
            name: Environment name, e.g. "dev" or "nonprod"

        Returns:
            Matching Environment, or None for any unknown name (including "")
        """
        for env in cls:
            if env.env_name == name:
                return env
        return None


def belongs_to(secret_env: Optional[Environment], target_env: Optional[Environment]) -> bool:
    """
    Check whether a secret's environment is in scope for a target environment.

    Rules, first match wins:
    1. Either environment missing -> False
    2. Same environment -> True
    3. Either is global -> True
    4. One is nonprod and the other is not production -> True
    5. Otherwise False
    """
    if secret_env is None or target_env is None:
        return False

    if secret_env is target_env:
        return True

    if Environment.GLOBAL in (secret_env, target_env):
        return True

    if (secret_env is Environment.NONPROD and not target_env.is_production) or \
            (target_env is Environment.NONPROD and not secret_env.is_production):
        return True

    return False


@dataclass
class SecretRecord:
    """Raw listing entry returned by a store before its data is fetched."""
    name: str
    ref: Any = None  # backend handle (ARN, resource name, ...)
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Secret:
    """A secret at a store path with its data, tags and resolved environment."""
    name: str
    data: Dict[str, Any] = field(default_factory=dict)
    tags: Dict[str, Any] = field(default_factory=dict)
    environment: Optional[Environment] = None

    def add_data(self, data: Optional[Dict[str, Any]]) -> None:
        """Merge the given mapping into the secret's data."""
        self.data.update(data or {})

    def add_tags(self, tags: Optional[Dict[str, Any]]) -> None:
        """Merge the given mapping into the secret's tags."""
        self.tags.update(tags or {})

    def contains_tag(self, key: str) -> bool:
        return self.tags.get(key) is not None

    def contains_tag_with_value(self, key: str, value: Any) -> bool:
        """Compare a tag's value as a string; a missing tag never matches."""
        if not self.contains_tag(key):
            return False
        return str(self.tags[key]) == str(value)

    def tag_value(self, key: str) -> str:
        """Return a tag value stringified, or "" when the tag is missing."""
        if not self.contains_tag(key):
            return ""
        return str(self.tags[key])

    def env_from_name(self) -> Optional[Environment]:
        """Environment encoded as a dash-separated suffix of the name, if any."""
        parts = self.name.split("-")
        if len(parts) < 2:
            return None
        return Environment.from_name(parts[-1])

    def env_from_tags(self) -> Optional[Environment]:
        return Environment.from_name(self.tag_value(ENVIRONMENT_TAG))

    def resolve_environment(self) -> Optional[Environment]:
        """
        Resolve and store the secret's environment.

        Precedence: already-resolved environment, then name suffix, then the
        Environment tag. Calling this again never changes the result.

        Returns:
            The resolved Environment, or None if nothing matched
        """
        if self.environment is None:
            self.environment = self.env_from_name() or self.env_from_tags()
        return self.environment

    def belongs_to(self, target_env: Optional[Environment]) -> bool:
        return belongs_to(self.environment, target_env)

    def trim_name_suffix(self, suffix: str) -> None:
        if suffix and self.name.endswith(suffix):
            self.name = self.name[:-len(suffix)]

    def trim_name_env(self) -> None:
        """Drop an environment suffix, e.g. "apps/db-password-dev" -> "apps/db-password"."""
        env = self.env_from_name()
        if env is None:
            return
        suffix = f"-{env.env_name}"
        # A bare suffix such as "-dev" keeps its name
        if self.name != suffix:
            self.trim_name_suffix(suffix)

    def trim_name_path(self) -> None:
        """Keep only the last path segment, e.g. "dev/platform/my-secret" -> "my-secret"."""
        self.name = self.name.rsplit("/", 1)[-1]

    def equal_name(self, other: "Secret") -> bool:
        return self.name == other.name

    def equal_data(self, other: "Secret") -> bool:
        return values_equal(self.data, other.data)

    def equal_tags(self, other: "Secret") -> bool:
        return values_equal(self.tags, other.tags)

    def equal(self, other: "Secret") -> bool:
        return self.equal_name(other) and self.equal_data(other) and self.equal_tags(other)
