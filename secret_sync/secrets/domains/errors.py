"""Exceptions raised by secret-sync."""


class ConfigError(Exception):
    """Configuration error exception."""
    pass


class SecretStoreError(Exception):
    """Base class for errors raised by a secret store."""

    def __init__(self, message: str, system: str = "", path: str = ""):
        super().__init__(message)
        self.system = system
        self.path = path


class StoreConnectionError(SecretStoreError):
    """Backend unreachable or authentication failed."""
    pass


class SecretListingError(SecretStoreError):
    """Secret keys could not be enumerated."""
    pass


class SecretReadError(SecretStoreError):
    """A single secret could not be read."""
    pass


class SecretWriteError(SecretStoreError):
    """A single secret could not be written or deleted."""
    pass
