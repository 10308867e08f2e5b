class ObjectStoreError(Exception):
    """Base exception for object store failures."""


class TransientStoreError(ObjectStoreError):
    """Raised when a store call fails due to network, timeout or a non-2xx reply."""
