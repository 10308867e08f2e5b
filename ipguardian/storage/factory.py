from ipguardian.config.settings import Settings
from ipguardian.storage.base import BaseObjectStore
from ipguardian.storage.ipfs_client import IpfsObjectStore
from ipguardian.storage.memory_store import InMemoryObjectStore


class ObjectStoreFactory:
    """Creates the configured object store client."""

    BACKENDS = ("ipfs", "memory")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStore:
        backend = settings.object_store_backend.lower()
        if backend == "ipfs":
            return IpfsObjectStore(
                api_url=settings.object_store_api_url,
                gateway_url=settings.object_store_gateway_url,
                timeout_seconds=settings.object_store_timeout_seconds,
            )
        if backend == "memory":
            return InMemoryObjectStore(gateway_url=settings.object_store_gateway_url)
        raise ValueError(
            f"Unknown object store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
