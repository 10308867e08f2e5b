from abc import ABC, abstractmethod
from pathlib import Path

from ipguardian.storage.models import StoredObject

PUBLIC_GATEWAYS: tuple[str, ...] = (
    "https://ipfs.io/ipfs",
    "https://gateway.pinata.cloud/ipfs",
    "https://cloudflare-ipfs.com/ipfs",
    "https://dweb.link/ipfs",
)


class BaseObjectStore(ABC):
    """Contract for content-addressed object store clients.

    Every call is a single attempt bounded by the client's timeout. Adding the
    same bytes twice yields the same content id.
    """

    def __init__(self, gateway_url: str = "") -> None:
        self._gateway_url = gateway_url.rstrip("/")

    @abstractmethod
    def add(self, source: Path | bytes, name: str) -> StoredObject:
        """Upload bytes (or the file at ``source``) and return the stored object.

        Raises:
            TransientStoreError: on network error, timeout or rejected request.
        """

    @abstractmethod
    def cat(self, content_id: str) -> bytes:
        """Fetch the full content for a content id.

        Raises:
            TransientStoreError: on network error, timeout or rejected request.
        """

    @abstractmethod
    def pin(self, content_id: str) -> bool:
        """Mark content as must-retain."""

    @abstractmethod
    def unpin(self, content_id: str) -> bool:
        """Release a previous pin."""

    def close(self) -> None:
        """Release client resources. No-op by default."""

    def gateway_url(self, content_id: str) -> str:
        return f"{self._gateway_url}/ipfs/{content_id}"

    @staticmethod
    def public_gateway_urls(content_id: str) -> list[str]:
        return [f"{gateway}/{content_id}" for gateway in PUBLIC_GATEWAYS]
