import json
from pathlib import Path
from typing import Any

import httpx

from ipguardian.logging.logger import Log
from ipguardian.storage.base import BaseObjectStore
from ipguardian.storage.exceptions import ObjectStoreError, TransientStoreError
from ipguardian.storage.models import StoredObject


class IpfsObjectStore(BaseObjectStore):
    """Object store adapter for the IPFS (Kubo) HTTP RPC API.

    All RPC endpoints are POST-only. No call is retried; a timeout is reported
    like any other transient failure.
    """

    def __init__(
        self,
        *,
        api_url: str,
        gateway_url: str,
        timeout_seconds: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(gateway_url)
        self._client = httpx.Client(
            base_url=api_url.rstrip("/") + "/",
            timeout=timeout_seconds,
            transport=transport,
        )

    def add(self, source: Path | bytes, name: str) -> StoredObject:
        # pin=false: pinning is a separate step so its failure can be reported on its own
        if isinstance(source, bytes):
            payload = self._parse_add_response(
                self._post("add", params={"pin": "false"}, files={"file": (name, source)})
            )
        else:
            with source.open("rb") as fh:
                payload = self._parse_add_response(
                    self._post("add", params={"pin": "false"}, files={"file": (name, fh)})
                )
        try:
            stored = StoredObject(content_id=payload["Hash"], size_bytes=int(payload["Size"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ObjectStoreError(f"Unexpected add response: {payload!r}") from exc
        Log.debug("Object added to IPFS", content_id=stored.content_id, name=name)
        return stored

    def cat(self, content_id: str) -> bytes:
        return self._post("cat", params={"arg": content_id}).content

    def pin(self, content_id: str) -> bool:
        self._post("pin/add", params={"arg": content_id})
        return True

    def unpin(self, content_id: str) -> bool:
        self._post("pin/rm", params={"arg": content_id})
        return True

    def ping(self) -> bool:
        """Return True when the node answers the version endpoint."""
        try:
            self._post("version")
        except TransientStoreError as exc:
            Log.warning(f"IPFS node unreachable: {exc}")
            return False
        return True

    def close(self) -> None:
        self._client.close()

    def _post(self, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.post(endpoint, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TransientStoreError(f"IPFS {endpoint} timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise TransientStoreError(
                f"IPFS {endpoint} rejected with status {exc.response.status_code}: "
                f"{exc.response.text.strip()}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientStoreError(f"IPFS {endpoint} network error: {exc}") from exc
        return response

    @staticmethod
    def _parse_add_response(response: httpx.Response) -> dict[str, Any]:
        # /add streams one JSON object per line; the last one describes the root
        lines = [line for line in response.text.splitlines() if line.strip()]
        if not lines:
            raise ObjectStoreError("Empty add response")
        try:
            payload = json.loads(lines[-1])
        except json.JSONDecodeError as exc:
            raise ObjectStoreError(f"Invalid add response: {exc}") from exc
        if not isinstance(payload, dict):
            raise ObjectStoreError("Add response must be a JSON object")
        return payload
