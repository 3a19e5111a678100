from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote, unquote, urlsplit

import httpx

from ..config import settings

log = logging.getLogger(__name__)

_STORAGE_PATH_RE = re.compile(r"/(?:public|sign)/([^/]+)/(.+)$")


class StorageError(Exception):
    pass


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str
    signed_url: str


def extract_storage_path(url: Optional[str]) -> Optional[tuple[str, str]]:
    """
    (bucket, path) for a Supabase public or signed object URL, else None.
    Query strings (signed URL tokens) are ignored.
    """
    if not url:
        return None
    m = _STORAGE_PATH_RE.search(urlsplit(str(url)).path)
    if not m:
        return None
    return m.group(1), unquote(m.group(2))


class SupabaseStorageClient:
    """
    Thin wrapper over the Supabase Storage REST API (service-role key).

    transport is injectable so tests can use httpx.MockTransport.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.supabase_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.supabase_service_role_key
        self.timeout = float(timeout if timeout is not None else settings.storage_timeout_seconds)
        self.transport = transport

    def enabled(self) -> bool:
        return bool(self.service_key)

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        h = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": str(self.service_key),
        }
        if extra:
            h.update(extra)
        return h

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _object_url(self, kind: str, bucket: str, path: str) -> str:
        return f"{self.base}/storage/v1/object/{kind}{bucket}/{quote(path)}"

    def _require_key(self) -> None:
        if not self.service_key:
            raise StorageError("supabase_service_role_key not set")

    def upload(self, *, bucket: str, path: str, content: bytes, content_type: Optional[str]) -> None:
        self._require_key()
        url = self._object_url("", bucket, path)
        headers = self._headers({"x-upsert": "true", "Content-Type": content_type or "application/octet-stream"})
        try:
            with self._client() as client:
                r = client.post(url, content=content, headers=headers)
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"upload failed: {e}") from e

    def create_signed_url(self, *, bucket: str, path: str, expires_in: Optional[int] = None) -> str:
        self._require_key()
        url = self._object_url("sign/", bucket, path)
        ttl = int(expires_in if expires_in is not None else settings.signed_url_ttl_seconds)
        try:
            with self._client() as client:
                r = client.post(url, json={"expiresIn": ttl}, headers=self._headers())
                r.raise_for_status()
                data: dict[str, Any] = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"signed url failed: {e}") from e

        signed = data.get("signedURL") or data.get("signedUrl")
        if not signed:
            raise StorageError("signed url missing in response")
        if str(signed).startswith("http"):
            return str(signed)
        return f"{self.base}/storage/v1{signed}"

    def remove(self, *, bucket: str, paths: list[str]) -> None:
        self._require_key()
        if not paths:
            return
        url = f"{self.base}/storage/v1/object/{bucket}"
        try:
            with self._client() as client:
                r = client.request("DELETE", url, json={"prefixes": list(paths)}, headers=self._headers())
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"remove failed: {e}") from e

    def store(self, *, bucket: str, path: str, content: bytes, content_type: Optional[str]) -> StoredObject:
        """
        Upload + long-lived signed URL. If signing fails the uploaded object is
        removed so no orphan is left behind.
        """
        self.upload(bucket=bucket, path=path, content=content, content_type=content_type)
        try:
            signed = self.create_signed_url(bucket=bucket, path=path)
        except StorageError:
            self.remove_quietly(bucket=bucket, paths=[path])
            raise
        return StoredObject(bucket=bucket, path=path, signed_url=signed)

    def remove_quietly(self, *, bucket: str, paths: list[str]) -> bool:
        try:
            self.remove(bucket=bucket, paths=paths)
            return True
        except StorageError:
            log.warning("storage cleanup failed", extra={"bucket": bucket, "storage_path": ",".join(paths)})
            return False


def get_storage_client() -> SupabaseStorageClient:
    """FastAPI dependency; overridden in tests."""
    return SupabaseStorageClient()
