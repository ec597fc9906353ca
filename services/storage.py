from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import quote

import requests

from config import Config
from utils import RemoteStoreError

log = logging.getLogger(__name__)


def _clean_path(path: str) -> str:
    parts = [p for p in str(path or "").replace("\\", "/").split("/") if p not in {"", "."}]
    if not parts or any(p == ".." for p in parts):
        raise RemoteStoreError("Invalid object path", code="BAD_REQUEST", http_status=400)
    return "/".join(parts)


class LocalBlobStore:
    """Blob store on the local filesystem; objects are served by GET /files/<bucket>/<path>."""

    def __init__(self, upload_dir: str, public_base_url: str = ""):
        self.upload_dir = os.path.abspath(upload_dir)
        self.public_base_url = str(public_base_url or "").rstrip("/")

    def local_path(self, bucket: str, path: str) -> str:
        return os.path.join(self.upload_dir, _clean_path(bucket), *_clean_path(path).split("/"))

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "") -> dict[str, Any]:
        target = self.local_path(bucket, path)
        if os.path.exists(target):
            raise RemoteStoreError("The resource already exists", code="CONFLICT", http_status=409)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)
        except OSError as e:
            raise RemoteStoreError(f"Failed to store object: {e.strerror or e}") from e
        return {"bucket": bucket, "path": _clean_path(path), "size": len(data), "contentType": content_type}

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/files/{quote(_clean_path(bucket))}/{quote(_clean_path(path))}"


class SupabaseBlobStore:
    """Supabase Storage over its REST API (public buckets)."""

    def __init__(self, base_url: str, service_key: str, *, timeout_seconds: float = 30.0):
        self.base_url = str(base_url or "").rstrip("/")
        self.service_key = str(service_key or "")
        self.timeout_seconds = timeout_seconds

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "") -> dict[str, Any]:
        object_path = f"{quote(_clean_path(bucket))}/{quote(_clean_path(path))}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type or "application/octet-stream",
            "cache-control": "3600",
            "x-upsert": "false",
        }
        try:
            resp = requests.post(
                f"{self.base_url}/storage/v1/object/{object_path}",
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise RemoteStoreError(f"Failed to call storage: {e}") from e

        if resp.status_code >= 400:
            snippet = str(resp.text or "").strip()[:500]
            log.warning("storage upload failed status=%s body=%s", resp.status_code, snippet)
            raise RemoteStoreError(
                f"Storage upload failed (HTTP {resp.status_code}): {snippet or 'no response body'}",
                code="CONFLICT" if resp.status_code == 409 else "REMOTE_STORE",
                http_status=409 if resp.status_code == 409 else 502,
            )
        return {"bucket": bucket, "path": _clean_path(path), "size": len(data), "contentType": content_type}

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{quote(_clean_path(bucket))}/{quote(_clean_path(path))}"


def build_blob_store(cfg: Config):
    if cfg.FILE_STORAGE_MODE == "supabase":
        return SupabaseBlobStore(cfg.SUPABASE_URL, cfg.SUPABASE_SERVICE_KEY, timeout_seconds=cfg.STORAGE_TIMEOUT_SECONDS)
    return LocalBlobStore(cfg.UPLOAD_DIR, cfg.PUBLIC_BASE_URL)
