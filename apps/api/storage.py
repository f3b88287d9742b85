from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from minio import Minio
from config import settings

_client: Optional[Minio] = None

def client() -> Minio:
    global _client
    if _client is None:
        u = urlparse(settings.s3_endpoint)
        host = u.netloc or u.path  # supports "http://localhost:9000" or "localhost:9000"
        secure = (u.scheme == "https") if u.scheme else settings.s3_use_ssl
        _client = Minio(
            host,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            secure=secure,
            region=settings.s3_region,
        )
    return _client

def ensure_bucket(bucket: Optional[str] = None) -> None:
    b = bucket or settings.s3_bucket
    c = client()
    if not c.bucket_exists(b):
        c.make_bucket(b)

def build_public_url(key: str) -> str:
    base = settings.s3_public_endpoint.rstrip("/")
    return f"{base}/{settings.s3_bucket}/{key.lstrip('/')}"

def asset_url(ref: Optional[str]) -> Optional[str]:
    """Resolve a stored asset reference: absolute URLs pass through, keys go via the bucket."""
    if not ref:
        return None
    scheme = urlparse(ref).scheme
    if scheme in ("http", "https"):
        return ref
    return build_public_url(ref)
