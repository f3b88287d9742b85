# apps/api/health.py
from __future__ import annotations

import logging
from typing import Any, Dict

from cache import healthcheck as cache_healthcheck
from config import settings
from db import healthcheck as db_healthcheck
from storage import client as storage_client

log = logging.getLogger("health")


def check_database() -> Dict[str, Any]:
    """Check if database connection is working."""
    try:
        db_healthcheck()
        return {"ok": True}
    except Exception as e:
        log.warning("Database health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_cache() -> Dict[str, Any]:
    """Check if Redis (sessions, rate limits) is working."""
    try:
        if not cache_healthcheck():
            raise RuntimeError("Redis ping returned falsy response")
        return {"ok": True}
    except Exception as e:
        log.warning("Cache health check failed: %s", e)
        return {"ok": False, "error": str(e)}


def check_object_storage(skip_if_disabled: bool = False) -> Dict[str, Any]:
    """Check the thumbnail/avatar bucket (optional service)."""
    bucket = settings.s3_bucket
    if not bucket:
        return {"ok": True, "skipped": True, "reason": "S3 bucket not configured"}

    if skip_if_disabled:
        return {"ok": True, "skipped": True, "reason": "optional check skipped"}

    try:
        if not storage_client().bucket_exists(bucket):
            raise RuntimeError(f"Bucket '{bucket}' does not exist")
        return {"ok": True, "bucket": bucket}
    except Exception as e:
        log.warning("Object storage health check failed: %s", e)
        return {"ok": True, "error": str(e), "optional": True}


def collect_health_status(include_optional: bool = True) -> Dict[str, Any]:
    """
    Run all health checks and return overall status.

    Required services: database, cache
    Optional services: object_storage (thumbnails fall back to absolute URLs)

    Returns overall "ok": True only if all required services are healthy.
    """
    database = check_database()
    cache = check_cache()
    storage = check_object_storage(skip_if_disabled=not include_optional)

    overall_ok = all([
        database.get("ok", False),
        cache.get("ok", False),
    ])

    return {
        "ok": overall_ok,
        "checks": {
            "database": database,
            "cache": cache,
            "object_storage": storage,
        },
    }
