# campusconnect/services/logging_service.py
"""Audit trail of account, event and registration actions in Firestore."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import os

from flask import current_app, has_app_context
from google.cloud import firestore

logger = logging.getLogger(__name__)

AUDIT_COLLECTION = "audit_logs"

_client: Optional[firestore.Client] = None


def _get_client() -> firestore.Client:
    global _client
    if _client is None:
        project = os.environ.get("GOOGLE_CLOUD_PROJECT") or os.environ.get("GCP_PROJECT")
        db_name = os.environ.get("FIRESTORE_DB")  # e.g. "campusconnect-fs"

        kwargs: Dict[str, Any] = {}
        if project:
            kwargs["project"] = project
        if db_name:
            kwargs["database"] = db_name
        _client = firestore.Client(**kwargs)

    return _client


def _audit_disabled() -> bool:
    if os.environ.get("TESTING") == "1":
        return True
    return has_app_context() and bool(current_app.config.get("TESTING"))


def log_event(action: str, user_id: Optional[int] = None, meta: Optional[Dict[str, Any]] = None) -> None:
    if _audit_disabled():
        return

    doc = {
        "action": action,
        "user_id": user_id,
        "meta": meta or {},
        "service": "campusconnect-api",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    try:
        _get_client().collection(AUDIT_COLLECTION).add(doc)
    except Exception as e:
        # The audit trail never takes a request down with it
        logger.warning("Firestore audit write failed for %s: %r", action, e)
