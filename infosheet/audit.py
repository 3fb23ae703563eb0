"""
infosheet/audit.py

Audit logging helpers.

Goals:
- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store an email snapshot so the entry stays readable after the account is deleted.
- Store IP address for traceability.

IMPORTANT:
- This helper ADDS AuditLog entries to the current SQLAlchemy session.
  The calling route controls transaction boundaries (commit/rollback).
- Columns listed in a model's ``__audit_exclude__`` are never written to the log
  (password hashes, medical details).
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import request
from flask_login import current_user

from .extensions import db
from .models import AuditLog


def _safe_str(value: Any) -> Optional[str]:
    """Stable string form for JSON storage (dates, decimals); None stays None."""
    if value is None:
        return None
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Optional[str]]:
    """
    Convert a SQLAlchemy model instance to a dict snapshot based on table columns.

    NOTES:
    - Captures only scalar column values (not relationships).
    - Columns in ``__audit_exclude__`` are left out of the snapshot.
    """
    excluded = set(getattr(instance, "__audit_exclude__", ()))
    data: Dict[str, Optional[str]] = {}
    for column in instance.__table__.columns:
        if column.name in excluded:
            continue
        data[column.name] = _safe_str(getattr(instance, column.name))
    return data


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    email: Optional[str] = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    Parameters:
        entity: SQLAlchemy model instance with .id (flushed)
        action: CREATE / UPDATE / DELETE / REGENERATE_CODE
        before: dict snapshot (optional)
        after: dict snapshot (optional)
        email: email snapshot to store when no user is logged in (account deletion)

    SECURITY NOTE:
    - request.remote_addr is as Flask sees it. Behind a reverse proxy,
      configure ProxyFix to capture the real client IP.
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    authenticated = current_user.is_authenticated
    entry = AuditLog(
        user_id=current_user.id if authenticated else None,
        email_snapshot=current_user.email if authenticated else email,
        entity_type=entity.__class__.__name__,
        entity_id=int(entity_id),
        action=str(action),
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr,
    )
    db.session.add(entry)
    return entry
