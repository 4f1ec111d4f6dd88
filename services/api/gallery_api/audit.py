# services/api/gallery_api/audit.py

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import Request
from sqlalchemy.orm import Session as OrmSession

from . import models

def _safe_json(payload: Any) -> str | None:
    if payload is None:
        return None
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps({"_unserializable": True, "repr": repr(payload)}, ensure_ascii=False)

def log_audit(
    db: OrmSession,
    *,
    event_type: str,
    request: Request | None,
    admin_user_id: int | None = None,
    payload: Dict[str, Any] | None = None,
):
    """
    Adds an audit row to the session; the caller commits.
      - actor from request.state.admin_user unless admin_user_id is given
      - path/method/ip/request_id from the request
      - payload_json: structured details, never passwords or tokens
    """
    request_id = client_ip = path = method = None

    if request is not None:
        if admin_user_id is None:
            admin = getattr(request.state, "admin_user", None)
            admin_user_id = getattr(admin, "id", None)
        request_id = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
        client_ip = request.client.host if request.client else None
        path = request.url.path
        method = request.method

    db.add(
        models.AuditEvent(
            created_at=models.utcnow(),
            event_type=event_type,
            admin_user_id=admin_user_id,
            request_id=request_id,
            client_ip=client_ip,
            path=path,
            method=method,
            payload_json=_safe_json(payload),
        )
    )
