"""Audit trail for org chart and account writes.

Routers describe what a request did with ``record_action`` or
``record_node_change``; ``AuditMiddleware`` writes one ``AuditLog`` row once
the response status is known. Writes under ``/api/`` that never reached a
router (bad token, malformed body) are still recorded, keyed by route.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.domain.models import AuditLog
from app.infra.db import engine

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
AUDIT_ENTRY_STATE_KEY = "audit_entry"


@dataclass
class AuditEntry:
    action: str
    node_id: str | None = None
    actor_id: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)


def audit_outcome(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code in {401, 403, 404}:
        return "denied"
    if status_code >= 400:
        return "rejected"
    return "success"


def record_action(
    request: Request,
    action: str,
    *,
    node_id: str | None = None,
    actor_id: str | None = None,
    **detail: Any,
) -> AuditEntry:
    entry = AuditEntry(
        action=action,
        node_id=node_id,
        actor_id=actor_id,
        detail={key: value for key, value in detail.items() if value is not None},
    )
    setattr(request.state, AUDIT_ENTRY_STATE_KEY, entry)
    return entry


def record_node_change(
    request: Request,
    action: str,
    node_id: str,
    *,
    parent_before: str | None,
    parent_after: str | None,
    **detail: Any,
) -> AuditEntry:
    entry = record_action(request, action, node_id=node_id, **detail)
    if parent_before != parent_after or action.endswith(".create"):
        entry.detail["parent"] = {"from": parent_before, "to": parent_after}
    return entry


def _fallback_entry(request: Request) -> AuditEntry | None:
    if request.method not in WRITE_METHODS or not request.url.path.startswith("/api/"):
        return None
    route = request.scope.get("route")
    route_path = getattr(route, "path", request.url.path)
    return AuditEntry(action=f"{request.method} {route_path}")


def write_audit_log(entry: AuditEntry, status_code: int) -> None:
    log = AuditLog(
        actor_id=entry.actor_id,
        action=entry.action,
        node_id=entry.node_id,
        outcome=audit_outcome(status_code),
        status_code=status_code,
        detail=entry.detail,
    )
    with Session(engine) as session:
        session.add(log)
        session.commit()


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        entry = getattr(request.state, AUDIT_ENTRY_STATE_KEY, None)
        if not isinstance(entry, AuditEntry):
            entry = _fallback_entry(request)
        if entry is None:
            return response

        if entry.actor_id is None:
            claims = getattr(request.state, "claims", None)
            if isinstance(claims, dict):
                entry.actor_id = claims.get("sub")

        try:
            write_audit_log(entry, response.status_code)
        except SQLAlchemyError:
            logger.warning("audit write failed for %s on %s", entry.action, entry.node_id, exc_info=True)
        return response
