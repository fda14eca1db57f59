"""Audit logging for builder mutations."""

from __future__ import annotations

from typing import Any

from flask import current_app, has_request_context, request

from fedsite.extensions import db
from fedsite.models import AuditLog


def log_action(
    actor_id: str,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    microsite_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """
    Record a builder action in the audit log.

    Runs after the mutation it describes has been committed, so a failure here
    is logged and swallowed rather than undoing the change.

    Args:
        actor_id: Auth Provider account that performed the action
        action: Action performed (e.g., "microsite_published", "page_deleted")
        entity_type: Type of entity affected ("microsite", "page", "block", "media")
        entity_id: ID of entity affected
        microsite_id: Owning microsite, kept even after it is deleted
        metadata: Additional metadata
    """
    try:
        meta = dict(metadata or {})
        if has_request_context():
            meta['ip_address'] = request.remote_addr

        audit_entry = AuditLog(
            microsite_id=microsite_id,
            actor_id=str(actor_id),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta,
        )

        db.session.add(audit_entry)
        db.session.commit()

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log audit action {action}: {e}")


__all__ = ["log_action"]
