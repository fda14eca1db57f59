"""Domain errors raised by the microsite services."""

from __future__ import annotations

from typing import Any


class MicrositeError(Exception):
    """Base class for errors the Builder API translates into JSON responses."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    default_message = "Unexpected microsite error"

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class NotFound(MicrositeError):
    """Missing record, or a record the caller does not own."""

    status_code = 404
    kind = "not_found"
    default_message = "Microsite not found"


class Unauthorized(MicrositeError):
    status_code = 403
    kind = "unauthorized"
    default_message = "Insufficient permissions"


class Conflict(MicrositeError):
    status_code = 409
    kind = "conflict"
    default_message = "Resource already exists"


class ValidationError(MicrositeError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid input"


class LastResourceError(MicrositeError):
    """Deleting the last page, or unpublishing the only published home page."""

    status_code = 400
    kind = "last_resource"
    default_message = "Cannot remove the last remaining resource"


class PublishGateError(MicrositeError):
    """Publish preconditions unmet; carries every failed rule."""

    status_code = 400
    kind = "publish_gate"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Cannot publish: {', '.join(self.errors)}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


# (substring of the driver message, user-facing message); first match wins
_UNIQUE_MESSAGES = (
    ("uq_microsite_page_home", "Another page is already the home page"),
    ("uq_microsite_page_slug", "A page with this slug already exists"),
    ("microsite_page.microsite_id, microsite_page.slug", "A page with this slug already exists"),
    ("microsite_page.microsite_id", "Another page is already the home page"),
    ("custom_domain", "This custom domain is already taken"),
    ("subdomain", "This subdomain is already taken"),
    ("slug", "This slug is already taken"),
)


def conflict_from_integrity_error(exc: Exception) -> Conflict:
    """Translate a unique-constraint violation into a ``Conflict``."""
    detail = str(getattr(exc, "orig", exc))
    for needle, message in _UNIQUE_MESSAGES:
        if needle in detail:
            return Conflict(message)
    return Conflict()


__all__ = [
    "conflict_from_integrity_error",
    "MicrositeError",
    "NotFound",
    "Unauthorized",
    "Conflict",
    "ValidationError",
    "LastResourceError",
    "PublishGateError",
]
