"""Publish gate and microsite lifecycle transitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app

from fedsite.errors import PublishGateError
from fedsite.extensions import db
from fedsite.models import Microsite, MicrositeStatus
from fedsite.services.audit import log_action
from fedsite.services.microsites import get_owned_microsite
from fedsite.services.notifications import notify_owner
from fedsite.services.tenants import public_url

NO_PUBLISHED_PAGES = "At least one page must be published"
HOME_PAGE_UNPUBLISHED = "Home page must be published"
MISSING_CONTACT = "Contact email or phone must be provided"
MISSING_SEO = "SEO title and description must be provided"


@dataclass
class GateResult:
    valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'valid': self.valid, 'errors': list(self.errors)}


def _filled(value: str | None) -> bool:
    return bool(value and value.strip())


def can_publish(microsite: Microsite) -> GateResult:
    """Check every publish rule and report all failures together."""
    errors = []

    if not any(page.is_published for page in microsite.pages):
        errors.append(NO_PUBLISHED_PAGES)

    home = microsite.home_page
    if home is None or not home.is_published:
        errors.append(HOME_PAGE_UNPUBLISHED)

    if not (_filled(microsite.contact_email) or _filled(microsite.contact_phone)):
        errors.append(MISSING_CONTACT)

    if not (_filled(microsite.seo_title) and _filled(microsite.seo_description)):
        errors.append(MISSING_SEO)

    return GateResult(valid=not errors, errors=errors)


def publish_check(microsite_id: int, actor_id: str) -> GateResult:
    return can_publish(get_owned_microsite(microsite_id, actor_id))


def publish_microsite(microsite_id: int, actor_id: str) -> Microsite:
    """
    Take a microsite live.

    Raises ``PublishGateError`` with every unmet rule and changes nothing in
    that case. ``published_at`` records the first publication and is kept
    across later unpublish/publish cycles.
    """
    microsite = get_owned_microsite(microsite_id, actor_id)
    result = can_publish(microsite)
    if not result.valid:
        raise PublishGateError(result.errors)

    was_live = microsite.is_live
    microsite.status = MicrositeStatus.PUBLISHED
    microsite.is_public = True
    if microsite.published_at is None:
        microsite.published_at = datetime.now(timezone.utc)
    db.session.commit()

    if was_live:
        return microsite

    current_app.logger.info(f"Microsite {microsite.id} ({microsite.subdomain}) published by {actor_id}")
    log_action(actor_id, 'microsite_published', 'microsite', microsite.id, microsite.id)
    notify_owner(
        microsite.owner_id,
        "Microsite published",
        f'Your microsite "{microsite.name}" is now live!',
        action_url=public_url(microsite),
    )
    return microsite


def unpublish_microsite(microsite_id: int, actor_id: str) -> Microsite:
    """Return a microsite to draft. Never gated; ``published_at`` is left alone."""
    microsite = get_owned_microsite(microsite_id, actor_id)
    microsite.status = MicrositeStatus.DRAFT
    microsite.is_public = False
    db.session.commit()

    current_app.logger.info(f"Microsite {microsite.id} ({microsite.subdomain}) unpublished by {actor_id}")
    log_action(actor_id, 'microsite_unpublished', 'microsite', microsite.id, microsite.id)
    return microsite


def archive_microsite(microsite_id: int, actor_id: str) -> Microsite:
    microsite = get_owned_microsite(microsite_id, actor_id)
    microsite.status = MicrositeStatus.ARCHIVED
    microsite.is_public = False
    db.session.commit()

    current_app.logger.info(f"Microsite {microsite.id} ({microsite.subdomain}) archived by {actor_id}")
    log_action(actor_id, 'microsite_archived', 'microsite', microsite.id, microsite.id)
    return microsite


__all__ = [
    'GateResult',
    'can_publish',
    'publish_check',
    'publish_microsite',
    'unpublish_microsite',
    'archive_microsite',
]
