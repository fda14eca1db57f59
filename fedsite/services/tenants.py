"""Tenant directory: subdomain, slug and custom-domain lookups for microsites."""

from __future__ import annotations

import ipaddress
import re

from flask import current_app
from sqlalchemy import select

from fedsite.errors import NotFound, ValidationError
from fedsite.extensions import db
from fedsite.models import Microsite

LABEL_RE = re.compile(r'^[a-z0-9-]+$')
DOMAIN_RE = re.compile(r'^(?=.{4,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$')

# Never claimable, regardless of configuration
ALWAYS_RESERVED = frozenset({'www', 'api'})


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug."""
    text = (text or '').lower()
    # Remove special characters, keep alphanumeric and hyphens
    text = re.sub(r'[^a-z0-9\s-]', '', text)
    # Replace spaces and multiple hyphens with single hyphen
    text = re.sub(r'[\s-]+', '-', text)
    return text.strip('-')


def normalize_subdomain(value: str | None) -> str:
    return (value or '').strip().lower()


def root_label() -> str | None:
    """First label of the configured root domain (``fed`` for ``fed.mx``)."""
    root = current_app.config.get('ROOT_DOMAIN')
    if not root:
        return None
    return root.split('.', 1)[0]


def reserved_labels() -> set[str]:
    reserved = set(ALWAYS_RESERVED)
    reserved.update(current_app.config.get('RESERVED_SUBDOMAINS') or [])
    label = root_label()
    if label:
        reserved.add(label)
    return reserved


def _validate_label(value: str, field: str) -> str:
    if not value:
        raise ValidationError(f"{field} cannot be empty")
    if len(value) < 3:
        raise ValidationError(f"{field} must be at least 3 characters long")
    if len(value) > 63:
        raise ValidationError(f"{field} must be 63 characters or less")
    if not LABEL_RE.match(value):
        raise ValidationError(f"{field} can only contain lowercase letters, numbers, and hyphens")
    if value.startswith('-') or value.endswith('-'):
        raise ValidationError(f"{field} cannot start or end with a hyphen")
    if '--' in value:
        raise ValidationError(f"{field} cannot contain consecutive hyphens")
    return value


def validate_subdomain(value: str | None) -> str:
    """Return the normalised subdomain or raise ``ValidationError``."""
    subdomain = _validate_label(normalize_subdomain(value), 'Subdomain')
    if subdomain in reserved_labels():
        raise ValidationError(f"'{subdomain}' is a reserved subdomain and cannot be used")
    return subdomain


def validate_slug(value: str | None) -> str:
    """Return the normalised microsite slug or raise ``ValidationError``."""
    return _validate_label(normalize_subdomain(value), 'Slug')


def validate_custom_domain(value: str | None) -> str | None:
    domain = (value or '').strip().lower().rstrip('.')
    if not domain:
        return None
    if not DOMAIN_RE.match(domain):
        raise ValidationError("Custom domain must be a valid hostname")
    root = current_app.config.get('ROOT_DOMAIN')
    if root and (domain == root or domain.endswith('.' + root)):
        raise ValidationError("Custom domain cannot be part of the federation domain")
    return domain


def resolve(subdomain: str) -> Microsite:
    """Exact, case-normalised subdomain lookup; raises ``NotFound``."""
    normalized = normalize_subdomain(subdomain)
    if not normalized:
        raise NotFound("Microsite not found")
    stmt = select(Microsite).where(Microsite.subdomain == normalized)
    microsite = db.session.execute(stmt).scalar_one_or_none()
    if microsite is None:
        raise NotFound("Microsite not found")
    return microsite


def resolve_custom_domain(domain: str) -> Microsite | None:
    normalized = (domain or '').strip().lower().rstrip('.')
    if not normalized:
        return None
    stmt = select(Microsite).where(Microsite.custom_domain == normalized)
    return db.session.execute(stmt).scalar_one_or_none()


def extract_candidate(host: str | None) -> str | None:
    """Return the tenant label a Host header points at, or None for main-domain hosts.

    ``club1.fed.mx`` → ``club1``; ``www.fed.mx``, ``api.fed.mx``, ``fed.mx``,
    IP literals and single-label hosts → ``None``.
    """
    root = current_app.config.get('ROOT_DOMAIN')
    hostname = strip_port(host)
    # Without a root domain there is no subdomain to read
    if not root or not hostname:
        return None

    if is_ip_literal(hostname):
        return None

    labels = hostname.split('.')
    if len(labels) < 2 or hostname == root or not hostname.endswith('.' + root):
        return None

    candidate = labels[0]
    if not candidate or candidate in reserved_labels():
        return None
    return candidate


def is_within_root_domain(host: str | None) -> bool:
    root = current_app.config.get('ROOT_DOMAIN')
    hostname = strip_port(host)
    if not root or not hostname:
        return False
    return hostname == root or hostname.endswith('.' + root)


def public_url(microsite: Microsite) -> str | None:
    """Canonical public address of a microsite, custom domain first."""
    scheme = current_app.config.get('PREFERRED_URL_SCHEME') or 'https'
    if microsite.custom_domain:
        return f"{scheme}://{microsite.custom_domain}"
    root = current_app.config.get('ROOT_DOMAIN')
    if not root:
        return None
    return f"{scheme}://{microsite.subdomain}.{root}"


def check_availability(
    subdomain: str | None = None,
    slug: str | None = None,
    exclude_id: int | None = None,
) -> dict:
    """Report whether a subdomain and/or slug could be claimed right now.

    Advisory only: the unique constraints decide the race at insert time.
    """
    result: dict[str, dict] = {}
    if subdomain is not None:
        result['subdomain'] = _availability(Microsite.subdomain, subdomain, validate_subdomain, exclude_id)
    if slug is not None:
        result['slug'] = _availability(Microsite.slug, slug, validate_slug, exclude_id)
    return result


def _availability(column, raw: str, validator, exclude_id: int | None) -> dict:
    try:
        value = validator(raw)
    except ValidationError as e:
        return {'value': normalize_subdomain(raw), 'available': False, 'reason': e.message}

    stmt = select(Microsite.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(Microsite.id != exclude_id)
    taken = db.session.execute(stmt).first() is not None
    return {
        'value': value,
        'available': not taken,
        'reason': 'Already taken' if taken else None,
    }


def strip_port(host: str | None) -> str:
    hostname = (host or '').strip().lower()
    if hostname.startswith('['):
        # IPv6 literal, e.g. [::1]:5000
        return hostname.split(']', 1)[0].lstrip('[')
    return hostname.split(':', 1)[0].rstrip('.')


def is_ip_literal(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


__all__ = [
    'slugify',
    'normalize_subdomain',
    'validate_subdomain',
    'validate_slug',
    'validate_custom_domain',
    'resolve',
    'resolve_custom_domain',
    'extract_candidate',
    'is_within_root_domain',
    'check_availability',
    'public_url',
    'reserved_labels',
    'strip_port',
    'is_ip_literal',
]
