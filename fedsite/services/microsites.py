"""Microsite management service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from fedsite.errors import Conflict, NotFound, Unauthorized, ValidationError, conflict_from_integrity_error
from fedsite.extensions import db
from fedsite.models import (
    ContentBlock,
    Microsite,
    MicrositePage,
    MicrositeStatus,
    OwnerType,
)
from fedsite.services import tenants
from fedsite.services.audit import log_action
from fedsite.services.block_types import normalize_block_content
from fedsite.services.templates import get_template
from fedsite.services.theme import validate_theme_key

if TYPE_CHECKING:
    from fedsite.auth import Principal


ROLE_OWNER_TYPES = {
    'club': OwnerType.CLUB,
    'state_committee': OwnerType.STATE_COMMITTEE,
    'partner': OwnerType.PARTNER,
}
# Roles that may create microsites on behalf of any owner type
FEDERATION_ROLES = {'federation', 'admin'}

DEFAULT_FEATURES = {
    'contact_form': True,
    'event_calendar': True,
    'member_directory': False,
    'photo_gallery': True,
    'news_updates': True,
    'social_media': True,
}
DEFAULT_KEYWORDS = ['pickleball', 'club', 'sports', 'community']

# Plain columns an owner may change through update_microsite
UPDATABLE_FIELDS = {
    'name',
    'description',
    'is_public',
    'color_scheme',
    'custom_css',
    'logo_url',
    'favicon_url',
    'features',
    'seo_title',
    'seo_description',
    'seo_keywords',
    'og_image',
    'contact_email',
    'contact_phone',
    'address',
    'social_links',
}
JSON_OBJECT_FIELDS = {'color_scheme', 'features', 'social_links'}


@dataclass
class Pagination:
    items: list
    current_page: int
    total_pages: int
    total_items: int


def owner_type_for(principal: Principal, requested: str | None = None) -> OwnerType:
    """Derive the owner type of a new microsite from the caller's role."""
    role = (principal.role or '').strip().lower()
    if role in ROLE_OWNER_TYPES:
        return ROLE_OWNER_TYPES[role]
    if role in FEDERATION_ROLES:
        if not requested:
            return OwnerType.CLUB
        return coerce_owner_type(requested)
    raise Unauthorized("Your role cannot own microsites")


def coerce_owner_type(value: OwnerType | str) -> OwnerType:
    if isinstance(value, OwnerType):
        return value
    try:
        return OwnerType(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown owner type '{value}'")


def coerce_status(value: MicrositeStatus | str) -> MicrositeStatus:
    if isinstance(value, MicrositeStatus):
        return value
    try:
        return MicrositeStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown status '{value}'")


def get_owned_microsite(microsite_id: int, actor_id: str) -> Microsite:
    """Load a microsite owned by ``actor_id``; anything else is ``NotFound``."""
    stmt = select(Microsite).where(
        Microsite.id == microsite_id,
        Microsite.owner_id == str(actor_id),
    )
    microsite = db.session.execute(stmt).scalar_one_or_none()
    if microsite is None:
        raise NotFound("Microsite not found")
    return microsite


def _clean_name(value: Any) -> str:
    name = (value or '').strip() if isinstance(value, str) else ''
    if not name:
        raise ValidationError("Name is required")
    if len(name) > 255:
        raise ValidationError("Name must be 255 characters or less")
    return name


def _json_object(field: str, value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return value


def _ensure_available(column, value: str, message: str, exclude_id: int | None = None) -> None:
    stmt = select(Microsite.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(Microsite.id != exclude_id)
    if db.session.execute(stmt).first() is not None:
        raise Conflict(message)


def _build_pages(template: dict) -> list[MicrositePage]:
    pages = []
    for index, page_def in enumerate(template['pages']):
        is_home = bool(page_def.get('is_home_page'))
        page = MicrositePage(
            title=page_def['title'],
            slug='' if is_home else page_def['slug'],
            is_home_page=is_home,
            is_published=False,
            sort_order=index,
        )
        for position, (block_type, content) in enumerate(page_def.get('blocks', [])):
            page.blocks.append(ContentBlock(
                block_type=block_type,
                content=normalize_block_content(block_type, content),
                settings={},
                sort_order=position,
                is_visible=True,
            ))
        pages.append(page)

    if not any(page.is_home_page for page in pages):
        raise ValidationError("Template must define a home page")
    return pages


def create_microsite(principal: Principal, data: dict[str, Any]) -> Microsite:
    """
    Create a microsite from a template, seeding its pages and starter blocks.

    Args:
        principal: Authenticated caller; becomes the owner
        data: ``name``, ``slug``, ``subdomain`` and optionally ``description``,
            ``template_id``, ``owner_type``, ``theme_key``, ``custom_domain``

    Returns:
        The committed microsite
    """
    name = _clean_name(data.get('name'))
    owner_type = owner_type_for(principal, data.get('owner_type'))

    slug = tenants.validate_slug(data.get('slug') or tenants.slugify(name))
    subdomain = tenants.validate_subdomain(data.get('subdomain') or slug)
    custom_domain = tenants.validate_custom_domain(data.get('custom_domain'))

    template_key, template = get_template(
        data.get('template_id') or data.get('template_key'),
        owner_type,
    )
    theme_key = validate_theme_key(data.get('theme_key') or template['theme_key'])
    description = (data.get('description') or '').strip() or None

    # Friendly pre-checks; the unique indexes still decide concurrent races
    _ensure_available(Microsite.subdomain, subdomain, "This subdomain is already taken")
    _ensure_available(Microsite.slug, slug, "This slug is already taken")
    if custom_domain:
        _ensure_available(Microsite.custom_domain, custom_domain, "This custom domain is already taken")

    microsite = Microsite(
        name=name,
        description=description,
        slug=slug,
        subdomain=subdomain,
        custom_domain=custom_domain,
        owner_id=str(principal.id),
        owner_type=owner_type,
        status=MicrositeStatus.DRAFT,
        is_public=False,
        template_key=template_key,
        theme_key=theme_key,
        color_scheme={**template['color_scheme'], **_json_object('colorScheme', data.get('color_scheme'))},
        features=dict(DEFAULT_FEATURES),
        seo_title=name,
        seo_description=description or f"Official site of {name}",
        seo_keywords=list(DEFAULT_KEYWORDS),
        contact_email=getattr(principal, 'email', None),
        social_links={},
    )
    microsite.pages = _build_pages(template)

    try:
        db.session.add(microsite)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise conflict_from_integrity_error(e)

    current_app.logger.info(f"Microsite {microsite.id} ({subdomain}) created by {principal.id}")
    log_action(principal.id, 'microsite_created', 'microsite', microsite.id, microsite.id,
               {'subdomain': subdomain, 'template': template_key})
    return microsite


def update_microsite(microsite_id: int, actor_id: str, data: dict[str, Any]) -> Microsite:
    """Apply allow-listed changes; slug, subdomain and domain renames are re-validated."""
    microsite = get_owned_microsite(microsite_id, actor_id)
    changed = []

    if 'name' in data:
        data = {**data, 'name': _clean_name(data['name'])}

    if 'slug' in data and data['slug'] != microsite.slug:
        slug = tenants.validate_slug(data['slug'])
        _ensure_available(Microsite.slug, slug, "This slug is already taken", microsite.id)
        microsite.slug = slug
        changed.append('slug')

    if 'subdomain' in data and tenants.normalize_subdomain(data['subdomain']) != microsite.subdomain:
        subdomain = tenants.validate_subdomain(data['subdomain'])
        _ensure_available(Microsite.subdomain, subdomain, "This subdomain is already taken", microsite.id)
        microsite.subdomain = subdomain
        changed.append('subdomain')

    if 'custom_domain' in data:
        domain = tenants.validate_custom_domain(data['custom_domain'])
        if domain != microsite.custom_domain:
            if domain:
                _ensure_available(Microsite.custom_domain, domain, "This custom domain is already taken", microsite.id)
            microsite.custom_domain = domain
            changed.append('custom_domain')

    if 'theme_key' in data:
        microsite.theme_key = validate_theme_key(data['theme_key'])
        changed.append('theme_key')

    if 'seo_keywords' in data and data['seo_keywords'] is not None and not isinstance(data['seo_keywords'], list):
        raise ValidationError("seoKeywords must be a list")

    for key in UPDATABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key in JSON_OBJECT_FIELDS:
            value = _json_object(key, value)
        elif key == 'is_public':
            value = bool(value)
        elif isinstance(value, str):
            value = value.strip() or None
        if key == 'name' and not value:
            raise ValidationError("Name is required")
        setattr(microsite, key, value)
        changed.append(key)

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise conflict_from_integrity_error(e)

    if changed:
        log_action(actor_id, 'microsite_updated', 'microsite', microsite.id, microsite.id,
                   {'fields': sorted(set(changed))})
    return microsite


def delete_microsite(microsite_id: int, actor_id: str) -> None:
    """Delete a microsite with its pages, blocks and media, removing stored files."""
    from fedsite.services.media import delete_stored_file

    microsite = get_owned_microsite(microsite_id, actor_id)
    storage_keys = [asset.storage_key for asset in microsite.media_assets]
    subdomain = microsite.subdomain

    db.session.delete(microsite)
    db.session.commit()

    for key in storage_keys:
        try:
            delete_stored_file(key)
        except OSError as e:
            current_app.logger.warning(f"Could not remove media file {key}: {e}")

    current_app.logger.info(f"Microsite {microsite_id} ({subdomain}) deleted by {actor_id}")
    log_action(actor_id, 'microsite_deleted', 'microsite', microsite_id, microsite_id, {'subdomain': subdomain})


def get_microsite(microsite_id: int, actor_id: str) -> Microsite:
    return get_owned_microsite(microsite_id, actor_id)


def list_microsites(
    actor_id: str,
    owner_type: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> Pagination:
    """Page through the caller's microsites, newest first."""
    config = current_app.config
    limit = limit or config.get('DEFAULT_PAGE_SIZE', 10)
    limit = max(1, min(int(limit), config.get('MAX_PAGE_SIZE', 100)))
    page = max(1, int(page or 1))

    stmt = select(Microsite).where(Microsite.owner_id == str(actor_id))
    if owner_type:
        stmt = stmt.where(Microsite.owner_type == coerce_owner_type(owner_type))
    if status:
        stmt = stmt.where(Microsite.status == coerce_status(status))

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = db.session.execute(count_stmt).scalar() or 0

    offset = (page - 1) * limit
    stmt = stmt.order_by(Microsite.created_at.desc(), Microsite.id.desc()).offset(offset).limit(limit)
    items = db.session.execute(stmt).scalars().all()

    return Pagination(
        items=list(items),
        current_page=page,
        total_pages=(total + limit - 1) // limit,
        total_items=total,
    )


def get_public_microsite(subdomain: str) -> Microsite:
    """Anonymous lookup: only published, public microsites are visible."""
    microsite = tenants.resolve(subdomain)
    if not microsite.is_live:
        raise NotFound("Microsite not found")
    return microsite


__all__ = [
    'Pagination',
    'owner_type_for',
    'get_owned_microsite',
    'create_microsite',
    'update_microsite',
    'delete_microsite',
    'get_microsite',
    'list_microsites',
    'get_public_microsite',
]
