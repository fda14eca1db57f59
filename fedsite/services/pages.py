"""Page management for microsites."""

from __future__ import annotations

import re
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from fedsite.errors import (
    Conflict,
    LastResourceError,
    NotFound,
    ValidationError,
    conflict_from_integrity_error,
)
from fedsite.extensions import db
from fedsite.models import ContentBlock, Microsite, MicrositePage, MicrositeStatus
from fedsite.services.audit import log_action
from fedsite.services.microsites import get_owned_microsite
from fedsite.services.tenants import slugify

PAGE_SLUG_RE = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')


def validate_page_slug(value: Any) -> str:
    """Return a normalised non-home page slug or raise ``ValidationError``."""
    slug = str(value or '').strip().lower().strip('/')
    if not slug:
        raise ValidationError("Page slug cannot be empty")
    if len(slug) > 120:
        raise ValidationError("Page slug must be 120 characters or less")
    if not PAGE_SLUG_RE.match(slug):
        raise ValidationError("Page slug can only contain lowercase letters, numbers, and single hyphens")
    return slug


def parse_orderings(raw: Any) -> dict[int, int]:
    """Turn ``[{id, sortOrder}, ...]`` into ``{id: sort_order}``."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Orderings must be a non-empty list")

    orderings: dict[int, int] = {}
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each ordering must be an object with id and sortOrder")
        sort_order = item.get('sortOrder', item.get('sort_order'))
        try:
            item_id = int(item['id'])
            sort_order = int(sort_order)
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Each ordering must be an object with id and sortOrder")
        if item_id in orderings:
            raise ValidationError(f"Duplicate id {item_id} in orderings")
        orderings[item_id] = sort_order
    return orderings


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_title(value: Any) -> str:
    title = value.strip() if isinstance(value, str) else ''
    if not title:
        raise ValidationError("Title is required")
    if len(title) > 255:
        raise ValidationError("Title must be 255 characters or less")
    return title


def _sort_order(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("sortOrder must be an integer")


class PageService:
    """Owner-scoped page operations. Every write is a single transaction."""

    @staticmethod
    def get_owned_page(microsite_id: int, page_id: int, actor_id: str) -> tuple[Microsite, MicrositePage]:
        microsite = get_owned_microsite(microsite_id, actor_id)
        page = db.session.get(MicrositePage, page_id)
        if page is None or page.microsite_id != microsite.id:
            raise NotFound("Page not found")
        return microsite, page

    @staticmethod
    def slug_taken(microsite_id: int, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(MicrositePage.id).where(
            MicrositePage.microsite_id == microsite_id,
            MicrositePage.slug == slug,
        )
        if exclude_id is not None:
            stmt = stmt.where(MicrositePage.id != exclude_id)
        return db.session.execute(stmt).first() is not None

    @staticmethod
    def unique_slug(microsite_id: int, base: str, exclude_id: int | None = None) -> str:
        """``base``, then ``base-2``, ``base-3``... until free within the microsite."""
        slug = base
        counter = 2
        while PageService.slug_taken(microsite_id, slug, exclude_id):
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    @staticmethod
    def next_sort_order(microsite_id: int) -> int:
        stmt = select(func.max(MicrositePage.sort_order)).where(MicrositePage.microsite_id == microsite_id)
        current = db.session.execute(stmt).scalar()
        return 0 if current is None else current + 1

    @staticmethod
    def _demote_home(microsite_id: int, keep_id: int | None = None) -> MicrositePage | None:
        """Unset the current home page, moving it to a slug derived from its title.

        Flushes so the partial unique index sees the old home cleared before a
        new one is set.
        """
        stmt = select(MicrositePage).where(
            MicrositePage.microsite_id == microsite_id,
            MicrositePage.is_home_page.is_(True),
        )
        current = db.session.execute(stmt).scalar_one_or_none()
        if current is None or current.id == keep_id:
            return None

        slug = PageService.unique_slug(microsite_id, slugify(current.title) or 'page', exclude_id=current.id)
        current.is_home_page = False
        current.slug = slug
        db.session.flush()
        return current

    @staticmethod
    def _guard_unpublish(microsite: Microsite, page: MicrositePage) -> None:
        if not page.is_home_page or not page.is_published:
            return
        others = [p for p in microsite.pages if p.is_published and p.id != page.id]
        if not others:
            raise LastResourceError("Cannot unpublish the only published page while it is the home page")

    @staticmethod
    def _guard_live_home(microsite: Microsite, is_home: bool, is_published: bool) -> None:
        """A published microsite always keeps a published home page."""
        if microsite.status != MicrositeStatus.PUBLISHED:
            return
        if not is_home:
            raise LastResourceError("A published microsite must keep its home page")
        if not is_published:
            raise LastResourceError("The home page of a published microsite must stay published")

    @staticmethod
    def create_page(microsite_id: int, actor_id: str, data: dict[str, Any]) -> MicrositePage:
        """Add a page; a new home page takes slug ``""`` and demotes the old one."""
        microsite = get_owned_microsite(microsite_id, actor_id)
        title = _clean_title(data.get('title'))
        is_home = bool(data.get('is_home_page'))

        if is_home:
            slug = ''
        else:
            slug = validate_page_slug(data.get('slug') or slugify(title))
            if PageService.slug_taken(microsite.id, slug):
                raise Conflict("A page with this slug already exists")

        if data.get('sort_order') is None:
            sort_order = PageService.next_sort_order(microsite.id)
        else:
            sort_order = _sort_order(data['sort_order'])

        is_published = bool(data.get('is_published', False))
        if is_home:
            PageService._guard_live_home(microsite, True, is_published)

        try:
            if is_home:
                PageService._demote_home(microsite.id)
            page = MicrositePage(
                microsite_id=microsite.id,
                title=title,
                slug=slug,
                meta_title=data.get('meta_title'),
                meta_description=data.get('meta_description'),
                is_home_page=is_home,
                is_published=is_published,
                published_at=_now() if is_published else None,
                sort_order=sort_order,
            )
            db.session.add(page)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise conflict_from_integrity_error(e)

        log_action(actor_id, 'page_created', 'page', page.id, microsite.id, {'slug': slug})
        return page

    @staticmethod
    def update_page(microsite_id: int, page_id: int, actor_id: str, data: dict[str, Any]) -> MicrositePage:
        microsite, page = PageService.get_owned_page(microsite_id, page_id, actor_id)

        title = _clean_title(data['title']) if 'title' in data else page.title
        want_home = bool(data['is_home_page']) if 'is_home_page' in data else page.is_home_page

        new_slug = page.slug
        if want_home:
            if data.get('slug') not in (None, ''):
                raise ValidationError("The home page slug must be empty")
            new_slug = ''
        elif 'slug' in data or page.is_home_page:
            requested = data.get('slug')
            if requested:
                new_slug = validate_page_slug(requested)
                if PageService.slug_taken(microsite.id, new_slug, exclude_id=page.id):
                    raise Conflict("A page with this slug already exists")
            else:
                # Leaving home without an explicit slug
                new_slug = PageService.unique_slug(microsite.id, slugify(title) or 'page', exclude_id=page.id)

        if page.is_home_page or want_home:
            stays_published = bool(data['is_published']) if 'is_published' in data else page.is_published
            PageService._guard_live_home(microsite, want_home, stays_published)
        if 'is_published' in data and not data['is_published']:
            PageService._guard_unpublish(microsite, page)

        try:
            if want_home and not page.is_home_page:
                PageService._demote_home(microsite.id, keep_id=page.id)

            page.title = title
            page.slug = new_slug
            page.is_home_page = want_home
            for key in ('meta_title', 'meta_description'):
                if key in data:
                    setattr(page, key, data[key])
            if 'sort_order' in data:
                page.sort_order = _sort_order(data['sort_order'])
            if 'is_published' in data:
                PageService._set_published(page, bool(data['is_published']))

            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise conflict_from_integrity_error(e)

        log_action(actor_id, 'page_updated', 'page', page.id, microsite.id,
                   {'fields': sorted(k for k in data if k != 'id')})
        return page

    @staticmethod
    def _set_published(page: MicrositePage, published: bool) -> None:
        page.is_published = published
        if published and page.published_at is None:
            page.published_at = _now()

    @staticmethod
    def delete_page(microsite_id: int, page_id: int, actor_id: str) -> None:
        """Delete a page and its blocks; the last page and a live home page are kept."""
        microsite, page = PageService.get_owned_page(microsite_id, page_id, actor_id)

        stmt = select(func.count()).select_from(MicrositePage).where(MicrositePage.microsite_id == microsite.id)
        if db.session.execute(stmt).scalar() <= 1:
            raise LastResourceError("Cannot delete the last page of a microsite")
        if page.is_home_page:
            PageService._guard_live_home(microsite, False, page.is_published)

        slug = page.slug
        db.session.delete(page)
        db.session.commit()
        log_action(actor_id, 'page_deleted', 'page', page_id, microsite.id, {'slug': slug})

    @staticmethod
    def get_page(microsite_id: int, page_id: int, actor_id: str) -> MicrositePage:
        return PageService.get_owned_page(microsite_id, page_id, actor_id)[1]

    @staticmethod
    def list_pages(microsite_id: int, actor_id: str) -> list[MicrositePage]:
        microsite = get_owned_microsite(microsite_id, actor_id)
        stmt = (
            select(MicrositePage)
            .where(MicrositePage.microsite_id == microsite.id)
            .order_by(MicrositePage.sort_order, MicrositePage.id)
        )
        return list(db.session.execute(stmt).scalars().all())

    @staticmethod
    def publish_page(microsite_id: int, page_id: int, actor_id: str) -> MicrositePage:
        microsite, page = PageService.get_owned_page(microsite_id, page_id, actor_id)
        PageService._set_published(page, True)
        db.session.commit()
        log_action(actor_id, 'page_published', 'page', page.id, microsite.id)
        return page

    @staticmethod
    def unpublish_page(microsite_id: int, page_id: int, actor_id: str) -> MicrositePage:
        microsite, page = PageService.get_owned_page(microsite_id, page_id, actor_id)
        if page.is_home_page:
            PageService._guard_live_home(microsite, True, False)
        PageService._guard_unpublish(microsite, page)
        page.is_published = False
        db.session.commit()
        log_action(actor_id, 'page_unpublished', 'page', page.id, microsite.id)
        return page

    @staticmethod
    def duplicate_page(microsite_id: int, page_id: int, actor_id: str) -> MicrositePage:
        """Deep-copy a page and its blocks as an unpublished, non-home page."""
        microsite, source = PageService.get_owned_page(microsite_id, page_id, actor_id)

        base = f"{source.slug or slugify(source.title) or 'page'}-copy"
        slug = PageService.unique_slug(microsite.id, base)

        copy = MicrositePage(
            microsite_id=microsite.id,
            title=f"{source.title} (Copy)"[:255],
            slug=slug,
            meta_title=source.meta_title,
            meta_description=source.meta_description,
            is_home_page=False,
            is_published=False,
            sort_order=PageService.next_sort_order(microsite.id),
        )
        for block in source.blocks:
            copy.blocks.append(ContentBlock(
                block_type=block.block_type,
                content=deepcopy(block.content),
                settings=deepcopy(block.settings),
                sort_order=block.sort_order,
                is_visible=block.is_visible,
            ))

        try:
            db.session.add(copy)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise conflict_from_integrity_error(e)

        log_action(actor_id, 'page_duplicated', 'page', copy.id, microsite.id, {'source_id': source.id})
        return copy

    @staticmethod
    def reorder_pages(microsite_id: int, actor_id: str, orderings: Any) -> list[MicrositePage]:
        """Apply ``[{id, sortOrder}]`` atomically; any foreign id rejects the batch."""
        microsite = get_owned_microsite(microsite_id, actor_id)
        wanted = parse_orderings(orderings)

        stmt = select(MicrositePage).where(
            MicrositePage.microsite_id == microsite.id,
            MicrositePage.id.in_(list(wanted)),
        )
        pages = {page.id: page for page in db.session.execute(stmt).scalars()}
        missing = sorted(set(wanted) - set(pages))
        if missing:
            raise ValidationError(f"Pages {missing} do not belong to this microsite")

        for page_id, sort_order in wanted.items():
            pages[page_id].sort_order = sort_order
        db.session.commit()

        current_app.logger.debug(f"Reordered {len(wanted)} pages of microsite {microsite.id}")
        log_action(actor_id, 'pages_reordered', 'microsite', microsite.id, microsite.id)
        return PageService.list_pages(microsite.id, actor_id)


__all__ = ['PageService', 'validate_page_slug', 'parse_orderings']
