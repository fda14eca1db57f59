"""Microsite renderer: page selection, block assembly and public serialisation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import render_template
from sqlalchemy import select

from fedsite.errors import NotFound
from fedsite.extensions import db
from fedsite.models import ContentBlock, Microsite, MicrositePage
from fedsite.services.block_types import parse_block_content
from fedsite.services.theme import generate_theme_css

if TYPE_CHECKING:
    from flask import Request


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def select_page(microsite: Microsite, slug: str | None) -> MicrositePage:
    """Published page for ``slug``; the empty slug is the home page."""
    slug = (slug or '').strip('/').lower()
    if not slug:
        page = microsite.home_page
    else:
        stmt = select(MicrositePage).where(
            MicrositePage.microsite_id == microsite.id,
            MicrositePage.slug == slug,
        )
        page = db.session.execute(stmt).scalar_one_or_none()

    if page is None or not page.is_published:
        raise NotFound("Page not found")
    return page


def visible_blocks(page: MicrositePage) -> list[ContentBlock]:
    return sorted(
        (block for block in page.blocks if block.is_visible),
        key=lambda block: (block.sort_order, block.id),
    )


def navigation(microsite: Microsite) -> list[MicrositePage]:
    """Published pages, home page first, then by sort order and id."""
    published = [page for page in microsite.pages if page.is_published]
    return sorted(published, key=lambda page: (not page.is_home_page, page.sort_order, page.id))


def page_path(page: MicrositePage) -> str:
    return '/' if page.is_home_page or not page.slug else f'/{page.slug}'


def serialize_nav_item(page: MicrositePage) -> dict[str, Any]:
    return {
        'id': page.id,
        'title': page.title,
        'slug': page.slug,
        'path': page_path(page),
        'isHomePage': page.is_home_page,
        'sortOrder': page.sort_order,
    }


def serialize_public_block(block: ContentBlock) -> dict[str, Any]:
    return {
        'id': block.id,
        'type': block.block_type.value,
        'content': block.content or {},
        'settings': block.settings or {},
        'sortOrder': block.sort_order,
    }


def serialize_public_microsite(microsite: Microsite) -> dict[str, Any]:
    return {
        'id': microsite.id,
        'name': microsite.name,
        'description': microsite.description,
        'slug': microsite.slug,
        'subdomain': microsite.subdomain,
        'ownerType': microsite.owner_type.value,
        'logoUrl': microsite.logo_url,
        'faviconUrl': microsite.favicon_url,
        'themeKey': microsite.theme_key,
        'colorScheme': microsite.color_scheme or {},
        'features': microsite.features or {},
        'seo': {
            'title': microsite.seo_title,
            'description': microsite.seo_description,
            'keywords': microsite.seo_keywords or [],
            'ogImage': microsite.og_image,
        },
        'contact': {
            'email': microsite.contact_email,
            'phone': microsite.contact_phone,
            'address': microsite.address,
            'socialLinks': microsite.social_links or {},
        },
        'publishedAt': _iso(microsite.published_at),
    }


def build_page_payload(microsite: Microsite, page: MicrositePage) -> dict[str, Any]:
    return {
        'microsite': serialize_public_microsite(microsite),
        'page': {
            'id': page.id,
            'title': page.title,
            'slug': page.slug,
            'metaTitle': page.meta_title,
            'metaDescription': page.meta_description,
            'isHomePage': page.is_home_page,
            'blocks': [serialize_public_block(block) for block in visible_blocks(page)],
        },
        'themeCSS': generate_theme_css(microsite),
    }


def wants_json(request: Request) -> bool:
    """True when the Accept header prefers JSON over HTML."""
    best = request.accept_mimetypes.best_match(['text/html', 'application/json'])
    return best == 'application/json'


def render_page_html(microsite: Microsite, page: MicrositePage) -> str:
    blocks = [
        (block, parse_block_content(block.block_type, block.content, strict=False))
        for block in visible_blocks(page)
    ]
    return render_template(
        'site/page.html',
        microsite=microsite,
        page=page,
        blocks=blocks,
        navigation=navigation(microsite),
        theme_css=generate_theme_css(microsite),
        page_path=page_path,
    )


def render_sitemap(microsite: Microsite, base_url: str) -> str:
    base_url = base_url.rstrip('/')
    entries = []
    for page in navigation(microsite):
        updated = page.updated_at or microsite.updated_at
        entries.append({
            'loc': f"{base_url}{page_path(page)}",
            'lastmod': updated.date().isoformat() if updated else None,
            'changefreq': 'weekly',
            'priority': '1.0' if page.is_home_page else '0.8',
        })
    return render_template('site/sitemap.xml', entries=entries)


__all__ = [
    'select_page',
    'visible_blocks',
    'navigation',
    'page_path',
    'serialize_nav_item',
    'serialize_public_microsite',
    'build_page_payload',
    'wants_json',
    'render_page_html',
    'render_sitemap',
]
