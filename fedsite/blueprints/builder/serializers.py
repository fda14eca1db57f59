"""JSON shapes for the builder API (camelCase keys)."""

from __future__ import annotations

import re
from typing import Any

from fedsite.models import ContentBlock, MediaAsset, Microsite, MicrositePage
from fedsite.services.microsites import Pagination
from fedsite.services.tenants import public_url

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def snake_keys(payload: dict[str, Any]) -> dict[str, Any]:
    """Top-level camelCase keys to snake_case; nested values are left alone."""
    return {_CAMEL_BOUNDARY.sub('_', key).lower(): value for key, value in payload.items()}


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_block(block: ContentBlock) -> dict:
    return {
        'id': block.id,
        'pageId': block.page_id,
        'type': block.block_type.value,
        'content': block.content or {},
        'settings': block.settings or {},
        'sortOrder': block.sort_order,
        'isVisible': block.is_visible,
        'createdAt': _iso(block.created_at),
        'updatedAt': _iso(block.updated_at),
    }


def serialize_page(page: MicrositePage, include_blocks: bool = False) -> dict:
    data = {
        'id': page.id,
        'micrositeId': page.microsite_id,
        'title': page.title,
        'slug': page.slug,
        'metaTitle': page.meta_title,
        'metaDescription': page.meta_description,
        'isHomePage': page.is_home_page,
        'isPublished': page.is_published,
        'publishedAt': _iso(page.published_at),
        'sortOrder': page.sort_order,
        'createdAt': _iso(page.created_at),
        'updatedAt': _iso(page.updated_at),
    }
    if include_blocks:
        data['blocks'] = [serialize_block(block) for block in page.blocks]
    return data


def serialize_microsite(microsite: Microsite, include_pages: bool = False) -> dict:
    data = {
        'id': microsite.id,
        'name': microsite.name,
        'description': microsite.description,
        'slug': microsite.slug,
        'subdomain': microsite.subdomain,
        'customDomain': microsite.custom_domain,
        'publicUrl': public_url(microsite),
        'ownerId': microsite.owner_id,
        'ownerType': microsite.owner_type.value,
        'status': microsite.status.value,
        'isPublic': microsite.is_public,
        'publishedAt': _iso(microsite.published_at),
        'templateKey': microsite.template_key,
        'themeKey': microsite.theme_key,
        'colorScheme': microsite.color_scheme or {},
        'customCss': microsite.custom_css,
        'logoUrl': microsite.logo_url,
        'faviconUrl': microsite.favicon_url,
        'features': microsite.features or {},
        'seoTitle': microsite.seo_title,
        'seoDescription': microsite.seo_description,
        'seoKeywords': microsite.seo_keywords or [],
        'ogImage': microsite.og_image,
        'contactEmail': microsite.contact_email,
        'contactPhone': microsite.contact_phone,
        'address': microsite.address,
        'socialLinks': microsite.social_links or {},
        'createdAt': _iso(microsite.created_at),
        'updatedAt': _iso(microsite.updated_at),
    }
    if include_pages:
        data['pages'] = [serialize_page(page) for page in microsite.pages]
    return data


def serialize_media(asset: MediaAsset) -> dict:
    return {
        'id': asset.id,
        'micrositeId': asset.microsite_id,
        'filename': asset.filename,
        'originalName': asset.original_name,
        'mimeType': asset.mime_type,
        'size': asset.file_size,
        'url': asset.url,
        'category': asset.category,
        'alt': asset.alt_text,
        'uploadedBy': asset.uploaded_by,
        'createdAt': _iso(asset.created_at),
    }


def serialize_pagination(result: Pagination) -> dict:
    return {
        'items': [serialize_microsite(item) for item in result.items],
        'currentPage': result.current_page,
        'totalPages': result.total_pages,
        'totalItems': result.total_items,
    }


__all__ = [
    'snake_keys',
    'serialize_block',
    'serialize_page',
    'serialize_microsite',
    'serialize_media',
    'serialize_pagination',
]
