"""Built-in microsite templates: starter pages, blocks and theme per owner type."""

from __future__ import annotations

from copy import deepcopy

from fedsite.errors import NotFound
from fedsite.models import BlockType, OwnerType

DEFAULT_TEMPLATE_BY_OWNER = {
    OwnerType.CLUB: 'club',
    OwnerType.STATE_COMMITTEE: 'state_committee',
    OwnerType.PARTNER: 'partner',
}

TEMPLATES: dict[str, dict] = {
    'blank': {
        'name': 'Blank',
        'description': 'A single empty home page',
        'theme_key': 'default',
        'color_scheme': {},
        'pages': [
            {
                'title': 'Home',
                'is_home_page': True,
                'blocks': [
                    (BlockType.TEXT, {'text': 'Welcome to our site.'}),
                ],
            },
        ],
    },
    'club': {
        'name': 'Club',
        'description': 'Courts, tournaments and contact details for a club',
        'theme_key': 'sports',
        'color_scheme': {},
        'pages': [
            {
                'title': 'Home',
                'is_home_page': True,
                'blocks': [
                    (BlockType.TEXT, {'text': 'Welcome to our club!', 'fontSize': 'large', 'textAlign': 'center'}),
                    (BlockType.COURT_LIST, {}),
                    (BlockType.TOURNAMENT_LIST, {'limit': 5}),
                ],
            },
            {
                'title': 'About',
                'slug': 'about',
                'blocks': [
                    (BlockType.TEXT, {'text': 'Tell visitors about your club.'}),
                    (BlockType.GALLERY, {}),
                ],
            },
            {
                'title': 'Contact',
                'slug': 'contact',
                'blocks': [
                    (BlockType.CONTACT, {}),
                    (BlockType.MAP, {}),
                ],
            },
        ],
    },
    'state_committee': {
        'name': 'State committee',
        'description': 'Calendar, tournaments and news for a state committee',
        'theme_key': 'corporate',
        'color_scheme': {},
        'pages': [
            {
                'title': 'Home',
                'is_home_page': True,
                'blocks': [
                    (BlockType.TEXT, {'text': 'Official site of the state committee.', 'fontSize': 'large'}),
                    (BlockType.TOURNAMENT_LIST, {}),
                ],
            },
            {
                'title': 'Calendar',
                'slug': 'calendar',
                'blocks': [
                    (BlockType.CALENDAR, {}),
                ],
            },
            {
                'title': 'Contact',
                'slug': 'contact',
                'blocks': [
                    (BlockType.CONTACT, {}),
                ],
            },
        ],
    },
    'partner': {
        'name': 'Partner',
        'description': 'Landing page for a federation partner',
        'theme_key': 'minimal',
        'color_scheme': {},
        'pages': [
            {
                'title': 'Home',
                'is_home_page': True,
                'blocks': [
                    (BlockType.TEXT, {'text': 'Proud partner of the national federation.', 'textAlign': 'center'}),
                    (BlockType.GALLERY, {}),
                ],
            },
            {
                'title': 'Contact',
                'slug': 'contact',
                'blocks': [
                    (BlockType.CONTACT, {'showForm': False}),
                ],
            },
        ],
    },
}


def get_template(key: str | None, owner_type: OwnerType = OwnerType.CLUB) -> tuple[str, dict]:
    """Return ``(key, template)``; no key picks the owner type's default."""
    if not key:
        key = DEFAULT_TEMPLATE_BY_OWNER.get(owner_type, 'blank')
    key = str(key).strip().lower()
    if key not in TEMPLATES:
        raise NotFound("Template not found")
    return key, deepcopy(TEMPLATES[key])


def list_templates(owner_type: OwnerType | None = None) -> list[dict]:
    templates = []
    for key, template in TEMPLATES.items():
        templates.append({
            'key': key,
            'name': template['name'],
            'description': template['description'],
            'themeKey': template['theme_key'],
            'pages': [page['title'] for page in template['pages']],
            'recommended': owner_type is not None and DEFAULT_TEMPLATE_BY_OWNER.get(owner_type) == key,
        })
    return templates


__all__ = ['TEMPLATES', 'get_template', 'list_templates']
