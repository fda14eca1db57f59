"""Typed payloads for content blocks.

Content is stored schema-free as JSON; every read and write goes through
``parse_block_content`` so each block type gets a fixed shape with defaults.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from fedsite.errors import ValidationError
from fedsite.models import BlockType

_YOUTUBE_RE = re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#/]+)')


@dataclass
class TextContent:
    text: str = ''
    text_align: str = 'left'
    font_size: str = 'medium'
    color: str = '#000000'


@dataclass
class ImageContent:
    image_url: str = ''
    alt: str = ''
    caption: str = ''
    alignment: str = 'center'
    size: str = 'medium'

    def validate(self) -> None:
        if not self.image_url:
            raise ValidationError("Image blocks require an imageUrl")


@dataclass
class GalleryContent:
    images: list[dict] = field(default_factory=list)
    layout: str = 'grid'
    columns: int = 3
    show_captions: bool = False

    def validate(self) -> None:
        if not isinstance(self.images, list):
            raise ValidationError("Gallery images must be a list")
        for image in self.images:
            if not isinstance(image, dict) or not image.get('url'):
                raise ValidationError("Each gallery image needs a url")
        if not isinstance(self.columns, int) or not 1 <= self.columns <= 6:
            raise ValidationError("Gallery columns must be between 1 and 6")


@dataclass
class VideoContent:
    video_url: str = ''
    video_type: str = 'youtube'
    thumbnail: str = ''
    autoplay: bool = False
    controls: bool = True

    def validate(self) -> None:
        if not self.video_url:
            raise ValidationError("Video blocks require a videoUrl")
        if self.video_type not in ('youtube', 'file'):
            raise ValidationError("videoType must be 'youtube' or 'file'")

    @property
    def youtube_id(self) -> str:
        match = _YOUTUBE_RE.search(self.video_url or '')
        return match.group(1) if match else ''


@dataclass
class ContactContent:
    title: str = 'Contact Us'
    email: str = ''
    phone: str = ''
    address: str = ''
    show_form: bool = True
    form_fields: list[str] = field(default_factory=lambda: ['name', 'email', 'message'])


@dataclass
class MapContent:
    latitude: float = 0.0
    longitude: float = 0.0
    zoom: int = 15
    marker_title: str = ''
    address: str = ''
    show_controls: bool = True

    def validate(self) -> None:
        try:
            lat, lng = float(self.latitude), float(self.longitude)
        except (TypeError, ValueError):
            raise ValidationError("Map latitude and longitude must be numbers")
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValidationError("Map coordinates are out of range")
        self.latitude, self.longitude = lat, lng


@dataclass
class CourtListContent:
    title: str = 'Our Courts'
    show_availability: bool = True
    show_pricing: bool = True
    show_booking_button: bool = True
    layout: str = 'grid'


@dataclass
class TournamentListContent:
    title: str = 'Tournaments'
    show_upcoming: bool = True
    show_past: bool = False
    show_registration_button: bool = True
    limit: int = 10


@dataclass
class CalendarContent:
    title: str = 'Calendar'
    show_events: str = 'all'
    view: str = 'month'
    show_filters: bool = True


@dataclass
class CustomHtmlContent:
    html: str = ''
    css: str = ''


BLOCK_TYPES: dict[BlockType, type] = {
    BlockType.TEXT: TextContent,
    BlockType.IMAGE: ImageContent,
    BlockType.GALLERY: GalleryContent,
    BlockType.VIDEO: VideoContent,
    BlockType.CONTACT: ContactContent,
    BlockType.MAP: MapContent,
    BlockType.COURT_LIST: CourtListContent,
    BlockType.TOURNAMENT_LIST: TournamentListContent,
    BlockType.CALENDAR: CalendarContent,
    BlockType.CUSTOM_HTML: CustomHtmlContent,
}


def coerce_block_type(value: BlockType | str | None) -> BlockType:
    if isinstance(value, BlockType):
        return value
    try:
        return BlockType((value or '').strip().lower())
    except ValueError:
        allowed = ', '.join(t.value for t in BlockType)
        raise ValidationError(f"Unknown block type '{value}'. Allowed: {allowed}")


def _snake(key: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def _camel(key: str) -> str:
    head, *rest = key.split('_')
    return head + ''.join(part.title() for part in rest)


def parse_block_content(block_type: BlockType | str, raw: dict[str, Any] | None, strict: bool = True):
    """Build the typed payload for ``block_type`` from stored or submitted JSON.

    Keys may arrive camelCased (API) or snake_cased; unknown keys are dropped.
    With ``strict`` the per-type ``validate`` hook runs and may raise
    ``ValidationError``.
    """
    kind = coerce_block_type(block_type)
    cls = BLOCK_TYPES[kind]
    if raw is not None and not isinstance(raw, dict):
        raise ValidationError("Block content must be an object")

    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in (raw or {}).items():
        name = _snake(key)
        if name in known and value is not None:
            values[name] = value

    try:
        content = cls(**values)
    except TypeError as e:
        raise ValidationError(f"Invalid content for {kind.value} block: {e}")

    if strict and hasattr(content, 'validate'):
        content.validate()
    return content


def content_to_json(content) -> dict[str, Any]:
    """Serialise a typed payload back to the camelCase JSON the builder uses."""
    return {_camel(key): value for key, value in asdict(content).items()}


def normalize_block_content(block_type: BlockType | str, raw: dict[str, Any] | None) -> dict[str, Any]:
    return content_to_json(parse_block_content(block_type, raw))


__all__ = [
    'BLOCK_TYPES',
    'coerce_block_type',
    'parse_block_content',
    'content_to_json',
    'normalize_block_content',
]
