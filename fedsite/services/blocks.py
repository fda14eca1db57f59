"""Content block management for microsite pages."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from sqlalchemy import func, select

from fedsite.errors import NotFound, ValidationError
from fedsite.extensions import db
from fedsite.models import ContentBlock, MicrositePage
from fedsite.services.audit import log_action
from fedsite.services.block_types import coerce_block_type, normalize_block_content
from fedsite.services.pages import PageService, parse_orderings


class BlockService:
    """Owner-scoped block operations; ownership is checked through the page's microsite."""

    @staticmethod
    def get_owned_block(
        microsite_id: int,
        page_id: int,
        block_id: int,
        actor_id: str,
    ) -> tuple[MicrositePage, ContentBlock]:
        _, page = PageService.get_owned_page(microsite_id, page_id, actor_id)
        block = db.session.get(ContentBlock, block_id)
        if block is None or block.page_id != page.id:
            raise NotFound("Block not found")
        return page, block

    @staticmethod
    def next_sort_order(page_id: int) -> int:
        stmt = select(func.max(ContentBlock.sort_order)).where(ContentBlock.page_id == page_id)
        current = db.session.execute(stmt).scalar()
        return 0 if current is None else current + 1

    @staticmethod
    def _settings(value: Any) -> dict:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValidationError("Block settings must be an object")
        return value

    @staticmethod
    def create_block(microsite_id: int, page_id: int, actor_id: str, data: dict[str, Any]) -> ContentBlock:
        _, page = PageService.get_owned_page(microsite_id, page_id, actor_id)

        block_type = coerce_block_type(data.get('type') or data.get('block_type'))
        content = normalize_block_content(block_type, data.get('content'))

        if data.get('sort_order') is None:
            sort_order = BlockService.next_sort_order(page.id)
        else:
            try:
                sort_order = int(data['sort_order'])
            except (TypeError, ValueError):
                raise ValidationError("sortOrder must be an integer")

        block = ContentBlock(
            page_id=page.id,
            block_type=block_type,
            content=content,
            settings=BlockService._settings(data.get('settings')),
            sort_order=sort_order,
            is_visible=bool(data.get('is_visible', True)),
        )
        db.session.add(block)
        db.session.commit()

        log_action(actor_id, 'block_created', 'block', block.id, page.microsite_id,
                   {'page_id': page.id, 'type': block_type.value})
        return block

    @staticmethod
    def update_block(
        microsite_id: int,
        page_id: int,
        block_id: int,
        actor_id: str,
        data: dict[str, Any],
    ) -> ContentBlock:
        """Update content, settings, order or visibility. The type never changes."""
        page, block = BlockService.get_owned_block(microsite_id, page_id, block_id, actor_id)

        requested_type = data.get('type') or data.get('block_type')
        if requested_type and coerce_block_type(requested_type) != block.block_type:
            raise ValidationError("Block type cannot be changed; delete the block and create a new one")

        if 'content' in data:
            content = data['content']
            if isinstance(content, dict):
                content = {**(block.content or {}), **content}
            block.content = normalize_block_content(block.block_type, content)
        if 'settings' in data:
            block.settings = BlockService._settings(data['settings'])
        if 'sort_order' in data:
            try:
                block.sort_order = int(data['sort_order'])
            except (TypeError, ValueError):
                raise ValidationError("sortOrder must be an integer")
        if 'is_visible' in data:
            block.is_visible = bool(data['is_visible'])

        db.session.commit()
        log_action(actor_id, 'block_updated', 'block', block.id, page.microsite_id, {'page_id': page.id})
        return block

    @staticmethod
    def delete_block(microsite_id: int, page_id: int, block_id: int, actor_id: str) -> None:
        page, block = BlockService.get_owned_block(microsite_id, page_id, block_id, actor_id)
        db.session.delete(block)
        db.session.commit()
        log_action(actor_id, 'block_deleted', 'block', block_id, page.microsite_id, {'page_id': page_id})

    @staticmethod
    def get_block(microsite_id: int, page_id: int, block_id: int, actor_id: str) -> ContentBlock:
        return BlockService.get_owned_block(microsite_id, page_id, block_id, actor_id)[1]

    @staticmethod
    def list_blocks(microsite_id: int, page_id: int, actor_id: str) -> list[ContentBlock]:
        """All blocks of a page, hidden ones included, in render order."""
        _, page = PageService.get_owned_page(microsite_id, page_id, actor_id)
        stmt = (
            select(ContentBlock)
            .where(ContentBlock.page_id == page.id)
            .order_by(ContentBlock.sort_order, ContentBlock.id)
        )
        return list(db.session.execute(stmt).scalars().all())

    @staticmethod
    def toggle_visibility(microsite_id: int, page_id: int, block_id: int, actor_id: str) -> ContentBlock:
        page, block = BlockService.get_owned_block(microsite_id, page_id, block_id, actor_id)
        block.is_visible = not block.is_visible
        db.session.commit()
        log_action(actor_id, 'block_visibility_toggled', 'block', block.id, page.microsite_id,
                   {'is_visible': block.is_visible})
        return block

    @staticmethod
    def duplicate_block(microsite_id: int, page_id: int, block_id: int, actor_id: str) -> ContentBlock:
        """Copy a block to the end of its page."""
        page, source = BlockService.get_owned_block(microsite_id, page_id, block_id, actor_id)
        copy = ContentBlock(
            page_id=page.id,
            block_type=source.block_type,
            content=deepcopy(source.content),
            settings=deepcopy(source.settings),
            sort_order=BlockService.next_sort_order(page.id),
            is_visible=source.is_visible,
        )
        db.session.add(copy)
        db.session.commit()
        log_action(actor_id, 'block_duplicated', 'block', copy.id, page.microsite_id, {'source_id': source.id})
        return copy

    @staticmethod
    def reorder_blocks(microsite_id: int, page_id: int, actor_id: str, orderings: Any) -> list[ContentBlock]:
        """Apply ``[{id, sortOrder}]`` atomically; blocks of other pages reject the batch."""
        _, page = PageService.get_owned_page(microsite_id, page_id, actor_id)
        wanted = parse_orderings(orderings)

        stmt = select(ContentBlock).where(
            ContentBlock.page_id == page.id,
            ContentBlock.id.in_(list(wanted)),
        )
        blocks = {block.id: block for block in db.session.execute(stmt).scalars()}
        missing = sorted(set(wanted) - set(blocks))
        if missing:
            raise ValidationError(f"Blocks {missing} do not belong to this page")

        for block_id, sort_order in wanted.items():
            blocks[block_id].sort_order = sort_order
        db.session.commit()

        log_action(actor_id, 'blocks_reordered', 'page', page.id, page.microsite_id)
        return BlockService.list_blocks(microsite_id, page.id, actor_id)


__all__ = ['BlockService']
