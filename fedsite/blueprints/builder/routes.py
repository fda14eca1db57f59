"""Authenticated JSON API for building microsites."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from werkzeug.exceptions import HTTPException

from fedsite.errors import MicrositeError, ValidationError
from fedsite.extensions import db, limiter
from fedsite.services import media, microsites, publishing, renderer, tenants
from fedsite.services.blocks import BlockService
from fedsite.services.pages import PageService
from fedsite.services.templates import list_templates
from fedsite.services.theme import list_themes

from .serializers import (
    serialize_block,
    serialize_media,
    serialize_microsite,
    serialize_page,
    serialize_pagination,
    snake_keys,
)

builder_bp = Blueprint('builder', __name__)


@builder_bp.errorhandler(MicrositeError)
def handle_microsite_error(error: MicrositeError):
    db.session.rollback()
    return jsonify(error.to_dict()), error.status_code


@builder_bp.errorhandler(Exception)
def handle_unexpected_error(error: Exception):
    if isinstance(error, HTTPException):
        return jsonify({'error': error.description, 'kind': 'http_error'}), error.code
    db.session.rollback()
    current_app.logger.exception(f"Unhandled builder error on {request.method} {request.path}")
    return jsonify({'error': 'Internal server error', 'kind': 'error'}), 500


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return snake_keys(payload)


def _orderings_body():
    """Reorder bodies are either a bare list or ``{"orderings": [...]}``."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = payload.get('orderings')
    return payload


def _int_arg(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _actor() -> str:
    return current_user.get_id()


# Microsites

@builder_bp.route('', methods=['GET'])
@login_required
def list_microsites():
    result = microsites.list_microsites(
        _actor(),
        owner_type=request.args.get('ownerType'),
        status=request.args.get('status'),
        page=_int_arg('page', 1),
        limit=_int_arg('limit'),
    )
    return jsonify(serialize_pagination(result))


@builder_bp.route('', methods=['POST'])
@login_required
@limiter.limit("30 per hour")
def create_microsite():
    microsite = microsites.create_microsite(current_user, _json_body())
    return jsonify(serialize_microsite(microsite, include_pages=True)), 201


@builder_bp.route('/availability', methods=['GET'])
@login_required
@limiter.limit("60 per minute")
def check_availability():
    subdomain = request.args.get('subdomain')
    slug = request.args.get('slug')
    if subdomain is None and slug is None:
        raise ValidationError("Provide a subdomain and/or slug to check")
    return jsonify(tenants.check_availability(
        subdomain=subdomain,
        slug=slug,
        exclude_id=_int_arg('excludeId'),
    ))


@builder_bp.route('/templates', methods=['GET'])
@login_required
def templates():
    owner_type = microsites.ROLE_OWNER_TYPES.get(current_user.role)
    return jsonify({'items': list_templates(owner_type)})


@builder_bp.route('/themes', methods=['GET'])
@login_required
def themes():
    return jsonify({'items': list_themes()})


@builder_bp.route('/public/<subdomain>', methods=['GET'])
def public_microsite(subdomain: str):
    microsite = microsites.get_public_microsite(subdomain)
    data = renderer.serialize_public_microsite(microsite)
    data['navigation'] = [renderer.serialize_nav_item(p) for p in renderer.navigation(microsite)]
    return jsonify(data)


@builder_bp.route('/<int:microsite_id>', methods=['GET'])
@login_required
def get_microsite(microsite_id: int):
    microsite = microsites.get_microsite(microsite_id, _actor())
    return jsonify(serialize_microsite(microsite, include_pages=True))


@builder_bp.route('/<int:microsite_id>', methods=['PUT'])
@login_required
def update_microsite(microsite_id: int):
    microsite = microsites.update_microsite(microsite_id, _actor(), _json_body())
    return jsonify(serialize_microsite(microsite))


@builder_bp.route('/<int:microsite_id>', methods=['DELETE'])
@login_required
def delete_microsite(microsite_id: int):
    microsites.delete_microsite(microsite_id, _actor())
    return jsonify({'message': 'Microsite deleted'})


@builder_bp.route('/<int:microsite_id>/publish-check', methods=['GET'])
@login_required
def publish_check(microsite_id: int):
    return jsonify(publishing.publish_check(microsite_id, _actor()).to_dict())


@builder_bp.route('/<int:microsite_id>/publish', methods=['POST'])
@login_required
def publish_microsite(microsite_id: int):
    microsite = publishing.publish_microsite(microsite_id, _actor())
    return jsonify(serialize_microsite(microsite))


@builder_bp.route('/<int:microsite_id>/unpublish', methods=['POST'])
@login_required
def unpublish_microsite(microsite_id: int):
    microsite = publishing.unpublish_microsite(microsite_id, _actor())
    return jsonify(serialize_microsite(microsite))


@builder_bp.route('/<int:microsite_id>/archive', methods=['POST'])
@login_required
def archive_microsite(microsite_id: int):
    microsite = publishing.archive_microsite(microsite_id, _actor())
    return jsonify(serialize_microsite(microsite))


# Pages

@builder_bp.route('/<int:microsite_id>/pages', methods=['GET'])
@login_required
def list_pages(microsite_id: int):
    pages = PageService.list_pages(microsite_id, _actor())
    return jsonify({'items': [serialize_page(page) for page in pages]})


@builder_bp.route('/<int:microsite_id>/pages', methods=['POST'])
@login_required
def create_page(microsite_id: int):
    page = PageService.create_page(microsite_id, _actor(), _json_body())
    return jsonify(serialize_page(page)), 201


@builder_bp.route('/<int:microsite_id>/pages/reorder', methods=['PUT'])
@login_required
def reorder_pages(microsite_id: int):
    pages = PageService.reorder_pages(microsite_id, _actor(), _orderings_body())
    return jsonify({'items': [serialize_page(page) for page in pages]})


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>', methods=['GET'])
@login_required
def get_page(microsite_id: int, page_id: int):
    page = PageService.get_page(microsite_id, page_id, _actor())
    return jsonify(serialize_page(page, include_blocks=True))


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>', methods=['PUT'])
@login_required
def update_page(microsite_id: int, page_id: int):
    page = PageService.update_page(microsite_id, page_id, _actor(), _json_body())
    return jsonify(serialize_page(page))


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>', methods=['DELETE'])
@login_required
def delete_page(microsite_id: int, page_id: int):
    PageService.delete_page(microsite_id, page_id, _actor())
    return jsonify({'message': 'Page deleted'})


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/duplicate', methods=['POST'])
@login_required
def duplicate_page(microsite_id: int, page_id: int):
    page = PageService.duplicate_page(microsite_id, page_id, _actor())
    return jsonify(serialize_page(page, include_blocks=True)), 201


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/publish', methods=['POST'])
@login_required
def publish_page(microsite_id: int, page_id: int):
    page = PageService.publish_page(microsite_id, page_id, _actor())
    return jsonify(serialize_page(page))


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/unpublish', methods=['POST'])
@login_required
def unpublish_page(microsite_id: int, page_id: int):
    page = PageService.unpublish_page(microsite_id, page_id, _actor())
    return jsonify(serialize_page(page))


# Blocks

@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks', methods=['GET'])
@login_required
def list_blocks(microsite_id: int, page_id: int):
    blocks = BlockService.list_blocks(microsite_id, page_id, _actor())
    return jsonify({'items': [serialize_block(block) for block in blocks]})


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks', methods=['POST'])
@login_required
def create_block(microsite_id: int, page_id: int):
    block = BlockService.create_block(microsite_id, page_id, _actor(), _json_body())
    return jsonify(serialize_block(block)), 201


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks/reorder', methods=['PUT'])
@login_required
def reorder_blocks(microsite_id: int, page_id: int):
    blocks = BlockService.reorder_blocks(microsite_id, page_id, _actor(), _orderings_body())
    return jsonify({'items': [serialize_block(block) for block in blocks]})


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks/<int:block_id>', methods=['PUT'])
@login_required
def update_block(microsite_id: int, page_id: int, block_id: int):
    block = BlockService.update_block(microsite_id, page_id, block_id, _actor(), _json_body())
    return jsonify(serialize_block(block))


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks/<int:block_id>', methods=['DELETE'])
@login_required
def delete_block(microsite_id: int, page_id: int, block_id: int):
    BlockService.delete_block(microsite_id, page_id, block_id, _actor())
    return jsonify({'message': 'Block deleted'})


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks/<int:block_id>/duplicate', methods=['POST'])
@login_required
def duplicate_block(microsite_id: int, page_id: int, block_id: int):
    block = BlockService.duplicate_block(microsite_id, page_id, block_id, _actor())
    return jsonify(serialize_block(block)), 201


@builder_bp.route('/<int:microsite_id>/pages/<int:page_id>/blocks/<int:block_id>/toggle-visibility', methods=['POST'])
@login_required
def toggle_block_visibility(microsite_id: int, page_id: int, block_id: int):
    block = BlockService.toggle_visibility(microsite_id, page_id, block_id, _actor())
    return jsonify(serialize_block(block))


# Media

@builder_bp.route('/<int:microsite_id>/media', methods=['GET'])
@login_required
def list_media(microsite_id: int):
    assets = media.list_media(microsite_id, _actor())
    return jsonify({'items': [serialize_media(asset) for asset in assets]})


@builder_bp.route('/<int:microsite_id>/media', methods=['POST'])
@login_required
def upload_media(microsite_id: int):
    asset = media.upload_media(
        microsite_id,
        _actor(),
        request.files.get('file'),
        alt_text=request.form.get('alt') or request.form.get('altText'),
    )
    return jsonify(serialize_media(asset)), 201


@builder_bp.route('/<int:microsite_id>/media/<int:media_id>', methods=['DELETE'])
@login_required
def delete_media(microsite_id: int, media_id: int):
    media.delete_media(microsite_id, media_id, _actor())
    return jsonify({'message': 'Media deleted'})
