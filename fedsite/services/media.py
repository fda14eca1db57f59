"""Media library: uploads stored per microsite, referenced by MediaAsset rows."""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from flask import current_app
from sqlalchemy import select
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from fedsite.errors import NotFound, ValidationError
from fedsite.extensions import db
from fedsite.models import MediaAsset, Microsite
from fedsite.services.audit import log_action
from fedsite.services.microsites import get_owned_microsite

# mime type -> (extension, category)
ALLOWED_MIME_TYPES = {
    'image/jpeg': ('jpg', 'image'),
    'image/png': ('png', 'image'),
    'image/gif': ('gif', 'image'),
    'image/webp': ('webp', 'image'),
    'video/mp4': ('mp4', 'video'),
    'application/pdf': ('pdf', 'document'),
}


def _upload_root() -> Path:
    """Return (and ensure) the directory uploads are written under."""
    configured = current_app.config.get('UPLOAD_FOLDER')
    root = Path(configured) if configured else Path(current_app.static_folder) / 'uploads'
    root.mkdir(parents=True, exist_ok=True)
    return root


def _ensure_within_root(path: Path) -> None:
    root = _upload_root().resolve()
    if root not in path.resolve().parents:
        raise PermissionError('Attempted to write outside the upload directory')


def _determine_size(file: FileStorage) -> int:
    stream = file.stream
    current = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(current)
    return size


def store_file(file: FileStorage, folder: str) -> dict:
    """Persist an upload under ``folder`` and return its storage key and public URL."""
    mime_type = (file.mimetype or '').lower()
    ext, category = ALLOWED_MIME_TYPES[mime_type]

    safe_folder = secure_filename(folder or 'default') or 'default'
    target_dir = _upload_root() / 'media' / safe_folder
    target_dir.mkdir(parents=True, exist_ok=True)

    unique_name = f"{uuid.uuid4().hex}.{ext}"
    filepath = target_dir / unique_name
    _ensure_within_root(filepath)

    file.stream.seek(0)
    file.save(str(filepath))

    storage_key = f"media/{safe_folder}/{unique_name}"
    prefix = current_app.config.get('MEDIA_URL_PREFIX', '/static/uploads').rstrip('/')
    return {
        'storage_key': storage_key,
        'url': f"{prefix}/{storage_key}",
        'filename': unique_name,
        'category': category,
    }


def delete_stored_file(storage_key: str) -> bool:
    """Remove a previously stored file; missing files are not an error."""
    if not storage_key:
        return False

    target = _upload_root() / storage_key
    _ensure_within_root(target)
    if target.exists() and target.is_file():
        target.unlink()
        return True
    return False


def validate_upload(file: FileStorage | None) -> int:
    """Check type and size; returns the size in bytes."""
    if not file or not file.filename:
        raise ValidationError("No file provided")

    if (file.mimetype or '').lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError("File type not allowed")

    size = _determine_size(file)
    max_bytes = current_app.config.get('MEDIA_MAX_BYTES', 10 * 1024 * 1024)
    if size > max_bytes:
        raise ValidationError(f"File too large (max {max_bytes // (1024 * 1024)}MB)")
    return size


def upload_media(microsite_id: int, actor_id: str, file: FileStorage | None, alt_text: str | None = None) -> MediaAsset:
    microsite = get_owned_microsite(microsite_id, actor_id)
    size = validate_upload(file)
    stored = store_file(file, microsite.subdomain)

    original_name = secure_filename(file.filename) or stored['filename']
    asset = MediaAsset(
        microsite_id=microsite.id,
        uploaded_by=str(actor_id),
        filename=stored['filename'],
        original_name=original_name,
        mime_type=file.mimetype.lower(),
        file_size=size,
        storage_key=stored['storage_key'],
        url=stored['url'],
        category=stored['category'],
        alt_text=alt_text or original_name.rsplit('.', 1)[0],
    )
    try:
        db.session.add(asset)
        db.session.commit()
    except Exception:
        db.session.rollback()
        delete_stored_file(stored['storage_key'])
        raise

    log_action(actor_id, 'media_uploaded', 'media', asset.id, microsite.id,
               {'filename': original_name, 'size': size})
    return asset


def list_media(microsite_id: int, actor_id: str) -> list[MediaAsset]:
    microsite = get_owned_microsite(microsite_id, actor_id)
    stmt = (
        select(MediaAsset)
        .where(MediaAsset.microsite_id == microsite.id)
        .order_by(MediaAsset.created_at.desc(), MediaAsset.id.desc())
    )
    return list(db.session.execute(stmt).scalars().all())


def delete_media(microsite_id: int, media_id: int, actor_id: str) -> None:
    microsite: Microsite = get_owned_microsite(microsite_id, actor_id)
    asset = db.session.get(MediaAsset, media_id)
    if asset is None or asset.microsite_id != microsite.id:
        raise NotFound("Media not found")

    storage_key = asset.storage_key
    db.session.delete(asset)
    db.session.commit()

    try:
        delete_stored_file(storage_key)
    except OSError as e:
        current_app.logger.warning(f"Could not remove media file {storage_key}: {e}")

    log_action(actor_id, 'media_deleted', 'media', media_id, microsite.id)


__all__ = [
    'ALLOWED_MIME_TYPES',
    'store_file',
    'delete_stored_file',
    'validate_upload',
    'upload_media',
    'list_media',
    'delete_media',
]
