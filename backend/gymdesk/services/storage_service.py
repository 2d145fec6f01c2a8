"""File storage for member photos.

Files live under UPLOAD_FOLDER/members/<member_id>/<filename> and are served
back through the members blueprint, so the stored URL is a plain API path.
"""

from __future__ import annotations

from pathlib import Path

from flask import current_app, url_for
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError


ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
MEMBER_SUBDIR = 'members'


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def upload_root() -> Path:
    """Return (and ensure) the configured upload root."""
    root = Path(current_app.config.get('UPLOAD_FOLDER', 'uploads'))
    if not root.is_absolute():
        root = Path(current_app.instance_path) / root
    root.mkdir(parents=True, exist_ok=True)
    return root


def _ensure_within_root(path: Path) -> None:
    root = upload_root().resolve()
    if root not in path.resolve().parents:
        raise ValidationError('Invalid storage path')


def member_photo_path(member_id: int, filename: str) -> Path:
    return upload_root() / MEMBER_SUBDIR / str(member_id) / filename


def save_member_photo(file: FileStorage, member_id: int) -> str:
    """
    Store an uploaded photo for a member and return its retrieval URL.

    Raises ValidationError for missing files or disallowed extensions.
    """
    if file is None or not file.filename:
        raise ValidationError('photo file is required')

    filename = secure_filename(file.filename)
    if not filename or not allowed_file(filename):
        raise ValidationError(f"photo must be one of: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    target = member_photo_path(member_id, filename)
    _ensure_within_root(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    file.save(target)

    return url_for('members.member_photo_route', member_id=member_id, filename=filename)


def resolve_member_photo(member_id: int, filename: str) -> Path | None:
    """Absolute path of a stored photo, or None when it does not exist."""
    safe_name = secure_filename(filename)
    if not safe_name:
        return None
    path = member_photo_path(member_id, safe_name)
    _ensure_within_root(path)
    return path if path.is_file() else None

