"""Use cases for message attachments held by the attachment store."""

from __future__ import annotations

import logging
import mimetypes
import secrets
import time
from pathlib import PurePath

from messaging_core.domain.entities import Attachment
from messaging_core.domain.exceptions import AttachmentRejected, InvalidRequest
from messaging_core.infrastructure.storage import AttachmentStore

logger = logging.getLogger(__name__)

ATTACHMENT_KIND_IMAGE = "image"
ATTACHMENT_KIND_FILE = "file"

IMAGE_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
FILE_CONTENT_TYPES = IMAGE_CONTENT_TYPES | frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "application/zip",
    }
)

DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024


def _format_megabytes(size: int) -> str:
    return f"{size / (1024 * 1024):g} MB"


def validate_attachment(
    *,
    content_type: str | None,
    size: int,
    kind: str | None = None,
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> str:
    """Check type and size limits and return the attachment kind."""

    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    if kind is None:
        kind = ATTACHMENT_KIND_IMAGE if normalized in IMAGE_CONTENT_TYPES else ATTACHMENT_KIND_FILE

    if kind == ATTACHMENT_KIND_IMAGE:
        allowed, limit = IMAGE_CONTENT_TYPES, max_image_bytes
    elif kind == ATTACHMENT_KIND_FILE:
        allowed, limit = FILE_CONTENT_TYPES, max_file_bytes
    else:
        raise InvalidRequest(f"Unknown attachment kind: {kind}")

    if normalized not in allowed:
        raise AttachmentRejected(f"File type {normalized or 'unknown'} is not allowed")
    if size <= 0:
        raise AttachmentRejected("The attachment is empty")
    if size > limit:
        raise AttachmentRejected(
            f"File size exceeds the {_format_megabytes(limit)} limit", too_large=True
        )
    return kind


def build_blob_path(*, user_id: str, filename: str, content_type: str, kind: str) -> str:
    """Return ``<images|files>/<user>/<millis>-<random>.<ext>`` for an upload."""

    extension = PurePath(filename or "").suffix.lstrip(".").lower()
    if not extension:
        guessed = mimetypes.guess_extension(content_type) or ""
        extension = guessed.lstrip(".") or "bin"
    folder = "images" if kind == ATTACHMENT_KIND_IMAGE else "files"
    stamp = int(time.time() * 1000)
    return f"{folder}/{user_id}/{stamp}-{secrets.token_hex(4)}.{extension}"


def upload_attachment(
    store: AttachmentStore,
    *,
    user_id: str,
    filename: str,
    content_type: str | None,
    data: bytes,
    kind: str | None = None,
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> Attachment:
    """Validate and upload ``data``; nothing is stored when validation fails."""

    resolved_kind = validate_attachment(
        content_type=content_type,
        size=len(data),
        kind=kind,
        max_image_bytes=max_image_bytes,
        max_file_bytes=max_file_bytes,
    )
    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    blob_path = build_blob_path(
        user_id=user_id, filename=filename, content_type=normalized, kind=resolved_kind
    )
    url = store.upload(blob_path, data, content_type=normalized)
    logger.info("User %s uploaded attachment %s", user_id, blob_path)
    return Attachment(
        url=url,
        name=PurePath(filename or "").name or PurePath(blob_path).name,
        size=len(data),
        type=normalized,
    )


def delete_attachment(store: AttachmentStore, *, url: str) -> None:
    try:
        store.delete(url)
    except ValueError as exc:
        raise InvalidRequest(str(exc)) from exc


__all__ = [
    "ATTACHMENT_KIND_FILE",
    "ATTACHMENT_KIND_IMAGE",
    "FILE_CONTENT_TYPES",
    "IMAGE_CONTENT_TYPES",
    "build_blob_path",
    "delete_attachment",
    "upload_attachment",
    "validate_attachment",
]
