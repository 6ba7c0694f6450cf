"""Tests for attachment validation and upload."""

from __future__ import annotations

import re

import pytest

from messaging_core.application.use_cases.attachments import (
    build_blob_path,
    validate_attachment,
)
from messaging_core.domain.exceptions import AttachmentRejected, InvalidRequest

MB = 1024 * 1024


def test_image_upload_returns_a_reference(service, attachment_store):
    attachment = service.upload_attachment("u1", "photo.PNG", "image/png", b"\x89PNG data")

    assert attachment.name == "photo.PNG"
    assert attachment.size == 9
    assert attachment.type == "image/png"
    [blob_path] = attachment_store.blobs
    assert re.fullmatch(r"images/u1/\d+-[0-9a-f]{8}\.png", blob_path)
    assert attachment.url.endswith(blob_path)


def test_document_upload_goes_to_files(service, attachment_store):
    service.upload_attachment("u2", "minutes.pdf", "application/pdf", b"%PDF-1.7")

    [blob_path] = attachment_store.blobs
    assert blob_path.startswith("files/u2/")
    assert blob_path.endswith(".pdf")


def test_oversized_image_is_rejected_before_upload(service, attachment_store):
    with pytest.raises(AttachmentRejected) as excinfo:
        service.upload_attachment("u1", "big.jpg", "image/jpeg", b"0" * (5 * MB + 1))

    assert excinfo.value.too_large is True
    assert attachment_store.blobs == {}


def test_files_may_be_larger_than_images(service, attachment_store):
    service.upload_attachment("u1", "archive.zip", "application/zip", b"0" * (6 * MB))

    with pytest.raises(AttachmentRejected):
        service.upload_attachment("u1", "huge.zip", "application/zip", b"0" * (10 * MB + 1))
    assert len(attachment_store.blobs) == 1


def test_disallowed_type_is_rejected(service, attachment_store):
    with pytest.raises(AttachmentRejected) as excinfo:
        service.upload_attachment("u1", "script.sh", "application/x-sh", b"echo hi")

    assert excinfo.value.too_large is False
    assert attachment_store.blobs == {}


def test_image_kind_requires_an_image_type():
    with pytest.raises(AttachmentRejected):
        validate_attachment(content_type="application/pdf", size=10, kind="image")
    with pytest.raises(InvalidRequest):
        validate_attachment(content_type="image/png", size=10, kind="video")
    assert validate_attachment(content_type="image/webp; charset=binary", size=10) == "image"


def test_empty_upload_is_rejected():
    with pytest.raises(AttachmentRejected):
        validate_attachment(content_type="text/plain", size=0)


def test_blob_path_falls_back_to_content_type_extension():
    path = build_blob_path(user_id="u1", filename="notes", content_type="text/plain", kind="file")

    assert path.startswith("files/u1/")
    assert path.endswith(".txt")


def test_delete_attachment(service, attachment_store):
    attachment = service.upload_attachment("u1", "a.gif", "image/gif", b"GIF89a")

    service.delete_attachment(attachment.url)

    assert attachment_store.blobs == {}
    with pytest.raises(InvalidRequest):
        service.delete_attachment("https://elsewhere.test/a.gif")
