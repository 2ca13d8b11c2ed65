"""
Tests for attachment hosting.

The Cloudinary SDK is patched at cloudinary.uploader.upload, so no
request leaves the machine.
"""

import cloudinary.exceptions
import cloudinary.uploader
import pytest
from tenacity import wait_none

from src.config import AppSettings, CloudinarySettings
from src.services.attachments import (
    AttachmentUploadError,
    AttachmentValidationError,
    CloudinaryAttachmentService,
    thumbnail_url,
)


HOSTED = "https://res.cloudinary.com/demo/image/upload/v1715300000/expenses/receipt.jpg"


@pytest.fixture
def service():
    return CloudinaryAttachmentService(
        settings=CloudinarySettings(cloud_name="demo", api_key="k", api_secret="s"),
        app_settings=AppSettings(max_upload_size_mb=1),
    )


@pytest.fixture
def uploads(monkeypatch):
    """Records every upload and answers with a hosted URL."""
    calls = []

    def fake_upload(file, **options):
        calls.append((file, options))
        return {"secure_url": HOSTED}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


class TestValidation:
    def test_accepts_images_and_videos(self, service):
        assert service.validate("receipt.jpg", 1024, "image/jpeg").mime_type == "image/jpeg"
        assert service.validate("clip.mp4", 1024, "VIDEO/MP4").mime_type == "video/mp4"

    def test_rejects_large_files(self, service):
        with pytest.raises(AttachmentValidationError, match="limit is 1 MB"):
            service.validate("big.png", 2 * 1024 * 1024, "image/png")

    def test_rejects_other_types(self, service):
        with pytest.raises(AttachmentValidationError, match="Unsupported"):
            service.validate("notes.pdf", 10, "application/pdf")


class TestUpload:
    @pytest.mark.asyncio
    async def test_returns_hosted_url(self, service, uploads):
        url = await service.upload(b"jpeg-bytes", "receipt.jpg", "image/jpeg")

        assert url == HOSTED
        assert len(uploads) == 1
        file, options = uploads[0]
        assert file == b"jpeg-bytes"
        assert options["folder"] == "expenses"
        assert options["resource_type"] == "auto"

    @pytest.mark.asyncio
    async def test_invalid_file_is_never_sent(self, service, uploads):
        with pytest.raises(AttachmentValidationError):
            await service.upload(b"%PDF", "notes.pdf", "application/pdf")
        assert uploads == []

    @pytest.mark.asyncio
    async def test_sdk_failure_becomes_upload_error(self, service, monkeypatch):
        def broken_upload(file, **options):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(cloudinary.uploader, "upload", broken_upload)

        with pytest.raises(AttachmentUploadError, match="connection reset"):
            await service.upload(b"jpeg-bytes", "receipt.jpg", "image/jpeg")

    @pytest.mark.asyncio
    async def test_cloudinary_errors_are_retried(self, service, monkeypatch):
        attempts = []

        def flaky_upload(file, **options):
            attempts.append(1)
            if len(attempts) < 2:
                raise cloudinary.exceptions.Error("rate limited")
            return {"secure_url": HOSTED}

        monkeypatch.setattr(cloudinary.uploader, "upload", flaky_upload)
        monkeypatch.setattr(CloudinaryAttachmentService._send.retry, "wait", wait_none())

        assert await service.upload(b"jpeg-bytes", "receipt.jpg", "image/jpeg") == HOSTED
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_missing_url_is_an_error(self, service, monkeypatch):
        monkeypatch.setattr(cloudinary.uploader, "upload", lambda file, **options: {})

        with pytest.raises(AttachmentUploadError, match="No URL"):
            await service.upload(b"jpeg-bytes", "receipt.jpg", "image/jpeg")


class TestThumbnails:
    def test_cloudinary_urls_get_a_resize(self):
        assert thumbnail_url(HOSTED, width=120) == (
            "https://res.cloudinary.com/demo/image/upload/"
            "w_120,c_fill,q_auto,f_auto/v1715300000/expenses/receipt.jpg"
        )

    def test_other_urls_are_unchanged(self):
        url = "https://example.org/receipt.jpg"
        assert thumbnail_url(url) == url
