"""
Attachment Service using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. It hosts both images and short videos
2. Reliable cloud infrastructure
3. URL-based transformations give us thumbnails for free
4. Free tier sufficient for personal use

This service handles:
1. Checking size and type before anything leaves the machine
2. Upload to Cloudinary
3. Returning the hosted URL that gets stored on the expense
4. Thumbnail URL derivation for the expense list

CRITICAL: A file that fails validation is never uploaded.
"""

from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import AppSettings, CloudinarySettings, get_settings
from src.models.expense import AttachmentUpload


CLOUDINARY_UPLOAD_MARKER = "/upload/"


class AttachmentError(Exception):
    """Base exception for attachment errors."""
    pass


class AttachmentValidationError(AttachmentError):
    """File is too large or of an unsupported type."""
    pass


class AttachmentUploadError(AttachmentError):
    """Failed to upload the file to Cloudinary."""
    pass


class CloudinaryAttachmentService:
    """
    Service for hosting expense attachments on Cloudinary.

    Flow:
    1. Receive raw file bytes with filename and MIME type
    2. Validate size and type
    3. Upload to Cloudinary
    4. Return the secure URL
    """

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings
        self._app_settings = app_settings or get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            if self._settings is None:
                self._settings = get_settings().cloudinary
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def validate(
        self,
        filename: str,
        file_size_bytes: int,
        mime_type: str,
    ) -> AttachmentUpload:
        """
        Check a file against the upload limits.

        Raises:
            AttachmentValidationError: If the file must not be uploaded
        """
        max_bytes = self._app_settings.max_upload_size_bytes
        if file_size_bytes > max_bytes:
            raise AttachmentValidationError(
                f"{filename} is {file_size_bytes / (1024 * 1024):.1f} MB; "
                f"the limit is {self._app_settings.max_upload_size_mb} MB"
            )

        if mime_type.lower() not in self._app_settings.supported_types_list:
            raise AttachmentValidationError(
                f"Unsupported attachment type: {mime_type}. "
                "Only images and videos are allowed."
            )

        try:
            return AttachmentUpload(
                filename=filename,
                file_size_bytes=file_size_bytes,
                mime_type=mime_type,
            )
        except ValidationError as e:
            raise AttachmentValidationError(str(e)) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(cloudinary.exceptions.Error),
        reraise=True,
    )
    def _send(self, file_bytes: bytes) -> dict:
        return cloudinary.uploader.upload(
            file_bytes,
            folder=self._settings.upload_folder,
            resource_type="auto",
        )

    async def upload(
        self,
        file_bytes: bytes,
        filename: str,
        mime_type: str,
    ) -> str:
        """
        Validate and upload an attachment.

        Args:
            file_bytes: Raw file content
            filename: Original filename (for messages and audit)
            mime_type: Declared MIME type

        Returns:
            The secure URL of the hosted file

        Raises:
            AttachmentValidationError: If the file fails validation
            AttachmentUploadError: If Cloudinary rejects or fails the upload
        """
        self.validate(filename, len(file_bytes), mime_type)
        self._configure()

        try:
            result = self._send(file_bytes)
        except cloudinary.exceptions.Error as e:
            raise AttachmentUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise AttachmentUploadError(f"Failed to upload {filename}: {e}")

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise AttachmentUploadError("No URL returned from Cloudinary")
        return url


def thumbnail_url(url: str, width: int = 200) -> str:
    """
    Small preview of a hosted attachment.

    Cloudinary URLs get a resize transformation; any other URL is
    returned unchanged.
    """
    if "res.cloudinary.com" not in url or CLOUDINARY_UPLOAD_MARKER not in url:
        return url
    head, tail = url.split(CLOUDINARY_UPLOAD_MARKER, 1)
    transformation = f"w_{width},c_fill,q_auto,f_auto"
    return f"{head}{CLOUDINARY_UPLOAD_MARKER}{transformation}/{tail}"
