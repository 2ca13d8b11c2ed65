"""Attachment hosting services package."""

from src.services.attachments.cloudinary_service import (
    AttachmentError,
    AttachmentUploadError,
    AttachmentValidationError,
    CloudinaryAttachmentService,
    thumbnail_url,
)

__all__ = [
    "AttachmentError",
    "AttachmentUploadError",
    "AttachmentValidationError",
    "CloudinaryAttachmentService",
    "thumbnail_url",
]
