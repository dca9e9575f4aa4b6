"""Image scanning, uploading and reference rewriting."""

from content_indexer.images.rewriter import Replacement, rewrite, rewrite_first_occurrence
from content_indexer.images.scanner import DEFAULT_IMAGE_FIELDS, ImageScanner
from content_indexer.images.uploader import CloudflareImagesClient, ImageUploader, UploadClient

__all__ = [
    "Replacement",
    "rewrite",
    "rewrite_first_occurrence",
    "DEFAULT_IMAGE_FIELDS",
    "ImageScanner",
    "CloudflareImagesClient",
    "ImageUploader",
    "UploadClient",
]
