"""
Content Indexer - Index Markdown content collections

A small library and CLI for Markdown content directories with support for:
- Front-matter extraction into JSON index records
- Category histograms
- Uploading local images to Cloudflare Images
- Rewriting image references to the uploaded URLs
"""

from content_indexer.core.models import (
    ConfigError,
    ContentIndexerError,
    DiscoveryError,
    FileFailure,
    ImageReference,
    IndexResult,
    ProcessedFile,
    UploadFailed,
)
from content_indexer.core.frontmatter import parse_frontmatter
from content_indexer.core.discovery import ContentDiscovery
from content_indexer.core.processor import ContentProcessor, OutputPolicy
from content_indexer.core.aggregator import Aggregator, tally_categories
from content_indexer.config import IndexerConfig
from content_indexer.images.scanner import ImageScanner
from content_indexer.images.uploader import CloudflareImagesClient, ImageUploader

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ContentIndexerError",
    "DiscoveryError",
    "FileFailure",
    "ImageReference",
    "IndexResult",
    "ProcessedFile",
    "UploadFailed",
    "parse_frontmatter",
    "ContentDiscovery",
    "ContentProcessor",
    "OutputPolicy",
    "Aggregator",
    "tally_categories",
    "IndexerConfig",
    "ImageScanner",
    "CloudflareImagesClient",
    "ImageUploader",
]
