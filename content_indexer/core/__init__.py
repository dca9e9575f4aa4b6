"""Core components for Content Indexer."""

from content_indexer.core.models import ConfigError, ContentIndexerError, DiscoveryError, FileFailure, IndexResult, ProcessedFile, UploadFailed
from content_indexer.core.frontmatter import find_frontmatter, parse_frontmatter
from content_indexer.core.discovery import ContentDiscovery
from content_indexer.core.processor import ContentProcessor, OutputPolicy
from content_indexer.core.aggregator import Aggregator, tally_categories, write_json

__all__ = [
    "ConfigError",
    "ContentIndexerError",
    "DiscoveryError",
    "FileFailure",
    "IndexResult",
    "ProcessedFile",
    "UploadFailed",
    "find_frontmatter",
    "parse_frontmatter",
    "ContentDiscovery",
    "ContentProcessor",
    "OutputPolicy",
    "Aggregator",
    "tally_categories",
    "write_json",
]
