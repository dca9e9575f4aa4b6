"""Wires configuration to discovery, processing and aggregation."""

import logging
from contextlib import AsyncExitStack
from pathlib import Path
from typing import List, Optional

from content_indexer.config import IndexerConfig
from content_indexer.core.aggregator import Aggregator
from content_indexer.core.discovery import ContentDiscovery
from content_indexer.core.models import IndexResult
from content_indexer.core.processor import ContentProcessor, OutputPolicy
from content_indexer.images.scanner import ImageScanner
from content_indexer.images.uploader import CloudflareImagesClient, ImageUploader, UploadClient

logger = logging.getLogger(__name__)


def create_processor(config: IndexerConfig, client: Optional[UploadClient] = None) -> ContentProcessor:
    """Create a ContentProcessor from config.

    Args:
        config: Validated run configuration
        client: Upload collaborator; required when image processing is on

    Returns:
        Configured ContentProcessor
    """
    uploader = None
    if config.process_images:
        if client is None:
            raise ValueError("An upload client is required for image processing")
        uploader = ImageUploader(client, timeout=config.upload_timeout)

    return ContentProcessor(
        scanner=ImageScanner(config.image_fields),
        uploader=uploader,
        output=OutputPolicy(
            input_root=input_root(config),
            output_dir=config.output_dir,
            overwrite=config.overwrite,
        ),
    )


def input_root(config: IndexerConfig) -> Path:
    """Directory the input paths are relative to."""
    path = Path(config.input_path)
    return path.parent if path.is_file() else path


def find_input_files(config: IndexerConfig) -> List[Path]:
    """Files for an image-only run: the input file itself, or every match under it."""
    path = Path(config.input_path)
    if path.is_file():
        return [path]
    discovery = ContentDiscovery(path, recursive=config.recursive, pattern=config.pattern)
    return discovery.find_all()


async def run(config: IndexerConfig, client: Optional[UploadClient] = None) -> IndexResult:
    """Run a full indexing pass.

    Validates the config before touching any file. When image processing is
    on and no client is given, a CloudflareImagesClient is created from the
    configured credentials and closed afterwards.

    With JSON generation on, the named collections are processed and
    indexed. Without it, the run only rewrites images, in the input file or
    in every file matching the pattern under the input directory.

    Args:
        config: Run configuration
        client: Optional upload collaborator overriding Cloudflare

    Returns:
        IndexResult for the run

    Raises:
        ConfigError: If the configuration is incomplete
    """
    config.validate()

    async with AsyncExitStack() as stack:
        if config.process_images and client is None:
            client = await stack.enter_async_context(CloudflareImagesClient(
                config.cloudflare_account_id,
                config.cloudflare_api_token,
                timeout=config.upload_timeout,
            ))

        processor = create_processor(config, client)
        aggregator = Aggregator(processor, category_collection=config.category_collection)

        if config.generate_json:
            discovery = ContentDiscovery(
                config.input_path,
                recursive=config.recursive,
                pattern=config.pattern,
            )
            result = await aggregator.run(config.collections, discovery.find)
        else:
            result = await aggregator.run_files(find_input_files(config))

    if config.generate_json:
        aggregator.write_index(Path(config.input_path), result)

    if processor.uploader is not None:
        uploader = processor.uploader
        logger.info(
            "Images replaced: %d, uploads: %d, uploads saved by cache: %d",
            result.replaced_images, uploader.uploads, uploader.cache_hits,
        )

    return result
