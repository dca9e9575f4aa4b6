"""Command-line entry point for Content Indexer."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from content_indexer.config import IndexerConfig
from content_indexer.core import runner
from content_indexer.core.models import ConfigError, ContentIndexerError, IndexResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="content-indexer",
        description=(
            "Upload local images referenced by Markdown content to Cloudflare Images, "
            "rewrite the references, and generate JSON indexes per collection."
        ),
        epilog=(
            "Environment: CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required "
            "for image processing (a .env file is read if present)."
        ),
    )
    parser.add_argument("-i", "--input", required=True,
                        help="Content root directory (with --skip-json, also a single Markdown file)")
    parser.add_argument("-r", "--recursive", action="store_true", default=None,
                        help="Descend into subdirectories")
    parser.add_argument("-p", "--pattern", help="Glob for content files (default: *.md)")
    parser.add_argument("-o", "--output", help="Write rewritten files here instead of in place")
    parser.add_argument("-n", "--no-overwrite", action="store_true",
                        help="Write <name>_updated.md next to each input instead of overwriting")
    parser.add_argument("--skip-images", action="store_true", help="Skip image upload and replacement")
    parser.add_argument("--skip-json", action="store_true", help="Skip JSON index generation")
    parser.add_argument("-c", "--config", help="YAML config file")
    parser.add_argument("--collections", nargs="+", metavar="NAME",
                        help="Collections to process (default: events news posts)")
    parser.add_argument("--category-collection", metavar="NAME",
                        help="Collection to build the category histogram for (default: posts)")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def config_from_args(args: argparse.Namespace) -> IndexerConfig:
    """Merge environment, config file and flags, in that order."""
    config = IndexerConfig.from_env()

    if args.config:
        config.update_from_file(args.config)

    config.update({
        'input_path': args.input,
        'recursive': args.recursive,
        'pattern': args.pattern,
        'output_dir': args.output,
        'collections': args.collections,
        'category_collection': args.category_collection,
    })
    if args.no_overwrite:
        config.overwrite = False
    if args.skip_images:
        config.process_images = False
    if args.skip_json:
        config.generate_json = False

    return config


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def print_summary(result: IndexResult) -> None:
    if result.files:
        print(f"files processed: {len(result.files)}")
    for collection, records in result.collections.items():
        print(f"{collection}: {len(records)} files indexed")
    if result.categories is not None:
        print(f"categories: {len(result.categories)}")
    print(f"images replaced: {result.replaced_images}")
    if result.failures:
        print(f"failed files: {len(result.failures)}")
        for failure in result.failures:
            print(f"  {failure.path}: {failure.error}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args)

    try:
        config = config_from_args(args)
        result = asyncio.run(runner.run(config))
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG
    except ContentIndexerError as e:
        logger.error("%s", e)
        return EXIT_ERROR

    print_summary(result)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
