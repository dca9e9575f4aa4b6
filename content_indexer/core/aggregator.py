"""Aggregation of file records into collection indexes."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from content_indexer.core.models import FileFailure, FileRecord, IndexResult
from content_indexer.core.processor import ContentProcessor

logger = logging.getLogger(__name__)

DEFAULT_COLLECTIONS = ("events", "news", "posts")
DEFAULT_CATEGORY_COLLECTION = "posts"

Discover = Callable[[str], Iterable[Path]]


def tally_categories(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Count category labels across records.

    Only list-valued `category` fields count; each element adds one.

    Args:
        records: File records of one collection

    Returns:
        List of {"category": label, "count": n} in first-seen order
    """
    counts: Dict[str, int] = {}

    for record in records:
        categories = record.get('category')
        if not isinstance(categories, list):
            continue
        for category in categories:
            if category:
                counts[category] = counts.get(category, 0) + 1

    return [{'category': category, 'count': count} for category, count in counts.items()]


def write_json(path: Path, data: Any) -> None:
    """Write data as indented UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write('\n')


class Aggregator:
    """Builds per-collection record lists from content files.

    Files are processed one at a time; a file that fails is logged,
    recorded as a FileFailure and left out of its collection.
    """

    def __init__(
        self,
        processor: ContentProcessor,
        category_collection: Optional[str] = DEFAULT_CATEGORY_COLLECTION,
    ):
        """Initialize Aggregator.

        Args:
            processor: Per-file processor
            category_collection: Collection to compute the category
                                 histogram for (None to skip)
        """
        self.processor = processor
        self.category_collection = category_collection

    async def run(self, collections: Sequence[str], discover: Discover) -> IndexResult:
        """Process every file of every collection.

        Args:
            collections: Collection names, in processing order
            discover: Returns the files of a collection

        Returns:
            IndexResult with one (possibly empty) record list per collection
        """
        result = IndexResult()

        for collection in collections:
            paths = list(discover(collection))
            logger.info("Processing %s: %d files", collection, len(paths))

            records = []
            for path in paths:
                record = await self._process_file(collection, path, result.failures)
                if record is not None:
                    records.append(record)

            result.collections[collection] = records

        if self.category_collection in result.collections:
            result.categories = tally_categories(result.collections[self.category_collection])

        return result

    async def run_files(self, paths: Iterable[Path]) -> IndexResult:
        """Process files that belong to no collection.

        Used for image-only runs over a single file or a whole tree. Records
        land in `IndexResult.files` and no category histogram is built.

        Args:
            paths: Files to process, in order

        Returns:
            IndexResult with `files` filled in
        """
        result = IndexResult()
        paths = list(paths)
        logger.info("Processing %d files", len(paths))

        for path in paths:
            record = await self._process_file(None, path, result.failures)
            if record is not None:
                result.files.append(record)

        return result

    async def _process_file(
        self,
        collection: Optional[str],
        path: Path,
        failures: List[FileFailure],
    ) -> Optional[FileRecord]:
        try:
            processed = await self.processor.process(path)
            return self.processor.build_record(processed)
        except Exception as e:
            logger.error("Failed to process %s: %s", path, e, exc_info=True)
            failures.append(FileFailure(path=Path(path), error=str(e), collection=collection))
            return None

    def write_index(self, output_root: Path, result: IndexResult) -> List[Path]:
        """Write `<collection>.json` files and the category histogram.

        Args:
            output_root: Directory the JSON files are written to
            result: Result of run()

        Returns:
            Paths written
        """
        output_root = Path(output_root)
        written = []

        for collection, records in result.collections.items():
            path = output_root / f"{collection}.json"
            write_json(path, records)
            logger.info("Wrote %s (%d entries)", path, len(records))
            written.append(path)

        if result.categories is not None:
            path = output_root / f"{self.category_collection}-categories.json"
            write_json(path, result.categories)
            logger.info("Wrote %s (%d categories)", path, len(result.categories))
            written.append(path)

        result.written_paths.extend(written)
        return written
