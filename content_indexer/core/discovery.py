"""Collection discovery for finding content files."""

import logging
from pathlib import Path
from typing import Iterable, List, Set

from content_indexer.core.models import DiscoveryError
from content_indexer.core.processor import UPDATED_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.md"


class ContentDiscovery:
    """Finds content files belonging to a named collection.

    A collection is a directory directly under the content root, e.g.
    `<root>/posts` for the `posts` collection.
    """

    def __init__(
        self,
        root: Path,
        recursive: bool = False,
        pattern: str = DEFAULT_PATTERN,
    ):
        """Initialize ContentDiscovery.

        Args:
            root: Content root holding one directory per collection
            recursive: Whether to descend into subdirectories
            pattern: Glob pattern for content files
        """
        self.root = Path(root)
        self.recursive = recursive
        self.pattern = pattern

        if not self.root.is_dir():
            raise DiscoveryError(f"Content root not found: {self.root}")

    def collection_dir(self, collection: str) -> Path:
        return self.root / collection

    def find(self, collection: str) -> List[Path]:
        """Find all content files in a collection.

        Args:
            collection: Collection name

        Returns:
            Sorted list of file paths, empty if the collection directory
            does not exist
        """
        directory = self.collection_dir(collection)
        if not directory.is_dir():
            logger.warning("Collection directory not found: %s", directory)
            return []

        return self._list(directory)

    def find_all(self) -> List[Path]:
        """Find every content file under the root, ignoring collections."""
        return self._list(self.root)

    def _list(self, directory: Path) -> List[Path]:
        matches = directory.rglob(self.pattern) if self.recursive else directory.glob(self.pattern)
        return _content_files(matches)


def _content_files(matches: Iterable[Path]) -> List[Path]:
    seen: Set[Path] = set()
    files = []
    for path in sorted(matches):
        if not path.is_file() or path in seen:
            continue
        # Copies written by no-overwrite runs are not content
        if path.stem.endswith(UPDATED_SUFFIX):
            continue
        seen.add(path)
        files.append(path)

    return files
