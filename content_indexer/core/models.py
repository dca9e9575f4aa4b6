"""Data models and errors for Content Indexer."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

MetadataValue = Union[str, List[str]]
Metadata = Dict[str, MetadataValue]
FileRecord = Dict[str, Any]


class ContentIndexerError(Exception):
    """Base class for all errors raised by Content Indexer."""


class ConfigError(ContentIndexerError):
    """Required configuration is missing or invalid; aborts the whole run."""


class DiscoveryError(ContentIndexerError):
    """Raised when the content root cannot be scanned."""


class UploadFailed(ContentIndexerError):
    """The upload collaborator rejected an image or could not be reached."""

    def __init__(self, path: Union[str, Path], detail: Any):
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"Upload failed for {self.path}: {detail}")


@dataclass
class ContentContext:
    """Location of a single content file.

    Content is read on demand so discovery never holds file bodies.
    """
    path: Path

    def read_raw(self) -> str:
        """Read file contents on demand, keeping line endings as-is."""
        with open(self.path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    @property
    def file_name(self) -> str:
        """Base name without extension."""
        return self.path.stem


class ImageKind(Enum):
    FRONTMATTER = "frontmatter"
    INLINE = "inline"


@dataclass
class ImageReference:
    """A replaceable local image reference found in a document.

    `label` is the front-matter field name for FRONTMATTER references and
    the alt text for INLINE ones. `start`/`end` are offsets of
    `original_text` in the scanned document.
    """
    original_text: str
    resolved_path: Path
    kind: ImageKind
    label: str
    start: int
    end: int

    def replacement(self, url: str) -> str:
        """Render this reference pointing at `url`."""
        if self.kind is ImageKind.FRONTMATTER:
            return f'{self.label}: "{url}"'
        return f"![{self.label}]({url})"


@dataclass
class ProcessedFile:
    """Result of running one file through the processor."""
    context: ContentContext
    content: str
    output_path: Path
    replaced_images: Optional[int] = None

    @property
    def path(self) -> Path:
        return self.context.path


@dataclass
class FileFailure:
    """A file excluded from its collection because processing failed."""
    path: Path
    error: str
    collection: Optional[str] = None


@dataclass
class IndexResult:
    """Outcome of an indexing run."""
    collections: Dict[str, List[FileRecord]] = field(default_factory=dict)
    # Records of files processed outside any collection
    files: List[FileRecord] = field(default_factory=list)
    categories: Optional[List[Dict[str, Any]]] = None
    failures: List[FileFailure] = field(default_factory=list)
    written_paths: List[Path] = field(default_factory=list)

    @property
    def replaced_images(self) -> int:
        total = 0
        for records in [self.files, *self.collections.values()]:
            for record in records:
                count = record.get('replacedImages')
                # Front matter may carry a string value of the same name
                if isinstance(count, int):
                    total += count
        return total
