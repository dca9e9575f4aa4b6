"""Content processor for rewriting image references in content files."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from content_indexer.core.frontmatter import parse_frontmatter
from content_indexer.core.models import (
    ContentContext,
    FileRecord,
    ImageReference,
    ProcessedFile,
    UploadFailed,
)
from content_indexer.images.rewriter import Replacement, rewrite
from content_indexer.images.scanner import ImageScanner
from content_indexer.images.uploader import ImageUploader

logger = logging.getLogger(__name__)

UPDATED_SUFFIX = "_updated"


@dataclass
class OutputPolicy:
    """Where rewritten files are written.

    Default is in place. With `output_dir`, the path relative to
    `input_root` is mirrored under `output_dir`. With `overwrite=False`
    and no `output_dir`, `<stem>_updated<ext>` is written next to the input.
    """
    input_root: Optional[Path] = None
    output_dir: Optional[Path] = None
    overwrite: bool = True

    def output_path(self, path: Path) -> Path:
        if self.output_dir is not None:
            root = self.input_root or path.parent
            return Path(self.output_dir) / path.relative_to(root)
        if not self.overwrite:
            return path.with_name(f"{path.stem}{UPDATED_SUFFIX}{path.suffix}")
        return path


class ContentProcessor:
    """Processes content files before they are indexed.

    Handles:
    - Local image discovery in front matter and body
    - Uploading images through a shared ImageUploader
    - Rewriting references and saving the updated file
    - Building the index record from the updated text

    Without an uploader, files are only read and parsed.
    """

    def __init__(
        self,
        scanner: Optional[ImageScanner] = None,
        uploader: Optional[ImageUploader] = None,
        output: Optional[OutputPolicy] = None,
    ):
        """Initialize ContentProcessor.

        Args:
            scanner: Image reference scanner (default: ImageScanner())
            uploader: Upload dispatcher; None disables image processing
            output: Where rewritten files go (default: in place)
        """
        self.scanner = scanner or ImageScanner()
        self.uploader = uploader
        self.output = output or OutputPolicy()

    @property
    def processes_images(self) -> bool:
        return self.uploader is not None

    async def process(self, path: Path) -> ProcessedFile:
        """Process a single content file.

        Args:
            path: Content file to process

        Returns:
            ProcessedFile holding the (possibly rewritten) content
        """
        context = ContentContext(path=Path(path))
        content = context.read_raw()

        if not self.processes_images:
            return ProcessedFile(context=context, content=content, output_path=context.path)

        updated, replaced = await self.replace_images(content, context.path.parent)
        output_path = self.output.output_path(context.path)

        if updated != content:
            self._write(output_path, updated)
            logger.info("Updated %s (%d images replaced)", output_path, replaced)
        elif output_path != context.path:
            self._write(output_path, updated)

        return ProcessedFile(
            context=context,
            content=updated,
            output_path=output_path,
            replaced_images=replaced,
        )

    async def replace_images(self, content: str, base_dir: Path) -> Tuple[str, int]:
        """Upload every local image in `content` and point references at the URLs.

        All uploads for the document run concurrently; rewriting starts once
        every one of them has settled.

        Args:
            content: Document text
            base_dir: Directory relative image paths resolve against

        Returns:
            Tuple of (updated content, number of references replaced)
        """
        references = self.scanner.scan(content, base_dir)
        if not references:
            return content, 0

        logger.info("Found %d local images", len(references))
        results = await asyncio.gather(
            *(self.uploader.resolve(ref.resolved_path) for ref in references),
            return_exceptions=True,
        )

        replacements = self._collect_replacements(references, results)
        return rewrite(content, replacements), len(replacements)

    def _collect_replacements(
        self,
        references: Sequence[ImageReference],
        results: Sequence[object],
    ) -> List[Replacement]:
        replacements = []

        for ref, result in zip(references, results):
            if isinstance(result, UploadFailed):
                logger.error("Leaving %s unchanged: %s", ref.original_text, result)
                continue
            if isinstance(result, BaseException):
                raise result
            replacements.append(Replacement(
                original=ref.original_text,
                replacement=ref.replacement(result),
                start=ref.start,
                end=ref.end,
            ))

        return replacements

    def build_record(self, processed: ProcessedFile) -> FileRecord:
        """Build the index record for a processed file.

        Front-matter keys are merged over `fileName`, so a key of that name
        in the file wins. `replacedImages` is only present when image
        processing ran.

        Args:
            processed: Result of process()

        Returns:
            Flat record dict
        """
        record: FileRecord = {'fileName': processed.context.file_name}
        record.update(parse_frontmatter(processed.content))
        if processed.replaced_images is not None:
            record['replacedImages'] = processed.replaced_images
        return record

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
