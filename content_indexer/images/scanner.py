"""Scanner for local image references in Markdown documents."""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Pattern, Tuple

from content_indexer.core.frontmatter import find_frontmatter
from content_indexer.core.models import ImageKind, ImageReference

logger = logging.getLogger(__name__)

# Front-matter fields that may hold an image path
DEFAULT_IMAGE_FIELDS = (
    'coverImage',
    'image',
    'thumbnail',
    'hero',
    'banner',
    'featuredImage',
)

# Pattern for inline images: ![alt](path), path ends at the first unescaped ')'
INLINE_IMAGE_PATTERN = re.compile(r'!\[(?P<alt>[^\]]*)\]\((?P<path>(?:\\.|[^)\\])+)\)')

ESCAPE_PATTERN = re.compile(r'\\(.)')

# Optional link title after the path: ![alt](path "Title")
TITLE_PATTERN = re.compile(r'\s+(?:"[^"]*"|\'[^\']*\')$')

REMOTE_PREFIXES = ('http://', 'https://')


def build_field_pattern(field_names: Iterable[str]) -> Pattern:
    """Build the front-matter line pattern for the given field names.

    Matches `field: value` and `field: "value"` on a single line. Field
    names match case-insensitively.
    """
    names = sorted(set(field_names), key=len, reverse=True)
    if not names:
        raise ValueError("At least one image field name is required")
    alternation = '|'.join(re.escape(name) for name in names)
    return re.compile(
        r'^[ \t]*(?P<field>' + alternation + r')[ \t]*:[ \t]*'
        r'["\']?(?P<path>[^"\'\r\n]+?)["\']?[ \t]*(?=\r?$)',
        re.IGNORECASE | re.MULTILINE,
    )


def is_remote(path: str) -> bool:
    """Check whether a reference already points at a remote URL."""
    return path.lower().startswith(REMOTE_PREFIXES)


class ImageScanner:
    """Finds local image references that can be replaced by uploaded URLs.

    Front-matter fields are only recognised inside the front-matter block
    and inline images only in the body, so a body line that happens to
    look like `image: foo.png` is never touched.
    """

    def __init__(self, field_names: Optional[Iterable[str]] = None):
        """Initialize ImageScanner.

        Args:
            field_names: Front-matter field names holding image paths
                         (default: DEFAULT_IMAGE_FIELDS)
        """
        self.field_names = tuple(field_names or DEFAULT_IMAGE_FIELDS)
        self.field_pattern = build_field_pattern(self.field_names)

    def scan(self, document: str, base_dir: Path) -> List[ImageReference]:
        """Find replaceable local image references.

        Args:
            document: Full document text
            base_dir: Directory relative paths are resolved against

        Returns:
            References in textual order, front matter before body
        """
        references = []

        for reference in self._iter_candidates(document, Path(base_dir)):
            if reference is not None:
                references.append(reference)

        return references

    def _iter_candidates(self, document: str, base_dir: Path) -> Iterator[Optional[ImageReference]]:
        block = find_frontmatter(document)
        body_start = 0

        if block is not None:
            body_start = block.block_end
            for match in self.field_pattern.finditer(document, block.start, block.end):
                field = match.group('field')
                raw_path = match.group('path').strip()
                # Array values are not image paths
                if raw_path.startswith('['):
                    continue
                yield self._make_reference(
                    document,
                    span=(match.start('field'), match.end()),
                    raw_path=raw_path,
                    kind=ImageKind.FRONTMATTER,
                    label=field,
                    base_dir=base_dir,
                )

        for match in INLINE_IMAGE_PATTERN.finditer(document, body_start):
            yield self._make_reference(
                document,
                span=match.span(),
                raw_path=TITLE_PATTERN.sub('', match.group('path').strip()),
                kind=ImageKind.INLINE,
                label=match.group('alt'),
                base_dir=base_dir,
            )

    def _make_reference(
        self,
        document: str,
        span: Tuple[int, int],
        raw_path: str,
        kind: ImageKind,
        label: str,
        base_dir: Path,
    ) -> Optional[ImageReference]:
        if not raw_path:
            return None

        if is_remote(raw_path):
            logger.debug("Skipping remote image: %s", raw_path)
            return None

        resolved = resolve_image_path(ESCAPE_PATTERN.sub(r'\1', raw_path), base_dir)
        if not is_readable_file(resolved):
            logger.warning("Image file not found: %s", resolved)
            return None

        start, end = span
        return ImageReference(
            original_text=document[start:end],
            resolved_path=resolved,
            kind=kind,
            label=label,
            start=start,
            end=end,
        )


def resolve_image_path(raw_path: str, base_dir: Path) -> Path:
    """Resolve a reference against the referencing document's directory."""
    path = Path(raw_path)
    if not path.is_absolute():
        path = Path(base_dir) / path
    return Path(os.path.abspath(path))


def is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)
