"""Front-matter parser for Markdown content files.

Supports only the metadata shapes content files actually use:

    title: "Hello"
    tags: [a, "b", 'c']
    category: [
    "tech",
    "life"
    ]

A key with an empty value followed by a line holding only "[" also
opens a multi-line array.

Values are either strings or flat lists of strings. Anything the scanner
cannot interpret is skipped rather than raised.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from content_indexer.core.models import Metadata, MetadataValue

# Opening delimiter at offset 0, closing delimiter on a line of its own
FRONTMATTER_PATTERN = re.compile(r'\A---\r?\n(.*?)\r?\n---(?=\r?\n|\Z)', re.DOTALL)

QUOTED_PATTERN = re.compile(r'^([\'"])(.*)\1$', re.DOTALL)

LINE_SPLIT_PATTERN = re.compile(r'\r?\n')


@dataclass(frozen=True)
class FrontMatterBlock:
    """Location of the front-matter block within a document."""
    text: str
    start: int
    end: int
    block_end: int


def find_frontmatter(content: str) -> Optional[FrontMatterBlock]:
    """Locate the front-matter block anchored at the start of `content`.

    Args:
        content: Full document text

    Returns:
        FrontMatterBlock with inner text offsets, or None if the document
        has no front matter
    """
    match = FRONTMATTER_PATTERN.match(content)
    if match is None:
        return None
    return FrontMatterBlock(
        text=match.group(1),
        start=match.start(1),
        end=match.end(1),
        block_end=match.end(),
    )


def strip_quotes(value: str) -> str:
    """Strip one layer of matching single or double quotes.

    A lone quote character or mismatched quotes are left untouched.
    """
    match = QUOTED_PATTERN.match(value)
    if match is None:
        return value
    return match.group(2)


class ScanState(Enum):
    SCANNING_KEY = "scanning_key"
    # Previous key had an empty value; a lone "[" next opens its array
    AWAITING_ARRAY = "awaiting_array"
    IN_MULTILINE_ARRAY = "in_multiline_array"


@dataclass(frozen=True)
class ScanCursor:
    """Parser state between lines."""
    state: ScanState = ScanState.SCANNING_KEY
    key: Optional[str] = None
    items: Tuple[str, ...] = ()


Emitted = Optional[Tuple[str, MetadataValue]]


def _parse_inline_array(value: str) -> List[str]:
    inner = value[1:-1].strip()
    if not inner:
        return []
    items = (strip_quotes(piece.strip()) for piece in inner.split(','))
    return [item for item in items if item]


def _parse_array_line(line: str) -> Optional[str]:
    if line.endswith(','):
        line = line[:-1].strip()
    item = strip_quotes(line)
    return item or None


def step(line: str, cursor: ScanCursor) -> Tuple[ScanCursor, Emitted]:
    """Advance the scanner by one line.

    Args:
        line: Raw line from the front-matter block
        cursor: State before this line

    Returns:
        Tuple of (state after this line, (key, value) if one was completed)
    """
    line = line.strip()

    if cursor.state is ScanState.IN_MULTILINE_ARRAY:
        if line == ']':
            return ScanCursor(), (cursor.key, list(cursor.items))
        if not line or line == ',':
            return cursor, None
        item = _parse_array_line(line)
        if item is None:
            return cursor, None
        return ScanCursor(cursor.state, cursor.key, cursor.items + (item,)), None

    if cursor.state is ScanState.AWAITING_ARRAY:
        if not line:
            return cursor, None
        if line == '[':
            return ScanCursor(ScanState.IN_MULTILINE_ARRAY, cursor.key), None
        cursor = ScanCursor()

    if not line or ':' not in line:
        return cursor, None

    key, _, value = line.partition(':')
    key = key.strip()
    value = value.strip()

    if value == '[':
        return ScanCursor(ScanState.IN_MULTILINE_ARRAY, key), None

    if value.startswith('[') and value.endswith(']'):
        return cursor, (key, _parse_inline_array(value))

    if not value:
        return ScanCursor(ScanState.AWAITING_ARRAY, key), (key, value)

    return cursor, (key, strip_quotes(value))


def parse_lines(lines: Iterable[str]) -> Metadata:
    """Run the line scanner over front-matter lines."""
    metadata: Metadata = {}
    cursor = ScanCursor()

    for line in lines:
        cursor, emitted = step(line, cursor)
        if emitted is not None:
            key, value = emitted
            metadata[key] = value

    # An unterminated array keeps what it collected
    if cursor.state is ScanState.IN_MULTILINE_ARRAY:
        metadata[cursor.key] = list(cursor.items)

    return metadata


def parse_frontmatter(content: str) -> Metadata:
    """Parse front matter from a Markdown document.

    Args:
        content: Full document text

    Returns:
        Mapping of keys to string or list-of-string values. Empty if the
        document has no front matter.
    """
    block = find_frontmatter(content)
    if block is None:
        return {}
    return parse_lines(LINE_SPLIT_PATTERN.split(block.text))
