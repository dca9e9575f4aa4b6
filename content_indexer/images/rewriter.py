"""Apply image replacements to document text."""

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class Replacement:
    """Substitute `replacement` for `original`.

    When `start`/`end` are set the replacement is applied at that span;
    otherwise only the literal text is known.
    """
    original: str
    replacement: str
    start: Optional[int] = None
    end: Optional[int] = None

    @property
    def has_span(self) -> bool:
        return self.start is not None and self.end is not None


def rewrite(document: str, replacements: Sequence[Replacement]) -> str:
    """Apply span-based replacements in a single left-to-right pass.

    Every replacement must carry the offsets it was discovered at, so two
    identical tokens in one document are replaced independently.

    Args:
        document: Original document text
        replacements: Replacements with spans into `document`

    Returns:
        Updated document text; `document` itself if nothing was replaced

    Raises:
        ValueError: If a span is missing, overlaps another, or no longer
                    matches its original text
    """
    if not replacements:
        return document

    for item in replacements:
        if not item.has_span:
            raise ValueError(f"Replacement for {item.original!r} has no span")

    ordered = sorted(replacements, key=lambda item: item.start)
    pieces: List[str] = []
    cursor = 0

    for item in ordered:
        if item.start < cursor:
            raise ValueError(f"Overlapping replacement at offset {item.start}")
        if document[item.start:item.end] != item.original:
            raise ValueError(f"Text at offset {item.start} does not match {item.original!r}")
        pieces.append(document[cursor:item.start])
        pieces.append(item.replacement)
        cursor = item.end

    pieces.append(document[cursor:])
    return ''.join(pieces)


def rewrite_first_occurrence(document: str, replacements: Sequence[Replacement]) -> str:
    """Apply literal replacements, each to the first remaining occurrence.

    Entries are applied in list order. When the same literal token occurs
    more than once, each entry consumes the first occurrence still present,
    so duplicates cannot be addressed individually.
    """
    for item in replacements:
        document = document.replace(item.original, item.replacement, 1)
    return document
