"""Tests for image scanning and reference rewriting."""

import logging
from pathlib import Path

import pytest

from content_indexer.core.models import ImageKind
from content_indexer.images.rewriter import Replacement, rewrite, rewrite_first_occurrence
from content_indexer.images.scanner import (
    DEFAULT_IMAGE_FIELDS,
    ImageScanner,
    build_field_pattern,
    is_remote,
    resolve_image_path,
)


@pytest.fixture
def doc_dir(tmp_path):
    """Directory with a few image files next to where documents live."""
    (tmp_path / "img").mkdir()
    for name in ("cover.png", "inline.png", "hero.jpg", "thumb.webp"):
        (tmp_path / "img" / name).write_bytes(b"data")
    return tmp_path


class TestImageScanner:
    """Tests for ImageScanner."""

    def test_frontmatter_and_body_references(self, doc_dir):
        document = """---
title: "Hello"
coverImage: ./img/cover.png
---
Body ![alt](./img/inline.png)
"""
        refs = ImageScanner().scan(document, doc_dir)

        assert len(refs) == 2
        assert refs[0].kind is ImageKind.FRONTMATTER
        assert refs[0].label == "coverImage"
        assert refs[0].original_text == "coverImage: ./img/cover.png"
        assert refs[0].resolved_path == doc_dir / "img" / "cover.png"
        assert refs[1].kind is ImageKind.INLINE
        assert refs[1].label == "alt"
        assert refs[1].original_text == "![alt](./img/inline.png)"
        assert refs[1].resolved_path == doc_dir / "img" / "inline.png"

    def test_offsets_point_at_original_text(self, doc_dir):
        document = "---\nimage: 'img/hero.jpg'\n---\nText ![](img/inline.png) more"
        refs = ImageScanner().scan(document, doc_dir)

        for ref in refs:
            assert document[ref.start:ref.end] == ref.original_text

    def test_quoted_frontmatter_values(self, doc_dir):
        document = '---\nhero: "img/hero.jpg"\nthumbnail: \'img/thumb.webp\'\n---\n'
        refs = ImageScanner().scan(document, doc_dir)

        assert [ref.label for ref in refs] == ["hero", "thumbnail"]
        assert refs[0].original_text == 'hero: "img/hero.jpg"'
        assert refs[1].resolved_path == doc_dir / "img" / "thumb.webp"

    def test_field_names_case_insensitive(self, doc_dir):
        document = "---\nCoverImage: img/cover.png\n---\n"
        refs = ImageScanner().scan(document, doc_dir)

        assert len(refs) == 1
        assert refs[0].label == "CoverImage"

    def test_featured_image_recognised(self, doc_dir):
        document = "---\nfeaturedImage: img/cover.png\n---\n"
        refs = ImageScanner().scan(document, doc_dir)
        assert [ref.label for ref in refs] == ["featuredImage"]

    def test_unlisted_field_ignored(self, doc_dir):
        document = "---\nogImage: img/cover.png\nphoto: img/hero.jpg\n---\n"
        assert ImageScanner().scan(document, doc_dir) == []

    def test_custom_field_names(self, doc_dir):
        document = "---\nphoto: img/hero.jpg\ncoverImage: img/cover.png\n---\n"
        refs = ImageScanner(field_names=["photo"]).scan(document, doc_dir)
        assert [ref.label for ref in refs] == ["photo"]

    def test_body_field_lookalike_ignored(self, doc_dir):
        document = "---\ntitle: A\n---\nimage: img/cover.png\n"
        assert ImageScanner().scan(document, doc_dir) == []

    def test_no_frontmatter_scans_whole_body(self, doc_dir):
        document = "image: img/cover.png\n![x](img/inline.png)"
        refs = ImageScanner().scan(document, doc_dir)

        assert len(refs) == 1
        assert refs[0].kind is ImageKind.INLINE

    def test_inline_images_in_frontmatter_ignored(self, doc_dir):
        document = "---\nsummary: ![x](img/inline.png)\n---\nBody"
        assert ImageScanner().scan(document, doc_dir) == []

    def test_remote_references_skipped(self, doc_dir):
        document = """---
coverImage: "https://cdn.example/cover.png"
---
![a](http://example.com/a.png) ![b](HTTPS://example.com/b.png)
"""
        assert ImageScanner().scan(document, doc_dir) == []

    def test_missing_file_dropped_with_warning(self, doc_dir, caplog):
        document = "![gone](img/missing.png) ![ok](img/inline.png)"
        with caplog.at_level(logging.WARNING, logger="content_indexer.images.scanner"):
            refs = ImageScanner().scan(document, doc_dir)

        assert [ref.label for ref in refs] == ["ok"]
        assert "missing.png" in caplog.text

    def test_absolute_path_used_as_is(self, doc_dir, tmp_path):
        image = doc_dir / "img" / "cover.png"
        document = f"![abs]({image})"
        refs = ImageScanner().scan(document, tmp_path / "elsewhere")

        assert refs[0].resolved_path == image

    def test_parent_relative_path_normalised(self, doc_dir):
        posts = doc_dir / "posts"
        posts.mkdir()
        document = "![up](../img/cover.png)"
        refs = ImageScanner().scan(document, posts)

        assert refs[0].resolved_path == doc_dir / "img" / "cover.png"

    def test_empty_alt_text(self, doc_dir):
        refs = ImageScanner().scan("![](img/inline.png)", doc_dir)
        assert refs[0].label == ""
        assert refs[0].replacement("https://x") == "![](https://x)"

    def test_escaped_parenthesis_in_path(self, doc_dir):
        (doc_dir / "img" / "a(1).png").write_bytes(b"data")
        document = r"![p](img/a(1\).png)"
        refs = ImageScanner().scan(document, doc_dir)

        assert len(refs) == 1
        assert refs[0].original_text == document
        assert refs[0].resolved_path == doc_dir / "img" / "a(1).png"

    def test_inline_title_ignored_for_path(self, doc_dir):
        document = '![a](./img/inline.png "Title") ![b](img/cover.png \'Other\')'
        refs = ImageScanner().scan(document, doc_dir)

        assert [r.resolved_path for r in refs] == [
            doc_dir / "img" / "inline.png",
            doc_dir / "img" / "cover.png",
        ]
        assert refs[0].original_text == '![a](./img/inline.png "Title")'

    def test_path_with_spaces_kept(self, doc_dir):
        (doc_dir / "img" / "my photo.png").write_bytes(b"data")
        refs = ImageScanner().scan("![a](img/my photo.png)", doc_dir)
        assert refs[0].resolved_path == doc_dir / "img" / "my photo.png"

    def test_array_field_value_ignored(self, doc_dir):
        document = "---\nimage: [\n\"img/cover.png\"\n]\n---\n"
        assert ImageScanner().scan(document, doc_dir) == []

    def test_order_frontmatter_then_body(self, doc_dir):
        document = """---
banner: img/hero.jpg
coverImage: img/cover.png
---
![one](img/inline.png)
![two](img/thumb.webp)
"""
        refs = ImageScanner().scan(document, doc_dir)
        assert [ref.label for ref in refs] == ["banner", "coverImage", "one", "two"]

    def test_duplicate_tokens_have_distinct_spans(self, doc_dir):
        document = "![a](img/inline.png) and ![a](img/inline.png)"
        refs = ImageScanner().scan(document, doc_dir)

        assert len(refs) == 2
        assert refs[0].original_text == refs[1].original_text
        assert refs[0].start != refs[1].start

    def test_crlf_frontmatter_field(self, doc_dir):
        document = "---\r\ncoverImage: img/cover.png\r\n---\r\nBody"
        refs = ImageScanner().scan(document, doc_dir)

        assert refs[0].original_text == "coverImage: img/cover.png"

    def test_default_fields(self):
        assert "featuredImage" in DEFAULT_IMAGE_FIELDS
        assert "coverImage" in DEFAULT_IMAGE_FIELDS

    def test_empty_field_list_rejected(self):
        with pytest.raises(ValueError):
            build_field_pattern([])


class TestScannerHelpers:
    """Tests for scanner helper functions."""

    @pytest.mark.parametrize("path,expected", [
        ("http://a/b.png", True),
        ("https://a/b.png", True),
        ("HTTPS://a/b.png", True),
        ("./b.png", False),
        ("/abs/b.png", False),
        ("httpdocs/b.png", False),
    ])
    def test_is_remote(self, path, expected):
        assert is_remote(path) is expected

    def test_resolve_relative(self, tmp_path):
        assert resolve_image_path("a/b.png", tmp_path) == tmp_path / "a" / "b.png"

    def test_resolve_absolute(self, tmp_path):
        target = tmp_path / "x.png"
        assert resolve_image_path(str(target), Path("/somewhere")) == target


class TestImageReference:
    """Tests for ImageReference rendering."""

    def test_frontmatter_replacement(self, doc_dir):
        ref = ImageScanner().scan("---\ncoverImage: img/cover.png\n---\n", doc_dir)[0]
        assert ref.replacement("https://cdn.example/X") == 'coverImage: "https://cdn.example/X"'

    def test_inline_replacement(self, doc_dir):
        ref = ImageScanner().scan("![My alt](img/inline.png)", doc_dir)[0]
        assert ref.replacement("https://cdn.example/X") == "![My alt](https://cdn.example/X)"


class TestRewrite:
    """Tests for span-based rewriting."""

    def test_no_replacements_is_identity(self):
        document = "---\ntitle: A\n---\n![x](a.png)\n"
        assert rewrite(document, []) is document

    def test_single_replacement(self):
        document = "Before ![x](a.png) after"
        start = document.index("![")
        result = rewrite(document, [
            Replacement("![x](a.png)", "![x](https://u)", start, start + len("![x](a.png)")),
        ])
        assert result == "Before ![x](https://u) after"

    def test_duplicate_tokens_replaced_independently(self):
        token = "![a](a.png)"
        document = f"{token} and {token}"
        second = document.rindex(token)
        result = rewrite(document, [
            Replacement(token, "![a](https://two)", second, second + len(token)),
        ])
        assert result == "![a](a.png) and ![a](https://two)"

    def test_order_of_list_does_not_matter(self):
        document = "A B C"
        items = [
            Replacement("C", "3", 4, 5),
            Replacement("A", "1", 0, 1),
        ]
        assert rewrite(document, items) == "1 B 3"

    def test_length_changes_do_not_shift_later_spans(self):
        document = "x y"
        items = [
            Replacement("x", "a much longer value", 0, 1),
            Replacement("y", "z", 2, 3),
        ]
        assert rewrite(document, items) == "a much longer value z"

    def test_mismatched_span_rejected(self):
        with pytest.raises(ValueError):
            rewrite("abc", [Replacement("zz", "y", 0, 2)])

    def test_overlapping_spans_rejected(self):
        with pytest.raises(ValueError):
            rewrite("abcdef", [
                Replacement("abc", "1", 0, 3),
                Replacement("cde", "2", 2, 5),
            ])

    def test_missing_span_rejected(self):
        with pytest.raises(ValueError):
            rewrite("abc", [Replacement("a", "b")])


class TestRewriteFirstOccurrence:
    """Tests for the literal first-occurrence contract."""

    def test_no_replacements_is_identity(self):
        assert rewrite_first_occurrence("text", []) == "text"

    def test_replaces_first_remaining_occurrence(self):
        token = "![a](a.png)"
        document = f"{token} and {token}"
        result = rewrite_first_occurrence(document, [Replacement(token, "![a](https://one)")])
        assert result == "![a](https://one) and ![a](a.png)"

    def test_repeated_entries_consume_occurrences_in_order(self):
        token = "![a](a.png)"
        document = f"{token} and {token}"
        result = rewrite_first_occurrence(document, [
            Replacement(token, "![a](https://one)"),
            Replacement(token, "![a](https://two)"),
        ])
        assert result == "![a](https://one) and ![a](https://two)"
