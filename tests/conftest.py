"""Shared fixtures for Content Indexer tests."""

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from content_indexer.core.models import UploadFailed


class FakeUploadClient:
    """In-memory upload collaborator.

    Returns `url_template` formatted with the file name and records every
    call. Files named in `fail_names` are rejected.
    """

    def __init__(
        self,
        url_template: str = "https://cdn.example/X",
        fail_names: Iterable[str] = (),
        delay: float = 0,
        error: Optional[Exception] = None,
    ):
        self.url_template = url_template
        self.fail_names = set(fail_names)
        self.delay = delay
        self.error = error
        self.calls: List[Path] = []

    async def upload(self, path: Path, data: bytes) -> str:
        self.calls.append(Path(path))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if Path(path).name in self.fail_names:
            raise UploadFailed(path, [{"code": 5400, "message": "Bad request"}])
        return self.url_template.format(name=Path(path).name)


@pytest.fixture
def fake_client():
    return FakeUploadClient()


@pytest.fixture
def content_root(tmp_path):
    """Content root with an events/news/posts layout and two images."""
    root = tmp_path / "content"
    (root / "events").mkdir(parents=True)
    (root / "news").mkdir()
    posts = root / "posts"
    (posts / "img").mkdir(parents=True)
    (posts / "img" / "cover.png").write_bytes(b"\x89PNG cover")
    (posts / "img" / "inline.png").write_bytes(b"\x89PNG inline")

    (posts / "a.md").write_text("""---
title: "Hello"
category: [
"tech",
"life"
]
coverImage: ./img/cover.png
---
Body ![alt](./img/inline.png)
""", encoding="utf-8")

    (root / "news" / "launch.md").write_text("""---
title: Launch
date: 2024-05-01
---
We launched.
""", encoding="utf-8")

    return root


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Environment without Cloudflare settings, run from an empty directory."""
    # setenv first so that values loaded from .env are removed on undo
    for name in ("CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN", "CONTENT_INDEXER_UPLOAD_TIMEOUT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
