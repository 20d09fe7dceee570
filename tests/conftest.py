# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Mapping, Set, Tuple

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from describe_media.config import DescribeConfig  # noqa: E402
from describe_media.errors import StoreWriteError  # noqa: E402
from describe_media.types import AnnotationKind, MediaItem, PromptTemplate  # noqa: E402


class FakeCatalog:
    """Catalog over a fixed id list, honoring exclusions."""

    def __init__(self, ids: List[int]):
        self.ids = ids
        self.excludes: List[Set[int]] = []

    def list_image_items(self, exclude: Set[int]) -> List[MediaItem]:
        self.excludes.append(set(exclude))
        return [MediaItem(i, f"http://site.test/img/{i}.jpg") for i in self.ids if i not in exclude]


class FakeModel:
    """Answers from a ``{(item_id, prompt): answer}`` table; ``raise_on`` items raise."""

    def __init__(self, answers: Dict[Tuple[int, str], str], raise_on: Mapping[int, Exception] = None):
        self.answers = answers
        self.raise_on = dict(raise_on or {})
        self.calls: List[Tuple[str, str]] = []

    def describe(self, image_source_url: str, prompt: str) -> str:
        self.calls.append((image_source_url, prompt))
        item_id = int(image_source_url.rsplit("/", 1)[-1].split(".")[0])
        if item_id in self.raise_on:
            raise self.raise_on[item_id]
        return self.answers.get((item_id, prompt), "")


class FakeRecordStore:
    def __init__(self, fail_ids: Set[int] = frozenset()):
        self.metadata: Dict[int, Dict[str, str]] = {}
        self.alt: Dict[int, str] = {}
        self.fail_ids = set(fail_ids)
        self.calls: List[Tuple[str, int]] = []

    def update_metadata(self, item_id: int, fields: Mapping[str, str]) -> None:
        self.calls.append(("metadata", item_id))
        if item_id in self.fail_ids:
            raise StoreWriteError(f"cannot update {item_id}")
        self.metadata.setdefault(item_id, {}).update(fields)

    def update_alt_text(self, item_id: int, text: str) -> None:
        self.calls.append(("alt", item_id))
        if item_id in self.fail_ids:
            raise StoreWriteError(f"cannot update {item_id}")
        self.alt[item_id] = text


def make_config(tmp_path: Path, **prompts) -> DescribeConfig:
    """Config writing to tmp_path; prompts given as kind=value, the rest disabled."""
    templates = {kind: PromptTemplate.parse(prompts.get(kind.value)) for kind in AnnotationKind}
    return DescribeConfig(output_dir=tmp_path, prompts=templates)


@pytest.fixture
def config_factory(tmp_path):
    def _make(**prompts):
        return make_config(tmp_path, **prompts)

    return _make
