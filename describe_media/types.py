from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Set


class AnnotationKind(str, enum.Enum):
    """Kinds of generated text, in the order they are requested per item."""

    ALT = "alt"
    DESCRIPTION = "description"
    CAPTION = "caption"
    TITLE = "title"


KIND_ORDER: tuple[AnnotationKind, ...] = tuple(AnnotationKind)

# Store-of-record fields written by update_metadata; alt goes through update_alt_text.
METADATA_KINDS: tuple[AnnotationKind, ...] = (
    AnnotationKind.TITLE,
    AnnotationKind.DESCRIPTION,
    AnnotationKind.CAPTION,
)


@dataclass(frozen=True)
class PromptTemplate:
    """Either a prompt text or the disabled marker (``text is None``)."""

    text: Optional[str] = None

    @classmethod
    def disabled(cls) -> "PromptTemplate":
        return cls(None)

    @classmethod
    def parse(cls, value: object) -> "PromptTemplate":
        """Build a template from an operator value.

        ``None``, ``True`` (a bare flag with no text) and blank strings all
        mean the kind is disabled.
        """
        if value is None or value is True or value is False:
            return cls.disabled()
        text = str(value).strip()
        return cls(text) if text else cls.disabled()

    @property
    def enabled(self) -> bool:
        return bool(self.text)


@dataclass(frozen=True)
class MediaItem:
    item_id: int
    source_url: str


@dataclass
class ResultRow:
    item_id: int
    fields: Dict[AnnotationKind, str] = field(default_factory=dict)
    source_url: str = ""

    def get(self, kind: AnnotationKind) -> str:
        return self.fields.get(kind, "") or ""

    def has_content(self) -> bool:
        return any(self.get(kind) for kind in KIND_ORDER)

    def to_csv_row(self) -> List[str]:
        return [str(self.item_id), *(self.get(kind) for kind in KIND_ORDER), self.source_url]

    @classmethod
    def from_csv_row(cls, values: List[str]) -> Optional["ResultRow"]:
        """Parse one CSV record; returns None for the header or malformed rows."""
        if len(values) != len(KIND_ORDER) + 2:
            return None
        try:
            item_id = int(values[0].strip())
        except ValueError:
            return None
        fields = {kind: values[i + 1] for i, kind in enumerate(KIND_ORDER)}
        return cls(item_id=item_id, fields=fields, source_url=values[-1])


class RunnerState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    GENERATING = "generating"
    DRAINED = "drained"


@dataclass
class RunSummary:
    checkpoint_path: Path
    found: int = 0
    already_processed: int = 0
    written: int = 0
    dropped: int = 0
    fetch_failed: int = 0


@dataclass
class CommitSummary:
    rows: int = 0
    metadata_updates: int = 0
    alt_updates: int = 0
    failures: int = 0


class MediaCatalog(Protocol):
    def list_image_items(self, exclude: Set[int]) -> List[MediaItem]:
        ...


class RecordStore(Protocol):
    def update_metadata(self, item_id: int, fields: Mapping[str, str]) -> None:
        ...

    def update_alt_text(self, item_id: int, text: str) -> None:
        ...


class ModelClient(Protocol):
    def describe(self, image_source_url: str, prompt: str) -> str:
        ...
