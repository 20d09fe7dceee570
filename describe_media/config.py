from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from describe_media.types import KIND_ORDER, AnnotationKind, PromptTemplate

DEFAULT_PROMPTS: Mapping[AnnotationKind, str] = MappingProxyType({
    AnnotationKind.ALT: (
        "Please write a thorough description of the image in a format appropriate "
        "for an alt tag focused on accessibility."
    ),
    AnnotationKind.DESCRIPTION: (
        "Please write a comma-separated keywords and relevant synonyms related to "
        "this image, focusing on relevancy for search."
    ),
    AnnotationKind.CAPTION: (
        "Please write a descriptive caption for this image appropriate for displaying "
        "to a user reading an article where the image is referenced."
    ),
    AnnotationKind.TITLE: "Please write a short title for this image.",
})

DEFAULT_CACHE_FILE = "image-descriptions.csv"
DEFAULT_IMAGE_SIZE = "medium"
DEFAULT_OLLAMA_URL = "http://127.0.0.1:11434"
DEFAULT_MODEL = "llava"
# Inference on commodity hardware takes between 1 and 8 minutes per request.
DEFAULT_TIMEOUT_SEC = 20 * 60


def _default_prompts() -> Mapping[AnnotationKind, PromptTemplate]:
    return MappingProxyType({k: PromptTemplate(DEFAULT_PROMPTS[k]) for k in KIND_ORDER})


@dataclass(frozen=True)
class DescribeConfig:
    """Run configuration, built once at startup and passed down explicitly."""

    output_dir: Path = field(default_factory=Path.cwd)
    cache_file: str = DEFAULT_CACHE_FILE
    prompts: Mapping[AnnotationKind, PromptTemplate] = field(default_factory=_default_prompts)
    image_size: str = DEFAULT_IMAGE_SIZE
    ollama_url: str = DEFAULT_OLLAMA_URL
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT_SEC
    wp_url: Optional[str] = None
    wp_user: Optional[str] = None
    wp_password: Optional[str] = None
    limit: int = 0

    @property
    def checkpoint_path(self) -> Path:
        return Path(self.output_dir) / _sanitize_file_name(self.cache_file)

    def prompt_for(self, kind: AnnotationKind) -> PromptTemplate:
        return self.prompts.get(kind, PromptTemplate.disabled())

    def enabled_kinds(self) -> tuple[AnnotationKind, ...]:
        return tuple(k for k in KIND_ORDER if self.prompt_for(k).enabled)

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "DescribeConfig":
        """Combine CLI values with environment defaults.

        A prompt flag that was not given keeps the default prompt; a bare flag
        or a blank value disables that kind.
        """
        prompts = {}
        for kind in KIND_ORDER:
            value = getattr(args, kind.value, None)
            prompts[kind] = PromptTemplate(DEFAULT_PROMPTS[kind]) if value is None else PromptTemplate.parse(value)

        cache_file = (getattr(args, "cache_file", None) or "").strip() or DEFAULT_CACHE_FILE
        output_dir = getattr(args, "output_dir", None) or os.getenv("OUTPUT_DIR") or os.getcwd()
        return cls(
            output_dir=Path(output_dir).expanduser(),
            cache_file=cache_file,
            prompts=MappingProxyType(prompts),
            image_size=(getattr(args, "image_size", None) or DEFAULT_IMAGE_SIZE).strip(),
            ollama_url=(getattr(args, "ollama_url", None) or os.getenv("OLLAMA_URL") or DEFAULT_OLLAMA_URL).rstrip("/"),
            model=getattr(args, "model", None) or os.getenv("OLLAMA_MODEL") or DEFAULT_MODEL,
            timeout=float(getattr(args, "timeout", None) or DEFAULT_TIMEOUT_SEC),
            wp_url=getattr(args, "wp_url", None) or os.getenv("WP_URL"),
            wp_user=getattr(args, "wp_user", None) or os.getenv("WP_USER"),
            wp_password=getattr(args, "wp_password", None) or os.getenv("WP_APP_PASSWORD"),
            limit=int(getattr(args, "limit", None) or 0),
        )


def _sanitize_file_name(name: str) -> str:
    """Keep only the base name so the checkpoint cannot escape output_dir."""
    base = os.path.basename(name.strip().replace("\\", "/"))
    return base or DEFAULT_CACHE_FILE
