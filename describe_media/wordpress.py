from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Set

from describe_media.config import DescribeConfig
from describe_media.errors import CatalogError
from describe_media.logging_utils import get_logger
from describe_media.types import MediaItem

from apis.wordpress import list_media_page, update_media

log = get_logger(__name__)


def resolve_source_url(media: Dict[str, Any], image_size: str) -> str:
    """URL of the requested image size, falling back to the original upload."""
    sizes = (media.get("media_details") or {}).get("sizes") or {}
    sized = sizes.get(image_size) or {}
    return sized.get("source_url") or media.get("source_url") or ""


class WordPressMediaLibrary:
    """Media catalog and store of record backed by the WordPress REST API."""

    def __init__(self, base_url: str, user: Optional[str] = None, password: Optional[str] = None,
                 image_size: str = "medium", per_page: int = 100, timeout: float = 60.0):
        if not base_url:
            raise CatalogError("WordPress site URL is not configured (--wp_url or WP_URL)")
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.password = password
        self.image_size = image_size
        self.per_page = per_page
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: DescribeConfig) -> "WordPressMediaLibrary":
        return cls(config.wp_url or "", user=config.wp_user, password=config.wp_password,
                   image_size=config.image_size)

    def list_image_items(self, exclude: Set[int]) -> List[MediaItem]:
        items: List[MediaItem] = []
        page, total_pages = 1, 1
        while page <= total_pages:
            batch, total_pages = list_media_page(
                self.base_url, page, per_page=self.per_page,
                user=self.user, password=self.password, timeout=self.timeout,
            )
            log.debug("media page", extra={"page": page, "total_pages": total_pages, "count": len(batch)})
            for media in batch:
                try:
                    media_id = int(media["id"])
                except (KeyError, TypeError, ValueError):
                    continue
                if media_id in exclude:
                    continue
                url = resolve_source_url(media, self.image_size)
                if not url:
                    log.warning("attachment has no source URL; skip", extra={"item_id": media_id})
                    continue
                items.append(MediaItem(item_id=media_id, source_url=url))
            page += 1
        return items

    def update_metadata(self, item_id: int, fields: Mapping[str, str]) -> None:
        payload = {k: v for k, v in fields.items() if k in ("title", "description", "caption") and v}
        if payload:
            update_media(self.base_url, item_id, payload, user=self.user,
                         password=self.password, timeout=self.timeout)

    def update_alt_text(self, item_id: int, text: str) -> None:
        update_media(self.base_url, item_id, {"alt_text": text}, user=self.user,
                     password=self.password, timeout=self.timeout)
