from __future__ import annotations

from typing import Dict

from describe_media.checkpoint import CheckpointStore
from describe_media.errors import StoreWriteError
from describe_media.logging_utils import get_logger
from describe_media.types import METADATA_KINDS, AnnotationKind, CommitSummary, RecordStore

log = get_logger(__name__)


def commit(store: CheckpointStore, record_store: RecordStore) -> CommitSummary:
    """Apply every non-empty checkpoint field to the store of record.

    Metadata (title/description/caption) and alt text are written by separate
    calls. A failed write is logged and counted, and the next write proceeds;
    running this again re-applies the same values.
    """
    summary = CommitSummary()
    if not store.path.exists():
        log.warning("checkpoint not found; nothing to commit", extra={"path": str(store.path)})
        return summary
    for row in store.stream():
        summary.rows += 1
        metadata: Dict[str, str] = {k.value: row.get(k) for k in METADATA_KINDS if row.get(k)}
        if metadata:
            log.info(f"Updating database for attachment {row.item_id}: {row.source_url}")
            try:
                record_store.update_metadata(row.item_id, metadata)
                summary.metadata_updates += 1
                for key, value in metadata.items():
                    log.info(f"    {key.capitalize()}: {value}")
            except StoreWriteError as e:
                summary.failures += 1
                log.error("metadata update failed", extra={"item_id": row.item_id, "error": str(e)})

        alt = row.get(AnnotationKind.ALT)
        if alt:
            try:
                record_store.update_alt_text(row.item_id, alt)
                summary.alt_updates += 1
                log.info(f"    Alt: {alt}")
            except StoreWriteError as e:
                summary.failures += 1
                log.error("alt text update failed", extra={"item_id": row.item_id, "error": str(e)})

    log.info("commit done", extra={
        "rows": summary.rows, "metadata_updates": summary.metadata_updates,
        "alt_updates": summary.alt_updates, "failures": summary.failures,
    })
    return summary
