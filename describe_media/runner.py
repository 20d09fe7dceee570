from __future__ import annotations

import time
from typing import Callable, Optional, Set

from describe_media.checkpoint import CheckpointStore
from describe_media.config import DescribeConfig
from describe_media.errors import ImageFetchError, ModelUnavailableError
from describe_media.logging_utils import get_logger
from describe_media.progress import ProgressTracker
from describe_media.types import MediaCatalog, MediaItem, ModelClient, ResultRow, RunnerState, RunSummary

log = get_logger(__name__)

COMMIT_HINT = "python3 describe_images.py --write_to_db"


class PipelineRunner:
    """Generation phase: describe every unprocessed image and append rows to the checkpoint.

    State moves IDLE -> SCANNING -> GENERATING -> DRAINED. A ModelUnavailableError
    stops the run where it is; rows already appended stay, the item in progress
    gets no row, and the next run resumes from the checkpoint.
    """

    def __init__(
        self,
        config: DescribeConfig,
        catalog: MediaCatalog,
        client: ModelClient,
        store: Optional[CheckpointStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.catalog = catalog
        self.client = client
        self.store = store or CheckpointStore(config.checkpoint_path)
        self.clock = clock
        self.state = RunnerState.IDLE
        self.progress = ProgressTracker(clock)

    def scan(self) -> Set[int]:
        self.state = RunnerState.SCANNING
        self.store.initialize()
        return self.store.scan_processed()

    def run(self) -> RunSummary:
        processed = self.scan()
        summary = RunSummary(checkpoint_path=self.store.path, already_processed=len(processed))

        log.info(f"Descriptions will be written to CSV: {self.store.path}")
        log.info(f"After reviewing the file, save it to the database with: {COMMIT_HINT}")

        items = [it for it in self.catalog.list_image_items(exclude=set(processed))
                 if it.item_id not in processed]
        if self.config.limit > 0:
            items = items[: self.config.limit]
        summary.found = len(items)
        log.info(f"{summary.found:,} image attachments found. {summary.already_processed:,} already processed.")

        kinds = self.config.enabled_kinds()
        if not kinds:
            log.warning("every annotation kind is disabled; nothing to generate")

        self.state = RunnerState.GENERATING
        seen: Set[int] = set()
        with self.store.open_writer():
            for index, item in enumerate(items):
                if item.item_id in seen:
                    log.debug("duplicate item from catalog; skip", extra={"item_id": item.item_id})
                    continue
                seen.add(item.item_id)
                self._process_item(item, index, len(items), summary)

        self.state = RunnerState.DRAINED
        log.info(f"All descriptions saved to CSV: {self.store.path}")
        log.info(f"Review the file, then save it to the database with: {COMMIT_HINT}")
        log.info("generation done", extra={
            "written": summary.written, "dropped": summary.dropped, "fetch_failed": summary.fetch_failed,
        })
        return summary

    def _process_item(self, item: MediaItem, index: int, total: int, summary: RunSummary) -> None:
        log.info(f"attachment {item.item_id} ({index + 1:,} of {total:,}): {item.source_url}")
        start = self.clock()
        row = ResultRow(item_id=item.item_id, source_url=item.source_url)
        try:
            for kind in self.config.enabled_kinds():
                response = self.client.describe(item.source_url, self.config.prompt_for(kind).text)
                row.fields[kind] = response
                log.info(f"    {kind.value}: {response}")
        except ImageFetchError as e:
            summary.fetch_failed += 1
            log.warning("image download failed; will retry next run",
                        extra={"item_id": item.item_id, "error": str(e)})
            return
        except ModelUnavailableError:
            log.error("model endpoint failed; stopping run", extra={"item_id": item.item_id})
            raise

        took = self.clock() - start
        self.progress.record(took)

        if not row.has_content():
            summary.dropped += 1
            log.info("no annotation produced; not saved", extra={"item_id": item.item_id})
            return

        self.store.append(row)
        summary.written += 1
        remaining = self.progress.estimate_remaining(total - (index + 1))
        log.info(
            f"    attachment {item.item_id} took {took:,.0f} seconds. "
            f"About {remaining / 60:,.0f} minutes remaining."
        )


def generate_descriptions(
    config: DescribeConfig,
    catalog: MediaCatalog,
    client: ModelClient,
    store: Optional[CheckpointStore] = None,
) -> RunSummary:
    """Run one generation pass; see PipelineRunner."""
    return PipelineRunner(config, catalog, client, store=store).run()
