"""Append-only CSV checkpoint of generated annotations.

The file is both the resume ledger for the generation phase and the staging
area read by the commit phase. Rows are only ever appended; a run that dies
mid-append leaves at most one unterminated last line, which readers ignore
and ``initialize()`` cuts off before new rows are appended. Rows that fail
to parse, including hand edits, are skipped and kept on disk.
"""

from __future__ import annotations

import csv
import io
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, TextIO, Tuple, Union

from describe_media.errors import CheckpointError
from describe_media.logging_utils import get_logger
from describe_media.types import KIND_ORDER, ResultRow

log = get_logger(__name__)

HEADER: List[str] = ["ID", *(kind.value for kind in KIND_ORDER), "URL"]
ENCODING = "utf-8"


def _write_record(values: List[str]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(values)
    return buf.getvalue()


_NEWLINES = ("\n", "\r")


class _TrackedLines:
    """Line iterator that remembers the last line handed to csv.reader."""

    def __init__(self, fh: TextIO):
        self._fh = fh
        self.last = ""

    def __iter__(self) -> "_TrackedLines":
        return self

    def __next__(self) -> str:
        self.last = next(self._fh)
        return self.last


def _iter_rows(fh: TextIO) -> Iterator[Tuple[List[str], bool]]:
    """Yield ``(values, complete)`` for each CSV record in ``fh``.

    Parsing is lenient like PHP's ``fgetcsv``: a stray quote inside an
    unquoted field is kept as text. A record is incomplete only when the file
    ends without a newline, which can only happen to the last record.
    """
    lines = _TrackedLines(fh)
    reader = csv.reader(lines, strict=False)
    while True:
        try:
            values = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            log.debug("skipping unparseable checkpoint line", extra={"error": str(e)})
            continue
        yield values, lines.last.endswith(_NEWLINES)


class CheckpointStore:
    """CSV ledger of Result Rows at ``path``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None

    def initialize(self) -> None:
        """Create the file with its header, or trim an incomplete tail. Idempotent."""
        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "w", encoding=ENCODING, newline="") as f:
                    f.write(_write_record(HEADER))
                log.info("checkpoint created", extra={"path": str(self.path)})
                return
            self._trim_incomplete_tail()
        except OSError as e:
            raise CheckpointError(f"Cannot initialize checkpoint {self.path}: {e}") from e

    def _trim_incomplete_tail(self) -> None:
        """Cut bytes after the last line break; complete lines are never touched."""
        data = self.path.read_bytes()
        if not data or data.endswith((b"\n", b"\r")):
            return
        keep = max(data.rfind(b"\n"), data.rfind(b"\r")) + 1
        log.warning(
            "checkpoint ends with an incomplete record; dropping it",
            extra={"path": str(self.path), "keep_bytes": keep},
        )
        with open(self.path, "r+b") as f:
            f.truncate(keep)

    def _records(self) -> Iterator[ResultRow]:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding=ENCODING, errors="surrogateescape", newline="") as f:
            for values, complete in _iter_rows(f):
                if not complete:
                    log.debug("ignoring incomplete trailing record", extra={"path": str(self.path)})
                    continue
                row = ResultRow.from_csv_row(values)
                if row is not None:
                    yield row

    def scan_processed(self) -> Set[int]:
        """Return ids whose rows carry at least one non-empty annotation."""
        return {row.item_id for row in self._records() if row.has_content()}

    def stream(self) -> Iterator[ResultRow]:
        """Lazily yield every parseable row, top to bottom. Can be called again to restart."""
        return self._records()

    @contextmanager
    def open_writer(self) -> Iterator["CheckpointStore"]:
        """Hold the append handle for the duration of a generation run."""
        try:
            self._fh = open(self.path, "a", encoding=ENCODING, newline="")
        except OSError as e:
            raise CheckpointError(f"Cannot open checkpoint {self.path} for append: {e}") from e
        try:
            yield self
        finally:
            self._fh.close()
            self._fh = None

    def append(self, row: ResultRow) -> None:
        """Append one row as a single write, flushed to disk before returning."""
        if self._fh is None:
            with self.open_writer():
                self.append(row)
            return
        try:
            self._fh.write(_write_record(row.to_csv_row()))
            self._fh.flush()
            os.fsync(self._fh.fileno())
        except OSError as e:
            raise CheckpointError(f"Cannot append to checkpoint {self.path}: {e}") from e

    def summary(self) -> Dict[str, int]:
        """Counts of rows, processed items and non-empty fields per kind."""
        counts: Dict[str, int] = {"rows": 0, "processed": 0, **{k.value: 0 for k in KIND_ORDER}}
        processed: Set[int] = set()
        for row in self._records():
            counts["rows"] += 1
            if row.has_content():
                processed.add(row.item_id)
            for kind in KIND_ORDER:
                if row.get(kind):
                    counts[kind.value] += 1
        counts["processed"] = len(processed)
        return counts
