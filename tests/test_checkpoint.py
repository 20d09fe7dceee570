from __future__ import annotations

from describe_media.checkpoint import CheckpointStore
from describe_media.types import AnnotationKind, ResultRow

HEADER_LINE = "ID,alt,description,caption,title,URL\n"


def _row(item_id, alt="", description="", caption="", title="", url="http://site.test/a.jpg"):
    return ResultRow(
        item_id=item_id,
        fields={
            AnnotationKind.ALT: alt,
            AnnotationKind.DESCRIPTION: description,
            AnnotationKind.CAPTION: caption,
            AnnotationKind.TITLE: title,
        },
        source_url=url,
    )


class TestInitialize:
    def test_creates_header_only_file(self, tmp_path):
        path = tmp_path / "uploads" / "image-descriptions.csv"
        store = CheckpointStore(path)
        store.initialize()

        assert path.read_text(encoding="utf-8") == HEADER_LINE
        assert store.scan_processed() == set()

    def test_is_idempotent(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        store.append(_row(1, alt="cat"))
        store.initialize()

        text = store.path.read_text(encoding="utf-8")
        assert text.count("ID,alt") == 1
        assert store.scan_processed() == {1}

    def test_trims_incomplete_tail(self, tmp_path):
        path = tmp_path / "c.csv"
        path.write_text(HEADER_LINE + "1,cat,,,,http://x/1.jpg\n" + '2,"A red bi', encoding="utf-8")
        store = CheckpointStore(path)
        store.initialize()

        assert path.read_text(encoding="utf-8") == HEADER_LINE + "1,cat,,,,http://x/1.jpg\n"
        store.append(_row(3, title="Sunset"))
        assert store.scan_processed() == {1, 3}


class TestAppendAndScan:
    def test_row_written_in_csv_format(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        store.append(_row(101, alt="A red bicycle", url="http://site.test/101.jpg"))
        store.append(_row(102, alt='Say "hi", world', title="Sunset", url="http://site.test/102.jpg"))

        lines = store.path.read_text(encoding="utf-8").splitlines()
        assert lines[1] == "101,A red bicycle,,,,http://site.test/101.jpg"
        assert lines[2] == '102,"Say ""hi"", world",,,Sunset,http://site.test/102.jpg'

    def test_multiline_values_round_trip(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        store.append(_row(5, caption="line one\nline two"))

        rows = list(store.stream())
        assert rows[0].get(AnnotationKind.CAPTION) == "line one\nline two"
        assert store.scan_processed() == {5}

    def test_all_empty_rows_not_processed(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        store.append(_row(7))
        store.append(_row(8, description="kw"))

        assert store.scan_processed() == {8}

    def test_malformed_rows_are_ignored(self, tmp_path):
        path = tmp_path / "c.csv"
        path.write_text(
            HEADER_LINE
            + "abc,alt text,,,,http://x/a.jpg\n"
            + "\n"
            + "9,too,few\n"
            + "10,ok,,,,http://x/10.jpg\n",
            encoding="utf-8",
        )
        store = CheckpointStore(path)

        assert store.scan_processed() == {10}
        assert [r.item_id for r in store.stream()] == [10]

    def test_truncated_trailing_row_never_counts(self, tmp_path):
        path = tmp_path / "c.csv"
        # Crash after a complete-looking six-field prefix but before the newline.
        path.write_text(HEADER_LINE + "1,cat,,,,http://x/1.jpg\n2,dog,,,,http://x/2.j", encoding="utf-8")
        store = CheckpointStore(path)

        assert store.scan_processed() == {1}

    def test_truncated_inside_quoted_newline_never_counts(self, tmp_path):
        path = tmp_path / "c.csv"
        path.write_text(HEADER_LINE + '4,"first line\n', encoding="utf-8")
        store = CheckpointStore(path)

        assert store.scan_processed() == set()
        assert list(store.stream()) == []

    def test_truncated_multibyte_character(self, tmp_path):
        path = tmp_path / "c.csv"
        complete = (HEADER_LINE + "1,café,,,,http://x/1.jpg\n").encode("utf-8")
        path.write_bytes(complete + "2,café".encode("utf-8")[:-1])
        store = CheckpointStore(path)
        store.initialize()

        assert path.read_bytes() == complete
        assert store.scan_processed() == {1}

    def test_stray_quote_in_hand_edited_row(self, tmp_path):
        path = tmp_path / "c.csv"
        original = (
            HEADER_LINE
            + "1,cat,,,,http://x/1.jpg\n"
            + '2,a 6" tall vase,,,,http://x/2.jpg\n'
            + "3,dog,,,,http://x/3.jpg\n"
            + "4,bird,,,,http://x/4.jpg\n"
        )
        path.write_text(original, encoding="utf-8")
        store = CheckpointStore(path)

        assert store.scan_processed() == {1, 2, 3, 4}
        rows = list(store.stream())
        assert [r.item_id for r in rows] == [1, 2, 3, 4]
        assert rows[1].get(AnnotationKind.ALT) == 'a 6" tall vase'

        store.initialize()
        assert path.read_text(encoding="utf-8") == original

    def test_initialize_keeps_lines_after_an_unclosed_quote(self, tmp_path):
        path = tmp_path / "c.csv"
        original = HEADER_LINE + '1,"broken,,,,http://x/1.jpg\n2,dog,,,,http://x/2.jpg\n'
        path.write_text(original, encoding="utf-8")
        store = CheckpointStore(path)

        store.initialize()

        assert path.read_text(encoding="utf-8") == original

    def test_missing_file_scans_empty(self, tmp_path):
        assert CheckpointStore(tmp_path / "absent.csv").scan_processed() == set()


class TestStream:
    def test_stream_is_restartable(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        with store.open_writer():
            store.append(_row(1, alt="a"))
            store.append(_row(2, title="b"))

        first = [r.item_id for r in store.stream()]
        second = [r.item_id for r in store.stream()]
        assert first == second == [1, 2]

    def test_summary_counts(self, tmp_path):
        store = CheckpointStore(tmp_path / "c.csv")
        store.initialize()
        store.append(_row(1, alt="a", title="t"))
        store.append(_row(2))

        counts = store.summary()
        assert counts["rows"] == 2
        assert counts["processed"] == 1
        assert counts["alt"] == 1
        assert counts["title"] == 1
        assert counts["caption"] == 0
