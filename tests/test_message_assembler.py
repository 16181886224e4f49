"""
Tests for MessageAssembler / MboxExtractor orchestration in
mbox_extract.extractors.mbox_extractor.

Covers:
- keep/drop decisions and their reasons
- run counters
- order preservation with a worker pool
- trace hook and per-block error isolation
- file-level entry point
"""
from datetime import datetime, timezone

import pytest

from mbox_extract.config import Settings
from mbox_extract.extractors.mbox.header_parser import HeaderParser
from mbox_extract.extractors.mbox.splitter import MessageSplitter
from mbox_extract.extractors.mbox_extractor import MboxExtractor, MessageAssembler, strip_delimiter
from mbox_extract.ir import DropReason, IdentityConfig, MessageBlock, RunStats


def _block(text, index=0):
    return MessageBlock(index=index, text=text)


class TestStripDelimiter:
    """Tests for strip_delimiter."""

    def test_strips_leading_from_line(self):
        """The mbox 'From ' line is removed."""
        assert strip_delimiter("From a@x Thu\nFrom: a@x\n") == "From: a@x\n"

    def test_leaves_other_text(self):
        """Blocks without a delimiter line are untouched."""
        assert strip_delimiter("From: a@x\n") == "From: a@x\n"

    def test_delimiter_only(self):
        """A lone delimiter line leaves nothing."""
        assert strip_delimiter("From a@x Thu") == ""


class TestAssemble:
    """Tests for MessageAssembler.assemble on single blocks."""

    def test_record_fields(self, sample_archive, identity):
        """The first sample message is kept with decoded fields."""
        assembler = MessageAssembler(identity)
        block = next(iter(MessageSplitter(sample_archive)))
        result = assembler.assemble(block)

        assert result.kept
        record = result.record
        assert record.index == 0
        assert record.subject == "Hello world"
        assert record.sender == "Alice Smith <alice@example.com>"
        assert record.to == "Bob <bob@example.com>"
        assert record.date == "Mon, 12 Jan 2023 15:30:45 +0000 (UTC)"
        assert record.parsed_date == datetime(2023, 1, 12, 15, 30, 45, tzinfo=timezone.utc)
        assert record.message_id == "<1@example.com>"
        assert record.body == "Café au lait please"
        assert list(record.headers) == ["From", "To", "Subject", "Date", "Message-ID"]
        assert record.header("message-id") == "<1@example.com>"
        assert record.to_dict()["from"] == "Alice Smith <alice@example.com>"

    def test_record_headers_are_read_only(self, make_message):
        """The header mapping of a finished record cannot be changed."""
        record = MessageAssembler(IdentityConfig()).assemble(_block(make_message())).record
        with pytest.raises(TypeError):
            record.headers["X-Added"] = "y"
        assert "X-Added" not in record.headers
        assert isinstance(record.to_dict()["headers"], dict)

    def test_placeholders_for_optional_fields(self):
        """Missing subject and message id fall back to placeholders."""
        text = "From x\nFrom: a@x.com\nTo: b@x.com\n\nhi\n"
        record = MessageAssembler(IdentityConfig()).assemble(_block(text)).record
        assert record.subject == "(No Subject)"
        assert record.message_id == ""
        assert record.date == ""
        assert record.parsed_date is None

    def test_header_boundary_failure(self):
        """No colon and no blank line: dropped as a header boundary failure."""
        result = MessageAssembler(IdentityConfig()).assemble(_block("From x\nplain words\nmore words\n"))
        assert result.record is None
        assert result.reason == DropReason.HEADER_BOUNDARY

    @pytest.mark.parametrize(
        "text",
        [
            "From x\nFrom: a@x.com\nSubject: s\n\nbody\n",
            "From x\nTo: b@x.com\nSubject: s\n\nbody\n",
            "From x\nFrom:\nTo: b@x.com\n\nbody\n",
        ],
    )
    def test_missing_required_field(self, text):
        """Missing or empty From/To drops the block."""
        result = MessageAssembler(IdentityConfig()).assemble(_block(text))
        assert result.reason == DropReason.MISSING_REQUIRED

    def test_self_email_dropped(self, make_message, identity):
        """Mail from me to me is dropped as a self-email."""
        text = make_message(sender="Jane Doe <jane@example.com>", to="jane@example.com")
        result = MessageAssembler(identity).assemble(_block(text))
        assert result.reason == DropReason.SELF_EMAIL

    def test_from_me_to_someone_else_kept(self, make_message, identity):
        """Mail I sent to someone else is kept."""
        text = make_message(sender="Jane Doe <jane@example.com>", to="Bob <bob@example.com>")
        assert MessageAssembler(identity).assemble(_block(text)).kept

    def test_folded_header_without_blank_line(self):
        """Fallback boundary with folding still yields a record and a body."""
        text = "From x\nFrom: a@x.com\nTo: b@x.com,\n\tc@x.com\nSubject: hi\nbody starts here\n"
        record = MessageAssembler(IdentityConfig()).assemble(_block(text)).record
        assert record.to == "b@x.com, c@x.com"
        assert record.body == "body starts here"

    def test_unexpected_error_is_contained(self, monkeypatch):
        """An exception inside a block becomes PARSE_ERROR instead of propagating."""
        def boom(content):
            raise RuntimeError("boom")

        monkeypatch.setattr(HeaderParser, "parse", boom)
        result = MessageAssembler(IdentityConfig()).assemble(_block("From x\nFrom: a\nTo: b\n\nc\n"))
        assert result.reason == DropReason.PARSE_ERROR


class TestRun:
    """Tests for MessageAssembler.run / iter_results."""

    def test_sample_archive_counters(self, sample_archive, identity):
        """Every block is counted under exactly one outcome."""
        assembler = MessageAssembler(identity)
        records = list(assembler.run(MessageSplitter(sample_archive)))

        assert [r.subject for r in records] == ["Hello world"]
        assert assembler.stats == RunStats(
            total=5, header_failures=1, missing_required=1, self_excluded=2, errors=0, emitted=1
        )
        assert assembler.stats.dropped_unparseable == 2

    def test_iter_results_reports_reasons_in_order(self, sample_archive, identity):
        """iter_results yields one result per block in split order."""
        results = list(MessageAssembler(identity).iter_results(MessageSplitter(sample_archive)))
        assert [r.block_index for r in results] == [0, 1, 2, 3, 4]
        assert [r.reason for r in results] == [
            None,
            DropReason.SELF_EMAIL,
            DropReason.SELF_EMAIL,
            DropReason.HEADER_BOUNDARY,
            DropReason.MISSING_REQUIRED,
        ]

    def test_parallel_run_preserves_order(self, make_message, identity):
        """A worker pool yields the same records, in the same order, as a sequential run."""
        archive = "".join(make_message(subject=f"msg {i}", body=f"body {i}") for i in range(120))
        sequential = MessageAssembler(identity)
        parallel = MessageAssembler(identity, workers=4)

        seq_records = list(sequential.run(MessageSplitter(archive)))
        par_records = list(parallel.run(MessageSplitter(archive)))

        assert [r.subject for r in par_records] == [f"msg {i}" for i in range(120)]
        assert par_records == seq_records
        assert parallel.stats == sequential.stats

    def test_error_does_not_abort_run(self, monkeypatch, make_message):
        """A failing block is counted and the remaining blocks still come through."""
        original = HeaderParser.parse

        def flaky(content):
            if "explode" in content:
                raise ValueError("bad block")
            return original(content)

        monkeypatch.setattr(HeaderParser, "parse", flaky)
        archive = make_message(subject="one") + make_message(subject="explode") + make_message(subject="three")
        assembler = MessageAssembler(IdentityConfig())
        records = list(assembler.run(MessageSplitter(archive)))

        assert [r.subject for r in records] == ["one", "three"]
        assert [r.index for r in records] == [0, 2]
        assert assembler.stats.errors == 1
        assert assembler.stats.total == 3

    def test_stats_reset_per_run(self, sample_archive, identity):
        """Each run starts its counters from zero."""
        assembler = MessageAssembler(identity)
        list(assembler.run(MessageSplitter(sample_archive)))
        list(assembler.run(MessageSplitter(sample_archive)))
        assert assembler.stats.total == 5

    def test_trace_hook_every_n_records(self, make_message):
        """The trace hook sees every N-th emitted record, deterministically."""
        archive = "".join(make_message(subject=f"s{i}") for i in range(5))
        seen = []
        assembler = MessageAssembler(IdentityConfig(), trace_every=2, trace_hook=seen.append)
        list(assembler.run(MessageSplitter(archive)))
        assert [r.subject for r in seen] == ["s1", "s3"]

    def test_trace_disabled_by_default(self, make_message):
        """With trace_every=0 the hook is never called."""
        seen = []
        assembler = MessageAssembler(IdentityConfig(), trace_hook=seen.append)
        list(assembler.run(MessageSplitter(make_message())))
        assert seen == []


class TestMboxExtractor:
    """Tests for the file-level MboxExtractor."""

    def test_parse_file(self, tmp_path, sample_archive, identity):
        """Reading from disk gives the same outcome as in-memory parsing."""
        path = tmp_path / "inbox.mbox"
        path.write_text(sample_archive, encoding="utf-8")
        extractor = MboxExtractor(identity=identity, settings=Settings())

        records, stats = extractor.parse_file(path)
        assert [r.subject for r in records] == ["Hello world"]
        assert stats.total == 5
        assert stats.emitted == 1

    def test_stats_accumulate_across_files(self, tmp_path, sample_archive, identity):
        """Extractor-level counters sum every parsed archive."""
        extractor = MboxExtractor(identity=identity, settings=Settings())
        extractor.parse_text(sample_archive)
        extractor.parse_text(sample_archive.encode("utf-8"))
        assert extractor.stats.total == 10
        assert extractor.stats.self_excluded == 4

    def test_identity_from_settings(self, sample_archive):
        """Without an explicit identity the settings' fragment lists are used."""
        settings = Settings(
            IGNORED_SENDERS="Mail Delivery Subsystem",
            MY_ADDRESSES="jane@example.com",
            MY_NAMES="Jane Doe",
        )
        extractor = MboxExtractor(settings=settings)
        _, stats = extractor.parse_text(sample_archive)
        assert stats.self_excluded == 2

    def test_parallel_settings(self, sample_archive, identity):
        """WORKERS > 1 runs through the pool with identical results."""
        extractor = MboxExtractor(identity=identity, settings=Settings(WORKERS=3))
        records, stats = extractor.parse_text(sample_archive)
        assert [r.index for r in records] == [0]
        assert stats.total == 5

    def test_missing_file_raises(self, tmp_path, identity):
        """An unreadable input is the one fatal error."""
        extractor = MboxExtractor(identity=identity, settings=Settings())
        with pytest.raises(FileNotFoundError):
            extractor.parse_file(tmp_path / "nope.mbox")

    def test_empty_archive(self, identity):
        """Empty input gives no records and zero counters."""
        records, stats = MboxExtractor(identity=identity, settings=Settings()).parse_text("")
        assert records == []
        assert stats == RunStats()
