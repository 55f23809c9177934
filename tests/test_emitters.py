"""Tests for the JSON Lines and SQLite fact sinks."""
import pytest

from symbolranges.analyzer.model import SourceRange
from symbolranges.emitter.facts import DECLARED_CLASS, DECLARED_FIELD, FactEmitter, WARNING
from symbolranges.emitter.jsonl import JsonlFactWriter, read_jsonl
from symbolranges.emitter.store import SqliteFactStore


def emit_sample(sink):
    sink.begin_unit("src/A.java")
    sink.emit_declared_class(SourceRange(6, 7, 1, 6), "A", "demo.A", "class")
    sink.emit_declared_field(SourceRange(20, 25, 2, 8), "demo.A", "count", "int")
    sink.log("WARNING: something odd", WARNING)
    sink.begin_unit("src/B.java")
    sink.emit_declared_class(SourceRange(6, 7, 1, 6), "B", "demo.B", "interface")


class TestFactEmitter:

    def test_counts_survive_without_memory(self):
        """Counts are kept even when records are not."""
        emitter = FactEmitter(keep_in_memory=False)
        emit_sample(emitter)

        assert emitter.facts == []
        assert emitter.diagnostics == []
        counts = emitter.counts()
        assert counts[DECLARED_CLASS] == 2
        assert counts["diagnostic:warning"] == 1

    def test_type_range_without_node_is_skipped(self):
        """A type range with no node emits nothing."""
        emitter = FactEmitter()
        emitter.emit_type_range(None)
        assert emitter.facts == []


class TestJsonl:

    def test_records_in_emission_order(self, tmp_path):
        """Records are written in the order they were emitted."""
        output = tmp_path / "out" / "facts.jsonl"
        with JsonlFactWriter(output) as writer:
            emit_sample(writer)

        records = list(read_jsonl(output))
        assert [r["record"] for r in records] == ["fact", "fact", "diagnostic", "fact"]
        assert records[0]["kind"] == DECLARED_CLASS
        assert records[0]["attributes"]["qualified_name"] == "demo.A"
        assert records[1]["source_path"] == "src/A.java"
        assert records[2]["severity"] == WARNING
        assert records[3]["source_path"] == "src/B.java"

    def test_append_mode(self, tmp_path):
        """append=True keeps earlier records."""
        output = tmp_path / "facts.jsonl"
        with JsonlFactWriter(output) as writer:
            emit_sample(writer)
        with JsonlFactWriter(output, append=True) as writer:
            emit_sample(writer)

        assert len(list(read_jsonl(output))) == 8

    def test_default_mode_truncates(self, tmp_path):
        """Without append=True an earlier run's records are replaced."""
        output = tmp_path / "facts.jsonl"
        with JsonlFactWriter(output) as writer:
            emit_sample(writer)
        with JsonlFactWriter(output) as writer:
            emit_sample(writer)

        assert len(list(read_jsonl(output))) == 4

    def test_reader_skips_blank_and_malformed_lines(self, tmp_path):
        """read_jsonl skips lines that are not JSON."""
        output = tmp_path / "facts.jsonl"
        output.write_text('{"record": "fact"}\n\nnot json\n{"record": "diagnostic"}\n', encoding="utf-8")

        assert [r["record"] for r in read_jsonl(output)] == ["fact", "diagnostic"]


class TestSqlite:

    @pytest.fixture
    def store(self, tmp_path):
        store = SqliteFactStore(tmp_path / "facts.db")
        yield store
        store.close()

    def test_query_by_path_and_kind(self, store):
        """Facts can be filtered by source path and kind."""
        emit_sample(store)

        a_facts = store.query_facts(source_path="src/A.java")
        assert [f.kind for f in a_facts] == [DECLARED_CLASS, DECLARED_FIELD]
        assert a_facts[1].attributes == {"class_name": "demo.A", "type_name": "int"}
        assert (a_facts[1].start, a_facts[1].end, a_facts[1].line) == (20, 25, 2)

        classes = store.query_facts(kind=DECLARED_CLASS)
        assert [f.text for f in classes] == ["A", "B"]

    def test_stats(self, store):
        """stats counts facts per kind, files and diagnostics."""
        emit_sample(store)

        stats = store.stats()
        assert stats[DECLARED_CLASS] == 2
        assert stats["files"] == 2
        assert stats["total_facts"] == 3
        assert stats["warnings"] == 1
        assert stats["failures"] == 0

    def test_clear(self, store):
        """clear empties the store."""
        emit_sample(store)
        store.clear()
        assert store.stats()["total_facts"] == 0

    def test_persists_across_connections(self, tmp_path):
        """Facts survive closing and reopening the database."""
        db_path = tmp_path / "facts.db"
        with SqliteFactStore(db_path) as store:
            emit_sample(store)

        reopened = SqliteFactStore(db_path)
        try:
            assert len(reopened.query_facts()) == 3
        finally:
            reopened.close()
