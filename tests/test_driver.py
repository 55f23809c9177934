"""Tests for the per-unit driver: failure policies, file handling and discovery."""
import pytest

from symbolranges.analyzer.driver import UnitDriver, UnresolvedSymbolError, iter_java_files
from symbolranges.analyzer.parser import LanguageParser
from symbolranges.emitter.facts import DECLARED_LOCAL_VARIABLE, FAILURE, FactEmitter

BROKEN = """
class Broken {
    void bad() {
        int x = ghost;
    }

    void good() {
        int z = 1;
    }
}
"""

CLEAN = """
class Clean {
    int total;

    Clean(int start) {
        total = start;
    }

    int twice() {
        int doubled = total * 2;
        return doubled;
    }
}
"""


@pytest.fixture(scope="module")
def parser():
    return LanguageParser('java')


@pytest.fixture
def emitter():
    return FactEmitter()


def make_driver(emitter, parser, **kwargs):
    kwargs.setdefault('added_index_offset', 100)
    kwargs.setdefault('fail_policy', 'method')
    return UnitDriver(emitter, parser=parser, **kwargs)


def declared_locals(emitter):
    return [f.text for f in emitter.facts_of_kind(DECLARED_LOCAL_VARIABLE)]


class TestFailPolicy:

    def test_method_policy_continues_with_next_method(self, emitter, parser):
        """Under `method`, the next method is still walked."""
        report = make_driver(emitter, parser).process_source(BROKEN, 'Broken.java')

        assert not report.ok
        assert not report.aborted
        assert report.methods_walked == 2
        assert declared_locals(emitter) == ['x', 'z']

    def test_unit_policy_abandons_the_unit(self, emitter, parser):
        """Under `unit`, the first failure stops the unit."""
        report = make_driver(emitter, parser, fail_policy='unit').process_source(BROKEN, 'Broken.java')

        assert report.aborted
        assert report.methods_walked == 1
        assert declared_locals(emitter) == ['x']
        failures = [d.message for d in emitter.diagnostics if d.severity == FAILURE]
        assert any(m.startswith('FAILURE: abandoning Broken.java') for m in failures)

    def test_strict_unit_policy_raises(self, emitter, parser):
        """Strict `unit` mode raises with the failing identifier."""
        driver = make_driver(emitter, parser, fail_policy='unit', strict=True)

        with pytest.raises(UnresolvedSymbolError) as excinfo:
            driver.process_source(BROKEN, 'Broken.java')

        assert excinfo.value.failure.identifier == 'ghost'
        assert excinfo.value.source_path == 'Broken.java'

    def test_strict_is_ignored_under_method_policy(self, emitter, parser):
        """Strict has no effect under `method`."""
        report = make_driver(emitter, parser, strict=True).process_source(BROKEN, 'Broken.java')
        assert len(report.failures) == 1

    def test_invalid_settings_rejected(self, emitter, parser):
        """Unknown policies and non-positive offsets raise ValueError."""
        with pytest.raises(ValueError, match="fail policy"):
            make_driver(emitter, parser, fail_policy='file')
        with pytest.raises(ValueError, match="positive"):
            make_driver(emitter, parser, added_index_offset=0)


class TestProcessing:

    def test_clean_unit(self, emitter, parser):
        """A resolvable unit walks every body and reports ok."""
        report = make_driver(emitter, parser).process_source(CLEAN, 'Clean.java')

        assert report.ok
        assert report.types_seen == 1
        assert report.methods_walked == 2
        assert declared_locals(emitter) == ['doubled']
        assert all(f.source_path == 'Clean.java' for f in emitter.facts)

    def test_process_file(self, emitter, parser, tmp_path):
        """Facts carry the file path they came from."""
        source = tmp_path / "Clean.java"
        source.write_text(CLEAN)

        report = make_driver(emitter, parser).process_file(source)

        assert report.ok
        assert report.path == str(source)
        assert emitter.facts[0].source_path == str(source)

    def test_unreadable_file(self, emitter, parser, tmp_path):
        """A missing file yields a FAILURE diagnostic, not an exception."""
        report = make_driver(emitter, parser).process_file(tmp_path / "Missing.java")

        assert report.unreadable
        assert not report.ok
        assert emitter.diagnostics[0].severity == FAILURE
        assert "cannot read" in emitter.diagnostics[0].message

    def test_too_deeply_nested_unit_fails_cleanly(self, emitter, parser, deeply_nested_source):
        """A unit deeper than the interpreter stack gets a failed report."""
        driver = make_driver(emitter, parser)

        report = driver.process_source(deeply_nested_source, 'Deep.java')

        assert report.too_deep
        assert not report.ok
        assert emitter.facts == []
        assert emitter.diagnostics[0].severity == FAILURE
        assert "nested too deeply" in emitter.diagnostics[0].message

        # the driver stays usable afterwards
        assert driver.process_source(CLEAN, 'Clean.java').ok

    def test_offset_override(self, emitter, parser):
        """An explicit offset beats the configured one."""
        source = """
            class Tagged {
                void f() {
                    // Fork start
                    int added = 1;
                    // Fork end
                }
            }
        """
        make_driver(emitter, parser, added_index_offset=1000).process_source(source)
        assert emitter.facts_of_kind(DECLARED_LOCAL_VARIABLE)[0].attributes['index'] == 1000


class TestIterJavaFiles:

    def test_directory_walk_is_sorted_and_filtered(self, tmp_path):
        """Directories are searched in sorted order, minus excluded dirs."""
        (tmp_path / "src" / "b").mkdir(parents=True)
        (tmp_path / "src" / "a").mkdir(parents=True)
        (tmp_path / "target" / "gen").mkdir(parents=True)
        (tmp_path / "src" / "b" / "B.java").write_text("class B {}")
        (tmp_path / "src" / "a" / "A.java").write_text("class A {}")
        (tmp_path / "src" / "a" / "notes.txt").write_text("not java")
        (tmp_path / "target" / "gen" / "Gen.java").write_text("class Gen {}")

        files = list(iter_java_files([tmp_path], excluded_dirs={'target'}))

        assert [f.name for f in files] == ['A.java', 'B.java']

    def test_explicit_file(self, tmp_path):
        """An explicit .java file is yielded as is."""
        source = tmp_path / "One.java"
        source.write_text("class One {}")
        assert list(iter_java_files([source])) == [source]

    def test_missing_path(self, tmp_path):
        """A missing path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            list(iter_java_files([tmp_path / "nope"]))

    def test_non_java_file(self, tmp_path):
        """An explicit non-Java file is rejected."""
        other = tmp_path / "script.py"
        other.write_text("print('hi')")
        with pytest.raises(ValueError, match="Unsupported file type"):
            list(iter_java_files([other]))
