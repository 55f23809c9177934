"""Tests for the per-walk scope index table."""
import pytest

from symbolranges.analyzer.model import Declaration, DeclarationKind, SourceRange
from symbolranges.analyzer.region import RegionTracker
from symbolranges.analyzer.scope import DEFAULT_ADDED_INDEX_OFFSET, ScopeIndexTable


def make_declaration(name: str, start: int = 0) -> Declaration:
    return Declaration(name, DeclarationKind.LOCAL_VARIABLE, SourceRange(start, start + len(name)), 'int')


@pytest.fixture
def region():
    return RegionTracker()


@pytest.fixture
def table(region):
    return ScopeIndexTable(region)


def test_default_offset_is_100():
    """The added-code offset defaults to 100."""
    assert DEFAULT_ADDED_INDEX_OFFSET == 100


def test_original_indices_are_contiguous_from_zero(table):
    """Original-code indices count up from 0."""
    indices = [table.assign(make_declaration(f"v{i}", i * 10)) for i in range(5)]
    assert indices == [0, 1, 2, 3, 4]


def test_added_indices_are_contiguous_from_offset(table, region):
    """Added-code indices count up from the offset."""
    region.within_added_code = True
    indices = [table.assign(make_declaration(f"v{i}", i * 10)) for i in range(3)]
    assert indices == [100, 101, 102]


def test_counters_are_independent(table, region):
    """The two counters do not affect each other."""
    a = table.assign(make_declaration("a"))
    region.within_added_code = True
    b = table.assign(make_declaration("b"))
    region.within_added_code = False
    c = table.assign(make_declaration("c"))
    region.within_added_code = True
    d = table.assign(make_declaration("d"))

    assert (a, b, c, d) == (0, 100, 1, 101)


def test_assign_then_lookup_round_trip(table):
    """lookup returns the index assign gave."""
    declaration = make_declaration("x")
    index = table.assign(declaration)
    assert table.lookup(declaration) == index
    assert declaration in table
    assert len(table) == 1


def test_lookup_of_unknown_declaration_is_none(table):
    """lookup of an unassigned declaration is None."""
    table.assign(make_declaration("x"))
    assert table.lookup(make_declaration("x")) is None


def test_same_name_different_declarations_get_distinct_indices(table):
    """Shadowing declarations get their own indices."""
    first = make_declaration("i", 0)
    second = make_declaration("i", 50)
    assert table.assign(first) == 0
    assert table.assign(second) == 1
    assert table.lookup(first) == 0
    assert table.lookup(second) == 1


def test_custom_offset(region):
    """A custom offset is honored."""
    table = ScopeIndexTable(region, added_offset=1000)
    region.within_added_code = True
    assert table.assign(make_declaration("x")) == 1000


def test_overflow_detected_when_original_reaches_offset(region):
    """Overflow is flagged once original indices reach the offset."""
    table = ScopeIndexTable(region, added_offset=2)
    table.assign(make_declaration("a"))
    table.assign(make_declaration("b"))
    assert not table.original_overflowed

    table.assign(make_declaration("c"))
    assert table.original_overflowed


def test_repr_lists_names_and_indices(table):
    """repr shows each name with its index."""
    table.assign(make_declaration("a"))
    table.assign(make_declaration("b"))
    assert repr(table) == "{a=0, b=1}"
