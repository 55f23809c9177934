"""Tests for marker-comment region tracking."""
import pytest

from symbolranges.analyzer.region import RegionTracker


@pytest.fixture
def region():
    return RegionTracker()


def test_starts_outside_added_code(region):
    """A fresh region is outside added code."""
    assert region.within_added_code is False


def test_start_and_end_markers_toggle(region):
    """Start and end markers switch the flag."""
    region.observe("// Bukkit start")
    assert region.within_added_code is True

    region.observe("// Bukkit end")
    assert region.within_added_code is False


def test_command_is_case_insensitive(region):
    """Marker commands match in any case."""
    region.observe("// Paper START")
    assert region.within_added_code

    region.observe("// Paper End")
    assert not region.within_added_code


def test_project_name_is_not_interpreted(region):
    """Any project name is accepted before the command."""
    region.observe("// anything-at-all start")
    assert region.within_added_code


def test_trailing_words_are_allowed(region):
    """Words after the command are ignored."""
    region.observe("// CraftBukkit start - fire event")
    assert region.within_added_code


@pytest.mark.parametrize("text", [
    "//",
    "// start",
    "// Bukkit",
    "// Bukkit starts here",
    "// Bukkit - start",
    "// regular comment about the loop",
])
def test_malformed_or_ordinary_comments_are_ignored(region, text):
    """Comments that are not markers leave the flag alone."""
    region.observe(text)
    assert region.within_added_code is False


def test_ordinary_comment_does_not_close_region(region):
    """An ordinary comment inside a region keeps it open."""
    region.observe("// Bukkit start")
    region.observe("// compute the total")
    assert region.within_added_code is True


def test_flag_is_boolean_not_nesting_counter(region):
    """Starts do not nest: the first end closes the region."""
    region.observe("// A start")
    region.observe("// B start")
    region.observe("// B end")
    assert region.within_added_code is False


def test_end_without_start_is_harmless(region):
    """An end marker outside a region does nothing."""
    region.observe("// Bukkit end")
    assert region.within_added_code is False


def test_reset(region):
    """reset leaves added code."""
    region.observe("// Bukkit start")
    region.reset()
    assert region.within_added_code is False
