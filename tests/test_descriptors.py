"""Tests for JVM descriptor construction."""
import pytest

from symbolranges.analyzer.descriptors import erase, method_descriptor, split_dimensions, type_descriptor


@pytest.mark.parametrize("source,erased", [
    ("int", "int"),
    ("List<String>", "List"),
    ("Map<String, List<Integer>>[]", "Map[]"),
    ("java.util.Map.Entry<K, V>", "java.util.Map.Entry"),
    ("String...", "String[]"),
    ("int [ ]", "int[]"),
])
def test_erase(source, erased):
    """Generic arguments and annotations are erased."""
    assert erase(source) == erased


def test_split_dimensions():
    """Array dimensions are split off the base type."""
    assert split_dimensions("int[][]") == ("int", 2)
    assert split_dimensions("java.lang.String") == ("java.lang.String", 0)


@pytest.mark.parametrize("type_name,descriptor", [
    ("int", "I"),
    ("boolean", "Z"),
    ("long[]", "[J"),
    ("void", "V"),
    ("java.lang.String", "Ljava/lang/String;"),
    ("java.lang.String[][]", "[[Ljava/lang/String;"),
    ("demo.Outer$Inner", "Ldemo/Outer$Inner;"),
])
def test_type_descriptor(type_name, descriptor):
    """Type names map to JVM field descriptors."""
    assert type_descriptor(type_name) == descriptor


def test_type_variables_erase_to_object():
    """Unbounded type variables erase to Object."""
    assert type_descriptor("T", ["T"]) == "Ljava/lang/Object;"
    assert type_descriptor("T[]", ["T"]) == "[Ljava/lang/Object;"


def test_type_variables_erase_through_mapping():
    """A name -> erasure mapping replaces each variable with its bound."""
    erasures = {"N": "java.lang.Number", "T": "java.lang.Object"}

    assert type_descriptor("N[]", erasures) == "[Ljava/lang/Number;"
    assert method_descriptor(["N", "T"], "N", erasures) == \
        "(Ljava/lang/Number;Ljava/lang/Object;)Ljava/lang/Number;"
    assert type_descriptor("java.lang.String", erasures) == "Ljava/lang/String;"


def test_method_descriptor():
    """Method descriptors list parameters, then the return type."""
    assert method_descriptor([]) == "()V"
    assert method_descriptor(["int", "java.lang.String[]"], "boolean") == "(I[Ljava/lang/String;)Z"
    assert method_descriptor(["T"], "T", ["T"]) == "(Ljava/lang/Object;)Ljava/lang/Object;"
