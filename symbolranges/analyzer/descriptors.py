"""JVM-style type and method descriptors built from source type names."""
from typing import Dict, Iterable, Mapping, Union

PRIMITIVE_DESCRIPTORS = {
    'boolean': 'Z',
    'byte': 'B',
    'char': 'C',
    'short': 'S',
    'int': 'I',
    'long': 'J',
    'float': 'F',
    'double': 'D',
    'void': 'V',
}

OBJECT = 'java.lang.Object'


def erase(type_text: str) -> str:
    """Drop generic arguments and whitespace from a source type.

    ``Map<String, List<Integer>>[]`` becomes ``Map[]``; varargs ``T...``
    becomes ``T[]``.
    """
    out = []
    depth = 0
    for ch in type_text:
        if ch == '<':
            depth += 1
        elif ch == '>':
            depth -= 1
        elif depth == 0 and not ch.isspace():
            out.append(ch)
    erased = ''.join(out)
    if erased.endswith('...'):
        erased = erased[:-3] + '[]'
    return erased


def split_dimensions(type_name: str) -> tuple[str, int]:
    """``int[][]`` -> (``int``, 2)."""
    dims = 0
    while type_name.endswith('[]'):
        type_name = type_name[:-2]
        dims += 1
    return type_name, dims


def _erasures(type_variables) -> Dict[str, str]:
    if isinstance(type_variables, Mapping):
        return dict(type_variables)
    return {name: OBJECT for name in type_variables}


def type_descriptor(type_name: str, type_variables: Union[Mapping[str, str], Iterable[str]] = ()) -> str:
    """Descriptor for one erased, qualified type name.

    Args:
        type_name: e.g. ``int``, ``java.lang.String[]``, ``pkg.Outer$Inner``
        type_variables: Type variables in scope, mapped to their erasure.
            A plain iterable of names erases each of them to Object.
    """
    erasures = _erasures(type_variables)
    base, dims = split_dimensions(type_name)
    if base in PRIMITIVE_DESCRIPTORS:
        code = PRIMITIVE_DESCRIPTORS[base]
    else:
        base = erasures.get(base, base)
        code = 'L' + base.replace('.', '/') + ';'
    return '[' * dims + code


def method_descriptor(parameter_types: Iterable[str], return_type: str = 'void',
                      type_variables: Union[Mapping[str, str], Iterable[str]] = ()) -> str:
    """``(ILjava/lang/String;)V`` style descriptor."""
    erasures = _erasures(type_variables)
    params = ''.join(type_descriptor(t, erasures) for t in parameter_types)
    return f"({params}){type_descriptor(return_type, erasures)}"
