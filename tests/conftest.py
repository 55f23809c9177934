"""Shared fixtures: a small builder for hand-made walker syntax trees."""
import pytest

from symbolranges.analyzer.model import (
    Declaration,
    DeclarationKind,
    MappingResolver,
    Node,
    NodeKind,
    SourceRange,
    Target,
)
from symbolranges.emitter.facts import FactEmitter

_DECLARATION_KINDS = {
    NodeKind.LOCAL_VARIABLE: DeclarationKind.LOCAL_VARIABLE,
    NodeKind.CATCH_PARAMETER: DeclarationKind.CATCH_PARAMETER,
    NodeKind.FOREACH_VARIABLE: DeclarationKind.FOREACH_VARIABLE,
    NodeKind.OTHER_DECLARATION: DeclarationKind.LAMBDA_PARAMETER,
}


class SyntaxBuilder:
    """Builds model nodes with increasing, non-overlapping ranges."""

    def __init__(self):
        self.position = 0
        self.resolver = MappingResolver()

    def _range(self, width: int) -> SourceRange:
        start = self.position
        self.position += width + 1
        return SourceRange(start, start + width, line=start // 40 + 1, column=start % 40)

    def comment(self, text: str) -> Node:
        return Node(NodeKind.LINE_COMMENT, self._range(len(text)), text=text, syntax='line_comment')

    def block(self, *children: Node) -> Node:
        return Node(NodeKind.OTHER, self._range(2), children=list(children), syntax='block')

    def declare(self, name: str, type_name: str = 'int', kind: NodeKind = NodeKind.LOCAL_VARIABLE,
                children=()) -> Node:
        type_node = Node(NodeKind.OTHER, self._range(len(type_name)), text=type_name, syntax='type')
        name_range = self._range(len(name))
        declaration = Declaration(name, _DECLARATION_KINDS[kind], name_range, type_name, type_node)
        return Node(kind, name_range, text=name, children=[type_node, *children],
                    declaration=declaration, syntax=kind.value)

    def parameter(self, name: str, type_name: str = 'int') -> Declaration:
        return Declaration(name, DeclarationKind.METHOD_PARAMETER, self._range(len(name)), type_name)

    def ref(self, name: str, target) -> Node:
        source_range = self._range(len(name))
        node = Node(NodeKind.REFERENCE, source_range, text=name, name_range=source_range, syntax='identifier')
        self.resolver.bind(node, target)
        return node

    def use(self, declaration: Declaration) -> Node:
        """Reference to a variable-like declaration."""
        return self.ref(declaration.name, Target.variable(declaration))

    def unresolved(self, name: str) -> Node:
        """Reference the resolver knows nothing about."""
        source_range = self._range(len(name))
        return Node(NodeKind.REFERENCE, source_range, text=name, name_range=source_range, syntax='identifier')


@pytest.fixture
def syntax():
    return SyntaxBuilder()


@pytest.fixture
def emitter():
    return FactEmitter()


@pytest.fixture
def deeply_nested_source():
    """A unit whose one initializer is a 3000-term string concatenation."""
    terms = " + ".join(f'"s{i}"' for i in range(3000))
    return f"class Deep {{\n    String f() {{\n        String s = {terms};\n        return s;\n    }}\n}}\n"
