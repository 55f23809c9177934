"""Tagged syntax model consumed by the symbol reference walker.

The front-end converts its concrete syntax tree into these nodes and answers
resolution queries through the Resolver protocol. The walker only ever sees
this model, never the parser's own tree.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol


class NodeKind(Enum):
    """Closed set of node shapes the walker distinguishes."""
    LINE_COMMENT = 'line_comment'
    LOCAL_VARIABLE = 'local_variable'
    CATCH_PARAMETER = 'catch_parameter'
    FOREACH_VARIABLE = 'foreach_variable'
    OTHER_DECLARATION = 'other_declaration'
    REFERENCE = 'reference'
    NESTED_TYPE = 'nested_type'
    OTHER = 'other'


# Node kinds that receive a scope index when visited
INDEXED_DECLARATIONS = frozenset({
    NodeKind.LOCAL_VARIABLE,
    NodeKind.CATCH_PARAMETER,
    NodeKind.FOREACH_VARIABLE,
})


class DeclarationKind(Enum):
    LOCAL_VARIABLE = 'local_variable'
    CATCH_PARAMETER = 'catch_parameter'
    FOREACH_VARIABLE = 'foreach_variable'
    METHOD_PARAMETER = 'method_parameter'
    LAMBDA_PARAMETER = 'lambda_parameter'


class TargetKind(Enum):
    """What a reference resolved to."""
    PACKAGE = 'package'
    TYPE = 'type'
    FIELD = 'field'
    METHOD = 'method'
    LOCAL_VARIABLE = 'local_variable'
    CATCH_OR_FOREACH_PARAMETER = 'catch_or_foreach_parameter'
    METHOD_PARAMETER = 'method_parameter'
    LAMBDA_PARAMETER = 'lambda_parameter'


@dataclass(frozen=True)
class SourceRange:
    """Byte range within a compilation unit."""
    start: int
    end: int
    line: int = 0  # 1-based
    column: int = 0  # 0-based

    def __str__(self) -> str:
        return f"{self.start}-{self.end} (line {self.line})"


@dataclass(eq=False)
class Node:
    """One node of the walker's syntax model.

    Equality is identity: two nodes with the same text are still distinct
    occurrences.
    """
    kind: NodeKind
    range: SourceRange
    text: str = ''
    children: List['Node'] = field(default_factory=list)
    declaration: Optional['Declaration'] = None  # declaration nodes
    name_range: Optional[SourceRange] = None  # reference nodes: bare identifier
    nested_type: Optional[str] = None  # nested type nodes: binary name
    syntax: str = ''  # front-end node type, for diagnostics

    def __repr__(self) -> str:
        return f"Node({self.kind.value}, {self.syntax or '-'}, {self.text[:40]!r}, {self.range})"


@dataclass(eq=False)
class Declaration:
    """A local-scope named entity: variable, parameter or iteration variable.

    Hashing is by identity so the scope tables key on the declaration itself,
    not on its name.
    """
    name: str
    kind: DeclarationKind
    name_range: SourceRange
    type_name: str = ''
    type_node: Optional[Node] = None

    def describe(self) -> str:
        return f"{self.type_name} {self.name}@{self.name_range.start}"

    def __repr__(self) -> str:
        return f"Declaration({self.kind.value} {self.describe()})"


@dataclass(frozen=True)
class Target:
    """Resolved target entity of a reference.

    Attributes:
        kind: Variant tag
        name: Simple name (or dotted name for packages and types)
        owner: Declaring type for fields and methods, None when unknown
        descriptor: JVM method descriptor when known
        declaration: Declaration for variable-like targets
    """
    kind: TargetKind
    name: str
    owner: Optional[str] = None
    descriptor: Optional[str] = None
    declaration: Optional[Declaration] = None

    @classmethod
    def package(cls, name: str) -> 'Target':
        return cls(TargetKind.PACKAGE, name)

    @classmethod
    def type(cls, qualified_name: str) -> 'Target':
        return cls(TargetKind.TYPE, qualified_name)

    @classmethod
    def field(cls, owner: Optional[str], name: str) -> 'Target':
        return cls(TargetKind.FIELD, name, owner=owner)

    @classmethod
    def method(cls, owner: Optional[str], name: str, descriptor: Optional[str] = None) -> 'Target':
        return cls(TargetKind.METHOD, name, owner=owner, descriptor=descriptor)

    @classmethod
    def variable(cls, declaration: Declaration) -> 'Target':
        kind = _VARIABLE_TARGETS[declaration.kind]
        return cls(kind, declaration.name, declaration=declaration)

    def describe(self) -> str:
        """Fully qualified description used in facts and diagnostics."""
        if self.kind in (TargetKind.PACKAGE, TargetKind.TYPE):
            return self.name
        if self.kind in (TargetKind.FIELD, TargetKind.METHOD):
            owner = self.owner or '<unknown>'
            return f"{owner}.{self.name}{self.descriptor or ''}"
        return self.declaration.describe() if self.declaration else self.name


_VARIABLE_TARGETS = {
    DeclarationKind.LOCAL_VARIABLE: TargetKind.LOCAL_VARIABLE,
    DeclarationKind.CATCH_PARAMETER: TargetKind.CATCH_OR_FOREACH_PARAMETER,
    DeclarationKind.FOREACH_VARIABLE: TargetKind.CATCH_OR_FOREACH_PARAMETER,
    DeclarationKind.METHOD_PARAMETER: TargetKind.METHOD_PARAMETER,
    DeclarationKind.LAMBDA_PARAMETER: TargetKind.LAMBDA_PARAMETER,
}


class Resolver(Protocol):
    """Name-resolution oracle supplied by the front-end."""

    def resolve(self, node: Node) -> Optional[Target]:
        ...


class MappingResolver:
    """Resolver backed by a node -> target dictionary.

    Reference nodes missing from the mapping are unresolved.
    """

    def __init__(self, bindings: Optional[dict] = None):
        self.bindings = dict(bindings or {})

    def bind(self, node: Node, target: Optional[Target]):
        self.bindings[node] = target

    def resolve(self, node: Node) -> Optional[Target]:
        return self.bindings.get(node)
