"""Depth-first walker emitting symbol declaration and reference facts.

One walker covers exactly one method body (or one type's initializer
code). It owns the per-walk state: the region flag and the scope index
table. Nothing here is shared between walks.
"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .classifier import MethodContext, ReferenceClassifier, UnresolvedReference
from .model import INDEXED_DECLARATIONS, Declaration, Node, NodeKind, Resolver
from .region import RegionTracker
from .scope import DEFAULT_ADDED_INDEX_OFFSET, ScopeIndexTable
from symbolranges.emitter.facts import WARNING, FactEmitter


@dataclass(frozen=True)
class WalkResult:
    """Outcome of one walk: success, or the first unresolved reference."""
    failure: Optional[UnresolvedReference] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok


class SymbolReferenceWalker:
    """Recursively descends a method body and processes symbol references.

    Args:
        emitter: Where to write facts
        resolver: Name-resolution oracle for reference nodes
        class_name: Display name of the enclosing type
        method_name: Display name of the enclosing method
        method_signature: Signature of the enclosing method
        added_index_offset: First index used inside modified regions
    """

    def __init__(self, emitter: FactEmitter, resolver: Resolver, class_name: str,
                 method_name: str = '(outside-method)', method_signature: str = '',
                 added_index_offset: int = DEFAULT_ADDED_INDEX_OFFSET):
        self.emitter = emitter
        self.resolver = resolver
        self.context = MethodContext(class_name, method_name, method_signature)
        self.region = RegionTracker()
        self.local_indices = ScopeIndexTable(self.region, added_index_offset)
        self.parameter_indices: Dict[Declaration, int] = {}
        self.classifier = ReferenceClassifier(emitter, self.context, self.local_indices,
                                              self.parameter_indices)
        self._overflow_reported = False

    def add_method_parameter_indices(self, indices: Mapping[Declaration, int]):
        """Add map used for labeling method parameters by index."""
        self.parameter_indices.update(indices)

    def walk(self, root: Node) -> WalkResult:
        """Walk ``root`` and everything below it in document order.

        Stops at the first unresolved reference; no facts are emitted for
        nodes after that point.
        """
        stack = [root]
        while stack:
            node = stack.pop()
            failure = self._visit(node)
            if failure is not None:
                return WalkResult(failure)
            if node.kind is not NodeKind.NESTED_TYPE:
                stack.extend(reversed(node.children))
        return WalkResult()

    def _visit(self, node: Node) -> Optional[UnresolvedReference]:
        kind = node.kind

        if kind is NodeKind.LINE_COMMENT:
            self.region.observe(node.text)
        elif kind in INDEXED_DECLARATIONS:
            self._declare(node.declaration)
        elif kind is NodeKind.REFERENCE:
            target = self.resolver.resolve(node)
            action = self.classifier.classify(node, target)
            return self.classifier.apply(action, node, target)
        elif kind is NodeKind.OTHER_DECLARATION:
            self.emitter.log(f"WARNING: Unknown declaration {node!r} in {self.context}", WARNING)
        elif kind is NodeKind.NESTED_TYPE:
            # Walked separately by the driver with its own walker
            self.emitter.log(f"deferring inner class {node.nested_type} in {self.context}")
        return None

    def _declare(self, declaration: Declaration):
        self.emitter.emit_type_range(declaration.type_node)
        # Record order of variable declarations for references in body
        index = self.local_indices.assign(declaration)
        self.emitter.emit_declared_local_variable(
            self.context.class_name, self.context.method_name, self.context.method_signature,
            declaration, index)

        if self.local_indices.original_overflowed and not self._overflow_reported:
            self._overflow_reported = True
            self.emitter.log(f"WARNING: original-code local variable indices reached "
                             f"{self.local_indices.added_offset} in {self.context}; they may "
                             f"collide with added-code indices", WARNING)
