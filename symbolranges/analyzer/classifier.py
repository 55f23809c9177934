"""Reference classification: which fact a resolved reference produces."""
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from .model import Declaration, Node, SourceRange, Target, TargetKind
from .scope import ScopeIndexTable
from symbolranges.emitter.facts import FAILURE, WARNING, FactEmitter

# Index reported when a declaration is missing from the walk's tables
MISSING_INDEX = -1


class EmissionAction(Enum):
    NONE = 'none'
    REFERENCED_CLASS = 'referenced_class'
    REFERENCED_FIELD = 'referenced_field'
    REFERENCED_METHOD = 'referenced_method'
    REFERENCED_LOCAL_VARIABLE = 'referenced_local_variable'
    REFERENCED_METHOD_PARAMETER = 'referenced_method_parameter'
    REFERENCED_SCOPED_PARAMETER = 'referenced_scoped_parameter'
    WARN_UNKNOWN = 'warn_unknown'
    FAIL_UNRESOLVED = 'fail_unresolved'


_ACTIONS = {
    # Package prefixes (java, java.util, ...) would flood the output
    TargetKind.PACKAGE: EmissionAction.NONE,
    TargetKind.TYPE: EmissionAction.REFERENCED_CLASS,
    TargetKind.FIELD: EmissionAction.REFERENCED_FIELD,
    TargetKind.METHOD: EmissionAction.REFERENCED_METHOD,
    TargetKind.LOCAL_VARIABLE: EmissionAction.REFERENCED_LOCAL_VARIABLE,
    TargetKind.METHOD_PARAMETER: EmissionAction.REFERENCED_METHOD_PARAMETER,
    TargetKind.CATCH_OR_FOREACH_PARAMETER: EmissionAction.REFERENCED_SCOPED_PARAMETER,
}


@dataclass(frozen=True)
class MethodContext:
    """Where a walk is: enclosing type display name, method name and signature."""
    class_name: str
    method_name: str = '(outside-method)'
    method_signature: str = ''

    def __str__(self) -> str:
        return f"{self.class_name} {self.method_name},{self.method_signature}"


@dataclass(frozen=True)
class UnresolvedReference:
    """A reference whose target could not be determined."""
    class_name: str
    method_name: str
    method_signature: str
    identifier: str
    range: SourceRange

    def describe(self) -> str:
        return (f"{self.class_name} {self.method_name},{self.method_signature},"
                f"{self.identifier},{self.range}")


class ReferenceClassifier:
    """Dispatches resolved references to the matching emitter call.

    Args:
        emitter: Fact sink
        context: Enclosing type/method of the walk
        local_indices: The walk's scope index table
        parameter_indices: Read-only parameter -> position map from the driver
    """

    def __init__(self, emitter: FactEmitter, context: MethodContext, local_indices: ScopeIndexTable,
                 parameter_indices: Mapping[Declaration, int]):
        self.emitter = emitter
        self.context = context
        self.local_indices = local_indices
        self.parameter_indices = parameter_indices

    @staticmethod
    def classify(node: Node, target: Optional[Target]) -> EmissionAction:
        """Decide the emission for one reference, purely from the target's tag."""
        if target is None:
            return EmissionAction.FAIL_UNRESOLVED
        return _ACTIONS.get(target.kind, EmissionAction.WARN_UNKNOWN)

    def apply(self, action: EmissionAction, node: Node, target: Optional[Target]) -> Optional[UnresolvedReference]:
        """Perform the emission chosen by :meth:`classify`.

        Returns:
            An UnresolvedReference for the fatal case, otherwise None
        """
        ctx = self.context

        if action is EmissionAction.FAIL_UNRESOLVED:
            unresolved = UnresolvedReference(
                ctx.class_name, ctx.method_name, ctx.method_signature,
                node.text, node.name_range or node.range,
            )
            self.emitter.log(f"FAILURE: unresolved symbol: null referent {node!r} in {unresolved.describe()}",
                             FAILURE)
            return unresolved

        if action is EmissionAction.NONE:
            return None

        if action is EmissionAction.REFERENCED_CLASS:
            self.emitter.emit_referenced_class(node, target)
        elif action is EmissionAction.REFERENCED_FIELD:
            self.emitter.emit_referenced_field(node, target)
        elif action is EmissionAction.REFERENCED_METHOD:
            self.emitter.emit_referenced_method(node, target)
        elif action is EmissionAction.REFERENCED_LOCAL_VARIABLE:
            index = self._local_index(target.declaration, "local variable")
            self.emitter.emit_referenced_local_variable(
                node, ctx.class_name, ctx.method_name, ctx.method_signature, target.declaration, index)
        elif action is EmissionAction.REFERENCED_METHOD_PARAMETER:
            index = self.parameter_indices.get(target.declaration)
            if index is None:
                index = MISSING_INDEX
                # Parameters of an enclosing method seen from an inner class body
                self.emitter.log(f"WARNING: couldn't find method parameter index for "
                                 f"{target.declaration!r} in {ctx}", WARNING)
            self.emitter.emit_referenced_method_parameter(
                node, ctx.class_name, ctx.method_name, ctx.method_signature, target.declaration, index)
        elif action is EmissionAction.REFERENCED_SCOPED_PARAMETER:
            # catch (E e) and for (T t : ...) variables behave like locals
            index = self._local_index(target.declaration, "non-method parameter")
            self.emitter.emit_type_range(target.declaration.type_node)
            self.emitter.emit_referenced_local_variable(
                node, ctx.class_name, ctx.method_name, ctx.method_signature, target.declaration, index)
        else:
            self.emitter.log(f"WARNING: ignoring unknown referent {target!r} in {ctx}", WARNING)
        return None

    def _local_index(self, declaration: Declaration, label: str) -> int:
        index = self.local_indices.lookup(declaration)
        if index is None:
            self.emitter.log(f"WARNING: couldn't find {label} index for {declaration!r} "
                             f"in {self.local_indices}", WARNING)
            return MISSING_INDEX
        return index
