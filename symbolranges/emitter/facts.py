"""Fact records and the emitter interface the walker writes to."""
from collections import Counter
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from symbolranges.analyzer.model import Declaration, Node, SourceRange, Target

# Fact kinds
TYPE_RANGE = 'type_range'
DECLARED_CLASS = 'declared_class'
DECLARED_FIELD = 'declared_field'
DECLARED_METHOD = 'declared_method'
DECLARED_METHOD_PARAMETER = 'declared_method_parameter'
DECLARED_LOCAL_VARIABLE = 'declared_local_variable'
REFERENCED_CLASS = 'referenced_class'
REFERENCED_FIELD = 'referenced_field'
REFERENCED_METHOD = 'referenced_method'
REFERENCED_LOCAL_VARIABLE = 'referenced_local_variable'
REFERENCED_METHOD_PARAMETER = 'referenced_method_parameter'

FACT_KINDS = (
    TYPE_RANGE,
    DECLARED_CLASS,
    DECLARED_FIELD,
    DECLARED_METHOD,
    DECLARED_METHOD_PARAMETER,
    DECLARED_LOCAL_VARIABLE,
    REFERENCED_CLASS,
    REFERENCED_FIELD,
    REFERENCED_METHOD,
    REFERENCED_LOCAL_VARIABLE,
    REFERENCED_METHOD_PARAMETER,
)

# Diagnostic severities
INFO = 'info'
WARNING = 'warning'
FAILURE = 'failure'


@dataclass
class Fact:
    """One emitted record about a declaration or a reference."""
    kind: str
    source_path: str
    start: int
    end: int
    line: int
    text: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Diagnostic:
    """Advisory message produced while walking a unit."""
    severity: str
    message: str
    source_path: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FactEmitter:
    """Append-only fact sink.

    This base class collects facts and diagnostics in memory. Persistent
    sinks override ``_write_fact`` and ``_write_diagnostic``; counts are kept
    regardless so a summary is always available.
    """

    def __init__(self, keep_in_memory: bool = True):
        self.keep_in_memory = keep_in_memory
        self.facts: List[Fact] = []
        self.diagnostics: List[Diagnostic] = []
        self.source_path = ''
        self._counts: Counter = Counter()

    # ------------------------------------------------------------------
    # Sink plumbing
    # ------------------------------------------------------------------

    def begin_unit(self, source_path: str):
        """Set the compilation unit subsequent facts belong to."""
        self.source_path = str(source_path)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _write_fact(self, fact: Fact):
        pass

    def _write_diagnostic(self, diagnostic: Diagnostic):
        pass

    def _record(self, kind: str, source_range: SourceRange, text: str, **attributes) -> Fact:
        fact = Fact(
            kind=kind,
            source_path=self.source_path,
            start=source_range.start,
            end=source_range.end,
            line=source_range.line,
            text=text,
            attributes=attributes,
        )
        self._counts[kind] += 1
        if self.keep_in_memory:
            self.facts.append(fact)
        self._write_fact(fact)
        return fact

    def log(self, message: str, severity: str = INFO):
        """Record a diagnostic. Never fatal by itself."""
        diagnostic = Diagnostic(severity=severity, message=message, source_path=self.source_path)
        if self.keep_in_memory:
            self.diagnostics.append(diagnostic)
        self._counts[f"diagnostic:{severity}"] += 1
        self._write_diagnostic(diagnostic)

    def counts(self) -> Counter:
        """Number of facts per kind, plus ``diagnostic:<severity>`` entries."""
        return Counter(self._counts)

    def facts_of_kind(self, kind: str) -> List[Fact]:
        return [fact for fact in self.facts if fact.kind == kind]

    # ------------------------------------------------------------------
    # Walker-facing facts
    # ------------------------------------------------------------------

    def emit_type_range(self, type_node: Optional[Node]):
        """Record the full range of a declared type, e.g. ``List<String>``."""
        if type_node is None:
            return
        self._record(TYPE_RANGE, type_node.range, type_node.text)

    def emit_declared_local_variable(self, class_name: str, method_name: str, method_signature: str,
                                     declaration: Declaration, index: int):
        self._record(
            DECLARED_LOCAL_VARIABLE, declaration.name_range, declaration.name,
            **_variable_attributes(class_name, method_name, method_signature, declaration, index)
        )

    def emit_referenced_class(self, name_node: Node, target: Target):
        self._record(REFERENCED_CLASS, _name_range(name_node), name_node.text,
                     qualified_name=target.describe())

    def emit_referenced_field(self, name_node: Node, target: Target):
        self._record(REFERENCED_FIELD, _name_range(name_node), name_node.text,
                     owner=target.owner, name=target.name, qualified_name=target.describe())

    def emit_referenced_method(self, name_node: Node, target: Target):
        self._record(REFERENCED_METHOD, _name_range(name_node), name_node.text,
                     owner=target.owner, name=target.name, descriptor=target.descriptor,
                     qualified_name=target.describe())

    def emit_referenced_local_variable(self, name_node: Node, class_name: str, method_name: str,
                                       method_signature: str, declaration: Declaration, index: int):
        self._record(
            REFERENCED_LOCAL_VARIABLE, _name_range(name_node), name_node.text,
            **_variable_attributes(class_name, method_name, method_signature, declaration, index)
        )

    def emit_referenced_method_parameter(self, name_node: Node, class_name: str, method_name: str,
                                         method_signature: str, declaration: Declaration, index: int):
        self._record(
            REFERENCED_METHOD_PARAMETER, _name_range(name_node), name_node.text,
            **_variable_attributes(class_name, method_name, method_signature, declaration, index)
        )

    # ------------------------------------------------------------------
    # Driver-facing declaration facts
    # ------------------------------------------------------------------

    def emit_declared_class(self, name_range: SourceRange, simple_name: str, qualified_name: str,
                            type_kind: str):
        self._record(DECLARED_CLASS, name_range, simple_name,
                     qualified_name=qualified_name, type_kind=type_kind)

    def emit_declared_field(self, name_range: SourceRange, class_name: str, name: str, type_name: str):
        self._record(DECLARED_FIELD, name_range, name,
                     class_name=class_name, type_name=type_name)

    def emit_declared_method(self, name_range: SourceRange, class_name: str, method_name: str,
                             method_signature: str, text: str):
        self._record(DECLARED_METHOD, name_range, text,
                     class_name=class_name, method_name=method_name, method_signature=method_signature)

    def emit_declared_method_parameter(self, class_name: str, method_name: str, method_signature: str,
                                       declaration: Declaration, index: int):
        self._record(
            DECLARED_METHOD_PARAMETER, declaration.name_range, declaration.name,
            **_variable_attributes(class_name, method_name, method_signature, declaration, index)
        )


def _name_range(node: Node) -> SourceRange:
    return node.name_range or node.range


def _variable_attributes(class_name: str, method_name: str, method_signature: str,
                         declaration: Declaration, index: int) -> Dict[str, Any]:
    return {
        'class_name': class_name,
        'method_name': method_name,
        'method_signature': method_signature,
        'variable_name': declaration.name,
        'variable_type': declaration.type_name,
        'declared_at': declaration.name_range.start,
        'index': index,
    }
