"""Per-unit driver: declaration facts plus one walker per method.

The walker only ever sees one method body. This module is the outer loop
around it: it turns a compilation unit into declared class, field, method
and parameter facts, builds each method's parameter index map, runs a
fresh walker per method (and per type initializer), and decides what an
unresolved reference aborts.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .classifier import UnresolvedReference
from .java_frontend import CompilationUnitModel, JavaFrontend, MethodModel, TypeModel
from .parser import LanguageParser
from .walker import SymbolReferenceWalker
from symbolranges.config import FAIL_POLICIES, Config, get_config
from symbolranges.emitter.facts import FAILURE, WARNING, FactEmitter

OUTSIDE_METHOD = '(outside-method)'


class UnresolvedSymbolError(RuntimeError):
    """Raised in strict ``unit`` mode when a reference can't be resolved."""

    def __init__(self, failure: UnresolvedReference, source_path: str):
        self.failure = failure
        self.source_path = source_path
        super().__init__(f"unresolved symbol {failure.identifier!r} in {source_path}: {failure.describe()}")


@dataclass
class UnitReport:
    """Outcome of processing one compilation unit."""
    path: str
    types_seen: int = 0
    methods_walked: int = 0
    failures: List[UnresolvedReference] = field(default_factory=list)
    aborted: bool = False
    parse_errors: bool = False
    unreadable: bool = False
    too_deep: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.unreadable and not self.too_deep


def check_settings(added_index_offset: int, fail_policy: str):
    """Raise ValueError for an unknown fail policy or a non-positive offset."""
    if fail_policy not in FAIL_POLICIES:
        raise ValueError(f"Unknown fail policy: {fail_policy!r} (expected one of {FAIL_POLICIES})")
    if added_index_offset <= 0:
        raise ValueError(f"Added-code index offset must be positive, got {added_index_offset}")


class UnitDriver:
    """Walks every method of a compilation unit.

    Args:
        emitter: Fact sink shared by all walks
        config: Source of defaults; ``get_config()`` when omitted
        added_index_offset: Overrides the configured offset
        fail_policy: Overrides the configured policy (``method`` or ``unit``)
        strict: Under the ``unit`` policy, raise UnresolvedSymbolError
        parser: Shared parser instance
    """

    def __init__(self, emitter: FactEmitter, config: Optional[Config] = None, *,
                 added_index_offset: Optional[int] = None, fail_policy: Optional[str] = None,
                 strict: bool = False, parser: Optional[LanguageParser] = None):
        if added_index_offset is None or fail_policy is None:
            config = config or get_config()
        self.emitter = emitter
        self.added_index_offset = added_index_offset if added_index_offset is not None else config.added_index_offset
        self.fail_policy = fail_policy if fail_policy is not None else config.fail_policy
        self.strict = strict
        self.parser = parser or LanguageParser('java')

        check_settings(self.added_index_offset, self.fail_policy)

    def process_file(self, file_path: str | Path) -> UnitReport:
        """Read, parse and walk one ``.java`` file."""
        file_path = Path(file_path)
        self.emitter.begin_unit(str(file_path))
        frontend = JavaFrontend.from_file(file_path, self.parser)
        if frontend is None:
            self.emitter.log(f"FAILURE: cannot read {file_path}", FAILURE)
            return UnitReport(str(file_path), unreadable=True)
        return self._process(frontend)

    def process_source(self, source: bytes | str, source_path: str = '<memory>') -> UnitReport:
        """Walk in-memory source text."""
        if isinstance(source, str):
            source = source.encode('utf-8')
        self.emitter.begin_unit(source_path)
        return self._process(JavaFrontend(source, source_path, self.parser))

    def _process(self, frontend: JavaFrontend) -> UnitReport:
        try:
            unit = frontend.build()
        except RecursionError:
            self.emitter.log(f"FAILURE: {frontend.source_path} is nested too deeply to convert; "
                             f"no facts emitted for it", FAILURE)
            return UnitReport(frontend.source_path, too_deep=True)
        report = UnitReport(unit.source_path, parse_errors=unit.has_errors)
        if unit.has_errors:
            self.emitter.log(f"WARNING: syntax errors in {unit.source_path}; "
                             f"facts near the broken code may be incomplete", WARNING)
        self._walk_unit(unit, report)
        return report

    def _walk_unit(self, unit: CompilationUnitModel, report: UnitReport):
        for model in unit.types:
            report.types_seen += 1
            self._declare_type(model)

            for method in model.methods:
                if not self._walk_method(unit, model, method, report):
                    return

            if model.initializer is not None and model.initializer.children:
                walker = self._walker(unit, model.qualified_name, OUTSIDE_METHOD, '')
                if not self._finish(walker.walk(model.initializer).failure, unit, report):
                    return

    def _declare_type(self, model: TypeModel):
        self.emitter.emit_declared_class(model.name_range, model.simple_name, model.qualified_name, model.kind)
        for declared in model.fields.values():
            self.emitter.emit_declared_field(declared.name_range, model.qualified_name, declared.name,
                                             declared.type_name)

    def _walk_method(self, unit: CompilationUnitModel, model: TypeModel, method: MethodModel,
                     report: UnitReport) -> bool:
        class_name = model.qualified_name
        text = model.simple_name if method.is_constructor else method.name
        self.emitter.emit_declared_method(method.name_range, class_name, method.name, method.descriptor, text)
        for index, parameter in enumerate(method.parameters):
            self.emitter.emit_declared_method_parameter(class_name, method.name, method.descriptor, parameter, index)

        if method.root is None:
            return True

        walker = self._walker(unit, class_name, method.name, method.descriptor)
        walker.add_method_parameter_indices(method.parameter_indices)
        report.methods_walked += 1
        return self._finish(walker.walk(method.root).failure, unit, report)

    def _walker(self, unit: CompilationUnitModel, class_name: str, method_name: str,
                method_signature: str) -> SymbolReferenceWalker:
        return SymbolReferenceWalker(self.emitter, unit.resolver, class_name, method_name, method_signature,
                                     self.added_index_offset)

    def _finish(self, failure: Optional[UnresolvedReference], unit: CompilationUnitModel,
                report: UnitReport) -> bool:
        """Apply the failure policy. Returns False when the unit must stop."""
        if failure is None:
            return True
        report.failures.append(failure)
        if self.fail_policy == 'method':
            return True

        report.aborted = True
        self.emitter.log(f"FAILURE: abandoning {unit.source_path} after unresolved symbol "
                         f"{failure.identifier!r}", FAILURE)
        if self.strict:
            raise UnresolvedSymbolError(failure, unit.source_path)
        return False


def iter_java_files(paths: Iterable[str | Path], excluded_dirs: Iterable[str] = ()) -> Iterator[Path]:
    """Yield ``.java`` files under ``paths`` in a stable order.

    Files named explicitly must be Java sources; directories are searched
    recursively, skipping any path component in ``excluded_dirs``.

    Raises:
        FileNotFoundError: If a path does not exist
        ValueError: If an explicit file is not a ``.java`` file
    """
    excluded = set(excluded_dirs)
    for path in paths:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Path does not exist: {path}")
        if path.is_file():
            if LanguageParser.from_file_extension(path) is None:
                raise ValueError(f"Unsupported file type: {path}")
            yield path
            continue
        for file_path in sorted(path.rglob('*.java')):
            relative = file_path.relative_to(path)
            if not any(part in excluded for part in relative.parts[:-1]):
                yield file_path
