"""Java front-end: tree-sitter tree -> walker syntax model + resolver.

Converts a parsed compilation unit into the walker's tagged node model and
binds every reference node to the entity it names. Resolution is best
effort and self-contained: it knows the unit's own declarations, its
imports and java.lang, and never loads other files. Names it cannot place
anywhere are bound to None, which the walker treats as fatal.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from tree_sitter import Node as TSNode, Tree

from .descriptors import OBJECT, PRIMITIVE_DESCRIPTORS, erase, method_descriptor, split_dimensions
from .model import (
    Declaration,
    DeclarationKind,
    MappingResolver,
    Node,
    NodeKind,
    SourceRange,
    Target,
    TargetKind,
)
from .parser import LanguageParser

# Types visible without import
JAVA_LANG_TYPES = frozenset({
    'Appendable', 'ArithmeticException', 'ArrayIndexOutOfBoundsException', 'ArrayStoreException',
    'AssertionError', 'AutoCloseable', 'Boolean', 'Byte', 'CharSequence', 'Character', 'Class',
    'ClassCastException', 'ClassLoader', 'ClassNotFoundException', 'CloneNotSupportedException',
    'Cloneable', 'Comparable', 'Deprecated', 'Double', 'Enum', 'Error', 'Exception', 'Float',
    'FunctionalInterface', 'IllegalAccessException', 'IllegalArgumentException',
    'IllegalMonitorStateException', 'IllegalStateException', 'IndexOutOfBoundsException',
    'InstantiationException', 'Integer', 'InterruptedException', 'Iterable', 'LinkageError', 'Long',
    'Math', 'NegativeArraySizeException', 'NoSuchFieldException', 'NoSuchMethodException',
    'NullPointerException', 'Number', 'NumberFormatException', 'Object', 'OutOfMemoryError',
    'Override', 'Package', 'Process', 'ProcessBuilder', 'Readable', 'Record',
    'ReflectiveOperationException', 'Runnable', 'Runtime', 'RuntimeException', 'SafeVarargs',
    'SecurityException', 'Short', 'StackOverflowError', 'StrictMath', 'String', 'StringBuffer',
    'StringBuilder', 'StringIndexOutOfBoundsException', 'SuppressWarnings', 'System', 'Thread',
    'ThreadGroup', 'ThreadLocal', 'Throwable', 'TypeNotPresentException',
    'UnsupportedOperationException', 'VirtualMachineError', 'Void',
})

# Methods every class inherits, callable unqualified anywhere
OBJECT_METHODS = frozenset({
    'clone', 'equals', 'finalize', 'getClass', 'hashCode', 'notify', 'notifyAll', 'toString', 'wait',
})

# Common top-level package names; the unit adds its own and its imports'
PACKAGE_ROOTS = frozenset({'java', 'javax', 'jdk', 'sun', 'com', 'org', 'net', 'io'})

TYPE_DECLARATIONS = {
    'class_declaration': 'class',
    'interface_declaration': 'interface',
    'enum_declaration': 'enum',
    'record_declaration': 'record',
    'annotation_type_declaration': 'annotation',
}

IMPLICIT_SUPERTYPES = {
    'enum': 'java.lang.Enum',
    'record': 'java.lang.Record',
}

METHOD_DECLARATIONS = frozenset({
    'method_declaration',
    'constructor_declaration',
    'compact_constructor_declaration',
    'annotation_type_element_declaration',
})

FIELD_DECLARATIONS = frozenset({'field_declaration', 'constant_declaration'})

SUPERTYPE_CLAUSES = frozenset({'superclass', 'super_interfaces', 'extends_interfaces'})

TYPE_HEADER_CLAUSES = SUPERTYPE_CLAUSES | {'modifiers', 'type_parameters', 'permits'}

COMMENTS = frozenset({'line_comment', 'block_comment', 'comment'})

# Statements whose identifier children are labels, not symbols
LABEL_STATEMENTS = frozenset({'labeled_statement', 'break_statement', 'continue_statement'})


@dataclass
class FieldModel:
    name: str
    type_name: str
    name_range: SourceRange


@dataclass
class MethodModel:
    """A method or constructor of a type, ready to be walked."""
    name: str
    descriptor: str
    parameters: List[Declaration]
    name_range: SourceRange
    return_type: str = 'void'
    is_constructor: bool = False
    type_parameters: List[str] = field(default_factory=list)
    type_bounds: Dict[str, str] = field(default_factory=dict)
    root: Optional[Node] = None

    @property
    def parameter_indices(self) -> Dict[Declaration, int]:
        """Formal parameters mapped to their position in the signature."""
        return {declaration: index for index, declaration in enumerate(self.parameters)}


@dataclass
class TypeModel:
    """A class, interface, enum, record, annotation, local or anonymous class."""
    qualified_name: str
    simple_name: str
    kind: str
    name_range: SourceRange
    outer: Optional['TypeModel'] = None
    superclass: Optional[str] = None
    supertypes: List[str] = field(default_factory=list)
    type_parameters: List[str] = field(default_factory=list)
    fields: Dict[str, FieldModel] = field(default_factory=dict)
    methods: List[MethodModel] = field(default_factory=list)
    member_types: List['TypeModel'] = field(default_factory=list)
    initializer: Optional[Node] = None
    ts_node: Optional[TSNode] = field(default=None, repr=False)
    body: Optional[TSNode] = field(default=None, repr=False)
    scope: Optional['_Scope'] = field(default=None, repr=False)

    def methods_named(self, name: str) -> List[MethodModel]:
        return [method for method in self.methods if method.name == name]


@dataclass
class CompilationUnitModel:
    """Everything the driver needs to walk one unit."""
    source_path: str
    package: str
    types: List[TypeModel]
    resolver: MappingResolver
    has_errors: bool = False

    def find_type(self, qualified_name: str) -> Optional[TypeModel]:
        for model in self.types:
            if model.qualified_name == qualified_name:
                return model
        return None


class _Scope:
    """One level of the lexical scope chain."""

    def __init__(self, parent: Optional['_Scope'] = None, type_model: Optional[TypeModel] = None,
                 type_parameters=()):
        self.parent = parent
        self.type_model = type_model
        self.type_parameters = set(type_parameters)
        self.type_bounds: Dict[str, str] = {}
        self.variables: Dict[str, Declaration] = {}
        self.local_types: Dict[str, str] = {}
        self.switch_type: Optional[str] = None

    def chain(self) -> Iterator['_Scope']:
        scope = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def enclosing_type(self) -> Optional[TypeModel]:
        for scope in self.chain():
            if scope.type_model is not None:
                return scope.type_model
        return None

    def enclosing_switch_type(self) -> Optional[str]:
        for scope in self.chain():
            if scope.switch_type is not None:
                return scope.switch_type
        return None

    def type_variables(self) -> Dict[str, str]:
        """Every type variable in scope mapped to its erasure.

        Inner declarations shadow outer ones. A variable erases to its first
        bound, following bounds that are themselves type variables, and to
        Object when unbounded or when the bounds form a cycle.
        """
        bounds: Dict[str, str] = {}
        for scope in self.chain():
            for name in scope.type_parameters:
                bounds.setdefault(name, scope.type_bounds.get(name, OBJECT))

        erasures = {}
        for name, bound in bounds.items():
            seen = {name}
            while bound in bounds and bound not in seen:
                seen.add(bound)
                bound = bounds[bound]
            erasures[name] = OBJECT if bound in seen else bound
        return erasures


def _same(a: Optional[TSNode], b: Optional[TSNode]) -> bool:
    return (a is not None and b is not None and a.type == b.type
            and a.start_byte == b.start_byte and a.end_byte == b.end_byte)


def _key(node: TSNode) -> Tuple[int, int, str]:
    return node.start_byte, node.end_byte, node.type


class JavaFrontend:
    """Builds the walker model for one Java compilation unit.

    Args:
        source: Raw source bytes of the unit
        source_path: Path used in facts and diagnostics
        parser: Optional shared parser instance
    """

    def __init__(self, source: bytes, source_path: str = '<memory>', parser: Optional[LanguageParser] = None):
        self.source = source
        self.source_path = str(source_path)
        self.parser = parser or LanguageParser('java')
        self.resolver = MappingResolver()

        self.package = ''
        self.single_imports: Dict[str, str] = {}
        self.on_demand_imports: List[str] = []
        self.static_imports: Dict[str, str] = {}
        self.static_on_demand: List[str] = []
        self.package_roots = set(PACKAGE_ROOTS)

        self.types: Dict[str, TypeModel] = {}
        self.simple_names: Dict[str, str] = {}
        self._types_by_node: Dict[Tuple[int, int, str], TypeModel] = {}
        self._methods_by_node: Dict[Tuple[int, int, str], MethodModel] = {}
        self._parameter_types: Dict[Declaration, TSNode] = {}
        self._anonymous_counts: Dict[str, int] = {}
        self._local_counts: Dict[str, int] = {}

        self._handlers = {
            'line_comment': self._convert_comment,
            'block_comment': self._convert_comment,
            'comment': self._convert_comment,
            'identifier': self._convert_expression_name,
            'type_identifier': self._convert_type_identifier,
            'scoped_type_identifier': self._convert_type_chain,
            'scoped_identifier': self._convert_type_chain,
            'block': self._convert_scoped,
            'constructor_body': self._convert_scoped,
            'switch_block': self._convert_scoped,
            'for_statement': self._convert_scoped,
            'try_with_resources_statement': self._convert_scoped,
            'local_variable_declaration': self._convert_local_variable_declaration,
            'resource': self._convert_resource,
            'catch_clause': self._convert_catch_clause,
            'enhanced_for_statement': self._convert_enhanced_for,
            'lambda_expression': self._convert_lambda,
            'instanceof_expression': self._convert_instanceof,
            'type_pattern': self._convert_type_pattern,
            'field_access': self._convert_field_access,
            'method_invocation': self._convert_method_invocation,
            'method_reference': self._convert_method_reference,
            'object_creation_expression': self._convert_object_creation,
            'switch_expression': self._convert_switch,
            'switch_statement': self._convert_switch,
            'switch_label': self._convert_switch_label,
            'marker_annotation': self._convert_annotation,
            'annotation': self._convert_annotation,
            'type_parameter': self._convert_type_parameter,
            'labeled_statement': self._convert_labeled,
            'break_statement': self._convert_labeled,
            'continue_statement': self._convert_labeled,
        }

    @classmethod
    def from_file(cls, file_path: str | Path, parser: Optional[LanguageParser] = None) -> Optional['JavaFrontend']:
        """Read a source file, or return None if it can't be read."""
        file_path = Path(file_path)
        try:
            with open(file_path, 'rb') as f:
                source = f.read()
        except (IOError, OSError):
            return None
        return cls(source, str(file_path), parser)

    def build(self, tree: Optional[Tree] = None) -> CompilationUnitModel:
        """Parse (unless a tree is given), collect declarations, convert bodies."""
        if tree is None:
            tree = self.parser.parse_source(self.source)
        root = tree.root_node

        self._read_header(root)

        # Pass 1: named types and their members, so forward references work
        unit_scope = _Scope()
        top_level = []
        for child in root.named_children:
            if child.type in TYPE_DECLARATIONS and child.child_by_field_name('name') is not None:
                name = self._text(child.child_by_field_name('name'))
                top_level.append(self._declare_named_type(child, None, unit_scope, self._top_level_name(name)))
        for model in top_level:
            self._describe_tree(model)

        # Pass 2: bodies, binding every reference
        for model in top_level:
            self._convert_type_members(model)

        types = sorted(self.types.values(), key=lambda m: (m.name_range.start, m.qualified_name))
        return CompilationUnitModel(
            source_path=self.source_path,
            package=self.package,
            types=types,
            resolver=self.resolver,
            has_errors=root.has_error,
        )

    # ------------------------------------------------------------------
    # Source helpers
    # ------------------------------------------------------------------

    def _text(self, node: Optional[TSNode]) -> str:
        if node is None:
            return ''
        return self.source[node.start_byte:node.end_byte].decode('utf-8', errors='ignore')

    @staticmethod
    def _range(node: TSNode) -> SourceRange:
        return SourceRange(node.start_byte, node.end_byte, node.start_point[0] + 1, node.start_point[1])

    def _plain(self, node: TSNode) -> Node:
        text = self._text(node) if node.child_count == 0 else ''
        return Node(NodeKind.OTHER, self._range(node), text=text, syntax=node.type)

    def _reference(self, node: TSNode, target: Optional[Target]) -> Node:
        source_range = self._range(node)
        ref = Node(NodeKind.REFERENCE, source_range, text=self._text(node), name_range=source_range,
                   syntax=node.type)
        self.resolver.bind(ref, target)
        return ref

    def _top_level_name(self, simple: str) -> str:
        return f"{self.package}.{simple}" if self.package else simple

    # ------------------------------------------------------------------
    # Package and imports
    # ------------------------------------------------------------------

    def _read_header(self, root: TSNode):
        for child in root.named_children:
            if child.type == 'package_declaration':
                for part in child.named_children:
                    if part.type in ('identifier', 'scoped_identifier'):
                        self.package = self._text(part).replace(' ', '')
                if self.package:
                    self.package_roots.add(self.package.split('.')[0])
            elif child.type == 'import_declaration':
                self._read_import(child)

    def _read_import(self, node: TSNode):
        body = self._text(node).strip()
        body = body[len('import'):].rstrip(';').strip()
        is_static = body.startswith('static ')
        if is_static:
            body = body[len('static'):]
        body = ''.join(body.split())
        if not body:
            return
        self.package_roots.add(body.split('.')[0])

        if body.endswith('.*'):
            target = body[:-2]
            (self.static_on_demand if is_static else self.on_demand_imports).append(target)
            return

        owner, _, simple = body.rpartition('.')
        if is_static:
            self.static_imports[simple] = owner
        else:
            self.single_imports[simple] = body

    # ------------------------------------------------------------------
    # Types: qualification
    # ------------------------------------------------------------------

    def _lookup_type(self, simple: str, scope: _Scope) -> Optional[str]:
        """Qualified name for a simple type name, or None if unknown."""
        for level in scope.chain():
            if simple in level.type_parameters:
                return simple
            if simple in level.local_types:
                return level.local_types[simple]
            if level.type_model is not None:
                candidate = f"{level.type_model.qualified_name}${simple}"
                if candidate in self.types:
                    return candidate
                if level.type_model.simple_name == simple:
                    return level.type_model.qualified_name

        top = self._top_level_name(simple)
        if top in self.types:
            return top
        if simple in self.single_imports:
            return self.single_imports[simple]
        if simple in JAVA_LANG_TYPES:
            return f"java.lang.{simple}"
        return self.simple_names.get(simple)

    def _fallback_type(self, simple: str) -> str:
        """Unknown type: a lone wildcard import wins, else the unit's package."""
        if len(self.on_demand_imports) == 1:
            return f"{self.on_demand_imports[0]}.{simple}"
        return self._top_level_name(simple)

    def _type_text(self, node: TSNode) -> str:
        while node.type == 'annotated_type' and node.named_children:
            node = node.named_children[-1]
        return self._text(node)

    def _qualify_node(self, node: Optional[TSNode], scope: _Scope) -> str:
        if node is None:
            return ''
        return self._qualify(self._type_text(node), scope)

    def _qualify(self, type_text: str, scope: _Scope) -> str:
        """Erased, qualified name for a source type, keeping array suffixes."""
        erased = erase(type_text)
        base, dims = split_dimensions(erased)
        if not base or base in PRIMITIVE_DESCRIPTORS or base == 'var':
            return erased

        head, _, rest = base.partition('.')
        resolved = self._lookup_type(head, scope)
        if resolved is None:
            qualified = base if rest else self._fallback_type(head)
        elif rest:
            qualified = resolved + '$' + rest.replace('.', '$')
        else:
            qualified = resolved
        return qualified + '[]' * dims

    @staticmethod
    def _dimensions(node: Optional[TSNode]) -> int:
        if node is None:
            return 0
        return sum(1 for child in node.children if child.type == '[')

    # ------------------------------------------------------------------
    # Types: declaration collection
    # ------------------------------------------------------------------

    def _type_parameter_names(self, node: TSNode) -> List[str]:
        params = node.child_by_field_name('type_parameters')
        if params is None:
            return []
        names = []
        for param in params.named_children:
            if param.type == 'type_parameter':
                for part in param.named_children:
                    if part.type in ('type_identifier', 'identifier'):
                        names.append(self._text(part))
                        break
        return names

    def _type_parameter_bounds(self, node: TSNode, scope: _Scope) -> Dict[str, str]:
        """Type parameter name -> qualified first bound, for bounded parameters only."""
        params = node.child_by_field_name('type_parameters')
        if params is None:
            return {}
        bounds = {}
        for param in params.named_children:
            if param.type != 'type_parameter':
                continue
            name = next((self._text(p) for p in param.named_children
                         if p.type in ('type_identifier', 'identifier')), None)
            bound = next((p for p in param.named_children if p.type == 'type_bound'), None)
            if name is None or bound is None:
                continue
            first = next((t for t in bound.named_children if t.type not in COMMENTS), None)
            if first is not None:
                bounds[name] = self._qualify_node(first, scope)
        return bounds

    def _body_members(self, body: Optional[TSNode]) -> Iterator[TSNode]:
        if body is None:
            return
        for member in body.named_children:
            if member.type == 'enum_body_declarations':
                yield from member.named_children
            else:
                yield member

    def _new_type(self, qualified: str, simple: str, kind: str, name_range: SourceRange,
                  outer: Optional[TypeModel], parent_scope: _Scope, ts_node: TSNode,
                  body: Optional[TSNode], type_parameters=()) -> TypeModel:
        model = TypeModel(qualified, simple, kind, name_range, outer=outer,
                          type_parameters=list(type_parameters), ts_node=ts_node, body=body)
        model.scope = _Scope(parent_scope, model, type_parameters)
        self.types[qualified] = model
        self.simple_names.setdefault(simple, qualified)
        self._types_by_node[_key(ts_node)] = model

        for member in self._body_members(body):
            name_node = member.child_by_field_name('name')
            if member.type in TYPE_DECLARATIONS and name_node is not None:
                nested = self._declare_named_type(member, model, model.scope,
                                                  f"{qualified}${self._text(name_node)}")
                model.member_types.append(nested)
        return model

    def _declare_named_type(self, node: TSNode, outer: Optional[TypeModel], parent_scope: _Scope,
                            qualified: str) -> TypeModel:
        name_node = node.child_by_field_name('name')
        return self._new_type(qualified, self._text(name_node), TYPE_DECLARATIONS[node.type],
                              self._range(name_node), outer, parent_scope, node,
                              node.child_by_field_name('body'), self._type_parameter_names(node))

    def _describe_tree(self, model: TypeModel):
        self._describe_members(model)
        for nested in model.member_types:
            self._describe_tree(nested)

    def _describe_members(self, model: TypeModel):
        """Supertypes, fields and method signatures of one type."""
        scope = model.scope
        scope.type_bounds = self._type_parameter_bounds(model.ts_node, scope)

        if model.kind != 'anonymous':
            for clause in model.ts_node.named_children:
                if clause.type not in SUPERTYPE_CLAUSES:
                    continue
                for type_node in self._clause_types(clause):
                    qualified = self._qualify_node(type_node, scope)
                    model.supertypes.append(qualified)
                    if clause.type == 'superclass':
                        model.superclass = qualified
            implicit = IMPLICIT_SUPERTYPES.get(model.kind)
            if implicit:
                model.superclass = implicit
                model.supertypes.insert(0, implicit)

        for component in self._record_components(model):
            name_node = component.child_by_field_name('name')
            if name_node is not None:
                model.fields[self._text(name_node)] = FieldModel(
                    self._text(name_node), self._qualify_node(component.child_by_field_name('type'), scope),
                    self._range(name_node))

        for member in self._body_members(model.body):
            if member.type in FIELD_DECLARATIONS:
                base_type = self._qualify_node(member.child_by_field_name('type'), scope)
                for declarator in member.children_by_field_name('declarator'):
                    name_node = declarator.child_by_field_name('name')
                    if name_node is None:
                        continue
                    dims = self._dimensions(declarator.child_by_field_name('dimensions'))
                    model.fields[self._text(name_node)] = FieldModel(
                        self._text(name_node), base_type + '[]' * dims, self._range(name_node))
            elif member.type == 'enum_constant':
                name_node = member.child_by_field_name('name')
                if name_node is not None:
                    model.fields[self._text(name_node)] = FieldModel(
                        self._text(name_node), model.qualified_name, self._range(name_node))
            elif member.type in METHOD_DECLARATIONS:
                method = self._describe_method(model, member)
                if method is not None:
                    model.methods.append(method)

    def _clause_types(self, clause: TSNode) -> List[TSNode]:
        found = []
        for child in clause.named_children:
            if child.type == 'type_list':
                found.extend(c for c in child.named_children if c.type not in COMMENTS)
            elif child.type not in COMMENTS:
                found.append(child)
        return found

    def _record_components(self, model: TypeModel) -> List[TSNode]:
        if model.kind != 'record':
            return []
        params = model.ts_node.child_by_field_name('parameters')
        if params is None:
            return []
        return [p for p in params.named_children if p.type == 'formal_parameter']

    def _describe_method(self, model: TypeModel, node: TSNode) -> Optional[MethodModel]:
        name_node = node.child_by_field_name('name')
        if name_node is None:
            return None
        is_constructor = node.type in ('constructor_declaration', 'compact_constructor_declaration')
        type_parameters = self._type_parameter_names(node)
        scope = _Scope(model.scope, type_parameters=type_parameters)
        scope.type_bounds = self._type_parameter_bounds(node, scope)

        if node.type == 'compact_constructor_declaration':
            param_nodes = self._record_components(model)
        else:
            params = node.child_by_field_name('parameters')
            param_nodes = params.named_children if params is not None else []

        parameters = []
        for param in param_nodes:
            if param.type in ('formal_parameter', 'spread_parameter'):
                declaration = self._parameter_declaration(param, scope, DeclarationKind.METHOD_PARAMETER)
                if declaration is not None:
                    parameters.append(declaration)

        if is_constructor:
            return_type = 'void'
        else:
            return_type = self._qualify_node(node.child_by_field_name('type'), scope)
            return_type += '[]' * self._dimensions(node.child_by_field_name('dimensions'))

        method = MethodModel(
            name='<init>' if is_constructor else self._text(name_node),
            descriptor=method_descriptor([p.type_name for p in parameters], return_type, scope.type_variables()),
            parameters=parameters,
            name_range=self._range(name_node),
            return_type=return_type,
            is_constructor=is_constructor,
            type_parameters=type_parameters,
            type_bounds=scope.type_bounds,
        )
        self._methods_by_node[_key(node)] = method
        return method

    def _parameter_declaration(self, node: TSNode, scope: _Scope, kind: DeclarationKind) -> Optional[Declaration]:
        if node.type == 'spread_parameter':
            type_node = next((c for c in node.named_children
                              if c.type not in ('modifiers', 'variable_declarator') and c.type not in COMMENTS), None)
            declarator = next((c for c in node.named_children if c.type == 'variable_declarator'), None)
            name_node = declarator.child_by_field_name('name') if declarator is not None else None
            suffix = '[]'
        else:
            type_node = node.child_by_field_name('type')
            name_node = node.child_by_field_name('name')
            suffix = '[]' * self._dimensions(node.child_by_field_name('dimensions'))
        if name_node is None:
            return None

        declaration = Declaration(self._text(name_node), kind, self._range(name_node),
                                  self._qualify_node(type_node, scope) + suffix)
        if type_node is not None:
            self._parameter_types[declaration] = type_node
        return declaration

    # ------------------------------------------------------------------
    # Types: body conversion
    # ------------------------------------------------------------------

    def _nested_type_node(self, node: TSNode, model: TypeModel) -> Node:
        return Node(NodeKind.NESTED_TYPE, self._range(node), text=model.simple_name,
                    nested_type=model.qualified_name, syntax=node.type)

    def _convert_type_members(self, model: TypeModel):
        """Convert methods and build the type's initializer walk root."""
        scope = model.scope
        init = Node(NodeKind.OTHER, self._range(model.ts_node), syntax=f"{model.kind}_initializer")

        if model.kind != 'anonymous':
            for clause in model.ts_node.named_children:
                if clause.type in TYPE_HEADER_CLAUSES or clause.type in COMMENTS:
                    init.children.append(self._convert(clause, scope))
            for component in self._record_components(model):
                init.children.append(self._convert_children(
                    component, scope, skip=component.child_by_field_name('name')))

        for member in self._body_members(model.body):
            kind = member.type
            if kind in FIELD_DECLARATIONS:
                init.children.append(self._convert_field_declaration(member, scope))
            elif kind in METHOD_DECLARATIONS:
                method = self._methods_by_node.get(_key(member))
                if method is not None:
                    self._convert_method(method, member, scope)
            elif kind in TYPE_DECLARATIONS:
                nested = self._types_by_node.get(_key(member))
                if nested is not None:
                    init.children.append(self._nested_type_node(member, nested))
                    self._convert_type_members(nested)
            elif kind == 'enum_constant':
                init.children.append(self._convert_enum_constant(model, member, scope))
            else:
                init.children.append(self._convert(member, scope))

        model.initializer = init

    def _convert_field_declaration(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        for child in node.named_children:
            if child.type == 'variable_declarator':
                converted.children.append(self._convert_children(
                    child, scope, skip=child.child_by_field_name('name')))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_enum_constant(self, model: TypeModel, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        name_node = node.child_by_field_name('name')
        for child in node.named_children:
            if _same(child, name_node):
                continue
            if child.type == 'class_body':
                anonymous = self._new_anonymous_type(model, scope, node, child, model.qualified_name)
                converted.children.append(self._nested_type_node(child, anonymous))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_method(self, method: MethodModel, node: TSNode, class_scope: _Scope):
        scope = _Scope(class_scope, type_parameters=method.type_parameters)
        scope.type_bounds = method.type_bounds
        root = self._plain(node)
        name_node = node.child_by_field_name('name')

        if node.type == 'compact_constructor_declaration':
            for declaration in method.parameters:
                scope.variables[declaration.name] = declaration

        for child in node.named_children:
            if _same(child, name_node):
                continue
            if child.type == 'formal_parameters':
                root.children.append(self._convert_formal_parameters(child, scope, method))
            else:
                root.children.append(self._convert(child, scope))
        method.root = root

    def _convert_formal_parameters(self, node: TSNode, scope: _Scope, method: MethodModel) -> Node:
        converted = self._plain(node)
        remaining = iter(method.parameters)
        for child in node.named_children:
            if child.type not in ('formal_parameter', 'spread_parameter'):
                converted.children.append(self._convert(child, scope))
                continue
            declaration = next(remaining, None)
            param = self._plain(child)
            type_node = self._parameter_types.get(declaration) if declaration is not None else None
            for part in child.named_children:
                if _same(part, type_node):
                    type_model = self._convert_type(part, scope)
                    declaration.type_node = type_model
                    param.children.append(type_model)
                elif part.type == 'variable_declarator' or _same(part, child.child_by_field_name('name')):
                    continue
                else:
                    param.children.append(self._convert(part, scope))
            if declaration is not None:
                scope.variables[declaration.name] = declaration
            converted.children.append(param)
        return converted

    def _new_anonymous_type(self, enclosing: Optional[TypeModel], scope: _Scope, node: TSNode,
                            body: TSNode, supertype: str) -> TypeModel:
        owner = enclosing.qualified_name if enclosing is not None else self._top_level_name('')
        count = self._anonymous_counts.get(owner, 0) + 1
        self._anonymous_counts[owner] = count

        model = self._new_type(f"{owner}${count}", '', 'anonymous', self._range(body), enclosing,
                               scope, node, body)
        model.superclass = supertype
        model.supertypes.append(supertype)
        self._describe_tree(model)
        self._convert_type_members(model)
        return model

    def _convert_local_type(self, node: TSNode, scope: _Scope) -> Node:
        name_node = node.child_by_field_name('name')
        enclosing = scope.enclosing_type()
        if name_node is None or enclosing is None:
            return self._convert_children(node, scope)

        name = self._text(name_node)
        key = f"{enclosing.qualified_name}:{name}"
        count = self._local_counts.get(key, 0) + 1
        self._local_counts[key] = count
        qualified = f"{enclosing.qualified_name}${count}{name}"
        scope.local_types[name] = qualified

        model = self._declare_named_type(node, enclosing, scope, qualified)
        self._describe_tree(model)
        self._convert_type_members(model)
        return self._nested_type_node(node, model)

    # ------------------------------------------------------------------
    # Generic conversion
    # ------------------------------------------------------------------

    def _convert(self, node: TSNode, scope: _Scope) -> Node:
        handler = self._handlers.get(node.type)
        if handler is not None:
            return handler(node, scope)
        if node.type in TYPE_DECLARATIONS:
            return self._convert_local_type(node, scope)
        return self._convert_children(node, scope)

    def _convert_children(self, node: TSNode, scope: _Scope, skip: Optional[TSNode] = None) -> Node:
        converted = self._plain(node)
        for child in node.named_children:
            if not _same(child, skip):
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_type(self, node: TSNode, scope: _Scope) -> Node:
        """Convert a declared-type subtree, keeping its full text for type ranges."""
        converted = self._convert(node, scope)
        converted.text = self._text(node)
        return converted

    def _convert_scoped(self, node: TSNode, scope: _Scope) -> Node:
        return self._convert_children(node, _Scope(scope))

    def _convert_comment(self, node: TSNode, scope: _Scope) -> Node:
        text = self._text(node)
        line = node.type == 'line_comment' or (node.type == 'comment' and text.startswith('//'))
        kind = NodeKind.LINE_COMMENT if line else NodeKind.OTHER
        return Node(kind, self._range(node), text=text, syntax=node.type)

    def _convert_labeled(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        for child in node.named_children:
            if child.type != 'identifier':
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_type_parameter(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        declared = False
        for child in node.named_children:
            if not declared and child.type in ('type_identifier', 'identifier'):
                declared = True
                continue
            converted.children.append(self._convert(child, scope))
        return converted

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _variable_node(self, kind: NodeKind, decl_kind: DeclarationKind, node: TSNode, name_node: TSNode,
                       type_name: str, type_model: Optional[Node]) -> Node:
        declaration = Declaration(self._text(name_node), decl_kind, self._range(name_node), type_name, type_model)
        return Node(kind, self._range(node), text=declaration.name, declaration=declaration, syntax=node.type)

    def _convert_local_variable_declaration(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        type_node = node.child_by_field_name('type')
        base_type = self._qualify_node(type_node, scope)
        type_model = None

        for child in node.named_children:
            if _same(child, type_node):
                type_model = self._convert_type(child, scope)
                converted.children.append(type_model)
            elif child.type == 'variable_declarator' and child.child_by_field_name('name') is not None:
                converted.children.append(self._convert_declarator(child, scope, base_type, type_model))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_declarator(self, node: TSNode, scope: _Scope, base_type: str, type_model: Optional[Node]) -> Node:
        name_node = node.child_by_field_name('name')
        dims = self._dimensions(node.child_by_field_name('dimensions'))
        converted = self._variable_node(NodeKind.LOCAL_VARIABLE, DeclarationKind.LOCAL_VARIABLE, node,
                                        name_node, base_type + '[]' * dims, type_model)
        scope.variables[converted.declaration.name] = converted.declaration
        for child in node.named_children:
            if not _same(child, name_node):
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_resource(self, node: TSNode, scope: _Scope) -> Node:
        type_node = node.child_by_field_name('type')
        name_node = node.child_by_field_name('name')
        if type_node is None or name_node is None:
            # try (existing) reuses a variable declared elsewhere
            return self._convert_children(node, scope)

        type_model = self._convert_type(type_node, scope)
        dims = self._dimensions(node.child_by_field_name('dimensions'))
        converted = self._variable_node(NodeKind.LOCAL_VARIABLE, DeclarationKind.LOCAL_VARIABLE, node, name_node,
                                        self._qualify_node(type_node, scope) + '[]' * dims, type_model)
        for child in node.named_children:
            if _same(child, type_node):
                converted.children.append(type_model)
            elif not _same(child, name_node):
                converted.children.append(self._convert(child, scope))
        scope.variables[converted.declaration.name] = converted.declaration
        return converted

    def _convert_catch_clause(self, node: TSNode, scope: _Scope) -> Node:
        inner = _Scope(scope)
        converted = self._plain(node)
        for child in node.named_children:
            if child.type == 'catch_formal_parameter':
                converted.children.append(self._convert_catch_parameter(child, inner))
            else:
                converted.children.append(self._convert(child, inner))
        return converted

    def _convert_catch_parameter(self, node: TSNode, scope: _Scope) -> Node:
        name_node = node.child_by_field_name('name')
        type_node = next((c for c in node.named_children if c.type == 'catch_type'), None)
        if name_node is None:
            return self._convert_children(node, scope)

        type_model = self._convert_type(type_node, scope) if type_node is not None else None
        # Multi-catch: the first alternative stands for the union
        first_type = self._text(type_node).split('|')[0] if type_node is not None else ''
        converted = self._variable_node(NodeKind.CATCH_PARAMETER, DeclarationKind.CATCH_PARAMETER, node,
                                        name_node, self._qualify(first_type, scope), type_model)
        for child in node.named_children:
            if _same(child, type_node):
                converted.children.append(type_model)
            elif not _same(child, name_node):
                converted.children.append(self._convert(child, scope))
        scope.variables[converted.declaration.name] = converted.declaration
        return converted

    def _convert_enhanced_for(self, node: TSNode, scope: _Scope) -> Node:
        inner = _Scope(scope)
        type_node = node.child_by_field_name('type')
        name_node = node.child_by_field_name('name')
        body_node = node.child_by_field_name('body')
        if name_node is None:
            return self._convert_children(node, inner)

        type_model = self._convert_type(type_node, inner) if type_node is not None else None
        dims = self._dimensions(node.child_by_field_name('dimensions'))
        converted = self._variable_node(NodeKind.FOREACH_VARIABLE, DeclarationKind.FOREACH_VARIABLE, node,
                                        name_node, self._qualify_node(type_node, inner) + '[]' * dims, type_model)
        declaration = converted.declaration

        for child in node.named_children:
            if _same(child, type_node):
                converted.children.append(type_model)
            elif _same(child, name_node):
                continue
            elif _same(child, body_node):
                # The iteration variable is not in scope in the iterated expression
                inner.variables[declaration.name] = declaration
                converted.children.append(self._convert(child, inner))
            else:
                converted.children.append(self._convert(child, inner))
        inner.variables[declaration.name] = declaration
        return converted

    def _convert_lambda(self, node: TSNode, scope: _Scope) -> Node:
        inner = _Scope(scope)
        converted = self._plain(node)
        params = node.child_by_field_name('parameters')
        for child in node.named_children:
            if _same(child, params):
                converted.children.append(self._convert_lambda_parameters(child, inner))
            else:
                converted.children.append(self._convert(child, inner))
        return converted

    def _convert_lambda_parameters(self, node: TSNode, scope: _Scope) -> Node:
        if node.type == 'identifier':
            return self._lambda_parameter(node, node, scope)

        converted = self._plain(node)
        for child in node.named_children:
            if child.type == 'identifier':
                converted.children.append(self._lambda_parameter(child, child, scope))
            elif child.type in ('formal_parameter', 'spread_parameter'):
                declaration = self._parameter_declaration(child, scope, DeclarationKind.LAMBDA_PARAMETER)
                if declaration is None:
                    converted.children.append(self._convert(child, scope))
                    continue
                param = Node(NodeKind.OTHER_DECLARATION, self._range(child), text=declaration.name,
                             declaration=declaration, syntax=child.type)
                type_node = self._parameter_types.get(declaration)
                if type_node is not None:
                    declaration.type_node = self._convert_type(type_node, scope)
                    param.children.append(declaration.type_node)
                scope.variables[declaration.name] = declaration
                converted.children.append(param)
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _lambda_parameter(self, node: TSNode, name_node: TSNode, scope: _Scope) -> Node:
        """Implicitly typed lambda parameter."""
        converted = self._variable_node(NodeKind.OTHER_DECLARATION, DeclarationKind.LAMBDA_PARAMETER, node,
                                        name_node, '', None)
        scope.variables[converted.declaration.name] = converted.declaration
        return converted

    def _convert_instanceof(self, node: TSNode, scope: _Scope) -> Node:
        name_node = node.child_by_field_name('name')
        if name_node is None:
            return self._convert_children(node, scope)

        right = node.child_by_field_name('right')
        converted = self._plain(node)
        type_model = None
        for child in node.named_children:
            if _same(child, name_node):
                continue
            if _same(child, right):
                type_model = self._convert_type(child, scope)
                converted.children.append(type_model)
            else:
                converted.children.append(self._convert(child, scope))

        pattern = self._variable_node(NodeKind.LOCAL_VARIABLE, DeclarationKind.LOCAL_VARIABLE, name_node,
                                      name_node, self._qualify_node(right, scope), type_model)
        converted.children.append(pattern)
        scope.variables[pattern.declaration.name] = pattern.declaration
        return converted

    def _convert_type_pattern(self, node: TSNode, scope: _Scope) -> Node:
        named = [c for c in node.named_children if c.type not in COMMENTS]
        name_node = node.child_by_field_name('name')
        if name_node is None and named and named[-1].type == 'identifier':
            name_node = named[-1]
        if name_node is None or len(named) < 2:
            return self._convert_children(node, scope)

        type_node = named[0]
        type_model = self._convert_type(type_node, scope)
        converted = self._variable_node(NodeKind.LOCAL_VARIABLE, DeclarationKind.LOCAL_VARIABLE, node, name_node,
                                        self._qualify_node(type_node, scope), type_model)
        converted.children.append(type_model)
        for child in named[1:]:
            if not _same(child, name_node):
                converted.children.append(self._convert(child, scope))
        scope.variables[converted.declaration.name] = converted.declaration
        return converted

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------

    def _find_field(self, model: TypeModel, name: str, seen=None) -> Optional[Tuple[str, FieldModel]]:
        """Field declared by ``model`` or an in-unit supertype, with its owner."""
        seen = seen if seen is not None else set()
        if model.qualified_name in seen:
            return None
        seen.add(model.qualified_name)

        if name in model.fields:
            return model.qualified_name, model.fields[name]
        for supertype in model.supertypes:
            parent = self.types.get(supertype)
            if parent is not None:
                found = self._find_field(parent, name, seen)
                if found:
                    return found
        return None

    def _find_methods(self, model: TypeModel, name: str, seen=None) -> Optional[Tuple[str, List[MethodModel]]]:
        seen = seen if seen is not None else set()
        if model.qualified_name in seen:
            return None
        seen.add(model.qualified_name)

        overloads = model.methods_named(name)
        if overloads:
            return model.qualified_name, overloads
        for supertype in model.supertypes:
            parent = self.types.get(supertype)
            if parent is not None:
                found = self._find_methods(parent, name, seen)
                if found:
                    return found
        return None

    def _external_supertypes(self, model: TypeModel, seen=None) -> List[str]:
        seen = seen if seen is not None else set()
        if model.qualified_name in seen:
            return []
        seen.add(model.qualified_name)

        external = []
        for supertype in model.supertypes:
            parent = self.types.get(supertype)
            if parent is None:
                external.append(supertype)
            else:
                external.extend(self._external_supertypes(parent, seen))
        return external

    def _inherited_owner(self, scope: _Scope) -> Optional[str]:
        """Supertype outside the unit that may declare a name we can't see."""
        for level in scope.chain():
            if level.type_model is not None:
                external = self._external_supertypes(level.type_model)
                if external:
                    return external[0]
        if len(self.static_on_demand) == 1:
            return self.static_on_demand[0]
        return None

    def _lookup_value(self, name: str, scope: _Scope) -> Optional[Target]:
        """Variable, parameter or field visible under ``name``."""
        for level in scope.chain():
            declaration = level.variables.get(name)
            if declaration is not None:
                return Target.variable(declaration)
            if level.type_model is not None:
                found = self._find_field(level.type_model, name)
                if found:
                    return Target.field(found[0], name)
        if name in self.static_imports:
            return Target.field(self.static_imports[name], name)
        return None

    def _name_as_qualifier(self, name: str, scope: _Scope) -> Target:
        """Resolve the head of ``a.b.c``: value, then type, then package."""
        target = self._lookup_value(name, scope)
        if target is not None:
            return target
        qualified = self._lookup_type(name, scope)
        if qualified:
            return Target.type(qualified)
        if name in self.package_roots:
            return Target.package(name)
        owner = self._inherited_owner(scope)
        if owner:
            return Target.field(owner, name)
        if name[:1].islower():
            return Target.package(name)
        return Target.type(self._fallback_type(name))

    def _member_target(self, qualifier: Optional[Target], qualifier_type: Optional[str], name: str) -> Target:
        """Target of ``name`` in ``qualifier.name``."""
        if qualifier is not None and qualifier.kind is TargetKind.PACKAGE:
            qualified = f"{qualifier.name}.{name}"
            return Target.type(qualified) if name[:1].isupper() else Target.package(qualified)

        if qualifier is not None and qualifier.kind is TargetKind.TYPE:
            owner = qualifier.name
            model = self.types.get(owner)
            if model is not None:
                found = self._find_field(model, name)
                if found:
                    return Target.field(found[0], name)
                if f"{owner}${name}" in self.types:
                    return Target.type(f"{owner}${name}")
                return Target.field(owner, name)
            if name.isupper() or not name[:1].isupper():
                return Target.field(owner, name)
            return Target.type(f"{owner}${name}")

        return self._field_target(qualifier_type, name)

    def _field_target(self, owner: Optional[str], name: str) -> Target:
        model = self.types.get(owner) if owner else None
        if model is not None:
            found = self._find_field(model, name)
            if found:
                return Target.field(found[0], name)
        return Target.field(owner, name)

    def _type_of_target(self, target: Optional[Target]) -> Optional[str]:
        if target is None:
            return None
        if target.kind is TargetKind.TYPE:
            return target.name
        if target.declaration is not None:
            return target.declaration.type_name or None
        if target.kind is TargetKind.FIELD and target.owner in self.types:
            found = self._find_field(self.types[target.owner], target.name)
            if found:
                return found[1].type_name
        return None

    @staticmethod
    def _pick_descriptor(overloads: List[MethodModel], arg_count: int) -> Optional[str]:
        if len(overloads) == 1:
            return overloads[0].descriptor
        matching = [m for m in overloads if len(m.parameters) == arg_count]
        if len(matching) == 1:
            return matching[0].descriptor
        return None

    def _pick_method(self, overloads: List[MethodModel], arg_count: int) -> Optional[MethodModel]:
        descriptor = self._pick_descriptor(overloads, arg_count)
        return next((m for m in overloads if m.descriptor == descriptor), None) if descriptor else None

    def _find_method_in_scope(self, name: str, scope: _Scope) -> Optional[Tuple[str, List[MethodModel]]]:
        for level in scope.chain():
            if level.type_model is not None:
                found = self._find_methods(level.type_model, name)
                if found:
                    return found
        return None

    def _resolve_method_call(self, name: str, arg_count: int, scope: _Scope) -> Optional[Target]:
        """Target of an unqualified call ``name(...)``."""
        found = self._find_method_in_scope(name, scope)
        if found:
            owner, overloads = found
            return Target.method(owner, name, self._pick_descriptor(overloads, arg_count))
        if name in self.static_imports:
            return Target.method(self.static_imports[name], name)
        owner = self._inherited_owner(scope)
        if owner:
            return Target.method(owner, name)
        if name in OBJECT_METHODS:
            return Target.method('java.lang.Object', name)
        return None

    def _method_target(self, owner: Optional[str], name: str, arg_count: int) -> Target:
        model = self.types.get(owner) if owner else None
        if model is not None:
            found = self._find_methods(model, name)
            if found:
                declaring, overloads = found
                return Target.method(declaring, name, self._pick_descriptor(overloads, arg_count))
        return Target.method(owner, name)

    def _superclass(self, scope: _Scope) -> Optional[str]:
        model = scope.enclosing_type()
        if model is None:
            return None
        return model.superclass or 'java.lang.Object'

    @staticmethod
    def _argument_count(node: Optional[TSNode]) -> int:
        if node is None:
            return 0
        return sum(1 for child in node.named_children if child.type not in COMMENTS)

    def _qualifier_info(self, node: TSNode, scope: _Scope) -> Tuple[Optional[Target], Optional[str]]:
        """Target and static type of a qualifier expression, without binding."""
        if node.type == 'identifier':
            target = self._name_as_qualifier(self._text(node), scope)
            return target, self._type_of_target(target)
        if node.type == 'field_access':
            qualifier, qualifier_type = self._qualifier_info(node.child_by_field_name('object'), scope)
            field_node = node.child_by_field_name('field')
            if field_node is None or field_node.type != 'identifier':
                return None, qualifier_type
            target = self._member_target(qualifier, qualifier_type, self._text(field_node))
            return target, self._type_of_target(target)
        return None, self._expression_type(node, scope)

    def _expression_type(self, node: Optional[TSNode], scope: _Scope) -> Optional[str]:
        """Static type of an expression where it can be read off the source."""
        if node is None:
            return None
        kind = node.type
        if kind == 'identifier':
            return self._type_of_target(self._lookup_value(self._text(node), scope))
        if kind == 'this':
            model = scope.enclosing_type()
            return model.qualified_name if model else None
        if kind == 'super':
            return self._superclass(scope)
        if kind in ('string_literal', 'text_block'):
            return 'java.lang.String'
        if kind == 'parenthesized_expression':
            inner = [c for c in node.named_children if c.type not in COMMENTS]
            return self._expression_type(inner[0], scope) if inner else None
        if kind in ('cast_expression', 'object_creation_expression'):
            return self._qualify_node(node.child_by_field_name('type'), scope) or None
        if kind == 'field_access':
            return self._qualifier_info(node, scope)[1]
        if kind == 'array_access':
            array_type = self._expression_type(node.child_by_field_name('array'), scope)
            if array_type and array_type.endswith('[]'):
                return array_type[:-2]
            return None
        if kind == 'method_invocation':
            return self._invocation_type(node, scope)
        return None

    def _invocation_type(self, node: TSNode, scope: _Scope) -> Optional[str]:
        name = self._text(node.child_by_field_name('name'))
        arg_count = self._argument_count(node.child_by_field_name('arguments'))
        obj = node.child_by_field_name('object')
        if obj is None:
            found = self._find_method_in_scope(name, scope)
        else:
            owner = self._qualifier_info(obj, scope)[1]
            model = self.types.get(owner) if owner else None
            found = self._find_methods(model, name) if model is not None else None
        if not found:
            return None
        method = self._pick_method(found[1], arg_count)
        if method is None or method.return_type == 'void':
            return None
        return method.return_type

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _convert_expression_name(self, node: TSNode, scope: _Scope) -> Node:
        """A simple name used as a value: variable, parameter or field."""
        name = self._text(node)
        target = self._lookup_value(name, scope)
        if target is None:
            owner = self._inherited_owner(scope)
            if owner:
                target = Target.field(owner, name)
        return self._reference(node, target)

    def _convert_type_identifier(self, node: TSNode, scope: _Scope) -> Node:
        name = self._text(node)
        if name == 'var':
            return self._plain(node)
        qualified = self._lookup_type(name, scope) or self._fallback_type(name)
        return self._reference(node, Target.type(qualified))

    def _convert_type_chain(self, node: TSNode, scope: _Scope) -> Node:
        return self._type_chain(node, scope)[0]

    def _type_chain(self, node: TSNode, scope: _Scope) -> Tuple[Node, Target]:
        """Convert ``a.b.C.D`` in type position: packages, then types."""
        if node.type in ('type_identifier', 'identifier'):
            name = self._text(node)
            qualified = self._lookup_type(name, scope)
            if qualified:
                target = Target.type(qualified)
            elif name[:1].islower():
                target = Target.package(name)
            else:
                target = Target.type(self._fallback_type(name))
            return self._reference(node, target), target

        converted = self._plain(node)
        named = [c for c in node.named_children if c.type not in COMMENTS]
        if not named:
            return converted, Target.type(self._fallback_type(self._text(node)))

        if node.type == 'generic_type':
            head, target = self._type_chain(named[0], scope)
            converted.children.append(head)
            for child in named[1:]:
                converted.children.append(self._convert(child, scope))
            return converted, target

        head = node.child_by_field_name('scope') or named[0]
        last = node.child_by_field_name('name') or named[-1]
        prefix_node, prefix = self._type_chain(head, scope)
        converted.children.append(prefix_node)
        for child in named:
            if not _same(child, head) and not _same(child, last):
                converted.children.append(self._convert(child, scope))

        name = self._text(last)
        if prefix.kind is TargetKind.PACKAGE:
            qualified = f"{prefix.name}.{name}"
            target = Target.type(qualified) if name[:1].isupper() else Target.package(qualified)
        else:
            target = Target.type(f"{prefix.name}${name}")
        converted.children.append(self._reference(last, target))
        return converted, target

    def _qualified_expression(self, node: TSNode, scope: _Scope) -> Tuple[Node, Optional[Target], Optional[str]]:
        """Convert a qualifier, returning its node, target and static type."""
        if node.type == 'identifier':
            target = self._name_as_qualifier(self._text(node), scope)
            return self._reference(node, target), target, self._type_of_target(target)

        if node.type == 'field_access':
            converted = self._plain(node)
            obj = node.child_by_field_name('object')
            field_node = node.child_by_field_name('field')
            qualifier, qualifier_type = None, None
            target, static_type = None, None
            for child in node.named_children:
                if _same(child, obj):
                    sub, qualifier, qualifier_type = self._qualified_expression(child, scope)
                    converted.children.append(sub)
                elif _same(child, field_node) and child.type == 'identifier':
                    target = self._member_target(qualifier, qualifier_type, self._text(child))
                    static_type = self._type_of_target(target)
                    converted.children.append(self._reference(child, target))
                elif _same(child, field_node):
                    # Outer.this
                    static_type = qualifier_type
                    converted.children.append(self._plain(child))
                else:
                    converted.children.append(self._convert(child, scope))
            return converted, target, static_type

        return self._convert(node, scope), None, self._expression_type(node, scope)

    def _convert_field_access(self, node: TSNode, scope: _Scope) -> Node:
        return self._qualified_expression(node, scope)[0]

    def _convert_method_invocation(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        obj = node.child_by_field_name('object')
        name_node = node.child_by_field_name('name')
        arg_count = self._argument_count(node.child_by_field_name('arguments'))
        qualifier_type = None

        for child in node.named_children:
            if _same(child, obj):
                sub, _, qualifier_type = self._qualified_expression(child, scope)
                converted.children.append(sub)
            elif _same(child, name_node):
                name = self._text(child)
                if obj is None:
                    target = self._resolve_method_call(name, arg_count, scope)
                else:
                    target = self._method_target(qualifier_type, name, arg_count)
                converted.children.append(self._reference(child, target))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_method_reference(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        named = [c for c in node.named_children if c.type not in COMMENTS]
        if not named:
            return converted

        head = named[0]
        if head.type in ('type_identifier', 'scoped_type_identifier', 'generic_type'):
            head_node, head_target = self._type_chain(head, scope)
            owner = head_target.name
        else:
            head_node, head_target, owner = self._qualified_expression(head, scope)
            if head_target is not None and head_target.kind is TargetKind.TYPE:
                owner = head_target.name
        converted.children.append(head_node)

        for child in named[1:]:
            if child.type == 'identifier' and _same(child, named[-1]):
                converted.children.append(self._reference(child, self._method_target(owner, self._text(child), -1)))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_object_creation(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        type_node = node.child_by_field_name('type')
        for child in node.named_children:
            if child.type == 'class_body':
                anonymous = self._new_anonymous_type(scope.enclosing_type(), scope, node, child,
                                                     self._qualify_node(type_node, scope))
                converted.children.append(self._nested_type_node(child, anonymous))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_switch(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        condition = node.child_by_field_name('condition')
        body = node.child_by_field_name('body')
        for child in node.named_children:
            if _same(child, body):
                inner = _Scope(scope)
                inner.switch_type = self._expression_type(condition, scope)
                converted.children.append(self._convert_children(child, inner))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_switch_label(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        subject_type = scope.enclosing_switch_type()
        for child in node.named_children:
            if child.type == 'identifier':
                # Enum constants in case labels are named without their type
                name = self._text(child)
                target = self._lookup_value(name, scope) or self._field_target(subject_type, name)
                converted.children.append(self._reference(child, target))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_annotation(self, node: TSNode, scope: _Scope) -> Node:
        converted = self._plain(node)
        name_node = node.child_by_field_name('name')
        annotation_type = None
        for child in node.named_children:
            if _same(child, name_node):
                sub, target = self._type_chain(child, scope)
                annotation_type = target.name
                converted.children.append(sub)
            elif child.type == 'annotation_argument_list':
                converted.children.append(self._convert_annotation_arguments(child, scope, annotation_type))
            else:
                converted.children.append(self._convert(child, scope))
        return converted

    def _convert_annotation_arguments(self, node: TSNode, scope: _Scope, annotation_type: Optional[str]) -> Node:
        converted = self._plain(node)
        for child in node.named_children:
            if child.type != 'element_value_pair':
                converted.children.append(self._convert(child, scope))
                continue
            pair = self._plain(child)
            key = child.child_by_field_name('key')
            for part in child.named_children:
                if _same(part, key):
                    pair.children.append(self._reference(part, Target.method(annotation_type, self._text(part))))
                else:
                    pair.children.append(self._convert(part, scope))
            converted.children.append(pair)
        return converted

