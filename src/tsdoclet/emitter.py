import json
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from tsdoclet.diagnostics import DiagnosticKind, DiagnosticSink
from tsdoclet.helpers import (
    is_identifier,
    is_module_longname,
    module_path,
    split_longname,
    to_identifier,
)
from tsdoclet.logger import logger
from tsdoclet.models import (
    Access,
    CallSignature,
    Parameter,
    Scope,
    SymbolKind,
    SymbolNode,
    TypeParameter,
)
from tsdoclet.settings import CompilerSettings, UnresolvedTypePolicy
from tsdoclet.tree import SymbolTree
from tsdoclet.typeexpr import (
    ANY,
    NULL,
    PRIMITIVE_TYPES,
    ArrayType,
    FunctionType,
    GenericType,
    LiteralType,
    NamedType,
    RecordType,
    TypeNode,
    UnionType,
    UnknownType,
    VOID,
    make_union,
    parse_type_expression,
)

UNDEFINED = NamedType(name="undefined")

RESERVED_WORDS = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "implements",
        "import",
        "in",
        "instanceof",
        "interface",
        "let",
        "new",
        "null",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "static",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
    }
)

# Names a class, interface, enum or type alias cannot take
PREDEFINED_TYPE_NAMES = frozenset(
    {
        "any",
        "bigint",
        "boolean",
        "never",
        "number",
        "object",
        "string",
        "symbol",
        "undefined",
        "unknown",
    }
)

TYPE_KINDS = frozenset(
    {SymbolKind.CLASS, SymbolKind.INTERFACE, SymbolKind.TYPEDEF, SymbolKind.ENUM}
)

# (name, type, optional, variadic)
ParamSpec = Tuple[Optional[str], TypeNode, bool, bool]


class DeclarationEmitter:
    """
    Renders a finished symbol tree as the body of an ambient declaration
    file. Names are sanitized up front so that type references rendered
    anywhere in the file agree with the declared names.
    """

    def __init__(
        self, tree: SymbolTree, settings: CompilerSettings, sink: DiagnosticSink
    ) -> None:
        self.tree = tree
        self.settings = settings
        self.sink = sink
        self.indent = settings.output.indent
        self.names: Dict[int, str] = {}
        self._placed: Set[int] = {id(n) for n in tree.root.walk()}
        self._by_simple_name: Dict[str, List[SymbolNode]] = {}
        self._reported: Set[str] = set()

        self._renderers: Dict[
            SymbolKind, Callable[[SymbolNode, int, str], List[str]]
        ] = {
            SymbolKind.CLASS: self._class,
            SymbolKind.INTERFACE: self._interface,
            SymbolKind.FUNCTION: self._function,
            SymbolKind.MEMBER: self._variable,
            SymbolKind.TYPEDEF: self._typedef,
            SymbolKind.ENUM: self._enum,
        }

        for node in tree.nodes():
            if node.kind in TYPE_KINDS:
                self._by_simple_name.setdefault(node.name, []).append(node)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def emit(self) -> str:
        for node in self.tree.nodes():
            if node.kind == SymbolKind.FUNCTION and not node.signatures:
                self.sink.report(
                    DiagnosticKind.EMPTY_SIGNATURES,
                    f"Function {node.longname} has no call signature",
                    doclet=node.doclet,
                    longname=node.longname,
                )

        for node in self.tree.root.walk():
            self._assign_names(self._companion_members(node))

        blocks = [
            self._declaration(child, 0, "declare ")
            for child in self.tree.root.children
        ]
        text = "\n\n".join("\n".join(block) for block in blocks if block)
        logger.debug("Declarations emitted", blocks=len(blocks))
        return f"{text}\n" if text else ""

    # ------------------------------------------------------------------
    # Placement and names
    # ------------------------------------------------------------------

    def _is_inline(self, node: SymbolNode) -> bool:
        """Whether *node* is declared in the body of its class or interface."""
        parent = node.parent_ref
        return (
            parent is not None
            and parent.kind in (SymbolKind.CLASS, SymbolKind.INTERFACE)
            and node.kind in (SymbolKind.FUNCTION, SymbolKind.MEMBER)
            and node.scope != Scope.INNER
        )

    def _companion_members(self, node: SymbolNode) -> List[SymbolNode]:
        """
        Children declared in the namespace body of *node*: every child of a
        container, and the children of other kinds that cannot live inline.
        Inline members that have children of their own are listed too, they
        get a nested namespace of their name.
        """
        return [c for c in node.children if not self._is_inline(c) or c.children]

    def _as_namespace(self, node: SymbolNode) -> bool:
        if node.kind == SymbolKind.NAMESPACE:
            return True
        if node.kind == SymbolKind.MODULE:
            return node.parent_ref is not self.tree.root
        if self._is_inline(node):
            return True
        return node.kind == SymbolKind.MEMBER and bool(node.children)

    @staticmethod
    def _is_reserved(name: str, node: SymbolNode) -> bool:
        return name in RESERVED_WORDS or (
            node.kind in TYPE_KINDS and name in PREDEFINED_TYPE_NAMES
        )

    def _assign_names(self, members: List[SymbolNode]) -> None:
        taken: Set[str] = set()
        for node in members:
            if node.kind == SymbolKind.MODULE and node.parent_ref is self.tree.root:
                self.names[id(node)] = node.name
                continue
            # namespaces merge with each other and with classes, functions and enums
            namespace = self._as_namespace(node)
            base = node.name if is_identifier(node.name) else to_identifier(node.name)
            reserved = self._is_reserved(base, node)
            collided = not namespace and base in taken

            name, n = base, 0
            while self._is_reserved(name, node) or (not namespace and name in taken):
                n += 1
                name = f"{base}_{n}"

            if reserved:
                self.sink.report(
                    DiagnosticKind.RESERVED_NAME,
                    f"{node.name} is a reserved word, declared as {name}",
                    doclet=node.doclet,
                    longname=node.longname,
                )
            elif collided:
                self.sink.report(
                    DiagnosticKind.NAME_COLLISION,
                    f"{node.name} is declared twice in one scope, {node.longname} is declared as {name}",
                    doclet=node.doclet,
                    longname=node.longname,
                )
            elif name != node.name:
                logger.debug("Name sanitized", longname=node.longname, name=name)

            if not namespace:
                taken.add(name)
            self.names[id(node)] = name

    def _name(self, node: SymbolNode) -> str:
        return self.names.get(id(node), node.name)

    @staticmethod
    def _label(name: str) -> str:
        return name if is_identifier(name) else json.dumps(name)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def format_type(
        self,
        node: TypeNode,
        owner: Optional[SymbolNode] = None,
        type_params: FrozenSet[str] = frozenset(),
    ) -> str:
        owner = owner if owner is not None else self.tree.root

        if isinstance(node, NamedType):
            return self._format_name(node.name, owner, type_params)

        if isinstance(node, UnionType):
            return " | ".join(
                self._wrapped(m, owner, type_params, (FunctionType,))
                for m in node.members
            )

        if isinstance(node, ArrayType):
            inner = self._wrapped(
                node.element, owner, type_params, (UnionType, FunctionType)
            )
            return f"{inner}[]"

        if isinstance(node, GenericType):
            args = [self.format_type(a, owner, type_params) for a in node.args]
            if node.base == "Object" and len(args) == 2:
                key = args[0] if args[0] in ("string", "number", "symbol") else "string"
                return f"{{ [key: {key}]: {args[1]} }}"
            base = self._resolve(node.base, owner, type_params)
            if base is None:
                base = self._unresolved(node.base, owner)
                if base == "any":
                    return base
            return f"{base}<{', '.join(args)}>"

        if isinstance(node, FunctionType):
            return self._format_function_type(node, owner, type_params)

        if isinstance(node, RecordType):
            if not node.fields:
                return "{}"
            fields = "; ".join(
                f"{self._label(f.name)}{'?' if f.optional else ''}: "
                f"{self.format_type(f.type, owner, type_params)}"
                for f in node.fields
            )
            return f"{{ {fields} }}"

        if isinstance(node, LiteralType):
            return node.value

        if isinstance(node, UnknownType):
            return "any"

        raise ValueError(f"Unsupported type node: {node!r}")

    def _wrapped(
        self,
        node: TypeNode,
        owner: SymbolNode,
        type_params: FrozenSet[str],
        kinds: Tuple[type, ...],
    ) -> str:
        text = self.format_type(node, owner, type_params)
        return f"({text})" if isinstance(node, kinds) else text

    def _format_function_type(
        self, node: FunctionType, owner: SymbolNode, type_params: FrozenSet[str]
    ) -> str:
        specs: List[ParamSpec] = [
            (p.name, p.type, p.optional, p.variadic) for p in node.params
        ]
        params = self._parameter_list(specs, owner, type_params)
        if node.this_type is not None:
            this = f"this: {self.format_type(node.this_type, owner, type_params)}"
            params = f"{this}, {params}" if params else this
        if node.constructs is not None:
            return f"new ({params}) => {self.format_type(node.constructs, owner, type_params)}"
        returns = self.format_type(node.returns or VOID, owner, type_params)
        return f"({params}) => {returns}"

    def _format_name(
        self, name: str, owner: SymbolNode, type_params: FrozenSet[str]
    ) -> str:
        resolved = self._resolve(name, owner, type_params)
        return resolved if resolved is not None else self._unresolved(name, owner)

    def _resolve(
        self, name: str, owner: SymbolNode, type_params: FrozenSet[str]
    ) -> Optional[str]:
        if name in PRIMITIVE_TYPES or name in type_params:
            return name
        target = self._lookup(name)
        if target is not None:
            return self._qualified(target, owner)
        if name in self.settings.known_types:
            return name
        return None

    def _lookup(self, name: str) -> Optional[SymbolNode]:
        node = self.tree.get(name)
        if node is None and not is_module_longname(name):
            candidates = self._by_simple_name.get(name, [])
            if len(candidates) == 1:
                node = candidates[0]
        if node is None or node.kind not in TYPE_KINDS or id(node) not in self._placed:
            return None
        return node

    def _unresolved(self, name: str, owner: SymbolNode) -> str:
        if self.settings.unresolved_types == UnresolvedTypePolicy.KEEP:
            return self._verbatim(name)
        if name not in self._reported:
            self._reported.add(name)
            self.sink.report(
                DiagnosticKind.UNRESOLVED_TYPE,
                f"Type {name} matches no documented symbol, emitted as any",
                doclet=owner.doclet,
                longname=owner.longname or None,
            )
        return "any"

    @staticmethod
    def _verbatim(name: str) -> str:
        parts = split_longname(name)
        if parts and is_module_longname(parts[0][1]):
            rest = "".join(f".{seg}" for _, seg in parts[1:])
            return f'import("{module_path(parts[0][1])}"){rest}'
        return ".".join(seg for _, seg in parts) or name

    @staticmethod
    def _module_of(node: SymbolNode) -> Optional[SymbolNode]:
        top: Optional[SymbolNode] = None
        current: Optional[SymbolNode] = node
        while current is not None and current.kind != SymbolKind.ROOT:
            top, current = current, current.parent_ref
        return top if top is not None and top.kind == SymbolKind.MODULE else None

    def _qualified(self, target: SymbolNode, owner: SymbolNode) -> str:
        path: List[SymbolNode] = []
        current: Optional[SymbolNode] = target
        while current is not None and current.kind != SymbolKind.ROOT:
            path.append(current)
            current = current.parent_ref
        path.reverse()

        top = path[0]
        if top.kind != SymbolKind.MODULE:
            return ".".join(self._name(n) for n in path)
        names = [self._name(n) for n in path[1:]]
        if self._module_of(owner) is top:
            return ".".join(names)
        return f'import("{top.name}")' + "".join(f".{n}" for n in names)

    def _supertype(self, ref: str, owner: SymbolNode) -> str:
        type_params = self._type_parameter_names(owner)
        node = parse_type_expression(ref, sink=self.sink, doclet=owner.doclet).type
        if isinstance(node, NamedType):
            base, args = node.name, ()
        elif isinstance(node, GenericType) and node.base != "Object":
            base, args = node.base, node.args
        else:
            return self.format_type(node, owner, type_params)

        resolved = self._resolve(base, owner, type_params)
        if resolved is None:
            self.sink.report(
                DiagnosticKind.UNRESOLVED_SUPERTYPE,
                f"Supertype {ref} of {owner.longname} not found, emitted verbatim",
                doclet=owner.doclet,
                longname=owner.longname,
            )
            resolved = self._verbatim(base)
        if args:
            resolved += f"<{', '.join(self.format_type(a, owner, type_params) for a in args)}>"
        return resolved

    def _type_parameter_names(
        self, node: SymbolNode, extra: Sequence[TypeParameter] = ()
    ) -> FrozenSet[str]:
        names = {tp.name for tp in extra}
        current: Optional[SymbolNode] = node
        while current is not None:
            names.update(tp.name for tp in current.type_parameters)
            current = current.parent_ref
        return frozenset(names)

    @staticmethod
    def _type_parameters(params: Sequence[TypeParameter]) -> str:
        if not params:
            return ""
        rendered = [
            f"{tp.name} extends {tp.constraint}" if tp.constraint else tp.name
            for tp in params
        ]
        return f"<{', '.join(rendered)}>"

    # ------------------------------------------------------------------
    # Parameters and comments
    # ------------------------------------------------------------------

    def _parameter_list(
        self,
        params: Sequence[ParamSpec],
        owner: SymbolNode,
        type_params: FrozenSet[str],
    ) -> str:
        # an optional parameter may not precede a required one
        last_required = max(
            (
                i
                for i, (_, _, optional, variadic) in enumerate(params)
                if not optional and not variadic
            ),
            default=-1,
        )
        seen: Set[str] = set()
        rendered: List[str] = []
        for i, (name, ptype, optional, variadic) in enumerate(params):
            pname = self._parameter_name(name, i, seen)
            if variadic and i == len(params) - 1:
                text = self.format_type(ArrayType(element=ptype), owner, type_params)
                rendered.append(f"...{pname}: {text}")
            elif variadic:
                text = self.format_type(ArrayType(element=ptype), owner, type_params)
                rendered.append(f"{pname}: {text}")
            elif optional and i > last_required:
                rendered.append(f"{pname}?: {self.format_type(ptype, owner, type_params)}")
            elif optional:
                text = self.format_type(make_union([ptype, UNDEFINED]), owner, type_params)
                rendered.append(f"{pname}: {text}")
            else:
                rendered.append(f"{pname}: {self.format_type(ptype, owner, type_params)}")
        return ", ".join(rendered)

    @staticmethod
    def _parameter_name(name: Optional[str], position: int, seen: Set[str]) -> str:
        base = to_identifier(name) if name else f"arg{position}"
        candidate, n = base, 0
        while candidate in RESERVED_WORDS or candidate in seen:
            n += 1
            candidate = f"{base}_{n}"
        seen.add(candidate)
        return candidate

    def _parameters(
        self, params: Sequence[Parameter], owner: SymbolNode, type_params: FrozenSet[str]
    ) -> str:
        specs: List[ParamSpec] = [
            (
                p.name,
                make_union([p.type, NULL]) if p.nullable else p.type,
                p.optional,
                p.variadic,
            )
            for p in params
        ]
        return self._parameter_list(specs, owner, type_params)

    def _signature(
        self, signature: CallSignature, owner: SymbolNode, type_params: FrozenSet[str]
    ) -> str:
        type_params = type_params | {tp.name for tp in signature.type_parameters}
        params = self._parameters(signature.params, owner, type_params)
        returns = self.format_type(signature.returns or VOID, owner, type_params)
        return f"({params}): {returns}"

    def _comment(
        self,
        depth: int,
        description: Optional[str] = None,
        params: Sequence[Tuple[str, str]] = (),
        returns: Optional[str] = None,
        deprecated: Optional[str] = None,
        since: Optional[str] = None,
    ) -> List[str]:
        if not self.settings.output.emit_comments:
            return []
        body: List[str] = []
        if description and description.strip():
            body.extend(description.strip().splitlines())
        for name, text in params:
            body.append(f"@param {name} {text}".rstrip())
        if returns:
            body.append(f"@returns {returns}")
        if deprecated is not None:
            body.append(f"@deprecated {deprecated}".rstrip())
        if since:
            body.append(f"@since {since}")
        if not body:
            return []
        ind = self.indent * depth
        lines = [f"{ind}/**"]
        for line in body:
            line = line.replace("*/", "*\\/")
            lines.append(f"{ind} * {line}".rstrip())
        lines.append(f"{ind} */")
        return lines

    def _node_comment(self, node: SymbolNode, depth: int) -> List[str]:
        return self._comment(
            depth, node.description, deprecated=node.deprecated, since=node.since
        )

    def _signature_comment(
        self, signature: CallSignature, depth: int, constructor: bool = False
    ) -> List[str]:
        doclet = signature.doclet
        documented = getattr(doclet, "params", None) if doclet is not None else None
        if documented:
            params = [
                (p.name or f"arg{i}", p.description or "")
                for i, p in enumerate(documented)
            ]
        else:
            params = [(p.name, p.description or "") for p in signature.params]
        if constructor:
            return self._comment(depth, signature.description, params)
        return self._comment(
            depth,
            signature.description,
            params,
            returns=signature.returns_description,
            deprecated=signature.deprecated,
            since=signature.since,
        )

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declaration(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        if node.kind == SymbolKind.MODULE and node.parent_ref is self.tree.root:
            return self._module(node, depth)
        if self._as_namespace(node):
            return self._namespace(node, node.children, depth, prefix, True)
        lines = self._renderers[node.kind](node, depth, prefix)
        companion = self._companion_members(node)
        if companion:
            lines.extend(self._namespace(node, companion, depth, prefix, False))
        return lines

    def _body(self, members: List[SymbolNode], depth: int, prefix: str) -> List[str]:
        lines: List[str] = []
        for member in members:
            if self._is_inline(member):
                # namespace of an inline member that has children of its own
                lines.extend(
                    self._namespace(
                        member, self._companion_members(member), depth, prefix, False
                    )
                )
            else:
                lines.extend(self._declaration(member, depth, prefix))
        return lines

    def _module(self, node: SymbolNode, depth: int) -> List[str]:
        ind = self.indent * depth
        name = node.name.replace("'", "\\'")
        lines = self._node_comment(node, depth)
        lines.append(f"{ind}declare module '{name}' {{")
        lines.extend(self._body(node.children, depth + 1, "export "))
        lines.append(f"{ind}}}")
        return lines

    def _namespace(
        self,
        node: SymbolNode,
        members: List[SymbolNode],
        depth: int,
        prefix: str,
        with_comment: bool,
    ) -> List[str]:
        ind = self.indent * depth
        lines = self._node_comment(node, depth) if with_comment else []
        lines.append(f"{ind}{prefix}namespace {self._name(node)} {{")
        lines.extend(self._body(members, depth + 1, ""))
        lines.append(f"{ind}}}")
        return lines

    def _class(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        inner = self.indent * (depth + 1)
        type_params = self._type_parameter_names(node)

        header = (
            f"{ind}{prefix}{'abstract ' if node.abstract else ''}class "
            f"{self._name(node)}{self._type_parameters(node.type_parameters)}"
        )
        if len(node.augments) > 1:
            self.sink.report(
                DiagnosticKind.MULTIPLE_INHERITANCE,
                f"{node.longname} augments {', '.join(node.augments)}, "
                f"extending {node.augments[0]} and implementing the rest",
                doclet=node.doclet,
                longname=node.longname,
            )
        if node.augments:
            header += f" extends {self._supertype(node.augments[0], node)}"
        implements = _unique([*node.augments[1:], *node.implements, *node.mixes])
        if implements:
            header += " implements " + ", ".join(
                self._supertype(ref, node) for ref in implements
            )

        lines = self._node_comment(node, depth)
        lines.append(f"{header} {{")
        for signature in node.signatures:
            lines.extend(self._signature_comment(signature, depth + 1, constructor=True))
            params = self._parameters(signature.params, node, type_params)
            lines.append(f"{inner}constructor({params});")
        for member in node.children:
            if self._is_inline(member):
                lines.extend(self._member(member, depth + 1, in_class=True))
        lines.append(f"{ind}}}")
        return lines

    def _interface(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        header = (
            f"{ind}{prefix}interface {self._name(node)}"
            f"{self._type_parameters(node.type_parameters)}"
        )
        extends = _unique([*node.augments, *node.implements, *node.mixes])
        if extends:
            header += " extends " + ", ".join(self._supertype(r, node) for r in extends)

        lines = self._node_comment(node, depth)
        lines.append(f"{header} {{")
        for member in node.children:
            if self._is_inline(member):
                lines.extend(self._member(member, depth + 1, in_class=False))
        lines.append(f"{ind}}}")
        return lines

    def _member(self, node: SymbolNode, depth: int, in_class: bool) -> List[str]:
        ind = self.indent * depth
        modifiers = ""
        if in_class:
            if node.access == Access.PRIVATE:
                modifiers += "private "
            elif node.access == Access.PROTECTED:
                modifiers += "protected "
            if node.is_static:
                modifiers += "static "
        label = self._label(node.name)
        type_params = self._type_parameter_names(node)

        lines: List[str] = []
        if node.kind == SymbolKind.FUNCTION:
            for signature in node.signatures:
                lines.extend(self._signature_comment(signature, depth))
                tps = self._type_parameters(signature.type_parameters)
                lines.append(
                    f"{ind}{modifiers}{label}{tps}"
                    f"{self._signature(signature, node, type_params)};"
                )
            return lines

        if node.readonly or node.constant:
            modifiers += "readonly "
        lines.extend(self._node_comment(node, depth))
        text = self.format_type(node.type or ANY, node, type_params)
        lines.append(f"{ind}{modifiers}{label}: {text};")
        return lines

    def _function(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        type_params = self._type_parameter_names(node)
        lines: List[str] = []
        for signature in node.signatures:
            lines.extend(self._signature_comment(signature, depth))
            tps = self._type_parameters(signature.type_parameters)
            lines.append(
                f"{ind}{prefix}function {self._name(node)}{tps}"
                f"{self._signature(signature, node, type_params)};"
            )
        return lines

    def _variable(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        keyword = "const" if node.constant or node.readonly else "var"
        text = self.format_type(node.type or ANY, node, self._type_parameter_names(node))
        lines = self._node_comment(node, depth)
        lines.append(f"{ind}{prefix}{keyword} {self._name(node)}: {text};")
        return lines

    def _enum(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        inner = self.indent * (depth + 1)
        lines = self._node_comment(node, depth)
        lines.append(
            f"{ind}{prefix}{'const ' if node.constant else ''}enum {self._name(node)} {{"
        )
        for value in node.enum_values:
            lines.extend(self._comment(depth + 1, value.description))
            init = f" = {value.value}" if value.value is not None else ""
            lines.append(f"{inner}{self._label(value.name)}{init},")
        lines.append(f"{ind}}}")
        return lines

    def _typedef(self, node: SymbolNode, depth: int, prefix: str) -> List[str]:
        ind = self.indent * depth
        inner = self.indent * (depth + 1)
        name = f"{self._name(node)}{self._type_parameters(node.type_parameters)}"
        type_params = self._type_parameter_names(node)

        if len(node.signatures) == 1:
            signature = node.signatures[0]
            lines = self._signature_comment(signature, depth)
            params = self._parameters(signature.params, node, type_params)
            returns = self.format_type(
                signature.returns or VOID, node, type_params
            )
            lines.append(f"{ind}{prefix}type {name} = ({params}) => {returns};")
            return lines

        lines = self._node_comment(node, depth)
        if node.signatures:
            lines.append(f"{ind}{prefix}interface {name} {{")
            for signature in node.signatures:
                lines.extend(self._signature_comment(signature, depth + 1))
                lines.append(f"{inner}{self._signature(signature, node, type_params)};")
            lines.append(f"{ind}}}")
            return lines

        if isinstance(node.type, RecordType):
            lines.append(f"{ind}{prefix}interface {name} {{")
            for field in node.type.fields:
                lines.extend(self._comment(depth + 1, field.description))
                text = self.format_type(field.type, node, type_params)
                optional = "?" if field.optional else ""
                lines.append(f"{inner}{self._label(field.name)}{optional}: {text};")
            lines.append(f"{ind}}}")
            return lines

        text = self.format_type(node.type or ANY, node, type_params)
        lines.append(f"{ind}{prefix}type {name} = {text};")
        return lines


def _unique(refs: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for ref in refs:
        if ref not in seen:
            seen.append(ref)
    return seen


def emit(tree: SymbolTree, settings: CompilerSettings, sink: DiagnosticSink) -> str:
    """
    Render *tree* as ambient declaration text: tab-indented nesting, one
    declaration per call signature, blank lines between top-level blocks.
    """
    return DeclarationEmitter(tree, settings, sink).emit()
