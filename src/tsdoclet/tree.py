import json
import re
from typing import Any, Callable, Dict, List, Optional, Set

from tsdoclet.diagnostics import DiagnosticKind, DiagnosticSink
from tsdoclet.doclets import DocletFilter
from tsdoclet.helpers import (
    is_identifier,
    last_segment,
    module_path,
    split_longname,
    unquote,
)
from tsdoclet.logger import logger
from tsdoclet.models import (
    CONTAINER_KINDS,
    ClassDoclet,
    Doclet,
    DocletKind,
    EnumValue,
    FileDoclet,
    FunctionDoclet,
    MemberDoclet,
    NamespaceDoclet,
    PackageDoclet,
    SymbolKind,
    SymbolNode,
    TypedefDoclet,
    TypeParameter,
    new_root,
)
from tsdoclet.typeexpr import NULL, make_union, parse_type_expression


class SymbolTree:
    """
    Rooted forest of symbols plus the longname index it was linked from.
    """

    def __init__(self) -> None:
        self.root: SymbolNode = new_root()
        self.index: Dict[str, SymbolNode] = {}

    def get(self, longname: str) -> Optional[SymbolNode]:
        return self.index.get(longname)

    def register(self, node: SymbolNode) -> None:
        self.index.setdefault(node.longname, node)

    def nodes(self) -> List[SymbolNode]:
        """Every node below the root in tree order."""
        return [n for n in self.root.walk() if n is not self.root]


# ---------------------------------------------------------------------------
# Doclet -> node
# ---------------------------------------------------------------------------


_TEMPLATE_RE = re.compile(r"^\{(?P<constraint>.*)\}\s*(?P<names>.*)$", re.DOTALL)


def type_parameters_of(doclet: Doclet) -> List[TypeParameter]:
    """
    Read ``@template`` tags: ``T``, ``T, U``, ``{keyof X} T`` or ``T extends X``.
    """
    params: List[TypeParameter] = []
    for tag in doclet.tags:
        if tag.title != "template":
            continue
        text = str(tag.value if tag.value is not None else tag.text or "").strip()
        constraint: Optional[str] = None
        m = _TEMPLATE_RE.match(text)
        if m:
            constraint = m.group("constraint").strip() or None
            text = m.group("names")
        for part in text.split(","):
            name, _, extends = part.strip().partition(" extends ")
            name = name.strip()
            if not name:
                continue
            params.append(
                TypeParameter(name=name, constraint=extends.strip() or constraint)
            )
    return params


def format_enum_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).strip()
    if re.fullmatch(r"-?\d+(\.\d+)?", text):
        return text
    return json.dumps(unquote(text))


def _deprecated_text(doclet: Doclet) -> Optional[str]:
    if doclet.deprecated is None or doclet.deprecated is False:
        return None
    return "" if doclet.deprecated is True else str(doclet.deprecated)


def _base_node(doclet: Doclet, kind: SymbolKind) -> SymbolNode:
    if kind == SymbolKind.MODULE:
        name = module_path(doclet.longname)
    else:
        name = unquote(doclet.name) if doclet.name else last_segment(doclet.longname)
    return SymbolNode(
        kind=kind,
        name=name,
        longname=doclet.longname,
        scope=doclet.scope,
        access=doclet.access,
        readonly=doclet.readonly,
        description=doclet.description,
        deprecated=_deprecated_text(doclet),
        since=doclet.since,
        type_parameters=type_parameters_of(doclet),
    )


def _class_node(doclet: ClassDoclet, sink: DiagnosticSink) -> SymbolNode:
    kind = SymbolKind.CLASS if doclet.kind == "class" else SymbolKind.INTERFACE
    node = _base_node(doclet, kind)
    node.augments = list(doclet.augments)
    node.implements = list(doclet.implements)
    node.mixes = list(doclet.mixes)
    node.abstract = doclet.virtual
    node.hide_constructor = doclet.hideconstructor
    if kind == SymbolKind.CLASS:
        # classdesc documents the class, description the constructor
        node.description = doclet.classdesc
    else:
        node.description = doclet.classdesc or doclet.description
    return node


def _function_node(doclet: FunctionDoclet, sink: DiagnosticSink) -> SymbolNode:
    return _base_node(doclet, SymbolKind.FUNCTION)


def _member_node(doclet: MemberDoclet, sink: DiagnosticSink) -> SymbolNode:
    if doclet.is_enum:
        node = _base_node(doclet, SymbolKind.ENUM)
        node.constant = doclet.kind == DocletKind.CONSTANT.value
        for prop in doclet.properties:
            if prop.name:
                node.enum_values.append(
                    EnumValue(
                        name=prop.name,
                        value=format_enum_value(prop.defaultvalue),
                        description=prop.description,
                    )
                )
        return node

    node = _base_node(doclet, SymbolKind.MEMBER)
    node.constant = doclet.kind == DocletKind.CONSTANT.value
    expr = parse_type_expression(
        doclet.type.expression if doclet.type else None, sink=sink, doclet=doclet
    )
    node.type = make_union([expr.type, NULL]) if expr.nullable else expr.type
    return node


def _namespace_node(doclet: NamespaceDoclet, sink: DiagnosticSink) -> SymbolNode:
    kind = SymbolKind.MODULE if doclet.kind == "module" else SymbolKind.NAMESPACE
    return _base_node(doclet, kind)


def _typedef_node(doclet: TypedefDoclet, sink: DiagnosticSink) -> SymbolNode:
    node = _base_node(doclet, SymbolKind.TYPEDEF)
    if doclet.type is not None:
        node.type = parse_type_expression(
            doclet.type.expression, sink=sink, doclet=doclet
        ).type
    return node


_FACTORIES: Dict[str, Callable[[Any, DiagnosticSink], SymbolNode]] = {
    "class": _class_node,
    "interface": _class_node,
    "mixin": _class_node,
    "function": _function_node,
    "member": _member_node,
    "constant": _member_node,
    "namespace": _namespace_node,
    "module": _namespace_node,
    "typedef": _typedef_node,
}


def create_node(doclet: Doclet, sink: DiagnosticSink) -> SymbolNode:
    return _FACTORIES[doclet.kind](doclet, sink)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def build_tree(
    doclets: List[Doclet],
    sink: DiagnosticSink,
    doclet_filter: Optional[DocletFilter] = None,
) -> SymbolTree:
    """
    Build the symbol forest in two passes. The first pass indexes every
    doclet by longname: the first doclet of a longname creates the node and
    later doclets are queued on it for the overload merger. The second pass
    links nodes to their ``memberof`` parent in input order, so forward
    references resolve regardless of arrival order.
    """
    tree = SymbolTree()
    order: List[SymbolNode] = []
    filtered: Set[str] = set()
    packages: Set[str] = set()

    # Pass 1: index
    for doclet in doclets:
        if doclet_filter is not None and not doclet_filter.accepts(doclet):
            filtered.add(doclet.longname)
            continue
        if isinstance(doclet, PackageDoclet):
            packages.add(doclet.longname)
            continue
        if isinstance(doclet, FileDoclet):
            continue
        node = tree.get(doclet.longname)
        if node is None:
            node = create_node(doclet, sink)
            tree.register(node)
            order.append(node)
        node.doclets.append(doclet)
    filtered -= set(tree.index)

    _check_memberof_cycles(tree, order, sink)

    # Pass 2: link
    dropped: Dict[str, bool] = {}
    orphans: List[SymbolNode] = []
    for node in order:
        if _is_dropped(tree, node, filtered, dropped):
            logger.debug("Member of a filtered symbol left out", longname=node.longname)
            continue
        memberof = node.doclet.memberof
        if not memberof or memberof in packages:
            tree.root.add_child(node)
            continue
        parent = tree.get(memberof)
        if parent is not None:
            parent.add_child(node)
            continue
        orphans.append(node)

    # Orphans attach after every resolved node, ordered by missing parent
    for node in sorted(orphans, key=lambda n: n.doclet.memberof):
        _attach_unresolved(tree, node, node.doclet.memberof, sink)

    _absorb_enum_members(tree)

    logger.debug(
        "Symbol tree built",
        doclets=len(doclets),
        symbols=len(order),
        filtered=len(filtered),
    )
    return tree


def _check_memberof_cycles(
    tree: SymbolTree, order: List[SymbolNode], sink: DiagnosticSink
) -> None:
    for node in order:
        seen = {node.longname}
        parent = node.doclet.memberof
        while parent is not None and parent in tree.index:
            if parent in seen:
                sink.report(
                    DiagnosticKind.CYCLIC_MEMBEROF,
                    f"memberof chain of {node.longname} loops back through {parent}",
                    doclet=node.doclet,
                )
            seen.add(parent)
            parent = tree.index[parent].doclet.memberof


def _is_dropped(
    tree: SymbolTree, node: SymbolNode, filtered: Set[str], memo: Dict[str, bool]
) -> bool:
    if node.longname in memo:
        return memo[node.longname]
    memberof = node.doclet.memberof
    if not memberof:
        result = False
    elif memberof in filtered:
        result = True
    elif memberof in tree.index:
        result = _is_dropped(tree, tree.index[memberof], filtered, memo)
    else:
        result = False
    memo[node.longname] = result
    return result


def _attach_unresolved(
    tree: SymbolTree, node: SymbolNode, memberof: str, sink: DiagnosticSink
) -> None:
    """
    Attach *node* under the nearest ancestor of *memberof* that exists. When
    that ancestor can hold declarations, the missing path segments become
    synthesized namespaces so the qualified name survives.
    """
    parts = split_longname(memberof)
    anchor = tree.root
    depth = 0
    for i in range(len(parts) - 1, 0, -1):
        candidate = tree.get("".join(f"{s}{p}" for s, p in parts[:i]))
        if candidate is not None:
            anchor, depth = candidate, i
            break

    missing = [unquote(seg) for _, seg in parts[depth:]]
    if anchor.kind in CONTAINER_KINDS and all(
        is_identifier(seg) for seg in missing
    ):
        for i in range(depth, len(parts)):
            longname = "".join(f"{s}{p}" for s, p in parts[: i + 1])
            bucket = tree.get(longname)
            if bucket is None:
                bucket = SymbolNode(
                    kind=SymbolKind.NAMESPACE,
                    name=unquote(parts[i][1]),
                    longname=longname,
                    synthesized=True,
                )
                tree.register(bucket)
                anchor.add_child(bucket)
            anchor = bucket

    node.unresolved_parent = memberof
    anchor.add_child(node)
    where = anchor.longname or "the top level"
    sink.report(
        DiagnosticKind.UNRESOLVED_PARENT,
        f"Parent {memberof} of {node.longname} not found, attached under {where}",
        doclet=node.doclet,
    )


def _absorb_enum_members(tree: SymbolTree) -> None:
    """
    jsdoc reports enum values both as enum properties and as member
    doclets; fold the member doclets into the enum, each value once.
    """
    for node in tree.nodes():
        if node.kind != SymbolKind.ENUM:
            continue
        known = {v.name for v in node.enum_values}
        remaining: List[SymbolNode] = []
        for child in node.children:
            if child.kind != SymbolKind.MEMBER:
                remaining.append(child)
                continue
            if child.name not in known:
                doclet = child.doclet
                node.enum_values.append(
                    EnumValue(
                        name=child.name,
                        value=format_enum_value(doclet.defaultvalue if doclet else None),
                        description=child.description,
                    )
                )
                known.add(child.name)
        node.children = remaining
