from typing import Dict, List, NamedTuple, Optional, Tuple

from tsdoclet.diagnostics import DiagnosticSink
from tsdoclet.helpers import to_identifier
from tsdoclet.logger import logger
from tsdoclet.models import (
    CONTAINER_KINDS,
    CallSignature,
    Parameter,
    SymbolKind,
    SymbolNode,
    TypedefDoclet,
)
from tsdoclet.overloads import is_callback, parameter_from
from tsdoclet.tree import SymbolTree
from tsdoclet.typeexpr import (
    ANY,
    NULL,
    ArrayType,
    NamedType,
    RecordField,
    RecordType,
    TypeNode,
    make_union,
)


class PropertyPath(NamedTuple):
    root: str
    root_is_array: bool
    path: List[Tuple[str, bool]]  # (segment, segment holds array elements)


def parse_property_name(name: str) -> Optional[PropertyPath]:
    """
    ``opts.a`` -> root ``opts``, path ``[("a", False)]``;
    ``employees[].name`` -> array root ``employees``, path ``[("name", False)]``.
    Returns None for plain parameter names.
    """
    if "." not in name:
        return None
    segments: List[Tuple[str, bool]] = []
    for seg in name.split("."):
        is_array = seg.endswith("[]")
        seg = seg[:-2] if is_array else seg
        if not seg:
            return None
        segments.append((seg, is_array))
    (root, root_is_array), path = segments[0], segments[1:]
    return PropertyPath(root=root, root_is_array=root_is_array, path=path)


class _Shape:
    """One level of a dotted property description."""

    def __init__(self) -> None:
        self.param: Optional[Parameter] = None
        self.is_array = False
        self.children: Dict[str, "_Shape"] = {}

    def insert(self, path: List[Tuple[str, bool]], param: Parameter) -> None:
        node = self
        for seg, is_array in path:
            node = node.children.setdefault(seg, _Shape())
            node.is_array = node.is_array or is_array
        node.param = param

    def record(self) -> RecordType:
        return RecordType(
            fields=tuple(
                shape.field(name) for name, shape in self.children.items()
            )
        )

    def holds_array(self) -> bool:
        return self.is_array or (
            self.param is not None and isinstance(self.param.type, ArrayType)
        )

    def field(self, name: str) -> RecordField:
        param = self.param
        if self.children:
            ftype: TypeNode = self.record()
            if self.holds_array():
                ftype = ArrayType(element=ftype)
        else:
            ftype = param.type if param is not None else ANY
        if param is not None and param.nullable:
            ftype = make_union([ftype, NULL])
        return RecordField(
            name=name,
            type=ftype,
            optional=param.optional if param is not None else False,
            description=param.description if param is not None else None,
        )


def record_from_properties(params: List[Parameter]) -> RecordType:
    """
    Build a record type from (possibly dotted) property descriptions, nesting
    ``a.b`` under ``a``.
    """
    shape = _Shape()
    for param in params:
        parsed = parse_property_name(param.name)
        if parsed is None:
            shape.insert([(param.name, False)], param)
        else:
            shape.insert([(parsed.root, parsed.root_is_array)] + parsed.path, param)
    return shape.record()


def expand_property_parameters(tree: SymbolTree, sink: DiagnosticSink) -> None:
    """
    Replace dotted parameter descriptions by a synthesized typedef named
    after the owning symbol and the root parameter, inserted right after
    the owner in the nearest enclosing declaration scope. Object-shaped
    typedefs get their record type here as well.
    """
    expander = _Expander(tree, sink)
    for node in tree.nodes():
        if node.kind == SymbolKind.TYPEDEF and not is_callback(node.doclet):
            expander.expand_typedef(node)
        for signature in node.signatures:
            expander.expand_signature(node, signature)
    logger.debug("Property parameters expanded", synthesized=expander.count)


class _Expander:
    def __init__(self, tree: SymbolTree, sink: DiagnosticSink) -> None:
        self.tree = tree
        self.sink = sink
        self.count = 0
        self._inserted: Dict[int, int] = {}

    def expand_typedef(self, node: SymbolNode) -> None:
        doclet = node.doclet
        if not isinstance(doclet, TypedefDoclet) or not doclet.properties:
            return
        props = [
            parameter_from(p, doclet, self.sink, position=i)
            for i, p in enumerate(doclet.properties)
        ]
        node.type = record_from_properties(props)

    def expand_signature(self, owner: SymbolNode, signature: CallSignature) -> None:
        groups: Dict[str, _Shape] = {}
        roots: Dict[str, Parameter] = {}
        order: List[str] = []
        for param in signature.params:
            parsed = parse_property_name(param.name)
            if parsed is None:
                roots.setdefault(param.name, param)
                continue
            shape = groups.get(parsed.root)
            if shape is None:
                shape = groups[parsed.root] = _Shape()
                order.append(parsed.root)
            shape.is_array = shape.is_array or parsed.root_is_array
            shape.insert(parsed.path, param)
        if not groups:
            return

        replacements: Dict[str, Parameter] = {}
        for root_name in order:
            shape = groups[root_name]
            root_param = roots.get(root_name)
            shape.param = root_param
            typedef = self._synthesize(owner, root_name, shape.record())
            ref: TypeNode = NamedType(name=typedef.longname)
            if shape.holds_array():
                ref = ArrayType(element=ref)
            if root_param is not None:
                replacements[root_name] = root_param.model_copy(update={"type": ref})
            else:
                replacements[root_name] = Parameter(name=root_name, type=ref)

        params: List[Parameter] = []
        for param in signature.params:
            parsed = parse_property_name(param.name)
            root_name = parsed.root if parsed is not None else param.name
            if root_name in replacements:
                params.append(replacements.pop(root_name))
            elif parsed is None and param.name not in groups:
                params.append(param)
        signature.params = params

    def _synthesize(
        self, owner: SymbolNode, root_name: str, record: RecordType
    ) -> SymbolNode:
        anchor = owner
        container = owner.parent_ref
        while container is not None and container.kind not in CONTAINER_KINDS:
            anchor, container = container, container.parent_ref
        if container is None:
            container = self.tree.root

        taken = {c.name for c in container.children}
        base = f"{to_identifier(owner.name)}_{to_identifier(root_name)}"
        name, n = base, 1
        while name in taken or self._longname(container, name) in self.tree.index:
            n += 1
            name = f"{base}_{n}"

        typedef = SymbolNode(
            kind=SymbolKind.TYPEDEF,
            name=name,
            longname=self._longname(container, name),
            type=record,
            synthesized=True,
        )
        index = next(
            (i for i, c in enumerate(container.children) if c is anchor),
            len(container.children) - 1,
        )
        offset = self._inserted.get(id(anchor), 0) + 1
        container.add_child(typedef, index + offset)
        self._inserted[id(anchor)] = offset
        self.tree.register(typedef)
        self.count += 1
        return typedef

    @staticmethod
    def _longname(container: SymbolNode, name: str) -> str:
        return f"{container.longname}.{name}" if container.longname else name
