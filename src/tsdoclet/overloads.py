from typing import List, Optional

from tsdoclet.diagnostics import DiagnosticKind, DiagnosticSink
from tsdoclet.logger import logger
from tsdoclet.models import (
    CallSignature,
    ClassDoclet,
    Doclet,
    DocletParam,
    MemberDoclet,
    Parameter,
    SymbolKind,
    SymbolNode,
    TypedefDoclet,
)
from tsdoclet.tree import SymbolTree, type_parameters_of
from tsdoclet.typeexpr import ANY, VOID, TypeNode, make_union, parse_type_expression


def symbol_kind_of(doclet: Doclet) -> SymbolKind:
    if isinstance(doclet, ClassDoclet):
        return SymbolKind.CLASS if doclet.kind == "class" else SymbolKind.INTERFACE
    if isinstance(doclet, MemberDoclet):
        return SymbolKind.ENUM if doclet.is_enum else SymbolKind.MEMBER
    return SymbolKind(doclet.kind)


def is_callback(doclet: Optional[Doclet]) -> bool:
    return isinstance(doclet, TypedefDoclet) and bool(doclet.params or doclet.returns)


def parameter_from(
    param: DocletParam, doclet: Doclet, sink: DiagnosticSink, position: int = 0
) -> Parameter:
    expr = parse_type_expression(
        param.type.expression if param.type else None, sink=sink, doclet=doclet
    )
    return Parameter(
        name=param.name or f"arg{position}",
        type=expr.type,
        optional=param.optional or expr.optional,
        nullable=bool(param.nullable or expr.nullable),
        variadic=param.variable or expr.variadic,
        default_value=None if param.defaultvalue is None else str(param.defaultvalue),
        description=param.description,
    )


def _return_type(doclet: Doclet, sink: DiagnosticSink) -> TypeNode:
    returns = getattr(doclet, "returns", None) or []
    if not returns:
        return VOID
    types: List[TypeNode] = []
    for ret in returns:
        if ret.type is None or not ret.type.names:
            # documented return without a type
            types.append(ANY)
            continue
        expr = parse_type_expression(ret.type.expression, sink=sink, doclet=doclet)
        types.append(expr.type)
    return make_union(types)


def signature_from_doclet(
    doclet: Doclet, kind: SymbolKind, sink: DiagnosticSink
) -> CallSignature:
    """
    Build the call signature one doclet documents. Constructors have no
    return type and take their type parameters from the class.
    """
    params = [
        parameter_from(p, doclet, sink, position=i)
        for i, p in enumerate(getattr(doclet, "params", None) or [])
    ]
    constructor = kind == SymbolKind.CLASS
    returns = getattr(doclet, "returns", None) or []
    return CallSignature(
        longname=doclet.longname,
        kind=kind,
        params=params,
        returns=None if constructor else _return_type(doclet, sink),
        returns_description=next((r.description for r in returns if r.description), None),
        type_parameters=[] if constructor else type_parameters_of(doclet),
        description=doclet.description,
        deprecated=None if doclet.deprecated in (None, False) else str(doclet.deprecated),
        since=doclet.since,
        doclet=doclet,
    )


def merge_overloads(tree: SymbolTree, sink: DiagnosticSink) -> None:
    """
    Collapse the doclets queued on each node into one symbol. Functions,
    class constructors and callback typedefs keep one call signature per
    doclet, in input order, without any deduplication. Other kinds keep the
    first doclet. Doclets of different kinds under one longname are fatal.
    """
    merged = 0
    for node in tree.nodes():
        if not node.doclets:
            continue

        for doclet in node.doclets[1:]:
            kind = symbol_kind_of(doclet)
            if kind != node.kind:
                sink.report(
                    DiagnosticKind.CONFLICTING_KINDS,
                    f"{node.longname} is documented both as {node.kind.value} and as {kind.value}",
                    doclet=doclet,
                )

        if node.kind == SymbolKind.FUNCTION:
            node.signatures = [
                signature_from_doclet(d, node.kind, sink) for d in node.doclets
            ]
        elif node.kind == SymbolKind.CLASS:
            _merge_class(node, sink)
        elif node.kind == SymbolKind.TYPEDEF and is_callback(node.doclet):
            callbacks = [d for d in node.doclets if is_callback(d)]
            node.signatures = [
                signature_from_doclet(d, node.kind, sink) for d in callbacks
            ]
            if len(callbacks) < len(node.doclets):
                _report_duplicate(node, sink)
        elif len(node.doclets) > 1:
            _report_duplicate(node, sink)

        if node.kind == SymbolKind.FUNCTION and not node.signatures:
            sink.report(
                DiagnosticKind.EMPTY_SIGNATURES,
                f"Function {node.longname} has no call signature",
                doclet=node.doclet,
            )
        if len(node.signatures) > 1:
            merged += 1

    logger.debug("Overloads merged", overloaded_symbols=merged)


def _merge_class(node: SymbolNode, sink: DiagnosticSink) -> None:
    if not node.hide_constructor:
        node.signatures = [
            signature_from_doclet(d, node.kind, sink) for d in node.doclets
        ]
    for doclet in node.doclets[1:]:
        for target, refs in (
            (node.augments, doclet.augments),
            (node.implements, doclet.implements),
            (node.mixes, doclet.mixes),
        ):
            target.extend(r for r in refs if r not in target)
        if not node.description and doclet.classdesc:
            node.description = doclet.classdesc


def _report_duplicate(node: SymbolNode, sink: DiagnosticSink) -> None:
    sink.report(
        DiagnosticKind.DUPLICATE_SYMBOL,
        f"{node.longname} is documented {len(node.doclets)} times, the first doclet is used",
        doclet=node.doclets[1],
    )
