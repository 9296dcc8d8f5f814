from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field

from tsdoclet.diagnostics import Diagnostic, DiagnosticSink
from tsdoclet.doclets import DocletFilter, VersionComparator, load_doclets
from tsdoclet.emitter import emit
from tsdoclet.logger import logger
from tsdoclet.overloads import merge_overloads
from tsdoclet.propparams import expand_property_parameters
from tsdoclet.settings import CompilerSettings
from tsdoclet.tree import build_tree


class CompileResult(BaseModel):
    text: str
    diagnostics: List[Diagnostic] = Field(default_factory=list)


def compile_doclets(
    doclets: Iterable[Any],
    settings: Optional[CompilerSettings] = None,
    *,
    version_comparator: Optional[VersionComparator] = None,
) -> CompileResult:
    """
    Compile a doclet collection (raw ``jsdoc -X`` records or doclet models)
    into the text of one ambient declaration file.

    Raises ``CompilationError`` when a fatal diagnostic is recorded; no text
    is produced in that case.
    """
    settings = settings or CompilerSettings()
    sink = DiagnosticSink()

    loaded = load_doclets(doclets, sink)
    tree = build_tree(loaded, sink, DocletFilter(settings, version_comparator))
    merge_overloads(tree, sink)
    expand_property_parameters(tree, sink)
    text = emit(tree, settings, sink)

    logger.info(
        "Declarations compiled",
        doclets=len(loaded),
        symbols=len(tree.index),
        diagnostics=len(sink.items),
    )
    return CompileResult(text=text, diagnostics=list(sink.items))
