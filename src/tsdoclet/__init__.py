from tsdoclet.compiler import CompileResult, compile_doclets
from tsdoclet.diagnostics import CompilationError, Diagnostic, DiagnosticKind
from tsdoclet.settings import CompilerSettings

__all__ = [
    "CompilationError",
    "CompileResult",
    "CompilerSettings",
    "Diagnostic",
    "DiagnosticKind",
    "compile_doclets",
]
