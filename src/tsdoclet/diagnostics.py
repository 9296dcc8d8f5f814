from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from tsdoclet.logger import logger


class Severity(str, Enum):
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class DiagnosticKind(str, Enum):
    # Recoverable: compilation continues and output is still produced
    UNRESOLVED_PARENT = "unresolved-parent"
    UNRESOLVED_TYPE = "unresolved-type"
    UNRESOLVED_SUPERTYPE = "unresolved-supertype"
    NAME_COLLISION = "name-collision"
    RESERVED_NAME = "reserved-name"
    MALFORMED_TYPE = "malformed-type"
    DUPLICATE_SYMBOL = "duplicate-symbol"
    UNSUPPORTED_KIND = "unsupported-kind"
    MULTIPLE_INHERITANCE = "multiple-inheritance"
    # Fatal: the run is aborted, no output is emitted
    CONFLICTING_KINDS = "conflicting-kinds"
    CYCLIC_MEMBEROF = "cyclic-memberof"
    EMPTY_SIGNATURES = "empty-signatures"
    INVALID_DOCLET = "invalid-doclet"


FATAL_KINDS = frozenset(
    {
        DiagnosticKind.CONFLICTING_KINDS,
        DiagnosticKind.CYCLIC_MEMBEROF,
        DiagnosticKind.EMPTY_SIGNATURES,
        DiagnosticKind.INVALID_DOCLET,
    }
)


class SourceLocation(BaseModel):
    filename: Optional[str] = None
    path: Optional[str] = None
    lineno: Optional[int] = None

    def __str__(self) -> str:
        name = self.filename or "<unknown>"
        if self.path:
            name = f"{self.path}/{name}"
        return f"{name}:{self.lineno}" if self.lineno is not None else name


class Diagnostic(BaseModel):
    kind: DiagnosticKind
    severity: Severity
    longname: Optional[str] = None
    message: str
    source: Optional[SourceLocation] = None

    def __str__(self) -> str:
        where = f" ({self.source})" if self.source else ""
        who = f" [{self.longname}]" if self.longname else ""
        return f"{self.severity.value} {self.kind.value}{who}: {self.message}{where}"


class CompilationError(ValueError):
    """
    Raised when a fatal diagnostic is recorded. Carries every diagnostic
    collected during the run, the fatal one last.
    """

    def __init__(self, diagnostic: Diagnostic, diagnostics: List[Diagnostic]):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic
        self.diagnostics = diagnostics

    @property
    def kind(self) -> DiagnosticKind:
        return self.diagnostic.kind

    @property
    def longname(self) -> Optional[str]:
        return self.diagnostic.longname


def source_of(doclet: Any) -> Optional[SourceLocation]:
    """
    Return the source location recorded in the ``meta`` block of *doclet*.
    """
    meta = getattr(doclet, "meta", None)
    if meta is None:
        return None
    return SourceLocation(filename=meta.filename, path=meta.path, lineno=meta.lineno)


class DiagnosticSink(BaseModel):
    """Collects the diagnostics of a single compilation run."""

    items: List[Diagnostic] = Field(default_factory=list)

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        *,
        doclet: Any = None,
        longname: Optional[str] = None,
    ) -> Diagnostic:
        """
        Record a diagnostic. Attribution comes from *doclet* when given,
        *longname* overrides its longname. Fatal kinds raise
        ``CompilationError``.
        """
        if longname is None and doclet is not None:
            longname = getattr(doclet, "longname", None)
        severity = Severity.FATAL if kind in FATAL_KINDS else Severity.RECOVERABLE
        diagnostic = Diagnostic(
            kind=kind,
            severity=severity,
            longname=longname,
            message=message,
            source=source_of(doclet),
        )
        self.items.append(diagnostic)

        fields = dict(kind=kind.value, longname=longname)
        if diagnostic.source is not None:
            fields.update(
                filename=diagnostic.source.filename, lineno=diagnostic.source.lineno
            )
        if severity is Severity.FATAL:
            logger.error(message, **fields)
            raise CompilationError(diagnostic, list(self.items))

        logger.warning(message, **fields)
        return diagnostic

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.items if d.kind == kind]
