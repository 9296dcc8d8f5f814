import re
from typing import Any, Callable, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from tsdoclet.diagnostics import DiagnosticKind, DiagnosticSink
from tsdoclet.helpers import load_callable
from tsdoclet.logger import logger
from tsdoclet.models import (
    SUPPORTED_DOCLET_KINDS,
    Access,
    Doclet,
    DocletAdapter,
    DocletKind,
)
from tsdoclet.settings import CompilerSettings

VersionComparator = Callable[[str, Optional[str]], bool]

_SEMVER_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)", re.IGNORECASE)


def _parse_semver(version: Optional[str]) -> Optional[Tuple[int, int, int]]:
    m = _SEMVER_RE.match((version or "").strip())
    if not m:
        return None
    return int(m.group(1)), int(m.group(2)), int(m.group(3))


def default_version_comparator(tagged_version: str, latest_version: Optional[str]) -> bool:
    """
    Keep a doclet when its ``@since`` is a semantic version not newer than
    *latest_version*. Without a valid latest version every semver tag is
    kept; a tag that is not a semantic version is rejected.
    """
    tagged = _parse_semver(tagged_version)
    if tagged is None:
        return False
    latest = _parse_semver(latest_version)
    if latest is None:
        return True
    return latest >= tagged


def load_doclets(records: Iterable[Any], sink: DiagnosticSink) -> List[Doclet]:
    """
    Validate raw doclet records (as produced by ``jsdoc -X``) into doclet
    models. Unknown kinds are skipped with a diagnostic, a record that does
    not validate aborts the run.
    """
    doclets: List[Doclet] = []
    for index, record in enumerate(records):
        if isinstance(record, BaseModel):
            doclets.append(record)
            continue
        if not isinstance(record, dict):
            sink.report(
                DiagnosticKind.INVALID_DOCLET,
                f"Doclet #{index} is not an object: {type(record).__name__}",
            )
            continue

        kind = record.get("kind")
        longname = record.get("longname")
        if kind not in SUPPORTED_DOCLET_KINDS:
            sink.report(
                DiagnosticKind.UNSUPPORTED_KIND,
                f"Unsupported doclet kind: {kind}",
                longname=longname if isinstance(longname, str) else None,
            )
            continue

        try:
            doclets.append(DocletAdapter.validate_python(record))
        except ValidationError as ex:
            first = ex.errors()[0]
            loc = ".".join(str(p) for p in first["loc"])
            sink.report(
                DiagnosticKind.INVALID_DOCLET,
                f"Doclet #{index} is malformed: {loc}: {first['msg']}",
                longname=longname if isinstance(longname, str) else None,
            )
    return doclets


class DocletFilter:
    """
    Decides which doclets take part in a compilation: drops ignored, file
    and undocumented doclets, ignored scopes, private doclets (when
    configured) and doclets newer than the configured latest version.
    """

    def __init__(
        self,
        settings: CompilerSettings,
        comparator: Optional[VersionComparator] = None,
    ) -> None:
        self.settings = settings
        if comparator is None:
            if settings.since.comparator:
                comparator = load_callable(settings.since.comparator)
            else:
                comparator = default_version_comparator
        self.comparator = comparator

    def accepts(self, doclet: Doclet) -> bool:
        if doclet.kind == DocletKind.FILE.value:
            return False
        if doclet.ignore:
            return False
        if doclet.undocumented and not self.settings.include_undocumented:
            return False
        if doclet.scope is not None and doclet.scope.value in self.settings.ignore_scopes:
            return False
        if doclet.access == Access.PRIVATE and not self.settings.include_private:
            return False
        if doclet.since and not self.comparator(
            doclet.since, self.settings.since.latest_version
        ):
            logger.debug(
                "Doclet left out by @since",
                longname=doclet.longname,
                since=doclet.since,
                latest_version=self.settings.since.latest_version,
            )
            return False
        return True
