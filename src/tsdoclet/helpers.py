import importlib
import re
from typing import Any, Callable, List, Tuple

MODULE_PREFIX = "module:"
LONGNAME_SEPARATORS = ".#~"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


def split_longname(longname: str) -> List[Tuple[str, str]]:
    """
    Split a jsdoc longname into ``(separator, segment)`` pairs. The first
    pair has an empty separator. Quoted segments and the path of a
    ``module:`` prefix are kept whole:

        module:foo/bar.Baz#qux -> [("", "module:foo/bar"), (".", "Baz"), ("#", "qux")]
    """
    parts: List[Tuple[str, str]] = []
    sep = ""
    buf: List[str] = []
    quoted = False
    for ch in longname:
        if ch == '"':
            quoted = not quoted
            buf.append(ch)
        elif not quoted and ch in LONGNAME_SEPARATORS:
            if buf:
                parts.append((sep, "".join(buf)))
            buf = []
            sep = ch
        else:
            buf.append(ch)
    if buf:
        parts.append((sep, "".join(buf)))
    return parts


def join_longname(parts: List[Tuple[str, str]]) -> str:
    return "".join(f"{sep}{seg}" for sep, seg in parts)


def parent_longnames(longname: str) -> List[str]:
    """
    Return every longname prefix of *longname*, nearest ancestor first.
    """
    parts = split_longname(longname)
    return [join_longname(parts[:i]) for i in range(len(parts) - 1, 0, -1)]


def last_segment(longname: str) -> str:
    parts = split_longname(longname)
    return unquote(parts[-1][1]) if parts else longname


def is_module_longname(longname: str) -> bool:
    return longname.startswith(MODULE_PREFIX)


def module_path(longname: str) -> str:
    """Return ``foo/bar`` for ``module:foo/bar`` (and ``module:"foo/bar"``)."""
    head = split_longname(longname)[0][1]
    return unquote(head[len(MODULE_PREFIX) :]) if is_module_longname(head) else head


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


def to_identifier(name: str) -> str:
    """
    Replace every character that cannot appear in an identifier with ``_``.
    """
    cleaned = re.sub(r"[^\w$]", "_", unquote(name))
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def load_callable(path: str) -> Callable[..., Any]:
    """
    Import ``package.module:attribute`` (``package.module.attribute`` is
    accepted as well) and return the attribute.
    """
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Invalid import path: {path}")
    target = getattr(importlib.import_module(module_name), attr, None)
    if not callable(target):
        raise ValueError(f"{path} is not callable")
    return target
