import logging
import sys
from typing import Any, MutableMapping

import structlog


def add_source_location(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Fold the ``filename`` / ``lineno`` of a doclet into one ``source=file:line`` field."""
    filename = event_dict.pop("filename", None)
    lineno = event_dict.pop("lineno", None)
    if filename:
        event_dict["source"] = f"{filename}:{lineno}" if lineno is not None else filename
    return event_dict


def drop_empty_longname(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    if event_dict.get("longname") in (None, ""):
        event_dict.pop("longname", None)
    return event_dict


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        drop_empty_longname,
        add_source_location,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(),
    ],
)

# Records go through the stdlib logger "tsdoclet", levels are set on the root logger
_std_logger = logging.getLogger("tsdoclet")
_std_logger.setLevel(logging.NOTSET)
_std_logger.propagate = True

logger: structlog.BoundLogger = structlog.get_logger("tsdoclet")


def setup_logging(debug: bool) -> None:
    """
    Route log records to stderr, stdout carries the declaration text. Only
    diagnostics are shown unless *debug* is set.
    """
    level = logging.DEBUG if debug else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        # structlog renders the final message
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(level)
