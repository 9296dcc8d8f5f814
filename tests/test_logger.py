import logging

from tsdoclet.logger import add_source_location, drop_empty_longname, setup_logging


def test_source_location_is_folded_into_one_field():
    event = add_source_location(None, "warning", {"event": "x", "filename": "a.js", "lineno": 12})
    assert event == {"event": "x", "source": "a.js:12"}

    event = add_source_location(None, "warning", {"event": "x", "filename": "a.js", "lineno": None})
    assert event == {"event": "x", "source": "a.js"}

    event = add_source_location(None, "debug", {"event": "x", "symbols": 3})
    assert event == {"event": "x", "symbols": 3}


def test_empty_longname_is_dropped():
    assert drop_empty_longname(None, "warning", {"event": "x", "longname": None}) == {"event": "x"}
    assert drop_empty_longname(None, "warning", {"event": "x", "longname": "f"}) == {"event": "x", "longname": "f"}


def test_setup_logging_levels():
    root = logging.getLogger()
    previous = root.level
    try:
        setup_logging(True)
        assert root.level == logging.DEBUG
        setup_logging(False)
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
