import json
import logging

from utils.logger import JsonFormatter, SessionFilter, session_scope


def _record(message="Search started", **attributes):
    record = logging.LogRecord("search.engine", logging.INFO, __file__, 42, message, None, None)
    for name, value in attributes.items():
        setattr(record, name, value)
    return record


def test_record_rendered_as_json_with_extra_fields():
    line = JsonFormatter().format(_record(extra_fields={"query": "amortisseur avant", "dialect": False}))
    data = json.loads(line)
    assert data["message"] == "Search started"
    assert data["level"] == "INFO"
    assert data["query"] == "amortisseur avant"
    assert data["dialect"] is False
    assert "session_id" not in data


def test_session_scope_stamps_records():
    session_filter = SessionFilter()
    with session_scope("s-42"):
        inside = _record()
        assert session_filter.filter(inside)
    outside = _record()
    session_filter.filter(outside)

    assert json.loads(JsonFormatter().format(inside))["session_id"] == "s-42"
    assert outside.session_id is None


def test_explicit_session_id_is_kept():
    record = _record(session_id="explicit")
    with session_scope("bound"):
        SessionFilter().filter(record)
    assert record.session_id == "explicit"
