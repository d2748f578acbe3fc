"""JSON log formatting used in production."""

import json
import logging

from portfolio_tracker.middleware.logging_config import JSONFormatter


def _record(**extra):
    record = logging.LogRecord(
        name="portfolio_tracker.test", level=logging.WARNING, pathname=__file__,
        lineno=12, msg="Slow request: %s", args=("/api/v1/projects",), exc_info=None,
        func="handler",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_request_fields_grouped_under_context():
    out = json.loads(JSONFormatter().format(_record(request_id="abc", status=200, unrelated="x")))
    assert out["message"] == "Slow request: /api/v1/projects"
    assert out["level"] == "WARNING"
    assert out["context"] == {"request_id": "abc", "status": 200}


def test_no_context_when_no_extra_fields():
    out = json.loads(JSONFormatter().format(_record()))
    assert "context" not in out
    assert out["source"].endswith(":handler:12")
