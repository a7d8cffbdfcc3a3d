"""Tests for the JSON log formatter."""

import json
import logging

from app.services.logging_service import JSONFormatter


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("app.services.queue_service", logging.INFO, __file__, 10,
                               "Queued application a1 as job 7", None, None)
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    def test_includes_queue_extras(self):
        record = make_record(component="queue", application_id="a1", queue_job_id="7")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "Queued application a1 as job 7"
        assert entry["level"] == "INFO"
        assert (entry["component"], entry["application_id"], entry["queue_job_id"]) == ("queue", "a1", "7")

    def test_omits_missing_extras(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert "application_id" not in entry
        assert "component" not in entry
