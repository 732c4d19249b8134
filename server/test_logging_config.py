"""
Test suite for log formatting and context propagation.

Run with: pytest test_logging_config.py -v
"""

import json
import logging

from logging_config import (
    DevelopmentFormatter,
    JSONFormatter,
    get_logger,
    room_id_var,
    session_id_var,
)


def make_record(**extra):
    record = logging.LogRecord("table", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_includes_context_vars(self):
        token_s = session_id_var.set("session-1234567890")
        token_r = room_id_var.set("ABC123")
        try:
            out = json.loads(JSONFormatter().format(make_record(player_id="p0")))
        finally:
            session_id_var.reset(token_s)
            room_id_var.reset(token_r)

        assert out["message"] == "hello"
        assert out["session_id"] == "session-1234567890"
        assert out["room_id"] == "ABC123"
        assert out["player_id"] == "p0"

    def test_explicit_extra_wins(self):
        token = room_id_var.set("ABC123")
        try:
            out = json.loads(JSONFormatter().format(make_record(room_id="XYZ999")))
        finally:
            room_id_var.reset(token)
        assert out["room_id"] == "XYZ999"

    def test_development_line(self):
        line = DevelopmentFormatter().format(make_record(session_id="abcdefghijkl", room_id="ABC123"))
        assert "sess=abcdefgh" in line
        assert "room=ABC123" in line
        assert line.endswith("- hello")


class TestContextLogger:

    def test_with_context_binds_extra(self):
        logger = get_logger("table").with_context(room_id="ABC123")
        msg, kwargs = logger.process("joined", {"extra": {"player_id": "p0"}})
        assert kwargs["extra"] == {"room_id": "ABC123", "player_id": "p0"}
