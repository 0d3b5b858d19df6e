"""
Tests for output and status sinks.
"""

import logging

from backend.switchlogic.sinks import (
    DeltaSink,
    LoggingStatus,
    RecordingSink,
    make_delta,
)


class TestMakeDelta:
    """Tests for make_delta."""

    def test_single_pair(self):
        """Test a delta from one path/value pair."""
        delta = make_delta("switchlogic", {"path": "a.b", "value": 1}, timestamp="2024-01-01T00:00:00Z")
        assert delta == {
            "updates": [{
                "source": {"type": "plugin", "src": "switchlogic"},
                "timestamp": "2024-01-01T00:00:00Z",
                "values": [{"path": "a.b", "value": 1}],
            }]
        }

    def test_many_pairs(self):
        """Test a delta from several pairs."""
        delta = make_delta(None, [{"path": "a", "value": 0}, {"path": "b", "value": 1}])
        update = delta["updates"][0]
        assert update["source"]["src"] == "anon"
        assert [v["path"] for v in update["values"]] == ["a", "b"]
        assert update["timestamp"].endswith("Z")


class TestDeltaSink:
    """Tests for DeltaSink."""

    def test_notify(self):
        """Test notify hands a delta to the host."""
        messages = []
        sink = DeltaSink(lambda source, delta: messages.append((source, delta)))
        sink.notify("a.b", 1, "switchlogic")
        source, delta = messages[0]
        assert source == "switchlogic"
        assert delta["updates"][0]["values"] == [{"path": "a.b", "value": 1}]

    def test_put(self):
        """Test put is forwarded to the host handler."""
        puts = []
        responses = []

        def put_self_path(path, value, callback):
            puts.append((path, value))
            callback({"state": "COMPLETED", "statusCode": 200})

        sink = DeltaSink(lambda source, delta: None, put_self_path)
        sink.put("a.b", 0, responses.append)
        assert puts == [("a.b", 0)]
        assert responses[0]["statusCode"] == 200

    def test_put_without_handler(self):
        """Test put without a handler answers with an error response."""
        responses = []
        sink = DeltaSink(lambda source, delta: None)
        sink.put("a.b", 0, responses.append)
        assert responses[0]["statusCode"] == 405


class TestRecordingSink:
    """Tests for RecordingSink."""

    def test_records_in_order(self):
        """Test outputs are kept in order."""
        sink = RecordingSink()
        responses = []
        sink.notify("a", 1, "me")
        sink.put("b", 0, responses.append)
        assert sink.values() == [1, 0]
        assert sink.values("b") == [0]
        assert responses == [{"state": "COMPLETED", "statusCode": 200}]
        sink.clear()
        assert sink.outputs == []


class TestLoggingStatus:
    """Tests for LoggingStatus."""

    def test_logs(self, caplog):
        """Test status and errors are logged and remembered."""
        status = LoggingStatus("switchlogic")
        with caplog.at_level(logging.INFO, logger="backend.switchlogic.sinks"):
            status.status("Operating 1 rule")
            status.error("internal error")
        assert status.last_status == "Operating 1 rule"
        assert status.last_error == "internal error"
        assert "Operating 1 rule" in caplog.text
