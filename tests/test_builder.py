"""Tests for the report builder."""

import os
from unittest.mock import patch

import orjson
import pytest

from snagnotify.client import environment
from snagnotify.client.transport import serialize_report
from snagnotify.errors import ConfigurationError, StructuredError
from snagnotify.report.builder import (
    EXCEPTION_DATA_KEY,
    ReportBuilder,
    coerce_metadata,
    stringify,
)
from snagnotify.report.models import ReportOptions, Severity
from snagnotify.report.stacktrace import NullSourceLocator


class IllegalStateException(Exception):
    pass


class Opaque:
    def __str__(self):
        return "<opaque>"


def raised(exc):
    try:
        raise exc
    except Exception as e:
        return e


class TestReportBuilder:
    """Test cases for ReportBuilder."""

    def setup_method(self):
        """Set up test fixtures."""
        self.builder = ReportBuilder(NullSourceLocator())
        self.options = {"api_key": "key", "version": "1.2.3"}

    def build(self, exc, **options):
        return self.builder.build(exc, {**self.options, **options})

    def test_defaults(self):
        """Test severity, reason and unhandled defaults."""
        with patch.object(environment, "get_hostname", return_value="web-1"):
            report = self.build(raised(ValueError("boom")))

        event = report.events[0]
        assert report.api_key == "key"
        assert report.payload_version == "4.0"
        assert event.severity == Severity.ERROR
        assert event.unhandled is False
        assert event.severity_reason == {"type": "handledException"}
        assert event.breadcrumbs == []
        assert event.context is None
        assert event.user is None
        assert event.app.version == "1.2.3"
        assert event.app.release_stage == "production"
        assert event.device.hostname == "web-1"
        assert event.meta_data == {}

    def test_exception_block(self):
        """Test error class, message and stacktrace."""
        report = self.build(raised(ValueError("boom")))
        exception = report.events[0].exceptions[0]

        assert exception.error_class == "ValueError"
        assert exception.message == "boom"
        assert exception.stacktrace[0].method.endswith("raised")

    def test_unraised_exception_has_empty_stacktrace(self):
        """Test an exception without frames still builds."""
        report = self.build(ValueError("never raised"))
        assert report.events[0].exceptions[0].stacktrace == []

    def test_grouping_structured_uses_message(self):
        """Test structured errors group by message."""
        report = self.build(raised(StructuredError("boom", {"a": 1})))
        assert report.events[0].grouping_hash == "boom"

    def test_grouping_plain_uses_class_name(self):
        """Test plain exceptions group by class name."""
        report = self.build(raised(IllegalStateException("whatever")))
        assert report.events[0].grouping_hash == "IllegalStateException"

    def test_grouping_structured_without_message(self):
        """Test an empty message still gives a non-empty hash."""
        report = self.build(raised(StructuredError("", {"a": 1})))
        assert report.events[0].grouping_hash == "StructuredError"

    def test_explicit_group_wins(self):
        """Test the group option overrides both defaults."""
        report = self.build(raised(StructuredError("boom")), group="payments")
        assert report.events[0].grouping_hash == "payments"

    def test_exception_data_in_metadata(self):
        """Test structured payload data lands under its fixed key."""
        exc = raised(StructuredError("boom", {"order_id": 42, "tags": ["a", "b"]}))
        report = self.build(exc, meta={"request_id": "r-1"})

        assert report.events[0].meta_data == {
            EXCEPTION_DATA_KEY: {"order_id": 42, "tags": ["a", "b"]},
            "request_id": "r-1",
        }

    def test_caller_metadata_wins_on_collision(self):
        """Test caller metadata overrides the exception payload key."""
        exc = raised(StructuredError("boom", {"order_id": 42}))
        report = self.build(exc, meta={EXCEPTION_DATA_KEY: "overridden"})

        assert report.events[0].meta_data == {EXCEPTION_DATA_KEY: "overridden"}

    def test_metadata_is_coerced(self):
        """Test opaque metadata values are stringified."""
        report = self.build(raised(ValueError("x")), meta={"thing": Opaque()})
        assert report.events[0].meta_data == {"thing": "<opaque>"}

    def test_options_passed_through(self):
        """Test explicit option fields reach the event."""
        report = self.build(
            raised(ValueError("x")),
            context="GET /users",
            severity="warning",
            severity_reason={"type": "userCallbackSetSeverity"},
            unhandled=True,
            user={"id": "u1"},
            environment="staging",
        )
        event = report.events[0]

        assert event.context == "GET /users"
        assert event.severity == Severity.WARNING
        assert event.severity_reason == {"type": "userCallbackSetSeverity"}
        assert event.unhandled is True
        assert event.user == {"id": "u1"}
        assert event.app.release_stage == "staging"

    def test_unknown_severity_defaults_to_error(self):
        """Test unrecognized severity values become error."""
        report = self.build(raised(ValueError("x")), severity="catastrophic")
        assert report.events[0].severity == Severity.ERROR

    def test_version_defaults_to_git_revision(self):
        """Test missing version falls back to the git revision."""
        with patch.object(environment, "git_revision", return_value="abc123"):
            report = self.builder.build(raised(ValueError("x")), {"api_key": "key"})
        assert report.events[0].app.version == "abc123"

    def test_project_namespace(self):
        """Test frames of this module are flagged in-project."""
        report = self.build(raised(ValueError("x")), project_ns=__name__)
        assert report.events[0].exceptions[0].stacktrace[0].in_project is True

    def test_metadata_with_non_string_keys(self):
        """Test integer and tuple metadata keys are accepted and coerced."""
        report = self.build(
            raised(ValueError("x")),
            meta={404: "not found", (1, 2): {"nested": Opaque()}},
        )

        assert report.events[0].meta_data == {
            404: "not found",
            "(1, 2)": {"nested": "<opaque>"},
        }

    def test_non_string_metadata_keys_serialize(self):
        """Test coerced metadata keys survive JSON encoding."""
        report = self.build(raised(ValueError("x")), meta={404: "not found"})
        payload = orjson.loads(serialize_report(report))

        assert payload["events"][0]["metaData"] == {"404": "not found"}

    def test_missing_api_key(self):
        """Test build fails without any API key source."""
        with pytest.raises(ConfigurationError):
            self.builder.build(raised(ValueError("x")), {"version": "1"})

    def test_api_key_from_env(self):
        """Test the environment supplies the key."""
        with patch.dict(os.environ, {"BUGSNAG_KEY": "env-key"}, clear=False):
            report = self.builder.build(raised(ValueError("x")), {"version": "1"})
        assert report.api_key == "env-key"

    def test_accepts_report_options(self):
        """Test a ReportOptions instance works as options."""
        options = ReportOptions(api_key="key", version="1", context="ctx")
        report = self.builder.build(raised(ValueError("x")), options)
        assert report.events[0].context == "ctx"

    def test_unknown_option_rejected(self):
        """Test misspelt options are not silently ignored."""
        with pytest.raises(ValueError):
            self.build(raised(ValueError("x")), contxt="typo")

    def test_wire_field_names(self):
        """Test payload uses Bugsnag field names."""
        payload = self.build(raised(ValueError("x")), context="ctx").to_payload()
        event = payload["events"][0]

        assert set(payload) == {"apiKey", "notifier", "payloadVersion", "events"}
        assert payload["notifier"]["name"] == "snagnotify"
        assert event["groupingHash"] == "ValueError"
        assert event["metaData"] == {}
        assert event["app"]["releaseStage"] == "production"
        assert set(event["exceptions"][0]) == {"errorClass", "message", "stacktrace"}
        assert set(event["exceptions"][0]["stacktrace"][0]) == {
            "file",
            "lineNumber",
            "method",
            "inProject",
            "code",
        }


class TestCoercion:
    """Tests for metadata coercion."""

    def test_stringify_passes_primitives(self):
        """Test JSON-friendly values are untouched."""
        for value in ("s", 1, 1.5, True, None, [1], (1,), {"a": 1}):
            assert stringify(value) is value

    def test_stringify_objects(self):
        """Test other values are stringified."""
        assert stringify(Opaque()) == "<opaque>"
        assert stringify({1, 2}) == str({1, 2})
        assert stringify(b"raw") == "b'raw'"

    def test_nested(self):
        """Test coercion walks nested mappings and sequences."""
        value = {"a": [Opaque(), {"b": Opaque()}], "c": (1, Opaque())}
        assert coerce_metadata(value) == {
            "a": ["<opaque>", {"b": "<opaque>"}],
            "c": [1, "<opaque>"],
        }

    def test_object_keys_are_stringified(self):
        """Test keys JSON cannot encode become strings."""
        assert coerce_metadata({(1, 2): "x", 3: "y"}) == {"(1, 2)": "x", 3: "y"}

    def test_idempotent(self):
        """Test coercing twice equals coercing once."""
        value = {"a": [Opaque(), {"b": {1, 2}}], "c": None, "d": 2.5}
        once = coerce_metadata(value)
        assert coerce_metadata(once) == once
