"""Tests for log record flattening into the logs batch."""

import pytest
from opentelemetry.proto.logs.v1.logs_pb2 import LogRecord
from otlp_factories import BASE_MILLIS, BASE_NANOS, log_record, logs_request

from otelarc.core.logs import (
    LOG_COLUMNS,
    log_body,
    log_rows,
    log_time_millis,
    logs_to_batch,
)

RESOURCE = {"service.name": "auth", "region": "eu-west-1"}


class TestLogTime:
    """Tests for log_time_millis()."""

    @pytest.mark.core
    def test_uses_event_time(self) -> None:
        record = log_record(time=BASE_NANOS, observed_time=BASE_NANOS + 5_000_000)
        assert log_time_millis(record) == BASE_MILLIS

    @pytest.mark.core
    def test_falls_back_to_observed_time(self) -> None:
        record = log_record(time=0, observed_time=BASE_NANOS + 5_000_000)
        assert log_time_millis(record) == BASE_MILLIS + 5

    @pytest.mark.core
    def test_both_missing(self) -> None:
        assert log_time_millis(LogRecord()) == 0


class TestLogBody:
    """Tests for log_body()."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("plain text", "plain text"),
            (12, "12"),
            (True, "true"),
            ({"user": "alice", "ok": True}, '{"ok":true,"user":"alice"}'),
            (["a", 1], '["a",1]'),
            (None, ""),
        ],
    )
    def test_rendering(self, body: object, expected: str) -> None:
        assert log_body(log_record(body=body)) == expected


class TestLogRows:
    """Tests for log_rows()."""

    @pytest.mark.core
    def test_fixed_fields(self) -> None:
        record = log_record(
            severity_text="ERROR",
            severity_number=17,
            trace_id=bytes.fromhex("0af7651916cd43dd8448eb211c80319c"),
            span_id=bytes.fromhex("b7ad6b7169203331"),
            flags=1,
        )
        (row,) = log_rows(logs_request([record], RESOURCE))

        assert row.fields == {
            "time": BASE_MILLIS,
            "severity": "ERROR",
            "severity_number": 17,
            "body": "user logged in",
            "trace_id": "0af7651916cd43dd8448eb211c80319c",
            "span_id": "b7ad6b7169203331",
            "trace_flags": 1,
            "service_name": "auth",
        }

    @pytest.mark.core
    def test_uncorrelated_record_has_empty_ids(self) -> None:
        (row,) = log_rows(logs_request([log_record()]))
        assert row.fields["trace_id"] == ""
        assert row.fields["span_id"] == ""

    @pytest.mark.core
    def test_record_attributes_override_resource(self) -> None:
        record = log_record(attributes={"region": "us-east-1", "user.id": 7})
        (row,) = log_rows(logs_request([record], RESOURCE))
        assert row.attributes == {
            "service.name": "auth",
            "region": "us-east-1",
            "user.id": 7,
        }


class TestLogsToBatch:
    """Tests for logs_to_batch()."""

    @pytest.mark.core
    def test_columns(self) -> None:
        request = logs_request(
            [
                log_record(attributes={"user.id": 7}),
                log_record(body="second", attributes={"path": "/login"}),
            ],
            RESOURCE,
        )
        batch = logs_to_batch(request, "logs")

        assert batch.measurement == "logs"
        assert batch.row_count == 2
        assert tuple(batch.columns)[: len(LOG_COLUMNS)] == LOG_COLUMNS
        assert batch.columns["body"] == ["user logged in", "second"]
        assert batch.columns["service_name"] == ["auth", "auth"]
        assert batch.columns["region"] == ["eu-west-1", "eu-west-1"]
        assert batch.columns["user.id"] == [7, None]
        assert batch.columns["path"] == [None, "/login"]
        assert "service.name" not in batch.columns
