"""Tests for attribute flattening and merging."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st
from opentelemetry.proto.common.v1.common_pb2 import AnyValue, KeyValue
from otlp_factories import any_value, key_values

from otelarc.core.attributes import (
    any_value_as_string,
    any_value_to_python,
    attributes_to_map,
    merge_attributes,
    service_name,
)

attribute_sets = st.dictionaries(
    st.text(max_size=8),
    st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=8)),
    max_size=8,
)


class TestAnyValueToPython:
    """Tests for any_value_to_python()."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        "value",
        ["text", "", 42, -7, 0, 3.25, True, False, b"\x00\x01"],
    )
    def test_scalars_pass_through(self, value: object) -> None:
        """Scalar values come back unchanged."""
        assert any_value_to_python(any_value(value)) == value

    @pytest.mark.core
    def test_bool_stays_bool(self) -> None:
        """Booleans are not turned into integers."""
        assert any_value_to_python(any_value(True)) is True

    @pytest.mark.core
    def test_unset_value_becomes_none(self) -> None:
        """An AnyValue with no kind set converts to None."""
        assert any_value_to_python(AnyValue()) is None

    @pytest.mark.core
    def test_array_converts_each_element(self) -> None:
        """Arrays become lists with each element converted."""
        result = any_value_to_python(any_value(["a", 1, [True, None]]))
        assert result == ["a", 1, [True, None]]

    @pytest.mark.core
    def test_kvlist_stays_nested(self) -> None:
        """Key/value lists become nested dicts, not dotted keys."""
        nested = {"http": {"method": "GET", "status": 200}}
        result = any_value_to_python(any_value(nested))
        assert result == {"http": {"method": "GET", "status": 200}}


class TestAttributesToMap:
    """Tests for attributes_to_map()."""

    @pytest.mark.core
    def test_converts_key_values(self) -> None:
        """Each KeyValue becomes a dict entry."""
        attrs = key_values({"host.name": "web-1", "cpu": 4, "ratio": 0.5})
        assert attributes_to_map(attrs) == {
            "host.name": "web-1",
            "cpu": 4,
            "ratio": 0.5,
        }

    @pytest.mark.core
    def test_empty_input(self) -> None:
        """No attributes gives an empty mapping."""
        assert attributes_to_map([]) == {}

    @pytest.mark.core
    def test_duplicate_key_keeps_last_value(self) -> None:
        """A key repeated in the input keeps its last value."""
        attrs = [
            KeyValue(key="k", value=AnyValue(string_value="first")),
            KeyValue(key="k", value=AnyValue(string_value="second")),
        ]
        assert attributes_to_map(attrs) == {"k": "second"}

    @pytest.mark.core
    def test_unset_value_does_not_fail(self) -> None:
        """A malformed attribute degrades to None instead of raising."""
        attrs = [
            KeyValue(key="broken"),
            KeyValue(key="ok", value=AnyValue(int_value=1)),
        ]
        assert attributes_to_map(attrs) == {"broken": None, "ok": 1}


class TestMergeAttributes:
    """Tests for merge_attributes()."""

    @pytest.mark.core
    def test_override_wins_on_conflict(self) -> None:
        """Record-level keys replace resource-level keys of the same name."""
        merged = merge_attributes({"env": "prod", "host": "a"}, {"env": "dev"})
        assert merged == {"env": "dev", "host": "a"}

    @pytest.mark.core
    def test_inputs_not_modified(self) -> None:
        """Merge builds a new mapping."""
        base = {"a": 1}
        override = {"b": 2}
        merge_attributes(base, override)
        assert base == {"a": 1}
        assert override == {"b": 2}

    @pytest.mark.core
    @given(attribute_sets)
    def test_merge_with_empty_is_identity(self, base: dict) -> None:
        """Merging an empty override returns the base unchanged."""
        assert merge_attributes(base, {}) == base

    @pytest.mark.core
    @given(attribute_sets, attribute_sets)
    def test_override_values_always_win(self, base: dict, override: dict) -> None:
        """Every key of override maps to override's value."""
        merged = merge_attributes(base, override)
        assert set(merged) == set(base) | set(override)
        for key, value in override.items():
            assert merged[key] == value


class TestServiceName:
    """Tests for service_name()."""

    @pytest.mark.core
    def test_returns_service_name(self) -> None:
        assert service_name({"service.name": "checkout"}) == "checkout"

    @pytest.mark.core
    def test_missing_is_empty_string(self) -> None:
        assert service_name({}) == ""

    @pytest.mark.core
    def test_non_string_is_empty_string(self) -> None:
        assert service_name({"service.name": 12}) == ""


class TestAnyValueAsString:
    """Tests for any_value_as_string()."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("verbatim text", "verbatim text"),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (3.0, "3"),
            (2.5, "2.5"),
            (1e-07, "0.0000001"),
            (b"hi", "aGk="),
        ],
    )
    def test_scalars(self, value: object, expected: str) -> None:
        assert any_value_as_string(any_value(value)) == expected

    @pytest.mark.core
    def test_empty_value(self) -> None:
        assert any_value_as_string(AnyValue()) == ""

    @pytest.mark.core
    def test_non_finite_doubles(self) -> None:
        assert any_value_as_string(any_value(math.nan)) == "NaN"
        assert any_value_as_string(any_value(math.inf)) == "+Inf"
        assert any_value_as_string(any_value(-math.inf)) == "-Inf"

    @pytest.mark.core
    def test_kvlist_is_compact_json_with_sorted_keys(self) -> None:
        value = any_value({"b": 1, "a": [True, "x"]})
        assert any_value_as_string(value) == '{"a":[true,"x"],"b":1}'

    @pytest.mark.core
    def test_bytes_inside_array_are_base64(self) -> None:
        assert any_value_as_string(any_value([b"hi"])) == '["aGk="]'
