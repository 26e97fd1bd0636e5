"""
Tests for stub matching against messages.
"""

import pytest
from datetime import datetime, timezone

from mockmq.models.message import Message
from mockmq.services.imposter_config import compile_predicate, compile_stub
from mockmq.services.stub_matcher import (
    MISSING,
    build_request,
    evaluate,
    find_match,
    get_field_value,
    stringify,
)


def _message(payload, **fields):
    return Message(
        message_id=fields.pop("message_id", "MSG-00000001-1700000000000"),
        correlation_id=fields.pop("correlation_id", "CORR-00000001-1700000000000"),
        payload=payload,
        put_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        **fields
    )


def _matches(predicate, payload, **fields):
    return evaluate(compile_predicate(predicate), build_request(_message(payload, **fields), "IN.Q"))


def _stub(name, predicates):
    return compile_stub({"predicates": predicates, "responses": [{"is": {"data": name}}]})


@pytest.mark.unit
class TestSyntheticRequest:
    """Test mapping a message to a synthetic request."""

    def test_build_request(self):
        """Test the request carries message metadata as string headers."""
        request = build_request(_message({"a": 1}, reply_to_queue="REPLY.Q", priority=5), "IN.Q")

        assert request["protocol"] == "mq"
        assert request["method"] == "MESSAGE"
        assert request["path"] == "REPLY.Q"
        assert request["query"] == {}
        assert request["body"] == {"a": 1}
        assert request["queue"] == "IN.Q"
        assert request["ip"] == "127.0.0.1"
        assert request["timestamp"] == "2024-01-01T00:00:00+00:00"
        assert request["headers"]["message-id"] == "MSG-00000001-1700000000000"
        assert request["headers"]["priority"] == "5"
        assert request["headers"]["message-type"] == "8"
        assert request["headers"]["format"] == "MQSTR"
        assert request["headers"]["expiry"] == "-1"

    def test_path_defaults_to_root(self):
        """Test a message without a reply queue has path ``/``."""
        assert build_request(_message("x"))["path"] == "/"


@pytest.mark.unit
class TestFieldAccess:
    """Test dotted path resolution and stringification."""

    def test_get_field_value(self):
        """Test nested objects and list indexes resolve."""
        document = {"body": {"items": [{"sku": "A1"}, {"sku": "B2"}], "flag": None}}

        assert get_field_value(document, "body.items.1.sku") == "B2"
        assert get_field_value(document, "body.flag") is None
        assert get_field_value(document, "body.items.5") is MISSING
        assert get_field_value(document, "body.missing.deeper") is MISSING
        assert get_field_value({"body": "text"}, "body.length") is MISSING

    @pytest.mark.parametrize("value,expected", [
        ("text", "text"),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        (1.5, "1.5"),
        ({"a": [1, 2]}, '{"a":[1,2]}'),
    ])
    def test_stringify(self, value, expected):
        """Test values stringify like JSON scalars and compact documents."""
        assert stringify(value) == expected


@pytest.mark.unit
class TestPredicates:
    """Test the predicate operators."""

    def test_equals_is_strict(self):
        """Test equals compares values without coercion."""
        assert _matches({"equals": {"body.count": 1}}, {"count": 1})
        assert not _matches({"equals": {"body.count": "1"}}, {"count": 1})
        assert not _matches({"equals": {"body.count": True}}, {"count": 1})
        assert _matches({"equals": {"body.flag": False}}, {"flag": False})
        assert _matches({"equals": {"body": {"a": [1, 2]}}}, {"a": [1, 2]})
        assert not _matches({"equals": {"body.text": "abc"}}, {"text": "ABC"})

    def test_equals_missing_field(self):
        """Test equals fails when the field is absent or null."""
        assert not _matches({"equals": {"body.nope": None}}, {"other": 1})
        assert not _matches({"equals": {"body.value": None}}, {"value": None})

    def test_contains_substring(self):
        """Test contains looks for a substring of the stringified value."""
        assert _matches({"contains": {"body": "GET_PRODUCT"}}, '{"action":"GET_PRODUCT","id":"12345"}')
        assert _matches({"contains": {"body": '"id":"12345"'}}, {"id": "12345"})
        assert _matches({"contains": {"body.count": "2"}}, {"count": 123})
        assert not _matches({"contains": {"body": "DELETE"}}, "GET_PRODUCT")

    def test_matches_regex(self):
        """Test matches searches the stringified value with the pattern."""
        assert _matches({"matches": {"body.id": r"^\d{5}$"}}, {"id": "12345"})
        assert _matches({"matches": {"headers.message-id": "^MSG-"}}, "x")
        assert not _matches({"matches": {"body.id": r"^\d{5}$"}}, {"id": "123456"})

    def test_exists(self):
        """Test exists compares presence to the expected boolean."""
        assert _matches({"exists": {"body.id": True}}, {"id": 0})
        assert _matches({"exists": {"body.id": False}}, {"other": 1})
        assert _matches({"exists": {"body.id": False}}, {"id": None})
        assert not _matches({"exists": {"body.id": False}}, {"id": "x"})

    def test_all_fields_must_hold(self):
        """Test every field of a predicate must match."""
        predicate = {"equals": {"body.a": 1, "body.b": 2}}

        assert _matches(predicate, {"a": 1, "b": 2})
        assert not _matches(predicate, {"a": 1, "b": 3})

    def test_composition(self):
        """Test and, or and not combine nested predicates."""
        either = {"or": [{"equals": {"body.type": "A"}}, {"equals": {"body.type": "B"}}]}
        negated = {"not": {"contains": {"body.type": "A"}}}
        both = {"and": [{"exists": {"body.type": True}}, negated]}

        assert _matches(either, {"type": "B"})
        assert not _matches(either, {"type": "C"})
        assert _matches(negated, {"type": "B"})
        assert _matches(both, {"type": "B"})
        assert not _matches(both, {"type": "A"})

    def test_headers_are_strings(self):
        """Test header predicates compare against string values."""
        assert _matches({"equals": {"headers.priority": "3"}}, "x", priority=3)
        assert not _matches({"equals": {"headers.priority": 3}}, "x", priority=3)


@pytest.mark.unit
class TestStubSelection:
    """Test selecting the first fully matching stub."""

    def test_first_match_wins(self):
        """Test the earliest matching stub is chosen."""
        stubs = [
            _stub("specific", [{"contains": {"body": "GET_PRODUCT"}}]),
            _stub("catch-all", []),
        ]
        request = build_request(_message("GET_PRODUCT 1"))

        assert find_match(stubs, request).response.template["data"] == "specific"
        assert find_match(stubs, build_request(_message("OTHER"))).response.template["data"] == "catch-all"

    def test_stub_order_matters(self):
        """Test reordering stubs changes which one answers."""
        specific = _stub("specific", [{"contains": {"body": "GET_PRODUCT"}}])
        catch_all = _stub("catch-all", [])
        request = build_request(_message("GET_PRODUCT 1"))

        assert find_match([catch_all, specific], request) is catch_all

    def test_all_predicates_must_hold(self):
        """Test a stub's predicates are combined with AND."""
        stub = _stub("both", [{"contains": {"body": "A"}}, {"contains": {"body": "B"}}])

        assert find_match([stub], build_request(_message("AB"))) is stub
        assert find_match([stub], build_request(_message("A"))) is None

    def test_no_stubs(self):
        """Test nothing matches an empty stub list."""
        assert find_match([], build_request(_message("x"))) is None
