"""Stub matching against messages.

A queued message is seen by stubs as a synthetic request shaped like the
HTTP requests of other imposter protocols, so predicates address fields with
dotted paths such as ``body.action`` or ``headers.correlation-id``.
"""

import json
from typing import Any, Dict, Iterable, Optional

from ..models.message import Message
from ..models.stub import CompiledPredicate, CompiledStub


MISSING = object()


def build_request(message: Message, queue_name: str = "") -> Dict[str, Any]:
    """Map a message to the synthetic request predicates are evaluated against."""
    put_time = message.put_time.isoformat() if message.put_time else ""
    return {
        "protocol": "mq",
        "method": "MESSAGE",
        "path": message.reply_to_queue or "/",
        "query": {},
        "headers": {
            "message-id": message.message_id,
            "correlation-id": message.correlation_id,
            "message-type": str(message.message_type),
            "priority": str(message.priority),
            "persistence": str(message.persistence),
            "format": message.format,
            "put-application-name": message.put_application_name or "",
            "put-time": put_time,
            "expiry": str(message.expiry),
        },
        "body": message.payload,
        "timestamp": put_time,
        "ip": "127.0.0.1",
        "queue": queue_name,
    }


def get_field_value(document: Any, path: str) -> Any:
    """Resolve a dotted path. Returns ``MISSING`` when any segment is absent.

    Digit segments index into lists.
    """
    value = document
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return MISSING
    return value


def stringify(value: Any) -> str:
    """Text form of a value for substring and regex predicates."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _strict_equals(actual: Any, expected: Any) -> bool:
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, str) != isinstance(expected, str):
        return False
    return actual == expected


def evaluate(predicate: CompiledPredicate, request: Dict[str, Any]) -> bool:
    """Evaluate one compiled predicate. Every field of the predicate must hold."""
    operator = predicate.operator

    if operator == "and":
        return all(evaluate(child, request) for child in predicate.children)
    if operator == "or":
        return any(evaluate(child, request) for child in predicate.children)
    if operator == "not":
        return not evaluate(predicate.children[0], request)

    for path, expected in predicate.fields.items():
        actual = get_field_value(request, path)

        if operator == "exists":
            present = actual is not MISSING and actual is not None
            if present != expected:
                return False
            continue

        if actual is MISSING or actual is None:
            return False

        if operator == "equals":
            if not _strict_equals(actual, expected):
                return False
        elif operator == "contains":
            if stringify(expected) not in stringify(actual):
                return False
        elif operator == "matches":
            if not predicate.patterns[path].search(stringify(actual)):
                return False

    return True


def matches_stub(stub: CompiledStub, request: Dict[str, Any]) -> bool:
    """A stub matches when all of its predicates hold. No predicates always match."""
    return all(evaluate(predicate, request) for predicate in stub.predicates)


def find_match(stubs: Iterable[CompiledStub], request: Dict[str, Any]) -> Optional[CompiledStub]:
    """First stub, in order, whose predicates all hold."""
    for stub in stubs:
        if matches_stub(stub, request):
            return stub
    return None
