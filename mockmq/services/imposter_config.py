"""Validation and compilation of imposter configuration documents.

An imposter document looks like::

    {
        "port": 2526,
        "protocol": "mq",
        "name": "product service",
        "mq": {"queueManager": "MOCK_QM1", "channel": "DEV.APP.SVRCONN"},
        "queues": [{"name": "TEST.REQUEST.QUEUE", "type": "input"}],
        "stubs": [
            {
                "predicates": [{"contains": {"body": "GET_PRODUCT"}}],
                "responses": [{"is": {"data": "..."}, "behaviors": [{"wait": 100}]}]
            }
        ]
    }

Documents are checked against ``IMPOSTER_SCHEMA`` and every problem is
collected before failing, so a caller sees all mistakes of a document at
once. Compilation happens only after the document is valid; regular
expressions are compiled here, once per stub.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from jsonschema import Draft7Validator, FormatChecker

from ..exceptions import ValidationError
from ..models.stub import (
    COMPOSITE_OPERATORS,
    PREDICATE_OPERATORS,
    CompiledPredicate,
    CompiledResponse,
    CompiledStub,
)


QUEUE_TYPES = ("input", "output", "both")
RESPONSE_KINDS = ("is", "proxy", "inject")
SUPPORTED_BEHAVIORS = ("wait", "copy")
UNSUPPORTED_BEHAVIORS = ("lookup", "decorate", "shellTransform")
DEFAULT_QUEUE_BINDINGS = [{"name": "DEV.QUEUE.1", "type": "both"}]


def _field_map(values: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    schema = {"type": "object", "minProperties": 1}
    if values is not None:
        schema["additionalProperties"] = values
    return schema


_COPY_RULE: Dict[str, Any] = {
    "type": "object",
    "required": ["from", "into"],
    "properties": {
        "from": {"type": "string"},
        "into": {"type": "string"}
    }
}


_DEFINITIONS: Dict[str, Any] = {
    "predicate": {
        "type": "object",
        "minProperties": 1,
        "propertyNames": {"enum": list(PREDICATE_OPERATORS + COMPOSITE_OPERATORS)},
        "properties": {
            "equals": _field_map(),
            "contains": _field_map(),
            "matches": _field_map({"type": "string", "format": "regex"}),
            "exists": _field_map({"type": "boolean"}),
            "and": {"type": "array", "minItems": 1, "items": {"$ref": "#/definitions/predicate"}},
            "or": {"type": "array", "minItems": 1, "items": {"$ref": "#/definitions/predicate"}},
            "not": {"$ref": "#/definitions/predicate"}
        }
    },
    "copyRule": _COPY_RULE,
    "behavior": {
        "type": "object",
        "minProperties": 1,
        # Unsupported behaviors pass the schema and get their own message below.
        "propertyNames": {"enum": list(SUPPORTED_BEHAVIORS + UNSUPPORTED_BEHAVIORS)},
        "properties": {
            "wait": {"type": "number", "minimum": 0},
            # A single copy rule or a list of them.
            "copy": dict(_COPY_RULE, type=["object", "array"],
                         items={"$ref": "#/definitions/copyRule"})
        }
    },
    "response": {
        "type": "object",
        "anyOf": [{"required": [kind]} for kind in RESPONSE_KINDS],
        "properties": {
            "is": {
                "type": "object",
                "anyOf": [{"required": ["body"]}, {"required": ["data"]}]
            },
            "proxy": {"type": "object", "minProperties": 1},
            "inject": {"type": "string", "minLength": 1},
            "behaviors": {"type": "array", "items": {"$ref": "#/definitions/behavior"}}
        }
    },
    "stub": {
        "type": "object",
        "required": ["responses"],
        "properties": {
            "predicates": {"type": "array", "items": {"$ref": "#/definitions/predicate"}},
            "responses": {
                "type": "array",
                "minItems": 1,
                "items": {"$ref": "#/definitions/response"}
            }
        }
    }
}

IMPOSTER_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "MQ Imposter",
    "type": "object",
    "required": ["port", "protocol"],
    "properties": {
        "port": {"type": "integer", "minimum": 1, "maximum": 65535},
        "protocol": {"const": "mq"},
        "name": {"type": "string"},
        "mq": {
            "type": "object",
            "properties": {
                "queueManager": {"type": "string"},
                "connectionName": {"type": "string"},
                "channel": {"type": "string"},
                "timeout": {"type": "number", "minimum": 0}
            }
        },
        "queues": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "type": {"enum": list(QUEUE_TYPES)}
                }
            }
        },
        "stubs": {"type": "array", "items": {"$ref": "#/definitions/stub"}}
    },
    "definitions": _DEFINITIONS
}

STUB_SCHEMA: Dict[str, Any] = dict(_DEFINITIONS["stub"], definitions=_DEFINITIONS)

_imposter_validator = Draft7Validator(IMPOSTER_SCHEMA, format_checker=FormatChecker())
_stub_validator = Draft7Validator(STUB_SCHEMA, format_checker=FormatChecker())


def _format_path(path: Iterable[Any]) -> str:
    path = list(path)
    return " -> ".join(str(p) for p in path) if path else "root"


def _schema_errors(validator: Draft7Validator, document: Any,
                   prefix: Sequence[Any] = ()) -> List[str]:
    errors = sorted(validator.iter_errors(document),
                    key=lambda e: [str(p) for p in e.absolute_path])
    return [f"{_format_path([*prefix, *e.absolute_path])}: {e.message}" for e in errors]


def _objects(items: Any) -> List[Tuple[int, Dict[str, Any]]]:
    if not isinstance(items, list):
        return []
    return [(index, item) for index, item in enumerate(items) if isinstance(item, dict)]


def _unsupported_behavior_errors(stubs: List[Tuple[int, Dict[str, Any]]]) -> List[str]:
    errors = []
    for stub_index, stub in stubs:
        for response_index, response in _objects(stub.get("responses")):
            for behavior_index, behavior in _objects(response.get("behaviors")):
                where = _format_path(["stubs", stub_index, "responses", response_index,
                                      "behaviors", behavior_index])
                errors.extend(
                    f"{where}: behavior type '{kind}' is not supported"
                    for kind in behavior if kind in UNSUPPORTED_BEHAVIORS
                )
    return errors


def validate_imposter_config(config: Any) -> None:
    """Validate a whole imposter document.

    Raises:
        ValidationError: With every problem found
    """
    errors = _schema_errors(_imposter_validator, config)
    if isinstance(config, dict):
        errors.extend(_unsupported_behavior_errors(_objects(config.get("stubs"))))

    if errors:
        raise ValidationError(errors, message="MQ imposter validation failed")


def validate_stub(stub: Any, stub_index: int = 0) -> None:
    """Validate a single stub document.

    Error paths are reported as ``stubs -> <stub_index> -> ...``.

    Raises:
        ValidationError: With every problem found
    """
    errors = _schema_errors(_stub_validator, stub, prefix=("stubs", stub_index))
    if isinstance(stub, dict):
        errors.extend(_unsupported_behavior_errors([(stub_index, stub)]))

    if errors:
        raise ValidationError(errors, message="MQ stub validation failed")


# Compilation

def compile_predicate(predicate: Dict[str, Any]) -> CompiledPredicate:
    """Compile one validated predicate document.

    A document with several operators compiles to an ``and`` of them.
    """
    compiled = [_compile_operator(op, expectation) for op, expectation in predicate.items()]
    if len(compiled) == 1:
        return compiled[0]
    return CompiledPredicate(operator="and", children=compiled)


def _compile_operator(operator: str, expectation: Any) -> CompiledPredicate:
    if operator == "not":
        return CompiledPredicate(operator="not", children=[compile_predicate(expectation)])
    if operator in ("and", "or"):
        return CompiledPredicate(
            operator=operator,
            children=[compile_predicate(child) for child in expectation]
        )
    if operator == "matches":
        return CompiledPredicate(
            operator=operator,
            fields=dict(expectation),
            patterns={path: re.compile(pattern) for path, pattern in expectation.items()}
        )
    return CompiledPredicate(operator=operator, fields=dict(expectation))


def compile_response(response: Dict[str, Any]) -> CompiledResponse:
    """Compile one validated response document."""
    kind = next(k for k in RESPONSE_KINDS if response.get(k))
    template = response[kind] if kind == "is" else {}
    return CompiledResponse(
        kind=kind,
        template=dict(template),
        behaviors=list(response.get("behaviors") or [])
    )


def compile_stub(stub: Dict[str, Any]) -> CompiledStub:
    """Compile one validated stub document."""
    return CompiledStub(
        predicates=[compile_predicate(p) for p in stub.get("predicates") or []],
        responses=[compile_response(r) for r in stub["responses"]],
        definition=stub
    )


def queue_bindings(config: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Queue names bound by an imposter with their type, ``both`` by default."""
    queues = config.get("queues") or DEFAULT_QUEUE_BINDINGS
    return [(queue["name"], queue.get("type", "both")) for queue in queues]
