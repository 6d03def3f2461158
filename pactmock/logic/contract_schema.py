"""JSON Schema for contract files written by `contract_writer`.

Checked before every write and after every read so a malformed document is
reported as a `SerializationError` instead of surfacing later in matching.
"""

from __future__ import annotations

from typing import Any, Dict

_RULE_ENTRY: Dict[str, Any] = {
    "type": "object",
    "required": ["matchers"],
    "properties": {
        "combine": {"enum": ["AND", "OR"]},
        "matchers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["match"],
                "properties": {
                    "match": {"enum": ["equality", "type", "regex"]},
                    "min": {"type": "integer", "minimum": 1},
                    "regex": {"type": "string"},
                },
            },
        },
    },
}

_RULE_MAP: Dict[str, Any] = {"type": "object", "additionalProperties": {"$ref": "#/$defs/ruleEntry"}}

_MATCHING_RULES: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {"$ref": "#/$defs/ruleEntry"},
        "query": _RULE_MAP,
        "header": _RULE_MAP,
        "body": _RULE_MAP,
    },
    "additionalProperties": False,
}

CONTRACT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Pact v3 consumer contract",
    "type": "object",
    "required": ["consumer", "provider", "interactions", "metadata"],
    "properties": {
        "consumer": {"$ref": "#/$defs/pacticipant"},
        "provider": {"$ref": "#/$defs/pacticipant"},
        "interactions": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["description", "request", "response"],
                "properties": {
                    "description": {"type": "string", "minLength": 1},
                    "providerStates": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["name"],
                            "properties": {
                                "name": {"type": "string"},
                                "params": {"type": "object"},
                            },
                        },
                    },
                    "request": {
                        "type": "object",
                        "required": ["method", "path"],
                        "properties": {
                            "method": {"type": "string"},
                            "path": {"type": "string"},
                            "query": {
                                "type": "object",
                                "additionalProperties": {"type": "array", "items": {"type": "string"}},
                            },
                            "headers": {"type": "object", "additionalProperties": {"type": "string"}},
                            "matchingRules": {"$ref": "#/$defs/matchingRules"},
                        },
                    },
                    "response": {
                        "type": "object",
                        "required": ["status"],
                        "properties": {
                            "status": {"type": "integer", "minimum": 100, "maximum": 599},
                            "headers": {"type": "object", "additionalProperties": {"type": "string"}},
                            "matchingRules": {"$ref": "#/$defs/matchingRules"},
                        },
                    },
                },
            },
        },
        "metadata": {
            "type": "object",
            "required": ["pactSpecification"],
            "properties": {
                "pactSpecification": {
                    "type": "object",
                    "required": ["version"],
                    "properties": {"version": {"type": "string"}},
                }
            },
        },
    },
    "$defs": {
        "pacticipant": {
            "type": "object",
            "required": ["name"],
            "properties": {"name": {"type": "string", "minLength": 1}},
        },
        "ruleEntry": _RULE_ENTRY,
        "matchingRules": _MATCHING_RULES,
    },
}

__all__ = ["CONTRACT_SCHEMA"]
