"""Translation between matcher expressions and Pact v3 `matchingRules`.

A body shape is split into its example value plus a map of JSON paths
(`$`, `$.id`, `$[*].name`) to rule entries. Headers and query parameters
carry one rule entry per name. `rebuild` reverses the split so a contract
read back from disk yields the same matcher shapes that were written.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from pactmock.errors import InvalidMatcherError
from pactmock.logic.matchers import (
    MATCHER_TYPES,
    Literal,
    MinArray,
    Regex,
    TypeOf,
    child_path,
    example_of,
)

RuleMap = Dict[str, Dict[str, Any]]


def rule_entry(matcher: dict[str, Any]) -> dict[str, Any]:
    return {"combine": "AND", "matchers": [matcher]}


def _collect(expected: Any, path: str, rules: RuleMap) -> None:
    if isinstance(expected, Literal):
        rules[path] = rule_entry({"match": "equality"})
        return
    if isinstance(expected, TypeOf):
        rules[path] = rule_entry({"match": "type"})
        _collect(expected.example, path, rules)
        return
    if isinstance(expected, MinArray):
        rules[path] = rule_entry({"match": "type", "min": expected.min_count})
        _collect(expected.example, f"{path}[*]", rules)
        return
    if isinstance(expected, Regex):
        rules[path] = rule_entry({"match": "regex", "regex": expected.pattern})
        return
    if isinstance(expected, dict):
        for key, sub in expected.items():
            _collect(sub, child_path(path, key), rules)
        return
    if isinstance(expected, (list, tuple)):
        for i, sub in enumerate(expected):
            _collect(sub, f"{path}[{i}]", rules)


def body_rules(expected: Any) -> Tuple[Any, RuleMap]:
    """Return `(example, rules)` for a body shape."""
    rules: RuleMap = {}
    _collect(expected, "$", rules)
    return example_of(expected), rules


def field_rules(fields: Mapping[str, Any]) -> Tuple[Dict[str, Any], RuleMap]:
    """Return `(examples, rules)` for a header or query mapping.

    Only a matcher at the top of each value is recorded, keyed by field name.
    """
    examples: Dict[str, Any] = {}
    rules: RuleMap = {}
    for name, expected in fields.items():
        examples[name] = example_of(expected)
        if isinstance(expected, MATCHER_TYPES):
            sub: RuleMap = {}
            _collect(expected, "$", sub)
            rules[name] = sub["$"]
    return examples, rules


def rebuild(value: Any, rules: Mapping[str, Any], path: str = "$") -> Any:
    """Recreate matcher expressions over `value` from a rule map."""
    entry = rules.get(path)
    if entry:
        matchers = entry.get("matchers") or []
        if not matchers:
            return _rebuild_children(value, rules, path)
        rule = matchers[0]
        kind = rule.get("match")
        if kind == "equality":
            return Literal(value)
        if kind == "regex":
            return Regex(str(rule.get("regex", "")), value)
        if kind == "type":
            if "min" in rule:
                if not isinstance(value, list) or not value:
                    raise InvalidMatcherError(f"min type rule at {path} needs a non-empty array example")
                return MinArray(rebuild(value[0], rules, f"{path}[*]"), int(rule["min"]))
            return TypeOf(_rebuild_children(value, rules, path))
        raise InvalidMatcherError(f"unsupported matcher {kind!r} at {path}")
    return _rebuild_children(value, rules, path)


def _rebuild_children(value: Any, rules: Mapping[str, Any], path: str) -> Any:
    if isinstance(value, dict):
        return {k: rebuild(v, rules, child_path(path, k)) for k, v in value.items()}
    if isinstance(value, list):
        return [rebuild(v, rules, f"{path}[{i}]") for i, v in enumerate(value)]
    return value


def rebuild_field(value: Any, entry: Mapping[str, Any] | None) -> Any:
    if not entry:
        return value
    return rebuild(value, {"$": entry})


__all__ = [
    "RuleMap",
    "rule_entry",
    "body_rules",
    "field_rules",
    "rebuild",
    "rebuild_field",
]
