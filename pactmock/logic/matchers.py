"""Matcher engine (pure logic).

No FastAPI/Starlette imports. Compares an expected shape against an actual
decoded JSON value and returns a `MatchResult` listing every mismatch,
path-qualified.

Expected shapes are plain JSON values (dict, list, str, number, bool, None)
optionally carrying matcher expressions at any position:

- `Literal(value)`   exact deep equality, no coercion
- `TypeOf(example)`  same type class as the example, cascading into children
- `MinArray(example, min_count)`  array of at least `min_count` elements,
  each matching `example` by type
- `Regex(pattern, example)`  string fully matching `pattern`

Plain objects are matched leniently: declared keys must be present and
match, extra keys in the actual value are allowed.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Tuple, Union

from pactmock.errors import InvalidMatcherError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")


@dataclass(frozen=True)
class Literal:
    value: Any

    def __post_init__(self) -> None:
        if contains_matchers(self.value):
            raise InvalidMatcherError("Literal value must be plain JSON without nested matchers")


@dataclass(frozen=True)
class TypeOf:
    example: Any


@dataclass(frozen=True)
class MinArray:
    example: Any
    min_count: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.min_count, bool) or not isinstance(self.min_count, int) or self.min_count < 1:
            raise InvalidMatcherError(f"MinArray min_count must be an integer >= 1, got {self.min_count!r}")


@dataclass(frozen=True)
class Regex:
    pattern: str
    example: str

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise InvalidMatcherError(f"invalid regex {self.pattern!r}: {e}") from e
        if not isinstance(self.example, str) or compiled.fullmatch(self.example) is None:
            raise InvalidMatcherError(
                f"Regex example {self.example!r} does not match its pattern {self.pattern!r}"
            )


MatchExpr = Union[Literal, TypeOf, MinArray, Regex]
MATCHER_TYPES: Tuple[type, ...] = (Literal, TypeOf, MinArray, Regex)


class Match:
    """Factory shortcuts mirroring the usual consumer-test vocabulary."""

    @staticmethod
    def type(example: Any) -> TypeOf:
        return TypeOf(example)

    @staticmethod
    def min_type(example: Any, min: int = 1) -> MinArray:  # noqa: A002
        return MinArray(example, min)

    @staticmethod
    def regex(example: str, pattern: str) -> Regex:
        return Regex(pattern, example)

    @staticmethod
    def equality(value: Any) -> Literal:
        return Literal(value)


@dataclass(frozen=True)
class Mismatch:
    path: str
    expected: str
    actual: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "expected": self.expected, "actual": self.actual}


@dataclass(frozen=True)
class MatchResult:
    mismatches: Tuple[Mismatch, ...] = ()

    @property
    def matched(self) -> bool:
        return not self.mismatches

    @classmethod
    def combine(cls, results: Iterable["MatchResult"]) -> "MatchResult":
        merged: List[Mismatch] = []
        for result in results:
            merged.extend(result.mismatches)
        return cls(tuple(merged))

    def to_dict(self) -> dict[str, Any]:
        return {"matched": self.matched, "mismatches": [m.to_dict() for m in self.mismatches]}


def contains_matchers(value: Any) -> bool:
    if isinstance(value, MATCHER_TYPES):
        return True
    if isinstance(value, dict):
        return any(contains_matchers(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_matchers(v) for v in value)
    return False


def example_of(expected: Any) -> Any:
    """Resolve an expected shape to a concrete example value."""
    if isinstance(expected, Literal):
        return copy.deepcopy(expected.value)
    if isinstance(expected, TypeOf):
        return example_of(expected.example)
    if isinstance(expected, MinArray):
        return [example_of(expected.example) for _ in range(expected.min_count)]
    if isinstance(expected, Regex):
        return expected.example
    if isinstance(expected, dict):
        return {k: example_of(v) for k, v in expected.items()}
    if isinstance(expected, (list, tuple)):
        return [example_of(v) for v in expected]
    return expected


def type_class(value: Any) -> str:
    """Qualitative JSON type of a value; int and float are both `number`."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def values_equal(expected: Any, actual: Any) -> bool:
    """Deep equality that never coerces across type classes (True != 1)."""
    kind = type_class(expected)
    if kind != type_class(actual):
        return False
    if kind == "object":
        if set(expected) != set(actual):
            return False
        return all(values_equal(expected[k], actual[k]) for k in expected)
    if kind == "array":
        if len(expected) != len(actual):
            return False
        return all(values_equal(e, a) for e, a in zip(expected, actual))
    return expected == actual


def child_path(path: str, key: Any) -> str:
    key_s = str(key)
    if _IDENTIFIER.match(key_s):
        return f"{path}.{key_s}"
    return f"{path}['{key_s}']"


def render(value: Any) -> str:
    try:
        return json.dumps(example_of(value), sort_keys=True)
    except (TypeError, ValueError):
        return repr(value)


def describe(expected: Any) -> str:
    """Human-readable description of what an expected shape accepts."""
    if isinstance(expected, Literal):
        return render(expected.value)
    if isinstance(expected, TypeOf):
        return f"{_article(type_class(example_of(expected)))} like {render(expected)}"
    if isinstance(expected, MinArray):
        return f"an array with at least {expected.min_count} element(s) like {render(expected.example)}"
    if isinstance(expected, Regex):
        return f"a string matching /{expected.pattern}/"
    return render(expected)


def _article(kind: str) -> str:
    return f"an {kind}" if kind[:1] in "aeiou" else f"a {kind}"


def _describe_actual(actual: Any) -> str:
    return f"{_article(type_class(actual))} {render(actual)}"


def _compare(expected: Any, actual: Any, path: str, cascade: bool, out: List[Mismatch]) -> None:
    if isinstance(expected, Literal):
        if not values_equal(expected.value, actual):
            out.append(Mismatch(path, render(expected.value), render(actual)))
        return

    if isinstance(expected, TypeOf):
        _compare(expected.example, actual, path, True, out)
        return

    if isinstance(expected, MinArray):
        wanted = f"an array with at least {expected.min_count} element(s)"
        if not isinstance(actual, (list, tuple)):
            out.append(Mismatch(path, wanted, _describe_actual(actual)))
            return
        if len(actual) < expected.min_count:
            out.append(Mismatch(path, wanted, f"an array with {len(actual)} element(s)"))
        for i, item in enumerate(actual):
            _compare(expected.example, item, f"{path}[{i}]", True, out)
        return

    if isinstance(expected, Regex):
        if not isinstance(actual, str) or re.fullmatch(expected.pattern, actual) is None:
            out.append(Mismatch(path, describe(expected), _describe_actual(actual)))
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            out.append(Mismatch(path, "an object", _describe_actual(actual)))
            return
        for key, sub in expected.items():
            sub_path = child_path(path, key)
            if key not in actual:
                out.append(Mismatch(sub_path, describe(sub), "nothing (key missing)"))
                continue
            _compare(sub, actual[key], sub_path, cascade, out)
        return

    if isinstance(expected, (list, tuple)):
        if not isinstance(actual, (list, tuple)):
            out.append(Mismatch(path, "an array", _describe_actual(actual)))
            return
        if cascade:
            # Under a type match every actual element is compared to the first example
            if expected:
                for i, item in enumerate(actual):
                    _compare(expected[0], item, f"{path}[{i}]", True, out)
            return
        if len(expected) != len(actual):
            out.append(
                Mismatch(
                    path,
                    f"an array with {len(expected)} element(s)",
                    f"an array with {len(actual)} element(s)",
                )
            )
        for i, (sub, item) in enumerate(zip(expected, actual)):
            _compare(sub, item, f"{path}[{i}]", False, out)
        return

    if cascade:
        if type_class(expected) != type_class(actual):
            out.append(Mismatch(path, f"{_article(type_class(expected))} like {render(expected)}", _describe_actual(actual)))
        return

    if not values_equal(expected, actual):
        out.append(Mismatch(path, render(expected), render(actual)))


def match(expected: Any, actual: Any, path: str = "$") -> MatchResult:
    """Compare `actual` against `expected`, collecting every mismatch."""
    out: List[Mismatch] = []
    _compare(expected, actual, path, False, out)
    return MatchResult(tuple(out))


__all__ = [
    "Literal",
    "TypeOf",
    "MinArray",
    "Regex",
    "MatchExpr",
    "MATCHER_TYPES",
    "Match",
    "Mismatch",
    "MatchResult",
    "contains_matchers",
    "example_of",
    "type_class",
    "values_equal",
    "child_path",
    "render",
    "describe",
    "match",
]
