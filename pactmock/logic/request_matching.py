"""Per-field comparison of a live request against a declared `RequestSpec`.

Each helper returns a `MatchResult` whose mismatch paths are prefixed with
the request part they concern (`path`, `query.<name>`, `headers.<name>`,
`body...`). Header names compare case-insensitively.
"""

from __future__ import annotations

from typing import Any, List

from pactmock.logic.matchers import (
    MATCHER_TYPES,
    Mismatch,
    MatchResult,
    MinArray,
    describe,
    match,
    render,
)
from pactmock.models.interaction import RequestSpec
from pactmock.models.live_request import LiveRequest


def path_rank(spec: RequestSpec, request: LiveRequest) -> int | None:
    """Return 0 for an exact path hit, 1 for a pattern hit, None otherwise."""
    if spec.method != request.method:
        return None
    if spec.is_exact_path:
        return 0 if spec.path == request.path else None
    return 1 if match(spec.path, request.path).matched else None


def match_query(spec: RequestSpec, request: LiveRequest) -> MatchResult:
    out: List[Mismatch] = []
    for name, expected in spec.query.items():
        field_path = f"query.{name}"
        values = request.query.get(name)
        if values is None:
            out.append(Mismatch(field_path, describe(expected), "nothing (parameter missing)"))
            continue
        actual: Any = values[0] if len(values) == 1 else values
        if isinstance(expected, MinArray):
            out.extend(match(expected, list(values), field_path).mismatches)
        elif isinstance(expected, MATCHER_TYPES):
            out.extend(match(expected, actual, field_path).mismatches)
        elif isinstance(expected, (list, tuple)):
            out.extend(match([str(v) for v in expected], list(values), field_path).mismatches)
        else:
            out.extend(match(str(expected), actual, field_path).mismatches)
    for name, values in request.query.items():
        if name not in spec.query:
            out.append(Mismatch(f"query.{name}", "no such parameter", render(values)))
    return MatchResult(tuple(out))


def match_headers(spec: RequestSpec, request: LiveRequest) -> MatchResult:
    out: List[Mismatch] = []
    for name, expected in spec.headers.items():
        field_path = f"headers.{name}"
        actual = request.header(name)
        if actual is None:
            out.append(Mismatch(field_path, describe(expected), "nothing (header missing)"))
            continue
        if isinstance(expected, MATCHER_TYPES):
            out.extend(match(expected, actual, field_path).mismatches)
        elif str(expected).strip() != actual.strip():
            out.append(Mismatch(field_path, render(str(expected)), render(actual)))
    return MatchResult(tuple(out))


def match_body(spec: RequestSpec, request: LiveRequest) -> MatchResult:
    if spec.body is None:
        return MatchResult()
    if not request.has_body:
        return MatchResult((Mismatch("body", describe(spec.body), "nothing (no body sent)"),))
    return match(spec.body, request.body, "body")


def match_request_line(spec: RequestSpec, request: LiveRequest) -> MatchResult:
    """Query and headers; method and path are decided by `path_rank`."""
    return MatchResult.combine([match_query(spec, request), match_headers(spec, request)])


def describe_line_mismatch(spec: RequestSpec, request: LiveRequest) -> Mismatch:
    return Mismatch("path", spec.describe(), f"{request.method} {request.path}")


__all__ = [
    "path_rank",
    "match_query",
    "match_headers",
    "match_body",
    "match_request_line",
    "describe_line_mismatch",
]
