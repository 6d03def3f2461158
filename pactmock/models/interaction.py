"""Declared interaction model.

An `Interaction` pairs a `RequestSpec` (what the consumer will send) with a
`ResponseSpec` (what the mock provider answers). Instances are immutable
once built; the registry owns them for the lifetime of one test.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from pactmock.errors import InvalidMatcherError
from pactmock.logic.matchers import MATCHER_TYPES, Regex, example_of


class HttpMethod:
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    ALL: Tuple[str, ...] = (GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS)

    @classmethod
    def normalize(cls, method: str) -> str:
        value = str(method or "").strip().upper()
        if value not in cls.ALL:
            raise ValueError(f"unsupported HTTP method {method!r}; expected one of {list(cls.ALL)}")
        return value


def _query_value(name: str, value: Any) -> Any:
    """Query parameters travel as strings: plain values are stringified,
    matchers must carry a string (or list of strings) example."""
    if isinstance(value, MATCHER_TYPES):
        example = example_of(value)
        if isinstance(example, str) or (
            isinstance(example, list) and all(isinstance(v, str) for v in example)
        ):
            return value
        raise InvalidMatcherError(
            f"query parameter {name!r} needs a string example, got {type(example).__name__}"
        )
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value)


@dataclass(frozen=True)
class RequestSpec:
    method: str
    path: Any
    headers: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", HttpMethod.normalize(self.method))
        if isinstance(self.path, str):
            if not self.path.startswith("/"):
                raise ValueError(f"request path must start with '/': {self.path!r}")
        elif not isinstance(self.path, Regex):
            raise ValueError("request path must be a string or a Regex matcher")
        object.__setattr__(self, "headers", dict(self.headers or {}))
        object.__setattr__(
            self, "query", {name: _query_value(name, value) for name, value in (self.query or {}).items()}
        )

    @property
    def path_example(self) -> str:
        return str(example_of(self.path))

    @property
    def is_exact_path(self) -> bool:
        return isinstance(self.path, str)

    def describe(self) -> str:
        return f"{self.method} {self.path_example}"


@dataclass(frozen=True)
class ResponseSpec:
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        if isinstance(self.status, bool) or not isinstance(self.status, int) or not 100 <= self.status <= 599:
            raise ValueError(f"response status must be an HTTP status code, got {self.status!r}")
        object.__setattr__(self, "headers", {str(k): str(v) for k, v in (self.headers or {}).items()})


@dataclass(frozen=True)
class Interaction:
    description: str
    request: RequestSpec
    response: ResponseSpec
    provider_state: Optional[str] = None
    provider_state_params: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValueError("interaction description must be a non-empty string")

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.description, self.provider_state)


__all__ = ["HttpMethod", "RequestSpec", "ResponseSpec", "Interaction"]
