"""Snapshot of an inbound HTTP request as seen by the mock provider."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LiveRequest:
    method: str
    path: str
    query: Dict[str, List[str]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    has_body: bool = False

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        query: Optional[Dict[str, List[str]]] = None,
        headers: Optional[Dict[str, str]] = None,
        raw_body: bytes = b"",
    ) -> "LiveRequest":
        """Normalise header names to lower case and decode the body.

        JSON bodies are parsed; anything else is kept as text.
        """
        lowered = {str(k).lower(): str(v) for k, v in (headers or {}).items()}
        body: Any = None
        if raw_body:
            text = raw_body.decode("utf-8", errors="replace")
            try:
                body = json.loads(text)
            except ValueError:
                body = text
        return cls(
            method=str(method).upper(),
            path=path,
            query={k: list(v) for k, v in (query or {}).items()},
            headers=lowered,
            body=body,
            has_body=bool(raw_body),
        )

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def describe(self) -> str:
        if not self.query:
            return f"{self.method} {self.path}"
        pairs = "&".join(f"{k}={v}" for k, values in sorted(self.query.items()) for v in values)
        return f"{self.method} {self.path}?{pairs}"


__all__ = ["LiveRequest"]
