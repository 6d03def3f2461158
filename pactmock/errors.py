"""Exception taxonomy for the contract harness.

Setup and teardown errors propagate to the test runner. Matching failures
never leave the mock server as exceptions; they are rendered as diagnostic
500 responses (see `pactmock.http.problem`).
"""

from __future__ import annotations

from typing import Any, Sequence


class PactError(Exception):
    pass


class InvalidMatcherError(PactError, ValueError):
    """A matcher was constructed with an inconsistent example or argument."""


class DuplicateDescriptionError(PactError, ValueError):
    """Two interactions share the same (description, provider state) pair."""

    def __init__(self, description: str, provider_state: str | None) -> None:
        self.description = description
        self.provider_state = provider_state
        state = f" given {provider_state!r}" if provider_state else ""
        super().__init__(f"interaction already registered: {description!r}{state}")


class RegistrySealedError(PactError, RuntimeError):
    """Registration attempted while the mock server is serving the registry."""


class ServerStartError(PactError, RuntimeError):
    pass


class NoMatchingInteractionError(PactError):
    """No registered interaction satisfied a live request.

    Built inside the request handler and converted to a 500 response body;
    it is never raised out of the server.
    """

    def __init__(self, message: str, mismatches: Sequence[dict[str, str]], **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.mismatches = list(mismatches)
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "mismatches": self.mismatches}
        body.update(self.extra)
        return body


class UnmetExpectationsError(PactError, AssertionError):
    """Verification finished with uninvoked interactions or mismatched requests."""

    def __init__(self, uninvoked: Sequence[str], mismatched: Sequence[str] = ()) -> None:
        self.uninvoked = list(uninvoked)
        self.mismatched = list(mismatched)
        parts: list[str] = []
        if self.uninvoked:
            parts.append(
                "interactions never invoked: " + ", ".join(repr(d) for d in self.uninvoked)
            )
        if self.mismatched:
            parts.append("unexpected or mismatched requests: " + ", ".join(self.mismatched))
        super().__init__("; ".join(parts) or "expectations not met")


class SerializationError(PactError):
    """The contract file could not be written or read back."""


__all__ = [
    "PactError",
    "InvalidMatcherError",
    "DuplicateDescriptionError",
    "RegistrySealedError",
    "ServerStartError",
    "NoMatchingInteractionError",
    "UnmetExpectationsError",
    "SerializationError",
]
