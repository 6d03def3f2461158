"""In-memory interaction registry for one test.

Interactions are appended in declaration order and become read-only once
the mock server seals the registry. Only the invocation counters and the
mismatch log change while serving; both sit behind a lock because several
requests may be handled concurrently.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set, Tuple

from pactmock.errors import DuplicateDescriptionError, RegistrySealedError
from pactmock.logic.matchers import MatchResult
from pactmock.logic.request_matching import match_request_line, path_rank
from pactmock.models.interaction import Interaction
from pactmock.models.live_request import LiveRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """An interaction whose method and path accept a live request."""

    index: int
    interaction: Interaction
    path_rank: int
    line_result: MatchResult

    @property
    def sort_key(self) -> Tuple[bool, int, int, int]:
        return (
            not self.line_result.matched,
            self.path_rank,
            len(self.line_result.mismatches),
            self.index,
        )


class InteractionRegistry:
    def __init__(self) -> None:
        self._interactions: List[Interaction] = []
        self._keys: Set[Tuple[str, Optional[str]]] = set()
        self._counts: List[int] = []
        self._mismatched: List[str] = []
        self._lock = threading.Lock()
        self._sealed = False

    def __len__(self) -> int:
        return len(self._interactions)

    def __iter__(self) -> Iterator[Interaction]:
        return iter(tuple(self._interactions))

    @property
    def interactions(self) -> Tuple[Interaction, ...]:
        return tuple(self._interactions)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, interaction: Interaction) -> Interaction:
        """Append an interaction; (description, provider state) must be unique."""
        if self._sealed:
            raise RegistrySealedError(
                f"cannot register {interaction.description!r} while the mock server is running"
            )
        if interaction.key in self._keys:
            raise DuplicateDescriptionError(interaction.description, interaction.provider_state)
        self._keys.add(interaction.key)
        self._interactions.append(interaction)
        self._counts.append(0)
        logger.debug(
            "registry.registered description=%s request=%s",
            interaction.description,
            interaction.request.describe(),
        )
        return interaction

    def seal(self) -> None:
        self._sealed = True

    def unseal(self) -> None:
        self._sealed = False

    def registered_paths(self) -> List[str]:
        return [i.request.describe() for i in self._interactions]

    def find_candidates(self, request: LiveRequest) -> List[Candidate]:
        """Return interactions matching method and path, best first.

        Interactions whose query and headers also match come first, exact
        paths before pattern paths. The rest follow, ordered by path
        specificity, then fewest request-line mismatches. Ties keep
        declaration order. Bodies are not looked at here.
        """
        found: List[Candidate] = []
        for index, interaction in enumerate(self._interactions):
            rank = path_rank(interaction.request, request)
            if rank is None:
                continue
            found.append(
                Candidate(
                    index=index,
                    interaction=interaction,
                    path_rank=rank,
                    line_result=match_request_line(interaction.request, request),
                )
            )
        found.sort(key=lambda c: c.sort_key)
        return found

    def record_invocation(self, index: int) -> int:
        with self._lock:
            self._counts[index] += 1
            return self._counts[index]

    def invocation_count(self, index: int) -> int:
        with self._lock:
            return self._counts[index]

    def uninvoked(self) -> List[Interaction]:
        with self._lock:
            return [i for i, count in zip(self._interactions, self._counts) if count == 0]

    def record_mismatch(self, request: LiveRequest, reason: str) -> None:
        with self._lock:
            self._mismatched.append(f"{request.describe()} ({reason})")

    def mismatched_requests(self) -> List[str]:
        with self._lock:
            return list(self._mismatched)

    def reset_counters(self) -> None:
        with self._lock:
            self._counts = [0] * len(self._interactions)
            self._mismatched.clear()


__all__ = ["Candidate", "InteractionRegistry"]
