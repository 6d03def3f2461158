"""Consumer-driven contract testing harness.

This package exposes a `Pact` entry point used by consumer tests: declare
interactions, run test code against an in-process mock provider, and write
a Pact v3 contract file. Matching logic lives in `pactmock/logic/`, the
HTTP surface of the mock provider in `pactmock/http/`.
"""

from __future__ import annotations

from pactmock.builder import InteractionBuilder, Pact, ResponseBuilder
from pactmock.config import PactConfig, load_config
from pactmock.errors import (
    DuplicateDescriptionError,
    InvalidMatcherError,
    NoMatchingInteractionError,
    PactError,
    RegistrySealedError,
    SerializationError,
    ServerStartError,
    UnmetExpectationsError,
)
from pactmock.logic.contract_writer import LIBRARY_VERSION as __version__
from pactmock.logic.matchers import Literal, Match, MatchResult, MinArray, Regex, TypeOf, match
from pactmock.models.interaction import HttpMethod, Interaction, RequestSpec, ResponseSpec
from pactmock.output import BufferedOutput, ConsoleOutput, LoggingOutput
from pactmock.server import MockServer
from pactmock.verification import MockServerContext

__all__ = [
    "__version__",
    "Pact",
    "InteractionBuilder",
    "ResponseBuilder",
    "PactConfig",
    "load_config",
    "PactError",
    "DuplicateDescriptionError",
    "InvalidMatcherError",
    "NoMatchingInteractionError",
    "RegistrySealedError",
    "SerializationError",
    "ServerStartError",
    "UnmetExpectationsError",
    "Literal",
    "Match",
    "MatchResult",
    "MinArray",
    "Regex",
    "TypeOf",
    "match",
    "HttpMethod",
    "Interaction",
    "RequestSpec",
    "ResponseSpec",
    "BufferedOutput",
    "ConsoleOutput",
    "LoggingOutput",
    "MockServer",
    "MockServerContext",
]
