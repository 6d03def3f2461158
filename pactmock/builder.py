"""Fluent interaction builder and the `Pact` entry point.

A `Pact` is created per test. Interactions are declared with

    (
        pact.upon_receiving("a request to retrieve all products")
        .with_request("GET", "/Products")
        .will_respond()
        .with_status(200)
        .with_json_body(Match.min_type({"id": 27, "name": "burger"}, 1))
    )

and are registered, in declaration order, when the pact is verified.
`verify` runs the test body against a fresh mock server and, on success,
writes the contract file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pactmock.config import PactConfig, load_config, resolve_provider_name
from pactmock.errors import RegistrySealedError
from pactmock.logging_setup import configure_logging
from pactmock.logic import contract_writer
from pactmock.logic.registry import InteractionRegistry
from pactmock.models.interaction import Interaction, RequestSpec, ResponseSpec
from pactmock.output import LoggingOutput, Output
from pactmock.server import MockServer
from pactmock.verification import BodyCallable, verify, verify_async

logger = logging.getLogger(__name__)


class ResponseBuilder:
    def __init__(self) -> None:
        self._status = 200
        self._headers: Dict[str, str] = {}
        self._body: Any = None

    def with_status(self, status: int) -> "ResponseBuilder":
        self._status = int(status)
        return self

    def with_header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def with_json_body(self, body: Any) -> "ResponseBuilder":
        self._body = body
        return self

    def with_body(self, body: str, content_type: str) -> "ResponseBuilder":
        self._headers["Content-Type"] = content_type
        self._body = body
        return self

    def build(self) -> ResponseSpec:
        return ResponseSpec(status=self._status, headers=dict(self._headers), body=self._body)


class InteractionBuilder:
    def __init__(self, description: str) -> None:
        self._description = description
        self._state: Optional[str] = None
        self._state_params: Optional[Dict[str, Any]] = None
        self._method: Optional[str] = None
        self._path: Any = None
        self._headers: Dict[str, Any] = {}
        self._query: Dict[str, Any] = {}
        self._body: Any = None
        self._response: Optional[ResponseBuilder] = None

    def given(self, state: str, **params: Any) -> "InteractionBuilder":
        self._state = state
        self._state_params = dict(params) or None
        return self

    def with_request(self, method: str, path: Any) -> "InteractionBuilder":
        self._method = str(method)
        self._path = path
        return self

    def with_header(self, name: str, value: Any) -> "InteractionBuilder":
        self._headers[name] = value
        return self

    def with_query(self, name: str, value: Any) -> "InteractionBuilder":
        self._query[name] = value
        return self

    def with_json_body(self, body: Any) -> "InteractionBuilder":
        self._body = body
        return self

    def will_respond(self) -> ResponseBuilder:
        self._response = ResponseBuilder()
        return self._response

    def build(self) -> Interaction:
        if self._method is None or self._path is None:
            raise ValueError(f"interaction {self._description!r} has no request; call with_request()")
        response = self._response.build() if self._response is not None else ResponseSpec()
        return Interaction(
            description=self._description,
            request=RequestSpec(
                method=self._method,
                path=self._path,
                headers=dict(self._headers),
                query=dict(self._query),
                body=self._body,
            ),
            response=response,
            provider_state=self._state,
            provider_state_params=self._state_params,
        )


class Pact:
    def __init__(
        self,
        consumer: str,
        provider: str,
        config: Optional[PactConfig] = None,
        *,
        outputs: Optional[Iterable[Output]] = None,
        pact_dir: Optional[str | Path] = None,
    ) -> None:
        self.config = config if config is not None else load_config()
        configure_logging(self.config.log_level)
        self.consumer = consumer
        self.provider = resolve_provider_name(provider, self.config)
        self.pact_dir = Path(pact_dir) if pact_dir is not None else Path(self.config.contract.pact_dir)
        self.outputs: Tuple[Output, ...] = tuple(outputs) if outputs is not None else (LoggingOutput(),)
        self.registry = InteractionRegistry()
        self._pending: List[InteractionBuilder] = []

    @classmethod
    def v3(cls, consumer: str, provider: str, config: Optional[PactConfig] = None, **kwargs: Any) -> "Pact":
        return cls(consumer, provider, config, **kwargs)

    def upon_receiving(self, description: str) -> InteractionBuilder:
        if self.registry.sealed:
            raise RegistrySealedError(f"cannot declare {description!r} while the mock server is running")
        builder = InteractionBuilder(description)
        self._pending.append(builder)
        return builder

    def register(self, interaction: Interaction) -> Interaction:
        self._flush()
        return self.registry.register(interaction)

    def _flush(self) -> None:
        pending, self._pending = self._pending, []
        for builder in pending:
            self.registry.register(builder.build())

    @property
    def interactions(self) -> Tuple[Interaction, ...]:
        self._flush()
        return self.registry.interactions

    @property
    def contract_path(self) -> Path:
        return contract_writer.contract_path(self.pact_dir, self.consumer, self.provider)

    def mock_server(self) -> MockServer:
        self._flush()
        return MockServer(
            self.registry,
            host=self.config.server.host,
            bind_timeout=self.config.server.bind_timeout,
            outputs=self.outputs,
        )

    def write_contract(self) -> Path:
        return contract_writer.write(
            self.consumer,
            self.provider,
            self.interactions,
            self.pact_dir,
            mode=self.config.contract.file_write_mode,
        )

    def verify(self, test_body: BodyCallable, *, timeout: Optional[float] = None) -> Any:
        """Run `test_body(context)` against a fresh mock server; write the contract on success."""
        return verify(self.mock_server(), test_body, timeout=timeout, on_success=self.write_contract)

    async def verify_async(self, test_body: BodyCallable, *, timeout: Optional[float] = None) -> Any:
        return await verify_async(self.mock_server(), test_body, timeout=timeout, on_success=self.write_contract)


__all__ = ["Pact", "InteractionBuilder", "ResponseBuilder"]
