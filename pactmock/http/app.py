"""FastAPI application serving registered interactions.

A single catch-all route accepts every method and path, snapshots the
request and hands it to `dispatch`, which picks the interaction to serve or
builds the diagnostic 500. The OpenAPI and docs routes are disabled so
that no path is shadowed.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List, Tuple

from fastapi import FastAPI, Request, Response

from pactmock.errors import NoMatchingInteractionError
from pactmock.http.problem import handle_unexpected_error, mismatch_response
from pactmock.logic.matchers import MatchResult, example_of
from pactmock.logic.registry import Candidate, InteractionRegistry
from pactmock.logic.request_matching import describe_line_mismatch, match_body
from pactmock.models.interaction import HttpMethod, ResponseSpec
from pactmock.models.live_request import LiveRequest
from pactmock.output import Output, emit

logger = logging.getLogger(__name__)


def _has_header(headers: dict[str, str], name: str) -> bool:
    return any(k.lower() == name.lower() for k in headers)


def _is_json_content(headers: dict[str, str]) -> bool:
    for k, v in headers.items():
        if k.lower() == "content-type":
            return "json" in v.lower()
    return True


def interaction_response(spec: ResponseSpec) -> Response:
    """Render a declared response with its example body."""
    headers = dict(spec.headers)
    content = b""
    if spec.body is not None:
        body = example_of(spec.body)
        if isinstance(body, str) and not _is_json_content(headers):
            content = body.encode("utf-8")
        else:
            content = json.dumps(body).encode("utf-8")
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = "application/json"
    return Response(content=content, status_code=spec.status, headers=headers)


def _no_candidates(registry: InteractionRegistry, request: LiveRequest) -> NoMatchingInteractionError:
    mismatches = [describe_line_mismatch(i.request, request).to_dict() for i in registry.interactions]
    if not mismatches:
        mismatches = [{"path": "path", "expected": "no interactions registered", "actual": request.describe()}]
    return NoMatchingInteractionError(
        f"no interaction registered for {request.method} {request.path}",
        mismatches,
        registeredPaths=registry.registered_paths(),
    )


def dispatch(
    registry: InteractionRegistry,
    request: LiveRequest,
    outputs: Iterable[Output] = (),
) -> Response:
    """Serve `request` from the registry.

    Only candidates whose query and headers match are eligible, and of
    those only the most specific path rank has its bodies compared. The
    first full match is served and counted; otherwise the candidate with the
    fewest mismatches across request line and body is reported.
    """
    sinks = tuple(outputs)
    emit(sinks, f"pact mock: received {request.describe()}")
    candidates = registry.find_candidates(request)

    if not candidates:
        error = _no_candidates(registry, request)
        registry.record_mismatch(request, "no interaction for method and path")
        logger.warning("mock_server.unexpected_request request=%s", request.describe())
        emit(sinks, f"pact mock: no interaction matches {request.describe()}")
        return mismatch_response(error)

    servable = [c for c in candidates if c.line_result.matched]
    top = [c for c in servable if c.path_rank == servable[0].path_rank] if servable else []
    for candidate in top:
        if match_body(candidate.interaction.request, request).matched:
            count = registry.record_invocation(candidate.index)
            logger.info(
                "mock_server.matched request=%s interaction=%s invocations=%s",
                request.describe(),
                candidate.interaction.description,
                count,
            )
            emit(sinks, f"pact mock: {request.describe()} matched {candidate.interaction.description!r}")
            return interaction_response(candidate.interaction.response)

    scored: List[Tuple[int, int, Candidate, MatchResult]] = []
    for position, candidate in enumerate(candidates):
        full = MatchResult.combine([candidate.line_result, match_body(candidate.interaction.request, request)])
        scored.append((len(full.mismatches), position, candidate, full))

    _, _, best, diff = min(scored, key=lambda item: (item[0], item[1]))
    registry.record_mismatch(request, f"closest interaction {best.interaction.description!r} did not match")
    logger.warning(
        "mock_server.mismatch request=%s interaction=%s mismatches=%s",
        request.describe(),
        best.interaction.description,
        len(diff.mismatches),
    )
    for m in diff.mismatches:
        emit(sinks, f"pact mock: mismatch at {m.path}: expected {m.expected}, got {m.actual}")
    error = NoMatchingInteractionError(
        f"request {request.describe()} did not match interaction {best.interaction.description!r}",
        [m.to_dict() for m in diff.mismatches],
        interaction=best.interaction.description,
    )
    return mismatch_response(error)


async def snapshot(request: Request) -> LiveRequest:
    """Capture an inbound request; repeated headers are joined with ", "."""
    raw_body = await request.body()
    return LiveRequest.build(
        request.method,
        request.url.path,
        query={key: request.query_params.getlist(key) for key in request.query_params.keys()},
        headers={key: ", ".join(request.headers.getlist(key)) for key in request.headers.keys()},
        raw_body=raw_body,
    )


def create_app(registry: InteractionRegistry, outputs: Iterable[Output] = ()) -> FastAPI:
    sinks = tuple(outputs)
    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.state.registry = registry

    # The catch-all route lists the declarable methods; any other verb is
    # rejected by the router with 405 and answered here as an unmatched request.
    async def unsupported_method(request: Request, exc: Exception) -> Response:
        return dispatch(registry, await snapshot(request), sinks)

    app.add_exception_handler(405, unsupported_method)

    @app.api_route("/{full_path:path}", methods=list(HttpMethod.ALL), include_in_schema=False)
    async def serve(request: Request, full_path: str) -> Response:
        return dispatch(registry, await snapshot(request), sinks)

    return app


__all__ = ["interaction_response", "dispatch", "snapshot", "create_app"]
