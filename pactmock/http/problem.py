"""Diagnostic error responses for the mock provider.

A request the registry cannot satisfy is answered with status 500 and a
JSON body `{"error": ..., "mismatches": [...]}` so the client under test
sees a real HTTP failure instead of the server raising.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from pactmock.errors import NoMatchingInteractionError

MISMATCH_MEDIA_TYPE = "application/json"
MISMATCH_STATUS = 500

logger = logging.getLogger(__name__)


def mismatch_response(error: NoMatchingInteractionError) -> JSONResponse:
    return JSONResponse(error.to_body(), status_code=MISMATCH_STATUS, media_type=MISMATCH_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error(
        "mock_server.unexpected_error method=%s path=%s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    body = {"error": f"mock server failed to handle request: {type(exc).__name__}: {exc}", "mismatches": []}
    return JSONResponse(body, status_code=MISMATCH_STATUS, media_type=MISMATCH_MEDIA_TYPE)


__all__ = [
    "MISMATCH_MEDIA_TYPE",
    "MISMATCH_STATUS",
    "mismatch_response",
    "handle_unexpected_error",
]
