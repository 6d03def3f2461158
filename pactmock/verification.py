"""Verification orchestrator.

Starts the mock server, runs the caller's test body against it exactly
once, always tears the server down, then checks that every registered
interaction was invoked and no request went unmatched.

Outcomes are captured in a `VerificationResult` first and only raised once
the server is stopped:

- the test body raised: that exception is re-raised, the expectation check
  is skipped;
- expectations unmet: `UnmetExpectationsError`;
- otherwise `on_success` runs (the contract write) and the body's return
  value is handed back.
"""

from __future__ import annotations

import concurrent.futures
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple

import anyio
import anyio.to_thread

from pactmock.errors import UnmetExpectationsError
from pactmock.logic.registry import InteractionRegistry
from pactmock.output import emit
from pactmock.server import MockServer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MockServerContext:
    """What the test body gets: where the mock provider is listening."""

    base_url: str

    @property
    def mock_server_uri(self) -> str:
        return self.base_url + "/"


class Outcome:
    PASSED = "passed"
    BODY_FAILED = "body_failed"
    UNMET_EXPECTATIONS = "unmet_expectations"


@dataclass(frozen=True)
class VerificationResult:
    outcome: str
    result: Any = None
    error: Optional[BaseException] = None
    uninvoked: Tuple[str, ...] = ()
    mismatched: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.PASSED

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        if self.outcome == Outcome.UNMET_EXPECTATIONS:
            raise UnmetExpectationsError(self.uninvoked, self.mismatched)
        return self.result


BodyCallable = Callable[[MockServerContext], Any]


def _check_expectations(server: MockServer, value: Any) -> VerificationResult:
    registry: InteractionRegistry = server.registry
    uninvoked = tuple(i.description for i in registry.uninvoked())
    mismatched = tuple(registry.mismatched_requests())
    if uninvoked or mismatched:
        logger.warning("verification.unmet uninvoked=%s mismatched=%s", list(uninvoked), list(mismatched))
        emit(server.outputs, f"pact verification failed: {UnmetExpectationsError(uninvoked, mismatched)}")
        return VerificationResult(
            outcome=Outcome.UNMET_EXPECTATIONS,
            result=value,
            uninvoked=uninvoked,
            mismatched=mismatched,
        )
    logger.info("verification.passed interactions=%s", len(registry))
    emit(server.outputs, f"pact verification passed: {len(registry)} interaction(s) verified")
    return VerificationResult(outcome=Outcome.PASSED, result=value)


async def _await_with_deadline(awaitable: Awaitable[Any], timeout: Optional[float]) -> Any:
    with anyio.fail_after(timeout):
        return await awaitable


def _call_sync_with_timeout(test_body: BodyCallable, context: MockServerContext, timeout: float) -> Any:
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="pactmock-body")
    future = executor.submit(test_body, context)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as e:
        raise TimeoutError(f"test body did not finish within {timeout}s") from e
    finally:
        executor.shutdown(wait=False)


def _call_body(test_body: BodyCallable, context: MockServerContext, timeout: Optional[float]) -> Any:
    if inspect.iscoroutinefunction(test_body):
        return anyio.run(_await_with_deadline, test_body(context), timeout)
    if timeout is None:
        value = test_body(context)
    else:
        value = _call_sync_with_timeout(test_body, context, timeout)
    if inspect.isawaitable(value):
        return anyio.run(_await_with_deadline, value, timeout)
    return value


def run_verification(
    server: MockServer,
    test_body: BodyCallable,
    *,
    timeout: Optional[float] = None,
) -> VerificationResult:
    server.registry.reset_counters()
    server.start()
    context = MockServerContext(base_url=server.base_url)
    try:
        value = _call_body(test_body, context, timeout)
    except Exception as e:
        logger.info("verification.body_failed error=%s", type(e).__name__)
        return VerificationResult(outcome=Outcome.BODY_FAILED, error=e)
    finally:
        server.stop()
    return _check_expectations(server, value)


async def run_verification_async(
    server: MockServer,
    test_body: BodyCallable,
    *,
    timeout: Optional[float] = None,
) -> VerificationResult:
    server.registry.reset_counters()
    await anyio.to_thread.run_sync(server.start)
    context = MockServerContext(base_url=server.base_url)
    try:
        with anyio.fail_after(timeout):
            value = test_body(context)
            if inspect.isawaitable(value):
                value = await value
    except Exception as e:
        logger.info("verification.body_failed error=%s", type(e).__name__)
        return VerificationResult(outcome=Outcome.BODY_FAILED, error=e)
    finally:
        with anyio.CancelScope(shield=True):
            await anyio.to_thread.run_sync(server.stop)
    return _check_expectations(server, value)


def verify(
    server: MockServer,
    test_body: BodyCallable,
    *,
    timeout: Optional[float] = None,
    on_success: Optional[Callable[[], Any]] = None,
) -> Any:
    """Start `server`, run `test_body` against it and return the body's result.

    Blocks until the body and the teardown have both completed. Coroutine
    bodies are driven with anyio; use `verify_async` from inside a running
    event loop.
    """
    outcome = run_verification(server, test_body, timeout=timeout)
    value = outcome.unwrap()
    if on_success is not None:
        on_success()
    return value


async def verify_async(
    server: MockServer,
    test_body: BodyCallable,
    *,
    timeout: Optional[float] = None,
    on_success: Optional[Callable[[], Any]] = None,
) -> Any:
    outcome = await run_verification_async(server, test_body, timeout=timeout)
    value = outcome.unwrap()
    if on_success is not None:
        await anyio.to_thread.run_sync(on_success)
    return value


__all__ = [
    "MockServerContext",
    "Outcome",
    "VerificationResult",
    "run_verification",
    "run_verification_async",
    "verify",
    "verify_async",
]
