"""
Judge Interface
================

Abstract base class for the external adjudication service. Every
backend (Gemini, OpenAI, test doubles) implements two raw calls:

    _call_batch(items) → response text   (≤5 requirements, one call)
    _call_single(item) → response text   (one requirement)

The base class owns everything around those calls: timeouts, error
capture, response parsing and the per-clause outcome values. Backends
only talk to their API.

Outcomes:
    Each requirement resolves to exactly one of
        JudgeSuccess(judgement)    : validated ComplianceJudgement
        JudgeFailure(error)        : JudgeError with a JudgeErrorKind
    and `resolve()` turns an outcome into a final value, degrading to
    the caller's fallback on failure. There are no retries.

Timeouts:
    Each call runs on its own daemon thread, started right before the
    wait, so the timeout only counts time the call is actually running.
    On expiry the call is abandoned (the thread finishes in the
    background, bounded by the SDK timeout, and its result is ignored).
    An abandoned call never holds a slot another batch is waiting for.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar, Union

from regcheck import thresholds
from regcheck.errors import ProviderError, ProviderTimeout, SchemaValidationError
from regcheck.judge.parsing import parse_batch_response, parse_single_response
from regcheck.schemas.judgement import ComplianceJudgement, JudgeItem

logger = logging.getLogger("regcheck.judge.base")

T = TypeVar("T")


class JudgeErrorKind(str, Enum):
    """Why the judge produced no usable judgement for a requirement."""
    TIMEOUT = "timeout"
    PROVIDER = "provider"
    SCHEMA = "schema"
    MISSING = "missing"


FALLBACK_REASONS = {
    JudgeErrorKind.TIMEOUT: "judge call timed out",
    JudgeErrorKind.PROVIDER: "judge provider failed",
    JudgeErrorKind.SCHEMA: "judge response was malformed",
    JudgeErrorKind.MISSING: "judge response omitted the requirement",
}


@dataclass(frozen=True)
class JudgeError:
    kind: JudgeErrorKind
    message: str = ""

    def describe(self) -> str:
        reason = FALLBACK_REASONS[self.kind]
        return f"{reason}: {self.message}" if self.message else reason


@dataclass(frozen=True)
class JudgeSuccess:
    judgement: ComplianceJudgement


@dataclass(frozen=True)
class JudgeFailure:
    error: JudgeError


JudgeOutcome = Union[JudgeSuccess, JudgeFailure]


def resolve(
    outcome: JudgeOutcome,
    on_success: Callable[[ComplianceJudgement], T],
    fallback: T,
) -> T:
    """Map a success through on_success; any failure yields the fallback."""
    if isinstance(outcome, JudgeSuccess):
        return on_success(outcome.judgement)
    return fallback


class _Call:
    """One provider call running on its own thread."""

    def __init__(self, fn: Callable[..., str], arg: Any):
        self.fn = fn
        self.arg = arg
        self.result: Optional[str] = None
        self.error: Optional[BaseException] = None
        self.done = threading.Event()

    def run(self) -> None:
        try:
            self.result = self.fn(self.arg)
        except Exception as e:
            self.error = e
        finally:
            self.done.set()


class BaseJudge(ABC):
    """
    Abstract base class for compliance judges.

    Args:
        model_name: Backend model identifier (for logs and reports).
        batch_timeout_s: Timeout for one batch call.
        single_timeout_s: Timeout for one single-requirement call.
        max_text_chars: Per-field truncation of text sent to the provider.
    """

    def __init__(
        self,
        model_name: str = "base",
        batch_timeout_s: float = 60.0,
        single_timeout_s: float = 30.0,
        max_text_chars: int = 400,
    ):
        self.model_name = model_name
        self.batch_timeout_s = batch_timeout_s
        self.single_timeout_s = single_timeout_s
        self.max_text_chars = max_text_chars

    # ── Backend calls ──────────────────────────────────────────

    @abstractmethod
    def _call_batch(self, items: list[JudgeItem]) -> str:
        """Send up to five requirements in one request; return the raw response text."""
        ...

    @abstractmethod
    def _call_single(self, item: JudgeItem) -> str:
        """Send one requirement; return the raw response text."""
        ...

    def _invoke(self, fn: Callable[..., str], arg, timeout: float) -> str:
        call = _Call(fn, arg)
        thread = threading.Thread(target=call.run, name="regcheck-judge-call", daemon=True)
        thread.start()
        if not call.done.wait(timeout):
            raise ProviderTimeout(f"{self.model_name} did not answer within {timeout:g}s")

        if call.error is None:
            return call.result
        if isinstance(call.error, ProviderError):
            raise call.error
        # Provider SDKs raise their own exception types
        raise ProviderError(f"{self.model_name} call failed: {call.error}") from call.error

    @staticmethod
    def _error_for(exc: ProviderError) -> JudgeError:
        if isinstance(exc, SchemaValidationError):
            return JudgeError(JudgeErrorKind.SCHEMA, str(exc))
        if isinstance(exc, ProviderTimeout):
            return JudgeError(JudgeErrorKind.TIMEOUT, str(exc))
        return JudgeError(JudgeErrorKind.PROVIDER, str(exc))

    # ── Public interface ───────────────────────────────────────

    def judge_batch(self, items: list[JudgeItem]) -> dict[str, JudgeOutcome]:
        """
        Adjudicate up to five requirements with a single external call.

        Returns:
            One outcome per requested requirement id. Never raises for
            provider, timeout or schema problems.
        """
        if not items:
            return {}
        if len(items) > thresholds.JUDGE_BATCH_SIZE:
            raise ValueError(
                f"Judge batches hold at most {thresholds.JUDGE_BATCH_SIZE} items, got {len(items)}"
            )

        ids = [item.requirement_id for item in items]
        try:
            raw = self._invoke(self._call_batch, items, self.batch_timeout_s)
            judgements = parse_batch_response(raw, ids)
        except ProviderError as e:
            error = self._error_for(e)
            logger.warning(f"Judge batch of {len(items)} failed ({error.kind.value}): {e}")
            return {rid: JudgeFailure(error) for rid in ids}

        outcomes: dict[str, JudgeOutcome] = {}
        for rid in ids:
            if rid in judgements:
                outcomes[rid] = JudgeSuccess(judgements[rid])
            else:
                logger.warning(f"Judge response has no valid entry for {rid}")
                outcomes[rid] = JudgeFailure(JudgeError(JudgeErrorKind.MISSING))

        logger.debug(f"Judge batch: {len(judgements)}/{len(items)} judged by {self.model_name}")
        return outcomes

    def judge(self, item: JudgeItem) -> JudgeOutcome:
        """Adjudicate a single requirement."""
        try:
            raw = self._invoke(self._call_single, item, self.single_timeout_s)
            return JudgeSuccess(parse_single_response(raw, item.requirement_id))
        except ProviderError as e:
            error = self._error_for(e)
            logger.warning(f"Judge call for {item.requirement_id} failed ({error.kind.value}): {e}")
            return JudgeFailure(error)

    def close(self) -> None:
        """Release backend resources. Abandoned calls are not waited for."""
