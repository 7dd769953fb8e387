"""
Analysis Run Schema
====================

One analysis run of a subject document against a reference corpus.

State machine:
    PENDING → IN_PROGRESS → {COMPLETED | FAILED}

No other transitions are valid; re-running creates a new run. A
COMPLETED run always carries the full set of artifacts. A FAILED run
always carries a human-readable error and keeps whatever artifacts
the earlier stages produced, for diagnostics.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from regcheck.errors import InvalidRunTransition
from regcheck.schemas.matching import ClauseMatchResult, CoverageResult
from regcheck.schemas.report import AuditorQuestion, DecisionReport, GapFinding


class RunStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


_ALLOWED_TRANSITIONS = {
    RunStatus.PENDING: {RunStatus.IN_PROGRESS},
    RunStatus.IN_PROGRESS: {RunStatus.COMPLETED, RunStatus.FAILED},
    RunStatus.COMPLETED: set(),
    RunStatus.FAILED: set(),
}


class AnalysisStatistics(BaseModel):
    """
    Aggregate counts for a run.

    compliance_score = (covered * 1.0 + partial * 0.5) / total * 100,
    rounded half-up to 2 decimals (0.0 for an empty run).
    """
    total: int = Field(ge=0)
    covered: int = Field(ge=0)
    partial: int = Field(ge=0)
    missing: int = Field(ge=0)
    compliance_score: float = Field(ge=0.0, le=100.0)
    high_band: int = Field(default=0, ge=0, description="Clauses accepted on similarity alone")
    low_band: int = Field(default=0, ge=0, description="Clauses rejected on similarity alone")
    ambiguous_band: int = Field(default=0, ge=0, description="Clauses sent to the judge")
    judged: int = Field(default=0, ge=0, description="Ambiguous clauses the judge answered")

    @property
    def judge_fallbacks(self) -> int:
        """Ambiguous clauses that fell back to their cosine-only result."""
        return self.ambiguous_band - self.judged


class AnalysisRun(BaseModel):
    """
    A single analysis run and every artifact it produced.

    Only the pipeline mutates a run, and only through start(),
    complete() and fail().
    """
    run_id: str
    reference_id: str = Field(description="Identifier of the clause set")
    subject_id: str = Field(description="Identifier of the paragraph set")
    config_hash: str = ""
    status: RunStatus = RunStatus.PENDING
    created_at: float = Field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    error: Optional[str] = None

    match_results: list[ClauseMatchResult] = Field(default_factory=list)
    coverage: list[CoverageResult] = Field(default_factory=list)
    gaps: list[GapFinding] = Field(default_factory=list)
    questions: list[AuditorQuestion] = Field(default_factory=list)
    decision: Optional[DecisionReport] = None
    statistics: Optional[AnalysisStatistics] = None
    timings: dict[str, float] = Field(default_factory=dict)

    def _transition(self, target: RunStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidRunTransition(self.status.value, target.value)
        self.status = target

    def start(self) -> None:
        self._transition(RunStatus.IN_PROGRESS)
        self.started_at = time.time()

    def complete(self, statistics: AnalysisStatistics) -> None:
        """Mark the run COMPLETED; every artifact must already be attached."""
        if self.decision is None:
            raise ValueError("Cannot complete a run without a decision report")
        self._transition(RunStatus.COMPLETED)
        self.statistics = statistics
        self.completed_at = time.time()

    def fail(self, error_message: str) -> None:
        self._transition(RunStatus.FAILED)
        self.error = error_message or "Unknown error"
        self.completed_at = time.time()

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED
