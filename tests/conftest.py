"""
RegCheck Test Configuration
============================

Shared fixtures, factories, and helpers for the entire test suite.

Embeddings in tests are built from orthogonal unit vectors so that
every cosine similarity is known exactly:

    cos(e_i, e_j)                 = 1.0 if i == j else 0.0
    cos(e_i, 0.6 e_i + 0.8 e_k)   = 0.6
"""

from __future__ import annotations

import json
import threading
from typing import Callable, Optional

import pytest

from regcheck.config import JudgeConfig, JudgeProvider, RegCheckConfig
from regcheck.judge.base import BaseJudge
from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.judgement import ComplianceJudgement, JudgeCandidate, JudgeItem
from regcheck.schemas.matching import (
    Band,
    ClauseMatchResult,
    CoverageResult,
    Match,
    quality_for_score,
)
from regcheck.store import InMemoryCorpusRepository

DIM = 13


# ── Markers ─────────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: multi-component tests")
    config.addinivalue_line("markers", "slow: tests that take >5s")


# ── Vectors ─────────────────────────────────────────────────────

def unit(i: int, dim: int = DIM) -> list[float]:
    """Standard basis vector e_i."""
    v = [0.0] * dim
    v[i] = 1.0
    return v


def blend(i: int, k: int, weight: float = 0.6, dim: int = DIM) -> list[float]:
    """Unit vector with cosine `weight` to e_i (rest of the mass on e_k)."""
    v = [0.0] * dim
    v[i] = weight
    v[k] = (1.0 - weight ** 2) ** 0.5
    return v


# ── Factories ───────────────────────────────────────────────────

def make_clause(
    clause_id: str = "145.A.30(a)",
    embedding: Optional[list[float]] = None,
    mandatory: bool = True,
    text: Optional[str] = None,
    title: str = "",
) -> Clause:
    """Factory for creating test clauses."""
    return Clause(
        id=clause_id,
        title=title,
        text=text or f"Requirement text of {clause_id}.",
        mandatory=mandatory,
        embedding=embedding,
    )


def make_paragraph(
    paragraph_id: str = "p1",
    embedding: Optional[list[float]] = None,
    section: Optional[str] = "1.1",
    text: Optional[str] = None,
) -> Paragraph:
    """Factory for creating test paragraphs."""
    return Paragraph(
        id=paragraph_id,
        text=text or f"Procedure text of paragraph {paragraph_id}.",
        section=section,
        embedding=embedding,
    )


def make_match(
    paragraph_id: str = "p1", similarity: float = 0.8, section: Optional[str] = "1.1"
) -> Match:
    return Match(
        paragraph_id=paragraph_id,
        section=section,
        similarity=similarity,
        excerpt=f"Excerpt of {paragraph_id}",
    )


def make_match_result(
    clause_id: str = "145.A.30(a)",
    score: float = 0.5,
    matches: Optional[list[Match]] = None,
    band: Band = Band.AMBIGUOUS,
    title: str = "",
) -> ClauseMatchResult:
    """Factory for match results; by default one match at the given score."""
    if matches is None:
        matches = [make_match(similarity=score)] if score >= 0.30 else []
    return ClauseMatchResult(
        clause_id=clause_id,
        title=title or clause_id,
        matches=matches,
        best_similarity=score,
        quality=quality_for_score(score),
        band=band,
        evidence=f"Evidence for {clause_id}",
    )


def make_coverage(
    clause_id: str = "145.A.30(a)", score: float = 0.5, title: str = ""
) -> CoverageResult:
    return CoverageResult.from_match_result(
        make_match_result(clause_id=clause_id, score=score, title=title)
    )


def make_judge_item(requirement_id: str = "145.A.30(a)", n_candidates: int = 2) -> JudgeItem:
    return JudgeItem(
        requirement_id=requirement_id,
        requirement_text=f"Requirement text of {requirement_id}.",
        candidates=[
            JudgeCandidate(paragraph_id=f"p{i}", text=f"Paragraph {i}", similarity_score=0.6)
            for i in range(n_candidates)
        ],
    )


def judgement_payload(requirement_id: str, status: str = "full") -> dict:
    return {
        "requirement_id": requirement_id,
        "evidence": [
            {"moe_paragraph_id": "p1", "relevant_excerpt": "The accountable manager ...", "similarity_score": 0.6}
        ],
        "compliance_status": status,
        "justification": f"Assessed as {status}.",
        "missing_elements": [] if status == "full" else ["Named deputy"],
        "finding_level": "" if status == "full" else "Level 2",
        "recommended_actions": [] if status == "full" else ["Name a deputy"],
    }


def judgement_json(requirement_ids: list[str], status: str = "full") -> str:
    """Canned judge response for the given requirement ids."""
    return json.dumps([judgement_payload(rid, status) for rid in requirement_ids])


def make_judgement(requirement_id: str = "145.A.30(a)", status: str = "full") -> ComplianceJudgement:
    return ComplianceJudgement.model_validate(judgement_payload(requirement_id, status))


# ── Fake judge ──────────────────────────────────────────────────

class FakeJudge(BaseJudge):
    """
    In-process judge returning canned JSON.

    Args:
        status: compliance_status used by the default responder.
        responder: items → raw response text, overrides `status`.
        raises: exception raised by every call.
        hang: event the call blocks on (simulates an unresponsive provider).
    """

    def __init__(
        self,
        status: str = "full",
        responder: Optional[Callable[[list[JudgeItem]], str]] = None,
        raises: Optional[Exception] = None,
        hang: Optional[threading.Event] = None,
        **kwargs,
    ):
        kwargs.setdefault("batch_timeout_s", 5.0)
        kwargs.setdefault("single_timeout_s", 5.0)
        super().__init__(model_name="fake-judge", **kwargs)
        self.status = status
        self.responder = responder
        self.raises = raises
        self.hang = hang
        self.batch_calls: list[list[str]] = []
        self.single_calls: list[str] = []
        self._lock = threading.Lock()

    def _respond(self, items: list[JudgeItem]) -> str:
        if self.hang is not None:
            self.hang.wait(10)
        if self.raises is not None:
            raise self.raises
        if self.responder is not None:
            return self.responder(items)
        return judgement_json([i.requirement_id for i in items], self.status)

    def _call_batch(self, items: list[JudgeItem]) -> str:
        with self._lock:
            self.batch_calls.append([i.requirement_id for i in items])
        return self._respond(items)

    def _call_single(self, item: JudgeItem) -> str:
        with self._lock:
            self.single_calls.append(item.requirement_id)
        return self._respond([item])


# ── Scenario ────────────────────────────────────────────────────

def scenario_corpus(low_mandatory: bool = True) -> tuple[list[Clause], list[Paragraph]]:
    """
    Ten clauses against eight paragraphs:

    - C1..C5:  HIGH      (paragraph P1..P5 has the identical vector, cos 1.0)
    - C6, C7:  LOW       (no paragraph points their way, no matches)
    - C8..C10: AMBIGUOUS (paragraph Q1..Q3 at cos 0.6)
    """
    clauses = [make_clause(f"C{i + 1}", unit(i)) for i in range(5)]
    clauses += [make_clause(f"C{i + 1}", unit(i), mandatory=low_mandatory) for i in (5, 6)]
    clauses += [make_clause(f"C{8 + k}", unit(7 + k)) for k in range(3)]

    paragraphs = [make_paragraph(f"P{i + 1}", unit(i), section=f"1.{i + 1}") for i in range(5)]
    paragraphs += [
        make_paragraph(f"Q{k + 1}", blend(7 + k, 10 + k), section=f"2.{k + 1}")
        for k in range(3)
    ]
    return clauses, paragraphs


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def config(tmp_path) -> RegCheckConfig:
    """Test config: no judge, output under tmp_path."""
    return RegCheckConfig(
        output_dir=tmp_path / "outputs",
        judge=JudgeConfig(provider=JudgeProvider.NONE),
    )


@pytest.fixture
def scenario_repo() -> InMemoryCorpusRepository:
    clauses, paragraphs = scenario_corpus()
    repo = InMemoryCorpusRepository()
    repo.add_clauses("ref", clauses)
    repo.add_paragraphs("moe", paragraphs)
    return repo


@pytest.fixture
def hang_event():
    """Event a FakeJudge blocks on; released at teardown so no thread lingers."""
    event = threading.Event()
    yield event
    event.set()
