"""
Matching Schema
================

Output of the similarity scan and triage stages:

1. Match              — one (paragraph, similarity) pair above the relevance threshold
2. ClauseMatchResult  — per-clause result: ranked matches, best score, quality, evidence
3. CoverageResult     — per-clause coverage classification derived from the best score

Design Decisions:
    - Similarities are clamped to [0, 1] (negative cosine carries no signal here)
    - MatchQuality uses six bands, NOT_FOUND below the relevance threshold
    - When the judge ran, best_similarity holds the judge's compliance score
      (full=1.0, partial=0.5, non=0.0) and `judgement` is attached

Data Flow:
    SimilarityEngine → Match → Classifier → ClauseMatchResult → CoverageResult
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from regcheck import thresholds
from regcheck.schemas.judgement import ComplianceJudgement


class MatchQuality(str, Enum):
    """
    Quality band of a clause's best score.

    - EXCELLENT: >= 0.90
    - GOOD:      >= 0.75
    - ADEQUATE:  >= 0.60
    - WEAK:      >= 0.40
    - POOR:      >= 0.30
    - NOT_FOUND: <  0.30 (below the relevance threshold)
    """
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ADEQUATE = "ADEQUATE"
    WEAK = "WEAK"
    POOR = "POOR"
    NOT_FOUND = "NOT_FOUND"


_QUALITY_BANDS = (
    (thresholds.QUALITY_EXCELLENT, MatchQuality.EXCELLENT),
    (thresholds.QUALITY_GOOD, MatchQuality.GOOD),
    (thresholds.QUALITY_ADEQUATE, MatchQuality.ADEQUATE),
    (thresholds.QUALITY_WEAK, MatchQuality.WEAK),
    (thresholds.QUALITY_POOR, MatchQuality.POOR),
)


def quality_for_score(score: float) -> MatchQuality:
    """Derive the MatchQuality band from a score in [0, 1]."""
    for lower_bound, quality in _QUALITY_BANDS:
        if score >= lower_bound:
            return quality
    return MatchQuality.NOT_FOUND


class Band(str, Enum):
    """Triage band controlling whether the judge is consulted."""
    HIGH = "HIGH"
    LOW = "LOW"
    AMBIGUOUS = "AMBIGUOUS"


class CoverageStatus(str, Enum):
    """How well a clause is addressed by the subject document."""
    COVERED = "COVERED"
    PARTIAL = "PARTIAL"
    MISSING = "MISSING"


def coverage_status_for(score: float) -> CoverageStatus:
    """COVERED >= 0.75, PARTIAL >= 0.40, MISSING otherwise."""
    if score >= thresholds.COVERED_THRESHOLD:
        return CoverageStatus.COVERED
    if score >= thresholds.PARTIAL_THRESHOLD:
        return CoverageStatus.PARTIAL
    return CoverageStatus.MISSING


class MatchType(str, Enum):
    """Whether a clause is addressed in one place or across several paragraphs."""
    SINGLE = "SINGLE"
    AGGREGATE = "AGGREGATE"


class Match(BaseModel):
    """A subject paragraph matched to a clause."""
    model_config = ConfigDict(frozen=True)

    paragraph_id: str = Field(description="Reference to Paragraph.id")
    section: Optional[str] = Field(default=None, description="Paragraph section number")
    similarity: float = Field(ge=0.0, le=1.0, description="Cosine similarity")
    excerpt: str = Field(default="", description="Leading excerpt of the paragraph text")

    @property
    def section_label(self) -> str:
        return self.section or "N/A"


class ClauseMatchResult(BaseModel):
    """
    Matching outcome for a single clause. Exactly one per input clause.

    Schema:
        {
          "clause_id": "145.A.30(a)",
          "title": "Personnel requirements",
          "matches": [{"paragraph_id": "p17", "section": "1.4", "similarity": 0.83, "excerpt": "..."}],
          "best_similarity": 0.83,
          "quality": "GOOD",
          "band": "AMBIGUOUS",
          "evidence": "...",
          "judgement": null
        }
    """
    model_config = ConfigDict(frozen=True)

    clause_id: str
    title: str = ""
    matches: list[Match] = Field(default_factory=list, max_length=thresholds.MAX_MATCHES)
    best_similarity: float = Field(ge=0.0, le=1.0)
    quality: MatchQuality
    band: Band
    evidence: str = ""
    judgement: Optional[ComplianceJudgement] = None

    @property
    def judged(self) -> bool:
        """True when the score comes from the judge rather than cosine similarity."""
        return self.judgement is not None

    @property
    def coverage(self) -> CoverageStatus:
        return coverage_status_for(self.best_similarity)


class CoverageResult(BaseModel):
    """Coverage classification of one clause, as shown to reviewers."""
    model_config = ConfigDict(frozen=True)

    clause_id: str
    clause_title: str = ""
    status: CoverageStatus
    similarity: float = Field(ge=0.0, le=1.0)
    match_type: MatchType
    matched_paragraph_ids: list[str] = Field(default_factory=list)
    excerpt: str = Field(default="", description="'Section X (NN%)' for the top matches")
    explanation: str = Field(default="", description="Evidence text of the match result")

    @classmethod
    def from_match_result(cls, result: ClauseMatchResult) -> "CoverageResult":
        """Classify a ClauseMatchResult into a CoverageResult."""
        excerpt = ", ".join(
            f"Section {m.section_label} ({m.similarity * 100:.0f}%)"
            for m in result.matches[:3]
        )
        paragraph_ids = [m.paragraph_id for m in result.matches[:5]]
        return cls(
            clause_id=result.clause_id,
            clause_title=result.title,
            status=result.coverage,
            similarity=result.best_similarity,
            match_type=MatchType.AGGREGATE if len(paragraph_ids) > 1 else MatchType.SINGLE,
            matched_paragraph_ids=paragraph_ids,
            excerpt=excerpt,
            explanation=result.evidence,
        )
