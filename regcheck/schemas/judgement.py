"""
Judgement Schema
=================

The request/response contract of the external adjudication service.

Request (one item per ambiguous clause, up to 5 items per batch):
    {
      "requirement": {"id": "145.A.30(a)", "text": "..."},
      "candidates": [{"paragraph_id": "p17", "text": "...", "similarity_score": 0.71}]
    }

Response (JSON array, one object per requirement):
    [{
      "requirement_id": "145.A.30(a)",
      "evidence": [{"moe_paragraph_id": "p17", "relevant_excerpt": "...", "similarity_score": 0.71}],
      "compliance_status": "full" | "partial" | "non",
      "justification": "...",
      "missing_elements": ["..."],
      "finding_level": "...",
      "recommended_actions": ["..."]
    }]

Every response entry is validated against ComplianceJudgement before
use; entries that fail validation are dropped by the judge.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from regcheck import thresholds
from regcheck.utils import truncate_text


class ComplianceStatus(str, Enum):
    """Judge verdict for one requirement."""
    FULL = "full"
    PARTIAL = "partial"
    NON = "non"


_STATUS_SCORES = {
    ComplianceStatus.FULL: thresholds.SCORE_FULL,
    ComplianceStatus.PARTIAL: thresholds.SCORE_PARTIAL,
    ComplianceStatus.NON: thresholds.SCORE_NON,
}


def compliance_score(status: ComplianceStatus | str | None) -> float:
    """Map a compliance status to a score: full→1.0, partial→0.5, anything else→0.0."""
    try:
        return _STATUS_SCORES[ComplianceStatus(status)]
    except ValueError:
        return thresholds.SCORE_NON


class EvidenceItem(BaseModel):
    """A paragraph the judge cites as evidence."""
    moe_paragraph_id: str = Field(description="Paragraph.id of the cited paragraph")
    relevant_excerpt: str = Field(default="", description="Quoted passage")
    similarity_score: Optional[float] = Field(default=None, description="Similarity echoed back")

    @field_validator("moe_paragraph_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Providers sometimes echo numeric ids as JSON numbers."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ComplianceJudgement(BaseModel):
    """
    The judge's structured compliance opinion for one requirement.

    Field names follow the wire format so that a raw response object
    validates directly into this model.
    """
    requirement_id: str = Field(min_length=1, description="Clause.id being judged")
    compliance_status: ComplianceStatus = Field(description="full / partial / non")
    finding_level: str = Field(default="", description="Finding level, e.g. 'Level 2'")
    justification: str = Field(default="", description="Why the status was chosen")
    evidence: list[EvidenceItem] = Field(default_factory=list)
    missing_elements: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)

    @field_validator("compliance_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def score(self) -> float:
        """Numeric compliance score used in place of the best similarity."""
        return compliance_score(self.compliance_status)


class JudgeCandidate(BaseModel):
    """A candidate paragraph offered to the judge for one requirement."""
    paragraph_id: str
    text: str
    similarity_score: float = Field(ge=0.0, le=1.0)


class JudgeItem(BaseModel):
    """One ambiguous clause together with its nearest candidate paragraphs."""
    requirement_id: str
    requirement_text: str
    candidates: list[JudgeCandidate] = Field(
        default_factory=list,
        max_length=thresholds.MAX_JUDGE_CANDIDATES,
    )

    def to_request(self, max_text_chars: Optional[int] = None) -> dict[str, Any]:
        """Wire-format request for this item, with optional text truncation."""
        def _cut(text: str) -> str:
            return truncate_text(text, max_text_chars) if max_text_chars else text

        return {
            "requirement": {"id": self.requirement_id, "text": _cut(self.requirement_text)},
            "candidates": [
                {
                    "paragraph_id": c.paragraph_id,
                    "text": _cut(c.text),
                    "similarity_score": round(c.similarity_score, 4),
                }
                for c in self.candidates
            ],
        }
