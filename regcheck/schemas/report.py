"""
Report Schema
==============

Rule-based artifacts derived from the per-clause coverage:

1. GapFinding      — a deficiency record for a clause that is not covered
2. AuditorQuestion — a question an auditor should ask about that clause
3. DecisionReport  — the overall approval recommendation + narrative

Everything in this module is produced by deterministic code
(no LLM, no randomness beyond the seeded question templates).

Data Flow:
    CoverageResult → GapDetector → GapFinding
                   → QuestionGenerator → AuditorQuestion
                   → DecisionSupportGenerator → DecisionReport
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class GapSeverity(str, Enum):
    """
    Severity of a gap finding.

    - CRITICAL:      mandatory requirement missing
    - MAJOR:         mandatory requirement insufficiently covered
    - MINOR:         non-mandatory requirement missing or insufficient
    - INFORMATIONAL: partially covered, note for improvement
    """
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    INFORMATIONAL = "INFORMATIONAL"


class QuestionPriority(str, Enum):
    """Priority of an auditor question."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ApprovalRecommendation(str, Enum):
    """Overall recommendation, ordered from best to worst outcome."""
    APPROVE = "APPROVE"
    CONDITIONAL_APPROVAL = "CONDITIONAL_APPROVAL"
    MINOR_REVISIONS_REQUIRED = "MINOR_REVISIONS_REQUIRED"
    MAJOR_REVISIONS_REQUIRED = "MAJOR_REVISIONS_REQUIRED"
    REJECT = "REJECT"


class GapFinding(BaseModel):
    """
    A deficiency in the coverage of one clause.

    Schema:
        {
          "clause_id": "145.A.30(a)",
          "clause_title": "Personnel requirements",
          "severity": "MAJOR",
          "description": "Insufficient coverage of 145.A.30(a) (48% match)",
          "missing_elements": ["Specific procedures and responsibilities need clarification"],
          "suggested_actions": ["Expand existing content in sections: 1.4, 2.1", "..."],
          "estimated_effort": "3-5 days"
        }
    """
    model_config = ConfigDict(frozen=True)

    clause_id: str
    clause_title: str = ""
    severity: GapSeverity
    description: str
    missing_elements: list[str] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)
    estimated_effort: str


class AuditorQuestion(BaseModel):
    """A templated question for the auditor about a non-covered clause."""
    model_config = ConfigDict(frozen=True)

    clause_id: str
    question_text: str
    priority: QuestionPriority
    context: str = Field(default="", description="Coverage explanation shown with the question")


class DecisionReport(BaseModel):
    """Approval recommendation with the narrative summary for reviewers."""
    model_config = ConfigDict(frozen=True)

    recommendation: ApprovalRecommendation
    narrative: str
    critical_gaps: int = Field(default=0, ge=0)
    major_gaps: int = Field(default=0, ge=0)
