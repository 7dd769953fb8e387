"""
RegCheck Data Schemas
======================

Pydantic v2 models for every record that flows through a run:

1. Clause / Paragraph          — immutable inputs
2. ComplianceJudgement         — the judge's structured opinion (wire format)
3. Match / ClauseMatchResult   — similarity + triage output, one per clause
4. CoverageResult              — coverage classification per clause
5. GapFinding / AuditorQuestion / DecisionReport — rule-based report artifacts
6. AnalysisRun                 — run state machine + all artifacts

All schemas support runtime validation, JSON Schema export and
JSON round-tripping for the result sinks.
"""

from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.judgement import (
    ComplianceJudgement,
    ComplianceStatus,
    EvidenceItem,
    JudgeCandidate,
    JudgeItem,
    compliance_score,
)
from regcheck.schemas.matching import (
    Band,
    ClauseMatchResult,
    CoverageResult,
    CoverageStatus,
    Match,
    MatchQuality,
    MatchType,
    coverage_status_for,
    quality_for_score,
)
from regcheck.schemas.report import (
    ApprovalRecommendation,
    AuditorQuestion,
    DecisionReport,
    GapFinding,
    GapSeverity,
    QuestionPriority,
)
from regcheck.schemas.run import AnalysisRun, AnalysisStatistics, RunStatus

__all__ = [
    # Corpus
    "Clause",
    "Paragraph",
    # Judgement
    "ComplianceJudgement",
    "ComplianceStatus",
    "EvidenceItem",
    "JudgeCandidate",
    "JudgeItem",
    "compliance_score",
    # Matching
    "Band",
    "ClauseMatchResult",
    "CoverageResult",
    "CoverageStatus",
    "Match",
    "MatchQuality",
    "MatchType",
    "coverage_status_for",
    "quality_for_score",
    # Report
    "ApprovalRecommendation",
    "AuditorQuestion",
    "DecisionReport",
    "GapFinding",
    "GapSeverity",
    "QuestionPriority",
    # Run
    "AnalysisRun",
    "AnalysisStatistics",
    "RunStatus",
]
