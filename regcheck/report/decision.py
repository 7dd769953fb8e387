"""
Decision Support Generator
===========================

Turns gap counts and coverage into an approval recommendation plus a
plain-text narrative for the reviewing auditor.

Recommendation cascade (first rule that applies wins):

    1. CRITICAL > 3                  → REJECT
    2. CRITICAL > 0 or MAJOR > 5     → MAJOR_REVISIONS_REQUIRED
    3. MAJOR > 0                     → MINOR_REVISIONS_REQUIRED
    4. covered / total ≥ 0.95        → APPROVE
    5. otherwise                     → CONDITIONAL_APPROVAL

The result is monotonic: adding a CRITICAL or MAJOR gap never yields a
better recommendation.
"""

from __future__ import annotations

import logging

from regcheck import thresholds
from regcheck.schemas.matching import CoverageResult, CoverageStatus
from regcheck.schemas.report import (
    ApprovalRecommendation,
    DecisionReport,
    GapFinding,
    GapSeverity,
)

logger = logging.getLogger("regcheck.report.decision")


NEXT_STEPS = {
    ApprovalRecommendation.APPROVE: "MOE approved. Proceed with certification.",
    ApprovalRecommendation.CONDITIONAL_APPROVAL: "Address minor findings before final approval.",
    ApprovalRecommendation.MINOR_REVISIONS_REQUIRED: "Address {major} findings and resubmit.",
    ApprovalRecommendation.MAJOR_REVISIONS_REQUIRED: (
        "Comprehensive revision required. {critical} critical and {major} major gaps identified."
    ),
    ApprovalRecommendation.REJECT: (
        "MOE does not meet minimum requirements. Complete restructure needed."
    ),
}


def coverage_rate(covered: int, total: int) -> float:
    """covered / total, 0.0 for an empty run."""
    return covered / total if total else 0.0


def recommend(critical: int, major: int, covered: int, total: int) -> ApprovalRecommendation:
    """Apply the recommendation cascade."""
    if critical > thresholds.REJECT_CRITICAL_ABOVE:
        return ApprovalRecommendation.REJECT
    if critical > 0 or major > thresholds.MAJOR_REVISION_MAJOR_ABOVE:
        return ApprovalRecommendation.MAJOR_REVISIONS_REQUIRED
    if major > 0:
        return ApprovalRecommendation.MINOR_REVISIONS_REQUIRED
    if coverage_rate(covered, total) >= thresholds.APPROVE_COVERAGE_RATE:
        return ApprovalRecommendation.APPROVE
    return ApprovalRecommendation.CONDITIONAL_APPROVAL


def next_steps(recommendation: ApprovalRecommendation, critical: int, major: int) -> str:
    return NEXT_STEPS[recommendation].format(critical=critical, major=major)


class DecisionSupportGenerator:
    """
    Builds the DecisionReport for a run.

    Usage:
        report = DecisionSupportGenerator().generate(coverage, gaps)
        print(report.narrative)
    """

    def generate(
        self, coverage: list[CoverageResult], gaps: list[GapFinding]
    ) -> DecisionReport:
        critical = sum(1 for g in gaps if g.severity == GapSeverity.CRITICAL)
        major = sum(1 for g in gaps if g.severity == GapSeverity.MAJOR)

        total = len(coverage)
        covered = sum(1 for c in coverage if c.status == CoverageStatus.COVERED)
        partial = sum(1 for c in coverage if c.status == CoverageStatus.PARTIAL)
        missing = total - covered - partial

        recommendation = recommend(critical, major, covered, total)
        narrative = self._narrative(
            recommendation, total, covered, partial, missing, critical, major
        )

        logger.info(
            f"Recommendation: {recommendation.value} "
            f"(critical={critical}, major={major}, covered={covered}/{total})"
        )
        return DecisionReport(
            recommendation=recommendation,
            narrative=narrative,
            critical_gaps=critical,
            major_gaps=major,
        )

    @staticmethod
    def _narrative(
        recommendation: ApprovalRecommendation,
        total: int,
        covered: int,
        partial: int,
        missing: int,
        critical: int,
        major: int,
    ) -> str:
        def pct(n: int) -> str:
            return f"{coverage_rate(n, total) * 100:.0f}%"

        return "\n".join([
            "COMPLIANCE ANALYSIS SUMMARY",
            "",
            f"Overall Assessment: {recommendation.value}",
            "",
            "Coverage Statistics:",
            f"- Total Requirements: {total}",
            f"- Fully Covered: {covered} ({pct(covered)})",
            f"- Partially Covered: {partial} ({pct(partial)})",
            f"- Missing: {missing} ({pct(missing)})",
            "",
            "Critical Findings:",
            f"- Critical Gaps: {critical}",
            f"- Major Gaps: {major}",
            "",
            f"Recommendation: {recommendation.value}",
            "",
            f"Next Steps: {next_steps(recommendation, critical, major)}",
        ])
