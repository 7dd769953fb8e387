"""
Decision Support Tests
=======================

Coverage:
    - Every branch of the recommendation cascade
    - Monotonicity in critical / major gap counts
    - Empty runs
    - Narrative content
"""

from __future__ import annotations

import pytest

from regcheck.report.decision import (
    NEXT_STEPS,
    DecisionSupportGenerator,
    coverage_rate,
    recommend,
)
from regcheck.schemas.report import ApprovalRecommendation, GapFinding, GapSeverity
from tests.conftest import make_coverage

R = ApprovalRecommendation
ORDER = list(ApprovalRecommendation)


def _gaps(critical: int = 0, major: int = 0) -> list[GapFinding]:
    gaps = []
    for i in range(critical):
        gaps.append(GapFinding(clause_id=f"c{i}", severity=GapSeverity.CRITICAL,
                               description="...", estimated_effort="..."))
    for i in range(major):
        gaps.append(GapFinding(clause_id=f"m{i}", severity=GapSeverity.MAJOR,
                               description="...", estimated_effort="..."))
    return gaps


class TestRecommend:

    @pytest.mark.parametrize("critical,major,covered,total,expected", [
        (4, 0, 0, 10, R.REJECT),
        (3, 0, 0, 10, R.MAJOR_REVISIONS_REQUIRED),
        (1, 0, 10, 10, R.MAJOR_REVISIONS_REQUIRED),
        (0, 6, 10, 10, R.MAJOR_REVISIONS_REQUIRED),
        (0, 5, 10, 10, R.MINOR_REVISIONS_REQUIRED),
        (0, 1, 10, 10, R.MINOR_REVISIONS_REQUIRED),
        (0, 0, 100, 100, R.APPROVE),
        (0, 0, 19, 20, R.APPROVE),
        (0, 0, 18, 20, R.CONDITIONAL_APPROVAL),
        (0, 0, 0, 0, R.CONDITIONAL_APPROVAL),
    ])
    def test_cascade(self, critical, major, covered, total, expected):
        assert recommend(critical, major, covered, total) == expected

    def test_monotonic(self):
        for critical in range(6):
            for major in range(8):
                base = ORDER.index(recommend(critical, major, 9, 10))
                assert ORDER.index(recommend(critical + 1, major, 9, 10)) >= base
                assert ORDER.index(recommend(critical, major + 1, 9, 10)) >= base

    def test_coverage_rate_empty(self):
        assert coverage_rate(0, 0) == 0.0

    def test_every_recommendation_has_next_steps(self):
        assert set(NEXT_STEPS) == set(ApprovalRecommendation)


class TestDecisionSupportGenerator:

    def test_reject(self):
        coverage = [make_coverage(f"c{i}", 0.1) for i in range(4)]
        report = DecisionSupportGenerator().generate(coverage, _gaps(critical=4))
        assert report.recommendation == R.REJECT
        assert report.critical_gaps == 4
        assert "Complete restructure needed." in report.narrative

    def test_approve(self):
        coverage = [make_coverage(f"c{i}", 0.9) for i in range(100)]
        report = DecisionSupportGenerator().generate(coverage, [])
        assert report.recommendation == R.APPROVE
        assert "- Fully Covered: 100 (100%)" in report.narrative

    def test_minor_revisions(self):
        coverage = [make_coverage("a", 0.9), make_coverage("b", 0.5)]
        report = DecisionSupportGenerator().generate(coverage, _gaps(major=1))
        assert report.recommendation == R.MINOR_REVISIONS_REQUIRED
        assert "Next Steps: Address 1 findings and resubmit." in report.narrative

    def test_major_revisions_narrative(self):
        coverage = [make_coverage(f"c{i}", 0.5) for i in range(8)]
        report = DecisionSupportGenerator().generate(coverage, _gaps(critical=2, major=6))
        assert report.recommendation == R.MAJOR_REVISIONS_REQUIRED
        assert "2 critical and 6 major gaps identified." in report.narrative

    def test_empty_run(self):
        report = DecisionSupportGenerator().generate([], [])
        assert report.recommendation == R.CONDITIONAL_APPROVAL
        assert "- Total Requirements: 0" in report.narrative
        assert "- Missing: 0 (0%)" in report.narrative

    def test_narrative_sections(self):
        coverage = [make_coverage("a", 0.9), make_coverage("b", 0.5), make_coverage("c", 0.1)]
        narrative = DecisionSupportGenerator().generate(coverage, []).narrative
        assert narrative.startswith("COMPLIANCE ANALYSIS SUMMARY")
        assert "Overall Assessment: CONDITIONAL_APPROVAL" in narrative
        assert "- Fully Covered: 1 (33%)" in narrative
        assert "- Partially Covered: 1 (33%)" in narrative
        assert "- Missing: 1 (33%)" in narrative
        assert "- Critical Gaps: 0" in narrative
