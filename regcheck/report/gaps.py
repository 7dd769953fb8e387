"""
Gap Detector
=============

Deterministic, rule-based gap findings for clauses that are not
covered (best score below 0.75).

Severity table (lower bounds inclusive):

    score          mandatory    severity
    ≥ 0.75         any          no gap
    < 0.30         yes          CRITICAL
    < 0.30         no           MINOR
    0.30 – 0.60    yes          MAJOR
    0.30 – 0.60    no           MINOR
    0.60 – 0.75    any          INFORMATIONAL

Data Flow:
    [ClauseMatchResult] + [Clause] → GapDetector.detect() → [GapFinding]
"""

from __future__ import annotations

import logging
from typing import Optional

from regcheck import thresholds
from regcheck.schemas.corpus import Clause
from regcheck.schemas.matching import ClauseMatchResult
from regcheck.schemas.report import GapFinding, GapSeverity

logger = logging.getLogger("regcheck.report.gaps")


EFFORT_ESTIMATES = {
    GapSeverity.CRITICAL: "1-2 weeks",
    GapSeverity.MAJOR: "3-5 days",
    GapSeverity.MINOR: "1-2 days",
    GapSeverity.INFORMATIONAL: "few hours",
}


def classify_severity(similarity: float, mandatory: bool) -> Optional[GapSeverity]:
    """Gap severity for a clause score, or None when the clause is covered."""
    if similarity >= thresholds.COVERED_THRESHOLD:
        return None
    if similarity < thresholds.GAP_CRITICAL_BELOW:
        return GapSeverity.CRITICAL if mandatory else GapSeverity.MINOR
    if similarity < thresholds.GAP_MAJOR_BELOW:
        return GapSeverity.MAJOR if mandatory else GapSeverity.MINOR
    return GapSeverity.INFORMATIONAL


def describe_gap(result: ClauseMatchResult) -> str:
    score = result.best_similarity
    if not result.matches or score < thresholds.GAP_CRITICAL_BELOW:
        return f"Required clause {result.clause_id} not found in MOE"
    if score < thresholds.GAP_MAJOR_BELOW:
        return f"Insufficient coverage of {result.clause_id} ({score * 100:.0f}% match)"
    return f"Partial coverage of {result.clause_id}"


def missing_elements(result: ClauseMatchResult) -> list[str]:
    if not result.matches:
        return ["Complete requirement missing"]
    return ["Specific procedures and responsibilities need clarification"]


def suggested_actions(result: ClauseMatchResult, clause: Clause) -> list[str]:
    if not result.matches:
        return [
            f"Add new section addressing {clause.title}",
            f"Reference regulation {clause.id}",
        ]
    sections: list[str] = []
    for m in result.matches:
        if m.section_label not in sections:
            sections.append(m.section_label)
    return [
        f"Expand existing content in sections: {', '.join(sections[:3])}",
        f"Add explicit reference to {clause.id}",
    ]


class GapDetector:
    """
    Turns per-clause match results into gap findings.

    Usage:
        gaps = GapDetector().detect(match_results, clauses)
    """

    def detect(
        self, match_results: list[ClauseMatchResult], clauses: list[Clause]
    ) -> list[GapFinding]:
        """
        One GapFinding per result scoring below 0.75, in result order.

        Results whose clause id is unknown are skipped. When clause ids
        collide, the first clause wins.
        """
        clause_map: dict[str, Clause] = {}
        for clause in clauses:
            if clause.id in clause_map:
                logger.warning(f"Duplicate clause id {clause.id}; keeping first occurrence")
                continue
            clause_map[clause.id] = clause

        gaps: list[GapFinding] = []
        for result in match_results:
            clause = clause_map.get(result.clause_id)
            if clause is None:
                logger.warning(f"No clause for match result {result.clause_id}; skipping")
                continue

            severity = classify_severity(result.best_similarity, clause.mandatory)
            if severity is None:
                continue

            gaps.append(GapFinding(
                clause_id=result.clause_id,
                clause_title=result.title,
                severity=severity,
                description=describe_gap(result),
                missing_elements=missing_elements(result),
                suggested_actions=suggested_actions(result, clause),
                estimated_effort=EFFORT_ESTIMATES[severity],
            ))

        by_severity = {s.value: sum(1 for g in gaps if g.severity == s) for s in GapSeverity}
        logger.info(f"Detected {len(gaps)} gaps: {by_severity}")
        return gaps
