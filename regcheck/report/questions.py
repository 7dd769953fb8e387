"""
Auditor Question Generator
===========================

Templated questions for every clause that is not COVERED.

A template is drawn per clause from the phrasings of its coverage
status. The draw uses a PRNG created fresh for each generate() call
from an injected factory, so the same ordered input always produces
the same questions.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional

from regcheck.schemas.matching import CoverageResult, CoverageStatus
from regcheck.schemas.report import AuditorQuestion, GapFinding, GapSeverity, QuestionPriority

logger = logging.getLogger("regcheck.report.questions")


# Formatted with (clause title, clause id)
QUESTION_TEMPLATES = {
    CoverageStatus.MISSING: (
        "How does the organization address the requirement for {} ({})?",
        "Where in the MOE is {} ({}) documented?",
        "What procedures are in place to ensure compliance with {} ({})?",
    ),
    CoverageStatus.PARTIAL: (
        "Can you provide additional evidence demonstrating full compliance with {} ({})?",
        "Please clarify how the organization fully implements {} ({}).",
        "The MOE partially addresses {} ({}) - what additional documentation exists?",
    ),
}

SEVERITY_PRIORITY = {
    GapSeverity.CRITICAL: QuestionPriority.CRITICAL,
    GapSeverity.MAJOR: QuestionPriority.HIGH,
    GapSeverity.MINOR: QuestionPriority.MEDIUM,
    GapSeverity.INFORMATIONAL: QuestionPriority.LOW,
}

# Used when a non-covered clause has no gap finding
STATUS_PRIORITY = {
    CoverageStatus.MISSING: QuestionPriority.HIGH,
    CoverageStatus.PARTIAL: QuestionPriority.MEDIUM,
}


class QuestionGenerator:
    """
    Deterministic auditor question generation.

    Usage:
        generator = QuestionGenerator(seed=42)
        questions = generator.generate(coverage, gaps)

    Args:
        seed: Seed of the default PRNG factory.
        rng_factory: Zero-argument callable returning a fresh
            random.Random; overrides `seed`.
    """

    def __init__(
        self,
        seed: int = 42,
        rng_factory: Optional[Callable[[], random.Random]] = None,
    ):
        self.rng_factory = rng_factory or (lambda: random.Random(seed))

    def generate(
        self, coverage: list[CoverageResult], gaps: list[GapFinding]
    ) -> list[AuditorQuestion]:
        rng = self.rng_factory()
        gap_by_clause: dict[str, GapFinding] = {}
        for gap in gaps:
            gap_by_clause.setdefault(gap.clause_id, gap)

        questions = []
        for result in coverage:
            templates = QUESTION_TEMPLATES.get(result.status)
            if templates is None:
                continue
            template = templates[rng.randrange(len(templates))]

            gap = gap_by_clause.get(result.clause_id)
            if gap is not None:
                priority = SEVERITY_PRIORITY[gap.severity]
            else:
                priority = STATUS_PRIORITY[result.status]

            questions.append(AuditorQuestion(
                clause_id=result.clause_id,
                question_text=template.format(result.clause_title or result.clause_id, result.clause_id),
                priority=priority,
                context=result.explanation,
            ))

        logger.info(f"Generated {len(questions)} auditor questions")
        return questions
