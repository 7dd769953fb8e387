"""
Band Classifier
================

Triages every clause by its best similarity and decides whether the
external judge is consulted.

Bands:
    - no matches   → LOW, "not found" result (score 0.0, NOT_FOUND)
    - best ≥ 0.90  → HIGH, cosine-only result
    - best ≤ 0.25  → LOW, cosine-only result
    - otherwise    → AMBIGUOUS, sent to the judge with ≤5 candidates

AMBIGUOUS clauses are grouped into batches of 5 and dispatched
concurrently on a bounded thread pool. A single-clause batch uses the
judge's single-requirement call. Each clause's judge outcome is
resolved by `resolve()`: a judgement replaces the cosine score with
the compliance score, anything else keeps the cosine-only result.

Output is one ClauseMatchResult per input clause, in input order.

Data Flow:
    [Clause] + SimilarityResult → Classifier.classify() → [ClauseMatchResult]
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from regcheck import thresholds
from regcheck.errors import RegCheckError
from regcheck.judge.base import BaseJudge, JudgeOutcome, resolve
from regcheck.match.similarity import SimilarityResult
from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.judgement import ComplianceJudgement, JudgeCandidate, JudgeItem
from regcheck.schemas.matching import (
    Band,
    ClauseMatchResult,
    Match,
    MatchQuality,
    quality_for_score,
)
from regcheck.utils import truncate_text

logger = logging.getLogger("regcheck.match.classifier")

NO_MATCH_EVIDENCE = "No matching content found in the subject document for this requirement"
EMBEDDINGS_ONLY_NOTE = "Based on embeddings only (judge not consulted)."


def band_for(best_similarity: float, has_matches: bool = True) -> Band:
    """Triage band for a clause's best similarity."""
    if not has_matches:
        return Band.LOW
    if best_similarity >= thresholds.HIGH_SIMILARITY:
        return Band.HIGH
    if best_similarity <= thresholds.LOW_SIMILARITY:
        return Band.LOW
    return Band.AMBIGUOUS


# ── Evidence text ──────────────────────────────────────────────────

def cosine_evidence(matches: list[Match]) -> str:
    """Evidence text for a result decided on similarity alone."""
    lines = []
    if matches:
        lines.append("Top semantic matches:")
        for m in matches[:3]:
            lines.append(
                f'  - Section {m.section_label} ({m.similarity * 100:.0f}%): '
                f'"{truncate_text(m.excerpt, thresholds.EXCERPT_CHARS)}"'
            )
    else:
        lines.append("No matching content identified by semantic search.")
    lines.append("")
    lines.append(EMBEDDINGS_ONLY_NOTE)
    return "\n".join(lines)


def judgement_evidence(judgement: ComplianceJudgement) -> str:
    """Evidence text for a result decided by the judge."""
    lines = [f"Compliance status: {judgement.compliance_status.value}"]
    if judgement.finding_level:
        lines.append(f"Finding level: {judgement.finding_level}")
    if judgement.justification.strip():
        lines.append(f"Justification: {judgement.justification.strip()}")
    if judgement.evidence:
        lines.append("Evidence:")
        for ev in judgement.evidence[:3]:
            score = ev.similarity_score if ev.similarity_score is not None else 0.0
            lines.append(
                f'  - Paragraph {ev.moe_paragraph_id} (sim={score:.2f}): '
                f'"{truncate_text(ev.relevant_excerpt, thresholds.EXCERPT_CHARS)}"'
            )
    for heading, items in (
        ("Missing elements:", judgement.missing_elements),
        ("Recommended actions:", judgement.recommended_actions),
    ):
        if items:
            lines.append(heading)
            lines.extend(f"  - {item}" for item in items)
    return "\n".join(lines)


# ── Result builders ────────────────────────────────────────────────

def no_match_result(clause: Clause) -> ClauseMatchResult:
    return ClauseMatchResult(
        clause_id=clause.id,
        title=clause.title,
        matches=[],
        best_similarity=0.0,
        quality=MatchQuality.NOT_FOUND,
        band=Band.LOW,
        evidence=NO_MATCH_EVIDENCE,
    )


def cosine_result(clause: Clause, matches: list[Match], band: Band) -> ClauseMatchResult:
    best = matches[0].similarity if matches else 0.0
    return ClauseMatchResult(
        clause_id=clause.id,
        title=clause.title,
        matches=matches,
        best_similarity=best,
        quality=quality_for_score(best),
        band=band,
        evidence=cosine_evidence(matches),
    )


def judged_result(
    clause: Clause, matches: list[Match], judgement: ComplianceJudgement
) -> ClauseMatchResult:
    score = judgement.score
    return ClauseMatchResult(
        clause_id=clause.id,
        title=clause.title,
        matches=matches,
        best_similarity=score,
        quality=quality_for_score(score),
        band=Band.AMBIGUOUS,
        evidence=judgement_evidence(judgement),
        judgement=judgement,
    )


@dataclass
class _Ambiguous:
    position: int
    clause: Clause
    matches: list[Match]
    item: JudgeItem


class Classifier:
    """
    Similarity-band triage with selective judge dispatch.

    Usage:
        classifier = Classifier(judge=GeminiJudge(api_key=...))
        results = classifier.classify(clauses, paragraphs, similarity_result)

    Args:
        judge: Adjudication backend; None keeps ambiguous clauses on
            their cosine-only result.
        batch_size: Ambiguous clauses per judge call (≤5).
        max_concurrent_batches: Judge batches in flight at once.
    """

    def __init__(
        self,
        judge: Optional[BaseJudge] = None,
        batch_size: int = thresholds.JUDGE_BATCH_SIZE,
        max_concurrent_batches: int = 4,
    ):
        if not 1 <= batch_size <= thresholds.JUDGE_BATCH_SIZE:
            raise ValueError(
                f"batch_size must be between 1 and {thresholds.JUDGE_BATCH_SIZE}, got {batch_size}"
            )
        self.judge = judge
        self.batch_size = batch_size
        self.max_concurrent_batches = max_concurrent_batches

    def _judge_item(
        self, clause: Clause, matches: list[Match], paragraphs: dict[str, Paragraph]
    ) -> JudgeItem:
        candidates = []
        for m in matches[: thresholds.MAX_JUDGE_CANDIDATES]:
            paragraph = paragraphs.get(m.paragraph_id)
            candidates.append(JudgeCandidate(
                paragraph_id=m.paragraph_id,
                text=paragraph.text if paragraph else m.excerpt,
                similarity_score=m.similarity,
            ))
        return JudgeItem(requirement_id=clause.id, requirement_text=clause.text, candidates=candidates)

    def _run_batch(self, batch: list[_Ambiguous]) -> list[tuple[int, ClauseMatchResult]]:
        """Judge one batch and resolve every clause in it."""
        t0 = time.time()
        if len(batch) == 1:
            only = batch[0]
            outcomes: dict[str, JudgeOutcome] = {
                only.clause.id: self.judge.judge(only.item)
            }
        else:
            outcomes = self.judge.judge_batch([a.item for a in batch])

        resolved = []
        fallbacks = 0
        for amb in batch:
            fallback = cosine_result(amb.clause, amb.matches, Band.AMBIGUOUS)
            outcome = outcomes.get(amb.clause.id)
            if outcome is None:
                result = fallback
            else:
                result = resolve(
                    outcome,
                    lambda j, amb=amb: judged_result(amb.clause, amb.matches, j),
                    fallback,
                )
            if not result.judged:
                fallbacks += 1
            resolved.append((amb.position, result))

        logger.debug(
            f"Judge batch of {len(batch)} done in {(time.time() - t0) * 1000:.0f}ms "
            f"({len(batch) - fallbacks} judged, {fallbacks} cosine fallbacks)"
        )
        return resolved

    def classify(
        self,
        clauses: list[Clause],
        paragraphs: list[Paragraph],
        similarity: SimilarityResult,
    ) -> list[ClauseMatchResult]:
        """
        Produce exactly one ClauseMatchResult per clause, in input order.

        Args:
            clauses: Clauses of the run (ids unique).
            paragraphs: Subject paragraphs (full text for judge candidates).
            similarity: Output of the similarity scan.

        Raises:
            RegCheckError: If any clause ended up without a result.
        """
        paragraph_map = {p.id: p for p in paragraphs}
        results: list[Optional[ClauseMatchResult]] = [None] * len(clauses)
        ambiguous: list[_Ambiguous] = []
        counts = {band: 0 for band in Band}

        for position, clause in enumerate(clauses):
            matches = similarity.for_clause(clause.id)
            band = band_for(matches[0].similarity if matches else 0.0, bool(matches))
            counts[band] += 1

            if not matches:
                results[position] = no_match_result(clause)
            elif band == Band.AMBIGUOUS and self.judge is not None:
                ambiguous.append(_Ambiguous(
                    position=position,
                    clause=clause,
                    matches=matches,
                    item=self._judge_item(clause, matches, paragraph_map),
                ))
            else:
                results[position] = cosine_result(clause, matches, band)

        logger.info(
            f"Classification: HIGH={counts[Band.HIGH]} LOW={counts[Band.LOW]} "
            f"AMBIGUOUS={counts[Band.AMBIGUOUS]}"
            + ("" if self.judge is not None else " (no judge configured)")
        )

        if ambiguous:
            batches = [
                ambiguous[i: i + self.batch_size]
                for i in range(0, len(ambiguous), self.batch_size)
            ]
            logger.info(
                f"Dispatching {len(ambiguous)} ambiguous clauses to {self.judge.model_name} "
                f"in {len(batches)} batches"
            )
            workers = min(self.max_concurrent_batches, len(batches))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                batch_results = list(pool.map(self._run_batch, batches))
            for resolved in batch_results:
                for position, result in resolved:
                    results[position] = result

            judged = sum(1 for r in results if r is not None and r.judged)
            if judged < len(ambiguous):
                logger.warning(
                    f"Judge fallbacks: {len(ambiguous) - judged}/{len(ambiguous)} "
                    f"ambiguous clauses kept their cosine-only result"
                )

        unresolved = [c.id for c, r in zip(clauses, results) if r is None]
        if unresolved:
            raise RegCheckError(f"No match result produced for clauses: {', '.join(unresolved)}")
        return results
