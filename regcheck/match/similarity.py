"""
Similarity Engine
==================

Pairwise cosine similarity between every clause and every paragraph of
the subject document, producing a ranked, threshold-filtered list of
matches per clause.

Architecture:
    Paragraphs → ParagraphIndex (L2-normalized matrix per dimension)
    Clauses → partitioned across a thread pool → per-chunk results → reducer

Key Design Decisions:
    - Paragraph vectors are normalized once; each clause is scored with a
      single matrix-vector product (numpy brute force, as in a dense index)
    - Zero-norm vectors score exactly 0.0; negative cosine is clamped to 0.0
    - Paragraphs whose dimension differs from the clause's score 0.0,
      which always falls below the relevance threshold
    - Ties are broken by paragraph input order (stable sort)
    - Workers return values; only the reducer builds the result mapping

Data Flow:
    [Clause], [Paragraph] → SimilarityEngine.scan() → SimilarityResult
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from regcheck import thresholds
from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.matching import Match
from regcheck.utils import truncate_text

logger = logging.getLogger("regcheck.match.similarity")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors, clamped to [0, 1].

    Returns 0.0 for empty vectors, zero-norm vectors and vectors of
    different dimension.
    """
    if not a or not b or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, 0.0, 1.0))


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalize each row; zero rows stay zero."""
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    safe = np.where(norms == 0.0, 1.0, norms)
    return matrix / safe


class ParagraphIndex:
    """
    Normalized paragraph vectors grouped by embedding dimension.

    Usage:
        index = ParagraphIndex(paragraphs)
        scored = index.score(clause.embedding)   # [(position, similarity)]
    """

    def __init__(self, paragraphs: list[Paragraph]):
        self.paragraphs = paragraphs
        self.skipped: list[str] = []
        self._groups: dict[int, tuple[np.ndarray, np.ndarray]] = {}

        positions_by_dim: dict[int, list[int]] = {}
        for pos, paragraph in enumerate(paragraphs):
            if not paragraph.has_embedding:
                self.skipped.append(paragraph.id)
                continue
            positions_by_dim.setdefault(len(paragraph.embedding), []).append(pos)

        for dim, positions in positions_by_dim.items():
            matrix = np.asarray(
                [paragraphs[p].embedding for p in positions], dtype=np.float64
            )
            self._groups[dim] = (np.asarray(positions), _normalize_rows(matrix))

        if len(self._groups) > 1:
            logger.warning(
                f"Paragraph embeddings have mixed dimensions {sorted(self._groups)}; "
                f"cross-dimension pairs score 0.0"
            )
        logger.debug(
            f"Built paragraph index: {len(paragraphs) - len(self.skipped)} vectors, "
            f"{len(self.skipped)} skipped"
        )

    @property
    def dimensions(self) -> list[int]:
        return sorted(self._groups)

    def score(self, embedding: Sequence[float]) -> list[tuple[int, float]]:
        """
        Score a clause vector against every comparable paragraph.

        Returns:
            (paragraph position, similarity) pairs in paragraph input order.
            Paragraphs of another dimension are omitted (they score 0.0).
        """
        group = self._groups.get(len(embedding))
        if group is None:
            return []
        positions, matrix = group
        query = np.asarray(embedding, dtype=np.float64)
        norm = float(np.linalg.norm(query))
        if norm == 0.0:
            return [(int(p), 0.0) for p in positions]
        sims = np.clip(matrix @ (query / norm), 0.0, 1.0)
        return [(int(p), float(s)) for p, s in zip(positions, sims)]


@dataclass
class SimilarityResult:
    """Ranked matches per clause id, plus what the scan had to skip."""
    matches: dict[str, list[Match]] = field(default_factory=dict)
    skipped_clauses: list[str] = field(default_factory=list)
    skipped_paragraphs: list[str] = field(default_factory=list)

    def for_clause(self, clause_id: str) -> list[Match]:
        return self.matches.get(clause_id, [])

    def candidates(self, clause_id: str) -> list[Match]:
        """The nearest matches offered to the judge."""
        return self.for_clause(clause_id)[: thresholds.MAX_JUDGE_CANDIDATES]


class SimilarityEngine:
    """
    Parallel clause-by-paragraph cosine similarity scan.

    Usage:
        engine = SimilarityEngine(num_workers=4)
        result = engine.scan(clauses, paragraphs)
        result.for_clause("145.A.30(a)")   # up to 10 Match, best first

    Args:
        num_workers: Thread pool size (default: os.cpu_count()).
        threshold: Minimum similarity for a pair to count as a match.
        max_matches: Matches kept per clause.
    """

    def __init__(
        self,
        num_workers: Optional[int] = None,
        threshold: float = thresholds.RELEVANCE_THRESHOLD,
        max_matches: int = thresholds.MAX_MATCHES,
    ):
        self.num_workers = num_workers or os.cpu_count() or 1
        self.threshold = threshold
        self.max_matches = max_matches

    def rank(self, clause: Clause, index: ParagraphIndex) -> list[Match]:
        """Matches for one clause, best first, ties in paragraph input order."""
        if not index.dimensions:
            return []
        if len(clause.embedding) not in index.dimensions:
            logger.warning(
                f"Clause {clause.id}: embedding dimension {len(clause.embedding)} "
                f"matches no paragraph vectors"
            )
            return []

        scored = [(pos, sim) for pos, sim in index.score(clause.embedding)
                  if sim >= self.threshold]
        # sorted() is stable and positions arrive in input order
        scored = sorted(scored, key=lambda item: -item[1])[: self.max_matches]

        matches = []
        for pos, sim in scored:
            paragraph = index.paragraphs[pos]
            matches.append(Match(
                paragraph_id=paragraph.id,
                section=paragraph.section,
                similarity=sim,
                excerpt=truncate_text(paragraph.text, thresholds.EXCERPT_CHARS),
            ))
        return matches

    def _scan_chunk(
        self, clauses: list[Clause], index: ParagraphIndex
    ) -> list[tuple[str, list[Match]]]:
        return [(clause.id, self.rank(clause, index)) for clause in clauses]

    def _partition(self, clauses: list[Clause]) -> list[list[Clause]]:
        n_chunks = max(1, min(self.num_workers, len(clauses)))
        size = -(-len(clauses) // n_chunks)
        return [clauses[i: i + size] for i in range(0, len(clauses), size)]

    def scan(
        self, clauses: list[Clause], paragraphs: list[Paragraph]
    ) -> SimilarityResult:
        """
        Score every clause against every paragraph.

        Clauses or paragraphs without an embedding are skipped and
        logged. Every scanned clause gets an entry (possibly empty) in
        the result mapping.

        Args:
            clauses: Reference clauses (ids assumed unique).
            paragraphs: Subject paragraphs, in document order.

        Returns:
            SimilarityResult keyed by clause id.
        """
        index = ParagraphIndex(paragraphs)
        result = SimilarityResult(skipped_paragraphs=list(index.skipped))
        if index.skipped:
            logger.warning(
                f"Skipping {len(index.skipped)} paragraphs without embeddings"
            )

        scannable = []
        for clause in clauses:
            if clause.has_embedding:
                scannable.append(clause)
            else:
                result.skipped_clauses.append(clause.id)
        if result.skipped_clauses:
            logger.warning(
                f"Skipping {len(result.skipped_clauses)} clauses without embeddings: "
                f"{result.skipped_clauses[:10]}"
            )

        if not scannable:
            return result

        chunks = self._partition(scannable)
        with ThreadPoolExecutor(max_workers=len(chunks)) as pool:
            futures = [pool.submit(self._scan_chunk, chunk, index) for chunk in chunks]
            partials = [f.result() for f in futures]

        for partial in partials:
            for clause_id, matches in partial:
                if clause_id in result.matches:
                    logger.warning(f"Duplicate clause id {clause_id} in scan; keeping first")
                    continue
                result.matches[clause_id] = matches

        matched = sum(1 for m in result.matches.values() if m)
        logger.info(
            f"Similarity scan: {len(scannable)} clauses x "
            f"{len(paragraphs) - len(index.skipped)} paragraphs, "
            f"{matched} clauses with matches (workers={len(chunks)})"
        )
        return result
