"""
RegCheck Analysis Pipeline
===========================

Orchestrates one compliance analysis run:
    Load → Embed (optional) → Similarity → Classify/Judge → Coverage
         → Gaps → Questions → Decision → Statistics

This is the single entry point for analysing a subject document
against a reference clause set. It manages component initialization,
stage ordering, timings, the run state machine and error capture.

Run lifecycle:
    PENDING → IN_PROGRESS → COMPLETED   (all artifacts attached)
                          → FAILED      (error message + partial artifacts)

`run()` never raises: every failure ends up on the returned run.

Usage:
    from regcheck.pipeline import ComplianceAnalysisPipeline

    pipeline = ComplianceAnalysisPipeline.from_config(repository=repo)
    run = pipeline.run("part-145.json", "moe-v3.json")
    print(run.decision.narrative)
"""

from __future__ import annotations

import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from regcheck.config import JudgeProvider, RegCheckConfig, get_config
from regcheck.embed.provider import EmbeddingProvider
from regcheck.judge.base import BaseJudge
from regcheck.match.classifier import Classifier
from regcheck.match.similarity import SimilarityEngine
from regcheck.report.decision import DecisionSupportGenerator
from regcheck.report.gaps import GapDetector
from regcheck.report.questions import QuestionGenerator
from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.matching import Band, ClauseMatchResult, CoverageResult, CoverageStatus
from regcheck.schemas.run import AnalysisRun, AnalysisStatistics
from regcheck.store import CorpusRepository, InMemoryResultSink, ResultSink
from regcheck.utils import generate_run_id

logger = logging.getLogger("regcheck.pipeline")


def compute_statistics(
    match_results: list[ClauseMatchResult], coverage: list[CoverageResult]
) -> AnalysisStatistics:
    """
    Aggregate counts and the compliance score of a run.

    compliance_score = (covered + 0.5 * partial) / total * 100,
    rounded half-up to two decimals; 0.0 when there are no clauses.
    """
    total = len(coverage)
    covered = sum(1 for c in coverage if c.status == CoverageStatus.COVERED)
    partial = sum(1 for c in coverage if c.status == CoverageStatus.PARTIAL)

    score = Decimal(0)
    if total:
        score = Decimal(2 * covered + partial) * 100 / Decimal(2 * total)
    score = score.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return AnalysisStatistics(
        total=total,
        covered=covered,
        partial=partial,
        missing=total - covered - partial,
        compliance_score=float(score),
        high_band=sum(1 for r in match_results if r.band == Band.HIGH),
        low_band=sum(1 for r in match_results if r.band == Band.LOW),
        ambiguous_band=sum(1 for r in match_results if r.band == Band.AMBIGUOUS),
        judged=sum(1 for r in match_results if r.judged),
    )


def dedupe_clauses(clauses: list[Clause]) -> list[Clause]:
    """Drop clauses whose id was already seen; the first occurrence wins."""
    seen: set[str] = set()
    unique = []
    for clause in clauses:
        if clause.id in seen:
            logger.warning(f"Duplicate clause id {clause.id}; keeping first occurrence")
            continue
        seen.add(clause.id)
        unique.append(clause)
    return unique


class ComplianceAnalysisPipeline:
    """
    End-to-end compliance analysis orchestrator.

    Usage:
        pipeline = ComplianceAnalysisPipeline(repository, sink=JsonResultSink("outputs"))
        run = pipeline.run("part-145.json", "moe.json")

    Args:
        repository: Source of clauses and paragraphs.
        sink: Destination of run artifacts (in-memory by default).
        judge: Adjudication backend for AMBIGUOUS clauses (None: cosine only).
        embedder: Provider used for clauses/paragraphs lacking a vector.
        config: RegCheck configuration.
    """

    def __init__(
        self,
        repository: CorpusRepository,
        sink: Optional[ResultSink] = None,
        judge: Optional[BaseJudge] = None,
        embedder: Optional[EmbeddingProvider] = None,
        config: Optional[RegCheckConfig] = None,
    ):
        self.config = config or RegCheckConfig()
        self.repository = repository
        self.sink = sink or InMemoryResultSink()
        self.judge = judge
        self.embedder = embedder

        self.similarity_engine = SimilarityEngine(num_workers=self.config.similarity.num_workers)
        self.classifier = Classifier(
            judge=judge,
            batch_size=self.config.triage.batch_size,
            max_concurrent_batches=self.config.triage.max_concurrent_batches,
        )
        self.gap_detector = GapDetector()
        self.question_generator = QuestionGenerator(seed=self.config.report.question_seed)
        self.decision_generator = DecisionSupportGenerator()

    @classmethod
    def from_config(
        cls,
        repository: CorpusRepository,
        sink: Optional[ResultSink] = None,
        config: Optional[RegCheckConfig] = None,
        config_path: Optional[str] = None,
    ) -> "ComplianceAnalysisPipeline":
        """Create a pipeline with the judge and embedder the config selects."""
        config = config or get_config(config_path)
        return cls(
            repository=repository,
            sink=sink,
            judge=cls._init_judge(config),
            embedder=cls._init_embedder(config),
            config=config,
        )

    @staticmethod
    def _init_judge(config: RegCheckConfig) -> Optional[BaseJudge]:
        """
        Build the configured judge.

        Returns None when the provider is 'none' or its API key is
        missing; ambiguous clauses then keep their cosine-only result.
        """
        judge_cfg = config.judge
        common = dict(
            batch_timeout_s=judge_cfg.batch_timeout_s,
            single_timeout_s=judge_cfg.single_timeout_s,
            max_text_chars=judge_cfg.max_text_chars,
            temperature=judge_cfg.temperature,
            max_output_tokens=judge_cfg.max_output_tokens,
        )
        if judge_cfg.provider == JudgeProvider.GEMINI and config.gemini_api_key:
            from regcheck.judge.gemini_judge import GeminiJudge
            return GeminiJudge(api_key=config.gemini_api_key, model=config.gemini_model, **common)
        if judge_cfg.provider == JudgeProvider.OPENAI and config.openai_api_key:
            from regcheck.judge.openai_judge import OpenAIJudge
            return OpenAIJudge(api_key=config.openai_api_key, model=config.openai_model, **common)
        if judge_cfg.provider != JudgeProvider.NONE:
            logger.warning(
                f"Judge provider {judge_cfg.provider.value!r} has no API key; "
                f"ambiguous clauses will use cosine similarity only"
            )
        return None

    @staticmethod
    def _init_embedder(config: RegCheckConfig) -> Optional[EmbeddingProvider]:
        """Build the configured embedding provider, or None when unavailable."""
        sim = config.similarity
        if sim.embedding_mode == "full":
            from regcheck.embed.provider import SentenceTransformerEmbeddingProvider
            return SentenceTransformerEmbeddingProvider(model_name=sim.embedding_model)
        if sim.embedding_mode == "gemini" and config.gemini_api_key:
            from regcheck.embed.provider import GeminiEmbeddingProvider
            return GeminiEmbeddingProvider(api_key=config.gemini_api_key, model_name=sim.embedding_model)
        if sim.embedding_mode == "lite" and config.openai_api_key:
            from regcheck.embed.provider import OpenAIEmbeddingProvider
            return OpenAIEmbeddingProvider(api_key=config.openai_api_key, model_name=sim.embedding_model)
        return None

    # ── Stages ─────────────────────────────────────────────────────

    def _attach_embeddings(
        self, clauses: list[Clause], paragraphs: list[Paragraph]
    ) -> tuple[list[Clause], list[Paragraph]]:
        """Embed the texts of records that arrived without a vector."""
        pending_clauses = [c.text for c in clauses if not c.has_embedding]
        pending_paragraphs = [p.text for p in paragraphs if not p.has_embedding]
        if not (pending_clauses or pending_paragraphs) or self.embedder is None:
            return clauses, paragraphs

        logger.info(
            f"Embedding {len(pending_clauses)} clauses and {len(pending_paragraphs)} paragraphs "
            f"with {self.embedder.model_name}"
        )
        # Clauses are the queries searched for among the paragraphs
        clause_vectors = self.embedder.embed_batch(pending_clauses, query=True)
        paragraph_vectors = self.embedder.embed_batch(pending_paragraphs)

        def attach(record, vectors):
            if record.has_embedding:
                return record
            return record.model_copy(update={"embedding": vectors.get(record.text, [])})

        return (
            [attach(c, clause_vectors) for c in clauses],
            [attach(p, paragraph_vectors) for p in paragraphs],
        )

    def _execute(self, run: AnalysisRun) -> None:
        timings = run.timings
        total_start = time.time()

        # ── Step 1: Load ───────────────────────────────────────────
        t0 = time.time()
        clauses = dedupe_clauses(self.repository.load_clauses(run.reference_id))
        paragraphs = self.repository.load_paragraphs(run.subject_id)
        timings["load_ms"] = (time.time() - t0) * 1000
        logger.info(f"Loaded {len(clauses)} clauses and {len(paragraphs)} paragraphs")

        # ── Step 2: Embed missing vectors ──────────────────────────
        t0 = time.time()
        clauses, paragraphs = self._attach_embeddings(clauses, paragraphs)
        timings["embed_ms"] = (time.time() - t0) * 1000

        # ── Step 3: Similarity scan ────────────────────────────────
        t0 = time.time()
        similarity = self.similarity_engine.scan(clauses, paragraphs)
        timings["similarity_ms"] = (time.time() - t0) * 1000

        # ── Step 4: Classify + judge ───────────────────────────────
        t0 = time.time()
        run.match_results = self.classifier.classify(clauses, paragraphs, similarity)
        timings["classify_ms"] = (time.time() - t0) * 1000
        self.sink.write_match_results(run.run_id, run.match_results)

        # ── Step 5: Coverage ───────────────────────────────────────
        run.coverage = [CoverageResult.from_match_result(r) for r in run.match_results]
        self.sink.write_coverage(run.run_id, run.coverage)

        # ── Step 6: Reports ────────────────────────────────────────
        t0 = time.time()
        run.gaps = self.gap_detector.detect(run.match_results, clauses)
        self.sink.write_gaps(run.run_id, run.gaps)

        run.questions = self.question_generator.generate(run.coverage, run.gaps)
        self.sink.write_questions(run.run_id, run.questions)

        run.decision = self.decision_generator.generate(run.coverage, run.gaps)
        self.sink.write_decision(run.run_id, run.decision)
        timings["report_ms"] = (time.time() - t0) * 1000

        # ── Step 7: Statistics ─────────────────────────────────────
        statistics = compute_statistics(run.match_results, run.coverage)
        timings["total_ms"] = (time.time() - total_start) * 1000
        run.complete(statistics)

        logger.info(
            f"Run {run.run_id} complete: score={statistics.compliance_score:.2f} "
            f"covered={statistics.covered} partial={statistics.partial} "
            f"missing={statistics.missing} judged={statistics.judged} "
            f"fallbacks={statistics.judge_fallbacks} | Total: {timings['total_ms']:.0f}ms"
        )

    def run(self, reference_id: str, subject_id: str) -> AnalysisRun:
        """
        Analyse a subject document against a reference clause set.

        Args:
            reference_id: Identifier of the clause set in the repository.
            subject_id: Identifier of the paragraph set in the repository.

        Returns:
            The AnalysisRun, COMPLETED or FAILED.
        """
        run = AnalysisRun(
            run_id=generate_run_id(),
            reference_id=reference_id,
            subject_id=subject_id,
            config_hash=self.config.config_hash(),
        )
        run.start()
        logger.info(f"Run {run.run_id} started: {reference_id} vs {subject_id}")

        try:
            self._execute(run)
        except Exception as e:
            logger.error(f"Run {run.run_id} failed: {e}", exc_info=True)
            run.fail(f"{type(e).__name__}: {e}")

        try:
            self.sink.write_run(run)
        except Exception as e:
            logger.error(f"Could not write run record for {run.run_id}: {e}", exc_info=True)
        return run

    def close(self) -> None:
        """Release judge backend resources."""
        if self.judge is not None:
            self.judge.close()
