"""
End-to-End Pipeline Tests
==========================

Runs the full pipeline (load → similarity → triage/judge → reports)
over the ten-clause scenario from conftest with a fake judge.

    C1..C5   HIGH       covered on similarity alone
    C6, C7   no match   missing
    C8..C10  AMBIGUOUS  one judge batch
"""

from __future__ import annotations

import pytest

from regcheck.config import JudgeProvider
from regcheck.embed.provider import EmbeddingProvider
from regcheck.pipeline import ComplianceAnalysisPipeline, compute_statistics
from regcheck.schemas.matching import Band, CoverageStatus
from regcheck.schemas.report import ApprovalRecommendation, GapSeverity
from regcheck.schemas.run import RunStatus
from regcheck.store import InMemoryCorpusRepository, InMemoryResultSink, JsonResultSink
from tests.conftest import FakeJudge, make_clause, make_coverage, make_paragraph, scenario_corpus, unit

pytestmark = pytest.mark.integration

ARTIFACTS = {"match_results", "coverage", "gaps", "questions", "decision", "run"}


def _repo(clauses, paragraphs) -> InMemoryCorpusRepository:
    repo = InMemoryCorpusRepository()
    repo.add_clauses("ref", clauses)
    repo.add_paragraphs("moe", paragraphs)
    return repo


class TestScenario:

    def test_full_judgement(self, scenario_repo, config):
        judge = FakeJudge(status="full")
        sink = InMemoryResultSink()
        pipeline = ComplianceAnalysisPipeline(scenario_repo, sink=sink, judge=judge, config=config)
        run = pipeline.run("ref", "moe")
        pipeline.close()

        assert run.status == RunStatus.COMPLETED
        assert judge.batch_calls == [["C8", "C9", "C10"]]
        assert judge.single_calls == []

        assert [r.clause_id for r in run.match_results] == [f"C{i}" for i in range(1, 11)]
        bands = [r.band for r in run.match_results]
        assert bands == [Band.HIGH] * 5 + [Band.LOW] * 2 + [Band.AMBIGUOUS] * 3

        stats = run.statistics
        assert (stats.total, stats.covered, stats.partial, stats.missing) == (10, 8, 0, 2)
        assert stats.compliance_score == 80.0
        assert (stats.high_band, stats.low_band, stats.ambiguous_band) == (5, 2, 3)
        assert stats.judged == 3
        assert stats.judge_fallbacks == 0

        assert [(g.clause_id, g.severity) for g in run.gaps] == [
            ("C6", GapSeverity.CRITICAL),
            ("C7", GapSeverity.CRITICAL),
        ]
        assert [q.clause_id for q in run.questions] == ["C6", "C7"]
        assert run.decision.recommendation == ApprovalRecommendation.MAJOR_REVISIONS_REQUIRED
        assert set(sink.artifacts[run.run_id]) == ARTIFACTS

    def test_non_mandatory_missing(self, config):
        judge = FakeJudge(status="full")
        pipeline = ComplianceAnalysisPipeline(
            _repo(*scenario_corpus(low_mandatory=False)), judge=judge, config=config
        )
        run = pipeline.run("ref", "moe")
        pipeline.close()

        assert {g.severity for g in run.gaps} == {GapSeverity.MINOR}
        assert run.statistics.compliance_score == 80.0
        assert run.decision.recommendation == ApprovalRecommendation.CONDITIONAL_APPROVAL

    def test_partial_judgement(self, scenario_repo, config):
        pipeline = ComplianceAnalysisPipeline(
            scenario_repo, judge=FakeJudge(status="partial"), config=config
        )
        run = pipeline.run("ref", "moe")

        ambiguous = run.match_results[7:]
        assert all(r.judged and r.best_similarity == 0.5 for r in ambiguous)
        assert run.statistics.partial == 3
        assert run.statistics.compliance_score == 65.0

    def test_judge_timeout_degrades_to_cosine(self, scenario_repo, config, hang_event):
        judge = FakeJudge(hang=hang_event, batch_timeout_s=0.1, single_timeout_s=0.1)
        pipeline = ComplianceAnalysisPipeline(scenario_repo, judge=judge, config=config)
        run = pipeline.run("ref", "moe")
        pipeline.close()

        assert run.status == RunStatus.COMPLETED
        stats = run.statistics
        assert stats.judged == 0
        assert stats.judge_fallbacks == 3
        assert stats.partial == 3
        assert stats.compliance_score == 65.0
        for result in run.match_results[7:]:
            assert not result.judged
            assert result.best_similarity == pytest.approx(0.6)
            assert result.coverage == CoverageStatus.PARTIAL

    def test_without_judge(self, scenario_repo, config):
        run = ComplianceAnalysisPipeline(scenario_repo, config=config).run("ref", "moe")
        assert run.succeeded
        assert run.statistics.judged == 0
        assert run.statistics.ambiguous_band == 3

    def test_run_metadata(self, scenario_repo, config):
        run = ComplianceAnalysisPipeline(scenario_repo, config=config).run("ref", "moe")
        assert run.run_id.startswith("regcheck-")
        assert run.config_hash == config.config_hash()
        for key in ("load_ms", "embed_ms", "similarity_ms", "classify_ms", "report_ms", "total_ms"):
            assert run.timings[key] >= 0.0
        assert run.completed_at >= run.started_at


class TestFailures:

    def test_missing_reference(self, config):
        sink = InMemoryResultSink()
        run = ComplianceAnalysisPipeline(InMemoryCorpusRepository(), sink=sink, config=config).run("ref", "moe")
        assert run.status == RunStatus.FAILED
        assert run.error.startswith("InputNotFoundError")
        assert run.decision is None
        assert set(sink.artifacts[run.run_id]) == {"run"}

    def test_failure_keeps_partial_artifacts(self, scenario_repo, config):
        class BrokenGapSink(InMemoryResultSink):
            def write_gaps(self, run_id, gaps):
                raise OSError("disk full")

        sink = BrokenGapSink()
        run = ComplianceAnalysisPipeline(scenario_repo, sink=sink, config=config).run("ref", "moe")
        assert run.status == RunStatus.FAILED
        assert "disk full" in run.error
        assert len(run.match_results) == 10
        assert len(run.coverage) == 10
        assert set(sink.artifacts[run.run_id]) == {"match_results", "coverage", "run"}

    def test_unwritable_run_record_does_not_raise(self, scenario_repo, config):
        class NoRunSink(InMemoryResultSink):
            def write_run(self, run):
                raise OSError("read-only")

        run = ComplianceAnalysisPipeline(scenario_repo, sink=NoRunSink(), config=config).run("ref", "moe")
        assert run.succeeded


class TestInputs:

    def test_duplicate_clause_ids_first_wins(self, config):
        clauses = [
            make_clause("A", unit(0), text="first"),
            make_clause("A", unit(1), text="second"),
        ]
        paragraphs = [make_paragraph("p1", unit(0))]
        run = ComplianceAnalysisPipeline(_repo(clauses, paragraphs), config=config).run("ref", "moe")
        assert [r.clause_id for r in run.match_results] == ["A"]
        assert run.match_results[0].band == Band.HIGH

    def test_records_without_embeddings_use_embedder(self, config):
        vectors = {"alpha requirement": unit(0), "alpha paragraph": unit(0), "beta requirement": unit(1)}

        class DictEmbedder(EmbeddingProvider):
            def __init__(self):
                super().__init__(model_name="dict")
                self.seen = []

            def _embed_many(self, texts):
                self.seen.extend(texts)
                return [vectors[t] for t in texts]

        clauses = [
            make_clause("A", None, text="alpha requirement"),
            make_clause("B", None, text="beta requirement"),
        ]
        paragraphs = [make_paragraph("p1", None, text="alpha paragraph")]
        embedder = DictEmbedder()
        run = ComplianceAnalysisPipeline(
            _repo(clauses, paragraphs), embedder=embedder, config=config
        ).run("ref", "moe")

        assert sorted(embedder.seen) == sorted(vectors)
        assert [r.best_similarity for r in run.match_results] == [pytest.approx(1.0), 0.0]
        assert run.statistics.covered == 1

    def test_clauses_embedded_as_queries(self, config):
        class RoleEmbedder(EmbeddingProvider):
            def __init__(self):
                super().__init__(model_name="role")
                self.roles = {}

            def _prepare(self, texts, query):
                self.roles.update({t: "query" if query else "passage" for t in texts})
                return texts

            def _embed_many(self, texts):
                return [unit(0) for _ in texts]

        clauses = [make_clause("A", None, text="alpha requirement")]
        paragraphs = [
            make_paragraph("p1", None, text="alpha paragraph"),
            make_paragraph("p2", unit(1), text="beta paragraph"),
        ]
        embedder = RoleEmbedder()
        run = ComplianceAnalysisPipeline(
            _repo(clauses, paragraphs), embedder=embedder, config=config
        ).run("ref", "moe")

        assert embedder.roles == {"alpha requirement": "query", "alpha paragraph": "passage"}
        assert run.match_results[0].best_similarity == pytest.approx(1.0)

    def test_unembedded_records_without_embedder_are_gaps(self, config):
        clauses = [make_clause("A", None)]
        paragraphs = [make_paragraph("p1", unit(0))]
        run = ComplianceAnalysisPipeline(_repo(clauses, paragraphs), config=config).run("ref", "moe")
        assert run.succeeded
        assert run.match_results[0].matches == []
        assert run.gaps[0].severity == GapSeverity.CRITICAL


class TestFromConfig:

    def test_no_judge_without_key(self, config, scenario_repo):
        config.judge.provider = JudgeProvider.GEMINI
        config.gemini_api_key = None
        pipeline = ComplianceAnalysisPipeline.from_config(scenario_repo, config=config)
        assert pipeline.judge is None

    def test_openai_judge_with_key(self, config, scenario_repo):
        from regcheck.judge.openai_judge import OpenAIJudge

        config.judge.provider = JudgeProvider.OPENAI
        config.openai_api_key = "sk-test"
        pipeline = ComplianceAnalysisPipeline.from_config(scenario_repo, config=config)
        assert isinstance(pipeline.judge, OpenAIJudge)
        assert pipeline.judge.single_timeout_s == config.judge.single_timeout_s
        pipeline.close()

    def test_json_sink(self, config, scenario_repo):
        sink = JsonResultSink(config.output_dir)
        run = ComplianceAnalysisPipeline(scenario_repo, sink=sink, config=config).run("ref", "moe")
        names = {p.stem for p in sink.run_dir(run.run_id).iterdir()}
        assert names == ARTIFACTS


class TestStatistics:

    def test_half_up_rounding(self):
        coverage = [make_coverage("a", 0.9), make_coverage("b", 0.5), make_coverage("c", 0.1)]
        # (1 + 0.5) / 3 * 100 = 50.0
        assert compute_statistics([], coverage).compliance_score == 50.0
        coverage = [make_coverage("a", 0.9)] + [make_coverage(f"m{i}", 0.1) for i in range(5)]
        # 1 / 6 * 100 = 16.666... → 16.67
        assert compute_statistics([], coverage).compliance_score == 16.67

    def test_empty(self):
        stats = compute_statistics([], [])
        assert stats.total == 0
        assert stats.compliance_score == 0.0
