"""Tests for the command-line interface."""

from __future__ import annotations

import logging

import pytest

from regcheck.cli import export_all_schemas, main
from regcheck.utils import load_json, save_json
from tests.conftest import blend, unit


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging() rebinds the package logger to the captured stdout."""
    logger = logging.getLogger("regcheck")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def corpus_dir(tmp_path):
    save_json({"clauses": [
        {"id": "145.A.25", "title": "Facility requirements", "text": "Facilities ...", "embedding": unit(0)},
        {"id": "145.A.30", "title": "Personnel requirements", "text": "Personnel ...", "embedding": unit(1)},
        {"id": "145.A.35", "title": "Certifying staff", "text": "Certifying staff ...", "embedding": unit(2)},
    ]}, tmp_path / "part145.json")
    save_json([
        {"id": "p1", "text": "Our hangar ...", "section": "2.1", "embedding": unit(0)},
        {"id": "p2", "text": "Staffing plan ...", "section": "2.2", "embedding": blend(1, 5, 0.6)},
    ], tmp_path / "moe.json")
    return tmp_path


class TestAnalyze:

    def test_writes_artifacts(self, corpus_dir, capsys):
        out_dir = corpus_dir / "runs"
        code = main([
            "analyze",
            "--reference", "part145.json",
            "--subject", "moe.json",
            "--base-dir", str(corpus_dir),
            "--output-dir", str(out_dir),
            "--judge", "none",
        ])
        assert code == 0

        stdout = capsys.readouterr().out
        assert "[COMPLETED]" in stdout
        assert "COMPLIANCE ANALYSIS SUMMARY" in stdout

        run_dirs = list(out_dir.iterdir())
        assert len(run_dirs) == 1
        names = sorted(p.name for p in run_dirs[0].iterdir())
        assert names == [
            "coverage.json", "decision.json", "gaps.json",
            "match_results.json", "questions.json", "run.json",
        ]
        run = load_json(run_dirs[0] / "run.json")
        assert run["status"] == "COMPLETED"
        assert run["statistics"]["total"] == 3
        assert run["statistics"]["covered"] == 1
        # 145.A.35 (mandatory, no match) is a critical gap
        assert run["decision"]["recommendation"] == "MAJOR_REVISIONS_REQUIRED"

    def test_missing_input_fails(self, corpus_dir, capsys):
        code = main([
            "analyze",
            "--reference", "missing.json",
            "--subject", "moe.json",
            "--base-dir", str(corpus_dir),
            "--output-dir", str(corpus_dir / "runs"),
            "--judge", "none",
        ])
        assert code == 1
        stdout = capsys.readouterr().out
        assert "[FAILED]" in stdout
        assert "InputNotFoundError" in stdout


class TestExportSchemas:

    def test_export(self, tmp_path, capsys):
        assert main(["export-schemas", "--output-dir", str(tmp_path)]) == 0
        assert sorted(p.stem for p in tmp_path.glob("*.json")) == [
            "analysis_run", "clause", "compliance_judgement", "judge_request_item", "paragraph",
        ]
        assert "5 schemas exported" in capsys.readouterr().out

    def test_schema_content(self):
        schemas = export_all_schemas()
        assert "compliance_status" in schemas["compliance_judgement"]["properties"]
        assert schemas["clause"]["required"] == ["id", "text"]


def test_no_command_prints_help():
    assert main([]) == 1
