"""
Corpus Repository & Result Sink
================================

The two persistence seams of the pipeline:

- CorpusRepository: loads the clause set (reference corpus) and the
  paragraph set (subject document) of a run
- ResultSink:       receives each artifact of a run exactly once, when
  the stage producing it finishes

Two implementations of each are provided: in-memory (tests, embedding
in other services) and JSON files on disk (CLI).

JSON corpus files hold either a plain list of records or an object
with a "clauses" / "paragraphs" list. Corpus ids are file paths
relative to the repository's base directory.

JSON result layout:
    <output_dir>/<run_id>/match_results.json
                         /coverage.json
                         /gaps.json
                         /questions.json
                         /decision.json
                         /run.json
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from regcheck.errors import InputNotFoundError
from regcheck.schemas.corpus import Clause, Paragraph
from regcheck.schemas.matching import ClauseMatchResult, CoverageResult
from regcheck.schemas.report import AuditorQuestion, DecisionReport, GapFinding
from regcheck.schemas.run import AnalysisRun
from regcheck.utils import load_json, save_json

logger = logging.getLogger("regcheck.store")


# ── Corpus ─────────────────────────────────────────────────────────

class CorpusRepository(ABC):
    """Source of the clauses and paragraphs of a run."""

    @abstractmethod
    def load_clauses(self, reference_id: str) -> list[Clause]:
        """
        Raises:
            InputNotFoundError: if the reference is unknown or empty.
        """
        ...

    @abstractmethod
    def load_paragraphs(self, subject_id: str) -> list[Paragraph]:
        """
        Raises:
            InputNotFoundError: if the subject is unknown or empty.
        """
        ...


class InMemoryCorpusRepository(CorpusRepository):
    """
    Dict-backed repository.

    Usage:
        repo = InMemoryCorpusRepository()
        repo.add_clauses("part-145", clauses)
        repo.add_paragraphs("moe-v3", paragraphs)
    """

    def __init__(self):
        self._clauses: dict[str, list[Clause]] = {}
        self._paragraphs: dict[str, list[Paragraph]] = {}

    def add_clauses(self, reference_id: str, clauses: list[Clause]) -> None:
        self._clauses[reference_id] = list(clauses)

    def add_paragraphs(self, subject_id: str, paragraphs: list[Paragraph]) -> None:
        self._paragraphs[subject_id] = list(paragraphs)

    def load_clauses(self, reference_id: str) -> list[Clause]:
        clauses = self._clauses.get(reference_id)
        if not clauses:
            raise InputNotFoundError(f"No clauses for reference {reference_id!r}")
        return list(clauses)

    def load_paragraphs(self, subject_id: str) -> list[Paragraph]:
        paragraphs = self._paragraphs.get(subject_id)
        if not paragraphs:
            raise InputNotFoundError(f"No paragraphs for subject {subject_id!r}")
        return list(paragraphs)


class JsonCorpusRepository(CorpusRepository):
    """
    Repository reading JSON files under a base directory.

    Args:
        base_dir: Directory that corpus ids are resolved against.
    """

    def __init__(self, base_dir: str | Path = "."):
        self.base_dir = Path(base_dir)

    def _records(self, corpus_id: str, key: str) -> list[Any]:
        path = self.base_dir / corpus_id
        if not path.is_file():
            raise InputNotFoundError(f"Corpus file not found: {path}")
        data = load_json(path)
        if isinstance(data, dict):
            data = data.get(key)
        if not isinstance(data, list) or not data:
            raise InputNotFoundError(f"No {key} in {path}")
        return data

    def load_clauses(self, reference_id: str) -> list[Clause]:
        clauses = [Clause.model_validate(r) for r in self._records(reference_id, "clauses")]
        logger.info(f"Loaded {len(clauses)} clauses from {reference_id}")
        return clauses

    def load_paragraphs(self, subject_id: str) -> list[Paragraph]:
        paragraphs = [Paragraph.model_validate(r) for r in self._records(subject_id, "paragraphs")]
        logger.info(f"Loaded {len(paragraphs)} paragraphs from {subject_id}")
        return paragraphs


# ── Results ────────────────────────────────────────────────────────

class ResultSink(ABC):
    """
    Append-only destination for run artifacts.

    Each artifact of a run is written once; a second write of the
    same artifact for the same run raises ValueError.
    """

    def __init__(self):
        self._written: set[tuple[str, str]] = set()

    def _claim(self, run_id: str, artifact: str) -> None:
        key = (run_id, artifact)
        if key in self._written:
            raise ValueError(f"Artifact {artifact!r} already written for run {run_id}")
        self._written.add(key)

    @abstractmethod
    def _write(self, run_id: str, artifact: str, payload: Any) -> None:
        ...

    def _emit(self, run_id: str, artifact: str, payload: Any) -> None:
        self._claim(run_id, artifact)
        self._write(run_id, artifact, payload)

    def write_match_results(self, run_id: str, results: list[ClauseMatchResult]) -> None:
        self._emit(run_id, "match_results", results)

    def write_coverage(self, run_id: str, coverage: list[CoverageResult]) -> None:
        self._emit(run_id, "coverage", coverage)

    def write_gaps(self, run_id: str, gaps: list[GapFinding]) -> None:
        self._emit(run_id, "gaps", gaps)

    def write_questions(self, run_id: str, questions: list[AuditorQuestion]) -> None:
        self._emit(run_id, "questions", questions)

    def write_decision(self, run_id: str, decision: DecisionReport) -> None:
        self._emit(run_id, "decision", decision)

    def write_run(self, run: AnalysisRun) -> None:
        self._emit(run.run_id, "run", run)


class InMemoryResultSink(ResultSink):
    """Keeps artifacts in a dict: artifacts[run_id][artifact_name]."""

    def __init__(self):
        super().__init__()
        self.artifacts: dict[str, dict[str, Any]] = {}

    def _write(self, run_id: str, artifact: str, payload: Any) -> None:
        if isinstance(payload, BaseModel):
            payload = payload.model_copy(deep=True)
        elif isinstance(payload, list):
            payload = list(payload)
        self.artifacts.setdefault(run_id, {})[artifact] = payload

    def get(self, run_id: str, artifact: str) -> Optional[Any]:
        return self.artifacts.get(run_id, {}).get(artifact)


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, list):
        return [_to_jsonable(p) for p in payload]
    return payload


class JsonResultSink(ResultSink):
    """
    Writes one JSON file per artifact under <output_dir>/<run_id>/.

    Args:
        output_dir: Root directory for run folders.
    """

    def __init__(self, output_dir: str | Path):
        super().__init__()
        self.output_dir = Path(output_dir)

    def run_dir(self, run_id: str) -> Path:
        return self.output_dir / run_id

    def _write(self, run_id: str, artifact: str, payload: Any) -> None:
        path = save_json(_to_jsonable(payload), self.run_dir(run_id) / f"{artifact}.json")
        logger.debug(f"Wrote {artifact} to {path}")
