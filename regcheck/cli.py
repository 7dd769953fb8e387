"""
RegCheck CLI
=============

Command-line interface for running compliance analyses and exporting
the data contracts.

Usage:
    regcheck analyze --reference part145.json --subject moe.json
    regcheck analyze --reference part145.json --subject moe.json --base-dir data/ --judge none
    regcheck export-schemas --output-dir schemas
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from regcheck.config import JudgeProvider, get_config
from regcheck.utils import setup_logging


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="regcheck",
        description="RegCheck: regulatory compliance matching and decision support",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--verbose", "-v", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ── analyze ─────────────────────────────────────────────────
    analyze_parser = subparsers.add_parser("analyze", help="Analyse a document against a clause set")
    analyze_parser.add_argument("--reference", required=True, help="Clause JSON file (relative to --base-dir)")
    analyze_parser.add_argument("--subject", required=True, help="Paragraph JSON file (relative to --base-dir)")
    analyze_parser.add_argument("--base-dir", default=".", help="Directory corpus paths are resolved against")
    analyze_parser.add_argument("--output-dir", default=None, help="Run artifact directory (overrides config)")
    analyze_parser.add_argument(
        "--judge", choices=[p.value for p in JudgeProvider], default=None,
        help="Judge provider (overrides config)",
    )

    # ── export-schemas ──────────────────────────────────────────
    schema_parser = subparsers.add_parser("export-schemas", help="Export JSON schemas")
    schema_parser.add_argument("--output-dir", default="schemas")

    args = parser.parse_args(argv)

    if args.command == "analyze":
        return cmd_analyze(args)
    if args.command == "export-schemas":
        setup_logging(level="DEBUG" if args.verbose else "INFO")
        return cmd_export_schemas(args)
    parser.print_help()
    return 1


def cmd_analyze(args) -> int:
    """Run one analysis and write its artifacts as JSON."""
    from regcheck.pipeline import ComplianceAnalysisPipeline
    from regcheck.store import JsonCorpusRepository, JsonResultSink

    config = get_config(args.config)
    if args.output_dir:
        config.output_dir = Path(args.output_dir)
    if args.judge:
        config.judge.provider = JudgeProvider(args.judge)
    config.ensure_dirs()

    setup_logging(
        level="DEBUG" if args.verbose else config.log_level,
        format_style=config.log_format,
    )

    sink = JsonResultSink(config.output_dir)
    pipeline = ComplianceAnalysisPipeline.from_config(
        repository=JsonCorpusRepository(args.base_dir),
        sink=sink,
        config=config,
    )
    try:
        run = pipeline.run(args.reference, args.subject)
    finally:
        pipeline.close()

    print(f"\nRun: {run.run_id} [{run.status.value}]")
    if not run.succeeded:
        print(f"Error: {run.error}")
        return 1

    stats = run.statistics
    print(f"Compliance score: {stats.compliance_score:.2f}")
    print(
        f"Covered {stats.covered} / Partial {stats.partial} / Missing {stats.missing} "
        f"of {stats.total} (judged {stats.judged}, fallbacks {stats.judge_fallbacks})"
    )
    print(f"\n{run.decision.narrative}")
    print(f"\nArtifacts written to {sink.run_dir(run.run_id)}/")
    return 0


def export_all_schemas() -> dict[str, dict]:
    """JSON schemas of the data contracts, keyed by file stem."""
    from regcheck.schemas import (
        AnalysisRun,
        Clause,
        ComplianceJudgement,
        JudgeItem,
        Paragraph,
    )

    models = {
        "clause": Clause,
        "paragraph": Paragraph,
        "judge_request_item": JudgeItem,
        "compliance_judgement": ComplianceJudgement,
        "analysis_run": AnalysisRun,
    }
    return {name: model.model_json_schema() for name, model in models.items()}


def cmd_export_schemas(args) -> int:
    """Export JSON schemas for all data contracts."""
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    schemas = export_all_schemas()
    for name, schema in schemas.items():
        path = output_dir / f"{name}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(schema, f, indent=2)
        print(f"Exported: {path}")

    print(f"\n{len(schemas)} schemas exported to {output_dir}/")
    return 0


if __name__ == "__main__":
    sys.exit(main())
