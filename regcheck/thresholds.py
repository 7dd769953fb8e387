"""
Shared Thresholds
==================

Fixed similarity thresholds used by every stage of the pipeline.
They are constants rather than configuration: the gap table, the
triage bands and the coverage classification must agree with each
other, and an audit report is only comparable to another one if both
were produced with the same cut-offs.

All thresholds are inclusive lower bounds unless noted otherwise.
"""

from __future__ import annotations

# ── Retrieval ──────────────────────────────────────────────────────
RELEVANCE_THRESHOLD = 0.30      # pairs below this are discarded
MAX_MATCHES = 10                # matches kept per clause for presentation
MAX_JUDGE_CANDIDATES = 5        # nearest paragraphs offered to the judge
EXCERPT_CHARS = 200

# ── Triage bands ───────────────────────────────────────────────────
HIGH_SIMILARITY = 0.90          # best >= this: trust the embedding signal
LOW_SIMILARITY = 0.25           # best <= this (upper bound, inclusive): cosine only
JUDGE_BATCH_SIZE = 5

# ── Coverage ───────────────────────────────────────────────────────
COVERED_THRESHOLD = 0.75
PARTIAL_THRESHOLD = 0.40

# ── Gap severity ───────────────────────────────────────────────────
GAP_CRITICAL_BELOW = 0.30
GAP_MAJOR_BELOW = 0.60

# ── Match quality ──────────────────────────────────────────────────
QUALITY_EXCELLENT = 0.90
QUALITY_GOOD = 0.75
QUALITY_ADEQUATE = 0.60
QUALITY_WEAK = 0.40
QUALITY_POOR = 0.30

# ── Decision support ───────────────────────────────────────────────
REJECT_CRITICAL_ABOVE = 3
MAJOR_REVISION_MAJOR_ABOVE = 5
APPROVE_COVERAGE_RATE = 0.95

# ── Judge scoring ──────────────────────────────────────────────────
SCORE_FULL = 1.0
SCORE_PARTIAL = 0.5
SCORE_NON = 0.0
