"""
RegCheck — Regulatory Compliance Matching & Decision Support
==============================================================

RegCheck assesses whether an organization's procedure document
(the "subject corpus") satisfies a set of regulatory requirement
clauses (the "reference corpus"). For every clause it produces a
coverage status, gap findings, auditor questions and, for the
document as a whole, an approval recommendation.

Architecture Overview:
    Clauses + Paragraphs → Similarity → Triage → Judge → Gaps → Questions → Decision

Modules:
    - match:     Cosine similarity engine and similarity-band triage
    - judge:     LLM adjudication with schema-validated responses + fallback
    - report:    Gap detection, auditor questions, approval recommendation
    - embed:     Embedding provider adapters
    - store:     Corpus repositories and result sinks
    - pipeline:  End-to-end orchestrator for one analysis run
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
