"""
RegCheck Error Taxonomy
========================

    RegCheckError
    ├── ProviderError            embedding / judge call failed (incl. timeout)
    │   ├── SchemaValidationError   judge response malformed or incomplete
    │   └── ProviderTimeout         provider did not answer in time
    ├── InputNotFoundError       clause or paragraph data missing for a run (fatal)
    └── InvalidRunTransition     illegal analysis-run state change

ProviderError and its subclasses are recovered locally: the
affected clauses fall back to their cosine-only result. Everything
else aborts the run, which is then marked FAILED by the pipeline.
"""

from __future__ import annotations


class RegCheckError(Exception):
    """Base exception for RegCheck failures."""
    pass


class ProviderError(RegCheckError):
    """Raised when an external provider (embedding, judge) fails or times out."""
    pass


class SchemaValidationError(ProviderError):
    """Raised when a judge response does not match the expected schema."""
    pass


class ProviderTimeout(ProviderError):
    """Raised when an external provider does not answer in time."""
    pass


class InputNotFoundError(RegCheckError):
    """Raised when the clause or paragraph set for a run cannot be loaded."""
    pass


class InvalidRunTransition(RegCheckError):
    """Raised on a status change outside PENDING → IN_PROGRESS → {COMPLETED | FAILED}."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid run transition: {current} -> {requested}")
