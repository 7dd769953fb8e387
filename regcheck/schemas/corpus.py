"""
Corpus Schema
==============

Input records for one analysis run:

- Clause     — a regulatory requirement from the reference corpus
- Paragraph  — a unit of text from the organization's procedure document

Both are frozen: once loaded for a run they are never mutated. Stages
that need a changed record (e.g. attaching an embedding) build a new
one with ``model_copy(update=...)``.

An embedding of ``None`` or ``[]`` means "no embedding available";
such records are skipped by the similarity scan, never compared.

Data Flow:
    CorpusRepository → Clause / Paragraph → SimilarityEngine
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Clause(BaseModel):
    """
    A single regulatory requirement statement.

    Schema:
        {
          "id": "145.A.30(a)",
          "title": "Personnel requirements",
          "text": "The organisation shall appoint an accountable manager ...",
          "mandatory": true,
          "embedding": [0.012, -0.094, ...]
        }
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Clause identifier within the regulation")
    title: str = Field(default="", description="Short clause title (defaults to the id)")
    text: str = Field(description="Full requirement text")
    mandatory: bool = Field(default=True, description="Hard requirement (vs. guidance material)")
    embedding: Optional[list[float]] = Field(default=None, description="Dense embedding vector")

    @model_validator(mode="after")
    def default_title(self) -> "Clause":
        """Fall back to the clause id when no title is given."""
        if not self.title:
            object.__setattr__(self, "title", self.id)
        return self

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class Paragraph(BaseModel):
    """A paragraph of the subject document, with its section reference."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Paragraph identifier")
    text: str = Field(description="Paragraph text")
    section: Optional[str] = Field(default=None, description="Section number, e.g. '2.13'")
    embedding: Optional[list[float]] = Field(default=None, description="Dense embedding vector")

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def section_label(self) -> str:
        """Section number for display, 'N/A' when unknown."""
        return self.section or "N/A"
