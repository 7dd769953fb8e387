"""
Embedding Providers
====================

Dense embedding generation for clauses and paragraphs that arrive
without a vector.

Three Backends:
    - OpenAIEmbeddingProvider:          OpenAI embeddings API (text-embedding-3-small)
    - GeminiEmbeddingProvider:          Google Gemini embeddings API
    - SentenceTransformerEmbeddingProvider: local sentence-transformers model

Contract:
    embed(text)               → list[float]              ([] for blank text or on failure)
    embed_query(text)         → list[float]              (query side: clauses)
    embed_batch(texts, query) → dict[text, list[float]]  (blank texts omitted, [] on failure)
    model_name         → identifier of the embedding model

Providers never raise for provider failures: a clause or paragraph
left without a vector is skipped by the similarity scan and shows up
as a gap, which is the safe outcome for a compliance check.

Data Flow:
    Clause.text / Paragraph.text → EmbeddingProvider → embedding vector
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from regcheck.errors import ProviderError

logger = logging.getLogger("regcheck.embed.provider")


class EmbeddingProvider(ABC):
    """
    Abstract embedding provider.

    Subclasses implement `_embed_many(texts)` for a batch of non-blank
    texts; the base class handles blank input, batching and failures.

    Args:
        model_name: Embedding model identifier.
        batch_size: Texts per backend call.
    """

    def __init__(self, model_name: str, batch_size: int = 64):
        self.model_name = model_name
        self.batch_size = batch_size

    @abstractmethod
    def _embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed non-blank texts; one vector per text, in order."""
        ...

    def _prepare(self, texts: list[str], query: bool) -> list[str]:
        """Model-specific input formatting (e.g. e5 role prefixes)."""
        return texts

    def embed(self, text: Optional[str]) -> list[float]:
        if not text or not text.strip():
            return []
        return self.embed_batch([text]).get(text, [])

    def embed_query(self, text: Optional[str]) -> list[float]:
        """Embed one text on the query side (a clause being searched for)."""
        if not text or not text.strip():
            return []
        return self.embed_batch([text], query=True).get(text, [])

    def embed_batch(self, texts: list[str], query: bool = False) -> dict[str, list[float]]:
        """
        Embed texts, keyed by the original text.

        Args:
            texts: Texts to embed; blanks and duplicates are dropped.
            query: Embed as queries (clauses) rather than passages (paragraphs).
        """
        unique = list(dict.fromkeys(t for t in texts if t and t.strip()))
        out: dict[str, list[float]] = {}
        for i in range(0, len(unique), self.batch_size):
            batch = unique[i:i + self.batch_size]
            logger.debug(f"Embedding batch {i // self.batch_size + 1} ({len(batch)} texts)")
            try:
                vectors = self._embed_many(self._prepare(batch, query))
                if len(vectors) != len(batch):
                    raise ProviderError(
                        f"{self.model_name} returned {len(vectors)} vectors for {len(batch)} texts"
                    )
            except Exception as e:
                # Provider SDKs raise their own exception types
                logger.warning(f"Embedding failed for {len(batch)} texts ({self.model_name}): {e}")
                vectors = [[] for _ in batch]
            out.update(zip(batch, vectors))
        return out


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from the OpenAI API.

    Usage:
        embedder = OpenAIEmbeddingProvider(api_key="sk-...")
        vector = embedder.embed("The organisation shall appoint ...")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "text-embedding-3-small",
        batch_size: int = 64,
    ):
        super().__init__(model_name=model_name, batch_size=batch_size)
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ProviderError("OpenAI API key required for embeddings")
            try:
                from openai import OpenAI
            except ImportError:
                raise ProviderError(
                    "openai package required for API embeddings. "
                    "Install with: pip install openai"
                )
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _embed_many(self, texts: list[str]) -> list[list[float]]:
        response = self._get_client().embeddings.create(model=self.model_name, input=texts)
        return [list(item.embedding) for item in response.data]


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the Google Gemini API (google-genai)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "text-embedding-004",
        batch_size: int = 64,
    ):
        super().__init__(model_name=model_name, batch_size=batch_size)
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ProviderError("Gemini API key required for embeddings")
            try:
                from google import genai
            except ImportError:
                raise ProviderError(
                    "google-genai package required for Gemini embeddings. "
                    "Install with: pip install google-genai"
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _embed_many(self, texts: list[str]) -> list[list[float]]:
        result = self._get_client().models.embed_content(model=self.model_name, contents=texts)
        return [list(e.values) for e in result.embeddings]


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """
    Local embeddings with sentence-transformers (``pip install regcheck[full]``).

    e5 models get the role prefixes they were trained with: "query: " for
    clauses, "passage: " for paragraphs.
    """

    def __init__(
        self,
        model_name: str = "intfloat/e5-base-v2",
        batch_size: int = 64,
        device: str = "cpu",
    ):
        super().__init__(model_name=model_name, batch_size=batch_size)
        self.device = device
        self._model = None

    def _load_model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError:
                raise ProviderError(
                    "sentence-transformers required for local embeddings. "
                    "Install with: pip install regcheck[full]"
                )
            logger.info(f"Loading embedding model: {self.model_name} on {self.device}")
            self._model = SentenceTransformer(self.model_name, device=self.device)
        return self._model

    def _prepare(self, texts: list[str], query: bool) -> list[str]:
        if "e5" not in self.model_name.lower():
            return texts
        prefix = "query: " if query else "passage: "
        return [prefix + t for t in texts]

    def _embed_many(self, texts: list[str]) -> list[list[float]]:
        model = self._load_model()
        vectors = model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=len(texts) > 100,
            normalize_embeddings=True,
        )
        return np.asarray(vectors, dtype=np.float32).tolist()
