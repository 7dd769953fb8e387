"""
RegCheck Configuration System
==============================

Central configuration using Pydantic Settings. Supports:
- Environment variables (REGCHECK_ prefix, ``__`` for nested fields)
- .env file loading
- YAML config file overrides

Only operational knobs live here (worker pools, timeouts, model names,
output locations). Similarity thresholds are fixed constants in
``regcheck.thresholds`` and are deliberately not configurable.

The config produces a deterministic hash for reproducibility tracking.
Every analysis run is stamped with this hash.

Usage:
    from regcheck.config import get_config
    cfg = get_config()                        # loads from env / .env
    cfg = get_config("configs/audit.yaml")    # loads with YAML overrides
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from regcheck import thresholds
from regcheck.utils import compute_hash


# ── Judge backends ─────────────────────────────────────────────────
class JudgeProvider(str, Enum):
    """
    Which adjudication backend handles AMBIGUOUS clauses.

    - GEMINI: Google Gemini with a JSON response schema
    - OPENAI: OpenAI chat completions
    - NONE:   No judge; ambiguous clauses keep their cosine-only result
    """
    GEMINI = "gemini"
    OPENAI = "openai"
    NONE = "none"


# ── Sub-configs ────────────────────────────────────────────────────
class SimilarityConfig(BaseModel):
    """Configuration for the cosine similarity scan."""
    num_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker threads for the per-clause scan (default: os.cpu_count())"
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model used when clauses/paragraphs arrive without vectors"
    )
    embedding_mode: str = Field(
        default="lite",
        description="'lite' (OpenAI API), 'gemini' (Gemini API) or 'full' (local sentence-transformers)"
    )


class TriageConfig(BaseModel):
    """Configuration for similarity-band triage and judge dispatch."""
    batch_size: int = Field(
        default=thresholds.JUDGE_BATCH_SIZE,
        ge=1, le=thresholds.JUDGE_BATCH_SIZE,
        description="Ambiguous clauses per judge call"
    )
    max_concurrent_batches: int = Field(
        default=4,
        ge=1,
        description="Judge batches in flight at the same time"
    )


class JudgeConfig(BaseModel):
    """Configuration for the external adjudication service."""
    provider: JudgeProvider = Field(
        default=JudgeProvider.GEMINI,
        description="Judge backend: 'gemini', 'openai' or 'none'"
    )
    batch_timeout_s: float = Field(default=60.0, gt=0, description="Timeout per batch call")
    single_timeout_s: float = Field(default=30.0, gt=0, description="Timeout per single-clause call")
    max_text_chars: int = Field(
        default=400,
        description="Clause/paragraph text is truncated to this many characters in prompts"
    )
    temperature: float = Field(default=0.0, description="LLM temperature for adjudication")
    max_output_tokens: int = Field(default=16000, description="Response token cap for batch calls")


class ReportConfig(BaseModel):
    """Configuration for report generation."""
    question_seed: int = Field(
        default=42,
        description="Seed for auditor question template selection (reproducible reports)"
    )


# ── Main Config ────────────────────────────────────────────────────
class RegCheckConfig(BaseSettings):
    """
    Root configuration for the RegCheck system.

    Loads from environment variables (REGCHECK_ prefix) and .env file.
    Can be extended with YAML overrides via `get_config(yaml_path)`.

    Example:
        export REGCHECK_JUDGE__PROVIDER=openai
        export REGCHECK_OPENAI_API_KEY=sk-...
    """
    model_config = SettingsConfigDict(
        env_prefix="REGCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ── Top-level settings ─────────────────────────────────────────
    output_dir: Path = Field(default=Path("./outputs"), description="Run artifact directory")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")

    # ── OpenAI API ─────────────────────────────────────────────────
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model for adjudication")

    # ── Google Gemini API ──────────────────────────────────────────
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model for adjudication")

    # ── Sub-configs ────────────────────────────────────────────────
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    triage: TriageConfig = Field(default_factory=TriageConfig)
    judge: JudgeConfig = Field(default_factory=JudgeConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    def config_hash(self) -> str:
        """
        Produce a deterministic SHA-256 hash of the configuration.

        API keys are excluded so the hash can be shared in reports.
        """
        config_dict = self.model_dump(
            mode="json", exclude={"openai_api_key", "gemini_api_key"}
        )
        return compute_hash(config_dict)

    def ensure_dirs(self) -> None:
        """Create the output directory if it doesn't exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)


# ── Config Loading ─────────────────────────────────────────────────
def get_config(yaml_path: Optional[str] = None) -> RegCheckConfig:
    """
    Load RegCheck configuration.

    Args:
        yaml_path: Optional path to a YAML config file for overrides.

    Returns:
        Fully resolved RegCheckConfig instance.
    """
    if yaml_path:
        import yaml
        with open(yaml_path) as f:
            overrides = yaml.safe_load(f) or {}
        return RegCheckConfig(**overrides)
    return RegCheckConfig()
