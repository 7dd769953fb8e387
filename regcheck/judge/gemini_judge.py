"""
Gemini Judge
=============

Compliance adjudication with Google's Gemini API.

Uses structured output (JSON mime type + response schema), so the
model is constrained to the judgement shape; the response is still
validated by the shared parser before use.

Usage:
    judge = GeminiJudge(api_key="AIza...")
    outcomes = judge.judge_batch(items)
"""

from __future__ import annotations

import logging

from regcheck.errors import ProviderError
from regcheck.judge.base import BaseJudge
from regcheck.judge.prompts import (
    BATCH_RESPONSE_SCHEMA,
    JUDGEMENT_SCHEMA,
    SYSTEM_PROMPT,
    render_batch,
    render_single,
)
from regcheck.schemas.judgement import JudgeItem

logger = logging.getLogger("regcheck.judge.gemini_judge")


class GeminiJudge(BaseJudge):
    """
    Judge backed by google-genai.

    Args:
        api_key: Google AI API key.
        model: Gemini model name.
        temperature: Sampling temperature (0.0 for reproducible verdicts).
        max_output_tokens: Response token cap for batch calls.
        **kwargs: Timeouts and limits forwarded to BaseJudge.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        temperature: float = 0.0,
        max_output_tokens: int = 16000,
        **kwargs,
    ):
        super().__init__(model_name=model, **kwargs)
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = None

    def _get_client(self):
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ProviderError(
                    "Gemini API key required. Set REGCHECK_GEMINI_API_KEY or pass api_key=."
                )
            try:
                from google import genai
            except ImportError:
                raise ProviderError(
                    "google-genai package required for the Gemini judge. "
                    "Install with: pip install google-genai"
                )
            # http_options timeout is in milliseconds; bounds abandoned calls
            self._client = genai.Client(
                api_key=self.api_key,
                http_options={"timeout": int(self.batch_timeout_s * 1000)},
            )
        return self._client

    def _generate(self, prompt: str, schema: dict, max_tokens: int) -> str:
        client = self._get_client()
        response = client.models.generate_content(
            model=self.model,
            contents=prompt,
            config={
                "system_instruction": SYSTEM_PROMPT,
                "temperature": self.temperature,
                "max_output_tokens": max_tokens,
                "response_mime_type": "application/json",
                "response_schema": schema,
            },
        )
        return response.text or ""

    def _call_batch(self, items: list[JudgeItem]) -> str:
        prompt = render_batch(items, self.max_text_chars)
        logger.debug(f"Gemini batch call: {len(items)} requirements, {len(prompt)} chars")
        return self._generate(prompt, BATCH_RESPONSE_SCHEMA, self.max_output_tokens)

    def _call_single(self, item: JudgeItem) -> str:
        prompt = render_single(item, self.max_text_chars)
        return self._generate(
            prompt, JUDGEMENT_SCHEMA, max(1, self.max_output_tokens // 5)
        )
