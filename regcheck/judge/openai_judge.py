"""
OpenAI Judge
=============

Compliance adjudication through OpenAI chat completions. Any
OpenAI-compatible endpoint works via `base_url`.

Usage:
    judge = OpenAIJudge(api_key="sk-...", model="gpt-4o-mini")
    outcome = judge.judge(item)
"""

from __future__ import annotations

import logging
from typing import Optional

from regcheck.errors import ProviderError
from regcheck.judge.base import BaseJudge
from regcheck.judge.prompts import SYSTEM_PROMPT, render_batch, render_single
from regcheck.schemas.judgement import JudgeItem

logger = logging.getLogger("regcheck.judge.openai_judge")


class OpenAIJudge(BaseJudge):
    """
    Judge backed by the openai SDK.

    Args:
        api_key: OpenAI API key.
        model: Chat model name.
        base_url: Optional OpenAI-compatible endpoint.
        temperature: Sampling temperature.
        max_output_tokens: Response token cap for batch calls.
        **kwargs: Timeouts and limits forwarded to BaseJudge.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = 16000,
        **kwargs,
    ):
        super().__init__(model_name=model, **kwargs)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._client = None

    def _get_client(self):
        """Lazy-initialize the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise ProviderError(
                    "OpenAI API key required. Set REGCHECK_OPENAI_API_KEY or pass api_key=."
                )
            try:
                from openai import OpenAI
            except ImportError:
                raise ProviderError(
                    "openai package required for the OpenAI judge. "
                    "Install with: pip install openai"
                )
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.batch_timeout_s,
                max_retries=0,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _complete(self, prompt: str, max_tokens: int) -> str:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""

    def _call_batch(self, items: list[JudgeItem]) -> str:
        prompt = render_batch(items, self.max_text_chars)
        logger.debug(f"OpenAI batch call: {len(items)} requirements, {len(prompt)} chars")
        return self._complete(prompt, self.max_output_tokens)

    def _call_single(self, item: JudgeItem) -> str:
        return self._complete(
            render_single(item, self.max_text_chars), max(1, self.max_output_tokens // 5)
        )
