"""
RegCheck Judge
===============

External adjudication of AMBIGUOUS clauses.

Components:
    - base.py:          Abstract judge, timeouts, per-clause outcome values
    - parsing.py:       JSON extraction + pydantic validation of responses
    - prompts.py:       Prompt templates and structured-output schema
    - gemini_judge.py:  Google Gemini backend (google-genai)
    - openai_judge.py:  OpenAI chat completions backend
"""
