"""
Judge Prompts
==============

Prompt templates and the response schema shared by all judge backends.
The request payload is rendered as JSON (JudgeItem.to_request) so the
model sees exactly the wire format it has to answer to.
"""

from __future__ import annotations

import json

from regcheck.schemas.judgement import JudgeItem

SYSTEM_PROMPT = (
    "You are an aviation maintenance compliance auditor. You assess whether "
    "paragraphs of an organisation's procedure manual satisfy regulatory "
    "requirements. Respond only with JSON."
)

_RULES = """Compliance rules:
- "full": the candidate paragraphs address every element of the requirement.
- "partial": some elements are addressed, others are missing or vague.
- "non": the candidates do not address the requirement.

For each requirement cite the paragraphs you relied on as evidence,
list the missing elements, give a finding level ("Level 1" for a
significant non-compliance, "Level 2" for a minor one, "" when compliant)
and recommended actions."""

_ENTRY_FORMAT = """{{"requirement_id": "<id>", "evidence": [{{"moe_paragraph_id": "<paragraph id>", "relevant_excerpt": "<quote>", "similarity_score": <0.0-1.0>}}], "compliance_status": "<full|partial|non>", "justification": "<one or two sentences>", "missing_elements": ["..."], "finding_level": "<level>", "recommended_actions": ["..."]}}"""

BATCH_PROMPT = """Assess each requirement below against its candidate paragraphs.

""" + _RULES + """

REQUESTS:
{requests}

Respond with ONLY a JSON array, one object per requirement, in any order:
[""" + _ENTRY_FORMAT + """, ...]"""

SINGLE_PROMPT = """Assess the requirement below against its candidate paragraphs.

""" + _RULES + """

REQUEST:
{request}

Respond with ONLY a JSON object:
""" + _ENTRY_FORMAT


def render_batch(items: list[JudgeItem], max_text_chars: int) -> str:
    payload = {"items": [item.to_request(max_text_chars) for item in items]}
    return BATCH_PROMPT.format(requests=json.dumps(payload, indent=2, ensure_ascii=False))


def render_single(item: JudgeItem, max_text_chars: int) -> str:
    payload = item.to_request(max_text_chars)
    return SINGLE_PROMPT.format(request=json.dumps(payload, indent=2, ensure_ascii=False))


# OpenAPI-subset schema accepted by Gemini's structured output mode
JUDGEMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "requirement_id": {"type": "STRING"},
        "evidence": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "moe_paragraph_id": {"type": "STRING"},
                    "relevant_excerpt": {"type": "STRING"},
                    "similarity_score": {"type": "NUMBER"},
                },
                "required": ["moe_paragraph_id"],
            },
        },
        "compliance_status": {"type": "STRING", "enum": ["full", "partial", "non"]},
        "justification": {"type": "STRING"},
        "missing_elements": {"type": "ARRAY", "items": {"type": "STRING"}},
        "finding_level": {"type": "STRING"},
        "recommended_actions": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["requirement_id", "compliance_status"],
}

BATCH_RESPONSE_SCHEMA = {"type": "ARRAY", "items": JUDGEMENT_SCHEMA}
