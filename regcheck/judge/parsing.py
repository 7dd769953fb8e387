"""
Judge Response Parsing
=======================

Turns raw provider text into validated ComplianceJudgement objects.

LLM output is messy: it may arrive wrapped in ```json fences, with a
sentence of prose around it, or with fields the schema doesn't know.
Parsing is therefore two-step:

1. Extract a JSON value (fences stripped, outermost array/object located)
2. Validate every entry against ComplianceJudgement with pydantic

A response that isn't JSON at all raises SchemaValidationError. A
response that is JSON but partly wrong degrades per entry: invalid
entries and ids outside the request are dropped and logged.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from pydantic import ValidationError

from regcheck.errors import SchemaValidationError
from regcheck.schemas.judgement import ComplianceJudgement
from regcheck.utils import strip_code_fences

logger = logging.getLogger("regcheck.judge.parsing")


def extract_json(text: str | None) -> Any:
    """
    Extract the JSON value from an LLM response.

    Raises:
        SchemaValidationError: if no JSON value can be recovered.
    """
    if not text or not text.strip():
        raise SchemaValidationError("Empty judge response")

    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Prose around the payload: take the outermost array or object
    starts = [i for i in (cleaned.find("["), cleaned.find("{")) if i >= 0]
    end = max(cleaned.rfind("]"), cleaned.rfind("}")) + 1
    if starts and end > min(starts):
        try:
            return json.loads(cleaned[min(starts):end])
        except json.JSONDecodeError:
            pass

    raise SchemaValidationError(f"Unparsable judge response: {cleaned[:200]!r}")


def parse_batch_response(
    text: str | None, expected_ids: Iterable[str]
) -> dict[str, ComplianceJudgement]:
    """
    Parse a batch response into judgements keyed by requirement id.

    Args:
        text: Raw provider output; must hold a JSON array.
        expected_ids: Requirement ids sent in the batch.

    Returns:
        Valid judgements for requested ids. Ids absent from the mapping
        were not (validly) answered.

    Raises:
        SchemaValidationError: if the payload is not a JSON array.
    """
    data = extract_json(text)
    if not isinstance(data, list):
        raise SchemaValidationError(
            f"Expected a JSON array of judgements, got {type(data).__name__}"
        )

    expected = set(expected_ids)
    judgements: dict[str, ComplianceJudgement] = {}
    for position, entry in enumerate(data):
        try:
            judgement = ComplianceJudgement.model_validate(entry)
        except ValidationError as e:
            logger.warning(
                f"Dropping judgement #{position}: {e.error_count()} validation error(s)"
            )
            continue

        rid = judgement.requirement_id
        if rid not in expected:
            logger.warning(f"Dropping judgement for unrequested requirement {rid!r}")
            continue
        if rid in judgements:
            logger.debug(f"Duplicate judgement for {rid}; keeping the first")
            continue
        judgements[rid] = judgement

    return judgements


def parse_single_response(text: str | None, requirement_id: str) -> ComplianceJudgement:
    """
    Parse a single-requirement response (object or one-element array).

    The requirement id is taken from the request: the judge was asked
    about exactly one requirement, so a mismatched echo is corrected.

    Raises:
        SchemaValidationError: if the payload is missing or invalid.
    """
    data = extract_json(text)
    if isinstance(data, list):
        if not data:
            raise SchemaValidationError("Empty judgement array")
        data = data[0]
    if not isinstance(data, dict):
        raise SchemaValidationError(
            f"Expected a judgement object, got {type(data).__name__}"
        )

    echoed = data.get("requirement_id")
    if echoed != requirement_id:
        logger.debug(f"Judge echoed requirement id {echoed!r}, expected {requirement_id!r}")
    try:
        return ComplianceJudgement.model_validate({**data, "requirement_id": requirement_id})
    except ValidationError as e:
        raise SchemaValidationError(
            f"Invalid judgement for {requirement_id}: {e.error_count()} validation error(s)"
        ) from e
