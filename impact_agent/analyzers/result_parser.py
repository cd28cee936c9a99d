"""
Strict JSON contract parsing for language-model responses.

A response that is not a JSON object, or whose fields have the wrong types,
raises ParseError. Missing fields fall back to the model defaults:

- risk.score: None (rendered as "IDENTIFIED" / "UNKNOWN"), risk.reasoning: ""
- keyChanges: [], requirementsAlignment: None
- technicalDetails.*: "" (rendered as "N/A" / "No details provided.")
- summary: "", testCases: []
- test case title: "Untitled test case", priority: MEDIUM
"""

import json
from typing import Any, Dict

from pydantic import ValidationError

from impact_agent.errors import ParseError
from impact_agent.models.analysis import ImpactAnalysis, TestCaseSet
from impact_agent.utils.logging import get_logger

logger = get_logger(__name__)


def _strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    if "```json" in content:
        start = content.find("```json") + 7
        end = content.find("```", start)
        return content[start:end if end != -1 else None].strip()
    if content.startswith("```"):
        start = content.find("```") + 3
        end = content.find("```", start)
        return content[start:end if end != -1 else None].strip()
    return content


def load_json_object(content: str, what: str) -> Dict[str, Any]:
    """
    Decode a model response into a JSON object.

    Args:
        content: Raw response text
        what: Name of the expected document, used in error messages

    Raises:
        ParseError: If the text is not a JSON object
    """
    text = _strip_code_fence((content or "").strip())
    if not text:
        raise ParseError(f"Empty {what} response from language model")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {what} response: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object for {what}, got {type(data).__name__}")

    return data


def parse_impact_analysis(content: str) -> ImpactAnalysis:
    """Parse and validate the impact analysis response."""
    data = load_json_object(content, "impact analysis")
    try:
        analysis = ImpactAnalysis.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Impact analysis violates the expected shape: {e}") from e

    if analysis.risk.score is None:
        logger.warning("Impact analysis has no recognised risk score")
    return analysis


def parse_test_cases(content: str) -> TestCaseSet:
    """Parse and validate the test case response."""
    data = load_json_object(content, "test cases")
    try:
        return TestCaseSet.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Test cases violate the expected shape: {e}") from e
