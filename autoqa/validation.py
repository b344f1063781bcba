"""
JSON extraction and schema validation for LLM responses.

Schema-constrained backends return a clean JSON document. Free-form backends
wrap it in reasoning blocks, markdown fences or commentary, so the outermost
brace span is extracted before parsing. Validation is all-or-nothing: a
suite with one malformed scenario is rejected, never repaired or filtered.
"""

from __future__ import annotations
import json
import re
from typing import Any, Optional
from pydantic import ValidationError
import logging

from .exceptions import MalformedResponseError
from .models import TestSuite, SCENARIO_FIELDS

logger = logging.getLogger(__name__)

# Reasoning models (deepseek-r1 and friends) emit these before the answer
THINK_BLOCK = re.compile(r'<think>.*?</think>', re.DOTALL | re.IGNORECASE)
BRACE_SPAN = re.compile(r'\{.*\}', re.DOTALL)


class ResponseParser:
    """Turns raw model output into a validated TestSuite."""

    def parse(self, response: str) -> TestSuite:
        """
        Parse and validate raw model output.

        Args:
            response: Raw text returned by a runtime

        Returns:
            Validated TestSuite

        Raises:
            MalformedResponseError: If no JSON object can be parsed, or the
                object does not match the suite schema
        """
        if response is None:
            raise MalformedResponseError("", "empty response")

        data = self._parse_json(response.strip())
        if data is None:
            extracted = self._extract_json_span(response)
            if extracted is not None:
                data = self._parse_json(extracted)

        if data is None:
            logger.warning(f"No JSON object found in model output: {response[:200]}...")
            raise MalformedResponseError(response, "no JSON object found")

        self._check_shape(data, response)

        try:
            suite = TestSuite.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Test suite validation failed: {e}")
            raise MalformedResponseError(response, str(e))

        logger.debug(f"Parsed suite '{suite.feature_name}' with {len(suite.scenarios)} scenarios")
        return suite

    def _parse_json(self, text: str) -> Optional[Any]:
        """Safely parse JSON, returning None on failure."""
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"JSON parse error: {e}")
            return None

    def _extract_json_span(self, text: str) -> Optional[str]:
        """Greedy span from the first '{' to the last '}', after dropping reasoning blocks."""
        text = THINK_BLOCK.sub('', text)
        match = BRACE_SPAN.search(text)
        if match:
            return match.group(0)
        return None

    def _check_shape(self, data: Any, response: str) -> None:
        """Explicit top-level and per-scenario shape checks, with readable reasons."""
        if not isinstance(data, dict):
            raise MalformedResponseError(response, "top level is not an object")
        if not isinstance(data.get("featureName"), str):
            raise MalformedResponseError(response, "featureName missing or not a string")
        scenarios = data.get("scenarios")
        if not isinstance(scenarios, list):
            raise MalformedResponseError(response, "scenarios missing or not a list")

        for index, scenario in enumerate(scenarios):
            if not isinstance(scenario, dict):
                raise MalformedResponseError(response, f"scenario {index} is not an object")
            missing = [f for f in SCENARIO_FIELDS if not isinstance(scenario.get(f), str)]
            if missing:
                raise MalformedResponseError(
                    response, f"scenario {index} missing string fields: {', '.join(missing)}"
                )


def parse_test_suite(response: str) -> TestSuite:
    """Convenience wrapper around ResponseParser.parse."""
    return ResponseParser().parse(response)
