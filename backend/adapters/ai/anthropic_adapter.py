"""
Anthropic Claude adapter for AI carbon-footprint analysis.
"""

import json
import logging
from typing import Any, Optional

import anthropic

from core.exceptions import OracleError
from core.interfaces.services import AnalysisOracle
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a sustainability analyst. You estimate corporate carbon footprints "
    "from operational data and answer with a single valid JSON object only."
)

RESULT_SCHEMA = """{
  "predicted_footprint_tCO2e": 0,
  "explanation_of_problems": "string",
  "solution_plan": [
    {
      "area": "string",
      "action": "string",
      "reduction_estimate_tCO2e": 0
    }
  ],
  "breakdown_chart_data": [
    { "source": "string", "tCO2e": 0 }
  ]
}"""


def build_analysis_prompt(analysis_data: Any) -> str:
    """Render the analysis prompt for one operational-data payload."""
    operational_data = json.dumps(analysis_data, default=str, ensure_ascii=False)
    return f"""Analyze the following operational data for a company to predict its total annual carbon footprint in metric tons of CO2e. Then, provide actionable solutions and explain the problems. The output MUST be a valid JSON object matching the following structure. Do not include any text outside the JSON block.

Operational Data: {operational_data}

Field notes:
- predicted_footprint_tCO2e: a single numeric value for total CO2e
- explanation_of_problems: the current high emission areas
- solution_plan: actionable steps (area e.g. Logistics, Energy, Supply Chain)
- breakdown_chart_data: at least 3 source entries (e.g. Electricity, Travel, Freight)

JSON Schema:
{RESULT_SCHEMA}"""


def parse_analysis_response(response_text: Optional[str]) -> dict[str, Any]:
    """
    Parse the model's text output into a JSON object.

    Raises:
        OracleError: If the text is empty, not JSON, or not a JSON object
    """
    if not response_text or not response_text.strip():
        raise OracleError("AI returned empty response")

    # Extract JSON from response (handle markdown code blocks)
    if "```json" in response_text:
        response_text = response_text.split("```json")[1].split("```")[0]
    elif "```" in response_text:
        response_text = response_text.split("```")[1].split("```")[0]

    try:
        data = json.loads(response_text.strip())
    except json.JSONDecodeError as e:
        raise OracleError(f"AI returned malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise OracleError("AI returned JSON that is not an object")
    return data


class AnthropicAnalysisService(AnalysisOracle):
    """AI analysis service using Anthropic Claude."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        api_key = api_key or settings.anthropic_api_key
        if client is not None:
            self._client = client
        elif api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=api_key,
                timeout=timeout or settings.oracle_timeout_seconds,
                max_retries=0,
            )
        else:
            self._client = None
            logger.warning(
                "Anthropic API key not configured. Set ANTHROPIC_API_KEY to run real analyses."
            )
        self._model = model or settings.anthropic_model
        self._max_tokens = max_tokens or settings.anthropic_max_tokens

    @property
    def model(self) -> str:
        return self._model

    async def analyze(self, analysis_data: Any) -> dict[str, Any]:
        """
        Predict a carbon footprint from operational data.

        Args:
            analysis_data: Operational data submitted by the user

        Returns:
            Parsed JSON analysis result

        Raises:
            OracleError: On API failure, empty output or malformed JSON
        """
        if not self._client:
            if settings.is_development:
                # Return mock data for development
                return self._mock_analysis()
            raise OracleError("Anthropic API key not configured")

        prompt = build_analysis_prompt(analysis_data)

        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error("Anthropic API error: %s", e)
            raise OracleError(f"Anthropic API error: {type(e).__name__}") from e

        if not message.content:
            raise OracleError("AI returned empty response")

        response_text = getattr(message.content[0], "text", None)
        result = parse_analysis_response(response_text)
        logger.debug("Analysis completed (%d top-level keys)", len(result))
        return result

    @staticmethod
    def _mock_analysis() -> dict[str, Any]:
        return {
            "predicted_footprint_tCO2e": 1250.0,
            "explanation_of_problems": (
                "This is a mock analysis for development. "
                "Configure ANTHROPIC_API_KEY to use real AI."
            ),
            "solution_plan": [
                {
                    "area": "Energy",
                    "action": "Switch office electricity to a renewable tariff",
                    "reduction_estimate_tCO2e": 300.0,
                }
            ],
            "breakdown_chart_data": [
                {"source": "Electricity", "tCO2e": 600.0},
                {"source": "Travel", "tCO2e": 350.0},
                {"source": "Freight", "tCO2e": 300.0},
            ],
        }
