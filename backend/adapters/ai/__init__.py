# AI Adapters
# Anthropic integration

from .anthropic_adapter import (
    AnthropicAnalysisService,
    build_analysis_prompt,
    parse_analysis_response,
)

__all__ = [
    "AnthropicAnalysisService",
    "build_analysis_prompt",
    "parse_analysis_response",
]
