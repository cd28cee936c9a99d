"""Language-model analysis: prompts, requests and response parsing."""

from impact_agent.analyzers.impact_analyzer import ImpactAnalyzer
from impact_agent.analyzers.result_parser import parse_impact_analysis, parse_test_cases

__all__ = ["ImpactAnalyzer", "parse_impact_analysis", "parse_test_cases"]
