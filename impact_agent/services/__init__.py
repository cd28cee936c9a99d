"""Business logic services package."""

from impact_agent.services.pipeline import ImpactPipeline, evaluate_gate
from impact_agent.services.report_compiler import ReportSender, render_report
from impact_agent.services.source_fetcher import SourceFetcher
from impact_agent.services.test_case_sync import TestCaseSynchronizer
from impact_agent.services.ticket_client import TicketClient
from impact_agent.services.ticket_commenter import TicketCommenter, detect_ticket_key

__all__ = [
    'ImpactPipeline',
    'evaluate_gate',
    'ReportSender',
    'render_report',
    'SourceFetcher',
    'TestCaseSynchronizer',
    'TicketClient',
    'TicketCommenter',
    'detect_ticket_key',
]
