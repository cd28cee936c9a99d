"""Data models for the pull request impact agent."""

from .analysis import (
    ImpactAnalysis,
    RequirementsAlignment,
    RiskAssessment,
    RiskLevel,
    TechnicalDetails,
    TestCase,
    TestCaseSet,
    TestPriority,
)
from .api_response import PipelineResult, SyncedTestCase, WebhookResponse
from .document import Mark, Paragraph, RichDocument, TextRun
from .pr_event import TriggerEvent
from .source import DiffBundle, EntryKind, TreeEntry
from .ticket import TicketContext

__all__ = [
    # PR event models
    "TriggerEvent",
    # Source models
    "DiffBundle",
    "EntryKind",
    "TreeEntry",
    # Ticket models
    "TicketContext",
    # Analysis models
    "RiskLevel",
    "RiskAssessment",
    "RequirementsAlignment",
    "TechnicalDetails",
    "ImpactAnalysis",
    "TestPriority",
    "TestCase",
    "TestCaseSet",
    # Document models
    "Mark",
    "TextRun",
    "Paragraph",
    "RichDocument",
    # API response models
    "PipelineResult",
    "SyncedTestCase",
    "WebhookResponse",
]
