"""
Ticket Commenter component.

Detects the ticket linked to a pull request and posts the analysis as a
rich-document comment. Every failure here is logged and swallowed: a missing
or broken ticket integration never aborts the pipeline.
"""

from typing import List, Optional

from impact_agent.config import MAX_COMMENT_TEST_CASES, TICKET_KEY_PATTERN, Settings
from impact_agent.errors import SoftUpstreamError, TicketValidationError
from impact_agent.models.analysis import ImpactAnalysis, TestCaseSet
from impact_agent.models.pr_event import TriggerEvent
from impact_agent.services.ticket_client import TicketClient, browse_url
from impact_agent.utils.logging import get_logger
from impact_agent.utils.rich_document import markdown_to_document

logger = get_logger(__name__)


def detect_ticket_key(title: str, branch: str, body: str) -> Optional[str]:
    """
    Find the first ticket key in the PR title, head branch or body.

    The fields are searched in that order; matching is case-insensitive and
    the key is returned upper-cased.
    """
    match = TICKET_KEY_PATTERN.search(f"{title or ''} {branch or ''} {body or ''}")
    return match.group(1).upper() if match else None


def compose_comment(event: TriggerEvent, analysis: ImpactAnalysis, test_cases: TestCaseSet) -> str:
    """
    Render the ticket comment body.

    Uses the subset understood by ``markdown_to_document``: bold spans and
    blank-line separated blocks.
    """
    header = "Post-Merge Analysis" if event.action == "closed" else "Impact Analysis"
    risk = analysis.risk
    details = analysis.technical_details

    lines: List[str] = [
        f"**🤖 {header} ({event.pr_label})**",
        f"**Risk Level:** {risk.score.value if risk.score else 'IDENTIFIED'}",
        "",
        "**📝 Summary**",
        risk.reasoning or "No summary provided.",
        "",
    ]

    alignment = analysis.requirements_alignment
    if alignment is not None:
        lines.append("**🎯 Requirements Alignment**")
        lines.append(f"- **Fully Addressed:** {'✅ Yes' if alignment.fully_addressed else '❌ No'}")
        lines.append(f"- **Alignment Score:** {alignment.alignment_score or 'N/A'}")
        if alignment.missing_requirements:
            lines.append(f"- **Missing Requirements:** {', '.join(alignment.missing_requirements)}")
        if alignment.additional_changes:
            lines.append(f"- **Additional Changes:** {', '.join(alignment.additional_changes)}")
        lines.append("")

    lines.extend([
        "**🔧 Technical Details**",
        f"- **API:** {details.api or 'N/A'}",
        f"- **Database:** {details.database or 'N/A'}",
        f"- **Logic:** {details.logic or 'N/A'}",
        f"- **UI:** {details.ui or 'N/A'}",
        f"- **Security:** {details.security or 'N/A'}",
        "",
    ])

    if test_cases.test_cases:
        lines.append("**🧪 Suggested Test Cases**")
        for case in test_cases.test_cases[:MAX_COMMENT_TEST_CASES]:
            lines.append(f"- [{case.priority.value}] **{case.title}**")
            if case.steps:
                lines.append("**Steps:**")
                lines.extend(f"   {number}. {step}" for number, step in enumerate(case.steps, start=1))
            lines.append(f"**Expected:** {case.expected_result or 'Not specified'}")
            lines.append("")

    lines.extend(["---", "Automated impact analysis"])
    return "\n".join(lines)


class TicketCommenter:
    """Posts impact analysis results on the linked ticket."""

    def __init__(self, settings: Settings, ticket_client: TicketClient):
        self.settings = settings
        self.ticket_client = ticket_client

    async def post_analysis(
        self,
        event: TriggerEvent,
        analysis: ImpactAnalysis,
        test_cases: TestCaseSet,
        ticket_key: Optional[str] = None,
    ) -> bool:
        """
        Post the analysis on the ticket referenced by the PR.

        Args:
            event: Triggering event
            analysis: Parsed impact analysis
            test_cases: Generated test cases
            ticket_key: Key resolved earlier in the pipeline; detected from
                the PR when None

        Returns:
            True if a comment was posted
        """
        key = ticket_key or detect_ticket_key(event.pr_title, event.head_ref, event.pr_body)
        if not key:
            logger.info("No ticket key found in PR title, branch or body; skipping ticket comment")
            return False

        if not self.settings.jira_configured:
            logger.info(f"Ticketing service not configured; skipping comment for {key}", extra={"ticket_key": key})
            return False

        try:
            target_url = browse_url(self.settings.jira_url, key)
            document = markdown_to_document(compose_comment(event, analysis, test_cases))
            await self.ticket_client.post_comment(target_url, document)
        except TicketValidationError as e:
            logger.error(f"Cannot post ticket comment: {e}", extra={"ticket_key": key})
            return False
        except SoftUpstreamError as e:
            logger.error(f"Ticket comment failed for {key}: {e}", extra={"ticket_key": key})
            return False
        except Exception as e:
            logger.error(f"Unexpected error posting ticket comment for {key}: {e}", extra={"ticket_key": key}, exc_info=True)
            return False

        logger.info(f"Posted analysis to ticket {key}", extra={"ticket_key": key})
        return True
