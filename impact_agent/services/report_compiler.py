"""
Report Compiler component.

Renders the analysis and test cases into an HTML email and delivers it over
SMTP. Rendering is pure; every field has a display default so that no empty
or ``None`` value reaches the markup.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from html import escape
from typing import List

from impact_agent.config import Settings
from impact_agent.models.analysis import ImpactAnalysis, RiskLevel, TestCaseSet
from impact_agent.models.pr_event import TriggerEvent
from impact_agent.utils.logging import get_logger

logger = get_logger(__name__)

NO_IMPACT = "No significant impact detected."
NO_DETAILS = "No details provided."

RISK_COLORS = {
    RiskLevel.CRITICAL: "#8b0000",
    RiskLevel.HIGH: "#d9534f",
    RiskLevel.MEDIUM: "#f0ad4e",
    RiskLevel.LOW: "#5cb85c",
}
UNKNOWN_RISK_COLOR = "#6c757d"


def _text(value, default: str) -> str:
    """Escape ``value`` for HTML, or ``default`` when it is empty."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return escape(default)
    return escape(str(value))


def risk_label(analysis: ImpactAnalysis) -> str:
    return analysis.risk.score.value if analysis.risk.score else "UNKNOWN"


def build_subject(event: TriggerEvent, analysis: ImpactAnalysis) -> str:
    repository = event.repo_full_name or event.repo_name or "repository"
    return f"[{risk_label(analysis)}] Impact Report: {repository} {event.pr_label}"


def _technical_rows(analysis: ImpactAnalysis) -> str:
    details = analysis.technical_details
    rows = [
        ("API", details.api),
        ("Database", details.database),
        ("Logic", details.logic),
        ("UI", details.ui),
        ("Security", details.security),
    ]
    return "\n".join(
        f'<tr><td style="padding:6px;font-weight:bold;">{name}</td>'
        f'<td style="padding:6px;">{_text(value, NO_DETAILS)}</td></tr>'
        for name, value in rows
    )


def _requirements_section(analysis: ImpactAnalysis) -> str:
    alignment = analysis.requirements_alignment
    if alignment is None:
        return ""

    items: List[str] = [
        f"<li><b>Fully addressed:</b> {'Yes' if alignment.fully_addressed else 'No'}</li>",
        f"<li><b>Alignment score:</b> {_text(alignment.alignment_score, 'N/A')}</li>",
    ]
    if alignment.missing_requirements:
        items.append(
            "<li><b>Missing requirements:</b> "
            + escape(", ".join(alignment.missing_requirements)) + "</li>"
        )
    if alignment.additional_changes:
        items.append(
            "<li><b>Additional changes:</b> "
            + escape(", ".join(alignment.additional_changes)) + "</li>"
        )
    return "<h3>Requirements Alignment</h3>\n<ul>" + "".join(items) + "</ul>"


def _test_case_section(test_cases: TestCaseSet) -> str:
    if not test_cases.test_cases:
        return "<p>No test cases were generated for this change.</p>"

    blocks = []
    for number, case in enumerate(test_cases.test_cases, start=1):
        steps = "".join(f"<li>{escape(step)}</li>" for step in case.steps) or f"<li>{escape(NO_DETAILS)}</li>"
        blocks.append(
            '<div style="border:1px solid #ddd;border-radius:4px;padding:8px;margin-bottom:8px;">'
            f"<b>{number}. [{case.priority.value}] {_text(case.title, 'Untitled test case')}</b>"
            f"<ol>{steps}</ol>"
            f"<p><b>Expected:</b> {_text(case.expected_result, NO_DETAILS)}</p>"
            "</div>"
        )
    return "\n".join(blocks)


def render_report(
    settings: Settings,
    event: TriggerEvent,
    analysis: ImpactAnalysis,
    test_cases: TestCaseSet,
) -> str:
    """
    Render the HTML email body.

    Args:
        settings: Application settings (product name)
        event: Triggering event (PR metadata)
        analysis: Parsed impact analysis
        test_cases: Generated test cases

    Returns:
        HTML document
    """
    color = RISK_COLORS.get(analysis.risk.score, UNKNOWN_RISK_COLOR)
    key_changes = "".join(f"<li>{escape(change)}</li>" for change in analysis.key_changes if change)
    key_changes_html = f"<ul>{key_changes}</ul>" if key_changes else f"<p>{escape(NO_IMPACT)}</p>"
    pr_link = (
        f'<a href="{escape(event.pr_url, quote=True)}">{event.pr_label}</a>'
        if event.pr_url else event.pr_label
    )
    summary = test_cases.summary

    return f"""<!DOCTYPE html>
<html>
<body style="font-family:Arial,sans-serif;color:#333;">
<h2>{escape(settings.report_product_name)}: Impact Report</h2>
<p>
<b>Repository:</b> {_text(event.repo_full_name, 'Unknown repository')}<br>
<b>Pull request:</b> {pr_link} {_text(event.pr_title, 'Untitled')}<br>
<b>Branches:</b> {_text(event.head_ref, 'unknown')} &rarr; {_text(event.base_ref, 'unknown')}
</p>
<p><b>Risk level:</b>
<span style="background:{color};color:#fff;padding:2px 8px;border-radius:3px;">{escape(risk_label(analysis))}</span></p>
<h3>Summary</h3>
<p>{_text(analysis.risk.reasoning, NO_IMPACT)}</p>
<h3>Key Changes</h3>
{key_changes_html}
{_requirements_section(analysis)}
<h3>Technical Details</h3>
<table style="border-collapse:collapse;">
{_technical_rows(analysis)}
</table>
<h3>Test Cases ({len(test_cases.test_cases)})</h3>
{f'<p>{escape(summary)}</p>' if summary else ''}
{_test_case_section(test_cases)}
<hr>
<p style="font-size:12px;color:#888;">Generated automatically by {escape(settings.report_product_name)}.</p>
</body>
</html>
"""


class ReportSender:
    """Delivers the HTML report by email."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _build_message(self, event: TriggerEvent, analysis: ImpactAnalysis, test_cases: TestCaseSet) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = build_subject(event, analysis)
        message["From"] = self.settings.email_from or self.settings.email_user
        message["To"] = self.settings.email_to
        message.set_content(
            f"Impact report for {event.repo_full_name} {event.pr_label}: "
            f"risk {risk_label(analysis)}. View this message in an HTML-capable client."
        )
        message.add_alternative(render_report(self.settings, event, analysis, test_cases), subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        host = self.settings.email_host
        port = self.settings.email_port

        if port == 465:
            with smtplib.SMTP_SSL(host, port, timeout=self.settings.http_timeout_seconds) as smtp:
                smtp.login(self.settings.email_user, self.settings.email_password)
                smtp.send_message(message)
        else:
            with smtplib.SMTP(host, port, timeout=self.settings.http_timeout_seconds) as smtp:
                smtp.starttls()
                smtp.login(self.settings.email_user, self.settings.email_password)
                smtp.send_message(message)

    async def send(self, event: TriggerEvent, analysis: ImpactAnalysis, test_cases: TestCaseSet) -> bool:
        """
        Render and send the report.

        Returns:
            True if the email was handed to the SMTP server
        """
        if not self.settings.email_configured:
            logger.info("Email delivery not configured; skipping report")
            return False

        message = self._build_message(event, analysis, test_cases)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send impact report email: {e}", exc_info=True)
            return False

        logger.info(f"Impact report sent to {self.settings.email_to}")
        return True
