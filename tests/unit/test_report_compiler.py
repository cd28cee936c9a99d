"""
Unit tests for the HTML report compiler and email delivery.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from impact_agent.models.analysis import ImpactAnalysis, TestCaseSet
from impact_agent.models.pr_event import TriggerEvent
from impact_agent.services.report_compiler import (
    NO_DETAILS,
    NO_IMPACT,
    ReportSender,
    build_subject,
    render_report,
)


@pytest.fixture
def analysis():
    return ImpactAnalysis.model_validate({
        "risk": {"score": "HIGH", "reasoning": "Alters <script> handling & escaping"},
        "keyChanges": ["Sanitizer rewrite"],
        "technicalDetails": {"Security Impact": "XSS surface changed"},
    })


@pytest.fixture
def cases():
    return TestCaseSet.model_validate({
        "summary": "Sanitizer checks",
        "testCases": [
            {"title": "Reject script tags", "steps": ["Submit <script>"], "expectedResult": "Input rejected", "priority": "HIGH"},
        ],
    })


def test_render_report_content(settings, merged_event, analysis, cases):
    html = render_report(settings, merged_event, analysis, cases)

    assert "Impact Agent: Impact Report" in html
    assert "org/repo" in html
    assert 'href="https://github.com/org/repo/pull/1"' in html
    assert "HIGH" in html
    assert "Sanitizer rewrite" in html
    assert "XSS surface changed" in html
    assert "Reject script tags" in html
    assert "Test Cases (1)" in html


def test_render_report_escapes_model_output(settings, merged_event, analysis, cases):
    html = render_report(settings, merged_event, analysis, cases)

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&amp; escaping" in html


def test_render_report_defaults_for_empty_analysis(settings, merged_payload):
    merged_payload["pull_request"]["title"] = None
    merged_payload["pull_request"]["html_url"] = None
    event = TriggerEvent.from_payload(merged_payload)

    html = render_report(settings, event, ImpactAnalysis(), TestCaseSet())

    assert NO_IMPACT in html
    assert NO_DETAILS in html
    assert "UNKNOWN" in html
    assert "No test cases were generated" in html
    assert "None" not in html
    assert "undefined" not in html


def test_render_report_requirements_section(settings, merged_event):
    analysis = ImpactAnalysis.model_validate({
        "requirementsAlignment": {"fullyAddressed": False, "missingRequirements": ["Audit log"]},
    })

    html = render_report(settings, merged_event, analysis, TestCaseSet())

    assert "Requirements Alignment" in html
    assert "Audit log" in html
    assert "<b>Alignment score:</b> N/A" in html


def test_build_subject(merged_event, analysis):
    assert build_subject(merged_event, analysis) == "[HIGH] Impact Report: org/repo PR #1"
    assert build_subject(merged_event, ImpactAnalysis()).startswith("[UNKNOWN]")


@pytest.mark.asyncio
async def test_send_is_noop_without_configuration(settings, merged_event, analysis, cases):
    sender = ReportSender(settings)

    with patch("impact_agent.services.report_compiler.smtplib.SMTP") as mock_smtp:
        sent = await sender.send(merged_event, analysis, cases)

    assert sent is False
    mock_smtp.assert_not_called()


@pytest.mark.asyncio
async def test_send_uses_starttls(full_settings, merged_event, analysis, cases):
    sender = ReportSender(full_settings)
    smtp = MagicMock()

    with patch("impact_agent.services.report_compiler.smtplib.SMTP") as mock_smtp:
        mock_smtp.return_value.__enter__.return_value = smtp
        sent = await sender.send(merged_event, analysis, cases)

    assert sent is True
    mock_smtp.assert_called_once_with("smtp.acme.test", 587, timeout=30.0)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("bot@acme.test", "secret")
    message = smtp.send_message.call_args.args[0]
    assert message["Subject"] == "[HIGH] Impact Report: org/repo PR #1"
    assert message["To"] == "team@acme.test"
    assert message["From"] == "bot@acme.test"
    assert message.get_body(preferencelist=("html",)) is not None


@pytest.mark.asyncio
async def test_send_uses_ssl_on_port_465(settings_factory, merged_event, analysis, cases):
    config = settings_factory(
        email_host="smtp.acme.test",
        email_port=465,
        email_user="bot@acme.test",
        email_password="secret",
        email_to="team@acme.test",
        email_from="reports@acme.test",
    )
    sender = ReportSender(config)
    smtp = MagicMock()

    with patch("impact_agent.services.report_compiler.smtplib.SMTP_SSL") as mock_smtp_ssl:
        mock_smtp_ssl.return_value.__enter__.return_value = smtp
        sent = await sender.send(merged_event, analysis, cases)

    assert sent is True
    smtp.starttls.assert_not_called()
    assert smtp.send_message.call_args.args[0]["From"] == "reports@acme.test"


@pytest.mark.asyncio
async def test_send_failure_returns_false(full_settings, merged_event, analysis, cases):
    sender = ReportSender(full_settings)

    with patch("impact_agent.services.report_compiler.smtplib.SMTP") as mock_smtp:
        mock_smtp.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")
        sent = await sender.send(merged_event, analysis, cases)

    assert sent is False


def test_missing_pr_number_is_not_rendered_as_null(settings, merged_payload, analysis, cases):
    del merged_payload["pull_request"]["number"]
    event = TriggerEvent.from_payload(merged_payload)

    subject = build_subject(event, analysis)
    html = render_report(settings, event, analysis, cases)

    assert subject == "[HIGH] Impact Report: org/repo PR #N/A"
    assert "None" not in subject
    assert "None" not in html
    assert "PR #N/A" in html
