"""
Unit tests for the ticketing service client.
"""

import base64
import json

import httpx
import pytest

from impact_agent.errors import SoftUpstreamError, TicketValidationError
from impact_agent.services.ticket_client import (
    TicketClient,
    browse_url,
    extract_acceptance_criteria,
    extract_description,
    parse_ticket_url,
)
from impact_agent.utils.rich_document import markdown_to_document

SITE = "https://acme.atlassian.net"

RICH_DESCRIPTION = {
    "type": "doc",
    "version": 1,
    "content": [
        {"type": "paragraph", "content": [{"type": "text", "text": "Users need to "}, {"type": "text", "text": "log in."}]},
        {"type": "paragraph", "content": [{"type": "text", "text": "Acceptance Criteria:"}]},
        {
            "type": "bulletList",
            "content": [
                {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "- valid credentials work"}]}]},
            ],
        },
    ],
}


def make_client(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TicketClient(email="bot@acme.test", token="jira-token", http_client=http_client)


class TestTicketUrls:
    """Tests for ticket URL parsing."""

    def test_parse_browse_url(self):
        assert parse_ticket_url(f"{SITE}/browse/PROJ-123") == (SITE, "PROJ-123")

    def test_parse_site_url_without_key(self):
        assert parse_ticket_url(SITE) == (SITE, None)

    def test_parse_normalizes_scheme(self):
        assert parse_ticket_url("http://acme.atlassian.net/browse/A-1?focus=x") == (SITE, "A-1")

    @pytest.mark.parametrize("url", ["", "acme.atlassian.net/browse/A-1", "ftp://x/browse/A-1", None])
    def test_parse_invalid_url(self, url):
        with pytest.raises(TicketValidationError):
            parse_ticket_url(url)

    def test_browse_url(self):
        assert browse_url(SITE + "/", "PROJ-9") == f"{SITE}/browse/PROJ-9"

    def test_browse_url_invalid(self):
        with pytest.raises(TicketValidationError):
            browse_url("not a url", "PROJ-9")


class TestDescriptionExtraction:
    """Tests for description flattening and acceptance criteria."""

    def test_plain_string_passthrough(self):
        assert extract_description("plain text") == "plain text"

    def test_none_is_empty(self):
        assert extract_description(None) == ""

    def test_rich_document_flattened_per_block(self):
        text = extract_description(RICH_DESCRIPTION)

        assert text == "Users need to log in.\nAcceptance Criteria:\n- valid credentials work"

    def test_acceptance_criteria_from_rich_document(self):
        text = extract_description(RICH_DESCRIPTION)

        assert extract_acceptance_criteria(text) == "- valid credentials work"

    def test_acceptance_criteria_stops_at_blank_line(self):
        text = "Intro\n\nAcceptance criteria\n- one\n- two\n\nNotes: later"

        assert extract_acceptance_criteria(text) == "- one\n- two"

    def test_acceptance_criteria_stops_at_next_heading(self):
        text = "acceptance criteria: - one\n- two\nOut of scope:\n- three"

        assert extract_acceptance_criteria(text) == "- one\n- two"

    def test_no_acceptance_criteria(self):
        assert extract_acceptance_criteria("Just a description") == ""
        assert extract_acceptance_criteria("") == ""


@pytest.mark.asyncio
async def test_get_ticket_success():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={
            "key": "PROJ-1",
            "fields": {
                "summary": "Add login",
                "description": RICH_DESCRIPTION,
                "status": {"name": "In Progress"},
                "priority": {"name": "High"},
                "issuetype": {"name": "Story"},
            },
        })

    client = make_client(handler)
    ticket = await client.get_ticket(f"{SITE}/browse/OTHER-5", "PROJ-1")
    await client.close()

    assert ticket.key == "PROJ-1"
    assert ticket.title == "Add login"
    assert ticket.description.startswith("Users need to log in.")
    assert ticket.acceptance_criteria == "- valid credentials work"
    assert (ticket.status, ticket.priority, ticket.issue_type) == ("In Progress", "High", "Story")

    request = requests[0]
    assert request.url.path == "/rest/api/3/issue/PROJ-1"
    assert request.url.params["fields"] == "summary,description,status,priority,issuetype"
    expected_auth = base64.b64encode(b"bot@acme.test:jira-token").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"


@pytest.mark.asyncio
async def test_get_ticket_missing_fields():
    client = make_client(lambda request: httpx.Response(200, json={"fields": {"description": None}}))

    ticket = await client.get_ticket(SITE, "PROJ-1")

    assert ticket.title == ""
    assert ticket.description == ""
    assert ticket.acceptance_criteria == ""
    assert ticket.status is None


@pytest.mark.asyncio
async def test_get_ticket_not_found_returns_none():
    client = make_client(lambda request: httpx.Response(404, json={"errorMessages": ["Issue does not exist"]}))

    assert await client.get_ticket(SITE, "PROJ-404") is None


@pytest.mark.asyncio
async def test_get_ticket_transport_error_returns_none():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = make_client(handler)

    assert await client.get_ticket(SITE, "PROJ-1") is None


@pytest.mark.asyncio
async def test_get_ticket_invalid_site_returns_none():
    client = make_client(lambda request: httpx.Response(200, json={}))

    assert await client.get_ticket("not-a-url", "PROJ-1") is None


@pytest.mark.asyncio
async def test_post_comment_success():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={"id": "10001"})

    client = make_client(handler)
    document = markdown_to_document("**Risk Level:** LOW")

    result = await client.post_comment(f"{SITE}/browse/PROJ-7", document)

    assert result == {"id": "10001"}
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/api/3/issue/PROJ-7/comment"
    assert json.loads(request.content) == {"body": document.to_wire()}


@pytest.mark.asyncio
async def test_post_comment_requires_issue_key():
    client = make_client(lambda request: httpx.Response(201))

    with pytest.raises(TicketValidationError):
        await client.post_comment(SITE, markdown_to_document("x"))


@pytest.mark.asyncio
async def test_post_comment_failure_raises_soft_error():
    client = make_client(lambda request: httpx.Response(403, text="Forbidden"))

    with pytest.raises(SoftUpstreamError) as exc_info:
        await client.post_comment(f"{SITE}/browse/PROJ-7", markdown_to_document("x"))

    assert exc_info.value.status_code == 403
    assert exc_info.value.service == "jira"


@pytest.mark.asyncio
async def test_post_comment_empty_response_body():
    client = make_client(lambda request: httpx.Response(204))

    assert await client.post_comment(f"{SITE}/browse/PROJ-7", markdown_to_document("x")) == {}
