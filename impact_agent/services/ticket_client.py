"""
Ticket client for the Jira Cloud REST API (v3).

Loads a ticket's requirements context and posts rich-document comments.
"""

import re
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from impact_agent.errors import SoftUpstreamError, TicketValidationError
from impact_agent.models.document import RichDocument
from impact_agent.models.ticket import TicketContext
from impact_agent.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

HOST_PATTERN = re.compile(r"^(https?)://([^/?#]+)")
BROWSE_KEY_PATTERN = re.compile(r"/browse/([^/?#]+)")

# Heading keyword, then everything up to a blank line or the next
# capitalised "Heading:" line.
ACCEPTANCE_CRITERIA_PATTERN = re.compile(
    r"acceptance[ \t]+criteria[ \t]*:?[ \t]*\n?"
    r"(?P<body>.*?)"
    r"(?=\n[ \t]*\n|\n(?-i:[A-Z])[^\n:]{0,60}:[ \t]*(?:\n|$)|\Z)",
    re.IGNORECASE | re.DOTALL,
)

ISSUE_FIELDS = "summary,description,status,priority,issuetype"


def parse_ticket_url(ticket_url: str) -> Tuple[str, Optional[str]]:
    """
    Split a ticket URL into its site root and optional issue key.

    Args:
        ticket_url: e.g. ``https://acme.atlassian.net/browse/PROJ-1``

    Returns:
        Tuple of (``https://host``, issue key or None)

    Raises:
        TicketValidationError: If no host can be parsed
    """
    match = HOST_PATTERN.match((ticket_url or "").strip())
    if not match:
        raise TicketValidationError(f"Invalid ticket URL: {ticket_url!r}")

    key_match = BROWSE_KEY_PATTERN.search(ticket_url)
    return f"https://{match.group(2)}", key_match.group(1) if key_match else None


def browse_url(ticket_url: str, issue_key: str) -> str:
    """Build ``<scheme>://<host>/browse/<KEY>`` from the configured site URL."""
    match = HOST_PATTERN.match((ticket_url or "").strip())
    if not match:
        raise TicketValidationError(f"Invalid ticket URL: {ticket_url!r}")
    return f"{match.group(0)}/browse/{issue_key}"


def _node_text(node: Any) -> str:
    """Depth-first concatenation of every ``text`` value below ``node``."""
    if isinstance(node, list):
        return "".join(_node_text(child) for child in node)
    if not isinstance(node, dict):
        return ""
    text = node.get("text")
    own = text if isinstance(text, str) else ""
    return own + _node_text(node.get("content") or [])


def extract_description(description: Any) -> str:
    """
    Flatten a ticket description to plain text.

    Plain strings are returned as-is; rich documents are flattened with one
    line per top-level block.
    """
    if description is None:
        return ""
    if isinstance(description, str):
        return description
    if isinstance(description, dict):
        return "\n".join(_node_text(block) for block in description.get("content") or [])
    return ""


def extract_acceptance_criteria(description: str) -> str:
    """Return the acceptance criteria section of a description, or ''."""
    match = ACCEPTANCE_CRITERIA_PATTERN.search(description or "")
    return match.group("body").strip() if match else ""


class TicketClient:
    """Reads tickets and posts comments with basic authentication."""

    def __init__(
        self,
        email: Optional[str],
        token: Optional[str],
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.email = email
        self.token = token
        self.timeout = timeout
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def _auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.email or "", self.token or "")

    async def get_ticket(self, ticket_url: str, issue_key: str) -> Optional[TicketContext]:
        """
        Load a ticket's title, description and acceptance criteria.

        Args:
            ticket_url: Ticketing site URL (any URL on the site)
            issue_key: Issue key, e.g. ``PROJ-123``

        Returns:
            TicketContext, or None if the ticket could not be loaded
        """
        try:
            site, _ = parse_ticket_url(ticket_url)
        except TicketValidationError as e:
            logger.warning(f"Skipping ticket context: {e}")
            return None

        url = f"{site}/rest/api/3/issue/{issue_key}"
        client = await self._get_client()
        start_time = time.time()

        try:
            response = await client.get(
                url,
                params={"fields": ISSUE_FIELDS},
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            log_api_call(logger, "jira", url, "GET", duration_ms=(time.time() - start_time) * 1000, error=str(e))
            return None

        duration_ms = (time.time() - start_time) * 1000
        if not response.is_success:
            log_api_call(logger, "jira", url, "GET", response.status_code, duration_ms, error=response.text[:200])
            return None

        log_api_call(logger, "jira", url, "GET", response.status_code, duration_ms)

        try:
            fields: Dict[str, Any] = response.json().get("fields") or {}
        except (ValueError, AttributeError):
            logger.warning(f"Ticket {issue_key} response is not a JSON object")
            return None

        description = extract_description(fields.get("description"))
        return TicketContext(
            key=issue_key,
            title=fields.get("summary") or "",
            description=description,
            acceptance_criteria=extract_acceptance_criteria(description),
            status=(fields.get("status") or {}).get("name"),
            priority=(fields.get("priority") or {}).get("name"),
            issue_type=(fields.get("issuetype") or {}).get("name"),
        )

    async def post_comment(self, ticket_url: str, document: RichDocument) -> Dict[str, Any]:
        """
        Post a rich-document comment on the issue named in ``ticket_url``.

        Args:
            ticket_url: Browse URL of the issue
            document: Comment body

        Returns:
            Created comment as returned by the API

        Raises:
            TicketValidationError: If the URL has no host or issue key
            SoftUpstreamError: On a non-2xx response or transport failure
        """
        site, issue_key = parse_ticket_url(ticket_url)
        if not issue_key:
            raise TicketValidationError(f"No issue key in ticket URL: {ticket_url!r}")

        url = f"{site}/rest/api/3/issue/{issue_key}/comment"
        client = await self._get_client()
        start_time = time.time()

        try:
            response = await client.post(
                url,
                json={"body": document.to_wire()},
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            log_api_call(logger, "jira", url, "POST", duration_ms=(time.time() - start_time) * 1000, error=str(e))
            raise SoftUpstreamError("jira", body=str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        if not response.is_success:
            log_api_call(logger, "jira", url, "POST", response.status_code, duration_ms, error=response.text[:200])
            raise SoftUpstreamError("jira", status_code=response.status_code, body=response.text)

        log_api_call(logger, "jira", url, "POST", response.status_code, duration_ms)
        try:
            return response.json()
        except ValueError:
            return {}
