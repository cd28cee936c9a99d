"""
Source Fetcher component for GitHub integration.

Retrieves the unified diff between two branches and the recursive file
tree of a branch from the GitHub REST API.
"""

import time
from typing import List, Optional
from urllib.parse import quote

import httpx

from impact_agent.config import MAX_TREE_ENTRIES
from impact_agent.errors import UpstreamError
from impact_agent.models.source import EntryKind, TreeEntry
from impact_agent.utils.diff_filter import filter_tree
from impact_agent.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

USER_AGENT = "impact-agent"


class SourceFetcher:
    """
    Retrieves code changes and repository structure from GitHub.

    The diff is on the mandatory path: any failure raises UpstreamError.
    The tree is optional: failures are logged and yield None.
    """

    def __init__(
        self,
        token: Optional[str],
        api_url: str = "https://api.github.com",
        self_reference_dir: str = "",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            token: GitHub token sent as a bearer token
            api_url: GitHub REST API base URL
            self_reference_dir: Directory excluded from the returned tree
            timeout: HTTP request timeout in seconds
            http_client: Pre-built client (used by tests)
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.self_reference_dir = self_reference_dir
        self.timeout = timeout
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self, accept: str) -> dict:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept,
            "User-Agent": USER_AGENT,
        }

    async def fetch_diff(self, owner: str, repo: str, base: str, head: str) -> str:
        """
        Retrieve the unified diff between two branches.

        Args:
            owner: Repository owner
            repo: Repository name
            base: Base branch
            head: Head branch

        Returns:
            Diff text

        Raises:
            UpstreamError: On a non-2xx response or transport failure
        """
        url = (
            f"{self.api_url}/repos/{owner}/{repo}/compare/"
            f"{quote(base, safe='')}...{quote(head, safe='')}"
        )
        client = await self._get_client()
        start_time = time.time()

        try:
            response = await client.get(url, headers=self._headers("application/vnd.github.v3.diff"))
        except httpx.HTTPError as e:
            log_api_call(logger, "github", url, "GET", duration_ms=(time.time() - start_time) * 1000, error=str(e))
            raise UpstreamError("github", body=str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        if not response.is_success:
            log_api_call(logger, "github", url, "GET", response.status_code, duration_ms, error=response.reason_phrase)
            raise UpstreamError("github", status_code=response.status_code, body=response.text)

        log_api_call(logger, "github", url, "GET", response.status_code, duration_ms)
        return response.text

    async def fetch_tree(self, owner: str, repo: str, branch: str) -> Optional[List[TreeEntry]]:
        """
        Retrieve the recursive file tree of a branch.

        Args:
            owner: Repository owner
            repo: Repository name
            branch: Branch name

        Returns:
            Up to 300 entries outside the agent's own directory, or None if the
            tree could not be fetched
        """
        url = f"{self.api_url}/repos/{owner}/{repo}/git/trees/{quote(branch, safe='')}"
        client = await self._get_client()
        start_time = time.time()

        try:
            response = await client.get(
                url,
                params={"recursive": "1"},
                headers=self._headers("application/vnd.github.v3+json"),
            )
        except httpx.HTTPError as e:
            log_api_call(logger, "github", url, "GET", duration_ms=(time.time() - start_time) * 1000, error=str(e))
            logger.warning(f"Could not fetch tree for {owner}/{repo}@{branch}; continuing without it")
            return None

        duration_ms = (time.time() - start_time) * 1000
        if not response.is_success:
            log_api_call(logger, "github", url, "GET", response.status_code, duration_ms, error=response.reason_phrase)
            logger.warning(f"Tree request returned {response.status_code}; continuing without tree")
            return None

        log_api_call(logger, "github", url, "GET", response.status_code, duration_ms)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Tree response is not valid JSON; continuing without tree")
            return None

        items = (data.get("tree") if isinstance(data, dict) else None) or []

        entries = [
            TreeEntry(
                path=item.get("path", ""),
                kind=EntryKind.DIRECTORY if item.get("type") == "tree" else EntryKind.FILE,
            )
            for item in items
            if item.get("path")
        ]
        return filter_tree(entries, self.self_reference_dir, MAX_TREE_ENTRIES)
