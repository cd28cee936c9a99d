"""
Impact Analyzer component.

Requests the architectural impact analysis and the manual test cases from an
OpenAI-compatible chat-completion endpoint in JSON mode. Returns the raw JSON
text; validating it against the contract is ``result_parser``'s job.
"""

import time
from typing import List, Optional

from openai import APIError, APIStatusError, AsyncOpenAI

from impact_agent.analyzers.prompts import (
    IMPACT_SYSTEM_PROMPT,
    TEST_CASE_SYSTEM_PROMPT,
    build_impact_prompt,
    build_test_case_prompt,
)
from impact_agent.errors import ModelError
from impact_agent.models.source import TreeEntry
from impact_agent.models.ticket import TicketContext
from impact_agent.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

IMPACT_MAX_TOKENS = 1000
IMPACT_WITH_TICKET_MAX_TOKENS = 1500
TEST_CASE_MAX_TOKENS = 2000


class ImpactAnalyzer:
    """Builds analysis prompts and calls the language model."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        model: str = "llama-3.3-70b-versatile",
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            api_key: Provider API key; calls fail with ModelError when absent
            base_url: OpenAI-compatible endpoint base URL
            model: Model name
            timeout: Request timeout in seconds
            client: Pre-built client (used by tests)
        """
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ModelError("llm", message="No language-model API key configured")
            # max_retries=0: one attempt per call
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _complete(self, system_prompt: str, prompt: str, max_tokens: int, purpose: str) -> str:
        """
        Run one JSON-mode chat completion.

        Raises:
            ModelError: If the key is missing or the endpoint returns an error
        """
        client = self._get_client()
        start_time = time.time()

        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                max_tokens=max_tokens,
            )
        except APIStatusError as e:
            log_api_call(
                logger, service="llm", endpoint=purpose, method="POST",
                status_code=e.status_code, duration_ms=(time.time() - start_time) * 1000, error=str(e),
            )
            raise ModelError("llm", status_code=e.status_code, body=str(e.body or e.message)) from e
        except APIError as e:
            log_api_call(
                logger, service="llm", endpoint=purpose, method="POST",
                duration_ms=(time.time() - start_time) * 1000, error=str(e),
            )
            raise ModelError("llm", body=str(e)) from e

        log_api_call(
            logger, service="llm", endpoint=purpose, method="POST",
            status_code=200, duration_ms=(time.time() - start_time) * 1000,
        )

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def summarize_impact(
        self,
        diff: str,
        tree: Optional[List[TreeEntry]],
        ticket: Optional[TicketContext] = None,
    ) -> str:
        """
        Request the architectural impact analysis.

        Args:
            diff: Filtered unified diff
            tree: Filtered project tree
            ticket: Linked ticket context; raises the token budget when present

        Returns:
            Raw JSON text from the model
        """
        prompt = build_impact_prompt(diff, tree, ticket)
        max_tokens = IMPACT_WITH_TICKET_MAX_TOKENS if ticket else IMPACT_MAX_TOKENS

        logger.info(
            "Requesting impact analysis",
            extra={"with_ticket": ticket is not None, "max_tokens": max_tokens},
        )
        return await self._complete(IMPACT_SYSTEM_PROMPT, prompt, max_tokens, "impact_analysis")

    async def generate_test_cases(
        self,
        diff: str,
        tree: Optional[List[TreeEntry]],
        owner: str,
        repo: str,
    ) -> str:
        """
        Request manual test cases for the change.

        Returns:
            Raw JSON text from the model
        """
        prompt = build_test_case_prompt(diff, tree, owner, repo)

        logger.info("Requesting test case generation", extra={"max_tokens": TEST_CASE_MAX_TOKENS})
        return await self._complete(TEST_CASE_SYSTEM_PROMPT, prompt, TEST_CASE_MAX_TOKENS, "test_case_generation")
