"""
Prompt construction for the two analysis requests.

Both prompts embed an explicit JSON schema and ask for JSON only; the
responses are validated by ``result_parser``.
"""

import json
from typing import List, Optional

from impact_agent.config import (
    ACCEPTANCE_CRITERIA_CHARS,
    IMPACT_DIFF_CHARS,
    IMPACT_TREE_CHARS,
    TEST_CASE_DIFF_CHARS,
    TEST_CASE_TREE_ENTRIES,
    TICKET_DESCRIPTION_CHARS,
)
from impact_agent.models.source import TreeEntry
from impact_agent.models.ticket import TicketContext

IMPACT_SYSTEM_PROMPT = (
    "You are a Senior Staff Software Architect. You answer with a single JSON object and nothing else."
)

TEST_CASE_SYSTEM_PROMPT = (
    "You are a Senior QA Engineer who writes precise manual test cases. "
    "You answer with a single JSON object and nothing else."
)

IMPACT_SCHEMA = """{
  "risk": { "score": "CRITICAL|HIGH|MEDIUM|LOW", "reasoning": "..." },
  "keyChanges": ["..."],
  "technicalDetails": {
    "API Impact": "...",
    "Database Impact": "...",
    "Logic Impact": "...",
    "UI Impact": "...",
    "Security Impact": "..."
  }
}"""

IMPACT_SCHEMA_WITH_REQUIREMENTS = """{
  "risk": { "score": "CRITICAL|HIGH|MEDIUM|LOW", "reasoning": "..." },
  "keyChanges": ["..."],
  "requirementsAlignment": {
    "fullyAddressed": true,
    "missingRequirements": ["..."],
    "additionalChanges": ["..."],
    "alignmentScore": "HIGH|MEDIUM|LOW"
  },
  "technicalDetails": {
    "API Impact": "...",
    "Database Impact": "...",
    "Logic Impact": "...",
    "UI Impact": "...",
    "Security Impact": "..."
  }
}"""

TEST_CASE_SCHEMA = """{
  "summary": "...",
  "testCases": [
    { "title": "...", "steps": ["..."], "expectedResult": "...", "priority": "HIGH|MEDIUM|LOW" }
  ]
}"""


def _tree_json(tree: Optional[List[TreeEntry]]) -> str:
    return json.dumps(
        [{"path": entry.path, "type": entry.kind.value} for entry in tree or []],
        indent=2,
    )


def _ticket_block(ticket: TicketContext) -> str:
    description = ticket.description[:TICKET_DESCRIPTION_CHARS] or "(no description)"
    criteria = ticket.acceptance_criteria[:ACCEPTANCE_CRITERIA_CHARS] or "(not specified)"
    return f"""
[LINKED TICKET {ticket.key}]
Title: {ticket.title}
Status: {ticket.status or 'Unknown'} | Priority: {ticket.priority or 'Unknown'} | Type: {ticket.issue_type or 'Unknown'}

Description:
{description}

Acceptance Criteria:
{criteria}
"""


def build_impact_prompt(
    diff: str,
    tree: Optional[List[TreeEntry]],
    ticket: Optional[TicketContext] = None,
) -> str:
    """
    Build the architectural impact analysis prompt.

    Args:
        diff: Filtered unified diff
        tree: Filtered project tree (may be None)
        ticket: Linked ticket context, if one was loaded

    Returns:
        Prompt text
    """
    ticket_section = _ticket_block(ticket) if ticket else ""
    requirements_guideline = (
        "6. Requirements: Compare the changes with the linked ticket. List acceptance criteria "
        "that are not implemented and changes that go beyond the ticket's scope.\n"
        if ticket else ""
    )
    schema = IMPACT_SCHEMA_WITH_REQUIREMENTS if ticket else IMPACT_SCHEMA

    return f"""
Perform a rigorous technical impact analysis on the following code changes.
Identify ALL potential ripple effects, logic breaks, and architectural risks.

[PROJECT STRUCTURE]
{_tree_json(tree)[:IMPACT_TREE_CHARS]}

[GIT DIFF TO ANALYZE]
{diff[:IMPACT_DIFF_CHARS]}
{ticket_section}
[ANALYSIS GUIDELINES]
1. Logic & State: How do these changes affect the flow of data or internal state?
2. API & Integration: Are there breaking changes to signatures or payloads?
3. Data Persistence: Does it affect database schemas or performance?
4. UI & Side Effects: Will this break existing UI components?
5. Security: Does it introduce new vulnerabilities?
{requirements_guideline}
[RULES]
- If the diff only touches tests or documentation, the risk score MUST be LOW.
- Use "None" for a technical category the changes do not affect.

Return your analysis in the following JSON format ONLY:
{schema}
"""


def build_test_case_prompt(
    diff: str,
    tree: Optional[List[TreeEntry]],
    owner: str,
    repo: str,
) -> str:
    """
    Build the manual test case generation prompt.

    Args:
        diff: Filtered unified diff
        tree: Filtered project tree (may be None)
        owner: Repository owner
        repo: Repository name

    Returns:
        Prompt text
    """
    structure = json.dumps(
        [{"path": entry.path, "type": entry.kind.value} for entry in (tree or [])[:TEST_CASE_TREE_ENTRIES]]
    )

    return f"""
Generate manual test cases for the following code changes in {owner}/{repo}.

STRUCTURE: {structure}
DIFF:
{diff[:TEST_CASE_DIFF_CHARS]}

[INSTRUCTIONS]
- Write as many test cases as the changes warrant; a small change needs only a few.
- Every test case must verify something different; do not repeat scenarios.
- Cover positive, negative, edge-case, performance and security scenarios only where
  they are relevant to these changes. Do not force a category that does not apply.
- Steps must be concrete, numbered actions a tester can follow without reading the code.

Format as JSON ONLY:
{TEST_CASE_SCHEMA}
"""
