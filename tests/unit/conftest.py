"""
Shared fixtures for unit tests.
"""

import pytest

from impact_agent.config import Settings
from impact_agent.models import TriggerEvent


def make_settings(**overrides) -> Settings:
    """Build settings isolated from the developer's .env file."""
    values = {
        "github_token": "gh-token",
        "llm_api_key": "llm-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    """Settings with only the mandatory services configured."""
    return make_settings()


@pytest.fixture
def full_settings():
    """Settings with every optional service configured."""
    return make_settings(
        jira_url="https://acme.atlassian.net",
        jira_email="bot@acme.test",
        jira_token="jira-token",
        test_management_url="https://tests.acme.test",
        test_management_api_key="tm-key",
        test_management_project_id="42",
        email_host="smtp.acme.test",
        email_user="bot@acme.test",
        email_password="secret",
        email_to="team@acme.test",
    )


@pytest.fixture
def merged_payload():
    """Webhook payload for a PR merged into master."""
    return {
        "action": "closed",
        "pull_request": {
            "merged": True,
            "number": 1,
            "title": "t",
            "body": None,
            "html_url": "https://github.com/org/repo/pull/1",
            "base": {"ref": "master", "repo": {"name": "repo", "full_name": "org/repo"}},
            "head": {"ref": "feature", "sha": "abc123"},
        },
        "repository": {"owner": {"login": "org"}, "name": "repo"},
    }


@pytest.fixture
def merged_event(merged_payload):
    return TriggerEvent.from_payload(merged_payload)


@pytest.fixture
def settings_factory():
    """Build settings with overrides, isolated from the environment file."""
    return make_settings
