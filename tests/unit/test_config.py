"""
Unit tests for application configuration.
"""

import os
from unittest.mock import patch

import pytest

from impact_agent.config import TICKET_KEY_PATTERN, Settings
from impact_agent.errors import ConfigurationError


def test_settings_defaults():
    """Test default values when nothing is configured."""
    with patch.dict(os.environ, {}, clear=True):
        config = Settings(_env_file=None)

    assert config.github_token is None
    assert config.llm_api_key is None
    assert config.llm_base_url == "https://api.groq.com/openai/v1"
    assert config.llm_model == "llama-3.3-70b-versatile"
    assert config.email_port == 587
    assert config.self_reference_dir == "impact_agent"
    assert config.jira_configured is False
    assert config.test_management_configured is False
    assert config.email_configured is False


def test_settings_from_environment():
    """Test settings are read case-insensitively from the environment."""
    with patch.dict(os.environ, {
        "GITHUB_TOKEN": "gh",
        "LLM_API_KEY": "key",
        "JIRA_URL": "https://acme.atlassian.net",
        "JIRA_EMAIL": "bot@acme.test",
        "JIRA_TOKEN": "token",
        "EMAIL_PORT": "465",
    }, clear=True):
        config = Settings(_env_file=None)

    assert config.github_token == "gh"
    assert config.llm_api_key == "key"
    assert config.jira_configured is True
    assert config.email_port == 465


def test_require_core_credentials_passes(settings):
    """Test no error is raised when both mandatory credentials are set."""
    settings.require_core_credentials()


def test_require_core_credentials_names_missing_values(settings_factory):
    """Test the error lists every missing credential."""
    config = settings_factory(github_token=None, llm_api_key=None)

    with pytest.raises(ConfigurationError) as exc_info:
        config.require_core_credentials()

    assert "GITHUB_TOKEN" in str(exc_info.value)
    assert "LLM_API_KEY" in str(exc_info.value)


def test_require_core_credentials_missing_model_key(settings_factory):
    config = settings_factory(llm_api_key="")

    with pytest.raises(ConfigurationError, match="LLM_API_KEY"):
        config.require_core_credentials()


def test_partial_service_configuration_is_not_configured(settings_factory):
    """Test optional services need every field to count as configured."""
    config = settings_factory(
        jira_url="https://acme.atlassian.net",
        test_management_url="https://tests.acme.test",
        test_management_api_key="key",
        email_host="smtp.acme.test",
    )

    assert config.jira_configured is False
    assert config.test_management_configured is False
    assert config.email_configured is False


def test_full_configuration(full_settings):
    assert full_settings.jira_configured is True
    assert full_settings.test_management_configured is True
    assert full_settings.email_configured is True


@pytest.mark.parametrize("text,expected", [
    ("PROJ-123 Fix bug", "PROJ-123"),
    ("feature/abc-42-login", "abc-42"),
    ("no ticket here", None),
])
def test_ticket_key_pattern(text, expected):
    match = TICKET_KEY_PATTERN.search(text)
    assert (match.group(1) if match else None) == expected
