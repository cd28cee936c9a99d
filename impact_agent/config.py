"""
Application configuration management.
"""

import re
from typing import Optional

from pydantic_settings import BaseSettings

from impact_agent.errors import ConfigurationError


# Trigger gate
ALLOWED_ACTIONS = ("opened", "synchronize", "reopened", "closed")
PROTECTED_BRANCHES = ("master", "main")

# Pattern matching
TICKET_KEY_PATTERN = re.compile(r"([A-Z]+-[0-9]+)", re.IGNORECASE)
DIFF_FILE_MARKER = "diff --git "

# Prompt and payload limits
MAX_TREE_ENTRIES = 300
IMPACT_TREE_CHARS = 4000
IMPACT_DIFF_CHARS = 8000
TEST_CASE_TREE_ENTRIES = 50
TEST_CASE_DIFF_CHARS = 5000
TICKET_DESCRIPTION_CHARS = 3000
ACCEPTANCE_CRITERIA_CHARS = 2000
MAX_COMMENT_TEST_CASES = 5


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Source control (required)
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"

    # Language model (required)
    llm_api_key: Optional[str] = None
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"

    # Ticketing
    jira_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_token: Optional[str] = None

    # Test management
    test_management_url: Optional[str] = None
    test_management_api_key: Optional[str] = None
    test_management_project_id: Optional[str] = None

    # Email delivery
    email_host: Optional[str] = None
    email_port: int = 587
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    email_to: Optional[str] = None
    email_from: Optional[str] = None

    # Webhook
    webhook_secret: Optional[str] = None

    # Application
    log_level: str = "INFO"
    http_timeout_seconds: float = 30.0
    self_reference_dir: str = "impact_agent"
    report_product_name: str = "Impact Agent"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_url and self.jira_email and self.jira_token)

    @property
    def test_management_configured(self) -> bool:
        return bool(
            self.test_management_url
            and self.test_management_api_key
            and self.test_management_project_id
        )

    @property
    def email_configured(self) -> bool:
        return bool(self.email_host and self.email_user and self.email_password and self.email_to)

    def require_core_credentials(self) -> None:
        """
        Ensure the credentials for the mandatory services are present.

        Raises:
            ConfigurationError: If the source-control token or the model key is missing
        """
        missing = []
        if not self.github_token:
            missing.append("GITHUB_TOKEN")
        if not self.llm_api_key:
            missing.append("LLM_API_KEY")

        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


# Global settings instance
settings = Settings()
