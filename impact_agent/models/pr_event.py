"""Pull request event data models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


def _pr_number(value: Any) -> Optional[int]:
    # bool is an int subclass
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


class TriggerEvent(BaseModel):
    """Pull request lifecycle event from a GitHub webhook."""

    model_config = ConfigDict(frozen=True)

    action: str  # 'opened', 'synchronize', 'reopened', 'closed', ...
    is_merged: bool = False
    base_ref: str = ""
    head_ref: str = ""
    head_sha: str = ""
    pr_number: Optional[int] = None
    pr_title: str = ""
    pr_body: str = ""
    pr_url: str = ""
    repo_owner: str = ""
    repo_name: str = ""
    repo_full_name: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TriggerEvent":
        """
        Build an event from a raw webhook payload.

        Missing sections yield empty values so the trigger gate can still
        evaluate partial payloads.

        Args:
            payload: Decoded webhook JSON

        Returns:
            TriggerEvent
        """
        pull_request = payload.get("pull_request") or {}
        repository = payload.get("repository") or {}
        base = pull_request.get("base") or {}
        head = pull_request.get("head") or {}
        base_repo = base.get("repo") or {}

        owner = (repository.get("owner") or {}).get("login", "")
        name = repository.get("name") or base_repo.get("name", "")
        full_name = base_repo.get("full_name") or (f"{owner}/{name}" if owner and name else "")

        return cls(
            action=payload.get("action") or "",
            is_merged=bool(pull_request.get("merged")),
            base_ref=base.get("ref") or "",
            head_ref=head.get("ref") or "",
            head_sha=head.get("sha") or "",
            pr_number=_pr_number(pull_request.get("number")),
            pr_title=pull_request.get("title") or "",
            pr_body=pull_request.get("body") or "",
            pr_url=pull_request.get("html_url") or "",
            repo_owner=owner,
            repo_name=name,
            repo_full_name=full_name,
        )

    @property
    def idempotency_key(self) -> str:
        """Identifies the PR revision this event refers to."""
        return f"{self.repo_full_name}#{self.pr_number}@{self.head_sha or self.head_ref}"

    @property
    def pr_label(self) -> str:
        """Display form of the PR number, e.g. ``PR #12`` or ``PR #N/A``."""
        return f"PR #{self.pr_number if self.pr_number is not None else 'N/A'}"
