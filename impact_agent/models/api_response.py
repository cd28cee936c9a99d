"""API response data models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PipelineResult(BaseModel):
    """Terminal value of one pipeline invocation."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["skipped", "success", "error"]
    risk: Optional[str] = None
    test_case_count: Optional[int] = Field(None, serialization_alias="testCaseCount")
    reason: Optional[str] = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SyncedTestCase(BaseModel):
    """Test case created in the test-management service."""

    title: str
    remote_id: Optional[str] = None


class WebhookResponse(BaseModel):
    """Response from webhook handler."""

    status: str
    message: str
    result: Optional[dict] = None
