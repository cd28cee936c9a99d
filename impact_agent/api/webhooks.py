"""
Webhook endpoints for GitHub pull request events.
"""

import hashlib
import hmac
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request

from impact_agent.config import Settings, settings
from impact_agent.errors import ImpactAgentError
from impact_agent.models.api_response import WebhookResponse
from impact_agent.services.pipeline import ImpactPipeline
from impact_agent.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify a GitHub ``X-Hub-Signature-256`` header.

    Args:
        payload: Raw request payload
        signature: Header value, ``sha256=<hexdigest>``
        secret: Shared webhook secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not signature:
        return False

    expected_signature = "sha256=" + hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature, expected_signature)


def create_pipeline(config: Settings) -> ImpactPipeline:
    return ImpactPipeline(config)


async def run_pipeline(payload: Dict[str, Any], config: Settings) -> WebhookResponse:
    """
    Run one pipeline invocation and map its outcome to a response.

    Never raises: fatal errors come back as status 'error'.
    """
    pipeline = create_pipeline(config)
    try:
        result = await pipeline.process_payload(payload)
    except ImpactAgentError as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        return WebhookResponse(status="error", message=str(e))
    except Exception as e:
        logger.error(f"Unexpected pipeline error: {e}", exc_info=True)
        return WebhookResponse(status="error", message=f"Unexpected error: {e}")
    finally:
        await pipeline.close()

    if result.status == "skipped":
        message = f"Event skipped: {result.reason}"
    else:
        message = f"Impact report completed with risk {result.risk or 'UNKNOWN'}"
    logger.info(message, extra={"status": result.status})
    return WebhookResponse(status=result.status, message=message, result=result.to_response())


@router.post("/github/pull_request", response_model=WebhookResponse)
async def handle_pull_request_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_hub_signature: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
) -> WebhookResponse:
    """
    Receive a GitHub pull request webhook and queue the impact pipeline.

    The pipeline runs after the response is sent; its outcome is logged.

    Raises:
        HTTPException: 401 on a bad signature, 400 on a malformed payload
    """
    payload_bytes = await request.body()

    if settings.webhook_secret and not verify_webhook_signature(
        payload_bytes, x_hub_signature, settings.webhook_secret
    ):
        logger.warning("Invalid webhook signature received")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if x_github_event and x_github_event != "pull_request":
        logger.info(f"Ignoring event type: {x_github_event}")
        return WebhookResponse(status="ignored", message=f"Event type {x_github_event} not processed")

    try:
        payload = json.loads(payload_bytes)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    background_tasks.add_task(run_pipeline, payload, settings)

    return WebhookResponse(status="accepted", message="Pull request event accepted for impact analysis")
