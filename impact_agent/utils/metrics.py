"""
Per-invocation pipeline metrics.

One ``PipelineMetrics`` lives for one pipeline run. It is summarized into a
single log record when the run completes; nothing is persisted.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from impact_agent.utils.logging import get_logger

logger = get_logger(__name__)


def _latency_stats(samples: List[float]) -> Dict[str, Any]:
    return {
        "count": len(samples),
        "min_ms": round(min(samples), 2),
        "max_ms": round(max(samples), 2),
        "avg_ms": round(sum(samples) / len(samples), 2),
    }


class PipelineMetrics:
    """Timing, external-call latency and sink outcomes of one run."""

    def __init__(self, pr_number: Optional[int], repository: str):
        self.pr_number = pr_number
        self.repository = repository

        self.status = "running"
        self.error_message: Optional[str] = None
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None
        self.duration_ms: Optional[int] = None
        self.stage_durations_ms: Dict[str, float] = {}
        self.api_latencies: Dict[str, List[float]] = {}

        self.test_cases_generated = 0
        self.test_cases_synced = 0
        self.ticket_comment_posted = False
        self.email_sent = False

    @property
    def api_calls(self) -> Dict[str, int]:
        return {service: len(samples) for service, samples in self.api_latencies.items()}

    def start(self) -> None:
        self.status = "running"
        self.start_time = datetime.now(timezone.utc)

    def complete(self, status: str = "success", error_message: Optional[str] = None) -> None:
        """Close the run with ``status`` ('success' or 'error') and log the summary."""
        self.status = status
        self.error_message = error_message
        self.end_time = datetime.now(timezone.utc)
        if self.start_time is not None:
            self.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

        logger.info(
            f"Pipeline metrics for PR #{self.pr_number}",
            extra={
                "pr_number": self.pr_number,
                "repository": self.repository,
                "metrics": self.get_metrics_summary(),
            },
        )

    def record_stage(self, stage: str, duration_ms: float) -> None:
        self.stage_durations_ms[stage] = round(duration_ms, 2)

    def record_api_call(self, service: str, duration_ms: float) -> None:
        self.api_latencies.setdefault(service, []).append(duration_ms)

    def record_test_cases(self, generated: int) -> None:
        self.test_cases_generated = generated

    def record_sync(self, synced: int) -> None:
        self.test_cases_synced = synced

    def record_ticket_comment(self, posted: bool) -> None:
        self.ticket_comment_posted = posted

    def record_email(self, sent: bool) -> None:
        self.email_sent = sent

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Return a JSON-serializable view of everything recorded so far."""
        summary: Dict[str, Any] = {
            "pr_number": self.pr_number,
            "repository": self.repository,
            "status": self.status,
            "started_at": self.start_time.isoformat() if self.start_time else None,
            "finished_at": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
            "stage_durations_ms": dict(self.stage_durations_ms),
            "api_calls": self.api_calls,
            "test_cases_generated": self.test_cases_generated,
            "test_cases_synced": self.test_cases_synced,
            "ticket_comment_posted": self.ticket_comment_posted,
            "email_sent": self.email_sent,
        }

        latencies = {service: _latency_stats(samples) for service, samples in self.api_latencies.items() if samples}
        if latencies:
            summary["api_latencies"] = latencies
        if self.error_message:
            summary["error_message"] = self.error_message
        return summary


@asynccontextmanager
async def track_api_call(metrics: Optional[PipelineMetrics], service: str):
    """
    Time the enclosed external call and record its latency under ``service``.

    Only metrics are recorded here; the client making the call logs it.
    Exceptions from the block are re-raised after the latency is recorded.

        async with track_api_call(metrics, "github"):
            diff = await fetcher.fetch_diff(...)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        if metrics is not None:
            metrics.record_api_call(service, (time.perf_counter() - started) * 1000)
