"""
Utility modules for the impact agent.
"""

from impact_agent.utils.logging import (
    get_logger,
    setup_logging,
    log_pipeline_event,
    log_stage_transition,
    log_api_call,
    log_partial_failure,
)
from impact_agent.utils.metrics import (
    PipelineMetrics,
    track_api_call,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_pipeline_event",
    "log_stage_transition",
    "log_api_call",
    "log_partial_failure",
    "PipelineMetrics",
    "track_api_call",
]
