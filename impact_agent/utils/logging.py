"""
JSON logging for pipeline invocations.

Every record is written as one JSON object per line. Invocation context
(PR number, repository, stage, ticket key) is lifted to the top level so log
queries can filter on it; any other ``extra`` values are nested under
``context``.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, MutableMapping, Optional


CONTEXT_FIELDS = ("pr_number", "repository", "stage", "ticket_key")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

NOISY_LOGGERS = ("openai", "httpx", "httpcore")


def _error_payload(exc_info) -> Dict[str, Any]:
    exc_type, exc_value, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc_value) if exc_value else None,
        "stack_trace": "".join(traceback.format_exception(*exc_info)),
    }


class JSONFormatter(logging.Formatter):
    """
    Render a log record as a single-line JSON document.

    Keys: ``timestamp`` (UTC, ISO 8601 with ``Z``), ``level``, ``logger``,
    ``message``, the invocation context fields that are set, ``context`` for
    remaining extras, ``error`` when exception info is attached, and
    ``source`` with file, line and function.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        document: Dict[str, Any] = {
            "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        attributes = vars(record)
        document.update({field: attributes[field] for field in CONTEXT_FIELDS if field in attributes})

        extras = {
            key: value
            for key, value in attributes.items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS
        }
        if extras:
            document["context"] = extras

        if record.exc_info:
            document["error"] = _error_payload(record.exc_info)

        document["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }
        return json.dumps(document, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that stamps bound context onto every record.

    Values passed explicitly in ``extra`` win over bound ones.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(extra or {}))

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextLoggerAdapter":
        """Return a child adapter bound to this adapter's context plus ``context``."""
        return ContextLoggerAdapter(self.logger, {**self.extra, **context})


def setup_logging(log_level: str = "INFO") -> None:
    """Route all records to stdout as JSON at ``log_level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.setLevel(log_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextLoggerAdapter:
    """
    Return a context-aware logger.

    Example:
        log = get_logger(__name__, repository="org/repo")
        log.with_context(pr_number=12).info("Fetching diff")
    """
    return ContextLoggerAdapter(logging.getLogger(name), context)


def log_pipeline_event(
    logger: logging.LoggerAdapter,
    action: str,
    pr_number: Optional[int],
    repository: str,
    base_ref: str,
) -> None:
    """Record receipt of a pull request event."""
    logger.info(
        f"Pull request event received: action={action}",
        extra={
            "pr_number": pr_number,
            "repository": repository,
            "action": action,
            "base_ref": base_ref,
        },
    )


def log_stage_transition(logger: logging.LoggerAdapter, stage: str, status: str, **fields: Any) -> None:
    """Record a stage moving to ``status`` ('started', 'completed' or 'skipped')."""
    logger.info(
        f"Pipeline stage {status}: {stage}",
        extra={"stage": stage, "status": status, **fields},
    )


def log_api_call(
    logger: logging.LoggerAdapter,
    service: str,
    endpoint: str,
    method: str,
    status_code: Optional[int] = None,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None,
) -> None:
    """
    Record one outbound call.

    Failed calls (``error`` set) are logged at ERROR, the rest at INFO.
    Unknown values are left out of the record rather than logged as null.

    Args:
        logger: Logger to write to
        service: 'github', 'llm', 'jira', 'test_management', ...
        endpoint: URL or logical operation name
        method: HTTP verb
        status_code: Response status, when a response arrived
        duration_ms: Elapsed time
        error: Failure description
    """
    details: Dict[str, Any] = {"service": service, "endpoint": endpoint, "method": method}
    optional = {
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2) if duration_ms is not None else None,
        "error": error,
    }
    details.update({key: value for key, value in optional.items() if value is not None})

    if error:
        logger.error(f"{service} call failed: {method} {endpoint}", extra=details)
    else:
        logger.info(f"{service} call: {method} {endpoint}", extra=details)


def log_partial_failure(
    logger: logging.LoggerAdapter,
    operation: str,
    total_items: int,
    successful_items: int,
    errors: List[str],
) -> None:
    """Summarize a batch whose items succeed or fail independently; keeps the first 10 errors."""
    failed = total_items - successful_items
    summary = {
        "operation": operation,
        "total_items": total_items,
        "successful_items": successful_items,
        "failed_items": failed,
    }

    if not failed:
        logger.info(f"{operation}: all {total_items} items succeeded", extra=summary)
        return

    logger.warning(
        f"{operation}: {failed} of {total_items} items failed",
        extra={**summary, "errors": errors[:10]},
    )
