"""
Structured logging for retention investigations.

Provides JSON or human-readable logging with an investigation ID that
correlates every record of one run, plus context managers that time
investigation stages and individual backend calls.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variables for run correlation
investigation_id_var: ContextVar[str | None] = ContextVar("investigation_id", default=None)
stage_var: ContextVar[str | None] = ContextVar("stage", default=None)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "investigation_id": "...", ...}
    """

    EXTRA_KEYS = (
        "event",
        "alias",
        "backend",
        "operation",
        "tenant",
        "status",
        "duration_ms",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        investigation_id = investigation_id_var.get()
        if investigation_id:
            log_data["investigation_id"] = investigation_id

        stage = stage_var.get()
        if stage:
            log_data["stage"] = stage

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = False, level: str = "INFO") -> None:
    """
    Configure root logging for the CLI.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Logs go to stderr so the console summary on stdout stays readable
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("azure").setLevel(logging.WARNING)


def start_investigation_context() -> str:
    """Assign a fresh investigation ID to the current context and return it."""
    investigation_id = uuid.uuid4().hex
    investigation_id_var.set(investigation_id)
    return investigation_id


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_stage(stage: str):
    """
    Context manager for stage-level logging.

    Logs stage start and end with duration.

    Usage:
        with log_stage("collect"):
            # ... stage logic ...
    """
    stage_var.set(stage)

    start_time = time.time()
    logger = logging.getLogger("investigator.stage")

    logger.info(f"Stage {stage} started", extra={"event": "stage_start"})

    try:
        yield
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Stage {stage} completed",
            extra={"event": "stage_complete", "duration_ms": duration_ms},
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Stage {stage} failed: {e}",
            extra={"event": "stage_failed", "duration_ms": duration_ms},
            exc_info=True,
        )
        raise
    finally:
        stage_var.set(None)


@contextmanager
def log_backend_call(backend: str, operation: str, tenant: str | None = None):
    """
    Context manager for backend call instrumentation.

    Logs call completion or failure with timing. The yielded dict may be
    filled with a "status" describing the outcome (found, not_found).

    Usage:
        with log_backend_call("mailbox", "get_mailbox") as call:
            record = await adapter.lookup_mailbox(alias)
            call["status"] = "found" if record else "not_found"
    """
    start_time = time.time()
    logger = logging.getLogger("investigator.backend")
    call: dict = {"status": None}
    extra_base = {"backend": backend, "operation": operation}
    if tenant:
        extra_base["tenant"] = tenant

    logger.debug(
        f"Backend call started: {backend}.{operation}",
        extra={"event": "backend_call_start", **extra_base},
    )

    try:
        yield call

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Backend call completed: {backend}.{operation} -> {call['status']} ({duration_ms}ms)",
            extra={
                "event": "backend_call_complete",
                "status": call["status"],
                "duration_ms": duration_ms,
                **extra_base,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.warning(
            f"Backend call failed: {backend}.{operation} - {e}",
            extra={
                "event": "backend_call_failed",
                "status": "error",
                "duration_ms": duration_ms,
                **extra_base,
            },
        )
        raise
