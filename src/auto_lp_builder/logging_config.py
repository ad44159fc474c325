from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

from google.cloud import logging as cloud_logging

# Identifies one Pipeline.run; copied into worker threads with the context.
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_NOISY_LOGGERS = ("google", "urllib3", "httpx", "httpcore")


class RunIdFilter(logging.Filter):
    """Stamps the current run id on every record, whichever handler ends up emitting it."""

    def filter(self, record: logging.LogRecord) -> bool:
        run_id = run_id_var.get()
        if run_id and not hasattr(record, "run_id"):
            record.run_id = run_id
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RESERVED and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def setup_logging(
    *,
    environment: str = "dev",
    project_id: str | None = None,
    use_cloud_logging: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        environment: Environment name (dev, staging, prod); dev logs at DEBUG
        project_id: GCP project ID; required for Cloud Logging
        use_cloud_logging: Send records to Cloud Logging outside dev
    """
    level = logging.DEBUG if environment == "dev" else logging.INFO
    root = logging.getLogger()

    if use_cloud_logging and project_id and environment != "dev":
        cloud_logging.Client(project=project_id).setup_logging(log_level=level)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logging.basicConfig(level=level, handlers=[handler])

    for handler in root.handlers:
        if not any(isinstance(existing, RunIdFilter) for existing in handler.filters):
            handler.addFilter(RunIdFilter())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_run_id(run_id: str) -> None:
    run_id_var.set(run_id)


__all__ = ["RunIdFilter", "StructuredFormatter", "set_run_id", "setup_logging"]
