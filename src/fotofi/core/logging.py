"""Logging configuration for fotofi.

Records are single-line JSON outside local development. While an upload
request is being handled, its object key and upload id are attached to
every record through context variables.
"""

import contextvars
import json
import logging
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

# "bucket/fileName" of the upload being handled in request scope
object_key_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "object_key", default=None
)
upload_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "upload_id", default=None
)

# Attributes every LogRecord carries; anything else came from extra={...}
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "openai")


@dataclass
class UploadLogContext:
    """Tokens for undoing ``bind_upload_context``."""

    object_key: contextvars.Token
    upload_id: contextvars.Token

    def reset(self) -> None:
        object_key_context.reset(self.object_key)
        upload_id_context.reset(self.upload_id)


def bind_upload_context(
    bucket_name: str | None, file_name: str | None, upload_id: str | None
) -> UploadLogContext:
    """Attach an upload's identity to log records emitted in this context."""
    object_key = f"{bucket_name}/{file_name}" if bucket_name and file_name else None
    return UploadLogContext(
        object_key=object_key_context.set(object_key),
        upload_id=upload_id_context.set(upload_id),
    )


class CloudLoggingFormatter(logging.Formatter):
    """Formats records as single-line JSON for log ingestion.

    Fields passed through ``extra={...}`` become top-level keys. The upload
    context is added when set, without overriding an explicit extra of the
    same name.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        )

        for key, context in (("object_key", object_key_context), ("upload_id", upload_id_context)):
            value = context.get()
            if value and entry.get(key) is None:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
            entry["exception_type"] = exc_type.__name__
            entry["exception_message"] = str(exc_value)

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Route all application and server logs to one stdout handler.

    Args:
        level: Level name (default: DEBUG locally, else LOG_LEVEL)
        json_logs: Emit JSON (default: everywhere except ENV=local)
    """
    from fotofi.core.config import settings

    local = settings.ENV == "local"
    if json_logs is None:
        json_logs = not local
    level_name = (level or ("DEBUG" if local else settings.LOG_LEVEL)).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(CloudLoggingFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers[:] = [handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.setLevel(log_level)
        server_logger.handlers[:] = [handler]
        server_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
