"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- video_id
- user_id
- kind
- stage
- duration_ms

Usage:
    from tubely.utils.logging import configure_logging, log_ingest_started

    configure_logging('tubely-api', 'INFO')
    log_ingest_started(logger, video_id='123', user_id='456', kind='video')
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (e.g. tubely-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    video_id: Optional[str] = None,
    user_id: Optional[str] = None,
    kind: Optional[str] = None,
    stage: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        video_id: Optional video ID
        user_id: Optional user ID
        kind: Optional media kind (video/thumbnail)
        stage: Optional pipeline stage
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if video_id:
        extra["video_id"] = video_id
    if user_id:
        extra["user_id"] = user_id
    if kind:
        extra["kind"] = kind
    if stage:
        extra["stage"] = stage
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Ingestion event functions

def log_ingest_started(
    logger: logging.Logger,
    video_id: str,
    user_id: str,
    kind: str,
    content_type: Optional[str] = None,
    **kwargs
):
    """
    Log the start of an ingestion.

    Args:
        logger: Logger instance
        video_id: Target video ID (required)
        user_id: Authenticated principal (required)
        kind: Media kind (required)
        content_type: Declared content type
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="ingest_started",
        video_id=video_id,
        user_id=user_id,
        kind=kind,
        **kwargs
    )
    if content_type:
        extra["content_type"] = content_type

    logger.info(f"Ingest started: {kind} for video {video_id}", extra=extra)


def log_ingest_completed(
    logger: logging.Logger,
    video_id: str,
    user_id: str,
    kind: str,
    duration_ms: float,
    reference: Optional[str] = None,
    **kwargs
):
    """
    Log a successful ingestion.

    Args:
        logger: Logger instance
        video_id: Target video ID (required)
        user_id: Authenticated principal (required)
        kind: Media kind (required)
        duration_ms: Duration in milliseconds (required)
        reference: Stored reference (inline data is not logged)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="ingest_completed",
        video_id=video_id,
        user_id=user_id,
        kind=kind,
        duration_ms=duration_ms,
        **kwargs
    )
    if reference and not reference.startswith("data:"):
        extra["reference"] = reference

    logger.info(f"Ingest completed: {kind} for video {video_id}", extra=extra)


def log_ingest_failed(
    logger: logging.Logger,
    video_id: str,
    user_id: str,
    kind: str,
    error: Exception,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a failed ingestion.

    Client errors (4xx) are logged as warnings without a stack trace;
    server-side failures get the traceback of the active exception.

    Args:
        logger: Logger instance
        video_id: Target video ID (required)
        user_id: Authenticated principal (required)
        kind: Media kind (required)
        error: The raised error (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    status_code = getattr(error, "status_code", 500)
    extra = _build_log_extra(
        event="ingest_failed",
        video_id=video_id,
        user_id=user_id,
        kind=kind,
        stage=getattr(error, "stage", None),
        duration_ms=duration_ms,
        error=str(error),
        error_code=type(error).__name__,
        **kwargs
    )
    detail = getattr(error, "detail", None)
    if detail:
        extra["detail"] = detail

    message = f"Ingest failed: {kind} for video {video_id} - {error}"
    if status_code >= 500:
        logger.error(message, extra=extra, exc_info=sys.exc_info()[0] is not None)
    else:
        logger.warning(message, extra=extra)


def log_tool_failure(
    logger: logging.Logger,
    tool: str,
    path: str,
    returncode: Optional[int] = None,
    stderr: Optional[str] = None,
    **kwargs
):
    """
    Log an external tool failure with its diagnostic output.

    Args:
        logger: Logger instance
        tool: Tool name (ffprobe, ffmpeg) (required)
        path: Input file (required)
        returncode: Exit status, None if the tool couldn't be launched
        stderr: Captured stderr (tail)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="tool_failure",
        tool=tool,
        path=path,
        **kwargs
    )
    if returncode is not None:
        extra["returncode"] = returncode
    if stderr:
        extra["stderr"] = stderr

    logger.error(f"Tool failure: {tool} on {path} (exit {returncode})", extra=extra)


# Convenience alias
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
