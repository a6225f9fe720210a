"""
Error taxonomy for the ingestion pipeline.

Every error carries an HTTP status, a stable code and a client-safe message.
Internal detail (tool stderr, botocore messages) goes in ``detail`` and the
exception chain; it is logged but never rendered to the client.
"""
from typing import Optional


class TubelyError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    message = "Internal error"
    stage: Optional[str] = None

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "stage": self.stage}


class BadRequest(TubelyError):
    status_code = 400
    message = "Bad request"


class Unauthorized(TubelyError):
    status_code = 401
    message = "Missing or invalid credentials"


class Forbidden(TubelyError):
    status_code = 403
    message = "You are not the owner of this video"


class NotFound(TubelyError):
    status_code = 404
    message = "Video not found"


class PayloadTooLarge(TubelyError):
    status_code = 413
    message = "Upload exceeds the maximum allowed size"


class UnsupportedMediaType(TubelyError):
    status_code = 415
    message = "Unsupported media type"


class ProcessingFailed(TubelyError):
    """An external step of the pipeline failed; ``stage`` names which one."""

    status_code = 500
    message = "Processing failed"

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message, detail)
        if stage is not None:
            self.stage = stage


class StagingFailed(ProcessingFailed):
    message = "Couldn't stage upload"
    stage = "stage"


class ProbeFailed(ProcessingFailed):
    status_code = 422
    message = "Couldn't inspect video"
    stage = "probe"


class NormalizeFailed(ProcessingFailed):
    status_code = 422
    message = "Couldn't process video"
    stage = "normalize"


class UploadFailed(ProcessingFailed):
    status_code = 502
    message = "Couldn't store media"
    stage = "upload"


class SigningFailed(ProcessingFailed):
    status_code = 502
    message = "Couldn't generate media URL"
    stage = "sign"


class PersistenceFailed(ProcessingFailed):
    message = "Couldn't update video record"
    stage = "persist"
