"""
Unified exception hierarchy.

Every business exception derives from BaseAppException and carries:
- type:        error kind (validation_error / analysis_failed / ...)
- code:        business error code (RECORD_NOT_FOUND / AI_RESPONSE_INVALID / ...)
- message:     human readable description
- detail:      optional extra payload (dict / list / None)
- http_status: HTTP status code

Views only raise; exception_handler formats the response.
"""


class BaseAppException(Exception):
    """Base class of all business exceptions."""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """Malformed intake data. Raised by intake adapters, 400."""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class AnalysisFailed(BaseAppException):
    """
    Catch-all at the orchestrator boundary.

    The only failure the dashboard needs to tell apart from success.
    AIResponseInvalid and RecordNotFound are subclasses so callers that
    only care about "did it work" can catch this one class.
    """

    type = 'analysis_failed'
    code = 'ANALYSIS_FAILED'
    http_status = 502


class AIResponseInvalid(AnalysisFailed):
    """The model answer failed JSON parsing or schema validation."""

    code = 'AI_RESPONSE_INVALID'


class RecordNotFound(AnalysisFailed):
    """Lookup by id / fingerprint found nothing."""

    type = 'not_found'
    code = 'RECORD_NOT_FOUND'
    http_status = 404


class UpstreamUnavailable(BaseAppException):
    """
    Graph database unreachable.

    Never surfaced to callers: the graph layer logs it and switches to the
    in-memory fallback.
    """

    type = 'upstream_unavailable'
    code = 'UPSTREAM_UNAVAILABLE'
    http_status = 503
