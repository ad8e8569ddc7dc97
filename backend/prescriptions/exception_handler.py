"""
Unified exception handler.

Hooked into DRF through the EXCEPTION_HANDLER setting.
Every response can be checked by the dashboard the same way:
  response.type present  → something went wrong
  no type field          → success

Error body:
{
    "type":    "validation_error" | "analysis_failed" | "not_found" | ...,
    "code":    "RECORD_NOT_FOUND",
    "message": "No prescription with id 'rx-...'",
    "detail":  { ... }  // optional
}
"""

import logging

from rest_framework.views import exception_handler as drf_default_handler
from rest_framework.exceptions import ValidationError as DRFValidationError
from django.http import JsonResponse

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    Priority:
    1. BaseAppException and subclasses → unified body
    2. DRF ValidationError → converted to the unified body
    3. anything else → DRF default handling
    """

    if isinstance(exc, BaseAppException):
        if exc.http_status >= 500:
            logger.warning("[API] %s (%s): %s", exc.code, exc.http_status, exc.message)
        body = {
            'type': exc.type,
            'code': exc.code,
            'message': exc.message,
        }
        if exc.detail is not None:
            body['detail'] = exc.detail
        return JsonResponse(body, status=exc.http_status)

    if isinstance(exc, DRFValidationError):
        body = {
            'type': 'validation_error',
            'code': 'VALIDATION_ERROR',
            'message': 'Request validation failed',
            'detail': exc.detail,
        }
        return JsonResponse(body, status=400)

    return drf_default_handler(exc, context)
