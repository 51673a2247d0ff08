import logging

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PayloadTooLarge(APIException):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_detail = "Video file is too large."
    default_code = "payload_too_large"


def _first_message(detail) -> str:
    """Flatten DRF's nested error detail down to its first message."""
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail) if detail else "Invalid request"


def api_exception_handler(exc, context):
    """
    Every error leaves as {"error": "..."}. Anything DRF does not recognise
    is logged and answered with a bare 500; no internals reach the caller.
    """
    if isinstance(exc, ValidationError):
        return Response({"error": _first_message(exc.detail)}, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)
    if response is not None:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        response.data = {"error": str(detail or "Request failed")}
        return response

    logger.error("Unhandled error", exc_info=exc)
    return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
