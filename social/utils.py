import logging
from django.http import Http404
from rest_framework import serializers
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import ServerError

logger = logging.getLogger(__name__)

_timestamp_field = serializers.DateTimeField()


def room_name(user_a_id, user_b_id):
    """Return the broadcast room key shared by two users: their ids sorted
    and joined with an underscore."""
    return "_".join(sorted([str(user_a_id), str(user_b_id)]))


def format_timestamp(value):
    """Render a datetime the way DRF serializers do, None stays None."""
    if value is None:
        return None
    return _timestamp_field.to_representation(value)


def error_message(detail):
    """Flatten an ``APIException.detail`` (string, list or dict of errors)
    into the first human readable message."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = error_message(value)
            if key == "non_field_errors":
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return error_message(detail[0]) if detail else ""
    return str(detail)


def failure_payload(exc):
    """Shape an exception into the ``{"success": false, "message": ...}``
    body used by both the HTTP views and the socket acknowledgements."""
    if isinstance(exc, APIException):
        return {"success": False, "message": error_message(exc.detail)}
    return {"success": False, "message": ServerError.default_detail}


def exception_handler(exc, context):
    """
    DRF exception handler: every failure becomes a structured body with the
    exception's status code. Exceptions DRF does not know about are logged
    and reported as a generic 500.
    """
    response = drf_exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, Http404):
            response.data = {"success": False, "message": "Not found."}
        else:
            response.data = failure_payload(exc)
        return response

    view = context.get("view")
    logger.exception("Unhandled error in %s", type(view).__name__ if view else "request")
    return Response(failure_payload(exc), status=ServerError.status_code)
