"""
Failure classes raised by the follow engine, the discovery query and the
relay. All of them are DRF exceptions so views let them propagate to
``social.utils.exception_handler`` and socket handlers catch them by their
common ``APIException`` base.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError


class InvalidRequest(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."
    default_code = "invalid_request"


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


class Unauthorized(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."
    default_code = "unauthorized"


class NotFollowing(NotFound):
    default_detail = "You are not following this user."
    default_code = "not_following"


class ServerError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error"
    default_code = "server_error"


__all__ = [
    "Conflict",
    "InvalidRequest",
    "NotFollowing",
    "NotFound",
    "ServerError",
    "Unauthorized",
    "ValidationError",
]
