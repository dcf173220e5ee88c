"""
Socket.IO event wiring. Each event runs one relay operation to completion;
whatever it returns is sent back as the client's acknowledgement.
"""
import functools
import logging
import socketio
from django.conf import settings
from django.db import close_old_connections
from rest_framework.exceptions import APIException

from .presence import Relay
from .utils import failure_payload

logger = logging.getLogger(__name__)


def _cors_origins():
    origins = getattr(settings, "SOCKETIO_CORS_ALLOWED_ORIGINS", ["*"])
    return "*" if "*" in origins else origins


sio = socketio.Server(async_mode="threading", cors_allowed_origins=_cors_origins())
relay = Relay(sio)


def socket_event(handler):
    """Report failures of an event handler as ``{"success": false, ...}``
    instead of letting them reach the socket server."""
    @functools.wraps(handler)
    def wrapper(sid, *args):
        close_old_connections()
        try:
            return handler(sid, *args)
        except APIException as exc:
            logger.info("%s rejected for %s: %s", handler.__name__, sid, exc)
            return failure_payload(exc)
        except Exception as exc:
            logger.exception("%s failed for %s", handler.__name__, sid)
            return failure_payload(exc)
        finally:
            close_old_connections()
    return wrapper


@sio.event
def connect(sid, environ, auth=None):
    logger.debug("Socket connected: %s", sid)


@sio.event
def disconnect(sid, *args):
    relay.disconnect(sid)


@socket_event
def join_room(sid, user_id, chat_id):
    relay.join_room(sid, user_id, chat_id)


@socket_event
def set_active(sid, user_id):
    return relay.set_active(sid, user_id)


@socket_event
def set_inactive(sid, user_id):
    return relay.set_inactive(sid, user_id)


@socket_event
def add_message(sid, body):
    return relay.send_message(sid, body)


@socket_event
def search_user(sid, user_id, term):
    return relay.search_users(user_id, term)


sio.on("joinRoom", join_room)
sio.on("setActive", set_active)
sio.on("setInactive", set_inactive)
# older clients spell it this way
sio.on("setInActive", set_inactive)
sio.on("addMessage", add_message)
sio.on("searchUser", search_user)
