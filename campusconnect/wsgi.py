"""
WSGI entry point. HTTP requests go to Django, Socket.IO traffic under
/socket.io/ is handled by the relay's server.
"""
import os

import socketio
from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "campusconnect.settings")

django_application = get_wsgi_application()

from social.sockets import sio  # noqa: E402  (needs the app registry loaded)

application = socketio.WSGIApp(sio, django_application)
