"""
Presence and messaging relay.

Rooms are tracked by the socket server through ``PresenceRegistry``: a room is
keyed by the sorted pair of two user ids and exists only while at least one
connection is in it.
Broadcasts are best effort and at most once. Each emit is handed to the
socket server in the order the relay produces it and nothing waits for the
receiving clients.
"""
import logging
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from .discovery import search_users
from .models import Chat, Message, PAYLOAD_FIELDS, User
from .serializers import MessageSerializer, OutgoingMessageSerializer, UserSerializer
from .utils import error_message, format_timestamp, room_name

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Room membership of live connections, kept by the socket server itself.
    Every connection also sits in a private room named after its own sid,
    which is not a chat room and is never reported.
    """

    def __init__(self, server):
        self.server = server

    def join(self, sid, room):
        self.server.enter_room(sid, room)

    def rooms_of(self, sid):
        return {room for room in self.server.rooms(sid) if room != sid}

    def drop(self, sid):
        """Remove a connection from every chat room it joined. Returns those rooms."""
        rooms = self.rooms_of(sid)
        for room in rooms:
            self.server.leave_room(sid, room)
        return rooms


class Relay:
    """
    Socket-facing operations. ``server`` is a ``socketio.Server``, or
    anything with its ``emit``, ``enter_room``, ``leave_room`` and ``rooms``.
    """

    def __init__(self, server, registry=None):
        self.server = server
        self.registry = registry if registry is not None else PresenceRegistry(server)

    def broadcast(self, event, data):
        self.server.emit(event, data)

    def emit_to_room(self, event, data, room, skip_sid=None):
        self.server.emit(event, data, to=room, skip_sid=skip_sid)

    def join_room(self, sid, user_id, chat_id):
        """Join the room of a chat. Unknown chats or users are ignored."""
        chat = Chat.objects.filter(pk=chat_id).first()
        if chat is None:
            logger.warning("joinRoom: chat %s not found", chat_id)
            return None
        other_id = chat.other_participant_id(user_id)
        if other_id is None:
            logger.warning("joinRoom: %s is not part of chat %s", user_id, chat_id)
            return None
        room = room_name(user_id, other_id)
        self.registry.join(sid, room)
        return room

    def set_active(self, sid, user_id):
        """
        Mark the user online, tell everyone, and join the rooms of the chats
        whose other participant is online too. Those friends are returned.
        """
        if not User.objects.filter(pk=user_id).update(active=True, last_seen=None):
            raise NotFound("User not found.")
        self.broadcast("newUserOnline", user_id)
        logger.info("User %s is online", user_id)

        active_friends = []
        chats = Chat.objects.for_user(user_id).select_related("participant_one", "participant_two")
        for chat in chats:
            friend = chat.other_participant(user_id)
            if friend is None or not friend.active:
                continue

            room = room_name(user_id, friend.pk)
            self.registry.join(sid, room)
            self.emit_to_room("userActive", {"userId": user_id, "chatId": chat.pk}, room, skip_sid=sid)

            active_friends.append({
                "_id": friend.pk,
                "fullName": friend.full_name,
                "profileImage": friend.profile_image,
                "chatId": chat.pk,
            })

        return {
            "success": True,
            "message": "Marked active and joined chat rooms",
            "activeFriends": active_friends,
        }

    def set_inactive(self, sid, user_id):
        """Mark the user offline and notify every chat room of the user,
        whether or not the friend is listening."""
        last_seen = timezone.now()
        if not User.objects.filter(pk=user_id).update(active=False, last_seen=last_seen):
            raise NotFound("User not found.")
        self.broadcast("newUserOffline", user_id)
        logger.info("User %s is offline", user_id)

        for chat in Chat.objects.for_user(user_id):
            other_id = chat.other_participant_id(user_id)
            if other_id is None:
                continue
            self.emit_to_room(
                "userInactive",
                {"userId": user_id, "chatId": chat.pk, "lastSeen": format_timestamp(last_seen)},
                room_name(user_id, other_id),
                skip_sid=sid,
            )
        return {"success": True}

    def send_message(self, sid, body):
        """
        Store a message and relay it to the chat's room. The sender's
        connection joins the room first, so the sender's other tabs in the
        room receive it too.
        """
        serializer = OutgoingMessageSerializer(data=body if isinstance(body, dict) else {})
        if not serializer.is_valid():
            raise ValidationError(error_message(list(serializer.errors.values())))
        data = serializer.validated_data
        message_type, value = data["type"], data["value"]
        sender_id, chat_id = data["userId"], data["chatId"]

        chat = Chat.objects.filter(pk=chat_id).first()
        if chat is None:
            raise NotFound("Chat not found")
        receiver_id = chat.other_participant_id(sender_id)
        if receiver_id is None:
            raise NotFound("Receiver not found")

        with transaction.atomic():
            message = Message.objects.create(
                chat=chat, sender_id=sender_id, **{PAYLOAD_FIELDS[message_type]: value}
            )
            Chat.objects.filter(pk=chat.pk).update(last_message=message, updated_at=timezone.now())

        message = Message.objects.select_related("sender").get(pk=message.pk)
        message_data = MessageSerializer(message).data

        room = room_name(sender_id, receiver_id)
        self.registry.join(sid, room)
        self.emit_to_room("newMessage", {
            "senderId": sender_id,
            "receiverId": receiver_id,
            "chatId": chat.pk,
            "type": message_type,
            "value": value,
            "messageData": message_data,
        }, room)
        logger.info("Message %s relayed to room %s", message.pk, room)

        return {"success": True, "data": message_data}

    def search_users(self, user_id, term):
        users = search_users(user_id, term)
        return {"success": True, "users": UserSerializer(users, many=True).data}

    def disconnect(self, sid):
        rooms = self.registry.drop(sid)
        logger.debug("Connection %s left %d room(s)", sid, len(rooms))
