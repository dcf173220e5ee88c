from rest_framework import serializers
from social.models import Message, MessageType
from .userserializer import UserSummarySerializer

MISSING_FIELDS = "Missing required fields"
_REQUIRED = {"required": MISSING_FIELDS, "null": MISSING_FIELDS, "blank": MISSING_FIELDS}


class OutgoingMessageSerializer(serializers.Serializer):
    """Validates the ``addMessage`` event body."""
    type   = serializers.ChoiceField(
        choices=MessageType.choices,
        error_messages={**_REQUIRED, "invalid_choice": "Invalid message type"},
    )
    value  = serializers.CharField(trim_whitespace=False, error_messages=_REQUIRED)
    userId = serializers.CharField(error_messages=_REQUIRED)
    chatId = serializers.CharField(error_messages=_REQUIRED)


class MessageSerializer(serializers.ModelSerializer):
    """A stored message with its sender expanded, as sent to clients."""
    _id       = serializers.CharField(source="pk", read_only=True)
    chat      = serializers.CharField(source="chat_id", read_only=True)
    sender    = UserSummarySerializer(read_only=True)
    type      = serializers.CharField(source="message_type", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    seenBy    = serializers.PrimaryKeyRelatedField(source="seen_by", many=True, read_only=True)

    class Meta:
        model  = Message
        fields = ["_id", "chat", "sender", "type", "content", "image", "video", "file", "createdAt", "seenBy"]


class SeenSerializer(serializers.Serializer):
    user = serializers.CharField()
