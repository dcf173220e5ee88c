from django.db import models
from .user import User, generate_object_id
from .chat import Chat


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    FILE = "file", "File"


# message type -> model field holding the payload
PAYLOAD_FIELDS = {
    MessageType.TEXT.value: "content",
    MessageType.IMAGE.value: "image",
    MessageType.VIDEO.value: "video",
    MessageType.FILE.value: "file",
}


class Message(models.Model):
    """
    A chat message. Exactly one of content/image/video/file is set.
    Immutable after creation except for ``seen_by``, which only grows.
    """
    id = models.CharField(
        primary_key=True, max_length=64, default=generate_object_id, editable=False
    )
    chat   = models.ForeignKey(Chat, related_name="messages", on_delete=models.CASCADE, db_index=True)
    sender = models.ForeignKey(User, related_name="messages_sent", on_delete=models.CASCADE)

    content = models.TextField(null=True, blank=True)
    image   = models.TextField(null=True, blank=True)
    video   = models.TextField(null=True, blank=True)
    file    = models.TextField(null=True, blank=True)

    seen_by = models.ManyToManyField(User, related_name="seen_messages", blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Message {self.id} in {self.chat_id}"

    @property
    def message_type(self):
        for message_type, field in PAYLOAD_FIELDS.items():
            if getattr(self, field) is not None:
                return message_type
        return None

    @property
    def payload(self):
        message_type = self.message_type
        if message_type is None:
            return None
        return getattr(self, PAYLOAD_FIELDS[message_type])
