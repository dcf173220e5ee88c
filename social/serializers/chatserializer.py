from rest_framework import serializers
from social.utils import format_timestamp


class ChatSerializer(serializers.Serializer):
    """
    One row of a user's chat list, seen from ``context["user_id"]``: the other
    participant's name and picture plus a preview of the last message.
    """
    def to_representation(self, instance):
        user_id = self.context["user_id"]
        other = instance.other_participant(user_id)
        last = instance.last_message
        return {
            "chatId":       instance.pk,
            "userId":       other.pk if other else None,
            "fullName":     other.full_name if other else "",
            "profileImage": other.profile_image if other else "",
            "lastMessage":  (last.content or "") if last else "",
            "time":         format_timestamp(last.created_at if last else instance.updated_at),
        }
