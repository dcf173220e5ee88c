from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from social.exceptions import Unauthorized
from social.models import Chat, Message, User
from social.serializers import ChatSerializer, MessageSerializer, SeenSerializer


# query /api/chats/?user=<id>
class ChatListAPIView(APIView):
    """
    Chats of a user, most recent activity first. Each row names the other
    participant and previews the last message.
    """
    def get(self, request):
        user_id = request.query_params.get("user")
        if not user_id:
            return Response(
                {"success": False, "message": "User ID is required"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        user = get_object_or_404(User, pk=user_id)

        chats = (
            Chat.objects.for_user(user.pk)
            .select_related("participant_one", "participant_two", "last_message")
            .order_by("-updated_at")
        )
        return Response({
            "success": True,
            "message": "Chats fetched successfully",
            "chats": ChatSerializer(chats, many=True, context={"user_id": user.pk}).data,
        })


class ChatMessagesAPIView(APIView):
    """
    GET /api/chats/{chat_id}/messages/
    All messages of a chat, oldest first.
    """
    def get(self, request, chat_id):
        chat = get_object_or_404(Chat, pk=chat_id)
        messages = (
            Message.objects.filter(chat=chat)
            .select_related("sender")
            .prefetch_related("seen_by")
            .order_by("created_at", "id")
        )
        return Response({
            "success": True,
            "message": "Messages fetched successfully",
            "messages": MessageSerializer(messages, many=True).data,
        })


class MessageSeenAPIView(APIView):
    """
    POST /api/chats/{chat_id}/seen/ with {"user": <id>}
    Adds the user to ``seenBy`` of every message in the chat the user did not
    send. Only participants may do this.
    """
    def post(self, request, chat_id):
        serializer = SeenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        viewer_id = serializer.validated_data["user"]

        chat = get_object_or_404(Chat, pk=chat_id)
        viewer = get_object_or_404(User, pk=viewer_id)
        if chat.other_participant_id(viewer.pk) is None:
            raise Unauthorized("Only chat participants can mark messages as seen.")

        unseen = list(
            Message.objects.filter(chat=chat)
            .exclude(sender=viewer)
            .exclude(seen_by=viewer)
        )
        viewer.seen_messages.add(*unseen)

        return Response({"success": True, "message": "Messages marked as seen", "updated": len(unseen)})
