from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from social import relationships
from social.discovery import discover
from social.models import Follow, FollowState, User
from social.serializers import (
    FollowActionSerializer,
    FollowSerializer,
    RelationshipSerializer,
    UserSerializer,
)


def _outcome_response(outcome, status_code=status.HTTP_200_OK):
    return Response({
        "success": True,
        "message": outcome.message,
        "follower": RelationshipSerializer(outcome.follower).data,
        "target": RelationshipSerializer(outcome.target).data,
        "chatId": outcome.chat.pk if outcome.chat else None,
    }, status=status_code)


class FollowManagerAPIView(APIView):
    """
        API endpoint for managing follow edges.

        Every write takes a JSON body {"follower": <id>, "target": <id>}.

        Methods:
        - POST: ``follower`` asks to follow ``target``.
        - PATCH: ``target`` approves the pending request from ``follower``.
        - DELETE: remove the edge follower -> target. Used both to unfollow
          and, by the target, to reject a request.
        - GET: incoming edges of ``?user=<id>``, optionally filtered with
          ``&status=pending`` or ``&status=approved``.
    """
    def post(self, request):
        serializer = FollowActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = relationships.request_follow(
            serializer.validated_data["follower"], serializer.validated_data["target"]
        )
        return _outcome_response(outcome, status.HTTP_201_CREATED)

    def patch(self, request):
        serializer = FollowActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = relationships.approve_follow(
            serializer.validated_data["target"], serializer.validated_data["follower"]
        )
        return _outcome_response(outcome)

    def delete(self, request):
        serializer = FollowActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = relationships.unfollow(
            serializer.validated_data["follower"], serializer.validated_data["target"]
        )
        return _outcome_response(outcome)

    # /api/follow/?user=<id> to get all the INCOMING edges of the user
    # /api/follow/?user=<id>&status=pending to get only the requests awaiting approval
    def get(self, request):
        user_id = request.query_params.get("user")
        state = request.query_params.get("status")

        if not user_id:
            return Response(
                {"success": False, "message": "The 'user' query parameter is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        user = get_object_or_404(User, pk=user_id)

        edges = Follow.objects.filter(target=user).select_related("follower")
        if state in FollowState.values:
            edges = edges.filter(state=state)

        return Response(FollowSerializer(edges, many=True).data)


# query /api/friends/?user=<id>
class FriendListAPIView(APIView):
    """
    Users who follow the given user and are followed back, both approved.
    """
    def get(self, request):
        user_id = request.query_params.get("user")
        if not user_id:
            return Response(
                {"success": False, "message": "The 'user' query parameter is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        user = get_object_or_404(User, pk=user_id)
        friends = relationships.friends_of(user.pk)
        return Response(UserSerializer(friends, many=True).data)


class DiscoveryAPIView(APIView):
    """
    GET /api/users/{pk}/discover/
    Return JSON {
        "sentRequests": [...],
        "receivedRequests": [...],
        "notFollowingBack": [...],
        "suggestions": [...]
    }
    """
    def get(self, request, pk):
        buckets = discover(pk)
        return Response({
            "sentRequests": UserSerializer(buckets["sent"], many=True).data,
            "receivedRequests": UserSerializer(buckets["received"], many=True).data,
            "notFollowingBack": UserSerializer(buckets["not_following_back"], many=True).data,
            "suggestions": UserSerializer(buckets["suggestions"], many=True).data,
        })
