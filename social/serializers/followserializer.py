from rest_framework import serializers
from social.models import Follow
from .userserializer import UserSerializer, UserSummarySerializer


class FollowActionSerializer(serializers.Serializer):
    """
    Body of every follow action: ``follower`` is the user who follows (or
    asked to), ``target`` the user being followed.
    """
    follower = serializers.CharField()
    target   = serializers.CharField()


class FollowSerializer(serializers.ModelSerializer):
    follower  = UserSummarySerializer(read_only=True)
    target    = serializers.CharField(source="target_id", read_only=True)
    approved  = serializers.BooleanField(read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model  = Follow
        fields = ["follower", "target", "state", "approved", "createdAt"]


class RelationshipSerializer(UserSerializer):
    """
    A user together with both edge lists, in request order:

        following: [{"user": <target id>, "approved": bool, "state": str}, ...]
        followers: [{"user": <follower id>, "approved": bool, "state": str}, ...]
    """
    following = serializers.SerializerMethodField()
    followers = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["following", "followers"]

    def get_following(self, obj):
        return [
            {"user": edge.target_id, "approved": edge.approved, "state": edge.state}
            for edge in obj.following.all()
        ]

    def get_followers(self, obj):
        return [
            {"user": edge.follower_id, "approved": edge.approved, "state": edge.state}
            for edge in obj.followers.all()
        ]
