from rest_framework import serializers
from social.models import User


class UserSummarySerializer(serializers.ModelSerializer):
    """The short form of a user embedded in messages and edge listings."""
    _id          = serializers.CharField(source="pk", read_only=True)
    fullName     = serializers.CharField(source="full_name")
    profileImage = serializers.CharField(source="profile_image", required=False)

    class Meta:
        model  = User
        fields = ["_id", "fullName", "profileImage"]


class UserSerializer(serializers.ModelSerializer):
    _id          = serializers.CharField(source="pk", read_only=True)
    fullName     = serializers.CharField(source="full_name")
    idNumber     = serializers.CharField(source="id_number", allow_null=True, required=False)
    profileImage = serializers.CharField(source="profile_image", required=False)
    lastSeen     = serializers.DateTimeField(source="last_seen", allow_null=True, read_only=True)

    class Meta:
        model  = User
        fields = ["_id", "fullName", "email", "idNumber", "role", "profileImage", "active", "lastSeen"]
