from django.conf import settings
from rest_framework.exceptions import NotFound

from .models import FollowState, User


def discover(user_id, sample_size=None):
    """
    Read-only view of a user's relationship state, in four buckets:

    - ``sent``: users this user asked to follow who have not approved yet.
    - ``received``: users waiting for this user's approval.
    - ``not_following_back``: users this user follows (approved) whose own
      edge back is missing or still pending.
    - ``suggestions``: a random sample of other students with no edge to or
      from this user.
    """
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found.")

    if sample_size is None:
        sample_size = getattr(settings, "SOCIAL_SUGGESTION_SAMPLE_SIZE", 10)

    following = {edge.target_id: edge.state for edge in user.following.all()}
    followers = {edge.follower_id: edge.state for edge in user.followers.all()}

    sent = [uid for uid, state in following.items() if state == FollowState.PENDING]
    received = [uid for uid, state in followers.items() if state == FollowState.PENDING]
    not_following_back = [
        uid for uid, state in following.items()
        if state == FollowState.APPROVED and followers.get(uid) != FollowState.APPROVED
    ]

    connected = set(following) | set(followers) | {user.pk}
    suggestions = list(
        User.objects.exclude(pk__in=connected)
        .exclude(role=User.Role.ADMIN)
        .order_by("?")[:sample_size]
    )

    return {
        "sent": _in_order(sent),
        "received": _in_order(received),
        "not_following_back": _in_order(not_following_back),
        "suggestions": suggestions,
    }


def _in_order(user_ids):
    users = User.objects.in_bulk(user_ids)
    return [users[uid] for uid in user_ids if uid in users]


def search_users(current_user_id, term):
    """Case-insensitive name search for people to follow: skips the caller,
    admins and anyone the caller already follows or has asked to follow."""
    followed = User.objects.filter(followers__follower_id=current_user_id).values_list("pk", flat=True)
    return (
        User.objects.filter(full_name__icontains=term or "")
        .exclude(pk=current_user_id)
        .exclude(role=User.Role.ADMIN)
        .exclude(pk__in=list(followed))
        .order_by("full_name")
    )
