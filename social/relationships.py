"""
Follow-approval engine.

Every mutation runs in one transaction that first locks both user rows, so
two handlers touching the same pair of users are serialized. Edges are
updated row by row. A chat is provisioned as soon as a pair becomes mutual,
and the unique constraint on the chat's participant pair keeps provisioning
idempotent even against a concurrent insert.
"""
import logging
from collections import namedtuple
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from .exceptions import Conflict, InvalidRequest, NotFollowing
from .models import Chat, Follow, FollowState, User

logger = logging.getLogger(__name__)

FollowOutcome = namedtuple("FollowOutcome", ["message", "follower", "target", "chat"])


def _lock_pair(first_id, second_id):
    """Lock and return both users, always in primary key order."""
    if not first_id or not second_id:
        raise ValidationError("Both user ids are required.")
    first_id, second_id = str(first_id), str(second_id)
    users = {
        user.pk: user
        for user in User.objects.select_for_update().filter(pk__in=[first_id, second_id]).order_by("pk")
    }
    first, second = users.get(first_id), users.get(second_id)
    if first is None or second is None:
        raise NotFound("User not found.")
    return first, second


def _distinct_pair(follower_id, target_id):
    if follower_id and str(follower_id) == str(target_id):
        raise InvalidRequest("You cannot follow yourself.")
    return _lock_pair(follower_id, target_id)


def is_mutual(user_a, user_b):
    """Both directed edges between the two users are approved, read fresh
    from the store."""
    return Follow.objects.filter(
        Q(follower=user_a, target=user_b) | Q(follower=user_b, target=user_a),
        state=FollowState.APPROVED,
    ).count() == 2


def provision_chat(user_a, user_b):
    """Return the chat between the two users, creating it if none exists."""
    one, two = Chat.ordered_pair(user_a.pk, user_b.pk)
    chat, created = Chat.objects.get_or_create(participant_one_id=one, participant_two_id=two)
    if created:
        logger.info("Provisioned chat %s for %s and %s", chat.pk, one, two)
    return chat


def _provision_if_mutual(user_a, user_b):
    if is_mutual(user_a, user_b):
        return provision_chat(user_a, user_b)
    return None


def request_follow(follower_id, target_id):
    """
    Create a pending edge follower -> target.

    If the target had already asked to follow the follower and is still
    waiting, the request is a follow-back: both edges become approved at once
    and the pair gets its chat.
    """
    with transaction.atomic():
        follower, target = _distinct_pair(follower_id, target_id)

        if Follow.objects.filter(follower=follower, target=target).exists():
            raise Conflict("Follow request already exists.")

        reverse = Follow.objects.filter(follower=target, target=follower).first()
        if reverse is not None and reverse.state == FollowState.PENDING:
            reverse.state = FollowState.APPROVED
            reverse.save(update_fields=["state", "updated_at"])
            Follow.objects.create(follower=follower, target=target, state=FollowState.APPROVED)
            message = "Followed back, you are now friends."
        else:
            Follow.objects.create(follower=follower, target=target)
            message = "Follow request sent."

        chat = _provision_if_mutual(follower, target)

    logger.info("Follow %s -> %s: %s", follower.pk, target.pk, message)
    return FollowOutcome(message, follower, target, chat)


def unfollow(follower_id, target_id):
    """Remove the edge follower -> target whatever its state. Also used by
    the target to reject a pending request."""
    with transaction.atomic():
        follower, target = _distinct_pair(follower_id, target_id)

        deleted, _ = Follow.objects.filter(follower=follower, target=target).delete()
        if not deleted:
            raise NotFollowing()

    logger.info("Unfollow %s -> %s", follower.pk, target.pk)
    return FollowOutcome("Unfollowed successfully.", follower, target, None)


def approve_follow(user_id, follower_id):
    """
    Approve the edge follower -> user. Approving an already approved edge
    changes nothing. When the user also has an approved edge back to the
    follower, the pair's chat is provisioned.
    """
    with transaction.atomic():
        user, follower = _lock_pair(user_id, follower_id)

        updated = Follow.objects.filter(
            follower=follower, target=user, state=FollowState.PENDING
        ).update(state=FollowState.APPROVED, updated_at=timezone.now())
        if updated:
            message = "Follow request approved."
        elif Follow.objects.filter(follower=follower, target=user).exists():
            message = "Follow request already approved."
        else:
            raise NotFound("Follow request not found.")

        chat = _provision_if_mutual(user, follower)

    logger.info("Approve %s -> %s: %s", follower.pk, user.pk, message)
    return FollowOutcome(message, follower, user, chat)


def friends_of(user_id):
    """Users with approved edges in both directions with ``user_id``."""
    following = Follow.objects.filter(
        follower_id=user_id, state=FollowState.APPROVED
    ).values_list("target_id", flat=True)
    followers = Follow.objects.filter(
        target_id=user_id, state=FollowState.APPROVED
    ).values_list("follower_id", flat=True)

    mutual_ids = set(following).intersection(set(followers))
    return User.objects.filter(pk__in=mutual_ids).order_by("full_name")
