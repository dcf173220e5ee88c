from django.db import models
from django.db.models import F, Q
from .user import User, generate_object_id


class ChatQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(Q(participant_one_id=user_id) | Q(participant_two_id=user_id))


class Chat(models.Model):
    """
    A direct conversation between exactly two users.

    The pair is stored sorted by user id so the unique constraint covers the
    unordered pair: there is at most one chat per two users. ``save`` sorts
    the pair, and a check constraint rejects unsorted rows written around it.
    """
    id = models.CharField(
        primary_key=True, max_length=64, default=generate_object_id, editable=False
    )
    participant_one = models.ForeignKey(User, related_name="+", on_delete=models.CASCADE)
    participant_two = models.ForeignKey(User, related_name="+", on_delete=models.CASCADE)

    last_message = models.ForeignKey(
        "Message", null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ChatQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["participant_one", "participant_two"], name="unique_chat_pair"
            ),
            models.CheckConstraint(
                condition=Q(participant_one__lt=F("participant_two")), name="chat_pair_sorted"
            ),
        ]

    def __str__(self):
        return f"Chat {self.participant_one_id} / {self.participant_two_id}"

    def save(self, *args, **kwargs):
        if self.participant_one_id and self.participant_two_id:
            self.participant_one_id, self.participant_two_id = Chat.ordered_pair(
                self.participant_one_id, self.participant_two_id
            )
        super().save(*args, **kwargs)

    @staticmethod
    def ordered_pair(user_a_id, user_b_id):
        return tuple(sorted([str(user_a_id), str(user_b_id)]))

    @property
    def participant_ids(self):
        return [self.participant_one_id, self.participant_two_id]

    def other_participant_id(self, user_id):
        """Return the id of the participant that is not ``user_id``, or None
        when ``user_id`` is not part of this chat."""
        user_id = str(user_id)
        if user_id == self.participant_one_id:
            return self.participant_two_id
        if user_id == self.participant_two_id:
            return self.participant_one_id
        return None

    def other_participant(self, user_id):
        other_id = self.other_participant_id(user_id)
        if other_id is None:
            return None
        if other_id == self.participant_one_id:
            return self.participant_one
        return self.participant_two
