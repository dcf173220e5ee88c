from django.db import models
from .user import User


class FollowState(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"


class Follow(models.Model):
    """
    A directed follow edge from ``follower`` to ``target``.

    One row backs both sides of the relationship: it is an entry of the
    follower's ``following`` list and of the target's ``followers`` list.
    There is no rejected state, rejecting a request deletes the row.

    Fields:
        - follower: The user who asked to follow.
        - target: The user being followed.
        - state: ``pending`` until the target approves, then ``approved``.
        - created_at: When the request was made. Orders both lists.
    """
    follower   = models.ForeignKey(User, related_name="following", on_delete=models.CASCADE, db_index=True)
    target     = models.ForeignKey(User, related_name="followers", on_delete=models.CASCADE, db_index=True)

    state      = models.CharField(max_length=16, choices=FollowState.choices, default=FollowState.PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["follower", "target"], name="unique_follow_edge"),
        ]

    def __str__(self):
        return f"{self.follower_id} -> {self.target_id} ({self.state})"

    @property
    def approved(self) -> bool:
        return self.state == FollowState.APPROVED
