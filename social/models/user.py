import uuid
from django.db import models
from django.contrib.auth.models import AbstractUser

FIELD_MAX_LENGTH = 60


def generate_object_id():
    """Return a new 32 character hex identifier used as primary key."""
    return uuid.uuid4().hex


class User(AbstractUser):
    """
    A campus account. Inherits authentication fields from Django's AbstractUser
    and adds the profile, role and presence fields the social features need.

    Fields:
        id (str): Hex object id, generated on creation. Tests and imports may
            supply their own.
        email (str): Unique login email.
        id_number (str, optional): Student id-number, unique when present.
        role (str): ``student`` or ``admin``.
        full_name (str): Display name shown to other users.
        active (bool): Whether the user currently has the chat client open.
        last_seen (datetime, optional): When the user went inactive. Cleared
            while active.

    Notes:
        - Follow edges live in ``Follow``; ``user.following`` and
          ``user.followers`` are its reverse relations.
    """

    class Role(models.TextChoices):
        STUDENT = "student", "Student"
        ADMIN = "admin", "Admin"

    id = models.CharField(
        primary_key=True, max_length=64, default=generate_object_id, editable=False
    )

    # overriding 'username' to make the max_length shorter
    username = models.CharField(max_length=FIELD_MAX_LENGTH, unique=True)
    email = models.EmailField(unique=True)

    full_name = models.CharField(max_length=FIELD_MAX_LENGTH)
    id_number = models.CharField(
        max_length=FIELD_MAX_LENGTH, unique=True, null=True, blank=True
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.STUDENT)

    bio = models.TextField(blank=True)
    profile_image = models.TextField(blank=True)

    is_approved = models.BooleanField(default=False)

    active = models.BooleanField(default=False)
    last_seen = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return self.full_name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN
