from django.core.management.base import BaseCommand
from django.utils import timezone
from social.models import User


class Command(BaseCommand):
    help = """
    Mark every user still flagged as active as inactive.

    Presence flags survive a server crash or restart while no connection is
    left to clear them. Run this before starting the socket server.
    """

    def handle(self, *args, **options):
        now = timezone.now()
        updated = User.objects.filter(active=True).update(active=False, last_seen=now)

        if updated:
            self.stdout.write(self.style.SUCCESS(f"Marked {updated} user(s) inactive."))
        else:
            self.stdout.write("No active users to reset.")
