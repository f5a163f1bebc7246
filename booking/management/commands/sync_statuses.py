from django.core.management.base import BaseCommand

from booking import services


class Command(BaseCommand):
    help = (
        "Mark confirmed bookings and matches whose date has passed as completed, "
        "and cancel unpaid bookings held past the hold window."
    )

    def handle(self, *args, **options):
        bookings, matches, released = services.sync_statuses()
        self.stdout.write(self.style.SUCCESS(
            f"Completed {bookings} booking(s) and {matches} match(es)."
        ))
        self.stdout.write(f"Released {released} unpaid booking(s).")
