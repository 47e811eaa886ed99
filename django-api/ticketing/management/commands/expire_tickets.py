from django.core.management.base import BaseCommand

from ticketing.services.container import get_services


class Command(BaseCommand):
    help = "Mark active tickets past their valid_until as expired."

    def handle(self, *args, **options):
        expired = get_services().expiry.expire_overdue()
        self.stdout.write(self.style.SUCCESS(f"Expired {len(expired)} ticket(s)"))
