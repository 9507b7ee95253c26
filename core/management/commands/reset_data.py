from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from core.repository import get_repository
from core.services import reset_all


class Command(BaseCommand):
    help = "Delete ALL shop data (stock, sales, customers, khata, settings, PIN). Cannot be undone."

    def add_arguments(self, parser):
        parser.add_argument(
            "--noinput",
            "--no-input",
            action="store_false",
            dest="interactive",
            help="Skip both confirmation prompts.",
        )

    def handle(self, *args, **options):
        if options["interactive"]:
            first = input("This deletes every product, sale, customer and khata entry. Continue? [y/N] ")
            if first.strip().lower() not in {"y", "yes"}:
                raise CommandError("Reset cancelled.")
            phrase = settings.SHOP_RESET_CONFIRM_PHRASE
            second = input(f"Type '{phrase}' to confirm: ")
            if second.strip() != phrase:
                raise CommandError("Reset cancelled.")

        removed = reset_all(get_repository())
        summary = ", ".join(f"{count} {name.replace('_', ' ')}" for name, count in removed.items())
        self.stdout.write(self.style.SUCCESS(f"Shop data reset. Removed {summary}."))
