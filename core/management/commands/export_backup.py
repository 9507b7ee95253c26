from pathlib import Path

from django.core.management.base import BaseCommand

from core.repository import get_repository
from core.services import backup_filename, render_backup


class Command(BaseCommand):
    help = "Write a pretty-printed JSON backup of stock, sales, customers, khata entries and settings."

    def add_arguments(self, parser):
        parser.add_argument("--output", help="File or directory to write to; stdout when omitted.")

    def handle(self, *args, **options):
        document = render_backup(get_repository())
        output = options.get("output")
        if not output:
            self.stdout.write(document)
            return

        out_path = Path(output)
        if out_path.is_dir():
            out_path = out_path / backup_filename()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(document + "\n", encoding="utf-8")
        self.stdout.write(self.style.SUCCESS(f"Backup written to {out_path}"))
