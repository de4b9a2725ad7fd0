from django.core.management.base import BaseCommand, CommandError

from apps.core.fees.backfill import enforce_account_id_constraints
from apps.core.utils.exceptions import LedgerError


class Command(BaseCommand):
    help = 'Make account_id NOT NULL on students and financial tables once the backfill has verified'

    def handle(self, *args, **options):
        try:
            tables = enforce_account_id_constraints()
        except LedgerError as exc:
            raise CommandError(f'Refusing to enforce account_id: {exc}') from exc

        for table in tables:
            self.stdout.write(self.style.SUCCESS(f'account_id on {table} is now required'))
