"""
Assign account identifiers to legacy students and copy them onto their
payment terms, assessments, transactions and payments.
"""
from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from apps.core.fees.backfill import run_backfill
from apps.core.utils.exceptions import LedgerError


class Command(BaseCommand):
    help = 'Backfill account_id on students and financial rows that only carry the legacy user key'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report how many rows would be updated without writing anything',
        )
        parser.add_argument(
            '--date',
            help='Issue new identifiers under this date (YYYY-MM-DD) instead of each student\'s creation date',
        )

    def handle(self, *args, **options):
        dry_run = options.get('dry_run', False)
        on_date = None
        if options.get('date'):
            try:
                on_date = datetime.strptime(options['date'], '%Y-%m-%d').date()
            except ValueError as exc:
                raise CommandError(f"Invalid --date: {options['date']}") from exc

        try:
            report = run_backfill(dry_run=dry_run, on_date=on_date)
        except LedgerError as exc:
            raise CommandError(f'Backfill failed and was rolled back: {exc}') from exc

        label = '[DRY RUN] Would update' if dry_run else 'Updated'
        for table, count in report.counts_by_table.items():
            style = self.style.WARNING if dry_run else self.style.SUCCESS
            self.stdout.write(style(f'{label} {count} {table} row(s)'))
        self.stdout.write(f'Total: {report.total}')

        if not dry_run:
            self.stdout.write(self.style.SUCCESS('Verification passed: every row carries a known account_id.'))
