"""
Management command to flag installment periods that are past due
"""
from datetime import date

from django.core.management.base import BaseCommand, CommandError
from backoffice.finance.cache import invalidate_receivables, suspend_cache_signals
from backoffice.pos.installments import refresh_all_overdue
from backoffice.pos.models import InstallmentPlan


class Command(BaseCommand):
    help = 'Mark pending/partial installment periods past their due date as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            help='Treat this day (YYYY-MM-DD) as today',
        )
        parser.add_argument(
            '--branch',
            help='Only refresh plans of this branch',
        )

    def handle(self, *args, **options):
        today = None
        if options.get('date'):
            try:
                today = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")

        with suspend_cache_signals():
            flagged = refresh_all_overdue(today=today, branch=options.get('branch'))
        invalidate_receivables()
        overdue_plans = InstallmentPlan.objects.filter(status='overdue')
        if options.get('branch'):
            overdue_plans = overdue_plans.filter(branch=options['branch'])

        self.stdout.write(f"Periods flagged overdue: {flagged}")
        self.stdout.write(self.style.SUCCESS(f"Plans currently overdue: {overdue_plans.count()}"))
