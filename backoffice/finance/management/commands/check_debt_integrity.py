"""
Management command to report receivables whose balances do not add up
"""
from django.core.management.base import BaseCommand, CommandError
from backoffice.finance.services import find_debt_inconsistencies


class Command(BaseCommand):
    help = 'Report sales, repairs, installment plans and receipts with inconsistent paid/remaining amounts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fail',
            action='store_true',
            help='Exit with an error when problems are found',
        )

    def handle(self, *args, **options):
        problems = find_debt_inconsistencies()
        if not problems:
            self.stdout.write(self.style.SUCCESS('All balances are consistent'))
            return

        for problem in problems:
            self.stdout.write(self.style.WARNING(f"[{problem['kind']}] {problem['code']}: {problem['problem']}"))
        self.stdout.write(f"Problems found: {len(problems)}")
        if options['fail']:
            raise CommandError(f"{len(problems)} inconsistent balances")
