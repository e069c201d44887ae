"""
Django management command to validate marketplace data integrity
"""
from django.core.management.base import BaseCommand, CommandError

from orders.validators import IntegrityValidator


class Command(BaseCommand):
    help = 'Validate stock, offer, order, payment and delivery integrity'

    def add_arguments(self, parser):
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Show passing checks as well as failing ones',
        )

    def handle(self, *args, **options):
        verbose = options['verbose']

        self.stdout.write(self.style.WARNING('=' * 70))
        self.stdout.write(self.style.WARNING('MARKETPLACE DATA INTEGRITY VALIDATION'))
        self.stdout.write(self.style.WARNING('=' * 70))
        self.stdout.write('')

        results = IntegrityValidator.run()
        total_violations = 0

        for index, (name, description) in enumerate(IntegrityValidator.CHECKS, start=1):
            violations = results[name]
            total_violations += len(violations)

            self.stdout.write(self.style.HTTP_INFO(f'CHECK {index}: {description}'))
            if violations:
                for violation in violations:
                    self.stdout.write(self.style.ERROR(f'  x {violation.record_id}'))
                    self.stdout.write(f'    Issue: {violation.message}')
            elif verbose:
                self.stdout.write(self.style.SUCCESS('  OK'))
            self.stdout.write('')

        self.stdout.write(self.style.WARNING('=' * 70))
        self.stdout.write(self.style.WARNING('SUMMARY'))
        self.stdout.write(self.style.WARNING('=' * 70))
        for name, _ in IntegrityValidator.CHECKS:
            self.stdout.write(f'{name}: {len(results[name])} violation(s)')
        self.stdout.write('')

        if total_violations:
            raise CommandError(f'Data integrity issues detected: {total_violations} violation(s)')

        self.stdout.write(self.style.SUCCESS('All integrity checks passed!'))
